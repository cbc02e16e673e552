"""
FastAPI application for the OTP authentication service.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from api.auth import router as auth_router
from api.handler import (
    auth_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from api.otp import router as otp_router
from config import Config
from otpauth.config import AuthConfig
from otpauth.exceptions import AuthException
from otpauth.schemas import ApiResponse

logging.basicConfig(
    level=Config.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown."""
    logger.info(
        f"Starting auth service (environment={Config.ENVIRONMENT}, "
        f"store={AuthConfig.AUTH_STORE}, email={AuthConfig.EMAIL_PROVIDER})"
    )
    yield
    logger.info("Shutting down auth service")


app = FastAPI(
    title="OTP Auth API",
    description="Email OTP challenges and bearer-token sessions",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global exception handlers (apply to all endpoints)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(AuthException, auth_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(otp_router, prefix="/api", tags=["otp"])


@app.get("/")
def health_check() -> ApiResponse:
    """Root health check endpoint."""
    return ApiResponse(success=True, message="System operational", data={"status": "ok"})
