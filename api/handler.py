"""Exception handlers for the FastAPI application.

Every error leaves the API in the same envelope,
``{"success": false, "message": ..., "data": {"error": <kind>, ...}}``,
so clients can branch on ``data.error`` instead of parsing messages.
"""
import logging

from fastapi import Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse

from otpauth.exceptions import AuthException

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    message: str,
    data: dict | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": data},
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return create_error_response(
        exc.status_code,
        str(exc.detail),
        {"error": "HTTPError"},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Field-level errors so the client can show them inline."""
    validation_errors = [
        {
            "field": error["loc"][-1] if error.get("loc") else "unknown",
            # pydantic prefixes messages raised from validators
            "message": error.get("msg", "").removeprefix("Value error, "),
        }
        for error in exc.errors()
    ]
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        {"error": "ValidationError", "validation_errors": validation_errors},
    )


def auth_error_response(exc: AuthException) -> JSONResponse:
    """Challenge and token lifecycle errors; ``data.error`` names the kind."""
    retry_after = exc.data.get("retry_after")
    return create_error_response(
        exc.status_code,
        exc.message,
        {"error": exc.kind, **exc.data},
        headers={"Retry-After": str(retry_after)} if retry_after is not None else None,
    )


async def auth_exception_handler(request: Request, exc: AuthException) -> JSONResponse:
    return auth_error_response(exc)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions with error logging."""
    logger.exception(
        "Unhandled exception occurred",
        extra={"path": request.url.path, "method": request.method}
    )
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="Internal server error",
        data={"error": "InternalError"},
    )
