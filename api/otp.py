"""OTP delivery endpoint.

Accepts ``{email, otp}`` and hands it to the notifier. Answers with bare
``{error}`` / ``{success}`` bodies rather than the API envelope.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from config import Config
from otpauth.config import AuthConfig
from otpauth.dependencies import get_notifier
from otpauth.interfaces.notifier import Notifier
from otpauth.validation import is_valid_email, is_valid_otp

logger = logging.getLogger(__name__)

router = APIRouter()

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _error(message: str, status_code: int, details: str | None = None) -> JSONResponse:
    content: dict[str, str] = {"error": message}
    if details is not None and not Config.is_production():
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@router.post("/send-otp")
async def send_otp(request: Request, notifier: Notifier = Depends(get_notifier)) -> JSONResponse:
    try:
        body = await request.json()
        if not isinstance(body, dict):
            body = {}
        email = body.get("email")
        otp = body.get("otp")

        if not email or not otp:
            return _error("Email and OTP are required", status.HTTP_400_BAD_REQUEST)
        if not isinstance(email, str) or not is_valid_email(email):
            return _error("Invalid email format", status.HTTP_400_BAD_REQUEST)
        if not isinstance(otp, str) or not is_valid_otp(otp):
            return _error("Invalid OTP format. Must be 6 digits.", status.HTTP_400_BAD_REQUEST)

        sent = await notifier.send(email, AuthConfig.EMAIL_SUBJECT, otp)
        if not sent:
            logger.error("Failed to send OTP email")
            return _error("Failed to send OTP. Please try again.", status.HTTP_500_INTERNAL_SERVER_ERROR)

        return JSONResponse(status_code=status.HTTP_200_OK, content={"success": True})
    except Exception as exc:
        logger.exception("Error in send-otp endpoint")
        return _error("Failed to send OTP", status.HTTP_500_INTERNAL_SERVER_ERROR, details=str(exc))


@router.options("/send-otp")
async def send_otp_preflight() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=PREFLIGHT_HEADERS)
