"""Auth API routes."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Cookie, Depends, Response, status
from fastapi.responses import JSONResponse

from api.handler import auth_error_response
from otpauth.config import AuthConfig
from otpauth.dependencies import (
    clear_auth_cookies,
    clear_pending_cookie,
    enforce_initiate_rate_limit,
    get_credential_checker,
    get_current_identity,
    get_otp_service,
    get_pending_auth,
    get_token_issuer,
    set_pending_cookie,
    set_token_cookies,
)
from otpauth.exceptions import InvalidCredentials, InvalidOrExpiredRefreshToken, NotifyError, RefreshError
from otpauth.interfaces.credential_checker import CredentialChecker
from otpauth.models import PendingAuth
from otpauth.schemas import (
    ApiResponse,
    LoginInitiateRequest,
    LogoutRequest,
    RefreshRequest,
    SignupInitiateRequest,
    VerifyRequest,
)
from otpauth.security import new_session_id
from otpauth.services.otp_service import OtpService
from otpauth.services.token_issuer import SessionTokenIssuer

logger = logging.getLogger(__name__)

router = APIRouter()


def _pending_context(pending: PendingAuth) -> dict[str, Any]:
    context: dict[str, Any] = {"flow": pending.flow}
    if pending.name:
        context["name"] = pending.name
    return context


async def _start_challenge(
    pending: PendingAuth,
    response: Response,
    otp_service: OtpService,
) -> ApiResponse | JSONResponse:
    try:
        handle = await otp_service.issue(pending.session_id, pending.email, _pending_context(pending))
    except NotifyError as exc:
        # The challenge is recorded, so keep the pending cookie for a later resend
        error_response = auth_error_response(exc)
        set_pending_cookie(error_response, pending)
        return error_response

    set_pending_cookie(response, pending)
    return ApiResponse(success=True, message="OTP sent to your email", data=handle.to_dict())


@router.post("/signup/initiate", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def signup_initiate(
    payload: SignupInitiateRequest,
    response: Response,
    _: None = Depends(enforce_initiate_rate_limit),
    otp_service: OtpService = Depends(get_otp_service),
):
    pending = PendingAuth(
        session_id=new_session_id(),
        flow="signup",
        email=payload.email.lower(),
        name=payload.name,
    )
    return await _start_challenge(pending, response, otp_service)


@router.post("/login/initiate", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def login_initiate(
    payload: LoginInitiateRequest,
    response: Response,
    _: None = Depends(enforce_initiate_rate_limit),
    otp_service: OtpService = Depends(get_otp_service),
    credential_checker: CredentialChecker = Depends(get_credential_checker),
):
    email = payload.email.lower()
    if not await credential_checker.check(email, payload.password):
        raise InvalidCredentials("Invalid credentials")

    pending = PendingAuth(session_id=new_session_id(), flow="login", email=email)
    return await _start_challenge(pending, response, otp_service)


@router.get("/challenge", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def challenge_status(
    pending: PendingAuth = Depends(get_pending_auth),
    otp_service: OtpService = Depends(get_otp_service),
) -> ApiResponse:
    handle = await otp_service.status(pending.session_id)
    return ApiResponse(
        success=True,
        message="Verification in progress",
        data={**handle.to_dict(), "email": pending.email, "flow": pending.flow},
    )


@router.post("/resend", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def resend(
    _: None = Depends(enforce_initiate_rate_limit),
    pending: PendingAuth = Depends(get_pending_auth),
    otp_service: OtpService = Depends(get_otp_service),
) -> ApiResponse:
    # The cookie only names the session; destination comes from the stored challenge
    handle = await otp_service.resend(pending.session_id)
    return ApiResponse(success=True, message="OTP resent to your email", data=handle.to_dict())


@router.post("/verify", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def verify(
    payload: VerifyRequest,
    response: Response,
    pending: PendingAuth = Depends(get_pending_auth),
    otp_service: OtpService = Depends(get_otp_service),
) -> ApiResponse:
    result = await otp_service.verify(pending.session_id, payload.otp)

    set_token_cookies(response, result.tokens)
    clear_pending_cookie(response)

    message = "Registration successful" if pending.flow == "signup" else "Login successful"
    return ApiResponse(
        success=True,
        message=message,
        data={
            "user": {"email": result.destination, "name": result.context.get("name")},
            "tokens": result.tokens.to_dict(),
        },
    )


@router.post("/refresh", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def refresh(
    response: Response,
    payload: RefreshRequest | None = None,
    refresh_cookie: str | None = Cookie(default=None, alias=AuthConfig.REFRESH_COOKIE_NAME),
    token_issuer: SessionTokenIssuer = Depends(get_token_issuer),
):
    refresh_token = (payload.refresh_token if payload else None) or refresh_cookie
    try:
        if not refresh_token:
            raise InvalidOrExpiredRefreshToken("Missing refresh token")
        tokens = await token_issuer.refresh(refresh_token)
    except RefreshError as exc:
        error_response = auth_error_response(exc)
        clear_auth_cookies(error_response)
        return error_response

    set_token_cookies(response, tokens)
    return ApiResponse(success=True, message="Token refreshed", data={"tokens": tokens.to_dict()})


@router.post("/logout", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def logout(
    response: Response,
    payload: LogoutRequest | None = None,
    refresh_cookie: str | None = Cookie(default=None, alias=AuthConfig.REFRESH_COOKIE_NAME),
    token_issuer: SessionTokenIssuer = Depends(get_token_issuer),
) -> ApiResponse:
    await token_issuer.revoke((payload.refresh_token if payload else None) or refresh_cookie)
    clear_auth_cookies(response)
    return ApiResponse(success=True, message="Logged out", data={})


@router.get("/me", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def me(identity: dict = Depends(get_current_identity)) -> ApiResponse:
    return ApiResponse(
        success=True,
        message="User retrieved",
        data={"user": {"email": identity.get("sub"), "name": identity.get("name")}},
    )
