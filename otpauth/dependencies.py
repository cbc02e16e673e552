"""Auth dependency helpers."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from fastapi import Cookie, Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from otpauth.config import AuthConfig
from otpauth.exceptions import InvalidOrExpiredAccessToken, NoActiveChallenge, RateLimited
from otpauth.interfaces.credential_checker import CredentialChecker
from otpauth.interfaces.notifier import Notifier
from otpauth.interfaces.rate_limiter import RateLimiter
from otpauth.interfaces.session_store import SessionStore
from otpauth.models import PendingAuth, TokenPair
from otpauth.services.email_service import EmailNotifier
from otpauth.services.otp_service import OtpService
from otpauth.services.token_issuer import SessionTokenIssuer
from otpauth.stores.memory_store import (
    AllowAllCredentials,
    MemoryChallengeStore,
    MemoryRateLimiter,
    MemorySessionStore,
)

bearer_scheme = HTTPBearer(auto_error=False)

_challenge_store = MemoryChallengeStore()
_memory_session_store = MemorySessionStore()
_rate_limiter = MemoryRateLimiter()
_credential_checker = AllowAllCredentials()

_sql_session_store: SessionStore | None = None
_notifier: Notifier | None = None


def _get_session_store() -> SessionStore:
    """Get the refresh-session store based on AUTH_STORE config."""
    if AuthConfig.AUTH_STORE == "sql":
        global _sql_session_store
        if _sql_session_store is None:
            from db.engine import init_db
            from otpauth.stores.sql_store import SqlSessionStore

            init_db()
            _sql_session_store = SqlSessionStore()
        return _sql_session_store
    return _memory_session_store


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        _notifier = EmailNotifier()
    return _notifier


def get_token_issuer() -> SessionTokenIssuer:
    return SessionTokenIssuer(_get_session_store())


def get_otp_service(
    notifier: Notifier = Depends(get_notifier),
    token_issuer: SessionTokenIssuer = Depends(get_token_issuer),
) -> OtpService:
    return OtpService(_challenge_store, notifier, token_issuer)


def get_credential_checker() -> CredentialChecker:
    return _credential_checker


def get_rate_limiter() -> RateLimiter:
    return _rate_limiter


async def enforce_initiate_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    client_ip = request.client.host if request.client else "unknown"
    key = f"initiate:{client_ip}"
    allowed = await limiter.allow(key, AuthConfig.INITIATE_RATE_LIMIT_PER_MINUTE, 60)
    if not allowed:
        raise RateLimited("Too many attempts. Please try again later.")


def encode_pending(pending: PendingAuth) -> str:
    raw = json.dumps(pending.to_dict(), separators=(",", ":")).encode("utf-8")
    # Unpadded so the cookie value needs no quoting
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_pending(value: str) -> PendingAuth:
    try:
        padded = value + "=" * (-len(value) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        return PendingAuth.from_dict(json.loads(raw))
    except (binascii.Error, ValueError, KeyError, TypeError) as exc:
        raise NoActiveChallenge("No verification in progress") from exc


async def get_pending_auth(
    pending_auth: str | None = Cookie(default=None, alias=AuthConfig.PENDING_COOKIE_NAME),
) -> PendingAuth:
    if not pending_auth:
        raise NoActiveChallenge("No verification in progress")
    return decode_pending(pending_auth)


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    access_cookie: str | None = Cookie(default=None, alias=AuthConfig.ACCESS_COOKIE_NAME),
    token_issuer: SessionTokenIssuer = Depends(get_token_issuer),
) -> dict[str, Any]:
    """Claims of the caller's access token, from the bearer header or the cookie."""
    access_token = credentials.credentials if credentials else access_cookie
    if not access_token:
        raise InvalidOrExpiredAccessToken("Not authenticated")
    return token_issuer.authenticate(access_token)


def set_cookie(
    response: Response,
    key: str,
    value: str,
    max_age: int | None = None,
    http_only: bool = False,
) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        httponly=http_only,
        secure=AuthConfig.COOKIE_SECURE,
        samesite=AuthConfig.COOKIE_SAMESITE,
        domain=AuthConfig.COOKIE_DOMAIN,
    )


def set_pending_cookie(response: Response, pending: PendingAuth) -> None:
    set_cookie(
        response,
        AuthConfig.PENDING_COOKIE_NAME,
        encode_pending(pending),
        max_age=AuthConfig.PENDING_COOKIE_MAX_AGE_SECONDS,
    )


def set_token_cookies(response: Response, tokens: TokenPair) -> None:
    set_cookie(
        response,
        AuthConfig.ACCESS_COOKIE_NAME,
        tokens.access_token,
        max_age=AuthConfig.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    # Never readable from page scripts
    set_cookie(
        response,
        AuthConfig.REFRESH_COOKIE_NAME,
        tokens.refresh_token,
        max_age=AuthConfig.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600,
        http_only=True,
    )


def clear_pending_cookie(response: Response) -> None:
    response.delete_cookie(AuthConfig.PENDING_COOKIE_NAME, domain=AuthConfig.COOKIE_DOMAIN)


def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(AuthConfig.ACCESS_COOKIE_NAME, domain=AuthConfig.COOKIE_DOMAIN)
    response.delete_cookie(AuthConfig.REFRESH_COOKIE_NAME, domain=AuthConfig.COOKIE_DOMAIN)
    clear_pending_cookie(response)
