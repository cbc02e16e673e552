"""Security utilities for auth."""

from __future__ import annotations

import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from otpauth.config import AuthConfig
from otpauth.exceptions import AuthException

# 16 bytes of randomness, i.e. 128 bits
TOKEN_ID_BYTES = 16


def generate_otp() -> str:
    """Uniform 6-digit code over [100000, 999999]."""
    if AuthConfig.FIXED_OTP:
        return AuthConfig.FIXED_OTP
    return str(secrets.randbelow(900000) + 100000)


def new_session_id() -> str:
    return secrets.token_urlsafe(TOKEN_ID_BYTES)


def new_token_id() -> str:
    return secrets.token_hex(TOKEN_ID_BYTES)


def codes_match(submitted: str, expected: str) -> bool:
    return hmac.compare_digest(submitted.encode("utf-8"), expected.encode("utf-8"))


def _encode(payload: dict[str, Any]) -> str:
    return jwt.encode(payload, AuthConfig.JWT_SECRET, algorithm=AuthConfig.JWT_ALGORITHM)


def create_access_token(
    subject: str,
    claims: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> tuple[str, int]:
    now = now or datetime.now(timezone.utc)
    expire = now + timedelta(minutes=AuthConfig.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload: dict[str, Any] = dict(claims or {})
    payload.update(
        {
            "sub": subject,
            "type": "access",
            "exp": expire,
            "iat": now,
            "jti": new_token_id(),
        }
    )
    return _encode(payload), int(expire.timestamp())


def create_refresh_token(
    subject: str,
    claims: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> tuple[str, str, int]:
    now = now or datetime.now(timezone.utc)
    expire = now + timedelta(days=AuthConfig.REFRESH_TOKEN_EXPIRE_DAYS)
    refresh_jti = new_token_id()
    payload: dict[str, Any] = dict(claims or {})
    payload.update(
        {
            "sub": subject,
            "type": "refresh",
            "exp": expire,
            "iat": now,
            "jti": refresh_jti,
        }
    )
    return _encode(payload), refresh_jti, int(expire.timestamp())


def decode_token(token: str, verify_exp: bool = True) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            AuthConfig.JWT_SECRET,
            algorithms=[AuthConfig.JWT_ALGORITHM],
            options={"verify_exp": verify_exp},
        )
    except JWTError as exc:
        raise AuthException("Invalid token", status_code=401) from exc
