"""Auth configuration management."""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass

# Loads .env before the values below are read
from config import Config


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


_DEFAULT_JWT_SECRET = secrets.token_urlsafe(32)


@dataclass(frozen=True)
class AuthConfig:
    """Configuration values for the OTP and token flows."""

    OTP_EXPIRY_SECONDS: int = int(os.getenv("OTP_EXPIRY_SECONDS", "300"))
    # Resend only unlocks once the whole validity window has elapsed
    OTP_RESEND_COOLDOWN_SECONDS: int = int(os.getenv("OTP_RESEND_COOLDOWN_SECONDS", "300"))
    MAX_OTP_ATTEMPTS: int = int(os.getenv("MAX_OTP_ATTEMPTS", "5"))
    FIXED_OTP: str | None = os.getenv("FIXED_OTP") or None

    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
    REFRESH_TOKEN_EXPIRE_DAYS: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
    JWT_ALGORITHM: str = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
    JWT_SECRET: str = os.getenv("AUTH_JWT_SECRET", _DEFAULT_JWT_SECRET)
    REFRESH_TIMEOUT_SECONDS: float = float(os.getenv("REFRESH_TIMEOUT_SECONDS", "5"))

    COOKIE_SECURE: bool = _parse_bool(os.getenv("COOKIE_SECURE"), Config.is_production())
    COOKIE_SAMESITE: str = os.getenv("COOKIE_SAME_SITE", "strict")
    COOKIE_DOMAIN: str | None = os.getenv("COOKIE_DOMAIN")
    ACCESS_COOKIE_NAME: str = os.getenv("ACCESS_COOKIE_NAME", "access_token")
    REFRESH_COOKIE_NAME: str = os.getenv("REFRESH_COOKIE_NAME", "refresh_token")
    PENDING_COOKIE_NAME: str = os.getenv("PENDING_COOKIE_NAME", "pending_auth")
    PENDING_COOKIE_MAX_AGE_SECONDS: int = int(os.getenv("PENDING_COOKIE_MAX_AGE_SECONDS", "3600"))

    INITIATE_RATE_LIMIT_PER_MINUTE: int = int(os.getenv("INITIATE_RATE_LIMIT_PER_MINUTE", "10"))

    EMAIL_PROVIDER: str = os.getenv("EMAIL_PROVIDER", "console")
    EMAIL_FROM_NAME: str = os.getenv("EMAIL_FROM_NAME", "Auth App")
    EMAIL_FROM_ADDRESS: str = os.getenv("EMAIL_FROM_ADDRESS", "no-reply@example.com")
    EMAIL_SUBJECT: str = os.getenv("EMAIL_SUBJECT", "Your OTP Code")
    RESEND_API_KEY: str | None = os.getenv("RESEND_API_KEY")
    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER: str | None = os.getenv("SMTP_USER")
    SMTP_PASSWORD: str | None = os.getenv("SMTP_PASSWORD")
    SMTP_USE_TLS: bool = _parse_bool(os.getenv("SMTP_USE_TLS"), True)

    # Refresh-token session store: "memory" or "sql"
    AUTH_STORE: str = os.getenv("AUTH_STORE", "memory")
