"""Shape checks for addresses and codes."""

from __future__ import annotations

import re

from otpauth.exceptions import ValidationError

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
OTP_REGEX = re.compile(r"^[0-9]{6}$")
PASSWORD_REGEX = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")


def is_valid_email(email: str | None) -> bool:
    return bool(email) and EMAIL_REGEX.fullmatch(email) is not None


def is_valid_otp(otp: str | None) -> bool:
    return bool(otp) and OTP_REGEX.fullmatch(otp) is not None


def validate_email(email: str | None) -> str:
    if not is_valid_email(email):
        raise ValidationError("Invalid email format")
    return email.strip().lower()


def validate_otp(otp: str | None) -> str:
    if not is_valid_otp(otp):
        raise ValidationError("Invalid OTP format. Must be 6 digits.")
    return otp


def validate_password_strength(password: str) -> str:
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not PASSWORD_REGEX.match(password):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
    return password
