"""Auth exceptions."""

from __future__ import annotations


class AuthException(Exception):
    """Base auth exception with HTTP status."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None, data: dict | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.data = data or {}

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationError(AuthException):
    """Malformed email or OTP, rejected before any state change."""

    status_code = 400


class NotifyError(AuthException):
    """The delivery collaborator failed. The challenge is still recorded."""

    status_code = 502


class InvalidCredentials(AuthException):
    status_code = 401


class NoActiveChallenge(AuthException):
    status_code = 404


class Expired(AuthException):
    status_code = 410


class Mismatch(AuthException):
    status_code = 401

    def __init__(self, message: str, attempts_remaining: int):
        super().__init__(message, data={"attempts_remaining": attempts_remaining})
        self.attempts_remaining = attempts_remaining


class LockedOut(AuthException):
    status_code = 429


class CooldownActive(AuthException):
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message, data={"retry_after": retry_after})
        self.retry_after = retry_after


class RateLimited(AuthException):
    status_code = 429


class RefreshError(AuthException):
    status_code = 401


class InvalidOrExpiredRefreshToken(RefreshError):
    pass


class InvalidOrExpiredAccessToken(AuthException):
    status_code = 401


class SessionExpired(AuthException):
    """Refresh failed; stored tokens were cleared and the user must sign in again."""

    status_code = 401


class AuthenticationFailed(AuthException):
    """A call replayed with a fresh token was still rejected."""

    status_code = 401
