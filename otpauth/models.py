"""Domain records for OTP challenges and session tokens."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class OtpChallenge:
    """One outstanding verification attempt for a login/signup session."""

    session_id: str
    destination: str
    code: str
    created_at: float
    expires_at: float
    consumed: bool = False
    attempt_count: int = 0
    context: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class ChallengeHandle:
    """What the client gets back from issue/resend. Never carries the code."""

    session_id: str
    expires_at: int
    resend_available_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "expires_at": self.expires_at,
            "resend_available_at": self.resend_available_at,
        }


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_at: int
    refresh_expires_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "access_expires_at": self.access_expires_at,
            "refresh_expires_at": self.refresh_expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenPair":
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            access_expires_at=int(data.get("access_expires_at", 0)),
            refresh_expires_at=int(data.get("refresh_expires_at", 0)),
        )


@dataclass(frozen=True)
class VerifyResult:
    session_id: str
    destination: str
    context: dict[str, Any]
    tokens: TokenPair | None = None

    @property
    def identity(self) -> dict[str, Any]:
        identity: dict[str, Any] = {"sub": self.destination}
        if self.context.get("name"):
            identity["name"] = self.context["name"]
        return identity


@dataclass(frozen=True)
class PendingAuth:
    """Signup/login payload carried between credential submission and verification."""

    session_id: str
    flow: str
    email: str
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "session_id": self.session_id,
            "flow": self.flow,
            "email": self.email,
        }
        if self.name:
            payload["name"] = self.name
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PendingAuth":
        return cls(
            session_id=str(data["session_id"]),
            flow=str(data.get("flow", "login")),
            email=str(data["email"]),
            name=data.get("name"),
        )
