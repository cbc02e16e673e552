"""Challenge store interface."""

from __future__ import annotations

from typing import AsyncContextManager, Protocol

from otpauth.models import OtpChallenge


class ChallengeStore(Protocol):
    def lock(self, session_id: str) -> AsyncContextManager[None]:
        """Exclusive section for one session id."""
        ...

    async def put(self, challenge: OtpChallenge) -> None:
        ...

    async def get(self, session_id: str) -> OtpChallenge | None:
        ...

    async def get_active(self, session_id: str, now: float) -> OtpChallenge | None:
        ...

    async def invalidate(self, session_id: str) -> None:
        ...
