"""In-memory auth stores."""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from otpauth.models import OtpChallenge


class _KeyLock:
    """A session's lock plus the number of tasks holding or awaiting it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class MemoryChallengeStore:
    """One active challenge per session id.

    ``lock(session_id)`` serializes issue/resend/verify for one session while
    different sessions proceed independently. A session's lock lives only
    while some task holds or awaits it. The store-wide lock only guards the
    challenge dict.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._challenges: dict[str, OtpChallenge] = {}
        self._key_locks: dict[str, _KeyLock] = {}

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        key_lock = self._key_locks.get(session_id)
        if key_lock is None:
            key_lock = self._key_locks[session_id] = _KeyLock()
        # Counted before waiting, so a release never drops a lock a waiter is queued on
        key_lock.users += 1
        try:
            async with key_lock.lock:
                yield
        finally:
            key_lock.users -= 1
            if key_lock.users == 0:
                del self._key_locks[session_id]

    async def put(self, challenge: OtpChallenge) -> None:
        async with self._lock:
            self._challenges[challenge.session_id] = challenge

    async def get(self, session_id: str) -> OtpChallenge | None:
        async with self._lock:
            return self._challenges.get(session_id)

    async def get_active(self, session_id: str, now: float) -> OtpChallenge | None:
        """Like get, but drops and hides consumed or expired records."""
        async with self._lock:
            challenge = self._challenges.get(session_id)
            if challenge is None:
                return None
            if challenge.consumed or challenge.is_expired(now):
                del self._challenges[session_id]
                return None
            return challenge

    async def invalidate(self, session_id: str) -> None:
        async with self._lock:
            self._challenges.pop(session_id, None)

    async def purge_expired(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        async with self._lock:
            stale = [
                key for key, challenge in self._challenges.items()
                if challenge.consumed or challenge.is_expired(now)
            ]
            for key in stale:
                del self._challenges[key]
            return len(stale)

    def __len__(self) -> int:
        return len(self._challenges)

class MemorySessionStore:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._sessions: dict[str, dict[str, Any]] = {}

    async def create_session(self, subject: str, refresh_jti: str, expires_at: int) -> None:
        async with self._lock:
            self._sessions[refresh_jti] = {
                "subject": subject,
                "refresh_jti": refresh_jti,
                "expires_at": expires_at,
                "revoked": False,
                "used": False,
                "created_at": int(time.time()),
            }

    async def get_session(self, refresh_jti: str) -> dict | None:
        async with self._lock:
            session = self._sessions.get(refresh_jti)
            return dict(session) if session else None

    async def revoke_session(self, refresh_jti: str) -> None:
        async with self._lock:
            session = self._sessions.get(refresh_jti)
            if session:
                session["revoked"] = True

    async def mark_used(self, refresh_jti: str) -> bool:
        """Flip ``used`` once. Returns False if it was already used or missing."""
        async with self._lock:
            session = self._sessions.get(refresh_jti)
            if not session or session["used"]:
                return False
            session["used"] = True
            return True


class MemoryRateLimiter:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._hits: dict[str, list[float]] = {}

    async def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        now = time.time()
        async with self._lock:
            hits = self._hits.get(key, [])
            hits = [timestamp for timestamp in hits if (now - timestamp) < window_seconds]
            if len(hits) >= limit:
                self._hits[key] = hits
                return False
            hits.append(now)
            self._hits[key] = hits
            return True


class AllowAllCredentials:
    """Accepts every email/password pair. For demos and tests only."""

    async def check(self, email: str, password: str) -> bool:
        return True
