"""Access/refresh token minting and rotation."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable

from otpauth.exceptions import (
    AuthException,
    InvalidOrExpiredAccessToken,
    InvalidOrExpiredRefreshToken,
)
from otpauth.interfaces.session_store import SessionStore
from otpauth.models import TokenPair
from otpauth.security import create_access_token, create_refresh_token, decode_token

logger = logging.getLogger(__name__)

IDENTITY_CLAIMS = ("name",)


class SessionTokenIssuer:
    """Mints token pairs for a verified identity.

    Every refresh rotates both tokens. The refresh session of the presented
    token is marked used, so presenting it again is treated as reuse and the
    session is revoked.
    """

    def __init__(self, session_store: SessionStore, clock: Callable[[], float] = time.time) -> None:
        self._sessions = session_store
        self._clock = clock

    async def issue(self, identity: dict[str, Any]) -> TokenPair:
        subject = identity.get("sub")
        if not subject:
            raise AuthException("Identity is missing a subject", status_code=400)
        claims = {key: identity[key] for key in IDENTITY_CLAIMS if identity.get(key)}

        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        access_token, access_exp = create_access_token(subject, claims, now=now)
        refresh_token, refresh_jti, refresh_exp = create_refresh_token(subject, claims, now=now)
        await self._sessions.create_session(subject, refresh_jti, refresh_exp)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_expires_at=access_exp,
            refresh_expires_at=refresh_exp,
        )

    async def refresh(self, refresh_token: str) -> TokenPair:
        payload = self._decode_refresh(refresh_token)
        refresh_jti = payload["jti"]

        session = await self._sessions.get_session(refresh_jti)
        if not session or session.get("revoked"):
            raise InvalidOrExpiredRefreshToken("Refresh token revoked")
        if session.get("used"):
            await self._sessions.revoke_session(refresh_jti)
            logger.warning(f"Refresh token reuse detected for {refresh_jti[:8]}")
            raise InvalidOrExpiredRefreshToken("Refresh token reuse detected")
        expires_at = int(session.get("expires_at", 0))
        if expires_at and expires_at < self._clock():
            await self._sessions.revoke_session(refresh_jti)
            raise InvalidOrExpiredRefreshToken("Refresh token expired")
        if not await self._sessions.mark_used(refresh_jti):
            # Lost a race with a concurrent exchange of the same token
            await self._sessions.revoke_session(refresh_jti)
            raise InvalidOrExpiredRefreshToken("Refresh token reuse detected")

        identity = {"sub": payload["sub"]}
        identity.update({key: payload[key] for key in IDENTITY_CLAIMS if payload.get(key)})
        return await self.issue(identity)

    async def revoke(self, refresh_token: str | None) -> None:
        if not refresh_token:
            return
        try:
            payload = self._decode_refresh(refresh_token)
        except InvalidOrExpiredRefreshToken:
            logger.info("Logout with an unreadable refresh token; nothing to revoke")
            return
        await self._sessions.revoke_session(payload["jti"])

    def authenticate(self, access_token: str) -> dict[str, Any]:
        """Claims of a valid, unexpired access token."""
        try:
            payload = decode_token(access_token, verify_exp=False)
        except AuthException as exc:
            raise InvalidOrExpiredAccessToken("Invalid access token") from exc
        if payload.get("type") != "access" or not payload.get("sub"):
            raise InvalidOrExpiredAccessToken("Invalid access token")
        if int(payload.get("exp", 0)) < self._clock():
            raise InvalidOrExpiredAccessToken("Access token expired")
        return payload

    def _decode_refresh(self, token: str) -> dict[str, Any]:
        try:
            payload = decode_token(token, verify_exp=False)
        except AuthException as exc:
            raise InvalidOrExpiredRefreshToken("Invalid refresh token") from exc
        if payload.get("type") != "refresh" or not payload.get("jti") or not payload.get("sub"):
            raise InvalidOrExpiredRefreshToken("Invalid refresh token")
        return payload
