"""Single-flight token refresh for protected calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from otpauth.client.session import SessionContext
from otpauth.config import AuthConfig
from otpauth.exceptions import AuthenticationFailed, SessionExpired
from otpauth.models import TokenPair

logger = logging.getLogger(__name__)

T = TypeVar("T")

RefreshFn = Callable[[str], Awaitable[TokenPair]]


class TokenRefreshCoordinator:
    """Retries protected calls once after a shared token refresh.

    Concurrent calls that hit an expired access token all await the same
    in-flight refresh task, so one expiry produces exactly one refresh call.
    A call that still gets a 401 after its retry raises AuthenticationFailed.
    """

    max_retries = 1

    def __init__(
        self,
        session: SessionContext,
        refresh_fn: RefreshFn,
        timeout: float | None = None,
    ) -> None:
        self._session = session
        self._refresh_fn = refresh_fn
        self._timeout = AuthConfig.REFRESH_TIMEOUT_SECONDS if timeout is None else timeout
        self._lock = asyncio.Lock()
        self._inflight: asyncio.Task[TokenPair] | None = None

    @property
    def refresh_in_flight(self) -> bool:
        return self._inflight is not None

    async def run(
        self,
        send: Callable[[str | None], Awaitable[T]],
        is_unauthorized: Callable[[T], bool],
    ) -> T:
        """Send with the current access token, refreshing and replaying once on 401."""
        attempt = 0
        token = self._session.tokens.access_token
        while True:
            result = await send(token)
            if not is_unauthorized(result):
                return result
            if attempt >= self.max_retries:
                raise AuthenticationFailed("Request was rejected after refreshing the session")
            attempt += 1
            tokens = await self.refresh(failed_access_token=token)
            token = tokens.access_token

    async def refresh(self, failed_access_token: str | None = None) -> TokenPair:
        async with self._lock:
            current = self._session.tokens.get()
            if current is None:
                raise SessionExpired("Session expired. Please sign in again.")
            if failed_access_token is not None and current.access_token != failed_access_token:
                # The 401 was for a token that has already been replaced
                return current
            if self._inflight is None:
                self._inflight = asyncio.get_running_loop().create_task(
                    self._run_refresh(current.refresh_token)
                )
            inflight = self._inflight
        return await asyncio.shield(inflight)

    async def _run_refresh(self, refresh_token: str) -> TokenPair:
        try:
            tokens = await asyncio.wait_for(self._refresh_fn(refresh_token), timeout=self._timeout)
        except Exception as exc:
            logger.warning(f"Token refresh failed: {exc!r}")
            self._session.clear()
            raise SessionExpired("Session expired. Please sign in again.") from exc
        else:
            self._session.tokens.swap(tokens)
            logger.info("Token pair refreshed")
            return tokens
        finally:
            self._inflight = None
