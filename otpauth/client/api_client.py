"""HTTP client for the auth API and for protected calls."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from otpauth.client.refresh import TokenRefreshCoordinator
from otpauth.client.session import SessionContext
from otpauth.exceptions import AuthException, InvalidOrExpiredRefreshToken, RefreshError
from otpauth.models import PendingAuth, TokenPair

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/api/v1/auth"


def _error_from_response(response: httpx.Response) -> AuthException:
    try:
        body = response.json()
    except ValueError:
        body = {}
    message = body.get("message") or body.get("error") or f"Request failed with status {response.status_code}"
    data = body.get("data") or {}
    return AuthException(message, status_code=response.status_code, data=data)


class ApiClient:
    """Attaches the bearer token to every call and refreshes it transparently.

    The underlying ``httpx.AsyncClient`` keeps the pending-auth cookie between
    the initiate and verify calls; tokens live in the explicit SessionContext.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        session: SessionContext | None = None,
        http_client: httpx.AsyncClient | None = None,
        refresh_timeout: float | None = None,
    ) -> None:
        self.session = session or SessionContext()
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=10)
        self.coordinator = TokenRefreshCoordinator(
            self.session,
            self._refresh_tokens,
            timeout=refresh_timeout,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Protected call. Raises SessionExpired or AuthenticationFailed on auth failure."""
        headers = dict(kwargs.pop("headers", None) or {})

        async def send(access_token: str | None) -> httpx.Response:
            if access_token:
                headers["Authorization"] = f"Bearer {access_token}"
            else:
                headers.pop("Authorization", None)
            return await self._http.request(method, url, headers=headers, **kwargs)

        return await self.coordinator.run(send, lambda response: response.status_code == 401)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def signup(self, name: str, email: str, password: str) -> dict[str, Any]:
        data = await self._post_auth("/signup/initiate", {"name": name, "email": email, "password": password})
        self.session.start_pending(PendingAuth(data["session_id"], "signup", email, name))
        return data

    async def login(self, email: str, password: str) -> dict[str, Any]:
        data = await self._post_auth("/login/initiate", {"email": email, "password": password})
        self.session.start_pending(PendingAuth(data["session_id"], "login", email))
        return data

    async def resend(self) -> dict[str, Any]:
        return await self._post_auth("/resend", {})

    async def verify(self, otp: str) -> TokenPair:
        data = await self._post_auth("/verify", {"otp": otp})
        tokens = TokenPair.from_dict(data["tokens"])
        self.session.complete(tokens)
        return tokens

    async def logout(self) -> None:
        tokens = self.session.tokens.get()
        try:
            await self._post_auth("/logout", {"refresh_token": tokens.refresh_token if tokens else None})
        finally:
            self.session.clear()

    async def _post_auth(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._http.post(f"{AUTH_PREFIX}{path}", json=payload)
        if response.status_code >= 400:
            raise _error_from_response(response)
        return response.json().get("data") or {}

    async def _refresh_tokens(self, refresh_token: str) -> TokenPair:
        response = await self._http.post(
            f"{AUTH_PREFIX}/refresh",
            json={"refresh_token": refresh_token},
        )
        if response.status_code == 401:
            raise InvalidOrExpiredRefreshToken(_error_from_response(response).message)
        if response.status_code != 200:
            raise RefreshError(_error_from_response(response).message)
        return TokenPair.from_dict(response.json()["data"]["tokens"])
