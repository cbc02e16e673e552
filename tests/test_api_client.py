import asyncio
import unittest

import httpx

from api.main import app
from otpauth.client.api_client import ApiClient
from otpauth.config import AuthConfig
from otpauth.dependencies import get_notifier, get_otp_service, get_rate_limiter, get_token_issuer
from otpauth.exceptions import AuthenticationFailed, AuthException, SessionExpired
from otpauth.models import TokenPair
from otpauth.services.otp_service import OtpService
from otpauth.services.token_issuer import SessionTokenIssuer
from otpauth.stores.memory_store import MemoryChallengeStore, MemoryRateLimiter, MemorySessionStore
from support import FakeClock, RecordingNotifier, wrong_code

ME = "/api/v1/auth/me"


class CountingIssuer(SessionTokenIssuer):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.refresh_calls = 0

    async def refresh(self, refresh_token: str) -> TokenPair:
        self.refresh_calls += 1
        return await super().refresh(refresh_token)


class TestApiClientAgainstApp(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.clock = FakeClock()
        self.notifier = RecordingNotifier()
        self.issuer = CountingIssuer(MemorySessionStore(), clock=self.clock)
        self.service = OtpService(MemoryChallengeStore(), self.notifier, self.issuer, clock=self.clock)
        self.rate_limiter = MemoryRateLimiter()

        app.dependency_overrides[get_notifier] = lambda: self.notifier
        app.dependency_overrides[get_token_issuer] = lambda: self.issuer
        app.dependency_overrides[get_otp_service] = lambda: self.service
        app.dependency_overrides[get_rate_limiter] = lambda: self.rate_limiter
        self.addCleanup(app.dependency_overrides.clear)

        http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
        self.client = ApiClient(http_client=http_client, refresh_timeout=2)
        self.addAsyncCleanup(self.client.aclose)

    async def sign_in(self) -> TokenPair:
        await self.client.signup("Ada Lovelace", "ada@example.com", "Secret@123")
        return await self.client.verify(self.notifier.last_code)

    async def test_signup_and_verify_store_tokens(self):
        await self.client.signup("Ada Lovelace", "ada@example.com", "Secret@123")
        self.assertEqual(self.client.session.pending.flow, "signup")

        tokens = await self.client.verify(self.notifier.last_code)

        self.assertTrue(self.client.session.is_authenticated)
        self.assertIsNone(self.client.session.pending)
        self.assertEqual(self.client.session.tokens.get(), tokens)

        response = await self.client.get(ME)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["user"]["name"], "Ada Lovelace")
        self.assertEqual(self.issuer.refresh_calls, 0)

    async def test_wrong_code_surfaces_error_kind(self):
        await self.client.login("ada@example.com", "whatever")

        with self.assertRaises(AuthException) as ctx:
            await self.client.verify(wrong_code(self.notifier.last_code))

        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(ctx.exception.data["error"], "Mismatch")
        self.assertFalse(self.client.session.is_authenticated)

    async def test_expired_access_token_is_refreshed_once_for_concurrent_calls(self):
        original = await self.sign_in()
        self.clock.advance(AuthConfig.ACCESS_TOKEN_EXPIRE_MINUTES * 60 + 1)

        responses = await asyncio.gather(*(self.client.get(ME) for _ in range(4)))

        self.assertEqual([r.status_code for r in responses], [200] * 4)
        self.assertEqual(self.issuer.refresh_calls, 1)
        self.assertNotEqual(self.client.session.tokens.get().refresh_token, original.refresh_token)

    async def test_revoked_refresh_token_expires_session(self):
        tokens = await self.sign_in()
        await self.issuer.revoke(tokens.refresh_token)
        self.clock.advance(AuthConfig.ACCESS_TOKEN_EXPIRE_MINUTES * 60 + 1)

        with self.assertRaises(SessionExpired):
            await self.client.get(ME)

        self.assertFalse(self.client.session.is_authenticated)

    async def test_logout_clears_session_and_revokes(self):
        tokens = await self.sign_in()

        await self.client.logout()

        self.assertFalse(self.client.session.is_authenticated)
        with self.assertRaises(AuthException):
            await self.issuer.refresh(tokens.refresh_token)


class TestApiClientRetryLimit(unittest.IsolatedAsyncioTestCase):
    async def test_second_401_is_authentication_failure(self):
        calls = {"protected": 0, "refresh": 0}
        fresh = TokenPair("access-2", "refresh-2", 0, 0).to_dict()

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/v1/auth/refresh":
                calls["refresh"] += 1
                return httpx.Response(200, json={"success": True, "message": "ok", "data": {"tokens": fresh}})
            calls["protected"] += 1
            return httpx.Response(401, json={"success": False, "message": "nope", "data": None})

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver")
        async with ApiClient(http_client=http_client) as client:
            client.session.complete(TokenPair("access-1", "refresh-1", 0, 0))

            with self.assertRaises(AuthenticationFailed):
                await client.get("/api/protected")

        self.assertEqual(calls, {"protected": 2, "refresh": 1})

    async def test_refresh_server_error_expires_session(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/v1/auth/refresh":
                return httpx.Response(503, json={"success": False, "message": "down", "data": None})
            return httpx.Response(401)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver")
        async with ApiClient(http_client=http_client) as client:
            client.session.complete(TokenPair("access-1", "refresh-1", 0, 0))

            with self.assertRaises(SessionExpired):
                await client.get("/api/protected")
            self.assertFalse(client.session.is_authenticated)


if __name__ == "__main__":
    unittest.main()
