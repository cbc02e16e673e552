import asyncio
import unittest

from otpauth.config import AuthConfig
from otpauth.exceptions import AuthException, InvalidOrExpiredAccessToken, InvalidOrExpiredRefreshToken
from otpauth.security import decode_token
from otpauth.services.token_issuer import SessionTokenIssuer
from otpauth.stores.memory_store import MemorySessionStore
from support import FakeClock


class TestSessionTokenIssuer(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.sessions = MemorySessionStore()
        self.issuer = SessionTokenIssuer(self.sessions, clock=self.clock)

    async def test_issue_sets_token_lifetimes(self):
        tokens = await self.issuer.issue({"sub": "a@b.com", "name": "Ada"})

        now = int(self.clock.now)
        self.assertEqual(tokens.access_expires_at - now, AuthConfig.ACCESS_TOKEN_EXPIRE_MINUTES * 60)
        self.assertEqual(tokens.refresh_expires_at - now, AuthConfig.REFRESH_TOKEN_EXPIRE_DAYS * 86400)

        access = decode_token(tokens.access_token, verify_exp=False)
        refresh = decode_token(tokens.refresh_token, verify_exp=False)
        self.assertEqual(access["type"], "access")
        self.assertEqual(refresh["type"], "refresh")
        self.assertEqual(access["name"], "Ada")
        session = await self.sessions.get_session(refresh["jti"])
        self.assertEqual(session["subject"], "a@b.com")

    async def test_issue_requires_subject(self):
        with self.assertRaises(AuthException) as ctx:
            await self.issuer.issue({"name": "Ada"})
        self.assertEqual(ctx.exception.status_code, 400)

    async def test_refresh_rotates_and_rejects_old_token(self):
        original = await self.issuer.issue({"sub": "a@b.com"})
        self.clock.advance(60)

        rotated = await self.issuer.refresh(original.refresh_token)

        self.assertNotEqual(rotated.refresh_token, original.refresh_token)
        self.assertNotEqual(rotated.access_token, original.access_token)
        self.assertEqual(decode_token(rotated.access_token, verify_exp=False)["sub"], "a@b.com")
        with self.assertRaises(InvalidOrExpiredRefreshToken):
            await self.issuer.refresh(original.refresh_token)

    async def test_rotation_keeps_name_claim(self):
        original = await self.issuer.issue({"sub": "a@b.com", "name": "Ada"})
        rotated = await self.issuer.refresh(original.refresh_token)
        self.assertEqual(decode_token(rotated.access_token, verify_exp=False)["name"], "Ada")

    async def test_reused_token_revokes_its_session(self):
        original = await self.issuer.issue({"sub": "a@b.com"})
        await self.issuer.refresh(original.refresh_token)

        with self.assertRaises(InvalidOrExpiredRefreshToken):
            await self.issuer.refresh(original.refresh_token)

        jti = decode_token(original.refresh_token, verify_exp=False)["jti"]
        self.assertTrue((await self.sessions.get_session(jti))["revoked"])

    async def test_expired_refresh_token(self):
        tokens = await self.issuer.issue({"sub": "a@b.com"})
        self.clock.advance(AuthConfig.REFRESH_TOKEN_EXPIRE_DAYS * 86400 + 1)

        with self.assertRaises(InvalidOrExpiredRefreshToken):
            await self.issuer.refresh(tokens.refresh_token)

    async def test_refresh_rejects_access_token_and_garbage(self):
        tokens = await self.issuer.issue({"sub": "a@b.com"})

        with self.assertRaises(InvalidOrExpiredRefreshToken):
            await self.issuer.refresh(tokens.access_token)
        with self.assertRaises(InvalidOrExpiredRefreshToken):
            await self.issuer.refresh("not-a-jwt")

    async def test_concurrent_refresh_of_one_token_has_one_winner(self):
        tokens = await self.issuer.issue({"sub": "a@b.com"})

        results = await asyncio.gather(
            *(self.issuer.refresh(tokens.refresh_token) for _ in range(5)),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        self.assertEqual(len(winners), 1)
        self.assertTrue(
            all(isinstance(r, InvalidOrExpiredRefreshToken) for r in results if isinstance(r, Exception))
        )

    async def test_revoke(self):
        tokens = await self.issuer.issue({"sub": "a@b.com"})

        await self.issuer.revoke(tokens.refresh_token)

        with self.assertRaises(InvalidOrExpiredRefreshToken):
            await self.issuer.refresh(tokens.refresh_token)

    async def test_revoke_ignores_missing_or_unreadable_token(self):
        await self.issuer.revoke(None)
        await self.issuer.revoke("garbage")


class TestAuthenticate(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.issuer = SessionTokenIssuer(MemorySessionStore(), clock=self.clock)

    async def test_valid_access_token(self):
        tokens = await self.issuer.issue({"sub": "a@b.com"})
        claims = self.issuer.authenticate(tokens.access_token)
        self.assertEqual(claims["sub"], "a@b.com")

    async def test_expired_access_token(self):
        tokens = await self.issuer.issue({"sub": "a@b.com"})
        self.clock.advance(AuthConfig.ACCESS_TOKEN_EXPIRE_MINUTES * 60 + 1)

        with self.assertRaises(InvalidOrExpiredAccessToken):
            self.issuer.authenticate(tokens.access_token)

    async def test_refresh_token_is_not_an_access_token(self):
        tokens = await self.issuer.issue({"sub": "a@b.com"})
        with self.assertRaises(InvalidOrExpiredAccessToken):
            self.issuer.authenticate(tokens.refresh_token)

    def test_garbage_token(self):
        with self.assertRaises(InvalidOrExpiredAccessToken):
            self.issuer.authenticate("garbage")


if __name__ == "__main__":
    unittest.main()
