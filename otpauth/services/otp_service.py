"""OTP challenge orchestration: issue, resend and verify."""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable

from otpauth.config import AuthConfig
from otpauth.exceptions import (
    CooldownActive,
    Expired,
    LockedOut,
    Mismatch,
    NoActiveChallenge,
    NotifyError,
)
from otpauth.interfaces.challenge_store import ChallengeStore
from otpauth.interfaces.notifier import Notifier
from otpauth.models import ChallengeHandle, OtpChallenge, VerifyResult
from otpauth.security import codes_match, generate_otp
from otpauth.services.email_service import mask_email
from otpauth.services.token_issuer import SessionTokenIssuer
from otpauth.validation import validate_email, validate_otp

logger = logging.getLogger(__name__)


class OtpService:
    """Issues single-use email codes and verifies them exactly once.

    Every mutating operation for a session id runs under that id's lock from
    the challenge store, so a resend can never interleave with a verify of the
    code it replaces. The code itself never leaves this service except through
    the notifier.
    """

    def __init__(
        self,
        challenge_store: ChallengeStore,
        notifier: Notifier,
        token_issuer: SessionTokenIssuer | None = None,
        *,
        ttl_seconds: int | None = None,
        resend_cooldown_seconds: int | None = None,
        max_attempts: int | None = None,
        subject: str | None = None,
        clock: Callable[[], float] = time.time,
        code_factory: Callable[[], str] = generate_otp,
    ) -> None:
        self._store = challenge_store
        self._notifier = notifier
        self._token_issuer = token_issuer
        self._ttl = AuthConfig.OTP_EXPIRY_SECONDS if ttl_seconds is None else ttl_seconds
        self._cooldown = (
            AuthConfig.OTP_RESEND_COOLDOWN_SECONDS
            if resend_cooldown_seconds is None
            else resend_cooldown_seconds
        )
        self._max_attempts = AuthConfig.MAX_OTP_ATTEMPTS if max_attempts is None else max_attempts
        self._subject = subject or AuthConfig.EMAIL_SUBJECT
        self._clock = clock
        self._code_factory = code_factory

    async def issue(
        self,
        session_id: str,
        destination: str,
        context: dict[str, Any] | None = None,
    ) -> ChallengeHandle:
        destination = validate_email(destination)
        async with self._store.lock(session_id):
            challenge = await self._store_new_challenge(session_id, destination, context or {})
            await self._deliver(challenge)
        logger.info(f"OTP issued for session {session_id[:8]} to {mask_email(destination)}")
        return self._handle(challenge)

    async def resend(self, session_id: str) -> ChallengeHandle:
        """Replace the session's code once the cooldown has passed.

        Only a stored challenge can be resent; its destination and context
        carry over. Once it has been consumed or has expired the caller must
        start over with a fresh ``issue``.
        """
        async with self._store.lock(session_id):
            previous = await self._store.get(session_id)
            if previous is None:
                raise NoActiveChallenge("No verification in progress")
            retry_after = math.ceil(previous.created_at + self._cooldown - self._clock())
            if retry_after > 0:
                raise CooldownActive(
                    f"Please wait {retry_after} seconds before requesting a new code",
                    retry_after=retry_after,
                )

            challenge = await self._store_new_challenge(
                session_id, previous.destination, previous.context
            )
            await self._deliver(challenge)
        logger.info(f"OTP resent for session {session_id[:8]} to {mask_email(challenge.destination)}")
        return self._handle(challenge)

    async def verify(self, session_id: str, submitted_code: str) -> VerifyResult:
        submitted_code = validate_otp(submitted_code)
        async with self._store.lock(session_id):
            challenge = await self._store.get(session_id)
            if challenge is None or challenge.consumed:
                raise NoActiveChallenge("No verification in progress")

            if challenge.is_expired(self._clock()):
                await self._store.invalidate(session_id)
                raise Expired("OTP expired")

            if challenge.attempt_count > self._max_attempts:
                raise LockedOut("Too many invalid attempts. Request a new code.")

            if not codes_match(submitted_code, challenge.code):
                challenge.attempt_count += 1
                await self._store.put(challenge)
                if challenge.attempt_count > self._max_attempts:
                    logger.warning(f"OTP lockout for session {session_id[:8]}")
                    raise LockedOut("Too many invalid attempts. Request a new code.")
                logger.warning(
                    f"OTP mismatch for session {session_id[:8]} (attempt {challenge.attempt_count})"
                )
                raise Mismatch(
                    "Invalid OTP. Please try again.",
                    attempts_remaining=self._max_attempts - challenge.attempt_count + 1,
                )

            challenge.consumed = True
            await self._store.invalidate(session_id)

        result = VerifyResult(
            session_id=session_id,
            destination=challenge.destination,
            context=dict(challenge.context),
        )
        if self._token_issuer is not None:
            tokens = await self._token_issuer.issue(result.identity)
            result = VerifyResult(
                session_id=result.session_id,
                destination=result.destination,
                context=result.context,
                tokens=tokens,
            )
        logger.info(f"OTP verified for session {session_id[:8]}")
        return result

    async def status(self, session_id: str) -> ChallengeHandle:
        """Handle for the session's live challenge, for countdown display."""
        challenge = await self._store.get_active(session_id, self._clock())
        if challenge is None:
            raise NoActiveChallenge("No verification in progress")
        return self._handle(challenge)

    async def cancel(self, session_id: str) -> None:
        async with self._store.lock(session_id):
            await self._store.invalidate(session_id)

    async def _store_new_challenge(
        self,
        session_id: str,
        destination: str,
        context: dict[str, Any],
    ) -> OtpChallenge:
        now = self._clock()
        challenge = OtpChallenge(
            session_id=session_id,
            destination=destination,
            code=self._code_factory(),
            created_at=now,
            expires_at=now + self._ttl,
            context=dict(context),
        )
        # put() overwrites, which is what invalidates the previous code
        await self._store.put(challenge)
        return challenge

    async def _deliver(self, challenge: OtpChallenge) -> None:
        try:
            sent = await self._notifier.send(challenge.destination, self._subject, challenge.code)
        except Exception:
            logger.exception(f"Notifier raised while sending to {mask_email(challenge.destination)}")
            sent = False
        if not sent:
            logger.warning(f"OTP delivery failed for session {challenge.session_id[:8]}")
            raise NotifyError("Failed to send OTP. Please try again.")

    def _handle(self, challenge: OtpChallenge) -> ChallengeHandle:
        return ChallengeHandle(
            session_id=challenge.session_id,
            expires_at=int(challenge.expires_at),
            resend_available_at=int(challenge.created_at + self._cooldown),
        )
