"""Explicit client session object.

Each flow receives the SessionContext it works on instead of reading cookies
from ambient state. ``start_pending`` is the construction point of a login or
signup attempt, ``complete`` turns it into an authenticated session and
``clear`` is the single teardown point (logout, failed refresh).
"""

from __future__ import annotations

import logging

from otpauth.client.token_store import TokenSlot
from otpauth.models import PendingAuth, TokenPair

logger = logging.getLogger(__name__)


class SessionContext:
    def __init__(self, tokens: TokenSlot | None = None) -> None:
        self.tokens = tokens or TokenSlot()
        self.pending: PendingAuth | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.tokens.get() is not None

    def start_pending(self, pending: PendingAuth) -> None:
        self.pending = pending

    def complete(self, tokens: TokenPair) -> None:
        self.tokens.swap(tokens)
        self.pending = None

    def clear(self) -> None:
        self.tokens.clear()
        self.pending = None
        logger.info("Client session cleared")
