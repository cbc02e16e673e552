"""Client-side token slot."""

from __future__ import annotations

from otpauth.models import TokenPair


class TokenSlot:
    """Holds the current token pair.

    Updates replace the whole frozen pair, so a reader sees either the old
    pair or the new one and never a mix of the two.
    """

    def __init__(self, tokens: TokenPair | None = None) -> None:
        self._tokens = tokens

    def get(self) -> TokenPair | None:
        return self._tokens

    def swap(self, tokens: TokenPair) -> TokenPair | None:
        previous, self._tokens = self._tokens, tokens
        return previous

    def clear(self) -> None:
        self._tokens = None

    @property
    def access_token(self) -> str | None:
        tokens = self._tokens
        return tokens.access_token if tokens else None
