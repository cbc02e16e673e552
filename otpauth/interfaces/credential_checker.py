"""Credential checker interface.

User and credential storage live outside this service; login only needs a
yes/no answer for an email/password pair.
"""

from __future__ import annotations

from typing import Protocol


class CredentialChecker(Protocol):
    async def check(self, email: str, password: str) -> bool:
        ...
