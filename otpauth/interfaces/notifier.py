"""Notifier interface for out-of-band code delivery."""

from __future__ import annotations

from typing import Protocol


class Notifier(Protocol):
    async def send(self, destination: str, subject: str, code: str) -> bool:
        ...
