"""Shared fakes for the test modules."""

import asyncio


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    """Notifier double that remembers every code it was asked to deliver."""

    def __init__(self, succeed: bool = True, delay: float = 0.0):
        self.succeed = succeed
        self.delay = delay
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, destination: str, subject: str, code: str) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.sent.append((destination, subject, code))
        return self.succeed

    @property
    def last_code(self) -> str:
        return self.sent[-1][2]


class RaisingNotifier:
    async def send(self, destination: str, subject: str, code: str) -> bool:
        raise ConnectionError("smtp connection refused")


def sequential_codes(*codes: str):
    """Code factory returning the given codes in order."""
    iterator = iter(codes)
    return lambda: next(iterator)


def wrong_code(code: str) -> str:
    return "111111" if code != "111111" else "222222"
