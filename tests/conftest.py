"""Shared test fixtures."""

import asyncio

import pytest


class FakeClock:
    """Manually advanced clock with an async sleep that advances it.

    sleep() records every requested delay, moves time forward and yields once to
    the event loop so other waiters get a chance to run.
    """

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Create a fake clock starting at t=1000s."""
    return FakeClock()
