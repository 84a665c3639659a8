"""Shared fixtures for the rate limiter tests."""

import asyncio
from typing import List, Tuple

import pytest

from burstlimit.core.clock import ManualClock


class SteppedClock(ManualClock):
    """Manual clock whose sleeps block until the test releases them."""

    def __init__(self, start: float = 0.0):
        super().__init__(start)
        self.waiters: List[Tuple[float, asyncio.Future]] = []

    async def sleep(self, seconds: float) -> None:
        waiter = asyncio.get_running_loop().create_future()
        self.waiters.append((seconds, waiter))
        await waiter

    def release(self) -> float:
        """Let the oldest sleep finish, advancing time by its duration."""
        seconds, waiter = self.waiters.pop(0)
        self.advance(max(0.0, seconds))
        if not waiter.done():
            waiter.set_result(None)
        return seconds


@pytest.fixture
def clock():
    return ManualClock(start=1000.0)


@pytest.fixture
def stepped_clock():
    return SteppedClock(start=1000.0)
