"""Time sources used by the rate limiter.

Times are floats in seconds. Only differences between two readings of the
same clock are meaningful.
"""

import asyncio
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Abstract time source with an awaitable sleep."""

    @abstractmethod
    def now(self) -> float:
        """Return the current time in seconds."""
        pass

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``."""
        pass


class MonotonicClock(Clock):
    """Wall-clock time backed by ``time.monotonic`` and ``asyncio.sleep``."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class ManualClock(Clock):
    """Clock that only moves when told to.

    ``sleep`` advances the clock by the requested amount and yields once to
    the event loop, so delays are observable without real waiting. Useful
    for deterministic tests of code that owns a limiter.

    Usage:
        clock = ManualClock()
        limiter = RateLimiter(mode="naive", clock=clock)
        ...
        clock.advance(30)
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("cannot move a clock backwards")
        self._now += seconds

    async def sleep(self, seconds: float) -> None:
        self.advance(max(0.0, seconds))
        await asyncio.sleep(0)
