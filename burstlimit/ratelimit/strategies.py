"""Scheduling policies of the rate limiter.

Naive
-----
Spreads the request limit evenly over the whole time period and delays
every request that comes too early. Pushes the most requests through over
long batch runs, but never allows a burst.

Burst
-----
Divides the time period into buckets and forecasts for the current bucket a
budget of requests that can go out without delay. Once the budget is used
up, requests are spaced at the guaranteed rate until buckets shift out of
the window and the budget recovers. Suited for interactive use where
requests come in intermittent bursts and responsiveness matters.
"""

import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Type

from burstlimit.ratelimit.models import RateLimiterConfig, RateLimitMode

if TYPE_CHECKING:
    from burstlimit.ratelimit.ledger import BucketLedger


class LimitStrategy(ABC):
    """Policy deciding when a ledger is limiting and how long to space requests."""

    mode: RateLimitMode

    @abstractmethod
    def wait_interval_ms(self, config: RateLimiterConfig) -> float:
        """Minimum spacing between requests while limiting, in milliseconds."""
        pass

    @abstractmethod
    def initial_limiting(self, ledger: "BucketLedger") -> bool:
        """Limiting state of a freshly created ledger."""
        pass

    def advance(self, ledger: "BucketLedger", now: float) -> None:
        """Move the ledger's buckets forward to ``now`` before counting."""
        pass

    @abstractmethod
    def is_limited(self, ledger: "BucketLedger") -> bool:
        """Limiting state after the current request has been counted."""
        pass


class NaiveStrategy(LimitStrategy):
    """Always limiting; requests are spaced by ``time_period / request_limit``."""

    mode = RateLimitMode.NAIVE

    def wait_interval_ms(self, config: RateLimiterConfig) -> float:
        return config.time_period * 1000 / config.request_limit

    def initial_limiting(self, ledger: "BucketLedger") -> bool:
        return True

    def is_limited(self, ledger: "BucketLedger") -> bool:
        return True


class BurstStrategy(LimitStrategy):
    """Limiting only once the current bucket's budget is consumed."""

    mode = RateLimitMode.BURST

    def wait_interval_ms(self, config: RateLimiterConfig) -> float:
        return config.bucket_length / config.rate * 1000

    def initial_limiting(self, ledger: "BucketLedger") -> bool:
        return ledger.budget <= 0

    def advance(self, ledger: "BucketLedger", now: float) -> None:
        elapsed = now - ledger.bucket_start_time
        if elapsed > ledger.bucket_length:
            ledger.shift_buckets(math.floor(elapsed / ledger.bucket_length))

    def is_limited(self, ledger: "BucketLedger") -> bool:
        return ledger.current_count >= ledger.budget


_STRATEGIES: Dict[RateLimitMode, Type[LimitStrategy]] = {
    RateLimitMode.NAIVE: NaiveStrategy,
    RateLimitMode.BURST: BurstStrategy,
}


def create_strategy(mode: RateLimitMode) -> LimitStrategy:
    """Instantiate the strategy implementing ``mode``."""
    return _STRATEGIES[RateLimitMode(mode)]()
