"""Rate limiting data models.

This module contains the limiter configuration and the records the limiter
keeps about queued tasks and past buckets.
"""

import asyncio
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from burstlimit.core.config import Settings


class RateLimitMode(str, Enum):
    """Scheduling policy of a limiter."""
    NAIVE = "naive"
    BURST = "burst"


class RateLimiterConfig(BaseModel):
    """Immutable configuration of one rate limiter instance.

    Attributes:
        time_period: Length of the rolling window in seconds
        request_limit: Requests allowed per time period
        bucket_count: Number of buckets the time period is divided into
        mode: Naive (evenly spaced) or burst (bucketed budget) scheduling
        minimum_burst_per_bucket: Requests per bucket always allowed before
            limiting engages (default ``request_limit / (12 * bucket_count)``)
        rate_limitation_speed: Requests per second guaranteed while limiting,
            burst mode only (default half the per-bucket share)
        history_enabled: Keep a record of discarded buckets
        history_max_entries: Maximum number of history records retained
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    time_period: float = Field(default=3600.0, gt=0)
    request_limit: int = Field(default=4896, gt=0)
    bucket_count: int = Field(default=12, gt=0)
    mode: RateLimitMode = RateLimitMode.BURST
    minimum_burst_per_bucket: Optional[float] = Field(default=None, ge=0)
    rate_limitation_speed: Optional[float] = Field(default=None, gt=0)
    history_enabled: bool = False
    history_max_entries: int = Field(default=1000, gt=0)

    @model_validator(mode="after")
    def validate_burst_rate(self) -> "RateLimiterConfig":
        """Burst mode needs at least one request per bucket while limiting."""
        if self.mode == RateLimitMode.BURST and self.rate < 1:
            raise ValueError(
                "burst mode requires a rate of at least one request per bucket; "
                "raise request_limit or rate_limitation_speed, or lower bucket_count"
            )
        return self

    @classmethod
    def from_settings(cls, source: Settings, **overrides: Any) -> "RateLimiterConfig":
        """Build a config from environment-driven settings.

        Args:
            source: Settings instance to read the limiter defaults from
            **overrides: Field values taking precedence over the settings
        """
        values = {
            "time_period": source.time_period,
            "request_limit": source.request_limit,
            "bucket_count": source.bucket_count,
            "mode": source.mode,
            "minimum_burst_per_bucket": source.minimum_burst_per_bucket,
            "rate_limitation_speed": source.rate_limitation_speed,
            "history_enabled": source.history_enabled,
            "history_max_entries": source.history_max_entries,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def bucket_length(self) -> float:
        """Length of one bucket in seconds."""
        return self.time_period / self.bucket_count

    @property
    def rate(self) -> int:
        """Requests per bucket guaranteed once limiting is active."""
        if self.rate_limitation_speed is not None:
            return math.floor(self.rate_limitation_speed * self.time_period / self.bucket_count)
        return math.floor(self.request_limit / (2 * self.bucket_count))

    @property
    def burst(self) -> int:
        """Floor of the per-bucket budget."""
        if self.minimum_burst_per_bucket is not None:
            return math.floor(self.minimum_burst_per_bucket)
        return math.floor(self.request_limit / (12 * self.bucket_count))


@dataclass(frozen=True)
class HistoryEntry:
    """Record of a discarded bucket that held at least one request.

    Times are readings of the limiter's clock, not wall-clock timestamps.
    With the default MonotonicClock they are ``time.monotonic()`` values and
    only meaningful relative to each other and to ``clock.now()``.

    Attributes:
        amount: Requests dispatched during the bucket
        time: Clock time (seconds) at which the bucket started
        limit_at: Clock time when limiting last engaged before the bucket
            was discarded, if it did
    """
    amount: int
    time: float
    limit_at: Optional[float] = None


@dataclass
class QueuedTask:
    """A task waiting in the limiter queue."""
    operation: Callable[[], Any]
    future: asyncio.Future
    enqueued_at: float
