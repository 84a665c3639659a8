"""Rolling-window rate limiting for outbound operations."""

from burstlimit.core.clock import Clock, ManualClock, MonotonicClock
from burstlimit.exceptions import (
    InvalidConfigurationError,
    RateLimiterError,
    TaskCancelledError,
)
from burstlimit.ratelimit import (
    HistoryEntry,
    RateLimiter,
    RateLimiterConfig,
    RateLimitMode,
    rate_limited,
)

__all__ = [
    "Clock",
    "ManualClock",
    "MonotonicClock",
    "InvalidConfigurationError",
    "RateLimiterError",
    "TaskCancelledError",
    "HistoryEntry",
    "RateLimiter",
    "RateLimiterConfig",
    "RateLimitMode",
    "rate_limited",
]

__version__ = "0.1.0"
