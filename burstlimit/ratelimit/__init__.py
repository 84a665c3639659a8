"""Admission control for outbound operations.

Throttles operations against a request limit over a rolling time period,
either evenly spaced (naive mode) or with a per-bucket burst budget (burst
mode).
"""

# Re-export models
from burstlimit.ratelimit.models import (
    HistoryEntry,
    QueuedTask,
    RateLimiterConfig,
    RateLimitMode,
)

# Re-export building blocks
from burstlimit.ratelimit.history import HistoryLog
from burstlimit.ratelimit.ledger import BucketLedger
from burstlimit.ratelimit.listeners import ListenerHandle, ListenerRegistry
from burstlimit.ratelimit.strategies import (
    BurstStrategy,
    LimitStrategy,
    NaiveStrategy,
    create_strategy,
)

from burstlimit.ratelimit.scheduler import RateLimiter
from burstlimit.ratelimit.decorators import rate_limited

__all__ = [
    # Models
    "HistoryEntry",
    "QueuedTask",
    "RateLimiterConfig",
    "RateLimitMode",
    # Building blocks
    "BucketLedger",
    "BurstStrategy",
    "HistoryLog",
    "LimitStrategy",
    "ListenerHandle",
    "ListenerRegistry",
    "NaiveStrategy",
    "create_strategy",
    # Main classes
    "RateLimiter",
    "rate_limited",
]
