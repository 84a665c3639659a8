"""Core utilities for the burstlimit package."""

from burstlimit.core.clock import Clock, ManualClock, MonotonicClock
from burstlimit.core.config import Settings, settings
from burstlimit.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "Clock",
    "ManualClock",
    "MonotonicClock",
    "Settings",
    "settings",
    "get_logger",
    "get_log_context",
    "setup_logging",
]
