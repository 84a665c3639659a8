"""Logging helpers for burstlimit.

The library only ever calls :func:`get_logger`. Applications that want the
formatted output opt in with :func:`setup_logging`. Records emitted by the
limiter carry context fields (limiter name, mode, budget...) passed through
``extra=``; the JSON formatter lifts them to top-level keys.
"""

import json
import logging
import logging.config
from datetime import datetime
from typing import Any, Dict, Optional

from burstlimit.core.config import settings

CONTEXT_FIELDS = ("limiter", "mode", "queue_length", "budget", "wait_ms")

# Attributes every LogRecord has, anything beyond them came in through extra=
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}

_FORMATTERS: Dict[str, Dict[str, str]] = {
    "text": {
        "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    },
    "structured": {
        "format": (
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s "
            "[limiter=%(limiter)s mode=%(mode)s budget=%(budget)s "
            "queue_length=%(queue_length)s wait_ms=%(wait_ms)s]"
        ),
    },
    "json": {
        "()": "burstlimit.core.logging.JSONFormatter",
    },
}


class JSONFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        extra: Dict[str, Any] = {}
        for key, value in vars(record).items():
            if key in CONTEXT_FIELDS:
                if value is not None:
                    payload[key] = value
            elif key not in _RECORD_ATTRS:
                extra[key] = value
        if extra:
            payload["extra"] = extra

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info).splitlines()

        return json.dumps(payload, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Default missing context fields to None so format strings never fail."""

    def filter(self, record: logging.LogRecord) -> bool:
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, None)
        return True


def get_logging_config() -> Dict[str, Any]:
    """Build the dictConfig for the ``burstlimit`` logger tree.

    A single stderr handler receives every level, formatted according to
    ``settings.log_format`` (text, structured or json).

    Returns:
        Logging configuration dict compatible with logging.config.dictConfig
    """
    log_format = settings.log_format.lower()
    if log_format not in _FORMATTERS:
        log_format = "text"
    log_level = settings.log_level.upper()

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {log_format: dict(_FORMATTERS[log_format])},
        "filters": {
            "context": {"()": "burstlimit.core.logging.ContextFilter"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": log_format,
                "filters": ["context"],
            },
        },
        "loggers": {
            "burstlimit": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging() -> None:
    """Send burstlimit log records to stderr, configured from the settings."""
    logging.config.dictConfig(get_logging_config())


def get_logger(name: str = "burstlimit") -> logging.Logger:
    return logging.getLogger(name)


def get_log_context(
    limiter: Optional[str] = None,
    mode: Optional[str] = None,
    queue_length: Optional[int] = None,
    budget: Optional[int] = None,
    wait_ms: Optional[float] = None,
    **extra
) -> Dict[str, Any]:
    """Collect limiter context for the ``extra=`` argument of a logging call.

    Fields left as None are omitted.

    Example:
        >>> logger.info(
        ...     "Rate limiting engaged",
        ...     extra=get_log_context(limiter="rest-read", budget=6)
        ... )
    """
    context = dict(
        limiter=limiter,
        mode=mode,
        queue_length=queue_length,
        budget=budget,
        wait_ms=wait_ms,
        **extra,
    )
    return {key: value for key, value in context.items() if value is not None}
