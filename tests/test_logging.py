"""Tests for structured logging configuration."""

import json
import logging
from unittest.mock import patch

from burstlimit.core.logging import (
    ContextFilter,
    JSONFormatter,
    get_log_context,
    get_logger,
    get_logging_config,
    setup_logging,
)


def make_record(msg: str = "Test message") -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestJSONFormatter:
    """Test JSON formatter for structured logging."""

    def test_basic_json_format(self):
        """Test basic JSON formatting."""
        output = JSONFormatter().format(make_record())
        data = json.loads(output)

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert data["source"]["file"] == "test.py"
        assert data["source"]["line"] == 1

    def test_json_format_with_context(self):
        """Test limiter context fields are lifted to top-level keys."""
        record = make_record("Rate limiting engaged")
        record.limiter = "rest-read"
        record.mode = "burst"
        record.budget = 6
        record.wait_ms = 1000.0

        data = json.loads(JSONFormatter().format(record))

        assert data["limiter"] == "rest-read"
        assert data["mode"] == "burst"
        assert data["budget"] == 6
        assert data["wait_ms"] == 1000.0
        assert "extra" not in data

    def test_json_format_with_extra_fields(self):
        """Test unknown fields end up under extra."""
        record = make_record()
        record.custom_field = "custom_value"

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"]["custom_field"] == "custom_value"

    def test_json_format_with_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys
            record = logging.LogRecord(
                name="test",
                level=logging.ERROR,
                pathname="test.py",
                lineno=1,
                msg="failed",
                args=(),
                exc_info=sys.exc_info(),
            )

        data = json.loads(JSONFormatter().format(record))

        assert any("ValueError: boom" in line for line in data["exception"])


class TestContextFilter:
    """Test context filter defaults."""

    def test_adds_missing_fields(self):
        record = make_record()

        assert ContextFilter().filter(record) is True
        assert record.limiter is None
        assert record.budget is None

    def test_keeps_existing_fields(self):
        record = make_record()
        record.limiter = "rest-write"

        ContextFilter().filter(record)

        assert record.limiter == "rest-write"


class TestLoggingConfig:
    """Test logging configuration helpers."""

    def test_default_text_format(self):
        config = get_logging_config()

        assert config["version"] == 1
        assert "burstlimit" in config["loggers"]
        assert config["handlers"]["console"]["formatter"] == "text"
        assert config["filters"]["context"]["()"] == "burstlimit.core.logging.ContextFilter"

    def test_json_format(self):
        with patch("burstlimit.core.logging.settings") as mock_settings:
            mock_settings.log_format = "json"
            mock_settings.log_level = "debug"
            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["formatters"]["json"]["()"] == "burstlimit.core.logging.JSONFormatter"
        assert config["loggers"]["burstlimit"]["level"] == "DEBUG"

    def test_structured_format(self):
        with patch("burstlimit.core.logging.settings") as mock_settings:
            mock_settings.log_format = "structured"
            mock_settings.log_level = "INFO"
            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "structured"
        assert "limiter=%(limiter)s" in config["formatters"]["structured"]["format"]

    def test_single_handler_for_all_levels(self):
        """Test errors are not emitted twice by a second error handler."""
        config = get_logging_config()

        assert list(config["handlers"]) == ["console"]
        assert "level" not in config["handlers"]["console"]
        assert config["handlers"]["console"]["stream"] == "ext://sys.stderr"
        assert config["loggers"]["burstlimit"]["handlers"] == ["console"]

    def test_unknown_format_falls_back_to_text(self):
        with patch("burstlimit.core.logging.settings") as mock_settings:
            mock_settings.log_format = "yaml"
            mock_settings.log_level = "INFO"
            config = get_logging_config()

        assert list(config["formatters"]) == ["text"]
        assert config["handlers"]["console"]["formatter"] == "text"

    def test_setup_logging_applies_config(self):
        with patch("burstlimit.core.logging.logging.config.dictConfig") as dict_config:
            setup_logging()

        dict_config.assert_called_once()
        assert dict_config.call_args[0][0]["loggers"]["burstlimit"]["propagate"] is False

    def test_get_logger(self):
        assert get_logger().name == "burstlimit"
        assert get_logger("burstlimit.ratelimit").name == "burstlimit.ratelimit"


class TestLogContext:
    """Test log context helper."""

    def test_filters_none_values(self):
        context = get_log_context(limiter="default", budget=0, wait_ms=None)

        assert context == {"limiter": "default", "budget": 0}

    def test_extra_fields(self):
        context = get_log_context(limiter="default", attempt=3)

        assert context == {"limiter": "default", "attempt": 3}


class TestLimiterLogging:
    """Test log records emitted by the limiter."""

    def test_transition_logged_with_context(self, caplog):
        from burstlimit.ratelimit import BucketLedger, RateLimiterConfig

        config = RateLimiterConfig(time_period=8, request_limit=16, bucket_count=4)
        ledger = BucketLedger(config, now=0.0, name="rest-read")

        with caplog.at_level(logging.INFO, logger="burstlimit"):
            for _ in range(6):
                ledger.tick(0.0)

        records = [r for r in caplog.records if "started limiting" in r.getMessage()]
        assert len(records) == 1
        assert records[0].limiter == "rest-read"
        assert records[0].mode == "burst"
        assert records[0].budget == 6

    def test_listener_failure_logged_once(self, capsys):
        """Test a failing listener produces a single error record on stderr."""
        from burstlimit.ratelimit import ListenerRegistry

        def broken(limiting):
            raise RuntimeError("listener down")

        registry = ListenerRegistry()
        registry.add(broken)
        logger = get_logger("burstlimit")
        handlers, level, propagate = logger.handlers[:], logger.level, logger.propagate
        try:
            setup_logging()
            registry.notify(True)
        finally:
            logger.handlers[:] = handlers
            logger.setLevel(level)
            logger.propagate = propagate

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.count("failed handling limiting=True") == 1
