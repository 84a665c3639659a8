"""Tests for the limiting listener registry."""

import logging

from burstlimit.ratelimit import ListenerRegistry


class TestListenerRegistry:
    """Tests for adding, removing and notifying listeners."""

    def test_notify_in_registration_order(self):
        registry = ListenerRegistry()
        calls = []
        registry.add(lambda limiting: calls.append(("first", limiting)))
        registry.add(lambda limiting: calls.append(("second", limiting)))

        registry.notify(True)

        assert calls == [("first", True), ("second", True)]

    def test_handles_are_unique(self):
        registry = ListenerRegistry()
        listener = lambda limiting: None  # noqa: E731

        assert registry.add(listener) != registry.add(listener)
        assert len(registry) == 2

    def test_remove_by_handle(self):
        registry = ListenerRegistry()
        calls = []
        handle = registry.add(calls.append)

        assert registry.remove(handle) is True
        assert registry.remove(handle) is False

        registry.notify(True)
        assert calls == []

    def test_remove_by_callable(self):
        """Test removal by callable drops only the earliest registration."""
        registry = ListenerRegistry()
        calls = []

        def listener(limiting):
            calls.append(limiting)

        registry.add(listener)
        registry.add(listener)

        assert registry.remove(listener) is True
        registry.notify(False)

        assert calls == [False]

    def test_remove_unknown_listener(self):
        registry = ListenerRegistry()

        assert registry.remove(lambda limiting: None) is False
        assert registry.remove(42) is False

    def test_failing_listener_is_logged_and_skipped(self, caplog):
        """Test a raising listener does not stop the others."""
        registry = ListenerRegistry()
        calls = []

        def broken(limiting):
            raise RuntimeError("listener bug")

        registry.add(broken)
        registry.add(calls.append)

        with caplog.at_level(logging.ERROR, logger="burstlimit"):
            registry.notify(True)

        assert calls == [True]
        assert any("listener" in record.getMessage() for record in caplog.records)
        assert caplog.records[0].exc_info is not None

    def test_listener_may_remove_itself(self):
        registry = ListenerRegistry()
        calls = []

        def once(limiting):
            calls.append(limiting)
            registry.remove(once)

        registry.add(once)
        registry.notify(True)
        registry.notify(False)

        assert calls == [True]
