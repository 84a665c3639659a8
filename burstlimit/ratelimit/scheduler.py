"""Serial dispatch of queued operations against a bucket ledger.

The limiter regulates how often operations are started to avoid
overshooting a rate limitation. Operations are dispatched strictly in
enqueue order by a single worker task; the worker only ever waits on the
limiter's own delay, never on the operations it starts.
"""

import asyncio
import functools
import inspect
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set, TypeVar, Union

from pydantic import ValidationError

from burstlimit.core.clock import Clock, MonotonicClock
from burstlimit.core.config import settings
from burstlimit.core.logging import get_log_context, get_logger
from burstlimit.exceptions import InvalidConfigurationError, TaskCancelledError
from burstlimit.ratelimit.history import HistoryLog
from burstlimit.ratelimit.ledger import BucketLedger
from burstlimit.ratelimit.listeners import LimitingListener, ListenerHandle, ListenerRegistry
from burstlimit.ratelimit.models import HistoryEntry, QueuedTask, RateLimiterConfig

logger = get_logger(__name__)

T = TypeVar("T")


class RateLimiter:
    """Queue of operations dispatched within a request limit per time period.

    Usage:
        limiter = RateLimiter(time_period=60, request_limit=120)

        async def fetch(url):
            ...

        result = await limiter.enqueue(fetch, "https://example.org/entry/1")

    All methods must be called from the thread running the event loop; the
    worker is the only place the ledger is mutated.
    """

    def __init__(
        self,
        config: Optional[RateLimiterConfig] = None,
        *,
        clock: Optional[Clock] = None,
        name: str = "default",
        **overrides: Any,
    ):
        """Initialize the rate limiter.

        Args:
            config: Limiter configuration; built from the environment
                settings when omitted
            clock: Time source (defaults to the monotonic wall clock)
            name: Name used in log records and errors
            **overrides: Configuration fields overriding ``config``

        Raises:
            InvalidConfigurationError: If the configuration is invalid
        """
        try:
            if config is None:
                config = RateLimiterConfig.from_settings(settings, **overrides)
            elif overrides:
                config = RateLimiterConfig(**{**config.model_dump(), **overrides})
        except ValidationError as e:
            raise InvalidConfigurationError(
                f"Invalid configuration for rate limiter '{name}': {e}"
            ) from e

        self.config = config
        self.name = name
        self._clock = clock or MonotonicClock()
        self._listeners = ListenerRegistry()
        self._history = HistoryLog(config.history_max_entries) if config.history_enabled else None
        self._ledger = BucketLedger(
            config,
            self._clock.now(),
            listeners=self._listeners,
            history=self._history,
            name=name,
        )

        self._queue: Deque[QueuedTask] = deque()
        self._pending: Optional[QueuedTask] = None
        self._worker: Optional[asyncio.Task] = None
        # Strong references to dispatched operations until they settle
        self._running: Set[asyncio.Future] = set()

        logger.debug(
            f"Created rate limiter '{name}': {config.request_limit} requests per "
            f"{config.time_period}s in {config.bucket_count} buckets",
            extra=get_log_context(
                limiter=name, mode=config.mode.value, budget=self._ledger.budget
            ),
        )

    @property
    def ledger(self) -> BucketLedger:
        return self._ledger

    @property
    def limiting(self) -> bool:
        """Whether dispatching currently incurs a delay."""
        return self._ledger.limiting

    def enqueue(
        self, operation: Callable[..., Union[Awaitable[T], T]], *args: Any, **kwargs: Any
    ) -> "asyncio.Future[T]":
        """Queue an operation and return a future of its result.

        The operation is called with ``args`` and ``kwargs`` once the rate
        limitation allows it. Pass a bound method to call it on an object.
        Its result, or the exception it raises, is routed to the returned
        future. Cancelling the future before dispatch drops the task,
        cancelling it afterwards cancels the running operation.

        Args:
            operation: Callable returning an awaitable (or a plain value)
            *args: Positional arguments for the operation
            **kwargs: Keyword arguments for the operation

        Returns:
            Future resolved with the operation's result

        Raises:
            RuntimeError: If called without a running event loop
        """
        loop = asyncio.get_running_loop()
        if args or kwargs:
            operation = functools.partial(operation, *args, **kwargs)
        task = QueuedTask(
            operation=operation, future=loop.create_future(), enqueued_at=self._clock.now()
        )
        self._queue.append(task)
        self._ensure_worker()
        return task.future

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(
                self._process(), name=f"rate-limiter-{self.name}"
            )

    async def _process(self) -> None:
        """Drain the queue head first, waiting whenever the ledger is limiting.

        A worker superseded by ``clear`` stops before taking another task,
        even if an operation re-enqueued work while it was still running.
        """
        worker = asyncio.current_task()
        while self._queue and self._worker is worker:
            task = self._queue.popleft()
            if task.future.done():
                continue
            if self._ledger.limiting:
                delay_ms = self._ledger.wait_time(self._clock.now())
                self._pending = task
                logger.debug(
                    f"Rate limiter '{self.name}' delaying next dispatch by {delay_ms:.0f}ms",
                    extra=get_log_context(
                        limiter=self.name, queue_length=self.queue_length(), wait_ms=delay_ms
                    ),
                )
                try:
                    await self._clock.sleep(delay_ms / 1000)
                finally:
                    if self._pending is task:
                        self._pending = None
                if task.future.done():
                    continue
            self._dispatch(task)

    def _dispatch(self, task: QueuedTask) -> None:
        self._ledger.tick(self._clock.now())
        try:
            result = task.operation()
        except Exception as e:
            task.future.set_exception(e)
            return

        if not inspect.isawaitable(result):
            task.future.set_result(result)
            return

        running = asyncio.ensure_future(result)
        self._running.add(running)
        running.add_done_callback(functools.partial(self._settle, task.future))
        task.future.add_done_callback(
            lambda future: running.cancel() if future.cancelled() else None
        )

    def _settle(self, future: asyncio.Future, running: asyncio.Future) -> None:
        self._running.discard(running)
        if future.done():
            if not running.cancelled():
                # Mark the outcome retrieved, nobody is waiting for it
                running.exception()
            return
        if running.cancelled():
            future.cancel()
        elif running.exception() is not None:
            future.set_exception(running.exception())
        else:
            future.set_result(running.result())

    def wait_time(self) -> float:
        """Milliseconds before the next request could be dispatched without delay."""
        return self._ledger.wait_time(self._clock.now())

    async def wait(self) -> None:
        """Sleep until the next request could be dispatched without delay.

        Lets well-behaved callers pace themselves before enqueueing a lot of
        operations.
        """
        delay_ms = self.wait_time()
        if delay_ms > 0:
            await self._clock.sleep(delay_ms / 1000)

    def queue_length(self) -> int:
        """Number of tasks not yet dispatched, including one held behind a delay."""
        return len(self._queue) + (1 if self._pending is not None else 0)

    def clear(self) -> None:
        """Drop every task not yet dispatched.

        The pending delay is cancelled and the futures of all abandoned tasks
        fail with ``TaskCancelledError``. Operations already dispatched are
        unaffected and the request counters are kept.
        """
        abandoned: List[QueuedTask] = []
        if self._pending is not None:
            abandoned.append(self._pending)
            self._pending = None
        abandoned.extend(self._queue)
        self._queue.clear()

        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
        self._worker = None

        for task in abandoned:
            if not task.future.done():
                task.future.set_exception(TaskCancelledError(self.name))
        if abandoned:
            logger.debug(
                f"Cleared {len(abandoned)} task(s) from rate limiter '{self.name}'",
                extra=get_log_context(limiter=self.name, queue_length=0),
            )

    def add_listener(self, listener: LimitingListener) -> ListenerHandle:
        """Register a callback receiving True when limiting starts and False when it stops.

        Returns:
            Handle accepted by ``remove_listener``
        """
        return self._listeners.add(listener)

    def remove_listener(self, listener: Union[ListenerHandle, LimitingListener]) -> bool:
        """Unregister a listener by handle or by the callable itself."""
        return self._listeners.remove(listener)

    def history(self) -> List[HistoryEntry]:
        """Past buckets that held requests, oldest first.

        Each entry has the amount of requests made in the bucket, the time
        the bucket started and, if limiting engaged, when it did. Empty
        unless history is enabled.
        """
        if self._history is None:
            return []
        return self._history.entries()

    def get_stats(self) -> Dict[str, Any]:
        """Get current limiter statistics.

        Returns:
            Dictionary with current stats
        """
        return {
            "name": self.name,
            "mode": self.config.mode.value,
            "limiting": self._ledger.limiting,
            "budget": self._ledger.budget,
            "rate": self._ledger.rate,
            "burst": self._ledger.burst,
            "buckets": list(self._ledger.buckets),
            "queue_length": self.queue_length(),
            "wait_time_ms": round(self.wait_time(), 3),
            "listeners": len(self._listeners),
            "history_entries": len(self._history) if self._history is not None else 0,
        }
