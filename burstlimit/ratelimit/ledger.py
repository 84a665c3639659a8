"""Windowed request counters and budget forecasting."""

from typing import List, Optional, Tuple

from burstlimit.core.logging import get_log_context, get_logger
from burstlimit.ratelimit.history import HistoryLog
from burstlimit.ratelimit.listeners import ListenerRegistry
from burstlimit.ratelimit.models import HistoryEntry, RateLimiterConfig
from burstlimit.ratelimit.strategies import LimitStrategy, create_strategy

logger = get_logger(__name__)


class BucketLedger:
    """Request counters of one rate limiter, bucketed over the time period.

    The time period is divided into ``bucket_count`` buckets; index 0 is the
    oldest and the last one is the current bucket, which started at
    ``bucket_start_time``. Every dispatched request is counted with
    ``tick``. The only other mutation is ``shift_buckets``, driven by
    ``tick`` in burst mode.

    Characteristics of the burst budget:
    - Over a full time period the request limit is never exceeded.
    - The bucketing means fewer requests than the limit may be allowed in
      total, e.g. three buckets over 3600s with 3600 requests made one per
      second yields around 2850 requests.
    - Requests never come to a full stop, ``rate`` per bucket is always
      guaranteed.
    """

    def __init__(
        self,
        config: RateLimiterConfig,
        now: float,
        strategy: Optional[LimitStrategy] = None,
        listeners: Optional[ListenerRegistry] = None,
        history: Optional[HistoryLog] = None,
        name: str = "default",
    ):
        """Initialize the ledger with zeroed buckets.

        Args:
            config: Limiter configuration
            now: Current clock time in seconds, start of the current bucket
            strategy: Scheduling policy (defaults to the one for config.mode)
            listeners: Registry notified on limiting transitions
            history: Log receiving discarded non-empty buckets
            name: Limiter name used in log records
        """
        self.config = config
        self.name = name
        self.strategy = strategy or create_strategy(config.mode)
        self.listeners = listeners if listeners is not None else ListenerRegistry()
        self.history = history

        self.request_limit = config.request_limit
        self.bucket_count = config.bucket_count
        self.bucket_length = config.bucket_length
        self.rate = config.rate
        self.burst = config.burst
        self.wait_time_ms = self.strategy.wait_interval_ms(config)

        self._buckets: List[int] = [0] * self.bucket_count
        self.bucket_start_time = now
        self.budget = 0
        self.calculate_budget()
        self.limiting = self.strategy.initial_limiting(self)

        # Pretend the last request is long gone so the first one is never delayed
        self.last_request_time = now - 2 * self.wait_time_ms / 1000
        self._last_limit_point: Optional[float] = None

    @property
    def buckets(self) -> Tuple[int, ...]:
        return tuple(self._buckets)

    @property
    def current_count(self) -> int:
        """Requests counted in the current bucket."""
        return self._buckets[-1]

    def calculate_budget(self) -> int:
        """Forecast how many requests the current bucket may still absorb.

        For every lookahead of k buckets, the requests already recorded in
        the buckets that are still inside the window k buckets from now are
        subtracted from the limit, and the k future buckets are assumed to
        consume ``rate + burst`` each, since that much must stay guaranteed.
        The budget is the smallest of these forecasts minus ``rate``, which
        covers the budget being spent in the first instant of the bucket and
        limiting then still letting ``rate`` requests through. It never drops
        below ``burst``.

        Returns:
            The new budget
        """
        reserved = self.rate + self.burst
        forecast = min(
            self.request_limit - reserved * k - sum(self._buckets[k - 1:])
            for k in range(1, self.bucket_count + 1)
        )
        self.budget = max(forecast - self.rate, self.burst)
        return self.budget

    def shift_buckets(self, steps: int) -> None:
        """Forget the ``steps`` oldest buckets and open as many empty ones.

        Args:
            steps: Number of bucket lengths elapsed since the current bucket
                started
        """
        if steps < 1:
            return
        discarded = min(steps, self.bucket_count)
        if self.history is not None:
            oldest_start = self.bucket_start_time - (self.bucket_count - 1) * self.bucket_length
            for index in range(discarded):
                amount = self._buckets[index]
                if amount == 0:
                    continue
                start = oldest_start + index * self.bucket_length
                limit_at = None
                # The limit point belongs to the bucket it happened in
                if self._last_limit_point is not None and self._last_limit_point <= start + self.bucket_length:
                    limit_at = self._last_limit_point
                    self._last_limit_point = None
                self.history.append(HistoryEntry(amount=amount, time=start, limit_at=limit_at))

        self._buckets = self._buckets[discarded:] + [0] * discarded
        self.bucket_start_time += steps * self.bucket_length
        self.calculate_budget()
        logger.debug(
            f"Shifted {steps} bucket(s) of rate limiter '{self.name}', budget is now {self.budget}",
            extra=get_log_context(limiter=self.name, budget=self.budget),
        )

    def tick(self, now: float) -> None:
        """Count one dispatched request at clock time ``now``."""
        self.last_request_time = now
        self.strategy.advance(self, now)
        self._buckets[-1] += 1
        self._set_limiting(self.strategy.is_limited(self), now)

    def _set_limiting(self, limited: bool, now: float) -> None:
        if limited == self.limiting:
            return
        self.limiting = limited
        context = get_log_context(
            limiter=self.name, mode=self.strategy.mode.value, budget=self.budget
        )
        if limited:
            self._last_limit_point = now
            logger.info(
                f"Rate limiter '{self.name}' started limiting after "
                f"{self.current_count} requests in the current bucket",
                extra=context,
            )
        else:
            logger.info(f"Rate limiter '{self.name}' stopped limiting", extra=context)
        self.listeners.notify(limited)

    def wait_time(self, now: float) -> float:
        """Milliseconds until the next request may be dispatched.

        Zero unless limiting; otherwise what remains of the wait interval
        since the last request.
        """
        if not self.limiting:
            return 0.0
        elapsed_ms = (now - self.last_request_time) * 1000
        return max(0.0, self.wait_time_ms - elapsed_ms)
