"""Custom exceptions for the burstlimit package."""


class RateLimiterError(Exception):
    """Base class for rate limiter exceptions.

    All custom exceptions should inherit from this class so callers can
    catch limiter failures with a single except clause.
    """

    def __init__(self, message: str = "Rate limiter error"):
        self.message = message
        super().__init__(message)


class InvalidConfigurationError(RateLimiterError, ValueError):
    """Raised when a rate limiter is constructed from an invalid configuration.

    The limiter instance is never created in that case. The underlying
    validation error, if any, is available as ``__cause__``.
    """

    def __init__(self, detail: str = "Invalid rate limiter configuration"):
        self.detail = detail
        super().__init__(detail)


class TaskCancelledError(RateLimiterError):
    """Raised into the futures of tasks abandoned by ``RateLimiter.clear()``.

    Covers both tasks still waiting in the queue and the task held behind
    the pending delay.
    """

    def __init__(self, limiter_name: str | None = None, message: str | None = None):
        self.limiter_name = limiter_name
        if message is None:
            message = "Task was cleared from the rate limiter queue before dispatch"
            if limiter_name:
                message = f"{message} (limiter '{limiter_name}')"
        super().__init__(message)
