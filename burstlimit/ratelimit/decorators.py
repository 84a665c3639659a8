"""Decorator routing calls of async functions through a rate limiter."""

import functools
from typing import Any, Callable, TypeVar

from burstlimit.ratelimit.scheduler import RateLimiter

F = TypeVar("F", bound=Callable[..., Any])


def rate_limited(limiter: RateLimiter) -> Callable[[F], F]:
    """Decorator that dispatches every call through ``limiter``.

    Args:
        limiter: Rate limiter shared by all calls of the decorated function

    Returns:
        Decorated coroutine function resolving to the wrapped function's result

    Example:
        >>> read_limiter = RateLimiter(time_period=60, request_limit=120)
        >>> @rate_limited(read_limiter)
        ... async def get_entry(client, uri):
        ...     return await client.get(uri)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await limiter.enqueue(func, *args, **kwargs)

        return wrapper  # type: ignore

    return decorator
