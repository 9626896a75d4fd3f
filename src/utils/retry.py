"""Exponential backoff for provider calls."""

import asyncio
import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Iterator, TypeVar

logger = logging.getLogger(__name__)
T = TypeVar("T")


def backoff_delays(base_delay: float, max_attempts: int) -> Iterator[float]:
    """Sleep before each retry: base_delay, 2*base_delay, 4*base_delay, ..."""
    for retry in range(max(max_attempts - 1, 0)):
        yield base_delay * (2**retry)


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    abort_on: tuple[type[Exception], ...] = (),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Retry an async callable with exponential backoff.

    Args:
        max_attempts: Total attempts, including the first
        base_delay: Delay in seconds before the first retry
        exceptions: Exception types that trigger a retry
        abort_on: Exception types that end the loop at once, even when
            they are also listed in ``exceptions``

    Returns:
        Decorator producing the retrying coroutine function
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = getattr(func, "__name__", "call")

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            delays = backoff_delays(base_delay, max_attempts)
            attempt = 0
            while True:
                attempt += 1
                try:
                    return await func(*args, **kwargs)
                except abort_on as e:
                    logger.warning(f"{name} attempt {attempt}/{max_attempts} aborted: {e}")
                    raise
                except exceptions as e:
                    delay = next(delays, None)
                    if delay is None:
                        logger.error(f"{name}: all {max_attempts} attempts failed: {e}")
                        raise
                    logger.warning(
                        f"{name} attempt {attempt}/{max_attempts} failed: {e}. "
                        f"Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
