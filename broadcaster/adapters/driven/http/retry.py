"""Retry logic for transient HTTP errors on the health probe."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TypeVar

import aiohttp

__all__ = ["retry", "RETRYABLE_ERRORS"]

logger = logging.getLogger(__name__)

# Exceptions considered transient and eligible for retry
RETRYABLE_ERRORS = (
    aiohttp.ClientConnectorError,  # Connection refused, DNS failed
    aiohttp.ClientConnectionError,
    aiohttp.ClientOSError,
    aiohttp.ServerTimeoutError,
    aiohttp.ClientPayloadError,
)

T = TypeVar("T")
AsyncFn = Callable[..., Awaitable[T]]


def retry(
    times: int = 3,
    delay_sec: tuple[float, ...] = (0.2, 0.5, 1.0),
) -> Callable[[AsyncFn[T]], AsyncFn[T]]:
    """Decorate an async function with backoff retry on transient errors.

    Anything outside RETRYABLE_ERRORS propagates on the first occurrence.
    Deliveries are never wrapped: a message must be posted at most once
    per destination and cycle.

    Args:
        times: Number of attempts (1 = no retry).
        delay_sec: Delays between attempts; the last one repeats.

    Returns:
        Decorator function.
    """
    if times < 1:
        raise ValueError(f"times must be at least 1 (got: {times})")

    def decorator(func: AsyncFn[T]) -> AsyncFn[T]:
        @wraps(func)
        async def wrapper(*args: object, **kwargs: object) -> T:
            for attempt in range(times):
                try:
                    return await func(*args, **kwargs)
                except RETRYABLE_ERRORS as e:
                    if attempt == times - 1:
                        logger.debug(f"Retry exhausted after {times} attempts: {e}")
                        raise
                    delay = delay_sec[min(attempt, len(delay_sec) - 1)]
                    logger.debug(f"Attempt {attempt + 1}/{times} failed ({e}), retrying in {delay}s")
                    await asyncio.sleep(delay)
            raise RuntimeError("Retry wrapper exhausted")

        return wrapper

    return decorator
