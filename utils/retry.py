"""Async retry utilities with exponential backoff."""
import asyncio
import logging
import random
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

import aiohttp

from utils.exceptions import MarketDataError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RetryConfig:
    """Configuration for retry logic."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 0.5,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
        retryable_exceptions: Optional[Tuple[type, ...]] = None,
        jitter: bool = True
    ):
        self.max_attempts = max(1, max_attempts)
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.retryable_exceptions = retryable_exceptions or (
            MarketDataError,
            aiohttp.ClientError,
            asyncio.TimeoutError,
            ConnectionError,
        )
        self.jitter = jitter

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given (1-based) failed attempt."""
        delay = min(
            self.initial_delay * (self.exponential_base ** (attempt - 1)),
            self.max_delay
        )
        if self.jitter:
            delay = delay * (0.5 + random.random() * 0.5)
        return delay


def async_retry_with_backoff(
    config: Optional[RetryConfig] = None,
    correlation_id: Optional[str] = None
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for retrying coroutines with exponential backoff.

    Args:
        config: Retry configuration
        correlation_id: Optional correlation ID for logging

    Example:
        @async_retry_with_backoff(RetryConfig(max_attempts=3))
        async def fetch():
            ...
    """
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(1, config.max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except config.retryable_exceptions as e:
                    if attempt == config.max_attempts:
                        logger.error(
                            f"Max retry attempts ({config.max_attempts}) reached for {func.__name__}",
                            extra={"correlation_id": correlation_id, "attempt": attempt}
                        )
                        raise

                    delay = config.delay_for(attempt)
                    logger.warning(
                        f"Retrying {func.__name__} (attempt {attempt}/{config.max_attempts}) "
                        f"after {delay:.2f}s due to {type(e).__name__}",
                        extra={"correlation_id": correlation_id, "attempt": attempt}
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper
    return decorator
