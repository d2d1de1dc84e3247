"""Retry helpers for outbound connections."""
import logging
from functools import wraps
from typing import Any, Callable, TypeVar

from tenacity import (
    retry,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Common network exceptions to retry on
RETRYABLE_EXCEPTIONS = (
    ConnectionRefusedError,
    ConnectionResetError,
    TimeoutError,
    OSError,
    EOFError,
)


def with_retry(
    max_attempts: int = 15,
    interval: float = 1,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> Callable:
    """Decorator factory for retrying a coroutine function at a fixed interval.

    Args:
        max_attempts: Maximum number of attempts (including the first)
        interval: Wait time between attempts (seconds)
        exceptions: Tuple of exception types to retry on

    The last exception is re-raised once attempts are exhausted.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_fixed(interval),
            retry=retry_if_exception_type(exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            return await func(*args, **kwargs)  # type: ignore[misc]

        return async_wrapper  # type: ignore[return-value]

    return decorator
