"""Retry utility with exponential backoff for remote reads."""

import asyncio
from collections.abc import Awaitable, Callable
import logging
from typing import TypeVar

from atelier_catalog.utils.errors import NetworkError

T = TypeVar("T")

logger = logging.getLogger(__name__)

# HTTP statuses worth another attempt
RETRYABLE_STATUSES = {429, 500, 502, 503, 504}


def is_retryable(error: Exception) -> bool:
    """Transport failures and transient server statuses are retryable."""
    if not isinstance(error, NetworkError):
        return False
    return error.status_code is None or error.status_code in RETRYABLE_STATUSES


async def async_retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    description: str = "Operation",
) -> T:
    """
    Execute an async function with retry and exponential backoff.

    Only errors accepted by `is_retryable` are retried; anything else
    propagates immediately.

    Args:
        func: Async function to execute
        max_retries: Maximum number of attempts
        base_delay: Base delay in seconds (doubled each retry)
        description: Description for logging

    Returns:
        Result from func
    """
    if max_retries < 1:
        raise ValueError(f"max_retries must be >= 1, got {max_retries}")

    for attempt in range(max_retries):
        try:
            return await func()
        except Exception as e:
            if not is_retryable(e) or attempt == max_retries - 1:
                raise

            delay = base_delay * (2**attempt)
            logger.warning(
                f"  ↻ {description} failed (attempt {attempt + 1}/{max_retries}): "
                f"{e}. Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)

    raise RuntimeError(f"{description} failed after {max_retries} retries")
