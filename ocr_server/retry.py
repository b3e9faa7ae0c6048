"""Linear-backoff retry for whole-page operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from .errors import FetchError, RecognitionError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (FetchError, RecognitionError)

SleepFn = Callable[[float], Awaitable[None]]


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    retry_on: Tuple[Type[BaseException], ...] = RETRYABLE_ERRORS,
    sleep: Optional[SleepFn] = None,
    unit: float = 1.0,
    label: str = "operation",
) -> T:
    """Await ``operation()`` until it succeeds, sleeping ``attempt * unit`` between tries.

    Errors outside ``retry_on`` propagate at once. When every attempt fails,
    RetryExhaustedError carries the attempt count and the last cause.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    sleep_fn: SleepFn = sleep if sleep is not None else asyncio.sleep

    last_error: Optional[BaseException] = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except retry_on as exc:
            last_error = exc
            logger.warning(
                "Attempt %s/%s failed for %s: %s",
                attempt,
                max_attempts,
                label,
                exc,
            )
            if attempt < max_attempts:
                await sleep_fn(attempt * unit)

    assert last_error is not None
    raise RetryExhaustedError(max_attempts, last_error) from last_error


__all__ = ["run_with_retry", "RETRYABLE_ERRORS", "DEFAULT_MAX_ATTEMPTS"]
