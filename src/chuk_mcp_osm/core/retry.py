"""
Exponential backoff with jitter for fallible async operations.

Errors without a status code are treated as network failures and retried,
as are 429/503/504. Any other status is fatal on the first attempt.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from ..constants import RETRY_JITTER_MS, RETRYABLE_STATUSES

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpstreamError(Exception):
    """An upstream failure, optionally carrying an HTTP status code."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass
class RetryResult(Generic[T]):
    """Successful outcome of a retried operation."""

    result: T
    attempts: int
    duration_ms: float


def is_retryable(error: BaseException) -> bool:
    """True for network-level failures (no status) and 429/503/504."""
    # CancelledError and other BaseException subclasses always propagate
    if not isinstance(error, Exception):
        return False
    status = getattr(error, "status", None)
    if status is None:
        return True
    return status in RETRYABLE_STATUSES


def _log_retry(retry_state: RetryCallState) -> None:
    error: Any = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        f"Attempt {retry_state.attempt_number} failed ({error}); "
        f"retrying in {delay * 1000:.0f} ms"
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int,
    base_ms: float,
    jitter_ms: float = RETRY_JITTER_MS,
) -> RetryResult[T]:
    """
    Run an async operation, retrying transient failures.

    Waits base_ms * 2^attempt plus up to jitter_ms of random jitter before
    each retry. Re-raises the last error once max_retries retries are used up
    or the error is not retryable.

    Returns:
        RetryResult with the result, attempts made, and wall-clock duration
    """
    start = time.perf_counter()
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=base_ms / 1000.0, min=0)
        + wait_random(0, jitter_ms / 1000.0),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        reraise=True,
    )

    async for attempt in retrying:
        with attempt:
            result = await operation()

    return RetryResult(
        result=result,
        attempts=attempt.retry_state.attempt_number,
        duration_ms=(time.perf_counter() - start) * 1000.0,
    )
