"""Bounded retry with exponential backoff for any fallible callable."""

import logging
import threading
import time
from typing import Callable, TypeVar

_log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY_SECONDS = 1.0


class OperationCancelledError(Exception):
    """A retry backoff wait was interrupted by cancellation."""


def backoff_delay(attempt: int, base_delay_seconds: float) -> float:
    """Delay before the retry that follows 0-indexed attempt: base * 2**attempt."""
    return base_delay_seconds * (2**attempt)


def _wait(delay: float, cancel_event: threading.Event | None, sleep: Callable[[float], None] | None) -> None:
    if sleep is not None:
        sleep(delay)
    elif cancel_event is not None:
        if cancel_event.wait(delay):
            raise OperationCancelledError("Operation cancelled during retry backoff")
        return
    else:
        time.sleep(delay)
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError("Operation cancelled during retry backoff")


def with_retry(
    operation: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS,
    *,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    cancel_event: threading.Event | None = None,
    sleep: Callable[[float], None] | None = None,
) -> T:
    """
    Call operation up to max_retries + 1 times.

    Between attempt k and k+1 waits base_delay_seconds * 2**k; never waits after the last
    attempt. Exceptions not in retry_on propagate immediately. When every attempt fails,
    the last exception is re-raised as-is. The wait is interruptible through cancel_event
    (raises OperationCancelledError). sleep overrides the wait function (tests).
    """
    if max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {max_retries}")
    attempt = 0
    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("Operation cancelled before attempt")
        try:
            return operation()
        except retry_on as e:
            if attempt >= max_retries:
                raise
            delay = backoff_delay(attempt, base_delay_seconds)
            _log.warning(
                "Attempt %s/%s failed (%s); retrying in %.2fs",
                attempt + 1,
                max_retries + 1,
                e,
                delay,
            )
            _wait(delay, cancel_event, sleep)
            attempt += 1
