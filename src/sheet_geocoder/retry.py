"""
Sheet Geocoder — Bounded Retry
===============================
Runs a single logical operation up to ``max_attempts`` times, retrying
only failures that a predicate marks as transient.

By default attempts are made back-to-back.  Passing ``backoff_seconds``
enables capped exponential backoff between attempts.

Usage::

    coords = with_retry(lambda: backend.lookup(address, creds), max_attempts=3)
"""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from sheet_geocoder.exceptions import TransportError

logger = logging.getLogger("sheet_geocoder.retry")

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MAX_BACKOFF_SECONDS = 8.0


def is_retryable(exc: BaseException) -> bool:
    """Default retry predicate: transport and auth failures only."""
    return isinstance(exc, TransportError)


def backoff_delay(attempt: int, base: float, cap: float = DEFAULT_MAX_BACKOFF_SECONDS) -> float:
    """Seconds to wait after failed *attempt* (1-based)."""
    if base <= 0:
        return 0.0
    return min(base * 2 ** (attempt - 1), cap)


def with_retry(
    operation: Callable[[], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_on: Callable[[BaseException], bool] = is_retryable,
    *,
    backoff_seconds: float = 0.0,
    max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "operation",
) -> T:
    """Call *operation* until it succeeds or the attempt budget runs out.

    Args:
        operation: Zero-argument callable to invoke.
        max_attempts: Total attempts, including the first.  Must be >= 1.
        retry_on: Predicate deciding whether a raised exception is worth
                  another attempt.  Exceptions it rejects propagate
                  immediately.
        backoff_seconds: Base delay for capped exponential backoff.
                         ``0`` means no delay.
        max_backoff_seconds: Upper bound for a single delay.
        sleep: Function used to wait between attempts.
        label: Short description of the operation for log messages.

    Returns:
        Whatever *operation* returns on its first successful attempt.

    Raises:
        ValueError: If *max_attempts* is less than 1.
        Exception: The last exception raised by *operation* once the
            budget is exhausted, or the first non-retryable one.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    attempt = 1
    while True:
        try:
            return operation()
        except Exception as exc:
            if not retry_on(exc):
                raise
            if attempt >= max_attempts:
                logger.warning(
                    "Giving up on %s after %d attempt(s): %s", label, attempt, exc
                )
                raise
            delay = backoff_delay(attempt, backoff_seconds, max_backoff_seconds)
            logger.warning(
                "Attempt %d/%d for %s failed (%s); retrying%s",
                attempt,
                max_attempts,
                label,
                exc,
                f" in {delay:.2f}s" if delay else "",
            )
            if delay:
                sleep(delay)
            attempt += 1
