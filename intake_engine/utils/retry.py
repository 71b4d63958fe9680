# intake_engine/utils/retry.py
import logging
import time
from typing import Callable, TypeVar

from intake_engine.core.exceptions import TransientStorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_transient(
    func: Callable[[], T],
    *,
    attempts: int,
    backoff_seconds: float,
    label: str,
) -> T:
    """
    Call ``func`` until it stops raising TransientStorageError.

    Delay doubles after each failed attempt. Once ``attempts`` are used up
    the last TransientStorageError propagates to the caller. Any other error
    propagates immediately.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except TransientStorageError:
            if attempt == attempts:
                raise
            delay = backoff_seconds * (2 ** (attempt - 1))
            logger.warning(
                "%s hit transient storage error (attempt %d/%d), retrying in %.3fs",
                label,
                attempt,
                attempts,
                delay,
            )
            time.sleep(delay)
    raise AssertionError("unreachable")
