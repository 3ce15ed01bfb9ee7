"""Bounded exponential-backoff retry for LLM calls."""

import time
from collections.abc import Callable
from typing import TypeVar

from paggo_ocr.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number ``attempt + 1``: ``base * 2**attempt``, capped."""
    return min(max_delay, base_delay * 2**attempt)


def retry_with_backoff(
    func: Callable[[], T],
    retries: int = 3,
    base_delay: float = 0.6,
    max_delay: float = 3.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func`` until it succeeds or ``retries`` extra attempts fail.

    Args:
        func: Zero-argument callable to run.
        retries: Number of retries after the first attempt.
        base_delay: Delay in seconds before the first retry.
        max_delay: Upper bound for any single delay.
        sleep: Sleep function, replaceable in tests.

    Returns:
        The first successful result of ``func``.

    Raises:
        Exception: The error of the last attempt when all attempts fail.
    """
    if retries < 0:
        raise ValueError("retries must be non-negative")

    for attempt in range(retries + 1):
        try:
            return func()
        except Exception as exc:
            if attempt == retries:
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                "Attempt %d/%d failed (%s), retrying in %.1fs",
                attempt + 1,
                retries + 1,
                exc,
                delay,
            )
            sleep(delay)
