"""Time limits for blocking in-process library calls."""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TypeVar

from paggo_ocr.exceptions import ExtractionTimeoutError

T = TypeVar("T")


def call_with_timeout(func: Callable[[], T], timeout: float, description: str) -> T:
    """Run ``func`` on a helper thread and wait at most ``timeout`` seconds.

    The helper thread cannot be killed; on timeout it is abandoned and
    finishes in the background, so ``func`` must release its own resources.

    Args:
        func: Zero-argument callable to run.
        timeout: Maximum number of seconds to wait.
        description: Human-readable name of the call for the error message.

    Returns:
        Whatever ``func`` returns.

    Raises:
        ExtractionTimeoutError: If ``func`` did not finish in time.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="extraction")
    future = executor.submit(func)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as exc:
        raise ExtractionTimeoutError(
            f"{description} timed out after {timeout:g}s"
        ) from exc
    finally:
        executor.shutdown(wait=False)
