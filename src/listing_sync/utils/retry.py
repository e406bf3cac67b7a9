"""
Retry Helper

Linear-backoff retry loop shared by the feed client and the upsert sink.
"""
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

T = TypeVar("T")


def call_with_retry(
    func: Callable[[], T],
    attempts: int,
    delay: float,
    retry_on: Tuple[Type[BaseException], ...],
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``func`` until it succeeds or ``attempts`` calls have failed.

    The wait before attempt ``n + 1`` is ``delay * n`` (1x, 2x, 3x, ...).
    No wait happens before the first attempt or after the last one.

    Args:
        func: Zero-argument callable to invoke
        attempts: Total number of calls allowed (at least 1)
        delay: Base delay in seconds
        retry_on: Exception types that trigger a retry; others propagate
        on_retry: Called with (failed attempt number, error) before sleeping
        sleep: Sleep function (injected by tests)

    Returns:
        The first successful result

    Raises:
        The exception from the final attempt
    """
    attempts = max(1, attempts)

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except retry_on as e:
            if attempt == attempts:
                raise
            if on_retry is not None:
                on_retry(attempt, e)
            sleep(delay * attempt)

    raise RuntimeError("unreachable")  # pragma: no cover
