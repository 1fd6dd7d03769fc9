"""Retry utility with exponential backoff for final transcription calls.

Final-priority recognition calls are not retried unless the caller opts in
by building RecognitionClient with final_retries, which decorates the final
call with retry_with_backoff.
Backend failures carrying a 4xx status (other than 429) are permanent and
are not retried.
"""

import asyncio
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from live_transcription.utils.errors import RecognitionError

logger = logging.getLogger(__name__)


def is_transient(exc: Exception) -> bool:
    """Classify a recognition failure as worth retrying."""
    status_code = getattr(exc, "status_code", None)
    if status_code is None:
        return True
    return status_code == 429 or status_code >= 500


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    retryable_exceptions: tuple[type[Exception], ...] = (RecognitionError,),
) -> Callable:
    """Decorator for retrying async functions with exponential backoff.

    Delay follows the formula: base_delay * 2^attempt

    Args:
        max_retries: Maximum number of retry attempts (default 3).
        base_delay: Base delay in seconds before first retry (default 1.0).
        retryable_exceptions: Exception types eligible for retry. Anything
            else, or a permanent backend status, is re-raised immediately
            with _retry_count attached.

    Returns:
        Decorator that wraps an async function with retry logic.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as exc:
                    permanent = not isinstance(
                        exc, retryable_exceptions
                    ) or not is_transient(exc)
                    if permanent or attempt == max_retries:
                        exc._retry_count = attempt  # type: ignore[attr-defined]
                        raise
                    delay = base_delay * (2**attempt)
                    logger.warning(
                        "Retry %d/%d for %s after %.1fs: %s",
                        attempt + 1,
                        max_retries,
                        func.__name__,
                        delay,
                        exc,
                    )
                    await asyncio.sleep(delay)
            raise AssertionError("unreachable")

        return wrapper

    return decorator
