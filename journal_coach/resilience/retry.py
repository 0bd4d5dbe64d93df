"""Backoff retries for the text-generation API

Only the text service is retried here. Store calls are not: a
StoreUnavailableError goes straight back to the caller.
"""

import asyncio
import random
import logging
from typing import Callable, Any, TypeVar
from functools import wraps
import httpx

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRIES = 2
BASE_DELAY = 1.0  # seconds
MAX_DELAY = 10.0  # seconds
JITTER = 0.1  # +/- fraction of the delay

# Transient OpenAI SDK errors, matched by class name
RETRYABLE_API_ERRORS = {"RateLimitError", "APITimeoutError", "APIConnectionError", "InternalServerError"}
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def is_retryable_error(exc: Exception) -> bool:
    """
    True for failures worth another attempt: timeouts, connection drops,
    429 and 5xx responses. Bad requests and auth failures are final.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    if isinstance(exc, httpx.TimeoutException):
        return True
    return type(exc).__name__ in RETRYABLE_API_ERRORS


def calculate_backoff(attempt: int) -> float:
    """Seconds to wait before retry number `attempt` (0-based): 1, 2, 4 ... capped at MAX_DELAY"""
    delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY)
    return max(delay + random.uniform(-JITTER * delay, JITTER * delay), 0.0)


async def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any
) -> T:
    """
    Await func(*args, **kwargs), retrying transient errors up to max_retries times.

    Raises:
        The last error once retries run out, or the first non-retryable one
    """
    attempt = 0
    while True:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not is_retryable_error(e):
                logger.warning(f"[RETRY] {func.__name__} failed with non-retryable {type(e).__name__}: {e}")
                raise
            if attempt >= max_retries:
                logger.error(f"[RETRY] {func.__name__} still failing after {max_retries} retries")
                raise

            backoff = calculate_backoff(attempt)
            attempt += 1

            from journal_coach.resilience.metrics import record_retry
            record_retry(func.__name__.lstrip('_'))

            logger.info(
                f"[RETRY] {func.__name__} attempt {attempt}/{max_retries} in {backoff:.2f}s "
                f"after {type(e).__name__}"
            )
            await asyncio.sleep(backoff)


def with_retry(max_retries: int = MAX_RETRIES) -> Callable:
    """Decorator form of retry_with_backoff"""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_with_backoff(func, *args, max_retries=max_retries, **kwargs)
        return wrapper
    return decorator
