"""Unit tests for text-generation retry logic"""
import pytest
import httpx
from unittest.mock import AsyncMock, patch

from journal_coach.resilience.retry import (
    retry_with_backoff,
    with_retry,
    is_retryable_error,
    calculate_backoff,
    MAX_DELAY,
    MAX_RETRIES,
)


@pytest.fixture(autouse=True)
def no_sleep():
    """Skip real backoff delays"""
    with patch("journal_coach.resilience.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class APITimeoutError(Exception):
    """Same class name as the OpenAI SDK timeout error"""


def test_is_retryable_error_timeout():
    assert is_retryable_error(httpx.TimeoutException("Timeout")) is True
    assert is_retryable_error(httpx.ReadTimeout("Read timeout")) is True


def test_is_retryable_error_http_status():
    """Test that 429 and 5xx are retried, other 4xx are not"""
    for code in [429, 500, 502, 503, 504]:
        error = httpx.HTTPStatusError("Error", request=None, response=httpx.Response(code))
        assert is_retryable_error(error) is True, f"HTTP {code} should be retryable"

    for code in [400, 401, 403, 404, 422]:
        error = httpx.HTTPStatusError("Error", request=None, response=httpx.Response(code))
        assert is_retryable_error(error) is False, f"HTTP {code} should not be retryable"


def test_is_retryable_error_sdk_class_names():
    assert is_retryable_error(APITimeoutError("slow")) is True
    assert is_retryable_error(ValueError("Bad value")) is False
    assert is_retryable_error(KeyError("Missing key")) is False


def test_calculate_backoff():
    """Test exponential growth within 10% jitter"""
    assert 0.9 <= calculate_backoff(0) <= 1.1
    assert 1.8 <= calculate_backoff(1) <= 2.2
    assert 3.6 <= calculate_backoff(2) <= 4.4


def test_calculate_backoff_max_delay():
    assert calculate_backoff(20) <= MAX_DELAY * 1.1


@pytest.mark.asyncio
async def test_retry_success_first_try():
    call_count = 0

    async def successful_function():
        nonlocal call_count
        call_count += 1
        return "success"

    assert await retry_with_backoff(successful_function, max_retries=3) == "success"
    assert call_count == 1


@pytest.mark.asyncio
async def test_retry_success_after_retries(no_sleep):
    attempt = 0

    async def flaky_function():
        nonlocal attempt
        attempt += 1
        if attempt < 3:
            raise httpx.TimeoutException("Simulated timeout")
        return "success"

    assert await retry_with_backoff(flaky_function, max_retries=3) == "success"
    assert attempt == 3
    assert no_sleep.await_count == 2


@pytest.mark.asyncio
async def test_retry_exhausted():
    """Test initial call plus max_retries attempts, then the last error"""
    attempt = 0

    async def always_fails():
        nonlocal attempt
        attempt += 1
        raise httpx.TimeoutException("Always fails")

    with pytest.raises(httpx.TimeoutException, match="Always fails"):
        await retry_with_backoff(always_fails, max_retries=3)

    assert attempt == 4


@pytest.mark.asyncio
async def test_retry_non_retryable_error():
    attempt = 0

    async def non_retryable_function():
        nonlocal attempt
        attempt += 1
        raise ValueError("Non-retryable error")

    with pytest.raises(ValueError, match="Non-retryable error"):
        await retry_with_backoff(non_retryable_function, max_retries=3)

    assert attempt == 1


@pytest.mark.asyncio
async def test_with_retry_decorator_exhausted():
    attempt = 0

    @with_retry(max_retries=2)
    async def always_fails():
        nonlocal attempt
        attempt += 1
        raise httpx.TimeoutException("Always fails")

    with pytest.raises(httpx.TimeoutException):
        await always_fails()

    assert attempt == 3


@pytest.mark.asyncio
async def test_retry_preserves_function_args():
    async def function_with_args(x, y, z=10):
        return x + y + z

    assert await retry_with_backoff(function_with_args, 5, 3, z=7, max_retries=2) == 15


def test_default_max_retries():
    assert MAX_RETRIES == 2
