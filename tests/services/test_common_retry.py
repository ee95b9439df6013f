"""Test retry utility."""

import pytest

from atelier_catalog.services.common.retry import async_retry_with_backoff, is_retryable
from atelier_catalog.utils.errors import AuthError, NetworkError


@pytest.mark.asyncio
async def test_retry_success_on_second_attempt():
    """Test that retry succeeds after one transient failure."""
    attempt_count = 0

    async def flaky_function():
        nonlocal attempt_count
        attempt_count += 1
        if attempt_count < 2:
            raise NetworkError("Temporary failure", status_code=502)
        return "success"

    result = await async_retry_with_backoff(
        flaky_function,
        max_retries=3,
        base_delay=0.01,
    )
    assert result == "success"
    assert attempt_count == 2


@pytest.mark.asyncio
async def test_retry_fails_after_max_attempts():
    """Test that retry gives up after max attempts."""
    attempt_count = 0

    async def always_fail_function():
        nonlocal attempt_count
        attempt_count += 1
        raise NetworkError("Permanent failure")

    with pytest.raises(NetworkError, match="Permanent failure"):
        await async_retry_with_backoff(
            always_fail_function,
            max_retries=2,
            base_delay=0.01,
        )
    assert attempt_count == 2


@pytest.mark.asyncio
async def test_non_retryable_errors_propagate_immediately():
    attempt_count = 0

    async def unauthorized():
        nonlocal attempt_count
        attempt_count += 1
        raise AuthError("Bad credentials")

    with pytest.raises(AuthError):
        await async_retry_with_backoff(unauthorized, max_retries=5, base_delay=0.01)
    assert attempt_count == 1


def test_is_retryable():
    assert is_retryable(NetworkError("timeout"))
    assert is_retryable(NetworkError("rate limited", status_code=429))
    assert not is_retryable(NetworkError("unprocessable", status_code=422))
    assert not is_retryable(ValueError("nope"))


@pytest.mark.asyncio
async def test_invalid_max_retries():
    async def noop():
        return None

    with pytest.raises(ValueError):
        await async_retry_with_backoff(noop, max_retries=0)
