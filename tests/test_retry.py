from unittest.mock import AsyncMock

import pytest

from utils import retry as retry_module
from utils.errors import ExternalServiceError, LLMResponseError
from utils.retry import retry_async


@pytest.fixture
def sleep(monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr(retry_module.asyncio, "sleep", mock)
    return mock


@pytest.mark.asyncio
async def test_returns_first_success(sleep):
    operation = AsyncMock(side_effect=[ExternalServiceError("svc", "down"), "ok"])

    assert await retry_async(operation, max_retries=3, base_delay=1.0) == "ok"
    assert operation.await_count == 2
    sleep.assert_awaited_once_with(1.0)


@pytest.mark.asyncio
async def test_exponential_backoff_then_reraise(sleep):
    operation = AsyncMock(side_effect=ExternalServiceError("svc", "down"))

    with pytest.raises(ExternalServiceError):
        await retry_async(operation, max_retries=3, base_delay=2.0)

    assert operation.await_count == 3
    assert [call.args[0] for call in sleep.await_args_list] == [2.0, 4.0]


@pytest.mark.asyncio
async def test_non_retryable_error_propagates_immediately(sleep):
    operation = AsyncMock(side_effect=LLMResponseError("bad"))

    with pytest.raises(LLMResponseError):
        await retry_async(operation, max_retries=5, retry_on=(ExternalServiceError,))

    assert operation.await_count == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        await retry_async(AsyncMock(), max_retries=0)
