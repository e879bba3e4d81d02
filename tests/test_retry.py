"""Tests for the retry policy."""

from unittest.mock import AsyncMock, patch

import pytest

from crawl_rag.retry import RetryPolicy


def test_delays_double():
    assert RetryPolicy(max_attempts=4, base_delay=1.0).delays() == [1.0, 2.0, 4.0]
    assert RetryPolicy(max_attempts=1).delays() == []


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


async def test_succeeds_after_transient_failures():
    operation = AsyncMock(side_effect=[RuntimeError("one"), RuntimeError("two"), "done"])

    with patch("crawl_rag.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        result = await RetryPolicy(max_attempts=3, base_delay=0.5).run(operation)

    assert result == "done"
    assert operation.await_count == 3
    assert [call.args[0] for call in sleep.await_args_list] == [0.5, 1.0]


async def test_reraises_last_error_when_exhausted():
    operation = AsyncMock(side_effect=[RuntimeError("first"), RuntimeError("last")])

    with patch("crawl_rag.retry.asyncio.sleep", new=AsyncMock()):
        with pytest.raises(RuntimeError, match="last"):
            await RetryPolicy(max_attempts=2).run(operation)

    assert operation.await_count == 2


async def test_single_attempt_does_not_sleep():
    operation = AsyncMock(side_effect=RuntimeError("nope"))

    with patch("crawl_rag.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        with pytest.raises(RuntimeError):
            await RetryPolicy(max_attempts=1).run(operation)

    sleep.assert_not_awaited()
