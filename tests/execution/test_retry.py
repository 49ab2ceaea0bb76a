"""
Unit tests for the retry wrapper and backoff policy
"""

import pytest
from unittest.mock import AsyncMock

from constants import RETRY_WARNING_PREFIX
from services.execution import (
    RetriesExhausted,
    RetryPolicy,
    ScriptExecutionError,
    TransientActionError,
    run_with_retry,
)


def test_backoff_doubles_from_one_second():
    policy = RetryPolicy()
    assert [policy.calculate_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]


def test_backoff_is_capped():
    policy = RetryPolicy(initial_delay=10.0, max_delay=15.0)
    assert policy.calculate_delay(3) == 15.0


def test_policy_round_trips_through_dict():
    policy = RetryPolicy(max_attempts=5, initial_delay=0.5)
    assert RetryPolicy.from_dict(policy.to_dict()) == policy


@pytest.mark.asyncio
async def test_success_on_first_attempt_logs_nothing(sleep_recorder):
    logs = []
    action = AsyncMock(return_value="ok")

    assert await run_with_retry(action, RetryPolicy(), logs, sleep=sleep_recorder) == "ok"
    assert logs == []
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_retries_then_succeeds(sleep_recorder):
    logs = []
    action = AsyncMock(side_effect=[TransientActionError("slack", "rate limited"),
                                    ConnectionError("reset"), "ok"])

    result = await run_with_retry(action, RetryPolicy(), logs, sleep=sleep_recorder)

    assert result == "ok"
    assert action.await_count == 3
    assert len([line for line in logs if line.startswith(RETRY_WARNING_PREFIX)]) == 2
    assert sleep_recorder.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_exhaustion_stops_after_max_attempts(sleep_recorder):
    logs = []
    action = AsyncMock(side_effect=TransientActionError("slack", "rate limited"))

    with pytest.raises(RetriesExhausted) as exc_info:
        await run_with_retry(action, RetryPolicy(), logs, sleep=sleep_recorder)

    assert action.await_count == 3
    assert exc_info.value.attempts == 3
    assert "rate limited" in str(exc_info.value)
    assert sleep_recorder.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_fatal_errors_are_not_retried(sleep_recorder):
    logs = []
    action = AsyncMock(side_effect=ScriptExecutionError("NameError: x"))

    with pytest.raises(ScriptExecutionError):
        await run_with_retry(action, RetryPolicy(), logs, sleep=sleep_recorder)

    assert action.await_count == 1
    assert logs == []
    assert sleep_recorder.delays == []
