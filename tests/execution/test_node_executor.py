"""
Unit tests for single-node dispatch
"""

import pytest
from unittest.mock import AsyncMock

from constants import (
    EVENT_TASK_COMPLETED,
    EVENT_TASK_SCHEDULED,
    EVENT_TASK_STARTED,
    RETRY_WARNING_PREFIX,
)
from models.workflow import NodeType
from services.execution import RetryPolicy, StepExecutionError, TransientActionError
from services.handlers import HandlerResult
from services.node_executor import NodeExecutor


@pytest.mark.asyncio
async def test_log_envelope_wraps_handler_logs(node_executor, make_node):
    node = make_node("n1", NodeType.ACTION, "gmail", to="{{email}}")

    result = await node_executor.execute(node, {"email": "ops@example.com"})

    assert result.logs[0] == f"{EVENT_TASK_SCHEDULED} (gmail.ACTION)"
    assert result.logs[1] == EVENT_TASK_STARTED
    assert "Email sent to ops@example.com" in result.logs
    assert result.logs[-1] == EVENT_TASK_COMPLETED
    assert result.output["emailTo"] == "ops@example.com"
    assert result.duration.endswith("s")


@pytest.mark.asyncio
async def test_handler_receives_resolved_config_and_context(registry, sandbox, make_node):
    handler = AsyncMock(return_value=HandlerResult(output={"sent": True}, logs=["posted"]))
    registry.register("webhook", handler)
    executor = NodeExecutor(registry, sandbox)
    context = {"user": "ada"}

    result = await executor.execute(make_node("n1", NodeType.ACTION, "webhook", url="/u/{{user}}"), context)

    handler.assert_awaited_once_with({"url": "/u/ada"}, context)
    assert result.output == {"sent": True}
    assert "posted" in result.logs


@pytest.mark.asyncio
async def test_dict_results_are_accepted(registry, sandbox, make_node):
    registry.register("crm", AsyncMock(return_value={"output": {"contactId": 9}, "logs": ["created"]}))

    result = await NodeExecutor(registry, sandbox).execute(make_node("n1", service="crm"), {})

    assert result.output == {"contactId": 9}
    assert "created" in result.logs


@pytest.mark.asyncio
async def test_unknown_service_is_a_logged_no_op(node_executor, make_node):
    result = await node_executor.execute(make_node("n1", service="notion"), {})

    assert result.output == {}
    assert "Executing generic handler for notion..." in result.logs


@pytest.mark.asyncio
async def test_condition_node_output(node_executor, make_node):
    node = make_node("c", NodeType.CONDITION, "system", variable="totalValue", operator=">", threshold=100)

    result = await node_executor.execute(node, {"totalValue": 150})

    assert result.output == {"conditionResult": True}
    assert "Evaluating: totalValue (150) > 100" in result.logs
    assert "Condition result: true" in result.logs


@pytest.mark.asyncio
async def test_condition_threshold_can_be_templated(node_executor, make_node):
    node = make_node("c", NodeType.CONDITION, "system", variable="spend", operator="<", threshold="{{budget}}")

    result = await node_executor.execute(node, {"spend": 40, "budget": 50})

    assert result.output == {"conditionResult": True}


@pytest.mark.asyncio
async def test_invalid_condition_config_fails_without_retry(registry, sandbox, sleep_recorder, make_node):
    executor = NodeExecutor(registry, sandbox, sleep=sleep_recorder)
    node = make_node("c", NodeType.CONDITION, "system", label="Broken Check", operator=">")

    with pytest.raises(StepExecutionError) as exc_info:
        await executor.execute(node, {})

    assert "Invalid config for 'Broken Check'" in exc_info.value.message
    assert exc_info.value.attempts == 1
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_retry_delays_follow_backoff(registry, sandbox, sleep_recorder, make_node):
    handler = AsyncMock(side_effect=TransientActionError("slack", "429 Too Many Requests"))
    registry.register("slack", handler)
    executor = NodeExecutor(registry, sandbox, retry_policy=RetryPolicy(), sleep=sleep_recorder)

    with pytest.raises(StepExecutionError) as exc_info:
        await executor.execute(make_node("s", service="slack"), {})

    assert handler.await_count == 3
    assert sleep_recorder.delays == [1.0, 2.0]
    error = exc_info.value
    assert error.attempts == 3
    assert "429 Too Many Requests" in error.message
    assert len([line for line in error.logs if line.startswith(RETRY_WARNING_PREFIX)]) == 2
    assert error.logs[0].startswith(EVENT_TASK_SCHEDULED)


@pytest.mark.asyncio
async def test_schedule_delay_is_awaited(registry, sandbox, sleep_recorder, make_node):
    executor = NodeExecutor(registry, sandbox, schedule_delay=0.25, sleep=sleep_recorder)

    await executor.execute(make_node("n1", service="notion"), {})

    assert sleep_recorder.delays == [0.25]


@pytest.mark.asyncio
async def test_script_scalar_goes_under_result(node_executor, make_node):
    node = make_node("s", NodeType.SCRIPT, "script", code="return input['a'] + input['b']")

    result = await node_executor.execute(node, {"a": 2, "b": 3})

    assert result.output == {"result": 5}


@pytest.mark.asyncio
async def test_script_dict_is_merged_into_output(node_executor, make_node):
    node = make_node("s", NodeType.SCRIPT, "script", code="return {'doubled': input['n'] * 2}")

    result = await node_executor.execute(node, {"n": 21})

    assert result.output == {"doubled": 42}


@pytest.mark.asyncio
async def test_script_error_is_fatal(node_executor, sleep_recorder, make_node):
    node = make_node("s", NodeType.SCRIPT, "script", code="raise ValueError('bad input')")

    with pytest.raises(StepExecutionError) as exc_info:
        await node_executor.execute(node, {})

    assert exc_info.value.attempts == 1
    assert "ValueError: bad input" in exc_info.value.message
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_gmail_trigger_does_not_send(node_executor, make_node):
    node = make_node("t", NodeType.TRIGGER, "gmail", to="ops@example.com")

    result = await node_executor.execute(node, {})

    assert result.output == {}
    assert result.logs == [
        f"{EVENT_TASK_SCHEDULED} (gmail.TRIGGER)",
        EVENT_TASK_STARTED,
        EVENT_TASK_COMPLETED,
    ]


@pytest.mark.asyncio
async def test_unsupported_handler_result_fails_without_retry(registry, sandbox, sleep_recorder,
                                                              make_node):
    handler = AsyncMock(return_value="done")
    registry.register("crm", handler)
    executor = NodeExecutor(registry, sandbox, sleep=sleep_recorder)

    with pytest.raises(StepExecutionError) as exc_info:
        await executor.execute(make_node("n1", service="crm"), {})

    assert handler.await_count == 1
    assert exc_info.value.attempts == 1
    assert "unsupported result type: str" in exc_info.value.message
    assert sleep_recorder.delays == []
    assert not any(line.startswith(RETRY_WARNING_PREFIX) for line in exc_info.value.logs)
