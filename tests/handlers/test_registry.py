"""
Unit tests for the service handler registry
"""

import pytest

from constants import DEFAULT_SERVICE_KEYS
from models.workflow import NodeType
from services.execution import FatalStepError, HandlerContractError
from services.handlers import (
    HandlerRegistry,
    HandlerResult,
    coerce_handler_result,
    create_default_registry,
)


async def noop(parameters, context):
    return None


def test_default_registry_covers_builtin_services():
    registry = create_default_registry()
    assert registry.services() == sorted(DEFAULT_SERVICE_KEYS)


def test_lookup_is_case_insensitive():
    registry = HandlerRegistry()
    registry.register("Slack", noop)

    assert registry.get("SLACK") is noop
    assert registry.has(" slack ")


def test_register_replaces_existing_handler():
    async def other(parameters, context):
        return None

    registry = HandlerRegistry()
    registry.register("crm", noop)
    registry.register("crm", other)

    assert registry.get("crm") is other
    assert len(registry) == 1


def test_register_rejects_empty_key():
    with pytest.raises(ValueError):
        HandlerRegistry().register("  ", noop)


def test_unregister():
    registry = HandlerRegistry()
    registry.register("crm", noop)

    assert registry.unregister("crm") is True
    assert registry.unregister("crm") is False
    assert registry.get("crm") is None


def test_coerce_handler_result_variants():
    result = HandlerResult(output={"a": 1})
    assert coerce_handler_result(result) is result
    assert coerce_handler_result(None) == HandlerResult()
    assert coerce_handler_result({"output": {"a": 1}, "logs": ["x"]}) == HandlerResult({"a": 1}, ["x"])
    assert coerce_handler_result({"output": 5}) == HandlerResult({"result": 5}, [])


def test_coerce_handler_result_rejects_other_types():
    with pytest.raises(HandlerContractError) as exc_info:
        coerce_handler_result("done")
    assert isinstance(exc_info.value, FatalStepError)


def test_handler_limited_to_node_types():
    registry = HandlerRegistry()
    registry.register("gmail", noop, node_types=[NodeType.ACTION])

    assert registry.get("gmail", NodeType.ACTION) is noop
    assert registry.get("gmail", "action") is noop
    assert registry.get("gmail", NodeType.TRIGGER) is None
    assert registry.get("gmail") is noop
    assert registry.has("gmail")


def test_default_gmail_handler_only_sends_for_actions():
    registry = create_default_registry()

    assert registry.get("gmail", NodeType.ACTION) is not None
    assert registry.get("gmail", NodeType.TRIGGER) is None
    assert registry.get("slack", NodeType.TRIGGER) is not None
