"""
Shared fixtures for workflow engine tests
"""

import pytest

from models.workflow import NodeType, WorkflowEdge, WorkflowNode
from services.execution import RetryPolicy, WorkflowExecutor
from services.handlers import ScriptSandbox, create_default_registry
from services.node_executor import NodeExecutor


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def make_node():
    """Factory for WorkflowNode with sensible defaults"""
    def _make(node_id, node_type=NodeType.ACTION, service="system", label=None, **config):
        return WorkflowNode(
            id=node_id,
            type=node_type,
            service=service,
            label=label or f"Node {node_id}",
            config=config,
        )
    return _make


@pytest.fixture
def make_edge():
    """Factory for WorkflowEdge; id derived from endpoints"""
    def _make(source, target, label=None):
        return WorkflowEdge(id=f"e-{source}-{target}", source=source, target=target, label=label)
    return _make


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def fast_policy():
    """Default attempt budget with no real waiting"""
    return RetryPolicy(max_attempts=3, initial_delay=0.0)


@pytest.fixture
def registry():
    return create_default_registry()


@pytest.fixture
def sandbox():
    return ScriptSandbox(timeout=10.0)


@pytest.fixture
def node_executor(registry, sandbox, sleep_recorder):
    """NodeExecutor with default retry policy and a recording sleep"""
    return NodeExecutor(registry=registry, sandbox=sandbox, sleep=sleep_recorder)


@pytest.fixture
def executor(node_executor):
    return WorkflowExecutor(node_executor)


@pytest.fixture
def high_value_router(make_node, make_edge):
    """Trigger -> Condition(totalValue > 100) -> {true: slack alert, false: sheets log}"""
    nodes = [
        make_node("1", NodeType.TRIGGER, "shopify", "New Order"),
        make_node("2", NodeType.CONDITION, "system", "Value > $100",
                  variable="totalValue", operator=">", threshold=100),
        make_node("3", NodeType.ACTION, "slack", "Alert VIP Channel", channel="#vip-orders"),
        make_node("4", NodeType.ACTION, "sheets", "Log Standard Order"),
    ]
    edges = [
        make_edge("1", "2"),
        make_edge("2", "3", "true"),
        make_edge("2", "4", "false"),
    ]
    return nodes, edges
