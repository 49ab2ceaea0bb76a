"""Node Executor - Single node execution with handler dispatch.

Uses a registry pattern for clean handler dispatch without if-else chains:
CONDITION and SCRIPT nodes are evaluated by the engine itself, every other
node kind is routed to the service handler registry by ``node.service``.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from constants import (
    EVENT_TASK_COMPLETED,
    EVENT_TASK_SCHEDULED,
    EVENT_TASK_STARTED,
)
from core.logging import get_logger
from models.nodes import validate_node_params
from models.workflow import NodeType, WorkflowNode
from services.execution.conditions import evaluate_condition
from services.execution.exceptions import (
    FatalStepError,
    NodeConfigError,
    StepExecutionError,
)
from services.execution.models import RetryPolicy, StepResult, format_duration
from services.execution.retry import RetriesExhausted, SleepFn, run_with_retry
from services.handlers.code import ScriptSandbox
from services.handlers.registry import HandlerRegistry, HandlerResult, coerce_handler_result
from services.parameter_resolver import ParameterResolver

logger = get_logger(__name__)

NodeAction = Callable[[WorkflowNode, Dict[str, Any], Dict[str, Any]], Awaitable[HandlerResult]]


class NodeExecutor:
    """Executes individual workflow nodes using registry-based dispatch."""

    def __init__(
        self,
        registry: HandlerRegistry,
        sandbox: Optional[ScriptSandbox] = None,
        retry_policy: Optional[RetryPolicy] = None,
        resolver: Optional[ParameterResolver] = None,
        schedule_delay: float = 0.0,
        sleep: Optional[SleepFn] = None,
    ):
        self.registry = registry
        self.sandbox = sandbox or ScriptSandbox()
        self.retry_policy = retry_policy or RetryPolicy()
        self.resolver = resolver or ParameterResolver()
        self.schedule_delay = schedule_delay
        self._sleep = sleep or asyncio.sleep
        self._type_handlers = self._build_type_registry()

    def _build_type_registry(self) -> Dict[NodeType, NodeAction]:
        """Node kinds the engine evaluates itself instead of a service handler."""
        return {
            NodeType.CONDITION: self._run_condition,
            NodeType.SCRIPT: self._run_script,
        }

    async def execute(self, node: WorkflowNode, context: Dict[str, Any]) -> StepResult:
        """Execute a single workflow node.

        Args:
            node: The node to run
            context: Accumulated run context (read only)

        Returns:
            StepResult with output delta, audit log and duration

        Raises:
            StepExecutionError: Terminal failure (fatal error or retries exhausted)
        """
        start_time = time.time()
        logs: List[str] = []
        attempts = 0

        try:
            config = self.resolver.resolve(node.config, context, node_id=node.id)

            logs.append(f"{EVENT_TASK_SCHEDULED} ({node.service}.{node.type.value})")
            if self.schedule_delay > 0:
                await self._sleep(self.schedule_delay)
            logs.append(EVENT_TASK_STARTED)

            action = self._type_handlers.get(node.type, self._run_service)

            async def attempt() -> HandlerResult:
                nonlocal attempts
                attempts += 1
                return await action(node, config, context)

            result = await run_with_retry(attempt, self.retry_policy, logs,
                                          node_id=node.id, sleep=self._sleep)

        except asyncio.CancelledError:
            raise
        except RetriesExhausted as e:
            raise self._step_error(node, e.last_error, logs, e.attempts, start_time) from e.last_error
        except Exception as e:
            raise self._step_error(node, e, logs, max(attempts, 1), start_time) from e

        logs.extend(result.logs)
        logs.append(EVENT_TASK_COMPLETED)
        duration = format_duration(time.time() - start_time)

        logger.info("Node completed", node_id=node.id, service=node.service,
                    attempts=attempts, duration=duration)
        return StepResult(output=dict(result.output), logs=logs,
                          duration=duration, attempts=attempts)

    def _step_error(self, node: WorkflowNode, error: BaseException, logs: List[str],
                    attempts: int, start_time: float) -> StepExecutionError:
        message = str(error) or type(error).__name__
        logger.error("Node failed", node_id=node.id, service=node.service,
                     attempts=attempts, fatal=isinstance(error, FatalStepError),
                     error=message)
        return StepExecutionError(
            node_id=node.id,
            message=message,
            logs=logs,
            attempts=attempts,
            duration=format_duration(time.time() - start_time),
            cause=error,
        )

    # =========================================================================
    # NODE KINDS
    # =========================================================================

    async def _run_service(self, node: WorkflowNode, config: Dict[str, Any],
                           context: Dict[str, Any]) -> HandlerResult:
        """Delegate to the handler registered for ``node.service``."""
        handler = self.registry.get(node.service, node.type)
        if handler is None:
            if self.registry.has(node.service):
                # Known service with nothing to do for this node type
                return HandlerResult()
            # Forward compatible: unknown services are a no-op, not an error
            return HandlerResult(logs=[f"Executing generic handler for {node.service}..."])

        try:
            raw = await handler(config, context)
        except ValidationError as e:
            raise NodeConfigError(node.display_name, _summarise(e)) from e
        return coerce_handler_result(raw)

    async def _run_condition(self, node: WorkflowNode, config: Dict[str, Any],
                             context: Dict[str, Any]) -> HandlerResult:
        try:
            params = validate_node_params("condition", config)
        except ValidationError as e:
            raise NodeConfigError(node.display_name, _summarise(e)) from e

        result, expression = evaluate_condition(params, context)
        return HandlerResult(
            output={"conditionResult": result},
            logs=[f"Evaluating: {expression}", f"Condition result: {str(result).lower()}"],
        )

    async def _run_script(self, node: WorkflowNode, config: Dict[str, Any],
                          context: Dict[str, Any]) -> HandlerResult:
        try:
            params = validate_node_params("script", config)
        except ValidationError as e:
            raise NodeConfigError(node.display_name, _summarise(e)) from e

        value = await self.sandbox.run(params.code, context, timeout=params.timeout)

        if isinstance(value, dict):
            output = value
        else:
            output = {"result": value}
        return HandlerResult(output=output, logs=["Script executed in sandbox"])


def _summarise(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ()) if p != "kind")
        parts.append(f"{location}: {item.get('msg')}" if location else item.get("msg", ""))
    return "; ".join(parts) or str(error)
