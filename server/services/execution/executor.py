"""Workflow executor - walks the graph one node at a time.

Implements:
- Single entry point from the root (trigger) node
- Pending -> success/failed step lifecycle with in-place replacement
- Left-merge of each step's output into the run context
- Runtime branching on CONDITION results via labelled edges
- Full run snapshots pushed to an observer after every mutation
"""

import time
from typing import Any, Callable, Dict, List, Optional, Sequence, TYPE_CHECKING

from constants import BRANCH_FALLBACK_PREFIX, DEFAULT_TRIGGER_PAYLOAD, ERROR_PREFIX
from core.logging import get_logger, log_execution_time, run_log_context
from models.workflow import (
    EdgeInput,
    NodeInput,
    NodeType,
    WorkflowEdge,
    WorkflowNode,
    parse_graph,
)
from .conditions import select_branch_edge
from .exceptions import StepExecutionError
from .graph import find_start_node, get_node, outgoing_edges
from .models import (
    RunLog,
    RunStatus,
    RunStep,
    StepResult,
    StepStatus,
    utc_now_iso,
)

if TYPE_CHECKING:
    from services.node_executor import NodeExecutor

logger = get_logger(__name__)

RunObserver = Callable[[RunLog], None]


class WorkflowExecutor:
    """Runs a workflow graph against an input payload.

    Each run awaits every step before moving on; fan-out is not executed in
    parallel. Runs are independent and can execute concurrently on the same
    executor instance.
    """

    def __init__(self, node_executor: "NodeExecutor", strict_start_node: bool = False):
        """Initialize executor.

        Args:
            node_executor: Dispatches a single node (with retry)
            strict_start_node: Fail the run instead of guessing when the
                graph has zero or several root nodes
        """
        self.node_executor = node_executor
        self.strict_start_node = strict_start_node

        # Active executions (in-memory for fast lookup)
        self._active_runs: Dict[str, RunLog] = {}

    # =========================================================================
    # EXECUTION ENTRY POINT
    # =========================================================================

    async def execute_workflow(self, workflow_id: str, workflow_name: str,
                               nodes: Sequence[NodeInput], edges: Sequence[EdgeInput],
                               initial_context: Optional[Dict[str, Any]] = None,
                               on_update: Optional[RunObserver] = None) -> RunLog:
        """Execute a workflow and return its terminal run record.

        Args:
            workflow_id: Workflow identifier
            workflow_name: Display name copied into the run
            nodes: Workflow nodes (models or raw dicts)
            edges: Edges connecting nodes (models or raw dicts)
            initial_context: Trigger payload; defaults to a manual-run marker
            on_update: Called with a full run snapshot after every mutation

        Returns:
            The finished RunLog (status success or failed)
        """
        typed_nodes, typed_edges = parse_graph(nodes, edges)
        context: Dict[str, Any] = dict(
            DEFAULT_TRIGGER_PAYLOAD if initial_context is None else initial_context
        )

        run = RunLog.create(workflow_id, workflow_name)
        started = time.time()
        self._active_runs[run.id] = run

        try:
            with run_log_context(run.id, workflow_id):
                logger.info("Starting workflow execution", node_count=len(typed_nodes))
                try:
                    return await self._drive(run, typed_nodes, typed_edges, context,
                                             on_update, started)
                except Exception as e:
                    # Anything outside a step's own failure path still ends the run
                    logger.exception("Workflow execution aborted", error=str(e))
                    self._abort(run, e, started, on_update)
                    return run
        finally:
            self._active_runs.pop(run.id, None)

    async def _drive(self, run: RunLog, nodes: List[WorkflowNode], edges: List[WorkflowEdge],
                     context: Dict[str, Any], on_update: Optional[RunObserver],
                     started: float) -> RunLog:
        """Walk from the start node until there is no successor or a step fails."""
        self._notify(on_update, run)

        current = self._select_start_node(run, nodes, edges)
        if current is None and run.error:
            run.finish(RunStatus.FAILED, time.time() - started, error=run.error)
            self._notify(on_update, run)
            return run

        while current is not None:
            step = RunStep.pending(current.id, current.display_name, context)
            run.append_step(step)
            self._notify(on_update, run)

            try:
                result = await self.node_executor.execute(current, context)
            except StepExecutionError as e:
                self._fail_step(run, step, e)
                run.finish(RunStatus.FAILED, time.time() - started, error=e.message)
                logger.error("Workflow execution failed", node_id=current.id, error=e.message)
                self._notify(on_update, run)
                return run

            next_node, branch_logs = self._decide_next(current, result, nodes, edges)
            self._complete_step(run, step, result, branch_logs)
            context = {**context, **result.output}
            self._notify(on_update, run)

            current = next_node

        run.finish(RunStatus.SUCCESS, time.time() - started)
        log_execution_time(logger, "workflow_run", started, time.time(),
                           steps=len(run.steps), status=run.status.value)
        self._notify(on_update, run)
        return run

    def get_active_runs(self) -> List[str]:
        """Ids of runs currently executing on this executor."""
        return list(self._active_runs)

    # =========================================================================
    # STEP LIFECYCLE
    # =========================================================================

    def _complete_step(self, run: RunLog, step: RunStep, result: StepResult,
                       extra_logs: List[str]) -> None:
        run.replace_step(RunStep(
            id=step.id,
            node_id=step.node_id,
            node_label=step.node_label,
            status=StepStatus.SUCCESS,
            start_time=step.start_time,
            end_time=utc_now_iso(),
            duration=result.duration,
            input=step.input,
            output=dict(result.output),
            logs=list(result.logs) + extra_logs,
        ))

    def _fail_step(self, run: RunLog, step: RunStep, error: StepExecutionError) -> None:
        run.replace_step(RunStep(
            id=step.id,
            node_id=step.node_id,
            node_label=step.node_label,
            status=StepStatus.FAILED,
            start_time=step.start_time,
            end_time=utc_now_iso(),
            duration=error.duration,
            input=step.input,
            output={},
            logs=list(error.logs) + [f"{ERROR_PREFIX} {error.message}"],
        ))

    def _abort(self, run: RunLog, error: Exception, started: float,
               on_update: Optional[RunObserver]) -> None:
        """Fail any pending step and the run after an orchestrator-level error."""
        message = f"Internal error: {error}" if str(error) else f"Internal error: {type(error).__name__}"
        for step in list(run.steps):
            if step.status == StepStatus.PENDING:
                run.replace_step(RunStep(
                    id=step.id,
                    node_id=step.node_id,
                    node_label=step.node_label,
                    status=StepStatus.FAILED,
                    start_time=step.start_time,
                    end_time=utc_now_iso(),
                    input=step.input,
                    output={},
                    logs=list(step.logs) + [f"{ERROR_PREFIX} {message}"],
                ))
        if not run.is_terminal:
            run.finish(RunStatus.FAILED, time.time() - started, error=message)
        self._notify(on_update, run)

    # =========================================================================
    # TRAVERSAL
    # =========================================================================

    def _select_start_node(self, run: RunLog, nodes: List[WorkflowNode],
                           edges: List[WorkflowEdge]) -> Optional[WorkflowNode]:
        start, roots = find_start_node(nodes, edges)
        if start is None or len(roots) == 1:
            return start

        message = (
            f"Ambiguous start node: {len(roots)} nodes have no incoming edge"
            if roots else "No start node: every node has an incoming edge"
        )
        if self.strict_start_node:
            logger.error("Refusing to guess start node", run_id=run.id,
                         roots=[n.id for n in roots])
            run.error = message
            return None

        logger.warning("Falling back to first candidate start node",
                       run_id=run.id, reason=message, start_node=start.id)
        return start

    def _decide_next(self, node: WorkflowNode, result: StepResult,
                     nodes: List[WorkflowNode], edges: List[WorkflowEdge]):
        """Pick the successor of ``node``.

        Returns:
            (next_node or None, extra log lines for the completed step)
        """
        extra_logs: List[str] = []

        if node.type == NodeType.CONDITION:
            condition_result = bool(result.output.get("conditionResult"))
            edge, is_fallback = select_branch_edge(edges, node.id, condition_result)
            if is_fallback:
                extra_logs.append(
                    f"{BRANCH_FALLBACK_PREFIX} no edge labelled "
                    f"'{str(condition_result).lower()}', following edge {edge.id}"
                )
        else:
            candidates = outgoing_edges(edges, node.id)
            edge = candidates[0] if candidates else None

        if edge is None:
            return None, extra_logs

        next_node = get_node(nodes, edge.target)
        if next_node is None:
            logger.warning("Edge points at unknown node, ending traversal",
                           edge_id=edge.id, target=edge.target)
        return next_node, extra_logs

    # =========================================================================
    # OBSERVER
    # =========================================================================

    def _notify(self, on_update: Optional[RunObserver], run: RunLog) -> None:
        """Push a full snapshot to the observer, in mutation order."""
        if on_update is None:
            return
        try:
            on_update(run.snapshot())
        except Exception as e:
            logger.warning("Run observer failed", run_id=run.id, error=str(e))
