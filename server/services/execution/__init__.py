"""Execution engine package.

Single-process workflow execution with:
- Sequential graph walk from the trigger node
- Template resolution against an accumulating context
- Per-node retry with exponential backoff
- Runtime conditional branching on labelled edges
- Incremental run snapshots streamed to an observer
"""

from .models import (
    RunStatus,
    StepStatus,
    RunLog,
    RunStep,
    StepResult,
    RetryPolicy,
    format_duration,
)
from .exceptions import (
    WorkflowEngineError,
    TransientActionError,
    FatalStepError,
    ScriptExecutionError,
    NodeConfigError,
    HandlerContractError,
    StepExecutionError,
    WorkflowValidationError,
)
from .graph import (
    ValidationResult,
    find_upstream,
    has_cycle,
    validate_workflow,
    find_start_node,
    find_root_nodes,
    outgoing_edges,
    get_node,
)
from .conditions import (
    evaluate_condition,
    evaluate_operator,
    select_branch_edge,
)
from .retry import run_with_retry, RetriesExhausted
from .executor import WorkflowExecutor, RunObserver

__all__ = [
    # Models
    "RunStatus",
    "StepStatus",
    "RunLog",
    "RunStep",
    "StepResult",
    "RetryPolicy",
    "format_duration",
    # Exceptions
    "WorkflowEngineError",
    "TransientActionError",
    "FatalStepError",
    "ScriptExecutionError",
    "NodeConfigError",
    "HandlerContractError",
    "StepExecutionError",
    "WorkflowValidationError",
    # Graph
    "ValidationResult",
    "find_upstream",
    "has_cycle",
    "validate_workflow",
    "find_start_node",
    "find_root_nodes",
    "outgoing_edges",
    "get_node",
    # Conditions
    "evaluate_condition",
    "evaluate_operator",
    "select_branch_edge",
    # Retry
    "run_with_retry",
    "RetriesExhausted",
    # Executor
    "WorkflowExecutor",
    "RunObserver",
]
