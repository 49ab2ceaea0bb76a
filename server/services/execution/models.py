"""Execution engine state models.

Run and step records are plain dataclasses. ``to_dict`` produces the
camelCase shape the run viewer and the external store consume.
"""

import copy
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from constants import (
    BASE_RETRY_DELAY,
    MAX_RETRIES,
    MAX_RETRY_DELAY,
    RETRY_BACKOFF_MULTIPLIER,
)
from core.logging import get_logger

logger = get_logger(__name__)


class RunStatus(str, Enum):
    """Workflow run states.

    State transitions:
        PENDING -> RUNNING -> SUCCESS
                           -> FAILED
    """
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class StepStatus(str, Enum):
    """Step states. A step is replaced in place when it leaves PENDING."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_duration(seconds: float, precision: int = 2) -> str:
    """Render elapsed seconds the way the run viewer shows them ("1.23s")."""
    return f"{max(seconds, 0.0):.{precision}f}s"


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def copy_context(context: Dict[str, Any]) -> Dict[str, Any]:
    """Deep copy of a context map, value by value.

    Values that can't be deep-copied (clients, locks) are kept by reference
    so one opaque handler output never breaks the run record.
    """
    copied: Dict[str, Any] = {}
    for key, value in context.items():
        try:
            copied[key] = copy.deepcopy(value)
        except Exception as e:
            logger.debug("Context value kept by reference", key=key,
                         value_type=type(value).__name__, error=str(e))
            copied[key] = value
    return copied


@dataclass
class RetryPolicy:
    """Retry configuration for node execution.

    Implements exponential backoff with configurable limits.
    Delay formula: min(initial_delay * (backoff_multiplier ^ (attempt - 1)), max_delay)
    """
    max_attempts: int = MAX_RETRIES
    initial_delay: float = BASE_RETRY_DELAY       # seconds
    max_delay: float = MAX_RETRY_DELAY            # seconds
    backoff_multiplier: float = RETRY_BACKOFF_MULTIPLIER

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay before the attempt after ``attempt``.

        Args:
            attempt: Number of the attempt that just failed (1-indexed)

        Returns:
            Delay in seconds before next attempt
        """
        delay = self.initial_delay * (self.backoff_multiplier ** max(attempt - 1, 0))
        return min(delay, self.max_delay)

    def has_attempts_left(self, attempt: int) -> bool:
        return attempt < self.max_attempts

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "max_attempts": self.max_attempts,
            "initial_delay": self.initial_delay,
            "max_delay": self.max_delay,
            "backoff_multiplier": self.backoff_multiplier,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetryPolicy":
        """Create from dict."""
        return cls(
            max_attempts=data.get("max_attempts", MAX_RETRIES),
            initial_delay=data.get("initial_delay", BASE_RETRY_DELAY),
            max_delay=data.get("max_delay", MAX_RETRY_DELAY),
            backoff_multiplier=data.get("backoff_multiplier", RETRY_BACKOFF_MULTIPLIER),
        )


@dataclass
class StepResult:
    """What the node executor hands back for a successful node."""
    output: Dict[str, Any] = field(default_factory=dict)
    logs: List[str] = field(default_factory=list)
    duration: str = "0.00s"
    attempts: int = 1


@dataclass
class RunStep:
    """Execution record of one node visit."""
    id: str
    node_id: str
    node_label: str
    status: StepStatus = StepStatus.PENDING
    start_time: str = field(default_factory=utc_now_iso)
    end_time: Optional[str] = None
    duration: Optional[str] = None
    input: Dict[str, Any] = field(default_factory=dict)
    output: Dict[str, Any] = field(default_factory=dict)
    logs: List[str] = field(default_factory=list)

    @classmethod
    def pending(cls, node_id: str, node_label: str, context: Dict[str, Any]) -> "RunStep":
        """Create a pending step holding a snapshot of the current context."""
        return cls(
            id=new_id("step"),
            node_id=node_id,
            node_label=node_label,
            input=copy_context(context),
        )

    def snapshot(self) -> "RunStep":
        return replace(self, input=copy_context(self.input),
                       output=copy_context(self.output), logs=list(self.logs))

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "id": self.id,
            "nodeId": self.node_id,
            "nodeLabel": self.node_label,
            "status": self.status.value,
            "startTime": self.start_time,
            "input": self.input,
            "output": self.output,
            "logs": list(self.logs),
        }
        if self.end_time is not None:
            d["endTime"] = self.end_time
        if self.duration is not None:
            d["duration"] = self.duration
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunStep":
        return cls(
            id=data["id"],
            node_id=data["nodeId"],
            node_label=data.get("nodeLabel", ""),
            status=StepStatus(data.get("status", "pending")),
            start_time=data.get("startTime", ""),
            end_time=data.get("endTime"),
            duration=data.get("duration"),
            input=data.get("input", {}),
            output=data.get("output", {}),
            logs=list(data.get("logs", [])),
        )


@dataclass
class RunLog:
    """One end-to-end execution of a workflow graph.

    Steps keep their append order; ``_index`` maps step id to position so a
    pending step can be replaced in place by id.
    """
    id: str
    workflow_id: str
    workflow_name: str
    status: RunStatus = RunStatus.RUNNING
    started_at: str = field(default_factory=utc_now_iso)
    duration: str = "0s"
    steps: List[RunStep] = field(default_factory=list)
    error: Optional[str] = None
    _index: Dict[str, int] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def create(cls, workflow_id: str, workflow_name: str) -> "RunLog":
        return cls(id=new_id("run"), workflow_id=workflow_id, workflow_name=workflow_name)

    @property
    def is_terminal(self) -> bool:
        return self.status in (RunStatus.SUCCESS, RunStatus.FAILED)

    def append_step(self, step: RunStep) -> None:
        if step.id in self._index:
            raise ValueError(f"Step {step.id} already recorded")
        self._index[step.id] = len(self.steps)
        self.steps.append(step)

    def replace_step(self, step: RunStep) -> None:
        """Replace a recorded step (same id) keeping its position."""
        position = self._index.get(step.id)
        if position is None:
            raise KeyError(f"Unknown step {step.id}")
        self.steps[position] = step

    def get_step(self, step_id: str) -> Optional[RunStep]:
        position = self._index.get(step_id)
        return self.steps[position] if position is not None else None

    def finish(self, status: RunStatus, elapsed_seconds: float, error: Optional[str] = None) -> None:
        """Move the run to a terminal state. Only allowed once."""
        if self.is_terminal:
            raise ValueError(f"Run {self.id} already finished with status {self.status.value}")
        self.status = status
        self.duration = format_duration(elapsed_seconds, precision=1)
        self.error = error

    def snapshot(self) -> "RunLog":
        """Copy handed to observers so later mutations don't leak."""
        return replace(self, steps=[step.snapshot() for step in self.steps],
                       _index=dict(self._index))

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "id": self.id,
            "workflowId": self.workflow_id,
            "workflowName": self.workflow_name,
            "status": self.status.value,
            "startedAt": self.started_at,
            "duration": self.duration,
            "steps": [s.to_dict() for s in self.steps],
        }
        if self.error:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunLog":
        run = cls(
            id=data["id"],
            workflow_id=data["workflowId"],
            workflow_name=data.get("workflowName", ""),
            status=RunStatus(data.get("status", "running")),
            started_at=data.get("startedAt", ""),
            duration=data.get("duration", "0s"),
            error=data.get("error"),
        )
        for step_data in data.get("steps", []):
            run.append_step(RunStep.from_dict(step_data))
        return run
