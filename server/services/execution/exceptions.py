"""Workflow engine exception hierarchy."""

from typing import List, Optional


class WorkflowEngineError(Exception):
    """Base exception for all engine errors."""


class TransientActionError(WorkflowEngineError):
    """Retryable handler failure (rate limit, network blip, 5xx)."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"[{service}] {message}")


class FatalStepError(WorkflowEngineError):
    """Step failure that must not be retried."""


class ScriptExecutionError(FatalStepError):
    """User script raised, timed out or returned something unreadable."""


class NodeConfigError(FatalStepError):
    """Node config could not be parsed into its typed view."""

    def __init__(self, node_label: str, message: str):
        self.node_label = node_label
        super().__init__(f"Invalid config for '{node_label}': {message}")


class HandlerContractError(FatalStepError):
    """Handler returned something other than a HandlerResult, mapping or None."""


class StepExecutionError(WorkflowEngineError):
    """Terminal step failure surfaced by the node executor.

    Carries the audit log collected before the failure so the failed step
    can still show it.
    """

    def __init__(self, node_id: str, message: str, logs: Optional[List[str]] = None,
                 attempts: int = 1, duration: str = "0.00s",
                 cause: Optional[BaseException] = None):
        self.node_id = node_id
        self.message = message
        self.logs = list(logs or [])
        self.attempts = attempts
        self.duration = duration
        self.cause = cause
        super().__init__(message)


class WorkflowValidationError(WorkflowEngineError):
    """Workflow graph failed structural validation."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Workflow is invalid")
