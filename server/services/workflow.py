"""Workflow Service - Facade for validation and execution.

This is a thin facade that delegates to specialized modules:
- Graph analysis: validation and upstream variable discovery
- WorkflowExecutor: Sequential orchestration
- Run store: persistence of every run snapshot
"""

from typing import Any, Dict, List, Optional

from core.logging import get_logger
from models.workflow import Workflow, WorkflowNode
from services.execution import (
    RunLog,
    RunObserver,
    ValidationResult,
    WorkflowExecutor,
    WorkflowValidationError,
    find_upstream,
    validate_workflow,
)
from services.parameter_resolver import extract_template_variables
from services.run_store import RunStoreProtocol, store_observer

logger = get_logger(__name__)


class WorkflowService:
    """Validates, runs and records workflows."""

    def __init__(self, executor: WorkflowExecutor, store: RunStoreProtocol):
        self.executor = executor
        self.store = store

    def validate(self, workflow: Workflow) -> ValidationResult:
        return validate_workflow(workflow.nodes, workflow.edges)

    async def run(self, workflow: Workflow,
                  initial_context: Optional[Dict[str, Any]] = None,
                  validate: bool = True,
                  on_update: Optional[RunObserver] = None) -> RunLog:
        """Execute ``workflow`` and persist each run snapshot.

        Args:
            workflow: The workflow definition
            initial_context: Trigger payload
            validate: Refuse to run a structurally invalid graph
            on_update: Extra observer called after the store is updated

        Raises:
            WorkflowValidationError: ``validate`` is set and the graph is invalid
        """
        if validate:
            result = self.validate(workflow)
            if not result.is_valid:
                logger.warning("Workflow failed validation", workflow_id=workflow.id,
                               errors=result.errors)
                raise WorkflowValidationError(result.errors)

        return await self.executor.execute_workflow(
            workflow_id=workflow.id,
            workflow_name=workflow.name,
            nodes=workflow.nodes,
            edges=workflow.edges,
            initial_context=initial_context,
            on_update=store_observer(self.store, on_update),
        )

    def history(self, workflow_id: str) -> List[RunLog]:
        """Stored runs of a workflow, newest first."""
        return self.store.load(workflow_id)

    def upstream_nodes(self, workflow: Workflow, node_id: str) -> List[WorkflowNode]:
        """Nodes whose output can feed ``node_id`` (variable suggestion in the editor)."""
        return find_upstream(workflow.nodes, workflow.edges, node_id)

    def template_variables(self, workflow: Workflow, node_id: str) -> List[str]:
        """``{{variable}}`` names a node's config references."""
        node = next((n for n in workflow.nodes if n.id == node_id), None)
        return extract_template_variables(node.config) if node else []
