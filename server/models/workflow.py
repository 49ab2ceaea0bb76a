"""Pydantic models for workflow graph definitions.

Workflow definitions are authored by users on the canvas or produced by the
external graph synthesizer, so node ``config`` stays a schema-free map at
this boundary. Typed views of that map live in ``models.nodes``.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter


class NodeType(str, Enum):
    """Kind of work a node performs."""
    TRIGGER = "TRIGGER"
    ACTION = "ACTION"
    CONDITION = "CONDITION"
    AI = "AI"
    SCRIPT = "SCRIPT"


class WorkflowNode(BaseModel):
    """A unit of work in a workflow graph."""
    model_config = {"extra": "allow"}  # canvas coordinates (x, y) ride along

    id: str
    type: NodeType
    service: str = ""
    label: str = ""
    description: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.label or self.id


class WorkflowEdge(BaseModel):
    """Directed connection between two nodes, optionally labelled."""
    model_config = {"extra": "allow"}

    id: str
    source: str
    target: str
    label: Optional[str] = None


class Workflow(BaseModel):
    """A complete workflow definition as stored by the editor."""
    model_config = {"extra": "allow"}

    id: str
    name: str
    description: str = ""
    status: Literal["active", "draft", "paused"] = "draft"
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)


NodeInput = Union[WorkflowNode, Dict[str, Any]]
EdgeInput = Union[WorkflowEdge, Dict[str, Any]]

_node_list_adapter = TypeAdapter(List[WorkflowNode])
_edge_list_adapter = TypeAdapter(List[WorkflowEdge])


def parse_graph(nodes: Iterable[NodeInput],
                edges: Iterable[EdgeInput]) -> Tuple[List[WorkflowNode], List[WorkflowEdge]]:
    """Coerce raw node/edge dicts (or models) into typed lists.

    Raises:
        ValidationError: If a node or edge is structurally invalid
    """
    return (
        _node_list_adapter.validate_python(list(nodes)),
        _edge_list_adapter.validate_python(list(edges)),
    )
