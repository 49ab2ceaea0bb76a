"""Graph analysis over workflow node/edge lists.

Pure functions used by editors before activation (validation, variable
suggestion) and by the executor to pick the entry node and successors.
"""

from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from core.logging import get_logger
from models.workflow import NodeType, WorkflowEdge, WorkflowNode

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    """Outcome of validate_workflow. Errors are human-readable sentences."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {"isValid": self.is_valid, "errors": list(self.errors)}


def get_node(nodes: Sequence[WorkflowNode], node_id: str) -> Optional[WorkflowNode]:
    return next((n for n in nodes if n.id == node_id), None)


def outgoing_edges(edges: Sequence[WorkflowEdge], node_id: str) -> List[WorkflowEdge]:
    """Edges leaving ``node_id``, in definition order."""
    return [e for e in edges if e.source == node_id]


def find_upstream(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge],
                  target_id: str) -> List[WorkflowNode]:
    """Get all nodes that are strictly upstream of ``target_id``.

    Breadth-first reverse traversal. The target itself is never included,
    even when it sits on a cycle. Results keep node-list order.
    """
    incoming: Dict[str, List[str]] = defaultdict(list)
    for edge in edges:
        incoming[edge.target].append(edge.source)

    upstream: Set[str] = set()
    visited: Set[str] = set()
    queue = deque([target_id])

    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)

        for source in incoming.get(current, []):
            if source not in upstream:
                upstream.add(source)
                queue.append(source)

    upstream.discard(target_id)
    return [n for n in nodes if n.id in upstream]


def has_cycle(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> bool:
    """Detect cycles with a depth-first search over edge direction.

    Uses an explicit stack (white/grey/black colouring) rather than Python
    recursion, so long chains don't hit the recursion limit. O(V+E).
    """
    adjacency: Dict[str, List[str]] = {n.id: [] for n in nodes}
    for edge in edges:
        if edge.source in adjacency:
            adjacency[edge.source].append(edge.target)

    WHITE, GREY, BLACK = 0, 1, 2
    colour: Dict[str, int] = {node_id: WHITE for node_id in adjacency}

    for root in adjacency:
        if colour[root] != WHITE:
            continue

        colour[root] = GREY
        stack: List[Tuple[str, int]] = [(root, 0)]

        while stack:
            node_id, next_index = stack[-1]
            neighbours = adjacency.get(node_id, [])

            if next_index >= len(neighbours):
                colour[node_id] = BLACK
                stack.pop()
                continue

            stack[-1] = (node_id, next_index + 1)
            neighbour = neighbours[next_index]
            state = colour.get(neighbour, BLACK)  # unknown targets can't loop back

            if state == GREY:
                return True
            if state == WHITE:
                colour[neighbour] = GREY
                stack.append((neighbour, 0))

    return False


def validate_workflow(nodes: Sequence[WorkflowNode],
                      edges: Sequence[WorkflowEdge]) -> ValidationResult:
    """Check structural well-formedness, accumulating every violation.

    Advisory only: the executor never calls this. Editors and the save path
    decide whether to block activation.
    """
    errors: List[str] = []
    targets = {e.target for e in edges}

    # 1. At least one trigger
    if not any(n.type == NodeType.TRIGGER for n in nodes):
        errors.append("Workflow must have at least one Trigger node.")

    # 2. Orphans: every non-trigger needs an incoming edge
    for node in nodes:
        if node.type != NodeType.TRIGGER and node.id not in targets:
            errors.append(f"Node '{node.display_name}' is disconnected (no incoming connection).")

    # 3. Cycles
    if has_cycle(nodes, edges):
        errors.append("Workflow contains an infinite loop (cycle). Please remove the cycle.")

    # 4. Per-node config
    for node in nodes:
        if not node.service or not node.service.strip():
            errors.append(f"Node '{node.display_name}' is missing a service definition.")

        if node.type == NodeType.CONDITION and not outgoing_edges(edges, node.id):
            errors.append(f"Condition '{node.display_name}' has no outgoing paths.")

    if errors:
        logger.debug("Workflow validation failed", error_count=len(errors))

    return ValidationResult(is_valid=not errors, errors=errors)


def find_root_nodes(nodes: Sequence[WorkflowNode],
                    edges: Sequence[WorkflowEdge]) -> List[WorkflowNode]:
    """Nodes with no incoming edge, in node-list order."""
    targets = {e.target for e in edges}
    return [n for n in nodes if n.id not in targets]


def find_start_node(nodes: Sequence[WorkflowNode],
                    edges: Sequence[WorkflowEdge]) -> Tuple[Optional[WorkflowNode], List[WorkflowNode]]:
    """Pick the node a run starts from.

    Returns ``(start, roots)``. The start is the first root (node with no
    incoming edge); when there is no root at all it falls back to the first
    node in the list. ``roots`` lets callers detect the ambiguous cases
    (zero or several roots).
    """
    if not nodes:
        return None, []

    roots = find_root_nodes(nodes, edges)
    start = roots[0] if roots else nodes[0]
    return start, roots
