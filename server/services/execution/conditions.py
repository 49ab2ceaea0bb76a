"""Condition evaluation for runtime conditional branching.

A CONDITION node compares one context variable against a threshold and the
executor follows the outgoing edge labelled with the result.

Supported operators:
- >  / gt:  Greater than
- <  / lt:  Less than
- >= / gte: Greater than or equal
- <= / lte: Less than or equal
- == / eq:  Equal
- != / neq: Not equal
- contains: String/list/dict contains value
"""

from typing import Any, Dict, Optional, Sequence, Tuple

from constants import FALSE_BRANCH_LABEL, TRUE_BRANCH_LABEL
from core.logging import get_logger
from models.nodes import ConditionParams
from models.workflow import WorkflowEdge
from services.parameter_resolver import is_missing, lookup_variable, stringify
from .graph import outgoing_edges

logger = get_logger(__name__)


def _to_number(value: Any) -> Optional[float]:
    """Numeric view of a value, or None when it has none."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def resolve_operand(context: Dict[str, Any], variable: str) -> Any:
    """Value of ``variable`` in context, or the variable parsed as a number.

    Returns None when neither works.
    """
    value = lookup_variable(context, variable)
    if not is_missing(value):
        return value
    return _to_number(variable)


def _safe_compare(actual: Any, target: Any, comparator) -> bool:
    """Compare numerically when possible, otherwise as strings."""
    if actual is None or target is None:
        return False

    a, b = _to_number(actual), _to_number(target)
    if a is not None and b is not None:
        return comparator(a, b)

    try:
        return comparator(str(actual), str(target))
    except (ValueError, TypeError):
        return False


def _equals(actual: Any, target: Any) -> bool:
    a, b = _to_number(actual), _to_number(target)
    if a is not None and b is not None:
        return a == b
    if actual is None or target is None:
        return actual is None and target is None
    if isinstance(actual, (dict, list)) or isinstance(target, (dict, list)):
        return actual == target
    return stringify(actual) == stringify(target)


def _contains(actual: Any, target: Any) -> bool:
    if actual is None:
        return False
    if isinstance(actual, str):
        return stringify(target) in actual
    if isinstance(actual, (list, tuple)):
        return target in actual or stringify(target) in [stringify(a) for a in actual]
    if isinstance(actual, dict):
        return stringify(target) in actual
    return False


def evaluate_operator(operator: str, actual: Any, target: Any) -> bool:
    """Evaluate a single comparison.

    Raises:
        ValueError: Unknown operator
    """
    if operator == ">":
        return _safe_compare(actual, target, lambda a, b: a > b)
    elif operator == "<":
        return _safe_compare(actual, target, lambda a, b: a < b)
    elif operator == ">=":
        return _safe_compare(actual, target, lambda a, b: a >= b)
    elif operator == "<=":
        return _safe_compare(actual, target, lambda a, b: a <= b)
    elif operator == "==":
        return _equals(actual, target)
    elif operator == "!=":
        return not _equals(actual, target)
    elif operator == "contains":
        return _contains(actual, target)
    raise ValueError(f"Unknown operator: {operator}")


def evaluate_condition(params: ConditionParams, context: Dict[str, Any]) -> Tuple[bool, str]:
    """Evaluate a CONDITION node against the run context.

    Returns:
        (result, expression) where expression is the human-readable
        comparison, e.g. ``totalValue (150) > 100``
    """
    actual = resolve_operand(context, params.variable)
    result = evaluate_operator(params.operator, actual, params.threshold)
    expression = f"{params.variable} ({stringify(actual)}) {params.operator} {stringify(params.threshold)}"

    logger.debug("Condition evaluated", expression=expression, result=result)
    return result, expression


def branch_label(result: bool) -> str:
    return TRUE_BRANCH_LABEL if result else FALSE_BRANCH_LABEL


def select_branch_edge(edges: Sequence[WorkflowEdge], node_id: str,
                       condition_result: bool) -> Tuple[Optional[WorkflowEdge], bool]:
    """Pick the edge to follow after a CONDITION node.

    Returns:
        (edge, is_fallback). The edge labelled with the result wins. With no
        such label the first outgoing edge is taken and flagged as a
        fallback. (None, False) means there is nowhere to go.
    """
    candidates = outgoing_edges(edges, node_id)
    wanted = branch_label(condition_result)

    for edge in candidates:
        if edge.label is not None and edge.label.strip().lower() == wanted:
            return edge, False

    if candidates:
        logger.warning("No branch edge matched condition result, using first outgoing edge",
                       node_id=node_id, wanted=wanted, fallback_edge=candidates[0].id)
        return candidates[0], True

    return None, False
