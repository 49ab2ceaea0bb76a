"""
Unit tests for condition evaluation and branch selection
"""

import pytest
from pydantic import ValidationError

from models.nodes import ConditionParams, validate_node_params
from services.execution import evaluate_condition, evaluate_operator, select_branch_edge


def _condition(variable, operator, threshold):
    return validate_node_params("condition", {
        "variable": variable, "operator": operator, "threshold": threshold,
    })


@pytest.mark.parametrize("operator, actual, threshold, expected", [
    (">", 150, 100, True),
    (">", 50, 100, False),
    ("<", 50, 100, True),
    (">=", 100, 100, True),
    ("<=", 101, 100, False),
    ("==", "100", 100, True),
    ("==", "abc", "abc", True),
    ("!=", "abc", "abd", True),
    ("contains", "priority customer", "priority", True),
    ("contains", ["a", "b"], "c", False),
    ("contains", {"vip": 1}, "vip", True),
])
def test_operators(operator, actual, threshold, expected):
    assert evaluate_operator(operator, actual, threshold) is expected


def test_ordering_is_false_when_value_missing():
    assert evaluate_operator(">", None, 100) is False
    assert evaluate_operator("<", None, 100) is False


def test_unknown_operator_raises():
    with pytest.raises(ValueError):
        evaluate_operator("~", 1, 1)


def test_evaluate_condition_reads_context():
    result, expression = evaluate_condition(_condition("totalValue", ">", 100), {"totalValue": 150})
    assert result is True
    assert expression == "totalValue (150) > 100"


def test_evaluate_condition_parses_variable_as_number_when_absent():
    result, _ = evaluate_condition(_condition("150", ">", 100), {})
    assert result is True


def test_evaluate_condition_supports_dotted_variable():
    result, _ = evaluate_condition(_condition("order.total", "<", 10), {"order": {"total": 5}})
    assert result is True


def test_operator_aliases_are_normalised():
    assert _condition("x", "gt", 1).operator == ">"
    assert _condition("x", "NEQ", 1).operator == "!="
    assert _condition("x", "Contains", "a").operator == "contains"


def test_invalid_operator_is_rejected():
    with pytest.raises(ValidationError):
        _condition("x", "between", 1)


def test_missing_variable_is_rejected():
    with pytest.raises(ValidationError):
        validate_node_params("condition", {"operator": ">"})


def test_condition_params_is_typed_view():
    assert isinstance(_condition("x", ">", 1), ConditionParams)


def test_select_branch_edge_follows_matching_label(make_edge):
    edges = [make_edge("c", "yes", "true"), make_edge("c", "no", "false")]

    assert select_branch_edge(edges, "c", True) == (edges[0], False)
    assert select_branch_edge(edges, "c", False) == (edges[1], False)


def test_select_branch_edge_labels_are_case_insensitive(make_edge):
    edges = [make_edge("c", "no", "FALSE"), make_edge("c", "yes", "True")]
    edge, fallback = select_branch_edge(edges, "c", True)
    assert edge.target == "yes"
    assert fallback is False


def test_select_branch_edge_falls_back_to_first_outgoing(make_edge):
    edges = [make_edge("c", "x"), make_edge("c", "y")]

    edge, fallback = select_branch_edge(edges, "c", False)

    assert edge.target == "x"
    assert fallback is True


def test_select_branch_edge_with_no_outgoing_edges(make_edge):
    assert select_branch_edge([make_edge("other", "x")], "c", True) == (None, False)
