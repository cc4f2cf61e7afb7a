"""
Formula mini-language tests.

Tests:
1-6.   Arithmetic, precedence, variables
7-12.  Builtin functions
13-17. Comparisons, booleans, IF/AND/OR
18-27. Failure modes (never coerced to 0)
28-30. Parse cache and reference listing
"""

import pytest

from fenceops.engine.errors import EvaluationError
from fenceops.engine.expression import evaluate, evaluate_number, parse


# ============================================================
# Arithmetic
# ============================================================

def test_operator_precedence():
    assert evaluate("2+3*4", {}) == 14
    assert evaluate("(2+3)*4", {}) == 20
    assert evaluate("10-4-3", {}) == 3
    assert evaluate("12/4/3", {}) == 1


def test_unary_minus():
    assert evaluate("-[x]+5", {"x": 2}) == 3
    assert evaluate("--2", {}) == 2


def test_bracket_variable_reference():
    assert evaluate("[run_length]/[post_spacing]", {"run_length": 100, "post_spacing": 8}) == 12.5


def test_bare_variable_reference():
    assert evaluate("run_length*2", {"run_length": 100}) == 200


def test_decimal_literals():
    assert evaluate("100*12/5.5*1.025", {}) == pytest.approx(223.6363636)
    assert evaluate(".5*4", {}) == 2


def test_whitespace_is_ignored():
    assert evaluate("  ROUNDUP( [a] / 8 ) + 1 ", {"a": 100}) == 14


# ============================================================
# Functions
# ============================================================

def test_roundup_is_ceiling():
    assert evaluate("ROUNDUP(12.5)", {}) == 13
    assert evaluate("ROUNDUP(12)", {}) == 12
    assert evaluate("ROUNDUP(0.01)", {}) == 1


def test_roundup_ignores_float_noise():
    # 0.1*3*10 == 3.0000000000000004 in binary floating point
    assert evaluate("ROUNDUP(0.1*3*10)", {}) == 3


def test_max_and_min():
    assert evaluate("MAX([line_count]-2,0)", {"line_count": 1}) == 0
    assert evaluate("MAX(3,9,4)", {}) == 9
    assert evaluate("MIN(3,1,2)", {}) == 1


def test_round_and_rounddown():
    assert evaluate("ROUND(2.5)", {}) == 3
    assert evaluate("ROUND(1.25, 1)", {}) == pytest.approx(1.3)
    assert evaluate("ROUNDDOWN(7.9)", {}) == 7


def test_function_names_are_case_insensitive():
    assert evaluate("roundup(1.2)", {}) == 2
    assert evaluate("Max(1, 2)", {}) == 2


def test_post_formula():
    formula = "ROUNDUP([run_length]/[post_spacing])+1+ROUNDUP(MAX([line_count]-2,0)/2)"
    assert evaluate(formula, {"run_length": 100, "post_spacing": 8, "line_count": 1}) == 14
    assert evaluate(formula, {"run_length": 100, "post_spacing": 8, "line_count": 4}) == 15


# ============================================================
# Comparisons and booleans
# ============================================================

def test_numeric_comparisons():
    assert evaluate("[h]<=6", {"h": 6}) is True
    assert evaluate("[h]>6", {"h": 6}) is False
    assert evaluate("[h]!=6", {"h": 7}) is True


def test_string_equality():
    assert evaluate('[post_type]=="WOOD"', {"post_type": "WOOD"}) is True
    assert evaluate("[post_type]=='STEEL'", {"post_type": "WOOD"}) is False
    assert evaluate("'a'!='b'", {}) is True


def test_boolean_literals():
    assert evaluate("IF(TRUE, 1, 2)", {}) == 1
    assert evaluate("[has_cap]==true", {"has_cap": True}) is True
    assert evaluate("[has_cap]==false", {"has_cap": True}) is False


def test_if_and_or():
    formula = ("IF(OR(AND([height]<=6,[rail_count]>2),AND([height]>6,[rail_count]>3)),"
               "[run_length],0)")
    assert evaluate(formula, {"height": 6, "rail_count": 3, "run_length": 100}) == 100
    assert evaluate(formula, {"height": 6, "rail_count": 2, "run_length": 100}) == 0
    assert evaluate(formula, {"height": 8, "rail_count": 3, "run_length": 100}) == 0
    assert evaluate(formula, {"height": 8, "rail_count": 4, "run_length": 100}) == 100


def test_attribute_reference_mapping_and_callable():
    assert evaluate("[picket.width_inches]", {}, {"picket.width_inches": 5.5}) == 5.5

    def lookup(component, attribute):
        return {"cap": {"length_feet": 8}}.get(component, {}).get(attribute)

    assert evaluate("ROUNDUP([run_length]/[cap.length_feet])", {"run_length": 100}, lookup) == 13


# ============================================================
# Failure modes
# ============================================================

def test_unresolved_variable_raises():
    with pytest.raises(EvaluationError, match="unresolved variable \\[post_spacing\\]"):
        evaluate("[run_length]/[post_spacing]", {"run_length": 100})


def test_none_valued_variable_is_unresolved():
    with pytest.raises(EvaluationError, match="unresolved"):
        evaluate("[x]+1", {"x": None})


def test_unresolved_attribute_raises():
    with pytest.raises(EvaluationError, match="picket.width_inches"):
        evaluate("[picket.width_inches]", {}, {})


def test_division_by_zero_raises():
    with pytest.raises(EvaluationError, match="division by zero"):
        evaluate("[a]/[b]", {"a": 1, "b": 0})


def test_if_evaluates_all_arguments():
    # no short-circuit: a failing branch fails the whole formula
    with pytest.raises(EvaluationError, match="division by zero"):
        evaluate("IF(true, 1, 1/0)", {})


def test_unknown_function_and_arity():
    with pytest.raises(EvaluationError, match="unknown function"):
        parse("FOO(1)")
    with pytest.raises(EvaluationError, match="ROUNDUP takes 1"):
        parse("ROUNDUP(1, 2)")
    with pytest.raises(EvaluationError, match="IF takes 3"):
        parse("IF(true, 1)")


def test_malformed_expression_reports_position():
    with pytest.raises(EvaluationError) as exc:
        parse("1 + ")
    assert exc.value.position == 4
    assert exc.value.expression == "1 + "

    with pytest.raises(EvaluationError):
        parse("(1+2")
    with pytest.raises(EvaluationError, match="empty formula"):
        parse("")
    with pytest.raises(EvaluationError, match="unexpected character"):
        parse("2 # 3")


def test_static_type_errors_fail_at_parse():
    with pytest.raises(EvaluationError, match="needs numbers"):
        parse("'a' < 3")
    with pytest.raises(EvaluationError, match="AND expects boolean"):
        parse("AND(1, true)")
    with pytest.raises(EvaluationError, match="IF expects boolean"):
        parse("IF(1, 2, 3)")
    with pytest.raises(EvaluationError, match="cannot compare"):
        parse("'a' == 1")


def test_runtime_type_errors():
    with pytest.raises(EvaluationError, match="needs numbers"):
        evaluate("[x] < 3", {"x": "abc"})
    with pytest.raises(EvaluationError, match="arithmetic"):
        evaluate("[x] + 1", {"x": True})
    with pytest.raises(EvaluationError, match="cannot compare"):
        evaluate("[s] == 1", {"s": "a"})
    with pytest.raises(EvaluationError, match="OR expects boolean"):
        evaluate("OR([n], false)", {"n": 1})


def test_evaluate_number_rejects_booleans():
    with pytest.raises(EvaluationError, match="expected a number"):
        evaluate_number("[h] > 6", {"h": 8})


# ============================================================
# Parse cache and references
# ============================================================

def test_parse_is_cached():
    assert parse("[a]*2") is parse("[a]*2")


def test_same_inputs_same_result():
    formula = "[run_length]*12/[picket.width_inches]*1.025"
    variables = {"run_length": 137.5}
    attributes = {"picket.width_inches": 5.5}
    assert evaluate(formula, variables, attributes) == evaluate(formula, variables, attributes)


def test_reference_listing():
    expression = parse("[a]+[b.c]*d")
    assert expression.variables == frozenset({"a", "d"})
    assert expression.attributes == frozenset({"b.c"})
