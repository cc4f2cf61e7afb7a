"""
Variable context builder tests — namespaces, aliases, post_spacing precedence.
"""

import pytest

from fenceops.engine.catalog import ProductStyle, ProductType
from fenceops.engine.context import (
    ComputedQuantities, InputVariables, build_context, quantity_variable,
)
from fenceops.engine.errors import ConfigurationError, EvaluationError

WOOD_VERTICAL = ProductType("wood-vertical", "Wood Vertical", 8.0)
GOOD_NEIGHBOR = ProductStyle(
    "good-neighbor", "wood-vertical", "Good Neighbor",
    {"post_spacing": 7.71, "picket_multiplier": 1.11},
)


def test_qty_suffix_is_reserved_for_inputs():
    with pytest.raises(EvaluationError, match="reserved"):
        InputVariables({"post_qty": 10})


def test_legacy_input_aliases():
    inputs = InputVariables({"Quantity": 100, "Lines": 3, "Gates": 1})
    assert inputs.get("run_length") == 100
    assert inputs.get("line_count") == 3
    assert inputs.get("gate_count") == 1


def test_canonical_name_wins_over_alias():
    inputs = InputVariables({"run_length": 120, "Quantity": 100})
    assert inputs.get("run_length") == 120


def test_string_values_are_normalised():
    inputs = InputVariables({"run_length": "100", "height": "6.5", "has_cap": "true",
                             "post_type": "WOOD"})
    assert inputs.get("run_length") == 100
    assert inputs.get("height") == 6.5
    assert inputs.get("has_cap") is True
    assert inputs.get("post_type") == "WOOD"


def test_computed_quantity_set_once():
    computed = ComputedQuantities()
    computed.set("post", 14)
    assert computed.get("post") == 14
    assert computed.as_dict() == {"post_qty": 14}
    with pytest.raises(ConfigurationError):
        computed.set("post", 15)


def test_merged_view_exposes_both_namespaces():
    context = build_context({"run_length": 100}, WOOD_VERTICAL)
    context.computed.set("post", 14)
    variables = context.variables()
    assert variables["run_length"] == 100
    assert variables[quantity_variable("post")] == 14
    assert context.value("post_qty") == 14


def test_post_spacing_defaults_to_product_type():
    context = build_context({"run_length": 100}, WOOD_VERTICAL)
    assert context.inputs.get("post_spacing") == 8.0


def test_style_adjustment_beats_product_type_default():
    context = build_context({"run_length": 100}, WOOD_VERTICAL, GOOD_NEIGHBOR)
    assert context.inputs.get("post_spacing") == 7.71
    assert context.inputs.get("picket_multiplier") == 1.11


def test_explicit_input_beats_style_adjustment():
    context = build_context({"run_length": 100, "post_spacing": 6}, WOOD_VERTICAL, GOOD_NEIGHBOR)
    assert context.inputs.get("post_spacing") == 6


def test_defaults_for_line_and_gate_count():
    context = build_context({"run_length": 100}, WOOD_VERTICAL, default_line_count=1)
    assert context.inputs.get("line_count") == 1
    assert context.inputs.get("gate_count") == 0


def test_style_code_is_exposed():
    context = build_context({"run_length": 100}, WOOD_VERTICAL, GOOD_NEIGHBOR)
    assert context.inputs.get("style") == "good-neighbor"


def test_style_adjustment_cannot_use_qty_suffix():
    bad = ProductStyle("bad", "wood-vertical", "Bad", {"post_qty": 3})
    with pytest.raises(ConfigurationError, match="reserved"):
        build_context({"run_length": 100}, WOOD_VERTICAL, bad)
