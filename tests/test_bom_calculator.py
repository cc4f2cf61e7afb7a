"""
BOM calculator tests against the default catalog.

Tests:
1-4.   Wood vertical quantities (posts, rails, pickets, nails)
5-7.   Styles and post type (good neighbor, steel posts, iron ameristar)
8-10.  Material selection
11-13. Labor lines
14-17. Project-level rounding across runs
18-21. Errors and validation
"""

import pytest

from fenceops.engine.calculator import BomCalculator
from fenceops.engine.errors import ConfigurationError, EvaluationError, UnknownReferenceError

RUN = {"run_length": 100, "post_spacing": 8, "rail_count": 2, "height": 6}


@pytest.fixture
def calculator(catalog):
    return BomCalculator(catalog)


# ============================================================
# Wood vertical
# ============================================================

def test_posts_and_rails(calculator):
    result = calculator.compute_bom("wood-vertical", "standard", RUN)
    assert result.quantity("post") == 14
    assert result.quantity("rail") == 26


def test_pickets_use_material_width(calculator):
    result = calculator.compute_bom("wood-vertical", "standard", RUN)
    picket = next(c for c in result.components if c.component_code == "picket")
    assert picket.quantity == 224
    assert picket.raw_quantity == pytest.approx(223.636, abs=0.001)
    assert picket.material.sku == "P601"


def test_nails_read_earlier_quantities(calculator):
    result = calculator.compute_bom("wood-vertical", "standard", RUN)
    assert result.quantity("nails_picket") == 3
    assert result.quantity("nails_frame") == 4


def test_hidden_components_are_skipped(calculator):
    result = calculator.compute_bom("wood-vertical", "standard", RUN)
    codes = [c.component_code for c in result.components]
    assert codes == ["post", "rail", "picket", "nails_picket", "nails_frame"]

    with_cap = calculator.compute_bom("wood-vertical", "standard",
                                      dict(RUN, has_cap=True, concrete_type="quickrock"))
    assert with_cap.quantity("cap") == 13
    assert with_cap.quantity("concrete_quickrock") == 7
    assert with_cap.quantity("concrete_sand") is None


def test_costs(calculator):
    result = calculator.compute_bom("wood-vertical", "standard", RUN)
    # 14*12.50 + 26*5.25 + 224*2.10 + 3*45 + 4*38
    assert result.material_cost == pytest.approx(1068.90)
    # W02 and W03, 100 LF each
    assert result.labor_cost == pytest.approx(525.00)
    assert result.total_cost == pytest.approx(1593.90)


# ============================================================
# Styles and post type
# ============================================================

def test_good_neighbor_multiplies_pickets_only(calculator):
    standard = calculator.compute_bom("wood-vertical", "standard", RUN)
    good_neighbor = calculator.compute_bom("wood-vertical", "good-neighbor", RUN)
    assert good_neighbor.quantity("picket") == 249
    assert good_neighbor.quantity("post") == standard.quantity("post")
    assert good_neighbor.quantity("rail") == standard.quantity("rail")


def test_style_post_spacing_applies_when_not_given(calculator):
    inputs = {"run_length": 200, "rail_count": 2, "height": 6}
    result = calculator.compute_bom("wood-vertical", "good-neighbor", inputs)
    # 200 / 7.71 -> 26 sections
    assert result.quantity("post") == 27
    assert calculator.compute_bom("wood-vertical", "standard", inputs).quantity("post") == 26


def test_steel_posts_bring_brackets_and_caps(calculator):
    result = calculator.compute_bom("wood-vertical", "standard", dict(RUN, post_type="STEEL"))
    post = next(c for c in result.components if c.component_code == "post")
    assert post.material.sku == "PS04"
    assert result.quantity("bracket") == 28
    assert result.quantity("steel_post_cap") == 14
    assert [line.labor_code for line in result.labor_lines] == ["W02", "M03"]


def test_iron_ameristar(calculator):
    result = calculator.compute_bom("iron", "ameristar", {"run_length": 80})
    assert result.quantity("post") == 11
    assert result.quantity("panel") == 10
    assert result.quantity("bracket") == 60
    assert result.quantity("iron_post_cap") == 11
    assert [line.labor_code for line in result.labor_lines] == ["IR01", "IR05", "IR06"]

    standard = calculator.compute_bom("iron", "standard-2-rail", {"run_length": 80})
    assert standard.quantity("bracket") is None


def test_extra_lines_add_posts(calculator):
    result = calculator.compute_bom("wood-vertical", "standard", dict(RUN, line_count=4))
    assert result.quantity("post") == 15


def test_legacy_input_names(calculator):
    result = calculator.compute_bom("wood-vertical", "standard",
                                    {"Quantity": "100", "PostSpacing": 8, "Rails": 2,
                                     "Height": 6})
    assert result.quantity("post") == 14
    assert result.inputs["run_length"] == 100


# ============================================================
# Material selection
# ============================================================

def test_explicit_material_changes_attributes(calculator):
    result = calculator.compute_bom("wood-vertical", "standard", RUN, materials={"picket": "P401"})
    assert result.quantity("picket") == 352


def test_ineligible_material_is_rejected(calculator):
    with pytest.raises(ConfigurationError, match="not eligible"):
        calculator.compute_bom("wood-vertical", "standard", RUN, materials={"post": "PS04"})


# ============================================================
# Labor
# ============================================================

def test_labor_lines(calculator):
    result = calculator.compute_bom("wood-vertical", "standard", RUN)
    labor = {line.labor_code: line for line in result.labor_lines}
    assert set(labor) == {"W02", "W03"}
    assert labor["W02"].quantity == 100
    assert labor["W02"].extended_cost == 300.00


def test_labor_formulas_and_gates(calculator):
    inputs = dict(RUN, height=8, rail_count=4, gate_count=2)
    result = calculator.compute_bom("wood-vertical", "good-neighbor", inputs)
    labor = {line.labor_code: line.quantity for line in result.labor_lines}
    assert labor == {"W02": 100, "W04": 100, "W05": 100, "W06": 100, "W11": 2}


def test_height_just_over_six_uses_tall_labor(calculator):
    result = calculator.compute_bom("wood-vertical", "standard",
                                    dict(RUN, height=6.005, gate_count=1))
    assert [line.labor_code for line in result.labor_lines] == ["W02", "W04", "W11"]
    at_six = calculator.compute_bom("wood-vertical", "standard", dict(RUN, gate_count=1))
    assert [line.labor_code for line in at_six.labor_lines] == ["W02", "W03", "W10"]


# ============================================================
# Project rounding
# ============================================================

def test_single_run_rounds_project_level_once(calculator):
    result = calculator.compute_bom("wood-vertical", "standard", dict(RUN, run_length=50))
    assert result.quantity("nails_picket") == 2
    assert result.quantity("nails_frame") == 3


def test_project_sums_consumables_before_rounding(calculator):
    line = {"product_type": "wood-vertical", "style": "standard",
            "inputs": dict(RUN, run_length=50)}
    project = calculator.compute_project([line, line])
    totals = {t.component_code: t.quantity for t in project.totals}
    assert totals["picket"] == 224
    assert totals["post"] == 16
    # 2 * 1.493 coils and 2 * 2.286 boxes
    assert totals["nails_picket"] == 3
    assert totals["nails_frame"] == 5
    assert len(project.lines) == 2
    assert len(project.labor_lines) == 4


def test_empty_project_is_rejected(calculator):
    with pytest.raises(ConfigurationError):
        calculator.compute_project([])


def test_project_line_without_product_type_is_rejected(calculator):
    with pytest.raises(ConfigurationError, match="project line 1 has no product_type"):
        calculator.compute_project([
            {"product_type": "wood-vertical", "style": "standard", "inputs": RUN},
            {"style": "standard", "inputs": RUN},
        ])


# ============================================================
# Errors and validation
# ============================================================

def test_unknown_references(calculator):
    with pytest.raises(UnknownReferenceError):
        calculator.compute_bom("vinyl", None, RUN)
    with pytest.raises(UnknownReferenceError):
        calculator.compute_bom("wood-vertical", "shadowbox", RUN)


def test_missing_input_is_evaluation_error(calculator):
    with pytest.raises(EvaluationError, match="unresolved variable"):
        calculator.compute_bom("wood-vertical", "standard", {"post_spacing": 8, "rail_count": 2})


def test_reserved_input_name(calculator):
    with pytest.raises(EvaluationError, match="_qty"):
        calculator.compute_bom("wood-vertical", "standard", dict(RUN, post_qty=3))


def test_default_catalog_validates(calculator):
    assert calculator.validate() == []
