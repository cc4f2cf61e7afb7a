"""
Default configuration seed.

Product types, styles, components, formula templates, materials, labor codes
and eligibility rules for wood-vertical, wood-horizontal and iron fence.
Applied on startup (settings.AUTO_SEED). Safe to run multiple times: rows are
matched on their natural keys and existing rows are never touched.

default_catalog() builds the same data straight into an engine Catalog,
without a database.
"""

import logging

from sqlalchemy.orm import Session

from . import models
from .costing import recalculate_sku_costs
from .engine import catalog as cat
from .engine.predicates import predicate_from_filter

logger = logging.getLogger(__name__)

LABOR = "labor"

# --- Product types & styles ---

DEFAULT_PRODUCT_TYPES = {
    "wood-vertical": {"name": "Wood Vertical", "default_post_spacing": 8.0},
    "wood-horizontal": {"name": "Wood Horizontal", "default_post_spacing": 6.0},
    "iron": {"name": "Iron", "default_post_spacing": None},
}

# formula_adjustments are defaults: a value passed in the request wins
DEFAULT_STYLES = {
    "wood-vertical": {
        "standard": {"name": "Standard", "formula_adjustments": {"post_type": "WOOD"}},
        "good-neighbor": {
            "name": "Good Neighbor",
            "formula_adjustments": {"post_type": "WOOD", "post_spacing": 7.71,
                                    "picket_multiplier": 1.11},
        },
        "board-on-board": {"name": "Board on Board", "formula_adjustments": {"post_type": "WOOD"}},
    },
    "wood-horizontal": {
        "standard": {"name": "Standard", "formula_adjustments": {"post_type": "WOOD"}},
        "good-neighbor": {"name": "Good Neighbor", "formula_adjustments": {"post_type": "WOOD"}},
        "exposed": {"name": "Exposed Post", "formula_adjustments": {"post_type": "WOOD"}},
    },
    "iron": {
        "standard-2-rail": {
            "name": "Standard 2 Rail",
            "formula_adjustments": {"panel_width": 8, "rails_per_panel": 2},
        },
        "ameristar": {
            "name": "Ameristar",
            "formula_adjustments": {"panel_width": 8, "rails_per_panel": 3},
        },
    },
}

# --- Components ---

DEFAULT_COMPONENTS = {
    "post": {"name": "Post", "unit": "Each"},
    "rail": {"name": "Rail", "unit": "Each"},
    "picket": {"name": "Picket", "unit": "Each"},
    "cap": {"name": "Cap", "unit": "Each"},
    "trim": {"name": "Trim", "unit": "Each"},
    "rot_board": {"name": "Rot Board", "unit": "Each"},
    "bracket": {"name": "Bracket", "unit": "Each"},
    "steel_post_cap": {"name": "Steel Post Cap", "unit": "Each"},
    "board": {"name": "Board", "unit": "Each"},
    "nailer": {"name": "Nailer", "unit": "Each"},
    "vertical_trim": {"name": "Vertical Trim", "unit": "Each"},
    "panel": {"name": "Panel", "unit": "Each"},
    "iron_post_cap": {"name": "Iron Post Cap", "unit": "Each"},
    "nails_picket": {"name": "Picket Nails", "unit": "Coil"},
    "nails_frame": {"name": "Frame Nails", "unit": "Box"},
    "concrete_sand": {"name": "Concrete Sand", "unit": "Yard"},
    "concrete_portland": {"name": "Portland Cement", "unit": "Bag"},
    "concrete_quickrock": {"name": "QuickRock", "unit": "Bag"},
    LABOR: {"name": "Labor", "unit": "LF", "is_labor": True},
}

_THREE_PART = {"concrete_type": "3-part"}
_QUICKROCK = {"concrete_type": "quickrock"}

# (component, execution order, visibility filter)
DEFAULT_LAYOUTS = {
    "wood-vertical": [
        ("post", 10, None),
        ("rail", 20, None),
        ("picket", 30, None),
        ("cap", 40, {"has_cap": True}),
        ("trim", 50, {"has_trim": True}),
        ("rot_board", 60, {"has_rot_board": True}),
        ("bracket", 70, {"post_type": "STEEL"}),
        ("steel_post_cap", 80, {"post_type": "STEEL"}),
        ("nails_picket", 90, None),
        ("nails_frame", 100, None),
        ("concrete_sand", 110, _THREE_PART),
        ("concrete_portland", 120, _THREE_PART),
        ("concrete_quickrock", 130, _QUICKROCK),
        (LABOR, 200, None),
    ],
    "wood-horizontal": [
        ("post", 10, None),
        ("board", 20, None),
        ("nailer", 30, None),
        ("vertical_trim", 40, None),
        ("cap", 50, {"has_cap": True}),
        ("steel_post_cap", 60, {"post_type": "STEEL"}),
        ("nails_picket", 70, None),
        ("nails_frame", 80, None),
        ("concrete_sand", 90, _THREE_PART),
        ("concrete_portland", 100, _THREE_PART),
        ("concrete_quickrock", 110, _QUICKROCK),
        (LABOR, 200, None),
    ],
    "iron": [
        ("post", 10, None),
        ("panel", 20, None),
        ("bracket", 30, {"style": "ameristar"}),
        ("iron_post_cap", 40, None),
        ("concrete_quickrock", 50, _QUICKROCK),
        (LABOR, 200, None),
    ],
}

# --- Formula templates ---

_POSTS = "ROUNDUP([run_length]/[post_spacing])+1+ROUNDUP(MAX([line_count]-2,0)/2)"
_IRON_POSTS = "ROUNDUP([run_length]/[panel_width])+1+ROUNDUP(MAX([line_count]-2,0)/2)"
_BOARDS = "ROUNDUP([height]*12/[board.width_inches])*ROUNDUP([run_length]/[board.length_feet])"


def _formula(product_type, component, expression, style=None, rounding="sku", priority=0,
             plain_english=""):
    return {
        "product_type": product_type,
        "style": style,
        "component": component,
        "expression": expression,
        "rounding_level": rounding,
        "priority": priority,
        "plain_english": plain_english,
    }


DEFAULT_FORMULAS = [
    # wood-vertical
    _formula("wood-vertical", "post", _POSTS,
             plain_english="One post per section plus the end post, plus one per extra line pair"),
    _formula("wood-vertical", "rail", "ROUNDUP([run_length]/[post_spacing])*[rail_count]",
             plain_english="Rails per section times sections"),
    _formula("wood-vertical", "picket", "[run_length]*12/[picket.width_inches]*1.025",
             plain_english="Run inches over picket width, plus 2.5% waste"),
    _formula("wood-vertical", "picket",
             "[run_length]*12/[picket.width_inches]*1.025*[picket_multiplier]",
             style="good-neighbor", priority=10,
             plain_english="Standard picket count times the good-neighbor multiplier"),
    _formula("wood-vertical", "picket",
             "([run_length]*12*2)/([picket.width_inches]*2-2.5)*1.025",
             style="board-on-board", priority=10,
             plain_english="Two layers, overlapped 2.5 inches, plus 2.5% waste"),
    _formula("wood-vertical", "cap", "ROUNDUP([run_length]/[cap.length_feet])"),
    _formula("wood-vertical", "trim", "ROUNDUP([run_length]/[trim.length_feet])"),
    _formula("wood-vertical", "rot_board", "ROUNDUP([run_length]/[rot_board.length_feet])"),
    _formula("wood-vertical", "bracket", "[post_qty]*[rail_count]",
             plain_english="One bracket per rail per steel post"),
    _formula("wood-vertical", "steel_post_cap", "[post_qty]",
             plain_english="One cap per steel post"),
    _formula("wood-vertical", "nails_picket", "([picket_qty]*[rail_count]*2)/300",
             rounding="project",
             plain_english="Nail coils = (pickets * rails * 2 nails) / 300 nails per coil"),
    _formula("wood-vertical", "nails_frame", "([post_qty]*[rail_count]*4)/28",
             rounding="project",
             plain_english="Frame nail boxes = (posts * rails * 4 nails) / 28 per box"),
    _formula("wood-vertical", "concrete_sand", "[post_qty]/10", rounding="project"),
    _formula("wood-vertical", "concrete_portland", "[post_qty]/20", rounding="project"),
    _formula("wood-vertical", "concrete_quickrock", "[post_qty]*0.5", rounding="project"),

    # wood-horizontal
    _formula("wood-horizontal", "post", _POSTS),
    _formula("wood-horizontal", "board", _BOARDS,
             plain_english="Board rows for the height times board lengths along the run"),
    _formula("wood-horizontal", "board", _BOARDS + "*2", style="good-neighbor", priority=10,
             plain_english="Boards on both faces"),
    _formula("wood-horizontal", "nailer",
             "(ROUNDUP([height]*12/[board.width_inches])-1)*ROUNDUP([run_length]/[post_spacing])"),
    _formula("wood-horizontal", "vertical_trim", "[post_qty]"),
    _formula("wood-horizontal", "vertical_trim", "[post_qty]*2", style="good-neighbor",
             priority=10),
    _formula("wood-horizontal", "cap", "ROUNDUP([run_length]/[cap.length_feet])"),
    _formula("wood-horizontal", "steel_post_cap", "[post_qty]"),
    _formula("wood-horizontal", "nails_picket", "([board_qty]*4)/300", rounding="project",
             plain_english="Board nail coils = (boards * 4 nails) / 300 nails per coil"),
    _formula("wood-horizontal", "nails_frame", "([nailer_qty]*2*6+[post_qty]*2*4)/28",
             rounding="project",
             plain_english="Frame nails = (nailers*2*6 + posts*2*4) / 28"),
    _formula("wood-horizontal", "concrete_sand", "[post_qty]/10", rounding="project"),
    _formula("wood-horizontal", "concrete_portland", "[post_qty]/20", rounding="project"),
    _formula("wood-horizontal", "concrete_quickrock", "[post_qty]*0.5", rounding="project"),

    # iron
    _formula("iron", "post", _IRON_POSTS),
    _formula("iron", "panel", "ROUNDUP([run_length]/[panel_width])"),
    _formula("iron", "bracket", "[panel_qty]*[rails_per_panel]*2",
             plain_english="Two brackets per rail per panel"),
    _formula("iron", "iron_post_cap", "[post_qty]", plain_english="One cap per iron post"),
    _formula("iron", "concrete_quickrock", "[post_qty]*0.5", rounding="project"),
]

# --- Materials & labor codes ---

DEFAULT_MATERIALS = {
    "PS13": {"name": "4x4x8 Pressure Treated Post", "category": "post", "unit_cost": 12.50},
    "PS04": {"name": "2-3/8 x 8' Galvanized Steel Post", "category": "post", "unit_cost": 28.00},
    "P601": {"name": "1x6x6 Cedar Picket", "category": "picket", "unit_cost": 2.10,
             "width_inches": 5.5},
    "P401": {"name": "1x4x6 Cedar Picket", "category": "picket", "unit_cost": 1.60,
             "width_inches": 3.5},
    "RA01": {"name": "2x4x8 Pressure Treated Rail", "category": "rail", "unit_cost": 5.25,
             "length_feet": 8},
    "CTN09": {"name": "2x6x8 Cedar Cap", "category": "cap", "unit_cost": 7.50, "length_feet": 8},
    "CTN07": {"name": "1x4x8 Cedar Trim", "category": "trim", "unit_cost": 3.20, "length_feet": 8},
    "CTN05": {"name": "1x3x8 Cedar Trim", "category": "trim", "unit_cost": 2.60, "length_feet": 8},
    "RB01": {"name": "2x6x8 Rot Board", "category": "rot_board", "unit_cost": 6.80,
             "length_feet": 8},
    "BD01": {"name": "1x6x8 Cedar Board", "category": "board", "unit_cost": 4.10,
             "width_inches": 5.5, "length_feet": 8},
    "HW06": {"name": "Steel Post Rail Bracket", "category": "hardware", "unit_cost": 1.15},
    "PC01": {"name": "2-3/8 Dome Post Cap", "category": "hardware", "unit_cost": 2.40},
    "HW07": {"name": "16d Framing Nails (box)", "category": "hardware", "unit": "Box",
             "unit_cost": 38.00},
    "HW08": {"name": "Picket Nails (coil)", "category": "hardware", "unit": "Coil",
             "unit_cost": 45.00, "qty_per_unit": 300},
    "CN01": {"name": "Concrete Sand", "category": "concrete", "unit": "Yard", "unit_cost": 42.00},
    "CN02": {"name": "Portland Cement 94lb", "category": "concrete", "unit": "Bag",
             "unit_cost": 14.00},
    "CN03": {"name": "QuickRock 50lb", "category": "concrete", "unit": "Bag", "unit_cost": 6.75},
    "IR01": {"name": "2x2 Iron Line Post", "category": "post", "unit_cost": 38.00},
    "IR10": {"name": "Iron Panel 5x8", "category": "panel", "unit_cost": 145.00,
             "length_feet": 8},
    "IR20": {"name": "Ameristar Panel Bracket", "category": "hardware", "unit_cost": 2.25},
    "IR30": {"name": "Iron Post Cap", "category": "hardware", "unit_cost": 3.50},
}

DEFAULT_LABOR_CODES = {
    "W02": {"description": "Set Post 8' OC", "rate": 3.00},
    "W03": {"description": "Nail Up Vertical up to 6'", "rate": 2.25},
    "W04": {"description": "Nail Up Vertical 7' or 8'", "rate": 2.75},
    "M03": {"description": "Steel Post Nail Up Vertical up to 6'", "rate": 2.50},
    "M04": {"description": "Steel Post Nail Up Vertical 7' or 8'", "rate": 3.00},
    "W05": {"description": "Additional Rail", "rate": 0.50},
    "W06": {"description": "Goodneighbor Style", "rate": 0.75},
    "M06": {"description": "Steel Post Goodneighbor Style", "rate": 0.85},
    "W07": {"description": "Cap and Trim", "rate": 1.25},
    "M07": {"description": "Steel Post Cap and Trim", "rate": 1.35},
    "W08": {"description": "Just Trim", "rate": 0.60},
    "W09": {"description": "Just Cap", "rate": 0.75},
    "W10": {"description": "Wood Gate up to 6FT", "unit": "Each", "rate": 85.00},
    "W11": {"description": "Wood Gate 8FT", "unit": "Each", "rate": 110.00},
    "W12": {"description": "Horizontal Set Post 6' OC", "rate": 3.25},
    "W13": {"description": "Horizontal Nail Up 6' High", "rate": 3.50},
    "W15": {"description": "Horizontal Wood Gate Single", "unit": "Each", "rate": 125.00},
    "W16": {"description": "Set Post for Exposed Horizontal", "rate": 3.75},
    "W17": {"description": "Nail up Exposed Horizontal", "rate": 4.00},
    "W18": {"description": "Horizontal Nail Up 7' or 8' High", "rate": 4.25},
    "IR01": {"description": "Iron Set Post 8' O.C.", "rate": 4.00},
    "IR02": {"description": "Iron Weld Standard Fence", "rate": 5.50},
    "IR05": {"description": "Set Post Ameristar/3 Rail Brackets", "rate": 4.50},
    "IR06": {"description": "Weld/Bracket Fence Ameristar", "rate": 5.00},
    "IR07": {"description": "Iron Gate Single", "unit": "Each", "rate": 150.00},
}

# --- Eligibility ---

_WOOD = {"post_type": "WOOD"}
_STEEL = {"post_type": "STEEL"}
_EXTRA_RAIL = ("IF(OR(AND([height]<=6,[rail_count]>2),AND([height]>6,[rail_count]>3)),"
               "[run_length],0)")
_NOT_EXPOSED = {"style": ["standard", "good-neighbor"]}


def _material(product_type, component, sku, attribute_filter=None, is_default=True, order=0):
    return {"product_type": product_type, "component": component, "material": sku,
            "filter": attribute_filter, "is_default": is_default, "order": order}


def _labor(product_type, code, order, attribute_filter=None, formula=None):
    return {"product_type": product_type, "component": LABOR, "labor_code": code,
            "filter": attribute_filter, "formula": formula, "order": order}


DEFAULT_ELIGIBILITY = [
    # wood-vertical materials
    _material("wood-vertical", "post", "PS13", _WOOD),
    _material("wood-vertical", "post", "PS04", _STEEL),
    _material("wood-vertical", "rail", "RA01"),
    _material("wood-vertical", "picket", "P601", order=1),
    _material("wood-vertical", "picket", "P401", is_default=False, order=2),
    _material("wood-vertical", "cap", "CTN09"),
    _material("wood-vertical", "trim", "CTN07", order=1),
    _material("wood-vertical", "trim", "CTN05", is_default=False, order=2),
    _material("wood-vertical", "rot_board", "RB01"),
    _material("wood-vertical", "bracket", "HW06"),
    _material("wood-vertical", "steel_post_cap", "PC01"),
    _material("wood-vertical", "nails_picket", "HW08"),
    _material("wood-vertical", "nails_frame", "HW07"),
    _material("wood-vertical", "concrete_sand", "CN01"),
    _material("wood-vertical", "concrete_portland", "CN02"),
    _material("wood-vertical", "concrete_quickrock", "CN03"),

    # wood-vertical labor
    _labor("wood-vertical", "W02", 1),
    _labor("wood-vertical", "W03", 2, {"post_type": "WOOD", "height": {"max": 6}}),
    _labor("wood-vertical", "W04", 3, {"post_type": "WOOD", "height": {"gt": 6}}),
    _labor("wood-vertical", "M03", 4, {"post_type": "STEEL", "height": {"max": 6}}),
    _labor("wood-vertical", "M04", 5, {"post_type": "STEEL", "height": {"gt": 6}}),
    _labor("wood-vertical", "W05", 6, {"height": {"min": 0}, "rail_count": {"min": 0}},
           formula=_EXTRA_RAIL),
    _labor("wood-vertical", "W06", 7, {"post_type": "WOOD", "style": "good-neighbor"}),
    _labor("wood-vertical", "M06", 8, {"post_type": "STEEL", "style": "good-neighbor"}),
    _labor("wood-vertical", "W07", 9, {"post_type": "WOOD", "has_cap": True, "has_trim": True}),
    _labor("wood-vertical", "M07", 10, {"post_type": "STEEL", "has_cap": True, "has_trim": True}),
    _labor("wood-vertical", "W08", 11, {"has_trim": True, "has_cap": False}),
    _labor("wood-vertical", "W09", 12, {"has_cap": True, "has_trim": False}),
    _labor("wood-vertical", "W10", 13, {"height": {"max": 6}}, formula="[gate_count]"),
    _labor("wood-vertical", "W11", 14, {"height": {"gt": 6}}, formula="[gate_count]"),

    # wood-horizontal materials
    _material("wood-horizontal", "post", "PS13", _WOOD),
    _material("wood-horizontal", "post", "PS04", _STEEL),
    _material("wood-horizontal", "board", "BD01"),
    _material("wood-horizontal", "nailer", "RA01"),
    _material("wood-horizontal", "vertical_trim", "CTN07"),
    _material("wood-horizontal", "cap", "CTN09"),
    _material("wood-horizontal", "steel_post_cap", "PC01"),
    _material("wood-horizontal", "nails_picket", "HW08"),
    _material("wood-horizontal", "nails_frame", "HW07"),
    _material("wood-horizontal", "concrete_sand", "CN01"),
    _material("wood-horizontal", "concrete_portland", "CN02"),
    _material("wood-horizontal", "concrete_quickrock", "CN03"),

    # wood-horizontal labor
    _labor("wood-horizontal", "W12", 1, _NOT_EXPOSED),
    _labor("wood-horizontal", "W16", 2, {"style": "exposed"}),
    _labor("wood-horizontal", "W13", 3, dict(_NOT_EXPOSED, height={"max": 6})),
    _labor("wood-horizontal", "W18", 4, dict(_NOT_EXPOSED, height={"gt": 6})),
    _labor("wood-horizontal", "W17", 5, {"style": "exposed"}),
    _labor("wood-horizontal", "W06", 6, {"post_type": "WOOD", "style": "good-neighbor"}),
    _labor("wood-horizontal", "M06", 7, {"post_type": "STEEL", "style": "good-neighbor"}),
    _labor("wood-horizontal", "W09", 8, {"has_cap": True}),
    _labor("wood-horizontal", "W15", 9, formula="[gate_count]"),

    # iron
    _material("iron", "post", "IR01"),
    _material("iron", "panel", "IR10"),
    _material("iron", "bracket", "IR20"),
    _material("iron", "iron_post_cap", "IR30"),
    _material("iron", "concrete_quickrock", "CN03"),
    _labor("iron", "IR01", 1),
    _labor("iron", "IR02", 2, {"style": "standard-2-rail"}),
    _labor("iron", "IR05", 3, {"style": "ameristar"}),
    _labor("iron", "IR06", 4, {"style": "ameristar"}),
    _labor("iron", "IR07", 5, formula="[gate_count]"),
]

# --- Sellable SKUs (priced per foot; standard cost comes from the BOM engine) ---

DEFAULT_SKUS = {
    "WV-6-STD-W": {
        "name": "6' Wood Vertical Standard, Wood Posts",
        "product_type": "wood-vertical", "style": "standard", "height": 6, "post_type": "WOOD",
        "variables": {"rail_count": 2},
        "components": {"post": "PS13", "picket": "P601", "rail": "RA01"},
    },
    "WV-6-GN-W": {
        "name": "6' Wood Vertical Good Neighbor, Wood Posts",
        "product_type": "wood-vertical", "style": "good-neighbor", "height": 6,
        "post_type": "WOOD",
        "variables": {"rail_count": 2},
        "components": {"post": "PS13", "picket": "P601", "rail": "RA01"},
    },
    "WV-8-STD-S": {
        "name": "8' Wood Vertical Standard, Steel Posts",
        "product_type": "wood-vertical", "style": "standard", "height": 8, "post_type": "STEEL",
        "variables": {"rail_count": 3},
        "components": {"post": "PS04", "picket": "P601", "rail": "RA01",
                       "steel_post_cap": "PC01", "bracket": "HW06"},
    },
    "IR-5-AM": {
        "name": "5' Iron Ameristar",
        "product_type": "iron", "style": "ameristar", "height": 5, "post_type": None,
        "variables": {},
        "components": {"post": "IR01", "panel": "IR10", "bracket": "IR20"},
    },
}


# --- Database seed ---

def _get_or_add(db: Session, model, defaults: dict, **keys):
    row = db.query(model).filter_by(**keys).first()
    if row is not None:
        return row, False
    row = model(**keys, **defaults)
    db.add(row)
    db.flush()
    return row, True


def seed_defaults(db: Session) -> dict:
    """Insert any missing default configuration rows. Returns counts of rows added."""
    added = {}

    def count(name, created):
        if created:
            added[name] = added.get(name, 0) + 1

    types = {}
    for code, data in DEFAULT_PRODUCT_TYPES.items():
        types[code], created = _get_or_add(db, models.ProductType, data, code=code)
        count("product_types", created)

    styles = {}
    for type_code, type_styles in DEFAULT_STYLES.items():
        for code, data in type_styles.items():
            styles[(type_code, code)], created = _get_or_add(
                db, models.ProductStyle, data, product_type_id=types[type_code].id, code=code
            )
            count("product_styles", created)

    components = {}
    for code, data in DEFAULT_COMPONENTS.items():
        components[code], created = _get_or_add(db, models.ComponentType, data, code=code)
        count("component_types", created)

    for type_code, slots in DEFAULT_LAYOUTS.items():
        for component, order, visibility in slots:
            _, created = _get_or_add(
                db, models.ProductTypeComponent,
                {"display_order": order, "visibility": visibility},
                product_type_id=types[type_code].id,
                component_type_id=components[component].id,
            )
            count("product_type_components", created)

    for data in DEFAULT_FORMULAS:
        style = data["style"]
        _, created = _get_or_add(
            db, models.FormulaTemplate,
            {
                "expression": data["expression"],
                "rounding_level": data["rounding_level"],
                "priority": data["priority"],
                "plain_english": data["plain_english"],
            },
            product_type_id=types[data["product_type"]].id,
            product_style_id=styles[(data["product_type"], style)].id if style else None,
            component_type_id=components[data["component"]].id,
        )
        count("formula_templates", created)

    materials = {}
    for sku, data in DEFAULT_MATERIALS.items():
        materials[sku], created = _get_or_add(db, models.Material, data, sku=sku)
        count("materials", created)

    labor_codes = {}
    for code, data in DEFAULT_LABOR_CODES.items():
        labor_codes[code], created = _get_or_add(db, models.LaborCode, data, code=code)
        count("labor_codes", created)

    for data in DEFAULT_ELIGIBILITY:
        keys = {
            "product_type_id": types[data["product_type"]].id,
            "component_type_id": components[data["component"]].id,
        }
        if "material" in data:
            keys["material_id"] = materials[data["material"]].id
            defaults = {"is_default": data["is_default"]}
        else:
            keys["labor_code_id"] = labor_codes[data["labor_code"]].id
            defaults = {"quantity_formula": data["formula"]}
        defaults.update(attribute_filter=data["filter"], display_order=data["order"])
        _, created = _get_or_add(db, models.EligibilityRule, defaults, **keys)
        count("eligibility_rules", created)

    for code, data in DEFAULT_SKUS.items():
        data = dict(data)
        type_code = data.pop("product_type")
        style = data.pop("style")
        data["product_type_id"] = types[type_code].id
        data["product_style_id"] = styles[(type_code, style)].id if style else None
        _, created = _get_or_add(db, models.Sku, data, code=code)
        count("skus", created)
    if added.get("skus"):
        recalculate_sku_costs(db)

    if added:
        logger.info("Seeded default configuration: %s", added)
    return added


# --- In-memory catalog ---

def default_catalog() -> cat.Catalog:
    """The default configuration as an engine Catalog, no database involved."""
    product_types = {
        code: cat.ProductType(code, data["name"], data["default_post_spacing"])
        for code, data in DEFAULT_PRODUCT_TYPES.items()
    }
    styles = {
        (type_code, code): cat.ProductStyle(code, type_code, data["name"],
                                            dict(data["formula_adjustments"]))
        for type_code, type_styles in DEFAULT_STYLES.items()
        for code, data in type_styles.items()
    }
    components = {
        code: cat.ComponentType(code, data["name"], data["unit"], data.get("is_labor", False))
        for code, data in DEFAULT_COMPONENTS.items()
    }
    layouts = {
        type_code: tuple(
            cat.ProductTypeComponent(type_code, component, order, predicate_from_filter(visibility))
            for component, order, visibility in slots
        )
        for type_code, slots in DEFAULT_LAYOUTS.items()
    }
    templates = tuple(
        cat.FormulaTemplate(
            product_type=data["product_type"],
            component=data["component"],
            expression=data["expression"],
            style=data["style"],
            rounding_level=data["rounding_level"],
            priority=data["priority"],
            plain_english=data["plain_english"],
        )
        for data in DEFAULT_FORMULAS
    )
    materials = {}
    for sku, data in DEFAULT_MATERIALS.items():
        attributes = {k: data[k] for k in ("width_inches", "length_feet", "qty_per_unit")
                      if k in data}
        attributes["unit_cost"] = data["unit_cost"]
        materials[sku] = cat.Material(sku, data["name"], data.get("unit", "Each"),
                                      data["unit_cost"], attributes)
    labor_codes = {
        code: cat.LaborCode(code, data["description"], data.get("unit", "LF"), data["rate"])
        for code, data in DEFAULT_LABOR_CODES.items()
    }
    rules = tuple(
        cat.EligibilityRule(
            product_type=data["product_type"],
            component=data["component"],
            material_sku=data.get("material"),
            labor_code=data.get("labor_code"),
            predicate=predicate_from_filter(data["filter"]),
            is_default=data.get("is_default", False),
            display_order=data["order"],
            quantity_formula=data.get("formula"),
        )
        for data in DEFAULT_ELIGIBILITY
    )
    return cat.Catalog(
        product_types=product_types,
        styles=styles,
        components=components,
        layouts=layouts,
        templates=templates,
        materials=materials,
        labor_codes=labor_codes,
        rules=rules,
    )
