"""
Frozen configuration snapshot consumed by the engine.

Built once by fenceops.loader from the database (or directly in tests) and
never mutated during a calculation. Nothing in here touches the database.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from .errors import UnknownReferenceError
from .predicates import ALWAYS

ROUNDING_LEVELS = ("sku", "project", "none")


@dataclass(frozen=True)
class ProductType:
    code: str
    name: str
    default_post_spacing: Optional[float] = None


@dataclass(frozen=True)
class ProductStyle:
    code: str
    product_type: str
    name: str = ""
    formula_adjustments: Mapping = field(default_factory=dict)


@dataclass(frozen=True)
class ComponentType:
    code: str
    name: str
    unit: str = "Each"
    is_labor: bool = False


@dataclass(frozen=True)
class ProductTypeComponent:
    """A component's slot in a product type's BOM. display_order is execution order."""
    product_type: str
    component: str
    display_order: int = 0
    visibility: object = ALWAYS


@dataclass(frozen=True)
class FormulaTemplate:
    product_type: str
    component: str
    expression: str
    style: Optional[str] = None  # None = wildcard, applies to every style
    rounding_level: str = "sku"
    priority: int = 0
    is_active: bool = True
    plain_english: str = ""
    id: Optional[int] = None

    def describe(self) -> str:
        style = self.style or "*"
        return f"{self.product_type}/{style}/{self.component} (priority {self.priority})"


@dataclass(frozen=True)
class Material:
    sku: str
    name: str
    unit: str = "Each"
    unit_cost: float = 0.0
    attributes: Mapping = field(default_factory=dict)


@dataclass(frozen=True)
class LaborCode:
    code: str
    description: str
    unit: str = "LF"
    rate: float = 0.0


@dataclass(frozen=True)
class EligibilityRule:
    """Links a (product type, component) to one material or one labor code."""
    product_type: str
    component: str
    material_sku: Optional[str] = None
    labor_code: Optional[str] = None
    predicate: object = ALWAYS
    is_default: bool = False
    display_order: int = 0
    quantity_formula: Optional[str] = None
    id: Optional[int] = None

    @property
    def target_code(self) -> str:
        return self.material_sku or self.labor_code


@dataclass(frozen=True)
class Catalog:
    product_types: Mapping = field(default_factory=dict)   # code -> ProductType
    styles: Mapping = field(default_factory=dict)          # (type, code) -> ProductStyle
    components: Mapping = field(default_factory=dict)      # code -> ComponentType
    layouts: Mapping = field(default_factory=dict)         # type -> tuple[ProductTypeComponent]
    templates: Tuple = ()
    materials: Mapping = field(default_factory=dict)       # sku -> Material
    labor_codes: Mapping = field(default_factory=dict)     # code -> LaborCode
    rules: Tuple = ()

    def product_type(self, code: str) -> ProductType:
        if code not in self.product_types:
            raise UnknownReferenceError(f"unknown product type '{code}'")
        return self.product_types[code]

    def style(self, product_type: str, code: Optional[str]) -> Optional[ProductStyle]:
        if code is None:
            return None
        key = (product_type, code)
        if key not in self.styles:
            raise UnknownReferenceError(f"unknown style '{code}' for product type '{product_type}'")
        return self.styles[key]

    def styles_for(self, product_type: str) -> list:
        return sorted(
            (s for (pt, _), s in self.styles.items() if pt == product_type),
            key=lambda s: s.code,
        )

    def component(self, code: str) -> ComponentType:
        if code not in self.components:
            raise UnknownReferenceError(f"unknown component type '{code}'")
        return self.components[code]

    def layout(self, product_type: str) -> Tuple:
        """Components of a product type in execution order."""
        self.product_type(product_type)
        slots = self.layouts.get(product_type, ())
        return tuple(sorted(slots, key=lambda s: (s.display_order, s.component)))

    def material(self, sku: str) -> Material:
        if sku not in self.materials:
            raise UnknownReferenceError(f"unknown material '{sku}'")
        return self.materials[sku]

    def labor_code(self, code: str) -> LaborCode:
        if code not in self.labor_codes:
            raise UnknownReferenceError(f"unknown labor code '{code}'")
        return self.labor_codes[code]
