"""
BOM calculator — the calculation entry point.

Input: product type code, style code, run inputs, optional material selections
Output: BomResult (component lines, labor lines, costs)

Per visible component, in execution order:
    resolve template -> evaluate -> round -> store <component>_qty -> attach material
Labor components expand into one line per eligible labor code.
Project-level quantities are finalized after the last component.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

from .catalog import Catalog, Material
from .context import CalculationContext, build_context
from .eligibility import EligibilityResolver
from .errors import ConfigurationError
from .expression import evaluate_number
from .formula_resolver import FormulaResolver
from .rounding import PROJECT, RoundingAggregator

logger = logging.getLogger(__name__)

DEFAULT_LABOR_FORMULA = "[run_length]"


@dataclass(frozen=True)
class ComponentLine:
    component_code: str
    name: str
    quantity: float
    unit: str
    raw_quantity: float
    rounding_level: str
    formula: str
    material: Optional[Material] = None

    @property
    def unit_cost(self) -> float:
        return self.material.unit_cost if self.material is not None else 0.0

    @property
    def extended_cost(self) -> float:
        return round(self.quantity * self.unit_cost, 2)


@dataclass(frozen=True)
class LaborLine:
    component_code: str
    labor_code: str
    description: str
    quantity: float
    unit: str
    rate: float

    @property
    def extended_cost(self) -> float:
        return round(self.quantity * self.rate, 2)


@dataclass(frozen=True)
class BomResult:
    product_type: str
    style: Optional[str]
    inputs: Mapping
    components: list = field(default_factory=list)
    labor_lines: list = field(default_factory=list)

    @property
    def material_cost(self) -> float:
        return round(sum(line.extended_cost for line in self.components), 2)

    @property
    def labor_cost(self) -> float:
        return round(sum(line.extended_cost for line in self.labor_lines), 2)

    @property
    def total_cost(self) -> float:
        return round(self.material_cost + self.labor_cost, 2)

    def quantity(self, component_code: str, default=None):
        for line in self.components:
            if line.component_code == component_code:
                return line.quantity
        return default


@dataclass(frozen=True)
class ProjectTotal:
    component_code: str
    quantity: float
    unit: str
    rounding_level: str
    material: Optional[Material] = None

    @property
    def extended_cost(self) -> float:
        unit_cost = self.material.unit_cost if self.material is not None else 0.0
        return round(self.quantity * unit_cost, 2)


@dataclass(frozen=True)
class ProjectResult:
    lines: list = field(default_factory=list)     # BomResult per run, raw project-level values
    totals: list = field(default_factory=list)    # ProjectTotal per (component, material)
    labor_lines: list = field(default_factory=list)

    @property
    def material_cost(self) -> float:
        return round(sum(t.extended_cost for t in self.totals), 2)

    @property
    def labor_cost(self) -> float:
        return round(sum(line.extended_cost for line in self.labor_lines), 2)

    @property
    def total_cost(self) -> float:
        return round(self.material_cost + self.labor_cost, 2)


class BomCalculator:
    """Computes BOMs against one frozen Catalog snapshot."""

    def __init__(self, catalog: Catalog, default_line_count: int = 1):
        self.catalog = catalog
        self.default_line_count = default_line_count
        self.formulas = FormulaResolver(catalog.templates)
        self.eligibility = EligibilityResolver(
            catalog.rules, catalog.materials, catalog.labor_codes
        )

    def validate(self) -> list:
        """Load-time configuration problems (empty list when the catalog is sound)."""
        problems = self.formulas.validate() + self.eligibility.validate()
        for product_type, slots in sorted(self.catalog.layouts.items()):
            for slot in slots:
                if slot.component not in self.catalog.components:
                    problems.append(
                        f"{product_type}: layout references unknown component '{slot.component}'"
                    )
                    continue
                if self.catalog.components[slot.component].is_labor:
                    continue
                styles = [None] + [s.code for s in self.catalog.styles_for(product_type)]
                for style in styles:
                    try:
                        self.formulas.resolve(product_type, style, slot.component)
                    except ConfigurationError as e:
                        problems.append(str(e))
        return problems

    # --- Entry points ---

    def compute_bom(self, product_type: str, style: Optional[str], inputs: Mapping,
                    materials: Optional[Mapping] = None) -> BomResult:
        aggregator = RoundingAggregator()
        result, _ = self._compute_line(0, product_type, style, inputs, materials, aggregator)
        totals = aggregator.finalize()
        components = [
            replace(line, quantity=totals[_aggregate_key(line)])
            if line.rounding_level == PROJECT else line
            for line in result.components
        ]
        return replace(result, components=components)

    def compute_project(self, lines: list) -> ProjectResult:
        """
        Compute several runs as one project.

        Input: list of dicts with product_type, style, inputs, materials
        Output: ProjectResult. Project-level consumables are summed raw across
        every run and rounded once.
        """
        if not lines:
            raise ConfigurationError("a project needs at least one line")
        aggregator = RoundingAggregator()
        results = []
        picked = {}
        labor_lines = []
        for index, line in enumerate(lines):
            product_type = line.get("product_type")
            if not product_type:
                raise ConfigurationError(f"project line {index} has no product_type")
            result, line_picks = self._compute_line(
                index,
                product_type,
                line.get("style"),
                line.get("inputs") or {},
                line.get("materials"),
                aggregator,
            )
            results.append(result)
            picked.update(line_picks)
            labor_lines.extend(result.labor_lines)

        totals = []
        for key, quantity in aggregator.finalize().items():
            component_code, _ = key
            level, unit, material = picked[key]
            totals.append(ProjectTotal(component_code, quantity, unit, level, material))
        return ProjectResult(lines=results, totals=totals, labor_lines=labor_lines)

    # --- Internals ---

    def _compute_line(self, line_key, product_type_code: str, style_code: Optional[str],
                      inputs: Mapping, materials: Optional[Mapping],
                      aggregator: RoundingAggregator):
        catalog = self.catalog
        product_type = catalog.product_type(product_type_code)
        style = catalog.style(product_type_code, style_code)
        context = build_context(inputs, product_type, style, self.default_line_count)
        selections = dict(materials or {})
        chosen = {}

        def selected(component_code: str, variables: Mapping) -> Material:
            if component_code not in chosen:
                if component_code in selections:
                    option = self.eligibility.find_option(
                        product_type_code, component_code, variables, selections[component_code]
                    )
                else:
                    option = self.eligibility.default_option(
                        product_type_code, component_code, variables
                    )
                chosen[component_code] = option.target
            return chosen[component_code]

        components = []
        labor_lines = []
        picks = {}
        for slot in catalog.layout(product_type_code):
            variables = context.variables()
            if not slot.visibility.matches(variables):
                logger.debug("Skipping %s: not visible for %s", slot.component, product_type_code)
                continue
            component = catalog.component(slot.component)
            if component.is_labor:
                labor_lines.extend(self._labor_lines(product_type_code, component, context))
                continue

            template = self.formulas.resolve(product_type_code, style_code, component.code)

            def attribute(name, attr, variables=variables):
                material = selected(name, variables)
                value = material.attributes.get(attr)
                if value is None:
                    value = material.attributes.get(attr.lower())
                return value

            raw = evaluate_number(template.expression, variables, attribute)
            material = selected(component.code, variables)
            key = (component.code, material.sku)
            value = aggregator.add((line_key, component.code), key, raw,
                                   template.rounding_level)
            context.computed.set(component.code, value)
            logger.debug("%s = %s (raw %s, %s)", component.code, value, raw,
                         template.rounding_level)

            picks[key] = (template.rounding_level, component.unit, material)
            components.append(ComponentLine(
                component_code=component.code,
                name=component.name,
                quantity=value,
                unit=component.unit,
                raw_quantity=raw,
                rounding_level=template.rounding_level,
                formula=template.expression,
                material=material,
            ))

        result = BomResult(
            product_type=product_type_code,
            style=style_code,
            inputs=context.inputs.as_dict(),
            components=components,
            labor_lines=labor_lines,
        )
        return result, picks

    def _labor_lines(self, product_type: str, component, context: CalculationContext) -> list:
        variables = context.variables()
        options = self.eligibility.eligible_options(product_type, component.code, variables)
        if not options:
            raise ConfigurationError(
                f"no eligible labor codes for '{component.code}' (product type '{product_type}')"
            )
        lines = []
        for option in options:
            formula = option.rule.quantity_formula or DEFAULT_LABOR_FORMULA
            quantity = max(0, evaluate_number(formula, variables))
            if quantity == 0:
                continue
            labor = option.target
            lines.append(LaborLine(
                component_code=component.code,
                labor_code=labor.code,
                description=labor.description,
                quantity=quantity,
                unit=labor.unit,
                rate=labor.rate,
            ))
        return lines


def _aggregate_key(line: ComponentLine):
    return (line.component_code, line.material.sku)
