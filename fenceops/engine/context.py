"""
Variable context builder.

Two namespaces:
    InputVariables:     author-supplied run parameters (run_length, height,
                        rail_count, gate_count, line_count, post_spacing and
                        free-form product variables such as post_type)
    ComputedQuantities: <component>_qty values produced while a BOM is being
                        calculated, in execution order

Formulas see a merged read-only view (CalculationContext.variables()).
An input name ending in "_qty" is rejected, so a computed quantity can never
collide with (or be shadowed by) an input.

post_spacing precedence: explicit input > style formula_adjustments >
product type default_post_spacing.
"""

from types import MappingProxyType
from typing import Mapping, Optional

from .errors import ConfigurationError, EvaluationError

QTY_SUFFIX = "_qty"

# Canonical names for the standard run inputs.
STANDARD_INPUTS = ("run_length", "height", "rail_count", "gate_count",
                   "line_count", "post_spacing")

# Legacy input names accepted from older callers / stored SKU variables.
INPUT_ALIASES = {
    "Quantity": "run_length",
    "quantity": "run_length",
    "Lines": "line_count",
    "lines": "line_count",
    "Gates": "gate_count",
    "gates": "gate_count",
    "Height": "height",
    "Rails": "rail_count",
    "rails": "rail_count",
    "PostSpacing": "post_spacing",
}


def quantity_variable(component_code: str) -> str:
    """Name under which a component's computed quantity is visible to later formulas."""
    return f"{component_code}{QTY_SUFFIX}"


def _coerce(name: str, value):
    """Normalise an input value: numeric strings become numbers, 'true'/'false' booleans."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        lowered = text.lower()
        if lowered in ("true", "false"):
            return lowered == "true"
        try:
            number = float(text)
        except ValueError:
            return text
        return int(number) if number.is_integer() and "." not in text else number
    raise EvaluationError(f"input '{name}' has unsupported type {type(value).__name__}")


class InputVariables:
    """Immutable author-supplied inputs. Names ending in '_qty' are not allowed."""

    def __init__(self, values: Optional[Mapping] = None):
        normalised = {}
        for raw_name, value in (values or {}).items():
            name = INPUT_ALIASES.get(raw_name, raw_name)
            if name.endswith(QTY_SUFFIX):
                raise EvaluationError(
                    f"input '{raw_name}' uses the reserved '{QTY_SUFFIX}' suffix"
                )
            if value is None:
                continue
            if name in normalised and raw_name != name:
                # canonical name already supplied explicitly; keep it
                continue
            normalised[name] = _coerce(raw_name, value)
        self._values = MappingProxyType(normalised)

    def get(self, name: str, default=None):
        return self._values.get(name, default)

    def __contains__(self, name) -> bool:
        return name in self._values

    def as_dict(self) -> dict:
        return dict(self._values)


class ComputedQuantities:
    """Per-calculation store of <component>_qty values. Each component is set once."""

    def __init__(self):
        self._values = {}

    def set(self, component_code: str, quantity) -> None:
        key = quantity_variable(component_code)
        if key in self._values:
            raise ConfigurationError(
                f"component '{component_code}' computed twice in one calculation"
            )
        self._values[key] = quantity

    def get(self, component_code: str, default=None):
        return self._values.get(quantity_variable(component_code), default)

    def as_dict(self) -> dict:
        return dict(self._values)


class CalculationContext:
    """Inputs + computed quantities for a single BOM calculation."""

    def __init__(self, inputs: InputVariables, computed: Optional[ComputedQuantities] = None):
        self.inputs = inputs
        self.computed = computed if computed is not None else ComputedQuantities()

    def variables(self) -> Mapping:
        merged = self.inputs.as_dict()
        merged.update(self.computed.as_dict())
        return MappingProxyType(merged)

    def value(self, name: str, default=None):
        if name.endswith(QTY_SUFFIX):
            return self.computed.get(name[: -len(QTY_SUFFIX)], default)
        return self.inputs.get(name, default)


def build_context(inputs: Optional[Mapping], product_type=None, style=None,
                  default_line_count: int = 1) -> CalculationContext:
    """
    Build the evaluation context for one calculation.

    Input: raw inputs dict, the ProductType and ProductStyle (either may be None).
    Output: CalculationContext with style adjustments and product-type defaults
    filled in wherever the caller did not supply a value. The style code itself
    is exposed as the "style" variable.
    """
    explicit = InputVariables(inputs)
    values = explicit.as_dict()

    adjustments = dict(style.formula_adjustments) if style is not None else {}
    for name, value in adjustments.items():
        if name.endswith(QTY_SUFFIX):
            raise ConfigurationError(
                f"style '{style.code}' adjustment '{name}' uses the reserved "
                f"'{QTY_SUFFIX}' suffix"
            )
        values.setdefault(name, _coerce(name, value))

    if "post_spacing" not in values and product_type is not None:
        if product_type.default_post_spacing is not None:
            values["post_spacing"] = product_type.default_post_spacing

    values.setdefault("line_count", default_line_count)
    values.setdefault("gate_count", 0)
    if style is not None:
        values.setdefault("style", style.code)
    return CalculationContext(InputVariables(values))
