"""
Eligibility resolver — which materials / labor codes may fill a component.

Input: (product type, component, context variables)
Output: EligibleOption list, ordered by display_order then code

Each rule's attribute filter is a tagged predicate (see predicates.py); a rule
applies when its predicate matches the context.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, Mapping, Optional

from .catalog import EligibilityRule
from .errors import ConfigurationError, EvaluationError
from .expression import parse
from .predicates import may_overlap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EligibleOption:
    rule: EligibilityRule
    target: object          # Material or LaborCode
    is_default: bool = False

    @property
    def code(self) -> str:
        return self.rule.target_code


class EligibilityResolver:

    def __init__(self, rules: Iterable[EligibilityRule], materials: Mapping,
                 labor_codes: Mapping):
        self.materials = materials
        self.labor_codes = labor_codes
        self._rules = defaultdict(list)
        for rule in rules:
            self._rules[(rule.product_type, rule.component)].append(rule)

    def _target(self, rule: EligibilityRule):
        if rule.material_sku is not None:
            target = self.materials.get(rule.material_sku)
        else:
            target = self.labor_codes.get(rule.labor_code)
        if target is None:
            raise ConfigurationError(
                f"eligibility rule for {rule.product_type}/{rule.component} "
                f"references unknown '{rule.target_code}'"
            )
        return target

    def eligible_options(self, product_type: str, component: str,
                         context: Mapping) -> list:
        rules = [
            r for r in self._rules.get((product_type, component), [])
            if r.predicate.matches(context)
        ]
        rules.sort(key=lambda r: (r.display_order, r.target_code))
        return [EligibleOption(r, self._target(r), r.is_default) for r in rules]

    def default_option(self, product_type: str, component: str,
                       context: Mapping) -> EligibleOption:
        """The default option, or the first by display order when none is flagged."""
        options = self.eligible_options(product_type, component, context)
        if not options:
            raise ConfigurationError(
                f"no eligible options for component '{component}' "
                f"(product type '{product_type}')"
            )
        defaults = [o for o in options if o.is_default]
        if len(defaults) > 1:
            raise ConfigurationError(
                f"{len(defaults)} default options match component '{component}' "
                f"(product type '{product_type}'): "
                + ", ".join(o.code for o in defaults)
            )
        if defaults:
            return defaults[0]
        return options[0]

    def find_option(self, product_type: str, component: str, context: Mapping,
                    code: str) -> EligibleOption:
        """Look up an explicitly selected option; it must be eligible in this context."""
        for option in self.eligible_options(product_type, component, context):
            if option.code == code:
                return option
        raise ConfigurationError(
            f"'{code}' is not eligible for component '{component}' "
            f"(product type '{product_type}')"
        )

    def validate(self) -> list:
        problems = []
        for (product_type, component), rules in sorted(self._rules.items()):
            where = f"{product_type}/{component}"
            for rule in rules:
                if (rule.material_sku is None) == (rule.labor_code is None):
                    problems.append(f"{where}: rule must name exactly one material or labor code")
                    continue
                try:
                    self._target(rule)
                except ConfigurationError as e:
                    problems.append(str(e))
                if rule.quantity_formula:
                    try:
                        parse(rule.quantity_formula)
                    except EvaluationError as e:
                        problems.append(f"{where} {rule.target_code}: {e}")

            defaults = [r for r in rules if r.is_default]
            for a, b in combinations(defaults, 2):
                if may_overlap(a.predicate, b.predicate):
                    problems.append(
                        f"{where}: defaults '{a.target_code}' and '{b.target_code}' "
                        f"can match the same context"
                    )
        return problems
