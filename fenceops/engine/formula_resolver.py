"""
Component formula resolver.

Picks the formula template for (product type, style, component):
  1. active templates for the product type + component
  2. whose style is the requested style or the wildcard (None)
  3. highest priority wins; a tie at the top is a configuration error

validate() catches the same problems up front, when the catalog is loaded,
instead of at the first calculation that happens to hit them.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from .catalog import ROUNDING_LEVELS, FormulaTemplate
from .errors import ConfigurationError, EvaluationError
from .expression import parse

logger = logging.getLogger(__name__)


class FormulaResolver:

    def __init__(self, templates: Iterable[FormulaTemplate]):
        self._by_component = defaultdict(list)
        for template in templates:
            if template.is_active:
                self._by_component[(template.product_type, template.component)].append(template)

    def candidates(self, product_type: str, style: Optional[str], component: str) -> list:
        """Active templates that apply to the request, highest priority first."""
        pool = self._by_component.get((product_type, component), [])
        matching = [t for t in pool if t.style is None or t.style == style]
        return sorted(matching, key=lambda t: (-t.priority, t.style is None))

    def resolve(self, product_type: str, style: Optional[str], component: str) -> FormulaTemplate:
        matching = self.candidates(product_type, style, component)
        if not matching:
            raise ConfigurationError(
                f"no formula for component '{component}' "
                f"(product type '{product_type}', style '{style or '*'}')"
            )
        best = matching[0]
        tied = [t for t in matching if t.priority == best.priority]
        if len(tied) > 1:
            raise ConfigurationError(
                f"ambiguous formula for component '{component}' "
                f"(product type '{product_type}', style '{style or '*'}'): "
                + ", ".join(t.describe() for t in tied),
                problems=[t.describe() for t in tied],
            )
        logger.debug("Resolved %s -> %s", component, best.describe())
        return best

    def validate(self) -> list:
        """Return a list of problems with the active template set (empty when clean)."""
        problems = []
        for (product_type, component), pool in sorted(self._by_component.items()):
            seen = {}
            for template in pool:
                key = template.style
                if key in seen:
                    problems.append(
                        f"duplicate active formula {template.describe()} "
                        f"and {seen[key].describe()}"
                    )
                else:
                    seen[key] = template

                if template.rounding_level not in ROUNDING_LEVELS:
                    problems.append(
                        f"{template.describe()}: unknown rounding level "
                        f"'{template.rounding_level}'"
                    )
                try:
                    parse(template.expression)
                except EvaluationError as e:
                    problems.append(f"{template.describe()}: {e}")

            wildcard = seen.get(None)
            if wildcard is None:
                continue
            for style, template in sorted(seen.items(), key=lambda kv: kv[0] or ""):
                if style is None:
                    continue
                if template.priority == wildcard.priority:
                    problems.append(
                        f"equal-priority tie between {template.describe()} "
                        f"and wildcard {wildcard.describe()}"
                    )
                elif template.priority < wildcard.priority:
                    problems.append(
                        f"{template.describe()} is shadowed by wildcard {wildcard.describe()}"
                    )
        return problems

    def check(self) -> None:
        problems = self.validate()
        if problems:
            raise ConfigurationError(
                f"{len(problems)} formula template problem(s)", problems=problems
            )
