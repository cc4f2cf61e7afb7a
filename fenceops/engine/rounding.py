"""
Rounding aggregator.

Rounding levels (stored on each formula template):
    sku:     ceil each line immediately; you cannot buy half a picket
    project: keep raw values, sum across every line of the project, ceil once
             (nails by the box, concrete by the bag)
    none:    full precision, never rounded

sku totals are sums of already-rounded line values; project totals are
ceil(sum(raw)). A component is tracked under exactly one level, so regrouping
lines into projects never changes sku-level results.
"""

import logging
import math
from collections import OrderedDict
from typing import Hashable

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SKU = "sku"
PROJECT = "project"
NONE = "none"

_CEIL_PRECISION = 9


def ceil_quantity(value: float) -> int:
    """Ceil after snapping float noise, never below zero."""
    return max(0, math.ceil(round(value, _CEIL_PRECISION)))


class RoundingAggregator:

    def __init__(self):
        self._levels = {}
        self._totals = OrderedDict()
        self.lines = []   # (line_key, component, raw, value, level)

    def add(self, line_key: Hashable, component: str, raw: float, level: str):
        """Record one raw quantity. Returns the value to show on that line."""
        if level not in (SKU, PROJECT, NONE):
            raise ConfigurationError(f"unknown rounding level '{level}' for '{component}'")
        known = self._levels.setdefault(component, level)
        if known != level:
            raise ConfigurationError(
                f"component '{component}' rounded at both '{known}' and '{level}' level"
            )
        if raw < 0:
            logger.debug("Clamping negative quantity %s for %s to 0", raw, component)
            raw = 0

        if level == SKU:
            value = ceil_quantity(raw)
        else:
            value = raw
        self._totals[component] = self._totals.get(component, 0) + value
        self.lines.append((line_key, component, raw, value, level))
        return value

    def level(self, component: str):
        return self._levels.get(component)

    def finalize(self) -> dict:
        """Per-component totals for everything added so far."""
        totals = {}
        for component, total in self._totals.items():
            if self._levels[component] == PROJECT:
                totals[component] = ceil_quantity(total)
            else:
                totals[component] = total
        return totals
