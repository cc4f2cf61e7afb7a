"""
Tagged predicates for eligibility filters and component visibility.

Stored JSON filter -> predicate:
    {"post_type": "STEEL"}                 Equals
    {"height": [6, 8]}                     OneOf
    {"height": {"in": [6, 8]}}             OneOf
    {"rail_count": {"min": 3}}             Range (inclusive)
    {"height": {"gt": 6}}                  Range (exclusive)
    {"height_min": 4, "height_max": 6}     Range (legacy suffix form)

Several keys combine with AllOf. A key missing from the context never
matches. String comparison is exact.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from .errors import ConfigurationError


def _same(a, b) -> bool:
    # bool is an int subclass; keep True from matching 1
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    return a == b


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class Equals:
    key: str
    value: Any

    def matches(self, context: Mapping) -> bool:
        if self.key not in context or context[self.key] is None:
            return False
        return _same(context[self.key], self.value)


@dataclass(frozen=True)
class OneOf:
    key: str
    values: Tuple

    def matches(self, context: Mapping) -> bool:
        if self.key not in context or context[self.key] is None:
            return False
        actual = context[self.key]
        return any(_same(actual, v) for v in self.values)


@dataclass(frozen=True)
class Range:
    key: str
    min: Optional[float] = None
    max: Optional[float] = None
    min_exclusive: bool = False
    max_exclusive: bool = False

    def matches(self, context: Mapping) -> bool:
        actual = context.get(self.key)
        if not _is_number(actual):
            return False
        if self.min is not None:
            if actual < self.min or (self.min_exclusive and actual == self.min):
                return False
        if self.max is not None:
            if actual > self.max or (self.max_exclusive and actual == self.max):
                return False
        return True

    def admits(self, value) -> bool:
        return self.matches({self.key: value})


@dataclass(frozen=True)
class AllOf:
    parts: Tuple = ()

    def matches(self, context: Mapping) -> bool:
        return all(p.matches(context) for p in self.parts)


ALWAYS = AllOf(())


def _freeze(value):
    if isinstance(value, list):
        return tuple(value)
    return value


_BOUNDS = ("min", "max", "gt", "lt")


def _range(key: str, bounds: Mapping) -> Range:
    unknown = set(bounds) - set(_BOUNDS)
    if unknown:
        raise ConfigurationError(f"filter '{key}' has unknown operator {sorted(unknown)!r}")
    for bound in _BOUNDS:
        if bounds.get(bound) is not None and not _is_number(bounds[bound]):
            raise ConfigurationError(f"filter '{key}': {bound} must be a number")
    if bounds.get("min") is not None and bounds.get("gt") is not None:
        raise ConfigurationError(f"filter '{key}': use either min or gt, not both")
    if bounds.get("max") is not None and bounds.get("lt") is not None:
        raise ConfigurationError(f"filter '{key}': use either max or lt, not both")
    lower_open = bounds.get("gt") is not None
    upper_open = bounds.get("lt") is not None
    return Range(
        key,
        bounds["gt"] if lower_open else bounds.get("min"),
        bounds["lt"] if upper_open else bounds.get("max"),
        min_exclusive=lower_open,
        max_exclusive=upper_open,
    )


def predicate_from_filter(conditions: Optional[Mapping]):
    """Parse a stored attribute filter / visibility condition. None or {} -> ALWAYS."""
    if not conditions:
        return ALWAYS
    if not isinstance(conditions, Mapping):
        raise ConfigurationError(f"attribute filter must be an object, got {conditions!r}")

    parts = []
    ranges = {}
    for key in sorted(conditions):
        value = conditions[key]
        if key.endswith("_min") or key.endswith("_max"):
            base, bound = key[:-4], key[-3:]
            if not _is_number(value):
                raise ConfigurationError(f"filter bound '{key}' must be a number")
            ranges.setdefault(base, {})[bound] = value
            continue
        if isinstance(value, Mapping):
            if "in" in value:
                if not isinstance(value["in"], list):
                    raise ConfigurationError(f"filter '{key}': 'in' must be a list")
                parts.append(OneOf(key, tuple(value["in"])))
            elif set(value) & set(_BOUNDS):
                parts.append(_range(key, value))
            else:
                raise ConfigurationError(f"filter '{key}' has unknown operator {value!r}")
        elif isinstance(value, list):
            parts.append(OneOf(key, tuple(value)))
        else:
            parts.append(Equals(key, _freeze(value)))

    for base in sorted(ranges):
        bounds = ranges[base]
        parts.append(Range(base, bounds.get("min"), bounds.get("max")))

    if len(parts) == 1:
        return parts[0]
    return AllOf(tuple(parts))


def _atoms(predicate) -> list:
    if isinstance(predicate, AllOf):
        return [atom for part in predicate.parts for atom in _atoms(part)]
    return [predicate]


def _values(atom):
    if isinstance(atom, Equals):
        return (atom.value,)
    if isinstance(atom, OneOf):
        return atom.values
    return None


def _ranges_disjoint(a: Range, b: Range) -> bool:
    for low, high in ((a, b), (b, a)):
        if low.min is None or high.max is None:
            continue
        if low.min > high.max:
            return True
        if low.min == high.max and (low.min_exclusive or high.max_exclusive):
            return True
    return False


def _disjoint(a, b) -> bool:
    a_values, b_values = _values(a), _values(b)
    if a_values is not None and b_values is not None:
        return not any(_same(x, y) for x in a_values for y in b_values)
    if a_values is not None:
        return not any(b.admits(v) for v in a_values)
    if b_values is not None:
        return not any(a.admits(v) for v in b_values)
    return _ranges_disjoint(a, b)


def may_overlap(a, b) -> bool:
    """True unless some key shared by both predicates has constraints no value satisfies."""
    for x in _atoms(a):
        for y in _atoms(b):
            if x.key == y.key and _disjoint(x, y):
                return False
    return True
