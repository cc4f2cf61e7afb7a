"""
Engine error taxonomy.

EvaluationError:    a formula could not be evaluated (bad syntax, unresolved
                    variable, division by zero, type mismatch).
ConfigurationError: the stored configuration cannot produce an answer
                    (missing/ambiguous template, no eligible options,
                    conflicting defaults).

Both indicate bad seed data. They propagate to the caller and are never
patched over with a default value.
"""

from typing import Optional


class BomEngineError(Exception):
    """Base class for every failure raised by the BOM engine."""

    kind = "engine"


class EvaluationError(BomEngineError):
    kind = "evaluation"

    def __init__(self, message: str, expression: Optional[str] = None,
                 position: Optional[int] = None):
        self.message = message
        self.expression = expression
        self.position = position
        detail = message
        if expression is not None:
            detail = f"{message} in {expression!r}"
            if position is not None:
                detail += f" at position {position}"
        super().__init__(detail)


class ConfigurationError(BomEngineError):
    kind = "configuration"

    def __init__(self, message: str, problems: Optional[list] = None):
        self.message = message
        self.problems = list(problems or [])
        super().__init__(message)


class UnknownReferenceError(BomEngineError, LookupError):
    """A product type, style, component, SKU or material code does not exist."""

    kind = "not_found"
