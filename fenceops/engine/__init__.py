"""
BOM formula & pricing resolution engine.

Pure Python. No database access. Given a frozen Catalog (and PricingBook for
prices) produce exact component quantities, labor lines and sell prices.
"""

from .calculator import BomCalculator, BomResult, ComponentLine, LaborLine, ProjectResult
from .catalog import Catalog
from .errors import BomEngineError, ConfigurationError, EvaluationError, UnknownReferenceError
from .expression import evaluate, parse
from .pricing import PriceResolver, PricingBook, ResolvedPrice
