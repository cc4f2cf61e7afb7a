"""
SKU standard cost from the BOM engine.

A SKU's standard cost is the per-foot cost of a reference job built from the
SKU itself: its stored variables, height and post type as inputs, its
component -> material picks as the material selection, over 100 linear feet
in 4 lines with no gates. Material and labor per foot are stored alongside
the total.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from . import models
from .engine.calculator import BomCalculator
from .engine.errors import BomEngineError
from .loader import load_calculator

logger = logging.getLogger(__name__)

STANDARD_RUN_LENGTH = 100  # linear feet
STANDARD_LINE_COUNT = 4
STANDARD_GATE_COUNT = 0


@dataclass(frozen=True)
class SkuCost:
    sku: str
    material_cost: float   # whole reference job
    labor_cost: float

    @property
    def material_per_foot(self) -> float:
        return round(self.material_cost / STANDARD_RUN_LENGTH, 2)

    @property
    def labor_per_foot(self) -> float:
        return round(self.labor_cost / STANDARD_RUN_LENGTH, 2)

    @property
    def cost_per_foot(self) -> float:
        return round((self.material_cost + self.labor_cost) / STANDARD_RUN_LENGTH, 2)


def sku_inputs(sku: models.Sku) -> dict:
    inputs = dict(sku.variables or {})
    if sku.height is not None:
        inputs["height"] = sku.height
    if sku.post_type is not None:
        inputs["post_type"] = sku.post_type
    inputs["run_length"] = STANDARD_RUN_LENGTH
    inputs["line_count"] = STANDARD_LINE_COUNT
    inputs["gate_count"] = STANDARD_GATE_COUNT
    return inputs


def sku_cost(calculator: BomCalculator, sku: models.Sku) -> SkuCost:
    """Run the reference job for one SKU. Engine errors propagate."""
    result = calculator.compute_bom(
        sku.product_type.code,
        sku.product_style.code if sku.product_style else None,
        sku_inputs(sku),
        materials=sku.components or None,
    )
    return SkuCost(sku.code, result.material_cost, result.labor_cost)


def recalculate_sku_costs(db: Session, calculator: Optional[BomCalculator] = None) -> dict:
    """
    Refresh standard_cost (and its material / labor split) on every active SKU.

    Returns {"updated": [codes], "failed": {code: message}}. A SKU whose
    configuration no longer computes keeps its previous cost and is reported
    under "failed". Flushes; the caller commits.
    """
    calculator = calculator or load_calculator(db)
    updated, failed = [], {}
    now = datetime.utcnow()
    query = db.query(models.Sku).filter(models.Sku.is_active.is_(True)).order_by(models.Sku.code)
    for sku in query:
        try:
            cost = sku_cost(calculator, sku)
        except BomEngineError as e:
            logger.warning("SKU %s: standard cost not recalculated: %s", sku.code, e)
            failed[sku.code] = str(e)
            continue
        sku.standard_material_cost = cost.material_per_foot
        sku.standard_labor_cost = cost.labor_per_foot
        sku.standard_cost = cost.cost_per_foot
        sku.standard_cost_calculated_at = now
        updated.append(sku.code)
    db.flush()
    logger.info("Recalculated standard cost for %d SKUs (%d failed)", len(updated), len(failed))
    return {"updated": updated, "failed": failed}
