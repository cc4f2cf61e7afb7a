from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models, schemas
from ..costing import STANDARD_RUN_LENGTH, recalculate_sku_costs, sku_cost
from ..database import atomic, get_db
from ..engine.errors import BomEngineError
from ..loader import load_calculator, load_price_resolver
from .bom import engine_http_error

router = APIRouter(prefix="/pricing", tags=["pricing"])


def _get_sku(db: Session, code: str) -> models.Sku:
    sku = db.query(models.Sku).filter(models.Sku.code == code).first()
    if not sku:
        raise HTTPException(status_code=404, detail=f"SKU {code} not found")
    return sku


def _base_cost(db: Session, request: schemas.PriceRequest, sku: models.Sku):
    """Request value, then the stored standard cost, then a fresh BOM run."""
    if request.base_cost is not None:
        return request.base_cost, "request"
    if sku.standard_cost is not None:
        return sku.standard_cost, "standard_cost"
    try:
        cost = sku_cost(load_calculator(db), sku)
    except BomEngineError as e:
        raise engine_http_error(e)
    return cost.cost_per_foot, "bom"


@router.post("/resolve", response_model=schemas.PriceResponse)
def resolve_price(request: schemas.PriceRequest, db: Session = Depends(get_db)):
    """
    Resolve the sell price of a SKU for a community / client / business unit.
    base_cost defaults to the SKU's standard cost; a SKU never costed is run
    through the BOM engine. `available` says whether the client / community's
    price books offer the SKU at all.
    """
    sku = _get_sku(db, request.sku)
    base_cost, source = _base_cost(db, request, sku)

    resolver = load_price_resolver(db)
    try:
        resolved = resolver.resolve_price(
            sku.code,
            base_cost,
            community_id=request.community_id,
            client_id=request.client_id,
            business_unit_id=request.business_unit_id,
        )
        available = resolver.is_available(
            sku.code, client_id=request.client_id, community_id=request.community_id,
        )
    except BomEngineError as e:
        raise engine_http_error(e)

    return {
        "sku": sku.code,
        "base_cost": base_cost,
        "base_cost_source": source,
        "price": resolved.price,
        "labor_price": resolved.labor_price,
        "material_price": resolved.material_price,
        "pricing_method": resolved.pricing_method,
        "pricing_source": resolved.pricing_source,
        "rate_sheet_code": resolved.rate_sheet_code,
        "is_fallback": resolved.is_fallback,
        "available": available,
    }


@router.get("/available-skus", response_model=schemas.AvailableSkus)
def available_skus(client_id: Optional[int] = None, community_id: Optional[int] = None,
                   db: Session = Depends(get_db)):
    """SKUs a client / community may buy, from its price books."""
    try:
        skus = load_price_resolver(db).available_skus(client_id, community_id)
    except BomEngineError as e:
        raise engine_http_error(e)
    return {"client_id": client_id, "community_id": community_id, "skus": skus}


@router.post("/skus/recalculate", response_model=schemas.SkuRecalculation)
def recalculate_skus(db: Session = Depends(get_db)):
    """Refresh every active SKU's standard cost from the BOM engine."""
    with atomic(db):
        report = recalculate_sku_costs(db)
    return report


@router.get("/skus/{code}/cost", response_model=schemas.SkuCost)
def get_sku_cost(code: str, db: Session = Depends(get_db)):
    """Run the SKU's reference job now, without storing the result."""
    sku = _get_sku(db, code)
    try:
        cost = sku_cost(load_calculator(db), sku)
    except BomEngineError as e:
        raise engine_http_error(e)
    return {
        "sku": sku.code,
        "run_length": STANDARD_RUN_LENGTH,
        "material_cost": cost.material_cost,
        "labor_cost": cost.labor_cost,
        "material_per_foot": cost.material_per_foot,
        "labor_per_foot": cost.labor_per_foot,
        "cost_per_foot": cost.cost_per_foot,
    }


@router.get("/skus/{code}", response_model=schemas.Sku)
def get_sku(code: str, db: Session = Depends(get_db)):
    sku = _get_sku(db, code)
    return {
        "code": sku.code,
        "name": sku.name,
        "product_type": sku.product_type.code,
        "style": sku.product_style.code if sku.product_style else None,
        "height": sku.height,
        "post_type": sku.post_type,
        "variables": sku.variables or {},
        "components": sku.components or {},
        "standard_cost": sku.standard_cost,
        "standard_material_cost": sku.standard_material_cost,
        "standard_labor_cost": sku.standard_labor_cost,
    }
