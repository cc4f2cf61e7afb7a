from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from .. import schemas
from ..database import get_db
from ..engine.errors import BomEngineError
from ..loader import load_calculator
from .bom import engine_http_error

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/product-types", response_model=List[schemas.ProductType])
def list_product_types(db: Session = Depends(get_db)):
    catalog = load_calculator(db).catalog
    return [
        {
            "code": pt.code,
            "name": pt.name,
            "default_post_spacing": pt.default_post_spacing,
            "styles": [
                {"code": s.code, "name": s.name, "formula_adjustments": dict(s.formula_adjustments)}
                for s in catalog.styles_for(pt.code)
            ],
            "components": [slot.component for slot in catalog.layout(pt.code)],
        }
        for pt in sorted(catalog.product_types.values(), key=lambda p: p.code)
    ]


@router.get("/formulas/{product_type}", response_model=List[schemas.FormulaTemplate])
def list_formulas(product_type: str, db: Session = Depends(get_db)):
    """Active formula templates for a product type, in execution order."""
    catalog = load_calculator(db).catalog
    try:
        order = {slot.component: i for i, slot in enumerate(catalog.layout(product_type))}
    except BomEngineError as e:
        raise engine_http_error(e)
    templates = [
        t for t in catalog.templates
        if t.product_type == product_type and t.is_active
    ]
    templates.sort(key=lambda t: (order.get(t.component, len(order)), t.style or "", -t.priority))
    return [
        {
            "component": t.component,
            "style": t.style,
            "expression": t.expression,
            "rounding_level": t.rounding_level,
            "priority": t.priority,
            "plain_english": t.plain_english or None,
        }
        for t in templates
    ]


@router.get("/validate", response_model=schemas.ValidationReport)
def validate_catalog(db: Session = Depends(get_db)):
    """Load-time configuration check: ties, duplicates, bad formulas, default conflicts."""
    problems = load_calculator(db).validate()
    return {"ok": not problems, "problems": problems}
