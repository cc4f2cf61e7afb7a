from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from .. import schemas
from ..database import get_db
from ..engine.calculator import BomResult, ProjectResult
from ..engine.errors import BomEngineError, UnknownReferenceError
from ..loader import load_calculator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bom", tags=["bom"])


def engine_http_error(e: BomEngineError) -> HTTPException:
    """Map an engine failure to an HTTP error: unknown codes 404, bad configuration 422."""
    if isinstance(e, UnknownReferenceError):
        return HTTPException(status_code=404, detail=str(e))
    detail = {"error": e.kind, "message": str(e)}
    problems = getattr(e, "problems", None)
    if problems:
        detail["problems"] = problems
    logger.warning("BOM %s error: %s", e.kind, e)
    return HTTPException(status_code=422, detail=detail)


def bom_response(result: BomResult) -> dict:
    return {
        "product_type": result.product_type,
        "style": result.style,
        "inputs": dict(result.inputs),
        "components": [
            {
                "component_code": line.component_code,
                "name": line.name,
                "quantity": line.quantity,
                "unit": line.unit,
                "raw_quantity": line.raw_quantity,
                "rounding_level": line.rounding_level,
                "formula": line.formula,
                "material_sku": line.material.sku if line.material else None,
                "material_name": line.material.name if line.material else None,
                "unit_cost": line.unit_cost,
                "extended_cost": line.extended_cost,
            }
            for line in result.components
        ],
        "labor_lines": [labor_response(line) for line in result.labor_lines],
        "material_cost": result.material_cost,
        "labor_cost": result.labor_cost,
        "total_cost": result.total_cost,
    }


def labor_response(line) -> dict:
    return {
        "labor_code": line.labor_code,
        "description": line.description,
        "quantity": line.quantity,
        "unit": line.unit,
        "rate": line.rate,
        "extended_cost": line.extended_cost,
    }


def project_response(result: ProjectResult) -> dict:
    return {
        "lines": [bom_response(line) for line in result.lines],
        "totals": [
            {
                "component_code": total.component_code,
                "quantity": total.quantity,
                "unit": total.unit,
                "rounding_level": total.rounding_level,
                "material_sku": total.material.sku if total.material else None,
                "material_name": total.material.name if total.material else None,
                "extended_cost": total.extended_cost,
            }
            for total in result.totals
        ],
        "labor_lines": [labor_response(line) for line in result.labor_lines],
        "material_cost": result.material_cost,
        "labor_cost": result.labor_cost,
        "total_cost": result.total_cost,
    }


@router.post("/calculate", response_model=schemas.BomResponse)
def calculate_bom(request: schemas.BomRequest, db: Session = Depends(get_db)):
    """Compute the BOM for one run of fence."""
    try:
        result = load_calculator(db).compute_bom(
            request.product_type, request.style, request.inputs, request.materials
        )
    except BomEngineError as e:
        raise engine_http_error(e)
    return bom_response(result)


@router.post("/project", response_model=schemas.ProjectResponse)
def calculate_project(request: schemas.ProjectRequest, db: Session = Depends(get_db)):
    """Compute several runs together. Project-level consumables are rounded once."""
    try:
        result = load_calculator(db).compute_project([line.model_dump() for line in request.lines])
    except BomEngineError as e:
        raise engine_http_error(e)
    return project_response(result)
