from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from .. import models, schemas
from ..codes import next_code
from ..database import atomic, get_db
from ..engine.calculator import ProjectResult
from ..engine.errors import BomEngineError
from ..loader import load_calculator
from .bom import engine_http_error, labor_response, project_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


def save_bom_snapshot(db: Session, request: schemas.ProjectRequest,
                      result: ProjectResult) -> models.BomProject:
    """Persist a computed project in one transaction: code allocation + snapshot row."""
    totals = project_response(result)["totals"]
    with atomic(db):
        project = models.BomProject(
            project_code=next_code(db, "project"),
            name=request.name,
            community_id=request.community_id,
            lines_json=[line.model_dump() for line in request.lines],
            materials_json=totals,
            labor_json=[labor_response(line) for line in result.labor_lines],
            material_cost=result.material_cost,
            labor_cost=result.labor_cost,
            total_cost=result.total_cost,
            status="draft",
        )
        db.add(project)
    db.refresh(project)
    logger.info("Saved BOM project %s (total %.2f)", project.project_code, project.total_cost)
    return project


@router.post("/", response_model=schemas.BomProject)
def create_project(request: schemas.ProjectRequest, db: Session = Depends(get_db)):
    """Compute a project BOM and save the snapshot."""
    try:
        result = load_calculator(db).compute_project(
            [line.model_dump() for line in request.lines]
        )
    except BomEngineError as e:
        raise engine_http_error(e)
    return save_bom_snapshot(db, request, result)


@router.get("/{project_code}", response_model=schemas.BomProject)
def get_project(project_code: str, db: Session = Depends(get_db)):
    project = db.query(models.BomProject).filter(
        models.BomProject.project_code == project_code
    ).first()
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project
