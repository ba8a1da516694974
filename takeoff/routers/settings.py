from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from .. import models, schemas
from ..config import settings
from ..database import get_db
from ..store import SqlSettingsProvider

router = APIRouter(tags=["settings"])


def _payload(body) -> dict:
    # Unset sections stay missing so they fall through to the next settings layer
    return body.model_dump(exclude_none=True)


@router.get("/settings/company")
def get_company_settings(db: Session = Depends(get_db)):
    return SqlSettingsProvider(db).company_settings()


@router.put("/settings/company")
def update_company_settings(body: schemas.RateSettings, db: Session = Depends(get_db)):
    return SqlSettingsProvider(db).save_company_settings(_payload(body), company_name=settings.COMPANY_NAME)


@router.get("/projects/{project_id}/settings")
def get_project_settings(project_id: int, db: Session = Depends(get_db)):
    if not db.query(models.Project).filter(models.Project.id == project_id).first():
        raise HTTPException(status_code=404, detail="Project not found")
    return SqlSettingsProvider(db).project_settings(project_id)


@router.put("/projects/{project_id}/settings")
def update_project_settings(project_id: int, body: schemas.ProjectRateSettings, db: Session = Depends(get_db)):
    if not db.query(models.Project).filter(models.Project.id == project_id).first():
        raise HTTPException(status_code=404, detail="Project not found")
    return SqlSettingsProvider(db).save_project_settings(project_id, _payload(body))
