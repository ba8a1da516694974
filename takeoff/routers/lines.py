"""
Takeoff line endpoints.

Each request loads the project into a TakeoffWorkspace over the request's
session, so the API goes through the same editor, merge and calculation path
as any other client of the core.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from .. import models, schemas
from ..csv_import import export_lines_to_csv, import_csv
from ..database import get_db
from ..exceptions import CsvImportError, LineNotFoundError, PersistenceError
from ..store import SqlLineStore, SqlSettingsProvider
from ..workspace import TakeoffWorkspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}", tags=["lines"])


async def _workspace(project_id: int, db: Session) -> TakeoffWorkspace:
    if not db.query(models.Project).filter(models.Project.id == project_id).first():
        raise HTTPException(status_code=404, detail="Project not found")
    workspace = TakeoffWorkspace(project_id, SqlLineStore(db), SqlSettingsProvider(db))
    await workspace.load()
    return workspace


def _not_found(e: LineNotFoundError):
    return HTTPException(status_code=404, detail=str(e))


@router.get("/lines")
async def list_lines(project_id: int, db: Session = Depends(get_db)):
    workspace = await _workspace(project_id, db)
    return workspace.sorted_lines()


@router.get("/lines/{line_id}")
async def get_line(project_id: int, line_id: str, db: Session = Depends(get_db)):
    workspace = await _workspace(project_id, db)
    try:
        return workspace.get_line(line_id)
    except LineNotFoundError as e:
        raise _not_found(e)


@router.post("/lines")
async def create_line(project_id: int, body: schemas.LineCreate, db: Session = Depends(get_db)):
    workspace = await _workspace(project_id, db)
    try:
        return await workspace.add_line(**body.model_dump(exclude_none=True))
    except PersistenceError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch("/lines/{line_id}")
async def update_line(project_id: int, line_id: str, body: schemas.LineUpdate, db: Session = Depends(get_db)):
    workspace = await _workspace(project_id, db)
    try:
        editor = workspace.open_editor(line_id)
    except LineNotFoundError as e:
        raise _not_found(e)
    for field_name, value in body.model_dump(exclude_unset=True).items():
        editor.edit(field_name, value)
    try:
        saved = await editor.save()
    except PersistenceError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return saved or workspace.get_line(line_id)


@router.delete("/lines/{line_id}")
async def delete_line(project_id: int, line_id: str, db: Session = Depends(get_db)):
    workspace = await _workspace(project_id, db)
    try:
        await workspace.delete_line(line_id)
    except LineNotFoundError as e:
        raise _not_found(e)
    return {"deleted": line_id}


@router.post("/lines/{line_id}/duplicate")
async def duplicate_line(project_id: int, line_id: str, db: Session = Depends(get_db)):
    workspace = await _workspace(project_id, db)
    try:
        return await workspace.duplicate_line(line_id)
    except LineNotFoundError as e:
        raise _not_found(e)


@router.post("/lines/{line_id}/void")
async def void_line(project_id: int, line_id: str, db: Session = Depends(get_db)):
    workspace = await _workspace(project_id, db)
    try:
        return await workspace.void_line(line_id)
    except LineNotFoundError as e:
        raise _not_found(e)


@router.get("/summary", response_model=schemas.EstimateSummary)
async def estimate_summary(project_id: int, db: Session = Depends(get_db)):
    workspace = await _workspace(project_id, db)
    return workspace.summary()


@router.post("/import", response_model=schemas.ImportResponse)
async def import_lines(project_id: int, request: Request, db: Session = Depends(get_db)):
    """
    Bulk import from CSV (raw text/csv body, template columns).
    All-or-nothing: any row error rejects the whole file with 400.
    """
    workspace = await _workspace(project_id, db)
    text = (await request.body()).decode("utf-8-sig")
    try:
        result = import_csv(
            text,
            rates_for=workspace.calculator.rates_for,
            existing_ids=[line["line_id"] for line in workspace.lines],
        )
    except CsvImportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if result.errors:
        raise HTTPException(status_code=400, detail=[e.to_dict() for e in result.errors])

    line_ids = []
    for line in result.lines:
        saved = await workspace.store.create_line(project_id, line, origin=workspace)
        line_ids.append(saved["line_id"])
    logger.info("Imported %d lines into project %s", len(line_ids), project_id)
    return {"imported": len(line_ids), "line_ids": line_ids, "errors": []}


@router.get("/export", response_class=PlainTextResponse)
async def export_lines(project_id: int, db: Session = Depends(get_db)):
    workspace = await _workspace(project_id, db)
    return PlainTextResponse(export_lines_to_csv(workspace.sorted_lines()), media_type="text/csv")
