"""
Persistence and settings providers.

The core never talks to the database directly; editors and workspaces are
handed something that satisfies LineStore / SettingsProvider. The SQL
implementations below back the HTTP API and the integration tests.
"""

import inspect
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .exceptions import LineNotFoundError, PersistenceError
from .fields import ACTIVE, BOOKKEEPING_FIELDS, IDENTITY_FIELDS
from .rates import DEFAULT_COMPANY_SETTINGS
from .workspace import next_line_id

logger = logging.getLogger(__name__)

# Columns on EstimateLine, not copied into the JSON data blob
_COLUMN_FIELDS = frozenset(IDENTITY_FIELDS) | frozenset(BOOKKEEPING_FIELDS) | {"status"}


class LineStore(Protocol):
    async def list_lines(self, project_id: int) -> List[dict]: ...

    async def get_line(self, project_id: int, line_id: str) -> Optional[dict]: ...

    async def create_line(self, project_id: int, line: dict, origin=None) -> dict: ...

    async def update_line(self, project_id: int, line: dict, origin=None) -> dict: ...

    async def delete_line(self, project_id: int, line_id: str, origin=None) -> None: ...

    def subscribe(self, project_id: int, callback: Callable) -> Callable[[], None]: ...


class SettingsProvider(Protocol):
    def company_settings(self) -> dict: ...

    def project_settings(self, project_id: int) -> dict: ...


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    # SQLite hands back naive datetimes; they were written as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def line_from_row(row: models.EstimateLine) -> dict:
    line = dict(row.data or {})
    line.update({
        "id": row.id,
        "project_id": row.project_id,
        "line_id": row.line_id,
        "status": row.status or ACTIVE,
        "created_at": _iso(row.created_at),
        "updated_at": _iso(row.updated_at),
    })
    return line


def line_data(line: dict) -> dict:
    """The JSON-stored part of a line record."""
    return {name: value for name, value in line.items() if name not in _COLUMN_FIELDS}


class SqlLineStore:
    """
    LineStore over one SQLAlchemy session.

    Listeners registered with subscribe() get (lines, origin) after every
    successful write to their project; `origin` is whatever the writer passed,
    so a subscriber can skip echoes of its own writes.
    """

    def __init__(self, db: Session):
        self.db = db
        self._listeners = {}

    def _row(self, project_id: int, line_id: str) -> Optional[models.EstimateLine]:
        return self.db.query(models.EstimateLine).filter(
            models.EstimateLine.project_id == project_id,
            models.EstimateLine.line_id == line_id,
        ).first()

    def _rows(self, project_id: int):
        return self.db.query(models.EstimateLine).filter(
            models.EstimateLine.project_id == project_id
        ).order_by(models.EstimateLine.id).all()

    def _commit(self, action: str, line_id: Optional[str]):
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise PersistenceError(f"Could not {action} line {line_id}: duplicate line id", line_id=line_id) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to %s line %s: %s", action, line_id, e)
            raise PersistenceError(f"Could not {action} line {line_id}", line_id=line_id) from e

    async def list_lines(self, project_id: int) -> List[dict]:
        return [line_from_row(row) for row in self._rows(project_id)]

    async def get_line(self, project_id: int, line_id: str) -> Optional[dict]:
        row = self._row(project_id, line_id)
        return line_from_row(row) if row else None

    async def create_line(self, project_id: int, line: dict, origin=None) -> dict:
        line_id = line.get("line_id") or next_line_id(await self.list_lines(project_id))
        row = models.EstimateLine(
            project_id=project_id,
            line_id=line_id,
            status=line.get("status") or ACTIVE,
            data=line_data(line),
        )
        self.db.add(row)
        self._commit("create", line_id)
        self.db.refresh(row)
        logger.debug("Created line %s in project %s", line_id, project_id)
        await self._notify(project_id, origin)
        return line_from_row(row)

    async def update_line(self, project_id: int, line: dict, origin=None) -> dict:
        line_id = line.get("line_id")
        row = self._row(project_id, line_id)
        if row is None:
            raise LineNotFoundError(line_id)
        row.status = line.get("status") or row.status
        row.data = line_data(line)
        row.updated_at = models.utcnow()
        self._commit("update", line_id)
        self.db.refresh(row)
        await self._notify(project_id, origin)
        return line_from_row(row)

    async def delete_line(self, project_id: int, line_id: str, origin=None) -> None:
        row = self._row(project_id, line_id)
        if row is None:
            raise LineNotFoundError(line_id)
        self.db.delete(row)
        self._commit("delete", line_id)
        await self._notify(project_id, origin)

    def subscribe(self, project_id: int, callback: Callable) -> Callable[[], None]:
        listeners = self._listeners.setdefault(project_id, [])
        listeners.append(callback)

        def unsubscribe():
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    async def _notify(self, project_id: int, origin):
        listeners = list(self._listeners.get(project_id, []))
        if not listeners:
            return
        lines = await self.list_lines(project_id)
        for callback in listeners:
            result = callback(lines, origin)
            if inspect.isawaitable(result):
                await result


class SqlSettingsProvider:
    """Company and project rate settings stored as JSON rows."""

    def __init__(self, db: Session):
        self.db = db

    def _company_row(self) -> Optional[models.CompanySettings]:
        return self.db.query(models.CompanySettings).order_by(models.CompanySettings.id).first()

    def company_settings(self) -> dict:
        row = self._company_row()
        return dict(row.data or {}) if row else {}

    def project_settings(self, project_id: int) -> dict:
        row = self.db.query(models.ProjectSettings).filter(
            models.ProjectSettings.project_id == project_id
        ).first()
        return dict(row.data or {}) if row else {}

    def save_company_settings(self, data: dict, company_name: Optional[str] = None) -> dict:
        row = self._company_row()
        if row is None:
            row = models.CompanySettings(company_name=company_name, data={})
            self.db.add(row)
        row.data = dict(data)
        if company_name is not None:
            row.company_name = company_name
        self.db.commit()
        self.db.refresh(row)
        return dict(row.data)

    def save_project_settings(self, project_id: int, data: dict) -> dict:
        row = self.db.query(models.ProjectSettings).filter(
            models.ProjectSettings.project_id == project_id
        ).first()
        if row is None:
            row = models.ProjectSettings(project_id=project_id, data={})
            self.db.add(row)
        row.data = dict(data)
        self.db.commit()
        self.db.refresh(row)
        return dict(row.data)

    def seed_defaults(self, company_name: Optional[str] = None) -> bool:
        """Write the default rate tables if no company settings exist. True if seeded."""
        if self._company_row() is not None:
            return False
        self.save_company_settings(DEFAULT_COMPANY_SETTINGS, company_name=company_name)
        logger.info("Seeded default company settings")
        return True
