"""
Single-line editor.

States:
    CLEAN         nothing staged; base is the last synced line
    EDITING       begin() called, no field changed yet
    PENDING_SAVE  staged edits waiting for the debounce timer or an explicit save
    CONFLICTED    save found the remote line changed since base; merging
    SAVED         last write succeeded; base is what the store returned

A failed write leaves the editor in PENDING_SAVE with the staged line intact.
An edit made while a save is waiting on the store also stays in PENDING_SAVE,
rebased on the line that save wrote.
"""

import enum
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .conflicts import ConflictRecord, changed_fields, smart_merge
from .exceptions import PersistenceError
from .geometry import apply_field_edit
from .pricing_engine import LineCalculator
from .scheduler import SaveScheduler

logger = logging.getLogger(__name__)


class EditState(str, enum.Enum):
    CLEAN = "clean"
    EDITING = "editing"
    PENDING_SAVE = "pending_save"
    CONFLICTED = "conflicted"
    SAVED = "saved"


class LineEditor:

    def __init__(self, store, project_id: int, line: Optional[dict] = None,
                 calculator: Optional[LineCalculator] = None,
                 scheduler: Optional[SaveScheduler] = None,
                 on_saved: Optional[Callable[[dict], None]] = None,
                 origin=None):
        self.store = store
        self.project_id = project_id
        self.calculator = calculator or LineCalculator()
        self.scheduler = scheduler
        self.on_saved = on_saved
        self.origin = origin if origin is not None else self

        self.base: Optional[dict] = dict(line) if line is not None else None
        # Undo/redo view of the line; the next edit starts from it instead of base
        self.restored: Optional[dict] = None
        self.pending: Optional[dict] = None
        self.held_remote: Optional[dict] = None
        self.edited_at: Optional[datetime] = None
        self.state = EditState.CLEAN
        self.last_conflicts: List[ConflictRecord] = []
        self.last_error: Optional[PersistenceError] = None

    @property
    def line_id(self) -> Optional[str]:
        source = self.pending or self.base or {}
        return source.get("line_id")

    @property
    def is_dirty(self) -> bool:
        return self.pending is not None

    def begin(self, line: Optional[dict] = None):
        """Start editing. `line` (if given) becomes the base for the merge at save time."""
        if line is not None:
            self.base = dict(line)
            self.restored = None
        if self.base is None:
            raise ValueError("No line to edit")
        self.pending = dict(self.restored or self.base)
        self.held_remote = None
        self.state = EditState.EDITING

    def edit(self, field_name: str, value) -> dict:
        """Stage one field change, recompute derived fields, and (re)schedule the save."""
        if self.pending is None:
            self.begin()
        staged = apply_field_edit(self.pending, field_name, value)
        self.pending = self.calculator.recalculate(staged)
        self.edited_at = datetime.now(timezone.utc)
        self.state = EditState.PENDING_SAVE
        if self.scheduler is not None:
            self.scheduler.schedule(self.line_id, self.save)
        return self.pending

    def discard(self):
        """Drop staged changes and any scheduled save."""
        if self.scheduler is not None and self.line_id:
            self.scheduler.cancel(self.line_id)
        self.pending = None
        self.held_remote = None
        self.state = EditState.CLEAN

    def receive_remote(self, line: dict):
        """A newer version arrived from the store. Adopted only when nothing is staged."""
        if self.state in (EditState.CLEAN, EditState.SAVED) and self.pending is None:
            self.base = dict(line)
            self.restored = None
            return
        # Reconciled at save time; never overwrites the staged line
        self.held_remote = dict(line)
        logger.debug("Holding remote update for %s while editing", line.get("line_id"))

    def restore(self, line: dict):
        """
        Undo/redo put `line` back in the workspace without writing it. The next
        edit starts from it, while base stays the stored version, so the save
        carries the restored values to the store. Staged edits are left alone.
        """
        if self.pending is None:
            self.restored = dict(line)

    async def flush(self) -> Optional[dict]:
        """Save now instead of waiting for the quiet period."""
        if self.scheduler is not None and self.line_id and self.scheduler.pending(self.line_id):
            return await self.scheduler.flush(self.line_id)
        return await self.save()

    async def save(self) -> Optional[dict]:
        """
        Reconcile the staged line with the store's current version and write it.

        Raises:
            PersistenceError: the write failed; staged edits are kept
        """
        if self.pending is None:
            return None
        line_id = self.line_id
        if self.scheduler is not None:
            self.scheduler.cancel(line_id)

        staged = self.pending
        local = staged
        try:
            remote = await self.store.get_line(self.project_id, line_id)
        except Exception as e:
            raise self._failed(line_id, e)

        if remote is not None and self.base is not None and changed_fields(self.base, remote):
            self.state = EditState.CONFLICTED
            result = smart_merge(
                self.base, local, remote,
                local_edited_at=self.edited_at,
                remote_edited_at=remote.get("updated_at"),
                recompute=self.calculator.recalculate,
            )
            local = result.line
            self.last_conflicts = result.conflicts
        else:
            self.last_conflicts = []

        try:
            if remote is None:
                saved = await self.store.create_line(self.project_id, local, origin=self.origin)
            else:
                saved = await self.store.update_line(self.project_id, local, origin=self.origin)
        except Exception as e:
            raise self._failed(line_id, e)

        self.base = saved
        self.restored = None
        self.last_error = None
        if self.pending is staged:
            self.pending = None
            self.held_remote = None
            self.state = EditState.SAVED
        else:
            # Edited while the store calls were in flight: keep the newer
            # changes, rebased on what was just written
            self.pending = smart_merge(
                staged, self.pending, saved,
                local_edited_at=self.edited_at,
                recompute=self.calculator.recalculate,
            ).line
            self.state = EditState.PENDING_SAVE
            logger.debug("Line %s edited during save; newer changes still pending", line_id)
        if self.on_saved is not None:
            self.on_saved(saved)
        return saved

    def _failed(self, line_id, error: Exception) -> PersistenceError:
        if isinstance(error, PersistenceError):
            failure = error
        else:
            failure = PersistenceError(f"Could not save line {line_id}: {error}", line_id=line_id)
            failure.__cause__ = error
        logger.error("Save failed for line %s: %s", line_id, error)
        self.last_error = failure
        self.state = EditState.PENDING_SAVE
        return failure
