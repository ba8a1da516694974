"""
Takeoff workspace — the in-memory line collection for one project.

Owns the collection snapshot and its undo/redo history. User actions
(add, delete, void, duplicate, committed edits) push a history entry;
updates pushed by the store for other users' writes replace the current
entry instead.

Line ids: sequential "L1", "L2", ... ; a duplicated line gets a copy id
"<source>-<new location>", e.g. duplicating L1 into slot 10 gives "L1-L10".
"""

import logging
import re
from typing import Iterable, List, Optional

from .conflicts import changed_fields
from .editing import LineEditor
from .exceptions import LineNotFoundError
from .fields import AUTHORED_FIELDS, VOID, new_line
from .history import HistoryManager
from .pricing_engine import LineCalculator, summarize_estimate
from .scheduler import SaveScheduler

logger = logging.getLogger(__name__)

LINE_ID_PATTERN = re.compile(r"^L\d+(-L\d+)?$")
_NUMBER = re.compile(r"L?(\d+)")


def line_number(line_id) -> int:
    """L7 -> 7; copy ids sort by their location: L1-L10 -> 10. Unparseable -> 0."""
    text = str(line_id or "")
    last = text.split("-")[-1]
    match = _NUMBER.search(last)
    return int(match.group(1)) if match else 0


def _ids(lines) -> List[str]:
    return [line.get("line_id") if isinstance(line, dict) else line for line in lines]


def next_line_id(lines: Iterable) -> str:
    """One past the highest line number in use. Accepts line dicts or bare ids."""
    numbers = [line_number(line_id) for line_id in _ids(lines)]
    highest = max([n for n in numbers if n > 0], default=0)
    return f"L{highest + 1}"


def copy_line_id(source_id: str, new_location_id: str) -> str:
    # Copies of copies point back at the original line
    root = str(source_id).split("-")[0]
    return f"{root}-L{line_number(new_location_id)}"


def is_copy_line(line_id: str) -> bool:
    return "-" in str(line_id) and bool(LINE_ID_PATTERN.match(str(line_id)))


def sort_key(line: dict):
    line_id = line.get("line_id") or ""
    return (line.get("status") == VOID, line_number(line_id), line_id)


class TakeoffWorkspace:

    def __init__(self, project_id: int, store, settings_provider,
                 calculator: Optional[LineCalculator] = None,
                 history: Optional[HistoryManager] = None,
                 scheduler: Optional[SaveScheduler] = None):
        self.project_id = project_id
        self.store = store
        self.settings_provider = settings_provider
        self.calculator = calculator or LineCalculator()
        self.history = history or HistoryManager()
        self.scheduler = scheduler
        self.lines: List[dict] = []
        self._editors = {}
        # line_id -> the line as last read from or written to the store
        self._synced = {}
        self._unsubscribe = None

    # --- loading -------------------------------------------------------

    def refresh_settings(self):
        self.calculator.update_settings(
            project=self.settings_provider.project_settings(self.project_id),
            company=self.settings_provider.company_settings(),
        )

    async def load(self) -> List[dict]:
        """Read settings and lines, recompute every line, start a fresh history."""
        self.refresh_settings()
        stored = await self.store.list_lines(self.project_id)
        self.lines = [self.calculator.recalculate(line) for line in stored]
        self._sync(self.lines, replace=True)
        self.history.reset(self.lines)
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self.project_id, self.apply_external)
        logger.info("Loaded %d lines for project %s", len(self.lines), self.project_id)
        return self.sorted_lines()

    def close(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.scheduler is not None:
            for line_id in list(self._editors):
                self.scheduler.cancel(line_id)
        self._editors.clear()

    # --- lookups -------------------------------------------------------

    def _index(self, line_id: str) -> int:
        for i, line in enumerate(self.lines):
            if line.get("line_id") == line_id:
                return i
        raise LineNotFoundError(line_id)

    def get_line(self, line_id: str) -> dict:
        return self.lines[self._index(line_id)]

    def sorted_lines(self) -> List[dict]:
        """Display order: by line number, Void lines last."""
        return sorted(self.lines, key=sort_key)

    def summary(self) -> dict:
        return summarize_estimate(self.lines)

    # --- user actions (each pushes one history entry) -------------------

    def _sync(self, lines, replace=False):
        if replace:
            self._synced = {}
        for line in lines:
            self._synced[line.get("line_id")] = dict(line)

    def _record(self, lines: List[dict]):
        self.lines = lines
        self.history.push(self.lines)

    def _put(self, line: dict) -> List[dict]:
        """Collection with `line` replacing the one with the same line_id, or appended."""
        lines = list(self.lines)
        for i, existing in enumerate(lines):
            if existing.get("line_id") == line.get("line_id"):
                lines[i] = line
                return lines
        lines.append(line)
        return lines

    async def _next_line_id(self) -> str:
        # Undo never writes, so the store can hold ids the local view no longer shows
        stored = await self.store.list_lines(self.project_id)
        return next_line_id(list(self.lines) + list(stored))

    async def add_line(self, **fields) -> dict:
        line_id = fields.pop("line_id", None) or await self._next_line_id()
        line = self.calculator.recalculate(new_line(line_id, **fields))
        saved = await self.store.create_line(self.project_id, line, origin=self)
        self._sync([saved])
        self._record(self._put(saved))
        return saved

    async def delete_line(self, line_id: str):
        self._index(line_id)
        await self.store.delete_line(self.project_id, line_id, origin=self)
        self._synced.pop(line_id, None)
        self._record([line for line in self.lines if line.get("line_id") != line_id])
        editor = self._editors.pop(line_id, None)
        if editor is not None:
            editor.discard()

    async def void_line(self, line_id: str) -> dict:
        line = dict(self.get_line(line_id), status=VOID)
        saved = await self.store.update_line(self.project_id, line, origin=self)
        self._sync([saved])
        self._record(self._put(saved))
        return saved

    async def duplicate_line(self, line_id: str) -> dict:
        source = self.get_line(line_id)
        copy_id = copy_line_id(line_id, await self._next_line_id())
        line = {name: source[name] for name in AUTHORED_FIELDS if name in source}
        line["line_id"] = copy_id
        line = self.calculator.recalculate(line)
        saved = await self.store.create_line(self.project_id, line, origin=self)
        self._sync([saved])
        self._record(self._put(saved))
        return saved

    def commit_edit(self, line: dict) -> dict:
        """A saved edit from a LineEditor: put it in the collection as an undo step."""
        self._sync([line])
        self._record(self._put(dict(line)))
        return line

    def undo(self) -> Optional[List[dict]]:
        return self._restore(self.history.undo())

    def redo(self) -> Optional[List[dict]]:
        return self._restore(self.history.redo())

    def _restore(self, snapshot: Optional[List[dict]]) -> Optional[List[dict]]:
        """Show a history snapshot. Nothing is written; open editors start their next edit from it."""
        if snapshot is None:
            return None
        self.lines = snapshot
        restored = {line.get("line_id"): line for line in self.lines}
        for line_id, editor in list(self._editors.items()):
            if line_id in restored:
                editor.restore(restored[line_id])
            elif not editor.is_dirty:
                del self._editors[line_id]
        return self.sorted_lines()

    # --- editors and external updates -----------------------------------

    def open_editor(self, line_id: str) -> LineEditor:
        editor = self._editors.get(line_id)
        if editor is None:
            shown = self.get_line(line_id)
            stored = self._synced.get(line_id, shown)
            editor = LineEditor(
                self.store, self.project_id, stored,
                calculator=self.calculator,
                scheduler=self.scheduler,
                on_saved=self.commit_edit,
                origin=self,
            )
            if changed_fields(stored, shown):
                editor.restore(shown)
            self._editors[line_id] = editor
        return editor

    def apply_external(self, lines: List[dict], origin=None):
        """
        Store subscription callback. Writes made by this workspace (or its
        editors) are already in the history and are skipped.
        """
        if origin is self:
            return
        self.lines = [self.calculator.recalculate(line) for line in lines]
        self._sync(self.lines, replace=True)
        self.history.replace(self.lines)
        for line in self.lines:
            editor = self._editors.get(line.get("line_id"))
            if editor is not None:
                editor.receive_remote(line)
