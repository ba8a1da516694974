"""
Undo/redo history over collection snapshots.

A snapshot is the full ordered list of line dicts for one project. Every
user-initiated mutation is pushed; updates arriving from other users replace
the current entry in place so they can never be undone into.
"""

import copy
import logging
from typing import List, Optional

from .config import settings

logger = logging.getLogger(__name__)


class HistoryManager:
    """
    Bounded linear history with a pointer.

    entries[pointer] is the current state. Undo/redo move the pointer and
    hand back a deep copy of the snapshot there; they never touch the store.
    """

    def __init__(self, limit: Optional[int] = None):
        self.limit = max(1, int(limit if limit is not None else settings.HISTORY_LIMIT))
        self._entries: List[list] = []
        self._pointer = -1

    def __len__(self):
        return len(self._entries)

    @staticmethod
    def _copy(snapshot) -> list:
        return copy.deepcopy(list(snapshot))

    def reset(self, snapshot):
        """Start over with one entry (e.g. after the initial load)."""
        self._entries = [self._copy(snapshot)]
        self._pointer = 0

    def clear(self):
        self._entries = []
        self._pointer = -1

    def push(self, snapshot):
        """Record a new state. Redo entries are dropped; the oldest entry goes past the limit."""
        del self._entries[self._pointer + 1:]
        self._entries.append(self._copy(snapshot))
        self._pointer = len(self._entries) - 1

        overflow = len(self._entries) - self.limit
        if overflow > 0:
            del self._entries[:overflow]
            self._pointer -= overflow

    def replace(self, snapshot):
        """Overwrite the current state without adding an undo step."""
        if self._pointer < 0:
            self.reset(snapshot)
            return
        self._entries[self._pointer] = self._copy(snapshot)

    @property
    def can_undo(self) -> bool:
        return self._pointer > 0

    @property
    def can_redo(self) -> bool:
        return 0 <= self._pointer < len(self._entries) - 1

    @property
    def current(self) -> Optional[list]:
        if self._pointer < 0:
            return None
        return self._copy(self._entries[self._pointer])

    def undo(self) -> Optional[list]:
        if not self.can_undo:
            logger.debug("Nothing to undo")
            return None
        self._pointer -= 1
        return self.current

    def redo(self) -> Optional[list]:
        if not self.can_redo:
            logger.debug("Nothing to redo")
            return None
        self._pointer += 1
        return self.current
