"""
Three-way merge of one line at save time.

base:   the line as last synced from the store, captured when editing began
local:  the pending line in the editor
remote: the line as it is in the store right now

Field by field:
- remote unchanged since base          -> local value
- remote changed, local unchanged      -> remote value
- both changed to the same value       -> that value
- both changed to different values     -> conflict, resolved by policy:
  the more recently edited side wins when both edit times are known,
  otherwise local wins. The losing value is recorded on the ConflictRecord.

Derived fields are never merged; pass `recompute` to rebuild them from the
merged inputs. A conflict never raises; the save always proceeds.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from .fields import BOOKKEEPING_FIELDS, DERIVED_FIELDS

logger = logging.getLogger(__name__)

LOCAL = "local"
REMOTE = "remote"

_NOT_MERGED = frozenset(DERIVED_FIELDS) | frozenset(BOOKKEEPING_FIELDS)


@dataclass
class ConflictRecord:
    """One field changed on both sides to different values."""
    field: str
    base_value: Any
    local_value: Any
    remote_value: Any
    resolved_value: Any = None
    winner: str = LOCAL

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "base_value": self.base_value,
            "local_value": self.local_value,
            "remote_value": self.remote_value,
            "resolved_value": self.resolved_value,
            "winner": self.winner,
        }


@dataclass
class MergeResult:
    line: dict
    conflicts: List[ConflictRecord] = field(default_factory=list)
    remote_fields: List[str] = field(default_factory=list)   # fields taken from remote

    def to_dict(self) -> dict:
        return {
            "line": self.line,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "remote_fields": list(self.remote_fields),
        }


def values_equal(a, b) -> bool:
    """Equality that treats 1 and 1.0 (and float noise) as the same number."""
    numeric = (int, float)
    if (isinstance(a, numeric) and not isinstance(a, bool)
            and isinstance(b, numeric) and not isinstance(b, bool)):
        return math.isclose(float(a), float(b), rel_tol=1e-9, abs_tol=1e-9)
    return a == b


def _as_timestamp(value) -> Optional[float]:
    """Epoch seconds from a datetime, ISO string or number. None if unusable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    try:
        return datetime.fromisoformat(str(value)).timestamp()
    except ValueError:
        return None


def _mergeable_fields(*records) -> list:
    names = []
    seen = set()
    for record in records:
        for name in record:
            if name in _NOT_MERGED or name in seen:
                continue
            seen.add(name)
            names.append(name)
    return names


def changed_fields(before: dict, after: dict) -> List[str]:
    """Authored fields whose values differ between two versions of a line."""
    return [
        name for name in _mergeable_fields(before, after)
        if not values_equal(before.get(name), after.get(name))
    ]


def detect_conflicts(base: dict, local: dict, remote: dict) -> List[ConflictRecord]:
    """Fields changed on both sides, to different values. Derived fields are ignored."""
    conflicts = []
    for name in _mergeable_fields(base, local, remote):
        base_value = base.get(name)
        local_value = local.get(name)
        remote_value = remote.get(name)
        local_changed = not values_equal(local_value, base_value)
        remote_changed = not values_equal(remote_value, base_value)
        if local_changed and remote_changed and not values_equal(local_value, remote_value):
            conflicts.append(ConflictRecord(
                field=name,
                base_value=base_value,
                local_value=local_value,
                remote_value=remote_value,
            ))
    return conflicts


def pick_winner(local_edited_at=None, remote_edited_at=None) -> str:
    """Last editor wins when both times are known; otherwise the active editor (local)."""
    local_ts = _as_timestamp(local_edited_at)
    remote_ts = _as_timestamp(remote_edited_at)
    if local_ts is not None and remote_ts is not None and remote_ts > local_ts:
        return REMOTE
    return LOCAL


def smart_merge(base: dict, local: dict, remote: Optional[dict],
                local_edited_at=None, remote_edited_at=None, recompute=None) -> MergeResult:
    """
    Reconcile a pending local line with the current remote line.

    Args:
        base: line as last synced
        local: pending edited line
        remote: current authoritative line, or None if it no longer exists
        local_edited_at / remote_edited_at: edit times (datetime, ISO string or epoch)
        recompute: callable(line) -> line that rebuilds derived fields

    Returns:
        MergeResult with the reconciled line and any conflicts (for logging,
        never for blocking the save)
    """
    base = base or {}
    if remote is None:
        merged = dict(local)
        return MergeResult(line=recompute(merged) if recompute else merged)

    winner = pick_winner(local_edited_at, remote_edited_at)
    merged = dict(local)
    conflicts = []
    remote_fields = []

    for name in _mergeable_fields(base, local, remote):
        base_value = base.get(name)
        local_value = local.get(name)
        remote_value = remote.get(name)

        remote_changed = not values_equal(remote_value, base_value)
        if not remote_changed:
            merged[name] = local_value
            continue

        local_changed = not values_equal(local_value, base_value)
        if not local_changed:
            merged[name] = remote_value
            remote_fields.append(name)
            continue

        if values_equal(local_value, remote_value):
            merged[name] = local_value
            continue

        resolved = remote_value if winner == REMOTE else local_value
        merged[name] = resolved
        if winner == REMOTE:
            remote_fields.append(name)
        conflicts.append(ConflictRecord(
            field=name,
            base_value=base_value,
            local_value=local_value,
            remote_value=remote_value,
            resolved_value=resolved,
            winner=winner,
        ))

    # Bookkeeping always follows the store
    for name in BOOKKEEPING_FIELDS:
        if name in remote:
            merged[name] = remote[name]

    if recompute is not None:
        merged = recompute(merged)

    if conflicts:
        logger.info(
            "Line %s merged with %d conflict(s), %s wins: %s",
            merged.get("line_id"), len(conflicts), winner,
            ", ".join(c.field for c in conflicts),
        )

    return MergeResult(line=merged, conflicts=conflicts, remote_fields=remote_fields)
