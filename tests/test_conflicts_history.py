"""
Three-way merge and undo/redo history.

Tests:
1-9.   smart_merge / detect_conflicts
10-16. HistoryManager
"""

import logging
from datetime import datetime, timedelta, timezone

from takeoff.conflicts import detect_conflicts, smart_merge, values_equal
from takeoff.history import HistoryManager


def _line(**overrides):
    line = {
        "line_id": "L1",
        "status": "Active",
        "item_description": "Beam",
        "size_designation": "W12X65",
        "qty": 2,
        "labor_rate": 50,
        "notes": "",
        "total_cost": 1000.0,
        "updated_at": "2024-03-01T12:00:00+00:00",
    }
    line.update(overrides)
    return line


# ============================================================
# 1-9. Merge
# ============================================================

def test_merge_is_idempotent():
    line = _line()
    result = smart_merge(line, dict(line), dict(line))
    assert result.line == line
    assert result.conflicts == []


def test_non_conflicting_changes_combine():
    base = _line()
    local = _line(labor_rate=55)
    remote = _line(status="Void")
    result = smart_merge(base, local, remote)
    assert result.line["labor_rate"] == 55
    assert result.line["status"] == "Void"
    assert result.conflicts == []
    assert result.remote_fields == ["status"]


def test_same_change_on_both_sides_is_not_a_conflict():
    result = smart_merge(_line(), _line(qty=4), _line(qty=4.0))
    assert result.line["qty"] == 4
    assert result.conflicts == []


def test_conflict_without_timestamps_keeps_local():
    base = _line(qty=2)
    result = smart_merge(base, _line(qty=3), _line(qty=4))
    assert result.line["qty"] == 3
    assert len(result.conflicts) == 1
    conflict = result.conflicts[0]
    assert conflict.field == "qty"
    assert conflict.base_value == 2
    assert conflict.remote_value == 4
    assert conflict.winner == "local"
    assert conflict.to_dict()["resolved_value"] == 3


def test_conflict_with_timestamps_newer_side_wins():
    now = datetime.now(timezone.utc)
    base = _line(qty=2)

    remote_newer = smart_merge(base, _line(qty=3), _line(qty=4),
                               local_edited_at=now, remote_edited_at=now + timedelta(seconds=5))
    assert remote_newer.line["qty"] == 4
    assert remote_newer.conflicts[0].winner == "remote"

    local_newer = smart_merge(base, _line(qty=3), _line(qty=4),
                              local_edited_at=now, remote_edited_at=(now - timedelta(minutes=1)).isoformat())
    assert local_newer.line["qty"] == 3


def test_derived_fields_are_recomputed_not_merged():
    base = _line(total_cost=1000.0)
    local = _line(qty=3, total_cost=1500.0)
    remote = _line(total_cost=900.0)

    def recompute(line):
        return dict(line, total_cost=500.0 * line["qty"])

    result = smart_merge(base, local, remote, recompute=recompute)
    assert result.conflicts == []
    assert result.line["total_cost"] == 1500.0
    assert detect_conflicts(base, local, remote) == []


def test_remote_missing_returns_local():
    local = _line(qty=9)
    result = smart_merge(_line(), local, None)
    assert result.line == local
    assert result.conflicts == []


def test_integer_and_float_compare_equal():
    assert values_equal(1, 1.0)
    assert not values_equal(True, 1)
    result = smart_merge(_line(qty=1), _line(qty=1.0), _line(qty=1))
    assert result.conflicts == []


def test_conflicts_are_logged(caplog):
    with caplog.at_level(logging.INFO, logger="takeoff.conflicts"):
        smart_merge(_line(notes=""), _line(notes="mine"), _line(notes="theirs"))
    assert "L1" in caplog.text
    assert "notes" in caplog.text


# ============================================================
# 10-16. History
# ============================================================

def _snapshot(*ids):
    return [{"line_id": line_id} for line_id in ids]


def test_undo_twice_then_redo():
    history = HistoryManager()
    p1, p2, p3 = _snapshot("L1"), _snapshot("L1", "L2"), _snapshot("L1", "L2", "L3")
    history.reset(p1)
    history.push(p2)
    history.push(p3)

    history.undo()
    assert history.undo() == p1
    assert history.redo() == p2


def test_undo_redo_at_boundaries_return_none():
    history = HistoryManager()
    assert history.undo() is None
    history.reset(_snapshot("L1"))
    assert history.undo() is None
    assert history.redo() is None
    assert history.current == _snapshot("L1")


def test_push_truncates_redo():
    history = HistoryManager()
    history.reset(_snapshot())
    history.push(_snapshot("L1"))
    history.undo()
    history.push(_snapshot("L9"))
    assert not history.can_redo
    assert history.undo() == _snapshot()
    assert history.redo() == _snapshot("L9")


def test_limit_evicts_oldest():
    history = HistoryManager(limit=3)
    history.reset(_snapshot("L1"))
    for line_id in ("L2", "L3", "L4"):
        history.push(_snapshot(line_id))
    assert len(history) == 3
    assert history.undo() == _snapshot("L3")
    assert history.undo() == _snapshot("L2")
    assert history.undo() is None


def test_replace_does_not_add_undo_step():
    history = HistoryManager()
    history.reset(_snapshot("L1"))
    history.push(_snapshot("L1", "L2"))
    history.replace(_snapshot("L1", "L2", "L3"))

    assert len(history) == 2
    assert history.undo() == _snapshot("L1")
    # the pre-replace state is gone
    assert history.redo() == _snapshot("L1", "L2", "L3")


def test_snapshots_are_copied():
    history = HistoryManager()
    snapshot = _snapshot("L1")
    history.reset(snapshot)
    snapshot[0]["line_id"] = "changed"
    current = history.current
    current.append({"line_id": "L2"})
    assert history.current == _snapshot("L1")


def test_default_limit_from_config():
    assert HistoryManager().limit == 50
