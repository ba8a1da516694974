"""
Takeoff workspace over the SQL store.

Tests:
1-4.  Line id helpers
5-13. Add / duplicate / void / delete / undo / redo / external updates,
       and editing after an undo
"""

import asyncio

import pytest

from takeoff.exceptions import LineNotFoundError
from takeoff.store import SqlLineStore, SqlSettingsProvider
from takeoff.workspace import (
    TakeoffWorkspace,
    copy_line_id,
    is_copy_line,
    line_number,
    next_line_id,
)


# ============================================================
# 1-4. Line ids
# ============================================================

def test_next_line_id():
    assert next_line_id([]) == "L1"
    assert next_line_id(["L1", "L3"]) == "L4"
    assert next_line_id([{"line_id": "L2"}, {"line_id": "L1-L10"}]) == "L11"


def test_line_number():
    assert line_number("L7") == 7
    assert line_number("L1-L10") == 10
    assert line_number("garbage") == 0


def test_copy_line_id():
    assert copy_line_id("L1", "L10") == "L1-L10"
    # a copy of a copy points back at the original line
    assert copy_line_id("L1-L10", "L12") == "L1-L12"
    assert is_copy_line("L1-L10")
    assert not is_copy_line("L1")


def test_sorted_lines_puts_void_last():
    workspace = TakeoffWorkspace(1, store=None, settings_provider=None)
    workspace.lines = [
        {"line_id": "L2", "status": "Void"},
        {"line_id": "L10", "status": "Active"},
        {"line_id": "L1-L3", "status": "Active"},
        {"line_id": "L1", "status": "Active"},
    ]
    assert [line["line_id"] for line in workspace.sorted_lines()] == ["L1", "L1-L3", "L10", "L2"]


# ============================================================
# 5-13. Workspace operations
# ============================================================

def _workspace(db, project, company_settings):
    provider = SqlSettingsProvider(db)
    provider.save_company_settings(company_settings)
    return TakeoffWorkspace(project.id, SqlLineStore(db), provider)


def test_add_lines_computes_and_persists(db, project, company_settings):
    workspace = _workspace(db, project, company_settings)

    async def scenario():
        await workspace.load()
        first = await workspace.add_line(item_description="Column", size_designation="W12x65",
                                         grade="A992", length_ft=20)
        second = await workspace.add_line(item_description="Beam", size_designation="W8X31", length_ft=10)
        stored = await workspace.store.list_lines(project.id)
        return first, second, stored

    first, second, stored = asyncio.run(scenario())
    assert first["line_id"] == "L1"
    assert second["line_id"] == "L2"
    assert first["total_weight"] == pytest.approx(1300)
    assert first["resolved_material_rate"] == 1.05
    assert [line["line_id"] for line in stored] == ["L1", "L2"]
    assert stored[0]["updated_at"] is not None


def test_duplicate_void_and_summary(db, project, company_settings):
    workspace = _workspace(db, project, company_settings)

    async def scenario():
        await workspace.load()
        await workspace.add_line(item_description="Column", size_designation="W12x65", length_ft=20)
        await workspace.add_line(item_description="Beam", size_designation="W8X31", length_ft=10)
        copy = await workspace.duplicate_line("L1")
        voided = await workspace.void_line("L2")
        return copy, voided

    copy, voided = asyncio.run(scenario())
    assert copy["line_id"] == "L1-L3"
    assert copy["total_weight"] == pytest.approx(1300)
    assert voided["status"] == "Void"
    assert [line["line_id"] for line in workspace.sorted_lines()] == ["L1", "L1-L3", "L2"]

    summary = workspace.summary()
    assert summary["active_line_count"] == 2
    assert summary["total_weight"] == pytest.approx(2600)


def test_undo_redo_restores_snapshots_without_writing(db, project, company_settings):
    workspace = _workspace(db, project, company_settings)

    async def scenario():
        await workspace.load()
        await workspace.add_line(item_description="Column", size_designation="W12x65", length_ft=20)
        await workspace.add_line(item_description="Beam", size_designation="W8X31", length_ft=10)

    asyncio.run(scenario())
    undone = workspace.undo()
    assert [line["line_id"] for line in undone] == ["L1"]
    assert workspace.undo() == []
    assert workspace.undo() is None
    redone = workspace.redo()
    assert [line["line_id"] for line in redone] == ["L1"]

    # the store still has both lines
    stored = asyncio.run(workspace.store.list_lines(project.id))
    assert len(stored) == 2


def test_delete_unknown_line_raises(db, project, company_settings):
    workspace = _workspace(db, project, company_settings)

    async def scenario():
        await workspace.load()
        await workspace.add_line(item_description="Column")
        await workspace.delete_line("L1")
        await workspace.delete_line("L1")

    with pytest.raises(LineNotFoundError):
        asyncio.run(scenario())
    assert workspace.lines == []


def test_committed_edit_is_an_undo_step(db, project, company_settings):
    workspace = _workspace(db, project, company_settings)

    async def scenario():
        await workspace.load()
        await workspace.add_line(item_description="Column", size_designation="W12x65", length_ft=20)
        editor = workspace.open_editor("L1")
        editor.edit("qty", 3)
        return await editor.save()

    saved = asyncio.run(scenario())
    assert saved["qty"] == 3
    assert workspace.get_line("L1")["total_weight"] == pytest.approx(3900)

    workspace.undo()
    assert workspace.get_line("L1")["qty"] == 1


def test_external_updates_replace_without_undo_step(db, project, company_settings):
    store = SqlLineStore(db)
    provider = SqlSettingsProvider(db)
    provider.save_company_settings(company_settings)
    mine = TakeoffWorkspace(project.id, store, provider)
    theirs = TakeoffWorkspace(project.id, store, provider)

    async def scenario():
        await mine.load()
        await theirs.load()
        await mine.add_line(item_description="Column")
        await theirs.add_line(item_description="Beam")

    asyncio.run(scenario())
    assert [line["line_id"] for line in theirs.lines] == ["L1", "L2"]
    assert [line["line_id"] for line in mine.sorted_lines()] == ["L1", "L2"]
    # load + own add; the other user's add replaced the current entry
    assert len(mine.history) == 2
    mine.close()
    theirs.close()


def test_add_after_undo_skips_ids_still_in_store(db, project, company_settings):
    workspace = _workspace(db, project, company_settings)

    async def scenario():
        await workspace.load()
        await workspace.add_line(item_description="Column")
        workspace.undo()
        assert workspace.lines == []
        added = await workspace.add_line(item_description="Beam")
        copy = await workspace.duplicate_line(added["line_id"])
        stored = await workspace.store.list_lines(project.id)
        return added, copy, stored

    added, copy, stored = asyncio.run(scenario())
    assert added["line_id"] == "L2"
    assert copy["line_id"] == "L2-L3"
    assert sorted(line["line_id"] for line in stored) == ["L1", "L2", "L2-L3"]


def test_edit_after_undo_starts_from_restored_line(db, project, company_settings):
    workspace = _workspace(db, project, company_settings)

    async def scenario():
        await workspace.load()
        await workspace.add_line(item_description="Column", size_designation="W12x65", length_ft=20)
        editor = workspace.open_editor("L1")
        editor.edit("qty", 5)
        await editor.save()

        workspace.undo()
        assert workspace.get_line("L1")["qty"] == 1

        editor = workspace.open_editor("L1")
        editor.edit("notes", "field verify")
        return await editor.save()

    saved = asyncio.run(scenario())
    assert saved["qty"] == 1
    assert saved["notes"] == "field verify"
    assert saved["total_weight"] == pytest.approx(1300)
    assert workspace.get_line("L1")["qty"] == 1


def test_editor_opened_after_undo_keeps_restored_values(db, project, company_settings):
    workspace = _workspace(db, project, company_settings)

    async def scenario():
        await workspace.load()
        await workspace.add_line(item_description="Column", size_designation="W12x65", length_ft=20)
        await workspace.void_line("L1")
        workspace.undo()
        assert workspace.get_line("L1")["status"] == "Active"

        editor = workspace.open_editor("L1")
        editor.edit("qty", 2)
        return await editor.save()

    saved = asyncio.run(scenario())
    assert saved["status"] == "Active"
    assert saved["qty"] == 2
