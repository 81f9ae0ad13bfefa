"""Unit tests — WorksheetMutator (sheet lifecycle and window settings)."""

from __future__ import annotations

import pytest

from sheetpilot.document.memory import InMemoryWorkbook
from sheetpilot.mutators.worksheets import WorksheetMutator
from sheetpilot.protocol.models import ErrorKind, OutcomeStatus


@pytest.fixture
def mutator() -> WorksheetMutator:
    return WorksheetMutator()


@pytest.mark.unit
class TestLifecycle:
    async def test_add_with_values(self, mutator, make_action, doc) -> None:
        params = {"values": [["Total", 450]], "position": 0, "activate": True}
        outcome = await mutator.apply(make_action("sheet", "Summary", params), doc)
        assert outcome.entity == "Summary"
        assert outcome.detail == {"cells": 2, "entity": "Summary"}
        assert doc.sheet_names == ["Summary", "Sheet1", "Report"]
        assert doc.active_sheet_name == "Summary"
        assert doc.value("Summary", 1, 2) == 450

    async def test_add_existing_fails(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("sheet", "report"), doc)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.DOCUMENT_REJECTED

    async def test_rename(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("renameSheet", "sheet1", {"newName": "Data"}), doc)
        assert outcome.detail == {"old_name": "Sheet1", "new_name": "Data"}
        assert doc.sheet_names == ["Data", "Report"]

    async def test_rename_onto_existing_fails(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("renameSheet", "Sheet1", {"newName": "Report"}), doc)
        assert outcome.status == OutcomeStatus.FAILED
        assert doc.sheet_names == ["Sheet1", "Report"]

    async def test_move(self, mutator, make_action, doc) -> None:
        await mutator.apply(make_action("moveSheet", "Report", {"position": 0}), doc)
        assert doc.sheet_names == ["Report", "Sheet1"]

    async def test_move_out_of_range(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("moveSheet", "Report", {"position": 5}), doc)
        assert outcome.status == OutcomeStatus.FAILED
        assert "out of range" in outcome.message

    async def test_hide_and_unhide(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("hideSheet", "Sheet1", {"veryHidden": True}), doc)
        assert outcome.detail == {"visibility": "veryHidden"}
        assert doc.active_sheet_name == "Report"
        await mutator.apply(make_action("unhideSheet", "Sheet1"), doc)
        assert doc.worksheet("Sheet1").visibility == "visible"

    async def test_structure_changes_blocked_by_workbook_protection(self, mutator, make_action, doc) -> None:
        await doc.protect_workbook(None)
        outcome = await mutator.apply(make_action("sheet", "Summary"), doc)
        assert outcome.status == OutcomeStatus.SKIPPED
        assert outcome.error_kind == ErrorKind.SHEET_PROTECTED
        assert "Summary" not in doc.sheet_names


@pytest.mark.unit
class TestWindow:
    async def test_freeze_at_cell(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("freezePanes", None, {"cell": "B3"}), doc)
        assert outcome.detail == {"rows": 2, "columns": 1}
        assert doc.worksheet("Sheet1").freeze == (2, 1)

        await mutator.apply(make_action("unfreezePane"), doc)
        assert doc.worksheet("Sheet1").freeze is None

    async def test_split_refused_while_frozen(self, mutator, make_action, doc) -> None:
        await mutator.apply(make_action("freezePanes", None, {"rows": 1}), doc)
        outcome = await mutator.apply(make_action("splitPane", None, {"row": 4}), doc)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.DOCUMENT_REJECTED

    async def test_zoom_on_named_sheet(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("setZoom", "Report", {"zoom": 150}), doc)
        assert outcome.detail == {"zoom": 150}
        assert doc.worksheet("Report").zoom == 150
        assert doc.worksheet("Sheet1").zoom == 100

    async def test_create_view(self, mutator, make_action, doc) -> None:
        action = make_action("createView", "Audit", {"sheet": "Report", "activate": True})
        outcome = await mutator.apply(action, doc)
        assert outcome.entity == "Audit"
        assert outcome.detail == {"sheet": "Report", "entity": "Audit"}
        assert doc.active_sheet_name == "Report"

        again = await mutator.apply(make_action("createView", "audit"), doc)
        assert again.status == OutcomeStatus.FAILED
