"""Unit tests — PageSetupMutator."""

from __future__ import annotations

import pytest

from sheetpilot.mutators.page_setup import PageSetupMutator
from sheetpilot.protocol.models import OutcomeStatus


@pytest.fixture
def mutator() -> PageSetupMutator:
    return PageSetupMutator()


@pytest.mark.unit
class TestPageLayout:
    async def test_setup_merges_with_earlier_values(self, mutator, make_action, doc) -> None:
        await mutator.apply(make_action("setPageSetup", None, {"paperSize": "a4", "scale": 80}), doc)
        outcome = await mutator.apply(make_action("setPageSetup", None, {"printGridlines": True}), doc)
        assert outcome.detail == {"sheet": "Sheet1", "applied": ["print_gridlines"]}
        assert doc.worksheet("Sheet1").page["setup"] == {
            "paper_size": "a4", "scale": 80, "print_gridlines": True,
        }

    async def test_margins_on_named_sheet(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("setPageMargins", "report", {"top": 1, "left": 0.5}), doc)
        assert outcome.detail == {"sheet": "Report", "applied": ["left", "top"]}
        assert doc.worksheet("Report").page["margins"] == {"top": 1, "left": 0.5}

    async def test_orientation(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("setPageOrientation", None, {"orientation": "landscape"}), doc)
        assert outcome.detail == {"sheet": "Sheet1", "orientation": "landscape"}
        assert doc.worksheet("Sheet1").page["orientation"] == "landscape"

    async def test_header_footer(self, mutator, make_action, doc) -> None:
        action = make_action("setHeaderFooter", None, {"header": {"center": "Q3 sales"}})
        outcome = await mutator.apply(action, doc)
        assert outcome.detail["applied"] == ["header"]
        assert doc.worksheet("Sheet1").page["header_footer"] == {"header": {"center": "Q3 sales"}}

    async def test_allowed_on_protected_sheet(self, mutator, make_action, doc) -> None:
        await doc.protect_sheet("Sheet1", None, frozenset())
        outcome = await mutator.apply(make_action("setPageOrientation", None, {"orientation": "portrait"}), doc)
        assert outcome.status == OutcomeStatus.APPLIED


@pytest.mark.unit
class TestPrintArea:
    async def test_print_area(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("setPrintArea", "A1:C5"), doc)
        assert outcome.detail == {"print_area": "Sheet1!A1:C5"}
        assert doc.worksheet("Sheet1").print_area.address == "A1:C5"

    async def test_page_breaks(self, mutator, make_action, doc) -> None:
        await mutator.apply(make_action("setPageBreaks", None, {"rows": [10, 20]}), doc)
        ws = doc.worksheet("Sheet1")
        assert ws.row_breaks == {10, 20}

        outcome = await mutator.apply(
            make_action("setPageBreaks", None, {"columns": [3], "clearExisting": True}), doc
        )
        assert outcome.detail == {"sheet": "Sheet1", "rows": [], "columns": [3]}
        assert ws.row_breaks == set()
        assert ws.column_breaks == {3}
