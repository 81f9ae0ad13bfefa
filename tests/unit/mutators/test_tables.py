"""Unit tests — TableMutator."""

from __future__ import annotations

import pytest

from sheetpilot.document.memory import InMemoryWorkbook
from sheetpilot.mutators.tables import TableMutator
from sheetpilot.protocol.models import ErrorKind, OutcomeStatus


@pytest.fixture
def mutator() -> TableMutator:
    return TableMutator()


@pytest.fixture
async def sales(mutator: TableMutator, make_action, doc: InMemoryWorkbook) -> InMemoryWorkbook:
    outcome = await mutator.apply(make_action("createTable", "A1:C5", {"name": "Sales"}), doc)
    assert outcome.status == OutcomeStatus.APPLIED
    return doc


@pytest.mark.unit
class TestCreateTable:
    async def test_reports_entity_and_columns(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("createTable", "A1:C5", {"name": "Sales"}), doc)
        assert outcome.entity == "Sales"
        assert outcome.detail["columns"] == ["Region", "Product", "Revenue"]
        assert outcome.detail["range"] == "Sheet1!A1:C5"

    async def test_document_picks_name(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("createTable", "A1:C5"), doc)
        assert outcome.entity == "Table1"

    async def test_existing_name_fails_before_document_call(self, mutator, make_action, sales) -> None:
        sales.operations.clear()
        outcome = await mutator.apply(make_action("createTable", "E1:F3", {"name": "sales"}), sales)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.DOCUMENT_REJECTED
        assert "already exists" in outcome.message
        assert sales.operations == []

    async def test_without_headers(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("createTable", "A2:C5", {"hasHeaders": False}), doc)
        assert outcome.detail["columns"] == ["Column1", "Column2", "Column3"]


@pytest.mark.unit
class TestEditTable:
    async def test_style(self, mutator, make_action, sales) -> None:
        action = make_action("styleTable", "Sales", {"style": "TableStyleDark3", "showBandedRows": False})
        outcome = await mutator.apply(action, sales)
        assert outcome.detail == {"applied": ["show_banded_rows", "style"]}
        table = sales.table("Sales")
        assert table.style == "TableStyleDark3"
        assert table.options == {"show_banded_rows": False}

    async def test_missing_table_skipped(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("styleTable", "Ghost", {"style": "TableStyleDark3"}), doc)
        assert outcome.status == OutcomeStatus.SKIPPED
        assert outcome.error_kind == ErrorKind.ENTITY_NOT_FOUND

    async def test_add_row_at_end(self, mutator, make_action, sales) -> None:
        action = make_action("addTableRow", "Sales", {"values": ["West", "Widget", 75]})
        outcome = await mutator.apply(action, sales)
        assert outcome.detail == {"rows": 1}
        assert sales.table("Sales").range.address == "A1:C6"
        assert sales.value("Sheet1", 6, 1) == "West"

    async def test_add_row_wrong_width(self, mutator, make_action, sales) -> None:
        outcome = await mutator.apply(make_action("addTableRow", "Sales", {"values": ["West"]}), sales)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.DOCUMENT_REJECTED

    async def test_add_column(self, mutator, make_action, sales) -> None:
        action = make_action("addTableColumn", "Sales", {"header": "Units", "values": [1, 2, 3, 4]})
        outcome = await mutator.apply(action, sales)
        assert outcome.detail == {"header": "Units"}
        table = sales.table("Sales")
        assert table.columns[-1] == "Units"
        assert table.range.address == "A1:D5"

    async def test_resize(self, mutator, make_action, sales) -> None:
        sales.set_values("Sheet1", "A6", [["West", "Gizmo", 10]])
        outcome = await mutator.apply(make_action("resizeTable", "Sales", {"newRange": "A1:C6"}), sales)
        assert outcome.detail == {"range": "Sheet1!A1:C6"}
        assert sales.table("Sales").range.address == "A1:C6"

    async def test_convert_to_range(self, mutator, make_action, sales) -> None:
        outcome = await mutator.apply(make_action("convertToRange", "Sales"), sales)
        assert outcome.status == OutcomeStatus.APPLIED
        assert sales.table("Sales") is None
        assert sales.value("Sheet1", 1, 1) == "Region"


@pytest.mark.unit
class TestTotals:
    async def test_sum_by_name_and_index(self, mutator, make_action, sales) -> None:
        action = make_action(
            "toggleTableTotals", "Sales",
            {"totals": [{"column": "revenue", "function": "sum"}, {"column": 1, "function": "count"}]},
        )
        outcome = await mutator.apply(action, sales)
        assert outcome.detail == {"show": True, "totals": {"Revenue": "sum", "Product": "count"}}
        assert sales.value("Sheet1", 6, 1) == "Total"
        assert sales.value("Sheet1", 6, 2) == "=SUBTOTAL(103,Sales[Product])"
        assert sales.value("Sheet1", 6, 3) == "=SUBTOTAL(109,Sales[Revenue])"

    async def test_unknown_column_is_policy_error(self, mutator, make_action, sales) -> None:
        action = make_action(
            "toggleTableTotals", "Sales", {"totals": [{"column": "Profit", "function": "sum"}]}
        )
        outcome = await mutator.apply(action, sales)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.INVALID_PARAMETER
        assert outcome.field_name == "totals.0.column"

    async def test_hide_totals(self, mutator, make_action, sales) -> None:
        await mutator.apply(make_action("toggleTableTotals", "Sales"), sales)
        await mutator.apply(make_action("toggleTableTotals", "Sales", {"show": False}), sales)
        table = sales.table("Sales")
        assert not table.show_totals
        assert table.range.address == "A1:C5"
