"""Unit tests — PivotMutator."""

from __future__ import annotations

from typing import Any

import pytest

from sheetpilot.document.memory import InMemoryWorkbook
from sheetpilot.mutators.pivots import PivotMutator
from sheetpilot.protocol.models import ErrorKind, OutcomeStatus
from sheetpilot.protocol.ranges import parse_range


@pytest.fixture
def mutator() -> PivotMutator:
    return PivotMutator()


def _pivot_params(**extra: Any) -> dict[str, Any]:
    params: dict[str, Any] = {
        "name": "P",
        "destination": "Report!A1",
        "rows": ["region"],
        "values": [{"field": "revenue"}],
    }
    params.update(extra)
    return params


@pytest.fixture
async def pivoted(mutator: PivotMutator, make_action, doc: InMemoryWorkbook) -> InMemoryWorkbook:
    outcome = await mutator.apply(make_action("createPivotTable", "A1:C5", _pivot_params()), doc)
    assert outcome.status == OutcomeStatus.APPLIED
    return doc


@pytest.mark.unit
class TestCreatePivot:
    async def test_from_range(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("createPivotTable", "A1:C5", _pivot_params()), doc)
        assert outcome.entity == "P"
        assert outcome.detail == {"source": "Sheet1!A1:C5", "destination": "Report!A1", "entity": "P"}
        pivot = doc.pivot("P")
        assert pivot.rows == ["Region"]
        assert pivot.values == [("Revenue", "sum")]
        assert pivot.source_table is None

    async def test_from_table(self, mutator, make_action, doc) -> None:
        await doc.add_table(parse_range("Sheet1!A1:C5"), "Sales", True, "TableStyleMedium2")
        outcome = await mutator.apply(make_action("createPivotTable", "Sales", _pivot_params()), doc)
        assert outcome.status == OutcomeStatus.APPLIED
        assert doc.pivot("P").source_table == "Sales"

    async def test_unknown_field(self, mutator, make_action, doc) -> None:
        action = make_action("createPivotTable", "A1:C5", _pivot_params(rows=["Region", "Colour"]))
        outcome = await mutator.apply(action, doc)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.INVALID_PARAMETER
        assert outcome.field_name == "rows.1"
        assert "Colour" in outcome.message
        assert doc.pivots == []

    async def test_field_in_two_areas(self, mutator, make_action, doc) -> None:
        action = make_action("createPivotTable", "A1:C5", _pivot_params(columns=["Region"]))
        outcome = await mutator.apply(action, doc)
        assert outcome.field_name == "columns.0"
        assert "already used in rows" in outcome.message

    async def test_destination_sheet_created(self, mutator, make_action, doc) -> None:
        action = make_action("createPivotTable", "A1:C5", _pivot_params(destination="Pivots!A3"))
        outcome = await mutator.apply(action, doc)
        assert outcome.status == OutcomeStatus.APPLIED
        assert "Pivots" in doc.sheet_names
        assert doc.pivot("P").sheet == "Pivots"

    async def test_destination_defaults_to_active_sheet(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(
            make_action("createPivotTable", "A1:C5", _pivot_params(destination="F1")), doc
        )
        assert outcome.detail["destination"] == "Sheet1!F1"


@pytest.mark.unit
class TestEditPivot:
    async def test_add_field(self, mutator, make_action, pivoted) -> None:
        action = make_action("addPivotField", "P", {"field": "product", "area": "column"})
        outcome = await mutator.apply(action, pivoted)
        assert outcome.detail == {"field": "Product", "area": "column"}
        assert pivoted.pivot("P").columns == ["Product"]

    async def test_add_unknown_field(self, mutator, make_action, pivoted) -> None:
        outcome = await mutator.apply(make_action("addPivotField", "P", {"field": "Colour", "area": "row"}), pivoted)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.field_name == "field"

    async def test_layout(self, mutator, make_action, pivoted) -> None:
        action = make_action("configurePivotLayout", "P", {"layout": "tabular", "showGrandTotals": False})
        outcome = await mutator.apply(action, pivoted)
        assert outcome.detail == {"applied": ["layout", "show_grand_totals"]}
        pivot = pivoted.pivot("P")
        assert pivot.layout == "tabular"
        assert pivot.options == {"show_grand_totals": False}

    async def test_refresh_drops_vanished_fields(self, mutator, make_action, pivoted) -> None:
        pivoted.set_values("Sheet1", "C1", [["Amount"]])
        outcome = await mutator.apply(make_action("refreshPivotTable", "P"), pivoted)
        assert outcome.detail == {"refreshed": ["P"]}
        pivot = pivoted.pivot("P")
        assert "Amount" in pivot.source_fields
        assert pivot.values == []
        assert pivot.refreshed == 1

    async def test_refresh_all(self, mutator, make_action, pivoted) -> None:
        outcome = await mutator.apply(make_action("refreshPivotTable", None, {"refreshAll": True}), pivoted)
        assert outcome.detail == {"refreshed": ["P"]}

    async def test_delete(self, mutator, make_action, pivoted) -> None:
        outcome = await mutator.apply(make_action("deletePivotTable", "p"), pivoted)
        assert outcome.status == OutcomeStatus.APPLIED
        assert pivoted.pivot("P") is None
