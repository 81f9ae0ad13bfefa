"""Unit tests — InMemoryWorkbook (the reference document)."""

from __future__ import annotations

import pytest

from sheetpilot.document.base import NamedRangeInfo, PivotInfo, SlicerInfo
from sheetpilot.document.memory import InMemoryWorkbook
from sheetpilot.exceptions import DocumentRejectedError
from sheetpilot.protocol.ranges import CellRange, parse_range
from sheetpilot.protocol.schema import EntityKind, EntityRef


def _rng(text: str) -> CellRange:
    return parse_range(text)


async def _sales_table(doc: InMemoryWorkbook, name: str | None = "Sales"):
    return await doc.add_table(_rng("Sheet1!A1:C5"), name, True, "TableStyleMedium2")


@pytest.mark.unit
class TestSnapshot:
    async def test_snapshot_lists_sheets_and_entities(self, doc: InMemoryWorkbook) -> None:
        await _sales_table(doc)
        snapshot = await doc.capture_snapshot()
        assert snapshot.api_level == "1.18"
        assert snapshot.active_sheet == "Sheet1"
        assert snapshot.has_sheet("report")
        assert snapshot.has_entity(EntityRef(EntityKind.TABLE, "sales"))
        assert snapshot.entity_sheet(EntityRef(EntityKind.TABLE, "Sales")) == "Sheet1"

    async def test_reads_are_not_recorded_as_operations(self, doc: InMemoryWorkbook) -> None:
        await doc.capture_snapshot()
        await doc.read_range(_rng("A1:C5"))
        assert doc.operations == []


@pytest.mark.unit
class TestCells:
    async def test_single_cell_anchor_expands(self, empty_doc: InMemoryWorkbook) -> None:
        written = await empty_doc.write_range(_rng("B2"), [[1, 2], [3, 4]])
        assert written == 4
        assert empty_doc.value("Sheet1", 3, 3) == 4
        assert empty_doc.operations == ["write_range"]

    async def test_size_mismatch_rejected(self, empty_doc: InMemoryWorkbook) -> None:
        with pytest.raises(DocumentRejectedError, match="doesn't match"):
            await empty_doc.write_range(_rng("A1:B2"), [[1, 2, 3]])

    async def test_ragged_grid_rejected(self, empty_doc: InMemoryWorkbook) -> None:
        with pytest.raises(DocumentRejectedError):
            await empty_doc.write_range(_rng("A1"), [[1, 2], [3]])

    async def test_formula_cells_hidden_unless_requested(self, empty_doc: InMemoryWorkbook) -> None:
        await empty_doc.write_range(_rng("A1"), [[1, "=A1*2"]])
        assert await empty_doc.read_range(_rng("A1:B1")) == [[1, None]]
        assert await empty_doc.read_range(_rng("A1:B1"), formulas=True) == [[1, "=A1*2"]]

    async def test_unknown_sheet_rejected(self, empty_doc: InMemoryWorkbook) -> None:
        with pytest.raises(DocumentRejectedError, match="was not found"):
            await empty_doc.write_range(_rng("Nowhere!A1"), [[1]])

    async def test_filter_hides_rows(self, doc: InMemoryWorkbook) -> None:
        visible = await doc.apply_filter(_rng("A1:C5"), 0, ["North"])
        assert visible == 2
        assert doc.worksheet("Sheet1").hidden_rows == {3, 5}
        await doc.clear_filter("Sheet1")
        assert doc.worksheet("Sheet1").hidden_rows == set()


@pytest.mark.unit
class TestShifting:
    async def test_insert_rows_moves_cells_and_tables(self, doc: InMemoryWorkbook) -> None:
        await _sales_table(doc)
        await doc.insert_rows("Sheet1", 1, 2)
        assert doc.value("Sheet1", 3, 1) == "Region"
        assert doc.table("Sales").range.address == "A3:C7"

    async def test_delete_rows_inside_table_shrinks_it(self, doc: InMemoryWorkbook) -> None:
        await _sales_table(doc)
        await doc.delete_rows("Sheet1", 2, 3)
        assert doc.table("Sales").range.address == "A1:C3"
        assert doc.value("Sheet1", 2, 1) == "North"
        assert doc.value("Sheet1", 2, 2) == "Gadget"

    async def test_deleting_header_row_rejected(self, doc: InMemoryWorkbook) -> None:
        await _sales_table(doc)
        with pytest.raises(DocumentRejectedError, match="header row"):
            await doc.delete_rows("Sheet1", 1, 1)

    async def test_insert_column_renames_nothing(self, doc: InMemoryWorkbook) -> None:
        await _sales_table(doc)
        await doc.insert_columns("Sheet1", 1, 1)
        assert doc.table("Sales").range.address == "B1:D5"
        assert doc.table("Sales").columns == ["Region", "Product", "Revenue"]


@pytest.mark.unit
class TestTables:
    async def test_auto_name(self, doc: InMemoryWorkbook) -> None:
        table = await _sales_table(doc, None)
        assert table.name == "Table1"

    async def test_duplicate_headers_made_unique(self, empty_doc: InMemoryWorkbook) -> None:
        empty_doc.set_values("Sheet1", "A1", [["Qty", "Qty", ""], [1, 2, 3]])
        table = await empty_doc.add_table(_rng("A1:C2"), "T", True, "TableStyleLight1")
        assert table.columns == ["Qty", "Qty2", "Column3"]
        assert empty_doc.value("Sheet1", 1, 2) == "Qty2"

    async def test_overlap_rejected(self, doc: InMemoryWorkbook) -> None:
        await _sales_table(doc)
        with pytest.raises(DocumentRejectedError, match="overlap"):
            await doc.add_table(_rng("B2:D8"), "Other", True, "TableStyleLight1")

    async def test_name_shared_with_named_ranges(self, doc: InMemoryWorkbook) -> None:
        await doc.add_named_range(NamedRangeInfo(name="Sales", value=1))
        with pytest.raises(DocumentRejectedError, match="already exists"):
            await _sales_table(doc)

    async def test_totals_row(self, doc: InMemoryWorkbook) -> None:
        await _sales_table(doc)
        await doc.set_table_totals("Sales", True, {"Revenue": "sum"})
        table = doc.table("Sales")
        assert table.range.address == "A1:C6"
        assert doc.value("Sheet1", 6, 1) == "Total"
        assert doc.value("Sheet1", 6, 3) == "=SUBTOTAL(109,Sales[Revenue])"

        await doc.set_table_totals("Sales", False, {})
        assert doc.table("Sales").range.address == "A1:C5"
        assert doc.value("Sheet1", 6, 1) is None

    async def test_header_edit_renames_column(self, doc: InMemoryWorkbook) -> None:
        await _sales_table(doc)
        await doc.write_range(_rng("C1"), [["Amount"]])
        assert doc.table("Sales").columns[-1] == "Amount"


@pytest.mark.unit
class TestPivotsAndSlicers:
    async def test_pivot_rejects_unknown_field(self, doc: InMemoryWorkbook) -> None:
        pivot = PivotInfo(
            name="P", sheet="Report", source=_rng("Sheet1!A1:C5"),
            source_fields=["Region", "Product", "Revenue"], destination=_rng("Report!A1"),
            rows=["Colour"],
        )
        with pytest.raises(DocumentRejectedError, match="no field named 'Colour'"):
            await doc.add_pivot(pivot)

    async def test_slicer_defaults(self, doc: InMemoryWorkbook) -> None:
        await _sales_table(doc)
        slicer = SlicerInfo(
            name="", sheet="Sheet1", source_kind=EntityKind.TABLE, source_name="Sales",
            field="region", items=[], caption="", style="SlicerStyleLight1",
            position={}, selected_items=[],
        )
        name = await doc.add_slicer(slicer)
        assert name == "Slicer_Region"
        stored = doc.slicer(name)
        assert stored.items == ["North", "South", "East"]
        assert stored.selected_items == stored.items
        assert stored.caption == "Region"

    async def test_converting_table_drops_its_slicers(self, doc: InMemoryWorkbook) -> None:
        await _sales_table(doc)
        slicer = SlicerInfo(
            name="S", sheet="Sheet1", source_kind=EntityKind.TABLE, source_name="Sales",
            field="Product", items=[], caption="", style="SlicerStyleLight1",
            position={}, selected_items=[],
        )
        await doc.add_slicer(slicer)
        await doc.convert_table_to_range("Sales")
        assert doc.slicers == []


@pytest.mark.unit
class TestProtection:
    async def test_protected_sheet_refuses_writes(self, doc: InMemoryWorkbook) -> None:
        await doc.protect_sheet("Sheet1", None, frozenset())
        with pytest.raises(DocumentRejectedError, match="protected sheet"):
            await doc.write_range(_rng("E1"), [[1]])

    async def test_unlocked_cells_stay_writable(self, doc: InMemoryWorkbook) -> None:
        await doc.set_cells_locked(_rng("E1:E5"), False, False)
        await doc.protect_sheet("Sheet1", None, frozenset())
        await doc.write_range(_rng("E1"), [[1]])
        assert doc.value("Sheet1", 1, 5) == 1

    async def test_wrong_password(self, doc: InMemoryWorkbook) -> None:
        await doc.protect_sheet("Sheet1", "x", frozenset())
        with pytest.raises(DocumentRejectedError, match="password you supplied is not correct"):
            await doc.unprotect_sheet("Sheet1", "y")
        await doc.unprotect_sheet("Sheet1", "x")
        assert not doc.worksheet("Sheet1").protection.protected

    async def test_double_protection_rejected(self, doc: InMemoryWorkbook) -> None:
        await doc.protect_sheet("Sheet1", None, frozenset())
        with pytest.raises(DocumentRejectedError, match="already protected"):
            await doc.protect_sheet("Sheet1", None, frozenset())

    async def test_workbook_structure(self, doc: InMemoryWorkbook) -> None:
        await doc.protect_workbook("pw")
        with pytest.raises(DocumentRejectedError, match="structure is protected"):
            await doc.add_sheet("Summary")
        await doc.unprotect_workbook("pw")
        await doc.add_sheet("Summary")
        assert doc.sheet_names == ["Sheet1", "Report", "Summary"]


@pytest.mark.unit
class TestWorksheets:
    async def test_rename_carries_entities(self, doc: InMemoryWorkbook) -> None:
        await _sales_table(doc)
        await doc.rename_sheet("Sheet1", "Data")
        assert doc.active_sheet_name == "Data"
        assert doc.table("Sales").range.sheet == "Data"

    async def test_last_visible_sheet_cannot_hide(self, empty_doc: InMemoryWorkbook) -> None:
        with pytest.raises(DocumentRejectedError, match="at least one visible"):
            await empty_doc.set_sheet_visibility("Sheet1", "hidden")

    async def test_hiding_active_sheet_moves_selection(self, doc: InMemoryWorkbook) -> None:
        await doc.set_sheet_visibility("Sheet1", "hidden")
        assert doc.active_sheet_name == "Report"
