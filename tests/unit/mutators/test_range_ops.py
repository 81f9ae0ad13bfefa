"""Unit tests — RangeMutator (contents, sort, filter, fill and copy)."""

from __future__ import annotations

import pytest

from sheetpilot.document.memory import InMemoryWorkbook
from sheetpilot.mutators.range_ops import RangeMutator
from sheetpilot.protocol.models import ErrorKind, OutcomeStatus
from sheetpilot.protocol.ranges import parse_range


class UnreadableWorkbook(InMemoryWorkbook):
    async def capture_snapshot(self):
        raise RuntimeError("connection lost")


@pytest.fixture
def mutator() -> RangeMutator:
    return RangeMutator()


async def _column(doc: InMemoryWorkbook, address: str, formulas: bool = False) -> list:
    grid = await doc.read_range(parse_range(address), formulas=formulas)
    return [row[0] for row in grid]


@pytest.mark.unit
class TestContents:
    async def test_values_into_every_area(self, mutator, make_action, empty_doc) -> None:
        action = make_action("values", "A1:A2,C1:C2", {"values": [[1], [2]]})
        outcome = await mutator.apply(action, empty_doc)
        assert outcome.status == OutcomeStatus.APPLIED
        assert outcome.detail == {"cells": 4}
        assert await _column(empty_doc, "C1:C2") == [1, 2]

    async def test_formula_relative_per_cell(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("formula", "D2:D5", {"formula": "=C2*2"}), doc)
        assert outcome.detail == {"cells": 4}
        assert await _column(doc, "D2:D5", formulas=True) == ["=C2*2", "=C3*2", "=C4*2", "=C5*2"]

    async def test_formula_on_whole_column_clipped_to_used_range(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("formula", "C:C", {"formula": "=1"}), doc)
        assert outcome.detail == {"cells": 5}

    async def test_whole_column_outside_used_range_writes_nothing(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("formula", "F:F", {"formula": "=1"}), doc)
        assert outcome.status == OutcomeStatus.APPLIED
        assert outcome.detail == {"cells": 0}

    async def test_format_recorded(self, mutator, make_action, doc) -> None:
        action = make_action("format", "A1:C1", {"bold": True, "fill": "Yellow"})
        outcome = await mutator.apply(action, doc)
        assert outcome.detail == {"applied": ["bold", "fill"]}
        [(rng, fmt)] = doc.worksheet("Sheet1").formats
        assert rng.address == "A1:C1"
        assert fmt == {"bold": True, "fill": "yellow"}

    async def test_list_validation_from_range(self, mutator, make_action, doc) -> None:
        action = make_action("validation", "E2:E5", {"type": "list", "source": "A2:A5"})
        await mutator.apply(action, doc)
        [(rng, rule)] = doc.worksheet("Sheet1").validations
        assert rng.address == "E2:E5"
        assert rule["source"] == "Sheet1!A2:A5"


@pytest.mark.unit
class TestSortAndFilter:
    async def test_sort_descending_keeps_header(self, mutator, make_action, doc) -> None:
        action = make_action("sort", "A1:C5", {"column": 2, "ascending": False})
        outcome = await mutator.apply(action, doc)
        assert outcome.detail == {"rows": 4}
        assert await _column(doc, "C1:C5") == ["Revenue", 200, 120, 80, 50]

    async def test_sort_blanks_last(self, mutator, make_action, empty_doc) -> None:
        empty_doc.set_values("Sheet1", "A1", [["b"], ["a"], ["c"]])
        empty_doc.set_values("Sheet1", "B1", [[1], [1], [1], [1]])
        action = make_action("sort", "A1:B4", {"hasHeaders": False})
        await mutator.apply(action, empty_doc)
        assert await _column(empty_doc, "A1:A4") == ["a", "b", "c", None]

    async def test_sort_column_outside_range(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("sort", "A1:C5", {"column": 3}), doc)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.INVALID_PARAMETER
        assert outcome.field_name == "column"

    async def test_filter(self, mutator, make_action, doc) -> None:
        action = make_action("filter", "A1:C5", {"column": 1, "values": ["Gadget"]})
        outcome = await mutator.apply(action, doc)
        assert outcome.detail == {"visible_rows": 2}
        assert doc.worksheet("Sheet1").hidden_rows == {2, 3}

    async def test_clear_filter(self, mutator, make_action, doc) -> None:
        await doc.apply_filter(parse_range("A1:C5"), 0, ["East"])
        outcome = await mutator.apply(make_action("clearFilter"), doc)
        assert outcome.detail == {"sheet": "Sheet1"}
        assert doc.worksheet("Sheet1").autofilter is None

    async def test_remove_duplicates(self, mutator, make_action, doc) -> None:
        action = make_action("removeDuplicates", "A1:C5", {"columns": [0]})
        outcome = await mutator.apply(action, doc)
        assert outcome.detail == {"removed": 1, "remaining": 3}
        assert await _column(doc, "A1:A5") == ["Region", "North", "South", "East", None]


@pytest.mark.unit
class TestFillAndCopy:
    async def test_autofill_numeric_series(self, mutator, make_action, empty_doc) -> None:
        empty_doc.set_values("Sheet1", "A1", [[1], [2]])
        outcome = await mutator.apply(make_action("autofill", "A1:A5", {"source": "A1:A2"}), empty_doc)
        assert outcome.detail == {"cells": 3}
        assert await _column(empty_doc, "A1:A5") == [1, 2, 3, 4, 5]

    async def test_autofill_shifts_formulas(self, mutator, make_action, empty_doc) -> None:
        empty_doc.set_values("Sheet1", "B1", [["=A1*2"]])
        await mutator.apply(make_action("autofill", "B1:B3", {"source": "B1"}), empty_doc)
        assert await _column(empty_doc, "B1:B3", formulas=True) == ["=A1*2", "=A2*2", "=A3*2"]

    async def test_autofill_across(self, mutator, make_action, empty_doc) -> None:
        empty_doc.set_values("Sheet1", "A1", [["Q"]])
        await mutator.apply(make_action("autofill", "A1:C1", {"source": "A1"}), empty_doc)
        assert await empty_doc.read_range(parse_range("A1:C1")) == [["Q", "Q", "Q"]]

    async def test_autofill_source_must_be_top_left(self, mutator, make_action, empty_doc) -> None:
        empty_doc.set_values("Sheet1", "A2", [[1]])
        outcome = await mutator.apply(make_action("autofill", "A1:A5", {"source": "A2"}), empty_doc)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.field_name == "source"

    async def test_copy_shifts_formulas(self, mutator, make_action, doc) -> None:
        doc.set_values("Sheet1", "D2", [["=C2*2"]])
        outcome = await mutator.apply(make_action("copy", "D3", {"source": "D2"}), doc)
        assert outcome.detail == {"destination": "Sheet1!D3"}
        assert await _column(doc, "D3", formulas=True) == ["=C3*2"]

    async def test_copy_block_to_other_sheet(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("copyValues", "Report!B2", {"source": "A1:C2"}), doc)
        assert outcome.detail == {"destination": "Report!B2:D3"}
        assert doc.value("Report", 3, 2) == "North"


@pytest.mark.unit
class TestRegating:
    async def test_protected_sheet_skips(self, mutator, make_action, doc) -> None:
        await doc.protect_sheet("Sheet1", None, frozenset())
        outcome = await mutator.apply(make_action("values", "E1", {"values": 1}), doc)
        assert outcome.status == OutcomeStatus.SKIPPED
        assert outcome.error_kind == ErrorKind.SHEET_PROTECTED

    async def test_unreadable_document_fails(self, mutator, make_action) -> None:
        document = UnreadableWorkbook()
        outcome = await mutator.apply(make_action("values", "E1", {"values": 1}), document)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.DOCUMENT_REJECTED
        assert outcome.message == "RuntimeError: connection lost"
        assert document.value("Sheet1", 1, 5) is None
