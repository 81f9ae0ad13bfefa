"""Document layer — In-memory workbook.

A complete ``DocumentHandle`` backed by plain Python data.  It enforces the
same refusals a live spreadsheet would (name collisions, overlapping tables,
wrong passwords, protected sheets, hiding the last visible sheet...) by
raising ``DocumentRejectedError``.  There is no calculation engine: formula
cells hold their formula text and read back as ``None`` values.

Every mutating call is appended to ``operations`` so tests can assert which
capabilities were exercised.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Container, Iterable, TypeVar

from openpyxl.utils.protection import hash_password

from sheetpilot.document.base import (
    UNPROTECTED,
    ChartInfo,
    CommentInfo,
    DocumentHandle,
    HyperlinkInfo,
    NamedRangeInfo,
    PivotInfo,
    SheetProtection,
    ShapeInfo,
    SlicerInfo,
    SparklineInfo,
    TableInfo,
)
from sheetpilot.exceptions import DocumentRejectedError
from sheetpilot.protocol.ranges import MAX_COLUMNS, MAX_ROWS, CellRange, anchor_name, parse_cell
from sheetpilot.protocol.schema import EntityKind


Cell = tuple[int, int]
_F = TypeVar("_F", bound=Callable[..., Awaitable[Any]])

SUBTOTAL_CODES = {
    "average": 101,
    "countNumbers": 102,
    "count": 103,
    "max": 104,
    "min": 105,
    "stdDev": 107,
    "sum": 109,
    "var": 110,
}

_SHAPE_LABELS = {"image": "Picture", "textBox": "TextBox", "group": "Group"}


def _mutation(method: _F) -> _F:
    @functools.wraps(method)
    async def wrapper(self: "InMemoryWorkbook", *args: Any, **kwargs: Any) -> Any:
        self.operations.append(method.__name__)
        return await method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def _hash(password: str | None) -> str | None:
    return hash_password(password) if password else None


def _next_name(prefix: str, taken: Container[str], sep: str = "") -> str:
    n = 1
    while f"{prefix}{sep}{n}".casefold() in taken:
        n += 1
    return f"{prefix}{sep}{n}"


# ---------------------------------------------------------------------------
# Row/column shifting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Shift:
    """Insertion (count > 0) or deletion (count < 0) along one axis."""

    axis: str  # "rows" | "columns"
    at: int
    count: int

    @property
    def last_deleted(self) -> int:
        return self.at - self.count - 1

    def deletes(self, index: int) -> bool:
        return self.count < 0 and self.at <= index <= self.last_deleted

    def index(self, index: int) -> int | None:
        if self.count > 0:
            return index + self.count if index >= self.at else index
        if self.deletes(index):
            return None
        return index + self.count if index > self.last_deleted else index

    def cell(self, cell: Cell) -> Cell | None:
        row, column = cell
        if self.axis == "rows":
            moved = self.index(row)
            return None if moved is None else (moved, column)
        moved = self.index(column)
        return None if moved is None else (row, moved)

    def span(self, first: int, last: int) -> tuple[int, int] | None:
        if self.count > 0:
            if first >= self.at:
                return first + self.count, last + self.count
            if last >= self.at:
                return first, last + self.count
            return first, last
        kept = [i for i in (first, last) if not self.deletes(i)]
        if not kept and first >= self.at and last <= self.last_deleted:
            return None
        new_first = self.index(first) if not self.deletes(first) else self.at
        new_last = self.index(last) if not self.deletes(last) else self.at - 1
        if new_last < new_first:
            return None
        return new_first, new_last

    def range(self, rng: CellRange) -> CellRange | None:
        if self.axis == "rows":
            if rng.is_whole_columns:
                return rng
            moved = self.span(rng.top, rng.bottom)
            if moved is None:
                return None
            return replace(rng, top=moved[0], bottom=min(moved[1], MAX_ROWS))
        if rng.is_whole_rows:
            return rng
        moved = self.span(rng.left, rng.right)
        if moved is None:
            return None
        return replace(rng, left=moved[0], right=min(moved[1], MAX_COLUMNS))


@dataclass
class Worksheet:
    name: str
    cells: dict[Cell, Any] = field(default_factory=dict)
    formats: list[tuple[CellRange, dict[str, Any]]] = field(default_factory=list)
    locks: list[tuple[CellRange, bool, bool]] = field(default_factory=list)
    merges: list[CellRange] = field(default_factory=list)
    validations: list[tuple[CellRange, dict[str, Any]]] = field(default_factory=list)
    conditional_formats: list[tuple[CellRange, list[dict[str, Any]]]] = field(default_factory=list)
    autofilter: tuple[CellRange, int, list[str]] | None = None
    hidden_rows: set[int] = field(default_factory=set)
    visibility: str = "visible"
    protection: SheetProtection = UNPROTECTED
    password_hash: str | None = None
    freeze: tuple[int, int] | None = None
    split: tuple[int, int] | None = None
    zoom: int = 100
    page: dict[str, Any] = field(default_factory=dict)
    print_area: CellRange | None = None
    row_breaks: set[int] = field(default_factory=set)
    column_breaks: set[int] = field(default_factory=set)
    comments: dict[Cell, CommentInfo] = field(default_factory=dict)
    notes: dict[Cell, CommentInfo] = field(default_factory=dict)
    hyperlinks: dict[Cell, HyperlinkInfo] = field(default_factory=dict)
    entity_values: dict[Cell, dict[str, Any]] = field(default_factory=dict)

    def is_locked(self, row: int, column: int) -> bool:
        locked = True
        for rng, lock, _hidden in self.locks:
            if rng.contains(row, column):
                locked = lock
        return locked

    def used_range(self) -> CellRange | None:
        if not self.cells:
            return None
        rows = [r for r, _ in self.cells]
        columns = [c for _, c in self.cells]
        return CellRange(min(rows), min(columns), max(rows), max(columns), self.name)


class InMemoryWorkbook(DocumentHandle):
    """Reference document implementation.

    Usage::

        doc = InMemoryWorkbook(sheets=["Data", "Report"], api_level="1.12")
        doc.set_values("Data", "A1", [["Region", "Revenue"], ["North", 10]])
    """

    def __init__(
        self,
        sheets: Iterable[str] = ("Sheet1",),
        api_level: str = "1.18",
    ) -> None:
        names = list(sheets) or ["Sheet1"]
        self._api_level = api_level
        self._sheets: list[Worksheet] = [Worksheet(name) for name in names]
        self._active = names[0]
        self._tables: dict[str, TableInfo] = {}
        self._pivots: dict[str, PivotInfo] = {}
        self._slicers: dict[str, SlicerInfo] = {}
        self._named: dict[str, NamedRangeInfo] = {}
        self._shapes: dict[str, ShapeInfo] = {}
        self._charts: dict[str, ChartInfo] = {}
        self._sparklines: dict[str, SparklineInfo] = {}
        self._views: dict[str, tuple[str, str]] = {}
        self._workbook_protected = False
        self._workbook_password_hash: str | None = None
        self.operations: list[str] = []

    # ------------------------------------------------------------------
    # Synchronous helpers for setup and inspection
    # ------------------------------------------------------------------

    def set_values(self, sheet: str, anchor: str, rows: list[list[Any]]) -> None:
        """Seed cell contents without going through the async surface."""
        ws = self._sheet(sheet)
        start = parse_cell(anchor)
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                self._put(ws, (start.top + r, start.left + c), value)
        self._sync_table_headers(ws.name)

    def value(self, sheet: str, row: int, column: int) -> Any:
        return self._sheet(sheet).cells.get((row, column))

    def worksheet(self, name: str) -> Worksheet:
        return self._sheet(name)

    def table(self, name: str) -> TableInfo | None:
        return self._tables.get(name.casefold())

    def pivot(self, name: str) -> PivotInfo | None:
        return self._pivots.get(name.casefold())

    def slicer(self, name: str) -> SlicerInfo | None:
        return self._slicers.get(name.casefold())

    def named_range(self, name: str) -> NamedRangeInfo | None:
        return self._named.get(name.casefold())

    def shape(self, name: str) -> ShapeInfo | None:
        return self._shapes.get(name.casefold())

    def chart(self, name: str) -> ChartInfo | None:
        return self._charts.get(name.casefold())

    def sparkline(self, name: str) -> SparklineInfo | None:
        return self._sparklines.get(name.casefold())

    @property
    def sheet_names(self) -> list[str]:
        return [ws.name for ws in self._sheets]

    @property
    def tables(self) -> list[TableInfo]:
        return list(self._tables.values())

    @property
    def named_ranges(self) -> list[NamedRangeInfo]:
        return list(self._named.values())

    @property
    def active_sheet_name(self) -> str:
        return self._active

    @property
    def pivots(self) -> list[PivotInfo]:
        return list(self._pivots.values())

    @property
    def slicers(self) -> list[SlicerInfo]:
        return list(self._slicers.values())

    @property
    def charts(self) -> list[ChartInfo]:
        return list(self._charts.values())

    @property
    def shapes(self) -> list[ShapeInfo]:
        return list(self._shapes.values())

    @property
    def sparklines(self) -> list[SparklineInfo]:
        return list(self._sparklines.values())

    @property
    def is_workbook_protected(self) -> bool:
        return self._workbook_protected

    def seed_table(self, table: TableInfo) -> None:
        """Register an existing table (e.g. one read from a file) as-is."""
        self._sheet(table.sheet)
        self._tables[table.name.casefold()] = table

    def seed_named_range(self, named: NamedRangeInfo) -> None:
        self._named[named.name.casefold()] = named

    def seed_workbook_protection(self, password_hash: str | None) -> None:
        self._workbook_protected = True
        self._workbook_password_hash = password_hash

    def set_active(self, name: str) -> None:
        self._active = self._sheet(name).name

    @property
    def workbook_password_hash(self) -> str | None:
        return self._workbook_password_hash

    # ------------------------------------------------------------------
    # Internal lookups and guards
    # ------------------------------------------------------------------

    def _find_sheet(self, name: str | None) -> Worksheet | None:
        name = name or self._active
        for ws in self._sheets:
            if ws.name.casefold() == name.casefold():
                return ws
        return None

    def _sheet(self, name: str | None) -> Worksheet:
        ws = self._find_sheet(name)
        if ws is None:
            raise DocumentRejectedError(f"Worksheet '{name}' was not found.")
        return ws

    def _resolve(self, rng: CellRange) -> tuple[Worksheet, CellRange]:
        ws = self._sheet(rng.sheet)
        return ws, rng.with_sheet(ws.name)

    def _guard(self, ws: Worksheet, option: str | None = None, cells: CellRange | None = None) -> None:
        if not ws.protection.protected or ws.protection.permits(option):
            return
        if cells is not None and cells.size <= 100_000:
            if not any(ws.is_locked(r, c) for r, c in cells.cells()):
                return
        raise DocumentRejectedError(
            f"The cell or object you are trying to change is on protected sheet '{ws.name}'."
        )

    def _guard_structure(self) -> None:
        if self._workbook_protected:
            raise DocumentRejectedError("The workbook structure is protected.")

    def _put(self, ws: Worksheet, cell: Cell, value: Any) -> None:
        if value is None or value == "":
            ws.cells.pop(cell, None)
        else:
            ws.cells[cell] = value

    def _lookup(self, store: dict[str, Any], name: str, label: str) -> Any:
        item = store.get(name.casefold())
        if item is None:
            raise DocumentRejectedError(f"{label} '{name}' was not found.")
        return item

    def _tables_on(self, sheet: str) -> list[TableInfo]:
        return [t for t in self._tables.values() if t.sheet.casefold() == sheet.casefold()]

    def _sync_table_headers(self, sheet: str) -> None:
        ws = self._sheet(sheet)
        for table in self._tables_on(sheet):
            if not table.has_headers:
                continue
            headers = []
            for c in range(table.range.left, table.range.right + 1):
                value = ws.cells.get((table.range.top, c))
                headers.append(str(value) if value is not None else "")
            table.columns = self.unique_headers(headers)

    @staticmethod
    def unique_headers(headers: list[str]) -> list[str]:
        seen: set[str] = set()
        result = []
        for i, header in enumerate(headers, start=1):
            name = header.strip() or f"Column{i}"
            candidate, n = name, 2
            while candidate.casefold() in seen:
                candidate = f"{name}{n}"
                n += 1
            seen.add(candidate.casefold())
            result.append(candidate)
        return result

    def _column_values(self, sheet: str, column: int, top: int, bottom: int) -> list[Any]:
        ws = self._sheet(sheet)
        return [ws.cells.get((r, column)) for r in range(top, bottom + 1)]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def api_level(self) -> str:
        return self._api_level

    async def active_sheet(self) -> str:
        return self._active

    async def list_sheets(self) -> list[str]:
        return [ws.name for ws in self._sheets]

    async def sheet_protection(self, sheet: str) -> SheetProtection:
        return self._sheet(sheet).protection

    async def workbook_protected(self) -> bool:
        return self._workbook_protected

    async def entity_names(self, kind: EntityKind) -> dict[str, str | None]:
        if kind == EntityKind.SHEET:
            return {ws.name: ws.name for ws in self._sheets}
        if kind == EntityKind.NAMED_RANGE:
            return {n.name: n.scope for n in self._named.values()}
        if kind == EntityKind.VIEW:
            return {name: sheet for name, sheet in self._views.values()}
        stores: dict[EntityKind, dict[str, Any]] = {
            EntityKind.TABLE: self._tables,
            EntityKind.PIVOT_TABLE: self._pivots,
            EntityKind.SLICER: self._slicers,
            EntityKind.SHAPE: self._shapes,
            EntityKind.CHART: self._charts,
            EntityKind.SPARKLINE: self._sparklines,
        }
        if kind in stores:
            return {item.name: item.sheet for item in stores[kind].values()}
        anchored = {
            EntityKind.COMMENT: "comments",
            EntityKind.NOTE: "notes",
            EntityKind.HYPERLINK: "hyperlinks",
            EntityKind.DATA_TYPE: "entity_values",
        }
        names: dict[str, str | None] = {}
        for ws in self._sheets:
            for row, column in getattr(ws, anchored[kind]):
                names[anchor_name(CellRange(row, column, row, column, ws.name))] = ws.name
        return names

    async def read_range(self, rng: CellRange, formulas: bool = False) -> list[list[Any]]:
        ws, rng = self._resolve(rng)
        grid = []
        for r in range(rng.top, rng.bottom + 1):
            row = []
            for c in range(rng.left, rng.right + 1):
                value = ws.cells.get((r, c))
                if not formulas and isinstance(value, str) and value.startswith("="):
                    value = None
                row.append(value)
            grid.append(row)
        return grid

    async def used_range(self, sheet: str) -> CellRange | None:
        return self._sheet(sheet).used_range()

    async def get_table(self, name: str) -> TableInfo:
        return self._lookup(self._tables, name, "Table")

    async def get_pivot(self, name: str) -> PivotInfo:
        return self._lookup(self._pivots, name, "PivotTable")

    async def get_slicer(self, name: str) -> SlicerInfo:
        return self._lookup(self._slicers, name, "Slicer")

    async def list_slicers(self) -> list[SlicerInfo]:
        return list(self._slicers.values())

    async def list_named_ranges(self) -> list[NamedRangeInfo]:
        return list(self._named.values())

    async def count_sparklines(self, sheet: str) -> int:
        return sum(
            s.location.size for s in self._sparklines.values()
            if s.sheet.casefold() == sheet.casefold()
        )

    # ------------------------------------------------------------------
    # Cells and ranges
    # ------------------------------------------------------------------

    @_mutation
    async def write_range(self, rng: CellRange, grid: list[list[Any]]) -> int:
        ws, rng = self._resolve(rng)
        rows = len(grid)
        columns = max((len(row) for row in grid), default=0)
        if rows == 0 or columns == 0:
            raise DocumentRejectedError("Nothing to write.")
        if any(len(row) != columns for row in grid):
            raise DocumentRejectedError("All rows must have the same number of values.")
        if rng.is_single_cell:
            rng = rng.resized(rows, columns)
        elif (rng.row_count, rng.column_count) != (rows, columns):
            raise DocumentRejectedError(
                f"The number of rows or columns in the input array ({rows}x{columns}) "
                f"doesn't match the size of the range ({rng.row_count}x{rng.column_count})."
            )
        if rng.bottom > MAX_ROWS or rng.right > MAX_COLUMNS:
            raise DocumentRejectedError("The values do not fit on the sheet.")
        self._guard(ws, cells=rng)
        for r, row in enumerate(grid):
            for c, value in enumerate(row):
                self._put(ws, (rng.top + r, rng.left + c), value)
        self._sync_table_headers(ws.name)
        return rng.size

    @_mutation
    async def clear_range(self, rng: CellRange) -> None:
        ws, rng = self._resolve(rng)
        self._guard(ws, cells=rng)
        for cell in [cell for cell in ws.cells if rng.contains(*cell)]:
            del ws.cells[cell]
        self._sync_table_headers(ws.name)

    @_mutation
    async def format_range(self, rng: CellRange, fmt: dict[str, Any]) -> None:
        ws, rng = self._resolve(rng)
        self._guard(ws, "format_cells")
        ws.formats.append((rng, dict(fmt)))

    @_mutation
    async def set_validation(self, rng: CellRange, rule: dict[str, Any]) -> None:
        ws, rng = self._resolve(rng)
        self._guard(ws)
        ws.validations = [(r, v) for r, v in ws.validations if not rng.overlaps(r)]
        ws.validations.append((rng, dict(rule)))

    @_mutation
    async def set_conditional_formats(self, rng: CellRange, rules: list[dict[str, Any]]) -> None:
        ws, rng = self._resolve(rng)
        self._guard(ws, "format_cells")
        ws.conditional_formats.append((rng, [dict(rule) for rule in rules]))

    @_mutation
    async def clear_formats(self, rng: CellRange, conditional_only: bool) -> None:
        ws, rng = self._resolve(rng)
        self._guard(ws, "format_cells")
        ws.conditional_formats = [(r, v) for r, v in ws.conditional_formats if not rng.overlaps(r)]
        if not conditional_only:
            ws.formats = [(r, v) for r, v in ws.formats if not rng.overlaps(r)]

    @_mutation
    async def apply_filter(self, rng: CellRange, column: int, values: list[str]) -> int:
        ws, rng = self._resolve(rng)
        self._guard(ws, "auto_filter")
        if column >= rng.column_count:
            raise DocumentRejectedError(
                f"Filter column {column} is outside the {rng.column_count}-column range."
            )
        wanted = {str(v) for v in values}
        ws.autofilter = (rng, column, list(values))
        ws.hidden_rows = set()
        visible = 0
        for r in range(rng.top + 1, rng.bottom + 1):
            value = ws.cells.get((r, rng.left + column))
            if value is not None and str(value) in wanted:
                visible += 1
            else:
                ws.hidden_rows.add(r)
        return visible

    @_mutation
    async def clear_filter(self, sheet: str) -> None:
        ws = self._sheet(sheet)
        self._guard(ws, "auto_filter")
        ws.autofilter = None
        ws.hidden_rows = set()

    # ------------------------------------------------------------------
    # Charts
    # ------------------------------------------------------------------

    @_mutation
    async def add_chart(self, chart: ChartInfo) -> str:
        ws = self._sheet(chart.sheet)
        self._guard(ws, "edit_objects")
        name = chart.name or _next_name("Chart", self._charts)
        if name.casefold() in self._charts:
            raise DocumentRejectedError(f"A chart named '{name}' already exists.")
        self._charts[name.casefold()] = replace(chart, name=name, sheet=ws.name)
        return name

    # ------------------------------------------------------------------
    # Worksheets
    # ------------------------------------------------------------------

    @_mutation
    async def add_sheet(self, name: str, position: int | None = None) -> None:
        self._guard_structure()
        if self._find_sheet(name) is not None:
            raise DocumentRejectedError(f"A worksheet named '{name}' already exists.")
        ws = Worksheet(name)
        if position is None or position >= len(self._sheets):
            self._sheets.append(ws)
        else:
            self._sheets.insert(position, ws)

    @_mutation
    async def rename_sheet(self, name: str, new_name: str) -> None:
        self._guard_structure()
        ws = self._sheet(name)
        clash = self._find_sheet(new_name)
        if clash is not None and clash is not ws:
            raise DocumentRejectedError(f"A worksheet named '{new_name}' already exists.")
        old = ws.name
        ws.name = new_name
        if self._active == old:
            self._active = new_name
        self._rename_sheet_references(old, new_name)

    def _rename_sheet_references(self, old: str, new: str) -> None:
        def moved(rng: CellRange) -> CellRange:
            return rng.with_sheet(new) if rng.sheet == old else rng

        for table in self._tables.values():
            if table.sheet == old:
                table.sheet, table.range = new, moved(table.range)
        for pivot in self._pivots.values():
            pivot.source, pivot.destination = moved(pivot.source), moved(pivot.destination)
            if pivot.sheet == old:
                pivot.sheet = new
        for spark in self._sparklines.values():
            spark.location, spark.source = moved(spark.location), moved(spark.source)
            if spark.sheet == old:
                spark.sheet = new
        for store in (self._slicers, self._shapes, self._charts):
            for item in store.values():
                if item.sheet == old:
                    item.sheet = new
        for key, (view, sheet) in list(self._views.items()):
            if sheet == old:
                self._views[key] = (view, new)
        for named in self._named.values():
            if named.scope == old:
                named.scope = new

    @_mutation
    async def move_sheet(self, name: str, position: int) -> None:
        self._guard_structure()
        ws = self._sheet(name)
        if position >= len(self._sheets):
            raise DocumentRejectedError(
                f"Position {position} is out of range for {len(self._sheets)} sheets."
            )
        self._sheets.remove(ws)
        self._sheets.insert(position, ws)

    @_mutation
    async def set_sheet_visibility(self, name: str, visibility: str) -> None:
        self._guard_structure()
        ws = self._sheet(name)
        if visibility != "visible":
            visible = [s for s in self._sheets if s.visibility == "visible" and s is not ws]
            if not visible:
                raise DocumentRejectedError("A workbook must contain at least one visible worksheet.")
            if self._active == ws.name:
                self._active = visible[0].name
        ws.visibility = visibility

    @_mutation
    async def activate_sheet(self, name: str) -> None:
        ws = self._sheet(name)
        if ws.visibility != "visible":
            raise DocumentRejectedError(f"Worksheet '{ws.name}' is hidden.")
        self._active = ws.name

    @_mutation
    async def set_freeze_panes(self, sheet: str, rows: int, columns: int) -> None:
        ws = self._sheet(sheet)
        ws.freeze = (rows, columns) if rows or columns else None

    @_mutation
    async def set_zoom(self, sheet: str, zoom: int) -> None:
        self._sheet(sheet).zoom = zoom

    @_mutation
    async def set_split(self, sheet: str, row: int, column: int) -> None:
        ws = self._sheet(sheet)
        if ws.freeze is not None and (row or column):
            raise DocumentRejectedError("Panes cannot be split while they are frozen.")
        ws.split = (row, column) if row or column else None

    @_mutation
    async def add_sheet_view(self, sheet: str, name: str) -> None:
        ws = self._sheet(sheet)
        if name.casefold() in self._views:
            raise DocumentRejectedError(f"A sheet view named '{name}' already exists.")
        self._views[name.casefold()] = (name, ws.name)

    # ------------------------------------------------------------------
    # Rows and columns
    # ------------------------------------------------------------------

    def _apply_shift(self, ws: Worksheet, shift: _Shift) -> None:
        def move_cells(store: dict[Cell, Any]) -> dict[Cell, Any]:
            moved = {}
            for cell, value in store.items():
                target = shift.cell(cell)
                if target is not None:
                    if isinstance(value, CommentInfo):
                        value.cell = CellRange(*target, *target, ws.name)
                    moved[target] = value
            return moved

        def move_layers(layers: list[tuple]) -> list[tuple]:
            kept = []
            for rng, *rest in layers:
                moved = shift.range(rng)
                if moved is not None:
                    kept.append((moved, *rest))
            return kept

        for attr in ("cells", "comments", "notes", "hyperlinks", "entity_values"):
            setattr(ws, attr, move_cells(getattr(ws, attr)))
        ws.formats = move_layers(ws.formats)
        ws.locks = move_layers(ws.locks)
        ws.validations = move_layers(ws.validations)
        ws.conditional_formats = move_layers(ws.conditional_formats)
        ws.merges = [m for m in (shift.range(m) for m in ws.merges) if m is not None]
        if ws.print_area is not None:
            ws.print_area = shift.range(ws.print_area)
        for table in self._tables_on(ws.name):
            table.range = shift.range(table.range)
        for spark in self._sparklines.values():
            if spark.sheet == ws.name:
                spark.location = shift.range(spark.location) or spark.location

    def _check_table_survives(self, ws: Worksheet, shift: _Shift) -> None:
        for table in self._tables_on(ws.name):
            rng = table.range
            if shift.axis == "rows":
                if table.has_headers and shift.deletes(rng.top):
                    raise DocumentRejectedError(
                        f"This operation would delete the header row of table '{table.name}'."
                    )
                if shift.range(rng) is None:
                    raise DocumentRejectedError(f"This operation would delete table '{table.name}'.")
            elif all(shift.deletes(c) for c in range(rng.left, rng.right + 1)):
                raise DocumentRejectedError(f"This operation would delete table '{table.name}'.")

    @_mutation
    async def insert_rows(self, sheet: str, at: int, count: int) -> None:
        ws = self._sheet(sheet)
        self._guard(ws, "insert_rows")
        used = ws.used_range()
        if used is not None and used.bottom + count > MAX_ROWS:
            raise DocumentRejectedError("Inserting would push cells off the end of the sheet.")
        self._apply_shift(ws, _Shift("rows", at, count))

    @_mutation
    async def insert_columns(self, sheet: str, at: int, count: int) -> None:
        ws = self._sheet(sheet)
        self._guard(ws, "insert_columns")
        used = ws.used_range()
        if used is not None and used.right + count > MAX_COLUMNS:
            raise DocumentRejectedError("Inserting would push cells off the end of the sheet.")
        self._apply_shift(ws, _Shift("columns", at, count))
        self._sync_table_headers(ws.name)

    @_mutation
    async def delete_rows(self, sheet: str, first: int, last: int) -> None:
        ws = self._sheet(sheet)
        self._guard(ws, "delete_rows")
        shift = _Shift("rows", first, -(last - first + 1))
        self._check_table_survives(ws, shift)
        self._apply_shift(ws, shift)

    @_mutation
    async def delete_columns(self, sheet: str, first: int, last: int) -> None:
        ws = self._sheet(sheet)
        self._guard(ws, "delete_columns")
        shift = _Shift("columns", first, -(last - first + 1))
        self._check_table_survives(ws, shift)
        self._apply_shift(ws, shift)
        self._sync_table_headers(ws.name)

    @_mutation
    async def merge_cells(self, rng: CellRange, across: bool) -> None:
        ws, rng = self._resolve(rng)
        self._guard(ws)
        if rng.is_single_cell:
            raise DocumentRejectedError("Cannot merge a single cell.")
        for table in self._tables_on(ws.name):
            if table.range.overlaps(rng):
                raise DocumentRejectedError(f"Cannot merge cells inside table '{table.name}'.")
        if any(m.overlaps(rng) for m in ws.merges):
            raise DocumentRejectedError("The range overlaps an existing merged area.")
        blocks = (
            [CellRange(r, rng.left, r, rng.right, ws.name) for r in range(rng.top, rng.bottom + 1)]
            if across else [rng]
        )
        for block in blocks:
            if block.is_single_cell:
                continue
            for cell in list(block.cells())[1:]:
                ws.cells.pop(cell, None)
            ws.merges.append(block)

    @_mutation
    async def unmerge_cells(self, rng: CellRange) -> None:
        ws, rng = self._resolve(rng)
        self._guard(ws)
        ws.merges = [m for m in ws.merges if not m.overlaps(rng)]

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def _names_taken(self) -> set[str]:
        return set(self._tables) | set(self._named)

    @_mutation
    async def add_table(
        self, rng: CellRange, name: str | None, has_headers: bool, style: str
    ) -> TableInfo:
        ws, rng = self._resolve(rng)
        self._guard(ws)
        if name and name.casefold() in self._names_taken():
            raise DocumentRejectedError(f"A table or name called '{name}' already exists.")
        for other in self._tables_on(ws.name):
            if other.range.overlaps(rng):
                raise DocumentRejectedError(
                    f"A table can't overlap another table ('{other.name}' at {other.range.address})."
                )
        for pivot in self._pivots.values():
            if pivot.sheet == ws.name and pivot.destination.overlaps(rng):
                raise DocumentRejectedError(f"A table can't overlap PivotTable '{pivot.name}'.")
        if any(m.overlaps(rng) for m in ws.merges):
            raise DocumentRejectedError("A table can't contain merged cells.")
        if has_headers and rng.row_count < 2:
            raise DocumentRejectedError("A table with headers needs at least one data row.")
        name = name or _next_name("Table", self._names_taken())
        if has_headers:
            headers = [ws.cells.get((rng.top, c)) for c in range(rng.left, rng.right + 1)]
            columns = self.unique_headers([str(h) if h is not None else "" for h in headers])
            for offset, header in enumerate(columns):
                ws.cells[(rng.top, rng.left + offset)] = header
        else:
            columns = [f"Column{i}" for i in range(1, rng.column_count + 1)]
        table = TableInfo(name=name, sheet=ws.name, range=rng, columns=columns,
                          has_headers=has_headers, style=style)
        self._tables[name.casefold()] = table
        return table

    @_mutation
    async def update_table(self, name: str, changes: dict[str, Any]) -> None:
        table = self._lookup(self._tables, name, "Table")
        self._guard(self._sheet(table.sheet))
        for key, value in changes.items():
            if key == "style":
                table.style = value
            else:
                table.options[key] = value

    def _shift_block(self, ws: Worksheet, top: int, left: int, right: int, count: int) -> None:
        """Move cells at or below *top* within [left, right] down by *count*."""
        moving = sorted(
            ((r, c) for r, c in ws.cells if r >= top and left <= c <= right), reverse=True
        )
        for r, c in moving:
            ws.cells[(r + count, c)] = ws.cells.pop((r, c))

    @_mutation
    async def add_table_rows(self, name: str, rows: list[list[Any]], position: int | None) -> None:
        table = self._lookup(self._tables, name, "Table")
        ws = self._sheet(table.sheet)
        self._guard(ws)
        width = table.range.column_count
        if any(len(row) != width for row in rows):
            raise DocumentRejectedError(
                f"Each row must have {width} values to match table '{table.name}'."
            )
        body = table.body_range
        data_rows = table.range.row_count - (1 if table.has_headers else 0) - (1 if table.show_totals else 0)
        if position is not None and position > data_rows:
            raise DocumentRejectedError(f"Row position {position} is past the end of the table.")
        insert_at = body.top + (data_rows if position is None else position)
        for other in self._tables_on(ws.name):
            if other is not table and other.range.top >= insert_at and other.range.overlaps(
                CellRange(other.range.top, table.range.left, other.range.bottom, table.range.right)
            ):
                raise DocumentRejectedError(
                    f"Can't insert rows: table '{other.name}' is below '{table.name}'."
                )
        self._shift_block(ws, insert_at, table.range.left, table.range.right, len(rows))
        for offset, row in enumerate(rows):
            for c, value in enumerate(row):
                self._put(ws, (insert_at + offset, table.range.left + c), value)
        table.range = replace(table.range, bottom=table.range.bottom + len(rows))

    @_mutation
    async def add_table_column(
        self, name: str, header: str | None, values: list[Any] | None, position: int | None
    ) -> str:
        table = self._lookup(self._tables, name, "Table")
        ws = self._sheet(table.sheet)
        self._guard(ws)
        rng = table.range
        width = rng.column_count
        if position is not None and position > width:
            raise DocumentRejectedError(f"Column position {position} is past the end of the table.")
        data_rows = rng.row_count - (1 if table.has_headers else 0) - (1 if table.show_totals else 0)
        if values is not None and len(values) > data_rows:
            raise DocumentRejectedError(
                f"{len(values)} values given but table '{table.name}' has {data_rows} data rows."
            )
        column = rng.left + (width if position is None else position)
        if position is None or position == width:
            blocked = [c for c in ws.cells if c[1] == column and rng.top <= c[0] <= rng.bottom]
            if blocked:
                raise DocumentRejectedError("The column to the right of the table is not empty.")
        else:
            for r in range(rng.top, rng.bottom + 1):
                for c in range(rng.right, column - 1, -1):
                    if (r, c) in ws.cells:
                        ws.cells[(r, c + 1)] = ws.cells.pop((r, c))
        header_text = header or _next_name("Column", {c.casefold() for c in table.columns})
        if header_text.casefold() in {c.casefold() for c in table.columns}:
            raise DocumentRejectedError(f"Table '{table.name}' already has a column '{header_text}'.")
        table.range = replace(rng, right=rng.right + 1)
        if table.has_headers:
            ws.cells[(rng.top, column)] = header_text
        first_data = rng.top + (1 if table.has_headers else 0)
        for offset, value in enumerate(values or []):
            self._put(ws, (first_data + offset, column), value)
        index = column - rng.left
        table.columns = table.columns[:index] + [header_text] + table.columns[index:]
        return header_text

    @_mutation
    async def resize_table(self, name: str, rng: CellRange) -> None:
        table = self._lookup(self._tables, name, "Table")
        ws = self._sheet(rng.sheet or table.sheet)
        if ws.name != table.sheet:
            raise DocumentRejectedError("A table can't be resized onto another sheet.")
        self._guard(ws)
        rng = rng.with_sheet(ws.name)
        if rng.top != table.range.top:
            raise DocumentRejectedError("The header row must remain in the same row.")
        if not rng.overlaps(table.range):
            raise DocumentRejectedError("The new range must overlap the original table.")
        for other in self._tables_on(ws.name):
            if other is not table and other.range.overlaps(rng):
                raise DocumentRejectedError(f"The new range overlaps table '{other.name}'.")
        table.range = rng
        if table.has_headers:
            self._sync_table_headers(ws.name)
        else:
            table.columns = [f"Column{i}" for i in range(1, rng.column_count + 1)]

    @_mutation
    async def convert_table_to_range(self, name: str) -> None:
        table = self._lookup(self._tables, name, "Table")
        self._guard(self._sheet(table.sheet))
        del self._tables[table.name.casefold()]
        for slicer in list(self._slicers.values()):
            if slicer.source_kind == EntityKind.TABLE and slicer.source_name.casefold() == table.name.casefold():
                del self._slicers[slicer.name.casefold()]

    @_mutation
    async def set_table_totals(self, name: str, show: bool, functions: dict[str, str]) -> None:
        table = self._lookup(self._tables, name, "Table")
        ws = self._sheet(table.sheet)
        self._guard(ws)
        known = {c.casefold(): c for c in table.columns}
        unknown = [c for c in functions if c.casefold() not in known]
        if unknown:
            raise DocumentRejectedError(f"Table '{table.name}' has no column {unknown[0]!r}.")
        rng = table.range
        if show and not table.show_totals:
            totals_row = rng.bottom + 1
            if totals_row > MAX_ROWS or any(
                (totals_row, c) in ws.cells for c in range(rng.left, rng.right + 1)
            ):
                raise DocumentRejectedError("The row below the table is not empty.")
            table.range = replace(rng, bottom=totals_row)
            table.show_totals = True
        elif not show and table.show_totals:
            for c in range(rng.left, rng.right + 1):
                ws.cells.pop((rng.bottom, c), None)
            table.range = replace(rng, bottom=rng.bottom - 1)
            table.show_totals = False
            table.totals = {}
            return
        if not table.show_totals:
            return
        for column, function in functions.items():
            canonical = known[column.casefold()]
            if function == "none":
                table.totals.pop(canonical, None)
            else:
                table.totals[canonical] = function
        totals_row = table.range.bottom
        for offset, column in enumerate(table.columns):
            cell = (totals_row, table.range.left + offset)
            function = table.totals.get(column)
            if function is not None:
                ws.cells[cell] = f"=SUBTOTAL({SUBTOTAL_CODES[function]},{table.name}[{column}])"
            elif offset == 0:
                ws.cells[cell] = "Total"
            else:
                ws.cells.pop(cell, None)

    # ------------------------------------------------------------------
    # Pivot tables
    # ------------------------------------------------------------------

    @_mutation
    async def add_pivot(self, pivot: PivotInfo) -> None:
        if pivot.name.casefold() in self._pivots:
            raise DocumentRejectedError(f"A PivotTable named '{pivot.name}' already exists.")
        ws = self._sheet(pivot.destination.sheet)
        self._guard(ws, "pivot_tables")
        source_ws = self._sheet(pivot.source.sheet)
        for table in self._tables_on(ws.name):
            if table.range.overlaps(pivot.destination):
                raise DocumentRejectedError(f"A PivotTable can't overlap table '{table.name}'.")
        for other in self._pivots.values():
            if other.sheet == ws.name and other.destination.overlaps(pivot.destination):
                raise DocumentRejectedError(f"A PivotTable can't overlap PivotTable '{other.name}'.")
        if not pivot.source_fields or any(not f for f in pivot.source_fields):
            raise DocumentRejectedError("The PivotTable field name is not valid: every source column needs a header.")
        fields = {f.casefold() for f in pivot.source_fields}
        for used in [*pivot.rows, *pivot.columns, *pivot.filters, *(f for f, _ in pivot.values)]:
            if used.casefold() not in fields:
                raise DocumentRejectedError(f"The source data has no field named '{used}'.")
        self._pivots[pivot.name.casefold()] = replace(
            pivot,
            sheet=ws.name,
            source=pivot.source.with_sheet(source_ws.name),
            destination=pivot.destination.with_sheet(ws.name),
        )

    @_mutation
    async def add_pivot_field(
        self, name: str, field: str, area: str, function: str, position: int | None
    ) -> None:
        pivot = self._lookup(self._pivots, name, "PivotTable")
        self._guard(self._sheet(pivot.sheet), "pivot_tables")
        canonical = {f.casefold(): f for f in pivot.source_fields}.get(field.casefold())
        if canonical is None:
            raise DocumentRejectedError(f"PivotTable '{pivot.name}' has no field named '{field}'.")
        if area == "data":
            pivot.values.append((canonical, function))
            return
        for hierarchy in (pivot.rows, pivot.columns, pivot.filters):
            if canonical in hierarchy:
                hierarchy.remove(canonical)
        target = {"row": pivot.rows, "column": pivot.columns, "filter": pivot.filters}[area]
        target.insert(len(target) if position is None else position, canonical)

    @_mutation
    async def set_pivot_layout(self, name: str, changes: dict[str, Any]) -> None:
        pivot = self._lookup(self._pivots, name, "PivotTable")
        self._guard(self._sheet(pivot.sheet), "pivot_tables")
        for key, value in changes.items():
            if key == "layout":
                pivot.layout = value
            else:
                pivot.options[key] = value

    @_mutation
    async def refresh_pivots(self, name: str | None) -> list[str]:
        pivots = [self._lookup(self._pivots, name, "PivotTable")] if name else list(self._pivots.values())
        refreshed = []
        for pivot in pivots:
            if pivot.source_table is not None:
                table = self._tables.get(pivot.source_table.casefold())
                if table is None:
                    raise DocumentRejectedError(
                        f"The source table of PivotTable '{pivot.name}' no longer exists."
                    )
                pivot.source = table.range
                fields = list(table.columns)
            else:
                header = CellRange(pivot.source.top, pivot.source.left, pivot.source.top,
                                   pivot.source.right, pivot.source.sheet)
                fields = [str(v) if v is not None else "" for v in (await self.read_range(header))[0]]
            pivot.source_fields = fields
            present = set(fields)
            pivot.rows = [f for f in pivot.rows if f in present]
            pivot.columns = [f for f in pivot.columns if f in present]
            pivot.filters = [f for f in pivot.filters if f in present]
            pivot.values = [(f, fn) for f, fn in pivot.values if f in present]
            pivot.refreshed += 1
            refreshed.append(pivot.name)
        return refreshed

    @_mutation
    async def delete_pivot(self, name: str) -> None:
        pivot = self._lookup(self._pivots, name, "PivotTable")
        self._guard(self._sheet(pivot.sheet), "pivot_tables")
        del self._pivots[pivot.name.casefold()]
        for slicer in list(self._slicers.values()):
            if slicer.source_kind == EntityKind.PIVOT_TABLE and slicer.source_name.casefold() == pivot.name.casefold():
                del self._slicers[slicer.name.casefold()]

    # ------------------------------------------------------------------
    # Slicers
    # ------------------------------------------------------------------

    def _slicer_source_items(self, kind: EntityKind, source: str, field_name: str) -> tuple[str, list[str]]:
        if kind == EntityKind.TABLE:
            table = self._lookup(self._tables, source, "Table")
            columns = table.columns
            body = table.body_range
            sheet, top, bottom, left = table.sheet, body.top, body.bottom, table.range.left
        else:
            pivot = self._lookup(self._pivots, source, "PivotTable")
            columns = pivot.source_fields
            sheet, top, bottom, left = pivot.source.sheet, pivot.source.top + 1, pivot.source.bottom, pivot.source.left
        lookup = {c.casefold(): i for i, c in enumerate(columns)}
        if field_name.casefold() not in lookup:
            raise DocumentRejectedError(f"'{source}' has no field named '{field_name}'.")
        index = lookup[field_name.casefold()]
        items: list[str] = []
        for value in self._column_values(sheet, left + index, top, bottom):
            if value is not None and str(value) not in items:
                items.append(str(value))
        return columns[index], items

    @_mutation
    async def add_slicer(self, slicer: SlicerInfo) -> str:
        ws = self._sheet(slicer.sheet)
        self._guard(ws, "edit_objects")
        field_name, items = self._slicer_source_items(slicer.source_kind, slicer.source_name, slicer.field)
        for other in self._slicers.values():
            if (
                other.source_kind == slicer.source_kind
                and other.source_name.casefold() == slicer.source_name.casefold()
                and other.field.casefold() == field_name.casefold()
            ):
                raise DocumentRejectedError(
                    f"Slicer '{other.name}' already filters '{slicer.source_name}' on '{field_name}'."
                )
        name = slicer.name or self._auto_slicer_name(field_name)
        if name.casefold() in self._slicers:
            raise DocumentRejectedError(f"A slicer named '{name}' already exists.")
        selected = slicer.selected_items if slicer.selected_items else list(items)
        missing = [item for item in selected if item not in items]
        if missing:
            raise DocumentRejectedError(f"Slicer items not found in '{field_name}': {missing}")
        if not slicer.multi_select and len(selected) > 1:
            raise DocumentRejectedError("Only one item can be selected when multi-select is off.")
        self._slicers[name.casefold()] = replace(
            slicer, name=name, sheet=ws.name, field=field_name, items=items,
            selected_items=selected, caption=slicer.caption or field_name,
        )
        return name

    def _auto_slicer_name(self, field_name: str) -> str:
        base = "Slicer_" + "".join(ch if ch.isalnum() else "_" for ch in field_name)
        if base.casefold() not in self._slicers:
            return base
        return _next_name(base, self._slicers, sep="_")

    @_mutation
    async def update_slicer(self, name: str, changes: dict[str, Any]) -> None:
        slicer = self._lookup(self._slicers, name, "Slicer")
        self._guard(self._sheet(slicer.sheet), "edit_objects")
        selected = changes.get("selected_items", slicer.selected_items)
        multi = changes.get("multi_select", slicer.multi_select)
        missing = [item for item in selected if item not in slicer.items]
        if missing:
            raise DocumentRejectedError(f"Slicer items not found in '{slicer.field}': {missing}")
        if not multi and len(selected) > 1:
            raise DocumentRejectedError("Only one item can be selected when multi-select is off.")
        for key, value in changes.items():
            if key in ("left", "top", "width", "height"):
                slicer.position[key] = value
            elif key == "sort_by":
                slicer.sort_by = value
                if value != "dataSourceOrder":
                    slicer.items = sorted(slicer.items, reverse=value == "descending")
            else:
                setattr(slicer, key, value)

    @_mutation
    async def delete_slicer(self, name: str) -> None:
        slicer = self._lookup(self._slicers, name, "Slicer")
        self._guard(self._sheet(slicer.sheet), "edit_objects")
        del self._slicers[slicer.name.casefold()]

    # ------------------------------------------------------------------
    # Named ranges
    # ------------------------------------------------------------------

    @_mutation
    async def add_named_range(self, named: NamedRangeInfo) -> None:
        if named.name.casefold() in self._names_taken():
            raise DocumentRejectedError(f"The name '{named.name}' already exists.")
        if named.scope is not None:
            named = replace(named, scope=self._sheet(named.scope).name)
        self._named[named.name.casefold()] = named

    @_mutation
    async def update_named_range(self, name: str, changes: dict[str, Any]) -> None:
        named = self._lookup(self._named, name, "Name")
        if {"reference", "formula", "value"} & changes.keys():
            named.reference = named.formula = named.value = None
        for key, value in changes.items():
            setattr(named, key, value)

    @_mutation
    async def delete_named_range(self, name: str) -> None:
        named = self._lookup(self._named, name, "Name")
        del self._named[named.name.casefold()]

    # ------------------------------------------------------------------
    # Protection
    # ------------------------------------------------------------------

    @_mutation
    async def protect_sheet(self, sheet: str, password: str | None, allowed: frozenset[str]) -> None:
        ws = self._sheet(sheet)
        if ws.protection.protected:
            raise DocumentRejectedError(f"Worksheet '{ws.name}' is already protected.")
        ws.protection = SheetProtection(True, frozenset(allowed), bool(password))
        ws.password_hash = _hash(password)

    @_mutation
    async def unprotect_sheet(self, sheet: str, password: str | None) -> None:
        ws = self._sheet(sheet)
        if not ws.protection.protected:
            return
        if ws.password_hash is not None and _hash(password) != ws.password_hash:
            raise DocumentRejectedError("The password you supplied is not correct.")
        ws.protection = UNPROTECTED
        ws.password_hash = None

    @_mutation
    async def set_cells_locked(self, rng: CellRange, locked: bool, hide_formulas: bool) -> None:
        ws, rng = self._resolve(rng)
        ws.locks.append((rng, locked, hide_formulas))

    @_mutation
    async def protect_workbook(self, password: str | None) -> None:
        if self._workbook_protected:
            raise DocumentRejectedError("The workbook is already protected.")
        self._workbook_protected = True
        self._workbook_password_hash = _hash(password)

    @_mutation
    async def unprotect_workbook(self, password: str | None) -> None:
        if not self._workbook_protected:
            return
        if self._workbook_password_hash is not None and _hash(password) != self._workbook_password_hash:
            raise DocumentRejectedError("The password you supplied is not correct.")
        self._workbook_protected = False
        self._workbook_password_hash = None

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    def _top_z(self, sheet: str) -> int:
        return max((s.z_order for s in self._shapes.values() if s.sheet == sheet), default=0)

    @_mutation
    async def add_shape(self, shape: ShapeInfo) -> str:
        ws = self._sheet(shape.sheet)
        self._guard(ws, "edit_objects")
        label = _SHAPE_LABELS.get(shape.shape_type, shape.shape_type[:1].upper() + shape.shape_type[1:])
        name = shape.name or _next_name(label, self._shapes, sep=" ")
        if name.casefold() in self._shapes:
            raise DocumentRejectedError(f"A shape named '{name}' already exists.")
        self._shapes[name.casefold()] = replace(
            shape, name=name, sheet=ws.name, z_order=self._top_z(ws.name) + 1
        )
        return name

    @_mutation
    async def update_shape(self, name: str, changes: dict[str, Any]) -> None:
        shape = self._lookup(self._shapes, name, "Shape")
        self._guard(self._sheet(shape.sheet), "edit_objects")
        for key, value in changes.items():
            if key in ("left", "top", "width", "height"):
                setattr(shape, key, value)
            else:
                shape.properties[key] = value

    @_mutation
    async def delete_shape(self, name: str) -> None:
        shape = self._lookup(self._shapes, name, "Shape")
        self._guard(self._sheet(shape.sheet), "edit_objects")
        del self._shapes[shape.name.casefold()]
        for member in shape.members:
            self._shapes.pop(member.casefold(), None)
        for group in self._shapes.values():
            if shape.name in group.members:
                group.members.remove(shape.name)

    @_mutation
    async def group_shapes(self, names: list[str], name: str | None) -> str:
        shapes = [self._lookup(self._shapes, n, "Shape") for n in names]
        sheets = {s.sheet for s in shapes}
        if len(sheets) > 1:
            raise DocumentRejectedError("Shapes on different sheets can't be grouped.")
        sheet = sheets.pop()
        self._guard(self._sheet(sheet), "edit_objects")
        grouped = {m.casefold() for g in self._shapes.values() for m in g.members}
        for shape in shapes:
            if shape.name.casefold() in grouped:
                raise DocumentRejectedError(f"Shape '{shape.name}' is already in a group.")
        group_name = name or _next_name("Group", self._shapes, sep=" ")
        if group_name.casefold() in self._shapes:
            raise DocumentRejectedError(f"A shape named '{group_name}' already exists.")
        left = min(s.left for s in shapes)
        top = min(s.top for s in shapes)
        right = max(s.left + s.width for s in shapes)
        bottom = max(s.top + s.height for s in shapes)
        self._shapes[group_name.casefold()] = ShapeInfo(
            name=group_name, sheet=sheet, shape_type="group", left=left, top=top,
            width=right - left, height=bottom - top,
            members=[s.name for s in shapes], z_order=self._top_z(sheet) + 1,
        )
        return group_name

    @_mutation
    async def ungroup_shapes(self, name: str) -> list[str]:
        group = self._lookup(self._shapes, name, "Shape")
        self._guard(self._sheet(group.sheet), "edit_objects")
        if group.shape_type != "group":
            raise DocumentRejectedError(f"Shape '{group.name}' is not a group.")
        del self._shapes[group.name.casefold()]
        return list(group.members)

    @_mutation
    async def arrange_shape(self, name: str, order: str) -> None:
        shape = self._lookup(self._shapes, name, "Shape")
        self._guard(self._sheet(shape.sheet), "edit_objects")
        stack = sorted(
            (s for s in self._shapes.values() if s.sheet == shape.sheet), key=lambda s: s.z_order
        )
        current = stack.index(shape)
        stack.remove(shape)
        if order == "bringToFront":
            stack.append(shape)
        elif order == "sendToBack":
            stack.insert(0, shape)
        elif order == "bringForward":
            stack.insert(min(current + 1, len(stack)), shape)
        else:
            stack.insert(max(current - 1, 0), shape)
        for z, item in enumerate(stack, start=1):
            item.z_order = z

    # ------------------------------------------------------------------
    # Comments and notes
    # ------------------------------------------------------------------

    def _anchored(self, cell: CellRange, attr: str) -> tuple[Worksheet, dict[Cell, Any], Cell]:
        ws, cell = self._resolve(cell)
        return ws, getattr(ws, attr), (cell.top, cell.left)

    @_mutation
    async def add_comment(self, cell: CellRange, content: str, author: str | None) -> None:
        ws, store, key = self._anchored(cell, "comments")
        self._guard(ws, "edit_objects")
        if key in store:
            raise DocumentRejectedError(f"Cell {cell.address} already has a comment thread.")
        store[key] = CommentInfo(cell.with_sheet(ws.name), content, author)

    @_mutation
    async def edit_comment(self, cell: CellRange, content: str) -> None:
        ws, store, key = self._anchored(cell, "comments")
        self._guard(ws, "edit_objects")
        self._existing(store, key, cell, "comment").content = content

    @_mutation
    async def delete_comment(self, cell: CellRange) -> None:
        ws, store, key = self._anchored(cell, "comments")
        self._guard(ws, "edit_objects")
        self._existing(store, key, cell, "comment")
        del store[key]

    @_mutation
    async def reply_to_comment(self, cell: CellRange, content: str, author: str | None) -> int:
        ws, store, key = self._anchored(cell, "comments")
        self._guard(ws, "edit_objects")
        thread = self._existing(store, key, cell, "comment")
        thread.replies.append((author, content))
        return len(thread.replies)

    @_mutation
    async def resolve_comment(self, cell: CellRange, resolved: bool) -> None:
        ws, store, key = self._anchored(cell, "comments")
        self._guard(ws, "edit_objects")
        self._existing(store, key, cell, "comment").resolved = resolved

    @_mutation
    async def add_note(self, cell: CellRange, content: str, author: str | None) -> None:
        ws, store, key = self._anchored(cell, "notes")
        self._guard(ws, "edit_objects")
        if key in store:
            raise DocumentRejectedError(f"Cell {cell.address} already has a note.")
        store[key] = CommentInfo(cell.with_sheet(ws.name), content, author)

    @_mutation
    async def edit_note(self, cell: CellRange, content: str) -> None:
        ws, store, key = self._anchored(cell, "notes")
        self._guard(ws, "edit_objects")
        self._existing(store, key, cell, "note").content = content

    @_mutation
    async def delete_note(self, cell: CellRange) -> None:
        ws, store, key = self._anchored(cell, "notes")
        self._guard(ws, "edit_objects")
        self._existing(store, key, cell, "note")
        del store[key]

    @staticmethod
    def _existing(store: dict[Cell, Any], key: Cell, cell: CellRange, label: str) -> Any:
        if key not in store:
            raise DocumentRejectedError(f"Cell {cell.address} has no {label}.")
        return store[key]

    # ------------------------------------------------------------------
    # Sparklines
    # ------------------------------------------------------------------

    @_mutation
    async def add_sparkline(self, sparkline: SparklineInfo) -> str:
        ws, location = self._resolve(sparkline.location)
        self._guard(ws, "edit_objects")
        _, source = self._resolve(sparkline.source)
        for other in self._sparklines.values():
            if other.sheet == ws.name and other.location.overlaps(location):
                raise DocumentRejectedError(
                    f"Cells {location.address} already contain sparklines ('{other.name}')."
                )
        name = sparkline.name or _next_name("Sparkline", self._sparklines)
        if name.casefold() in self._sparklines:
            raise DocumentRejectedError(f"A sparkline group named '{name}' already exists.")
        self._sparklines[name.casefold()] = replace(
            sparkline, name=name, sheet=ws.name, location=location, source=source
        )
        return name

    @_mutation
    async def update_sparkline(self, name: str, changes: dict[str, Any]) -> None:
        spark = self._lookup(self._sparklines, name, "Sparkline group")
        self._guard(self._sheet(spark.sheet), "edit_objects")
        for key, value in changes.items():
            if key == "sparkline_type":
                spark.sparkline_type = value
            else:
                spark.properties[key] = value

    @_mutation
    async def delete_sparkline(self, name: str) -> None:
        spark = self._lookup(self._sparklines, name, "Sparkline group")
        self._guard(self._sheet(spark.sheet), "edit_objects")
        del self._sparklines[spark.name.casefold()]

    # ------------------------------------------------------------------
    # Page layout
    # ------------------------------------------------------------------

    @_mutation
    async def update_page_layout(self, sheet: str, changes: dict[str, Any]) -> None:
        ws = self._sheet(sheet)
        for key, value in changes.items():
            if isinstance(value, dict) and isinstance(ws.page.get(key), dict):
                ws.page[key] = {**ws.page[key], **value}
            else:
                ws.page[key] = value

    @_mutation
    async def set_print_area(self, rng: CellRange) -> None:
        ws, rng = self._resolve(rng)
        ws.print_area = rng

    @_mutation
    async def set_page_breaks(
        self, sheet: str, rows: list[int], columns: list[int], clear_existing: bool
    ) -> None:
        ws = self._sheet(sheet)
        if clear_existing:
            ws.row_breaks, ws.column_breaks = set(), set()
        ws.row_breaks.update(rows)
        ws.column_breaks.update(columns)

    # ------------------------------------------------------------------
    # Data types
    # ------------------------------------------------------------------

    @_mutation
    async def set_entity_value(self, cell: CellRange, text: str, properties: dict[str, Any]) -> None:
        ws, store, key = self._anchored(cell, "entity_values")
        self._guard(ws, cells=cell.with_sheet(ws.name))
        if key in store:
            raise DocumentRejectedError(f"Cell {cell.address} already holds a data type.")
        store[key] = {"text": text, "properties": dict(properties)}
        ws.cells[key] = text

    @_mutation
    async def refresh_entity_value(
        self, cell: CellRange, text: str | None, properties: dict[str, Any] | None
    ) -> None:
        ws, store, key = self._anchored(cell, "entity_values")
        self._guard(ws, cells=cell.with_sheet(ws.name))
        entity = self._existing(store, key, cell, "data type")
        merged = {**entity["properties"], **(properties or {})}
        if len(merged) > 10:
            raise DocumentRejectedError("A data type can hold at most 10 properties.")
        entity["properties"] = merged
        if text is not None:
            entity["text"] = text
            ws.cells[key] = text

    # ------------------------------------------------------------------
    # Hyperlinks
    # ------------------------------------------------------------------

    @_mutation
    async def set_hyperlink(self, cell: CellRange, link: HyperlinkInfo) -> None:
        ws, store, key = self._anchored(cell, "hyperlinks")
        self._guard(ws, "insert_hyperlinks")
        if key in store:
            raise DocumentRejectedError(f"Cell {cell.address} already has a hyperlink.")
        store[key] = link
        display = link.text_to_display or (key not in ws.cells and (link.address or link.document_reference))
        if display:
            ws.cells[key] = display

    @_mutation
    async def edit_hyperlink(self, cell: CellRange, changes: dict[str, Any]) -> None:
        ws, store, key = self._anchored(cell, "hyperlinks")
        self._guard(ws, "insert_hyperlinks")
        link = self._existing(store, key, cell, "hyperlink")
        if "address" in changes:
            link.document_reference = None
        if "document_reference" in changes:
            link.address = None
        for name, value in changes.items():
            setattr(link, name, value)
        if changes.get("text_to_display"):
            ws.cells[key] = changes["text_to_display"]

    @_mutation
    async def remove_hyperlink(self, cell: CellRange) -> None:
        ws, store, key = self._anchored(cell, "hyperlinks")
        self._guard(ws, "insert_hyperlinks")
        self._existing(store, key, cell, "hyperlink")
        del store[key]
