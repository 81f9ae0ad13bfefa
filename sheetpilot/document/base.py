"""Document layer — The spreadsheet capability surface.

``DocumentHandle`` is the only way the engine touches a workbook.  Every
method is a coroutine: a live spreadsheet host answers asynchronously.
Mutating methods raise ``DocumentRejectedError`` when the spreadsheet
refuses the change; they never return partial success.

Records returned by read methods (``TableInfo``, ``PivotInfo``...) are
snapshots; callers must not mutate them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from sheetpilot.protocol.ranges import CellRange
from sheetpilot.protocol.schema import EntityKind, EntityRef

# ---------------------------------------------------------------------------
# Capability snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SheetProtection:
    protected: bool = False
    allowed: frozenset[str] = frozenset()
    has_password: bool = False

    def permits(self, option: str | None) -> bool:
        if not self.protected:
            return True
        return option is not None and option in self.allowed


UNPROTECTED = SheetProtection()


@dataclass(frozen=True)
class DocumentCapabilitySnapshot:
    """Point-in-time view of what the document supports and contains.

    Entity names are matched case-insensitively.
    """

    api_level: str
    active_sheet: str
    sheets: Mapping[str, SheetProtection]
    entities: Mapping[EntityKind, Mapping[str, str | None]]
    workbook_protected: bool = False

    @classmethod
    def build(
        cls,
        api_level: str,
        active_sheet: str,
        sheets: Mapping[str, SheetProtection],
        entities: Mapping[EntityKind, Mapping[str, str | None]],
        workbook_protected: bool = False,
    ) -> "DocumentCapabilitySnapshot":
        frozen_entities = {
            kind: MappingProxyType({name.casefold(): sheet for name, sheet in names.items()})
            for kind, names in entities.items()
        }
        frozen_entities[EntityKind.SHEET] = MappingProxyType(
            {name.casefold(): name for name in sheets}
        )
        return cls(
            api_level=api_level,
            active_sheet=active_sheet,
            sheets=MappingProxyType({name.casefold(): p for name, p in sheets.items()}),
            entities=MappingProxyType(frozen_entities),
            workbook_protected=workbook_protected,
        )

    def has_sheet(self, name: str) -> bool:
        return name.casefold() in self.sheets

    def protection(self, sheet: str) -> SheetProtection:
        return self.sheets.get(sheet.casefold(), UNPROTECTED)

    def has_entity(self, ref: EntityRef) -> bool:
        return ref.name.casefold() in self.entities.get(ref.kind, {})

    def entity_sheet(self, ref: EntityRef) -> str | None:
        return self.entities.get(ref.kind, {}).get(ref.name.casefold())

    def count(self, kind: EntityKind) -> int:
        return len(self.entities.get(kind, {}))


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class TableInfo:
    name: str
    sheet: str
    range: CellRange
    columns: list[str]
    has_headers: bool = True
    style: str = "TableStyleMedium2"
    show_totals: bool = False
    totals: dict[str, str] = field(default_factory=dict)
    options: dict[str, bool] = field(default_factory=dict)

    @property
    def header_range(self) -> CellRange | None:
        if not self.has_headers:
            return None
        return CellRange(self.range.top, self.range.left, self.range.top, self.range.right, self.sheet)

    @property
    def body_range(self) -> CellRange:
        top = self.range.top + (1 if self.has_headers else 0)
        bottom = self.range.bottom - (1 if self.show_totals else 0)
        return CellRange(top, self.range.left, max(top, bottom), self.range.right, self.sheet)


@dataclass
class PivotInfo:
    name: str
    sheet: str
    source: CellRange
    source_fields: list[str]
    destination: CellRange
    rows: list[str] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    values: list[tuple[str, str]] = field(default_factory=list)
    filters: list[str] = field(default_factory=list)
    layout: str = "compact"
    options: dict[str, bool] = field(default_factory=dict)
    source_table: str | None = None
    refreshed: int = 0


@dataclass
class SlicerInfo:
    name: str
    sheet: str
    source_kind: EntityKind
    source_name: str
    field: str
    items: list[str]
    caption: str
    style: str
    position: dict[str, float]
    selected_items: list[str]
    multi_select: bool = True
    sort_by: str = "dataSourceOrder"


@dataclass
class NamedRangeInfo:
    name: str
    reference: str | None = None
    formula: str | None = None
    value: Any = None
    comment: str | None = None
    scope: str | None = None

    @property
    def refers_to(self) -> str:
        if self.reference is not None:
            return self.reference
        if self.formula is not None:
            return self.formula
        return f'"{self.value}"' if isinstance(self.value, str) else str(self.value)


@dataclass
class ShapeInfo:
    name: str
    sheet: str
    shape_type: str
    left: float
    top: float
    width: float
    height: float
    properties: dict[str, Any] = field(default_factory=dict)
    members: list[str] = field(default_factory=list)
    z_order: int = 0


@dataclass
class ChartInfo:
    name: str
    sheet: str
    chart_type: str
    source: CellRange
    title: str | None = None
    position: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class SparklineInfo:
    name: str
    sheet: str
    location: CellRange
    source: CellRange
    sparkline_type: str = "line"
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class CommentInfo:
    cell: CellRange
    content: str
    author: str | None = None
    replies: list[tuple[str | None, str]] = field(default_factory=list)
    resolved: bool = False


@dataclass
class HyperlinkInfo:
    address: str | None = None
    document_reference: str | None = None
    text_to_display: str | None = None
    screen_tip: str | None = None


# ---------------------------------------------------------------------------
# Handle
# ---------------------------------------------------------------------------


class DocumentHandle(ABC):
    """Async capability surface of one open workbook."""

    # -- reads ---------------------------------------------------------

    @abstractmethod
    async def api_level(self) -> str: ...

    @abstractmethod
    async def active_sheet(self) -> str: ...

    @abstractmethod
    async def list_sheets(self) -> list[str]: ...

    @abstractmethod
    async def sheet_protection(self, sheet: str) -> SheetProtection: ...

    @abstractmethod
    async def workbook_protected(self) -> bool: ...

    @abstractmethod
    async def entity_names(self, kind: EntityKind) -> dict[str, str | None]:
        """Existing entities of *kind*, mapped to the sheet they live on."""

    @abstractmethod
    async def read_range(self, rng: CellRange, formulas: bool = False) -> list[list[Any]]:
        """Cell grid of *rng*; with *formulas* the formula text replaces values."""

    @abstractmethod
    async def used_range(self, sheet: str) -> CellRange | None: ...

    @abstractmethod
    async def get_table(self, name: str) -> TableInfo: ...

    @abstractmethod
    async def get_pivot(self, name: str) -> PivotInfo: ...

    @abstractmethod
    async def get_slicer(self, name: str) -> SlicerInfo: ...

    @abstractmethod
    async def list_slicers(self) -> list[SlicerInfo]: ...

    @abstractmethod
    async def list_named_ranges(self) -> list[NamedRangeInfo]: ...

    @abstractmethod
    async def count_sparklines(self, sheet: str) -> int: ...

    async def capture_snapshot(self) -> DocumentCapabilitySnapshot:
        """Read everything the capability gate and resolver need, in one go."""
        sheets = await self.list_sheets()
        protection = {sheet: await self.sheet_protection(sheet) for sheet in sheets}
        entities = {
            kind: await self.entity_names(kind) for kind in EntityKind if kind != EntityKind.SHEET
        }
        return DocumentCapabilitySnapshot.build(
            api_level=await self.api_level(),
            active_sheet=await self.active_sheet(),
            sheets=protection,
            entities=entities,
            workbook_protected=await self.workbook_protected(),
        )

    # -- cells and ranges ----------------------------------------------

    @abstractmethod
    async def write_range(self, rng: CellRange, grid: list[list[Any]]) -> int:
        """Write *grid* into *rng* (strings starting with ``=`` are formulas).

        Returns the number of cells written.
        """

    @abstractmethod
    async def clear_range(self, rng: CellRange) -> None: ...

    @abstractmethod
    async def format_range(self, rng: CellRange, fmt: dict[str, Any]) -> None: ...

    @abstractmethod
    async def set_validation(self, rng: CellRange, rule: dict[str, Any]) -> None: ...

    @abstractmethod
    async def set_conditional_formats(self, rng: CellRange, rules: list[dict[str, Any]]) -> None: ...

    @abstractmethod
    async def clear_formats(self, rng: CellRange, conditional_only: bool) -> None: ...

    @abstractmethod
    async def apply_filter(self, rng: CellRange, column: int, values: list[str]) -> int:
        """Filter *rng* on a column offset; returns the number of visible data rows."""

    @abstractmethod
    async def clear_filter(self, sheet: str) -> None: ...

    # -- charts --------------------------------------------------------

    @abstractmethod
    async def add_chart(self, chart: ChartInfo) -> str:
        """Add *chart*; an empty ``chart.name`` asks the document to pick one."""

    # -- worksheets ----------------------------------------------------

    @abstractmethod
    async def add_sheet(self, name: str, position: int | None = None) -> None: ...

    @abstractmethod
    async def rename_sheet(self, name: str, new_name: str) -> None: ...

    @abstractmethod
    async def move_sheet(self, name: str, position: int) -> None: ...

    @abstractmethod
    async def set_sheet_visibility(self, name: str, visibility: str) -> None: ...

    @abstractmethod
    async def activate_sheet(self, name: str) -> None: ...

    @abstractmethod
    async def set_freeze_panes(self, sheet: str, rows: int, columns: int) -> None: ...

    @abstractmethod
    async def set_zoom(self, sheet: str, zoom: int) -> None: ...

    @abstractmethod
    async def set_split(self, sheet: str, row: int, column: int) -> None: ...

    @abstractmethod
    async def add_sheet_view(self, sheet: str, name: str) -> None: ...

    # -- rows and columns ----------------------------------------------

    @abstractmethod
    async def insert_rows(self, sheet: str, at: int, count: int) -> None: ...

    @abstractmethod
    async def insert_columns(self, sheet: str, at: int, count: int) -> None: ...

    @abstractmethod
    async def delete_rows(self, sheet: str, first: int, last: int) -> None: ...

    @abstractmethod
    async def delete_columns(self, sheet: str, first: int, last: int) -> None: ...

    @abstractmethod
    async def merge_cells(self, rng: CellRange, across: bool) -> None: ...

    @abstractmethod
    async def unmerge_cells(self, rng: CellRange) -> None: ...

    # -- tables --------------------------------------------------------

    @abstractmethod
    async def add_table(
        self, rng: CellRange, name: str | None, has_headers: bool, style: str
    ) -> TableInfo: ...

    @abstractmethod
    async def update_table(self, name: str, changes: dict[str, Any]) -> None: ...

    @abstractmethod
    async def add_table_rows(self, name: str, rows: list[list[Any]], position: int | None) -> None: ...

    @abstractmethod
    async def add_table_column(
        self, name: str, header: str | None, values: list[Any] | None, position: int | None
    ) -> str:
        """Add a column and return its header text."""

    @abstractmethod
    async def resize_table(self, name: str, rng: CellRange) -> None: ...

    @abstractmethod
    async def convert_table_to_range(self, name: str) -> None: ...

    @abstractmethod
    async def set_table_totals(self, name: str, show: bool, functions: dict[str, str]) -> None: ...

    # -- pivots --------------------------------------------------------

    @abstractmethod
    async def add_pivot(self, pivot: PivotInfo) -> None: ...

    @abstractmethod
    async def add_pivot_field(
        self, name: str, field: str, area: str, function: str, position: int | None
    ) -> None: ...

    @abstractmethod
    async def set_pivot_layout(self, name: str, changes: dict[str, Any]) -> None: ...

    @abstractmethod
    async def refresh_pivots(self, name: str | None) -> list[str]: ...

    @abstractmethod
    async def delete_pivot(self, name: str) -> None: ...

    # -- slicers -------------------------------------------------------

    @abstractmethod
    async def add_slicer(self, slicer: SlicerInfo) -> str:
        """Add *slicer*; an empty name asks the document to pick one."""

    @abstractmethod
    async def update_slicer(self, name: str, changes: dict[str, Any]) -> None: ...

    @abstractmethod
    async def delete_slicer(self, name: str) -> None: ...

    # -- named ranges --------------------------------------------------

    @abstractmethod
    async def add_named_range(self, named: NamedRangeInfo) -> None: ...

    @abstractmethod
    async def update_named_range(self, name: str, changes: dict[str, Any]) -> None: ...

    @abstractmethod
    async def delete_named_range(self, name: str) -> None: ...

    # -- protection ----------------------------------------------------

    @abstractmethod
    async def protect_sheet(self, sheet: str, password: str | None, allowed: frozenset[str]) -> None: ...

    @abstractmethod
    async def unprotect_sheet(self, sheet: str, password: str | None) -> None: ...

    @abstractmethod
    async def set_cells_locked(self, rng: CellRange, locked: bool, hide_formulas: bool) -> None: ...

    @abstractmethod
    async def protect_workbook(self, password: str | None) -> None: ...

    @abstractmethod
    async def unprotect_workbook(self, password: str | None) -> None: ...

    # -- shapes --------------------------------------------------------

    @abstractmethod
    async def add_shape(self, shape: ShapeInfo) -> str: ...

    @abstractmethod
    async def update_shape(self, name: str, changes: dict[str, Any]) -> None: ...

    @abstractmethod
    async def delete_shape(self, name: str) -> None: ...

    @abstractmethod
    async def group_shapes(self, names: list[str], name: str | None) -> str: ...

    @abstractmethod
    async def ungroup_shapes(self, name: str) -> list[str]: ...

    @abstractmethod
    async def arrange_shape(self, name: str, order: str) -> None: ...

    # -- comments and notes --------------------------------------------

    @abstractmethod
    async def add_comment(self, cell: CellRange, content: str, author: str | None) -> None: ...

    @abstractmethod
    async def edit_comment(self, cell: CellRange, content: str) -> None: ...

    @abstractmethod
    async def delete_comment(self, cell: CellRange) -> None: ...

    @abstractmethod
    async def reply_to_comment(self, cell: CellRange, content: str, author: str | None) -> int:
        """Append a reply and return the thread's reply count."""

    @abstractmethod
    async def resolve_comment(self, cell: CellRange, resolved: bool) -> None: ...

    @abstractmethod
    async def add_note(self, cell: CellRange, content: str, author: str | None) -> None: ...

    @abstractmethod
    async def edit_note(self, cell: CellRange, content: str) -> None: ...

    @abstractmethod
    async def delete_note(self, cell: CellRange) -> None: ...

    # -- sparklines ----------------------------------------------------

    @abstractmethod
    async def add_sparkline(self, sparkline: SparklineInfo) -> str: ...

    @abstractmethod
    async def update_sparkline(self, name: str, changes: dict[str, Any]) -> None: ...

    @abstractmethod
    async def delete_sparkline(self, name: str) -> None: ...

    # -- page layout ---------------------------------------------------

    @abstractmethod
    async def update_page_layout(self, sheet: str, changes: dict[str, Any]) -> None: ...

    @abstractmethod
    async def set_print_area(self, rng: CellRange) -> None: ...

    @abstractmethod
    async def set_page_breaks(
        self, sheet: str, rows: list[int], columns: list[int], clear_existing: bool
    ) -> None: ...

    # -- data types ----------------------------------------------------

    @abstractmethod
    async def set_entity_value(
        self, cell: CellRange, text: str, properties: dict[str, Any]
    ) -> None: ...

    @abstractmethod
    async def refresh_entity_value(
        self, cell: CellRange, text: str | None, properties: dict[str, Any] | None
    ) -> None: ...

    # -- hyperlinks ----------------------------------------------------

    @abstractmethod
    async def set_hyperlink(self, cell: CellRange, link: HyperlinkInfo) -> None: ...

    @abstractmethod
    async def edit_hyperlink(self, cell: CellRange, changes: dict[str, Any]) -> None: ...

    @abstractmethod
    async def remove_hyperlink(self, cell: CellRange) -> None: ...
