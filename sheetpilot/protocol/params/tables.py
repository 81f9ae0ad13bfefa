"""Parameter models for the ``tables`` family."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import AfterValidator, Field, model_validator

from sheetpilot.protocol.constants import DEFAULT_TABLE_STYLE, TABLE_STYLES
from sheetpilot.protocol.params.base import (
    ActionParams,
    CellValue,
    ContiguousRange,
    DefinedName,
    EmptyParams,
    Text,
    require_any,
)


def _table_style(v: str) -> str:
    if v not in TABLE_STYLES:
        raise ValueError(
            f"unknown table style {v!r}; expected TableStyleLight1-21, "
            "TableStyleMedium1-28 or TableStyleDark1-11"
        )
    return v


TableStyle = Annotated[str, AfterValidator(_table_style)]
TotalsFunction = Literal[
    "sum", "average", "count", "countNumbers", "max", "min", "stdDev", "var", "none",
]


class CreateTableParams(ActionParams):
    name: DefinedName | None = None
    has_headers: bool = True
    style: TableStyle = DEFAULT_TABLE_STYLE


class StyleTableParams(ActionParams):
    style: TableStyle | None = None
    show_header_row: bool | None = None
    show_banded_rows: bool | None = None
    show_banded_columns: bool | None = None
    show_first_column: bool | None = None
    show_last_column: bool | None = None
    show_filter_button: bool | None = None

    @model_validator(mode="after")
    def something_to_apply(self) -> "StyleTableParams":
        require_any(self, *type(self).model_fields)
        return self


class AddTableRowParams(ActionParams):
    values: list[list[CellValue]] | list[CellValue] = Field(min_length=1)
    position: Annotated[int, Field(ge=0)] | None = None


class AddTableColumnParams(ActionParams):
    header: Text | None = None
    values: list[CellValue] | None = None
    position: Annotated[int, Field(ge=0)] | None = None


class ResizeTableParams(ActionParams):
    new_range: ContiguousRange


class TotalSpec(ActionParams):
    column: Text | Annotated[int, Field(ge=0)]
    function: TotalsFunction


class ToggleTableTotalsParams(ActionParams):
    show: bool = True
    totals: list[TotalSpec] = Field(default_factory=list)


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "createTable": CreateTableParams,
    "styleTable": StyleTableParams,
    "addTableRow": AddTableRowParams,
    "addTableColumn": AddTableColumnParams,
    "resizeTable": ResizeTableParams,
    "convertToRange": EmptyParams,
    "toggleTableTotals": ToggleTableTotalsParams,
}
