"""Parameter models for the ``worksheets`` family."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field, model_validator

from sheetpilot.protocol.constants import MAX_ZOOM, MIN_ZOOM
from sheetpilot.protocol.params.base import (
    ActionParams,
    CellAddress,
    CellValue,
    EmptyParams,
    SheetName,
)

Position = Annotated[int, Field(ge=0)]


class SheetParams(ActionParams):
    values: list[list[CellValue]] | None = None
    position: Position | None = None
    activate: bool = False


class RenameSheetParams(ActionParams):
    new_name: SheetName


class MoveSheetParams(ActionParams):
    position: Position


class HideSheetParams(ActionParams):
    very_hidden: bool = False


class FreezePanesParams(ActionParams):
    rows: Position = 0
    columns: Position = 0
    cell: CellAddress | None = None

    @model_validator(mode="after")
    def something_frozen(self) -> "FreezePanesParams":
        if self.cell is None and self.rows == 0 and self.columns == 0:
            raise ValueError("freezePanes needs rows, columns or cell")
        if self.cell is not None and (self.rows or self.columns):
            raise ValueError("give either cell or rows/columns, not both")
        return self


class ZoomParams(ActionParams):
    zoom: Annotated[int, Field(ge=MIN_ZOOM, le=MAX_ZOOM)]


class SplitPaneParams(ActionParams):
    row: Position = 0
    column: Position = 0

    @model_validator(mode="after")
    def something_split(self) -> "SplitPaneParams":
        if self.row == 0 and self.column == 0:
            raise ValueError("splitPane needs row or column")
        return self


class CreateViewParams(ActionParams):
    sheet: SheetName | None = None
    activate: bool = False


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "sheet": SheetParams,
    "renameSheet": RenameSheetParams,
    "moveSheet": MoveSheetParams,
    "hideSheet": HideSheetParams,
    "unhideSheet": EmptyParams,
    "freezePanes": FreezePanesParams,
    "unfreezePane": EmptyParams,
    "setZoom": ZoomParams,
    "splitPane": SplitPaneParams,
    "createView": CreateViewParams,
}
