"""Parameter models for the ``slicers`` family."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import AfterValidator, Field, model_validator

from sheetpilot.protocol.constants import DEFAULT_SLICER_STYLE, SLICER_STYLES
from sheetpilot.protocol.params.base import (
    ActionParams,
    DefinedName,
    Dimension,
    EmptyParams,
    Points,
    SheetName,
    Text,
    require_any,
)


def _slicer_style(v: str) -> str:
    if v not in SLICER_STYLES:
        raise ValueError(
            f"unknown slicer style {v!r}; expected SlicerStyleLight1-6 or SlicerStyleDark1-6"
        )
    return v


SlicerStyle = Annotated[str, AfterValidator(_slicer_style)]


class SlicerPosition(ActionParams):
    left: Points = 100
    top: Points = 100
    width: Dimension = 200
    height: Dimension = 200


class CreateSlicerParams(ActionParams):
    source_type: Literal["table", "pivot"]
    field: Text
    name: DefinedName | None = None
    caption: str | None = None
    sheet: SheetName | None = Field(
        default=None, description="Sheet hosting the slicer; defaults to the source's sheet."
    )
    position: SlicerPosition = Field(default_factory=SlicerPosition)
    style: SlicerStyle = DEFAULT_SLICER_STYLE
    selected_items: list[str] | None = None
    multi_select: bool = True


class ConfigureSlicerParams(ActionParams):
    caption: str | None = None
    style: SlicerStyle | None = None
    sort_by: Literal["dataSourceOrder", "ascending", "descending"] | None = None
    left: Points | None = None
    top: Points | None = None
    width: Dimension | None = None
    height: Dimension | None = None
    selected_items: list[str] | None = None
    multi_select: bool | None = None

    @model_validator(mode="after")
    def something_to_apply(self) -> "ConfigureSlicerParams":
        require_any(self, *type(self).model_fields)
        return self


class ConnectSlicerToTableParams(ActionParams):
    table: DefinedName
    field: Text


class ConnectSlicerToPivotParams(ActionParams):
    pivot: DefinedName
    field: Text


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "createSlicer": CreateSlicerParams,
    "configureSlicer": ConfigureSlicerParams,
    "connectSlicerToTable": ConnectSlicerToTableParams,
    "connectSlicerToPivot": ConnectSlicerToPivotParams,
    "deleteSlicer": EmptyParams,
}
