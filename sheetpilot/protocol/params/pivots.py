"""Parameter models for the ``pivots`` family."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field, model_validator

from sheetpilot.protocol.params.base import (
    ActionParams,
    CellAddress,
    DefinedName,
    EmptyParams,
    Text,
    require_any,
)

Aggregation = Literal["sum", "count", "average", "max", "min", "countNumbers", "stdDev", "var"]
PivotArea = Literal["row", "column", "data", "filter"]
PivotLayout = Literal["compact", "outline", "tabular"]


class PivotValueField(ActionParams):
    field: Text
    function: Aggregation = "sum"


class CreatePivotTableParams(ActionParams):
    name: DefinedName
    destination: CellAddress
    rows: list[Text] = Field(default_factory=list)
    columns: list[Text] = Field(default_factory=list)
    values: list[PivotValueField] = Field(default_factory=list)
    filters: list[Text] = Field(default_factory=list)
    layout: PivotLayout = "compact"


class AddPivotFieldParams(ActionParams):
    field: Text
    area: PivotArea
    function: Aggregation = "sum"
    position: Annotated[int, Field(ge=0)] | None = None


class ConfigurePivotLayoutParams(ActionParams):
    layout: PivotLayout | None = None
    show_row_headers: bool | None = None
    show_column_headers: bool | None = None
    show_grand_totals: bool | None = None

    @model_validator(mode="after")
    def something_to_apply(self) -> "ConfigurePivotLayoutParams":
        require_any(self, *type(self).model_fields)
        return self


class RefreshPivotTableParams(ActionParams):
    refresh_all: bool = False


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "createPivotTable": CreatePivotTableParams,
    "addPivotField": AddPivotFieldParams,
    "configurePivotLayout": ConfigurePivotLayoutParams,
    "refreshPivotTable": RefreshPivotTableParams,
    "deletePivotTable": EmptyParams,
}
