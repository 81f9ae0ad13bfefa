"""Parameter models for the ``charts`` family."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from sheetpilot.protocol.params.base import (
    ActionParams,
    CellAddress,
    DefinedName,
    Dimension,
    Text,
)

ChartType = Literal[
    "column", "columnStacked", "bar", "barStacked", "line", "lineMarkers",
    "pie", "doughnut", "area", "scatter", "radar",
]
Aggregation = Literal["sum", "count", "average", "max", "min", "countNumbers", "stdDev", "var"]


class ChartParams(ActionParams):
    chart_type: ChartType = "column"
    title: str | None = None
    name: DefinedName | None = None
    position: CellAddress | None = None
    width: Dimension | None = None
    height: Dimension | None = None
    series_by: Literal["auto", "rows", "columns"] = "auto"


class PivotChartParams(ActionParams):
    group_by: Text
    value_field: Text
    aggregate: Aggregation = "sum"
    chart_type: ChartType = "column"
    title: str | None = None
    name: DefinedName | None = None
    destination: CellAddress | None = Field(
        default=None,
        description="Where the aggregated helper table is written; defaults to two rows below the source.",
    )


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "chart": ChartParams,
    "pivotChart": PivotChartParams,
}
