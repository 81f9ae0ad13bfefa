"""Parameter models for the ``sparklines`` family."""

from __future__ import annotations

from typing import Literal

from pydantic import model_validator

from sheetpilot.protocol.params.base import (
    ActionParams,
    Color,
    ContiguousRange,
    DefinedName,
    EmptyParams,
    require_any,
)

SparklineType = Literal["line", "column", "winLoss"]


class CreateSparklineParams(ActionParams):
    source_data: ContiguousRange
    sparkline_type: SparklineType = "line"
    name: DefinedName | None = None
    color: Color | None = None


class ConfigureSparklineParams(ActionParams):
    sparkline_type: SparklineType | None = None
    color: Color | None = None
    negative_color: Color | None = None
    show_markers: bool | None = None
    show_high_point: bool | None = None
    show_low_point: bool | None = None
    show_first_point: bool | None = None
    show_last_point: bool | None = None
    show_negative_points: bool | None = None

    @model_validator(mode="after")
    def something_to_apply(self) -> "ConfigureSparklineParams":
        require_any(self, *type(self).model_fields)
        return self


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "createSparkline": CreateSparklineParams,
    "configureSparkline": ConfigureSparklineParams,
    "deleteSparkline": EmptyParams,
}
