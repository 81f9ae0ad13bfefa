"""Parameter models for the ``conditional_format`` family."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field, model_validator

from sheetpilot.protocol.params.base import ActionParams, Color, require_any

CompareOperator = Literal[
    "between", "notBetween", "equalTo", "notEqualTo",
    "greaterThan", "lessThan", "greaterThanOrEqual", "lessThanOrEqual",
]


class ConditionalRule(ActionParams):
    type: Literal["cellValue", "containsText", "topBottom", "colorScale", "dataBar"]
    operator: CompareOperator | None = None
    value: float | str | None = None
    value2: float | str | None = None
    text: str | None = None
    rank: Annotated[int, Field(ge=1, le=1000)] | None = None
    bottom: bool = False
    fill: Color | None = None
    font_color: Color | None = None
    min_color: Color | None = None
    max_color: Color | None = None
    bar_color: Color | None = None

    @model_validator(mode="after")
    def rule_is_complete(self) -> "ConditionalRule":
        if self.type == "cellValue":
            if self.operator is None or self.value is None:
                raise ValueError("cellValue rules need operator and value")
            if self.operator in ("between", "notBetween") and self.value2 is None:
                raise ValueError(f"operator {self.operator} needs value2")
        elif self.type == "containsText" and not self.text:
            raise ValueError("containsText rules need text")
        elif self.type == "topBottom" and self.rank is None:
            raise ValueError("topBottom rules need rank")
        if self.type in ("cellValue", "containsText", "topBottom"):
            require_any(self, "fill", "font_color")
        return self


class ConditionalFormatParams(ActionParams):
    rules: list[ConditionalRule] = Field(min_length=1)


class ClearFormatParams(ActionParams):
    conditional_only: bool = False


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "conditionalFormat": ConditionalFormatParams,
    "clearFormat": ClearFormatParams,
}
