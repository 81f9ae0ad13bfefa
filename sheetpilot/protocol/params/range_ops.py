"""Parameter models for the ``range`` family (cell contents and range operations)."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator

from sheetpilot.protocol.params.base import (
    ActionParams,
    Color,
    ContiguousRange,
    Dimension,
    SheetName,
    Text,
    ValueGrid,
    require_any,
)

ColumnOffset = Annotated[int, Field(ge=0)]


class FormulaParams(ActionParams):
    formula: str

    @field_validator("formula")
    @classmethod
    def must_start_with_equals(cls, v: str) -> str:
        if not v.startswith("=") or len(v) < 2:
            raise ValueError("formulas must start with '='")
        return v


class ValuesParams(ActionParams):
    values: ValueGrid


class FormatParams(ActionParams):
    bold: bool | None = None
    italic: bool | None = None
    underline: bool | None = None
    font_name: Text | None = None
    font_size: Annotated[float, Field(ge=1, le=409)] | None = None
    font_color: Color | None = None
    fill: Color | None = None
    number_format: Text | None = None
    horizontal_alignment: Literal["left", "center", "right", "justify"] | None = None
    vertical_alignment: Literal["top", "center", "bottom"] | None = None
    wrap_text: bool | None = None
    borders: bool | None = None
    column_width: Dimension | None = None
    row_height: Dimension | None = None

    @model_validator(mode="after")
    def something_to_apply(self) -> "FormatParams":
        require_any(self, *type(self).model_fields)
        return self


ValidationOperator = Literal[
    "between", "notBetween", "equalTo", "notEqualTo",
    "greaterThan", "lessThan", "greaterThanOrEqualTo", "lessThanOrEqualTo",
]


class ValidationParams(ActionParams):
    type: Literal["list", "wholeNumber", "decimal", "textLength"] = "list"
    source: ContiguousRange | None = None
    items: list[Text] | None = Field(default=None, min_length=1)
    operator: ValidationOperator | None = None
    minimum: float | None = None
    maximum: float | None = None
    allow_blank: bool = True
    error_message: str | None = None

    @model_validator(mode="after")
    def rule_is_complete(self) -> "ValidationParams":
        if self.type == "list":
            if (self.source is None) == (self.items is None):
                raise ValueError("list validation needs exactly one of source or items")
            return self
        if self.operator is None or self.minimum is None:
            raise ValueError(f"{self.type} validation needs operator and minimum")
        if self.operator in ("between", "notBetween") and self.maximum is None:
            raise ValueError(f"operator {self.operator} needs maximum")
        return self


class SortParams(ActionParams):
    column: ColumnOffset = 0
    ascending: bool = True
    has_headers: bool = True


class AutofillParams(ActionParams):
    source: ContiguousRange


class CopyParams(ActionParams):
    source: ContiguousRange


class FilterParams(ActionParams):
    column: ColumnOffset
    values: list[str] = Field(min_length=1)


class ClearFilterParams(ActionParams):
    sheet: SheetName | None = None


class RemoveDuplicatesParams(ActionParams):
    columns: list[ColumnOffset] | None = Field(default=None, min_length=1)
    has_headers: bool = True


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "formula": FormulaParams,
    "values": ValuesParams,
    "format": FormatParams,
    "validation": ValidationParams,
    "sort": SortParams,
    "autofill": AutofillParams,
    "copy": CopyParams,
    "copyValues": CopyParams,
    "filter": FilterParams,
    "clearFilter": ClearFilterParams,
    "removeDuplicates": RemoveDuplicatesParams,
}
