"""Parameter models for the ``named_ranges`` family."""

from __future__ import annotations

from pydantic import field_validator, model_validator

from sheetpilot.protocol.params.base import ActionParams, EmptyParams, RangeAddress, SheetName

_VALUE_FIELDS = ("reference", "formula", "value")


class _NamedValueParams(ActionParams):
    reference: RangeAddress | None = None
    formula: str | None = None
    value: str | int | float | bool | None = None
    comment: str | None = None

    @field_validator("formula")
    @classmethod
    def formula_starts_with_equals(cls, v: str | None) -> str | None:
        if v is not None and (not v.startswith("=") or len(v) < 2):
            raise ValueError("formulas must start with '='")
        return v

    def given_values(self) -> list[str]:
        return [name for name in _VALUE_FIELDS if getattr(self, name) is not None]


class CreateNamedRangeParams(_NamedValueParams):
    scope: SheetName | None = None

    @model_validator(mode="after")
    def exactly_one_value(self) -> "CreateNamedRangeParams":
        if len(self.given_values()) != 1:
            raise ValueError("give exactly one of reference, formula or value")
        return self


class UpdateNamedRangeParams(_NamedValueParams):
    @model_validator(mode="after")
    def at_most_one_value(self) -> "UpdateNamedRangeParams":
        given = self.given_values()
        if len(given) > 1:
            raise ValueError("give at most one of reference, formula or value")
        if not given and self.comment is None:
            raise ValueError("nothing to update: give reference, formula, value or comment")
        return self


class ListNamedRangesParams(ActionParams):
    include_values: bool = True


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "createNamedRange": CreateNamedRangeParams,
    "deleteNamedRange": EmptyParams,
    "updateNamedRange": UpdateNamedRangeParams,
    "listNamedRanges": ListNamedRangesParams,
}
