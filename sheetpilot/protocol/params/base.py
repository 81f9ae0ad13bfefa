"""Shared building blocks for action parameter models.

Parameter models validate in strict mode: a numeric parameter given as the
string ``"5"`` is rejected, never coerced.  Keys may be given in camelCase
(as the assistant emits them) or snake_case.
"""

from __future__ import annotations

import re
from typing import Annotated, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sheetpilot.protocol.constants import (
    MAX_NAME_LENGTH,
    MAX_SHEET_NAME_LENGTH,
    NAMED_COLORS,
    SHEET_NAME_FORBIDDEN,
)
from sheetpilot.protocol.ranges import (
    RangeSyntaxError,
    looks_like_cell_reference,
    parse_areas,
    parse_cell,
    parse_range,
)

_HEX_COLOR_RE = re.compile(r"^#?[0-9A-Fa-f]{6}$")
_NAME_RE = re.compile(r"^[A-Za-z_\\][A-Za-z0-9_.\\]*$")


class ActionParams(BaseModel):
    """Base class for every action's parameter model."""

    model_config = ConfigDict(
        strict=True,
        extra="ignore",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Value checks
# ---------------------------------------------------------------------------


def _range_address(v: str) -> str:
    try:
        parse_areas(v)
    except RangeSyntaxError as exc:
        raise ValueError(str(exc)) from exc
    return v


def _contiguous_range(v: str) -> str:
    try:
        parse_range(v)
    except RangeSyntaxError as exc:
        raise ValueError(f"must be a single contiguous range ({exc})") from exc
    return v


def _cell_address(v: str) -> str:
    try:
        parse_cell(v)
    except RangeSyntaxError as exc:
        raise ValueError(str(exc)) from exc
    return v


def _color(v: str) -> str:
    if _HEX_COLOR_RE.match(v):
        return v if v.startswith("#") else f"#{v}"
    if v.lower() in NAMED_COLORS:
        return v.lower()
    raise ValueError(f"{v!r} is not a #RRGGBB color or a known color name")


def check_sheet_name(v: str) -> str:
    if not v or len(v) > MAX_SHEET_NAME_LENGTH:
        raise ValueError(f"sheet names must be 1-{MAX_SHEET_NAME_LENGTH} characters")
    if any(ch in SHEET_NAME_FORBIDDEN for ch in v):
        raise ValueError("sheet names cannot contain any of [ ] : * ? / \\")
    if v.startswith("'") or v.endswith("'"):
        raise ValueError("sheet names cannot start or end with an apostrophe")
    return v


def check_defined_name(v: str) -> str:
    """Rules shared by named ranges, table names and pivot/slicer names."""
    if not v or len(v) > MAX_NAME_LENGTH:
        raise ValueError(f"names must be 1-{MAX_NAME_LENGTH} characters")
    if not _NAME_RE.match(v):
        raise ValueError(
            "names must start with a letter, underscore or backslash and contain "
            "only letters, digits, underscores, periods and backslashes"
        )
    if looks_like_cell_reference(v):
        raise ValueError(f"{v!r} looks like a cell reference")
    return v


def _non_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be blank")
    return v


RangeAddress = Annotated[str, AfterValidator(_range_address)]
ContiguousRange = Annotated[str, AfterValidator(_contiguous_range)]
CellAddress = Annotated[str, AfterValidator(_cell_address)]
Color = Annotated[str, AfterValidator(_color)]
SheetName = Annotated[str, AfterValidator(check_sheet_name)]
DefinedName = Annotated[str, AfterValidator(check_defined_name)]
Text = Annotated[str, AfterValidator(_non_blank)]
Points = Annotated[float, Field(ge=0)]
Dimension = Annotated[float, Field(gt=0)]

CellValue = Union[str, int, float, bool, None]
ValueGrid = Union[list[list[CellValue]], list[CellValue], CellValue]


def require_any(model: BaseModel, *names: str) -> None:
    """Raise unless at least one of *names* was given a non-null value."""
    if all(getattr(model, name) is None for name in names):
        shown = ", ".join(to_camel(name) for name in names)
        raise ValueError(f"at least one of {shown} is required")


class EmptyParams(ActionParams):
    """For actions whose target says everything."""
