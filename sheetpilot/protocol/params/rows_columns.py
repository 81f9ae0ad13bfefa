"""Parameter models for the ``rows_columns`` family."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

from sheetpilot.protocol.params.base import ActionParams, CellAddress, EmptyParams


class InsertParams(ActionParams):
    count: Annotated[int, Field(ge=1, le=100_000)] | None = Field(
        default=None,
        description="How many rows/columns to insert; defaults to the size of the target span.",
    )


class MergeCellsParams(ActionParams):
    across: bool = False


class FindReplaceParams(ActionParams):
    find: str = Field(min_length=1)
    replace: str = ""
    match_case: bool = False
    match_entire_cell: bool = False


class TextToColumnsParams(ActionParams):
    delimiter: str = Field(default=",", min_length=1)
    destination: CellAddress | None = None
    force_overwrite: bool = False
    trim: bool = True


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "insertRows": InsertParams,
    "insertColumns": InsertParams,
    "deleteRows": EmptyParams,
    "deleteColumns": EmptyParams,
    "mergeCells": MergeCellsParams,
    "unmergeCells": EmptyParams,
    "findReplace": FindReplaceParams,
    "textToColumns": TextToColumnsParams,
}
