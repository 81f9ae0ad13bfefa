"""Parameter models for the ``data_types`` family (entity values in cells)."""

from __future__ import annotations

from pydantic import Field

from sheetpilot.protocol.constants import MAX_ENTITY_PROPERTIES, MIN_ENTITY_PROPERTIES
from sheetpilot.protocol.params.base import ActionParams, CellValue, Text


class InsertDataTypeParams(ActionParams):
    text: Text
    properties: dict[str, CellValue] = Field(
        min_length=MIN_ENTITY_PROPERTIES, max_length=MAX_ENTITY_PROPERTIES
    )


class RefreshDataTypeParams(ActionParams):
    text: Text | None = None
    properties: dict[str, CellValue] | None = Field(
        default=None, min_length=MIN_ENTITY_PROPERTIES, max_length=MAX_ENTITY_PROPERTIES
    )


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "insertDataType": InsertDataTypeParams,
    "refreshDataType": RefreshDataTypeParams,
}
