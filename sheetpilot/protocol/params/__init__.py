"""Typed parameter models for every action kind, grouped by family."""

from sheetpilot.protocol.params import (
    charts,
    comments,
    conditional_format,
    data_types,
    hyperlinks,
    named_ranges,
    page_setup,
    pivots,
    protection,
    range_ops,
    rows_columns,
    shapes,
    slicers,
    sparklines,
    tables,
    worksheets,
)
from sheetpilot.protocol.params.base import ActionParams, EmptyParams

FAMILY_PARAMS: dict[str, dict[str, type[ActionParams]]] = {
    "range": range_ops.PARAMS_MAP,
    "conditional_format": conditional_format.PARAMS_MAP,
    "charts": charts.PARAMS_MAP,
    "worksheets": worksheets.PARAMS_MAP,
    "tables": tables.PARAMS_MAP,
    "rows_columns": rows_columns.PARAMS_MAP,
    "pivots": pivots.PARAMS_MAP,
    "slicers": slicers.PARAMS_MAP,
    "named_ranges": named_ranges.PARAMS_MAP,
    "protection": protection.PARAMS_MAP,
    "shapes": shapes.PARAMS_MAP,
    "comments": comments.PARAMS_MAP,
    "sparklines": sparklines.PARAMS_MAP,
    "page_setup": page_setup.PARAMS_MAP,
    "data_types": data_types.PARAMS_MAP,
    "hyperlinks": hyperlinks.PARAMS_MAP,
}

ALL_PARAMS: dict[str, type[ActionParams]] = {
    kind: model for family in FAMILY_PARAMS.values() for kind, model in family.items()
}

__all__ = ["ALL_PARAMS", "FAMILY_PARAMS", "ActionParams", "EmptyParams"]
