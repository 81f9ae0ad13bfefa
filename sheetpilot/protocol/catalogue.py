"""Protocol layer — The built-in catalogue of action schemas.

Ninety action kinds in sixteen families.  Each entry states the API level
the action needs, its entity role, what its target addresses, and how it
behaves on a protected sheet.
"""

from __future__ import annotations

from typing import Any

from sheetpilot.protocol import constants as api
from sheetpilot.protocol.models import EntityRole
from sheetpilot.protocol.params import FAMILY_PARAMS
from sheetpilot.protocol.schema import ActionSchema, EntityKind, TargetKind

CREATES = EntityRole.CREATES
MUTATES = EntityRole.MUTATES
DELETES = EntityRole.DELETES
READS = EntityRole.READS

RANGE = TargetKind.RANGE
CELL = TargetKind.CELL
SHEET = TargetKind.SHEET
ENTITY = TargetKind.ENTITY


def _family(family_id: str, entries: list[tuple[str, EntityRole, TargetKind, str, dict[str, Any]]],
            **shared: Any) -> list[ActionSchema]:
    params = FAMILY_PARAMS[family_id]
    schemas = []
    for kind, role, target, level, extra in entries:
        options = {**shared, **extra}
        schemas.append(
            ActionSchema(
                kind=kind,
                family_id=family_id,
                params_model=params[kind],
                min_api_level=level,
                entity_role=role,
                target_kind=target,
                **options,
            )
        )
    return schemas


_RANGE = _family("range", [
    ("formula", MUTATES, RANGE, api.API_BASE, {"description": "Write a formula, adjusting relative references per cell."}),
    ("values", MUTATES, RANGE, api.API_BASE, {"description": "Write literal values."}),
    ("format", MUTATES, RANGE, api.API_BASE, {"protection_option": "format_cells"}),
    ("validation", MUTATES, RANGE, api.API_DATA_VALIDATION, {"range_params": ("source",)}),
    ("sort", MUTATES, RANGE, api.API_SORT, {"contiguous_target": True, "protection_option": "sort"}),
    ("autofill", MUTATES, RANGE, api.API_RANGE_OPS, {"contiguous_target": True, "range_params": ("source",)}),
    ("copy", MUTATES, RANGE, api.API_RANGE_OPS, {"contiguous_target": True, "range_params": ("source",)}),
    ("copyValues", MUTATES, RANGE, api.API_RANGE_OPS, {"contiguous_target": True, "range_params": ("source",)}),
    ("filter", MUTATES, RANGE, api.API_RANGE_OPS, {"contiguous_target": True, "protection_option": "auto_filter"}),
    ("clearFilter", MUTATES, SHEET, api.API_RANGE_OPS, {
        "entity_kind": EntityKind.SHEET, "target_required": False, "protection_option": "auto_filter",
    }),
    ("removeDuplicates", MUTATES, RANGE, api.API_RANGE_OPS, {"contiguous_target": True}),
])

_CONDITIONAL = _family("conditional_format", [
    ("conditionalFormat", MUTATES, RANGE, api.API_CONDITIONAL_FORMAT, {}),
    ("clearFormat", MUTATES, RANGE, api.API_CONDITIONAL_FORMAT, {}),
], protection_option="format_cells")

_CHARTS = _family("charts", [
    ("chart", CREATES, RANGE, api.API_BASE, {}),
    ("pivotChart", CREATES, RANGE, api.API_BASE, {"description": "Aggregate a column by a category and chart the result."}),
], entity_kind=EntityKind.CHART, name_param="name", contiguous_target=True,
   protection_option="edit_objects")

_WORKSHEETS = _family("worksheets", [
    ("sheet", CREATES, SHEET, api.API_BASE, {"workbook_structure": True, "description": "Add a worksheet."}),
    ("renameSheet", MUTATES, SHEET, api.API_BASE, {"workbook_structure": True, "renames_param": "new_name"}),
    ("moveSheet", MUTATES, SHEET, api.API_BASE, {"workbook_structure": True}),
    ("hideSheet", MUTATES, SHEET, api.API_BASE, {"workbook_structure": True}),
    ("unhideSheet", MUTATES, SHEET, api.API_BASE, {"workbook_structure": True}),
    ("freezePanes", MUTATES, SHEET, api.API_WINDOW, {"target_required": False}),
    ("unfreezePane", MUTATES, SHEET, api.API_WINDOW, {"target_required": False}),
    ("setZoom", MUTATES, SHEET, api.API_WINDOW, {"target_required": False}),
    ("splitPane", MUTATES, SHEET, api.API_WINDOW, {"target_required": False}),
    ("createView", CREATES, ENTITY, api.API_SHEET_VIEWS, {"entity_kind": EntityKind.VIEW}),
], entity_kind=EntityKind.SHEET, protection_exempt=True)

_TABLES = _family("tables", [
    ("createTable", CREATES, RANGE, api.API_BASE, {"contiguous_target": True, "name_param": "name"}),
    ("styleTable", MUTATES, ENTITY, api.API_BASE, {}),
    ("addTableRow", MUTATES, ENTITY, api.API_BASE, {}),
    ("addTableColumn", MUTATES, ENTITY, api.API_BASE, {}),
    ("resizeTable", MUTATES, ENTITY, api.API_TABLE_RESIZE, {"range_params": ("new_range",)}),
    ("convertToRange", DELETES, ENTITY, api.API_BASE, {}),
    ("toggleTableTotals", MUTATES, ENTITY, api.API_TABLE_TOTALS, {}),
], entity_kind=EntityKind.TABLE)

_ROWS_COLUMNS = _family("rows_columns", [
    ("insertRows", MUTATES, TargetKind.ROWS, api.API_BASE, {"protection_option": "insert_rows"}),
    ("insertColumns", MUTATES, TargetKind.COLUMNS, api.API_BASE, {"protection_option": "insert_columns"}),
    ("deleteRows", MUTATES, TargetKind.ROWS, api.API_BASE, {"protection_option": "delete_rows"}),
    ("deleteColumns", MUTATES, TargetKind.COLUMNS, api.API_BASE, {"protection_option": "delete_columns"}),
    ("mergeCells", MUTATES, RANGE, api.API_MERGE, {"contiguous_target": True, "multi_cell_target": True}),
    ("unmergeCells", MUTATES, RANGE, api.API_MERGE, {"contiguous_target": True}),
    ("findReplace", MUTATES, RANGE, api.API_RANGE_OPS, {"target_required": False}),
    ("textToColumns", MUTATES, RANGE, api.API_BASE, {"contiguous_target": True, "single_column_target": True}),
])

_PIVOTS = _family("pivots", [
    ("createPivotTable", CREATES, TargetKind.SOURCE, api.API_PIVOTS, {"contiguous_target": True, "name_param": "name"}),
    ("addPivotField", MUTATES, ENTITY, api.API_PIVOTS, {}),
    ("configurePivotLayout", MUTATES, ENTITY, api.API_PIVOTS, {}),
    ("refreshPivotTable", MUTATES, ENTITY, api.API_PIVOTS, {"target_required": False}),
    ("deletePivotTable", DELETES, ENTITY, api.API_PIVOTS, {}),
], entity_kind=EntityKind.PIVOT_TABLE, protection_option="pivot_tables")

_SLICERS = _family("slicers", [
    ("createSlicer", CREATES, TargetKind.SLICER_SOURCE, api.API_SLICERS, {"name_param": "name"}),
    ("configureSlicer", MUTATES, ENTITY, api.API_SLICERS, {}),
    ("connectSlicerToTable", MUTATES, ENTITY, api.API_SLICERS, {"reference_params": (("table", EntityKind.TABLE),)}),
    ("connectSlicerToPivot", MUTATES, ENTITY, api.API_SLICERS, {"reference_params": (("pivot", EntityKind.PIVOT_TABLE),)}),
    ("deleteSlicer", DELETES, ENTITY, api.API_SLICERS, {}),
], entity_kind=EntityKind.SLICER, protection_option="edit_objects")

_NAMED_RANGES = _family("named_ranges", [
    ("createNamedRange", CREATES, ENTITY, api.API_NAMED_RANGES, {"range_params": ("reference",), "sheet_params": ("scope",)}),
    ("deleteNamedRange", DELETES, ENTITY, api.API_NAMED_RANGES, {}),
    ("updateNamedRange", MUTATES, ENTITY, api.API_NAMED_RANGES, {"range_params": ("reference",)}),
    ("listNamedRanges", READS, TargetKind.NONE, api.API_NAMED_RANGES, {"target_required": False}),
], entity_kind=EntityKind.NAMED_RANGE, protection_exempt=True)

_PROTECTION = _family("protection", [
    ("protectWorksheet", MUTATES, SHEET, api.API_PROTECTION, {"entity_kind": EntityKind.SHEET, "target_required": False}),
    ("unprotectWorksheet", MUTATES, SHEET, api.API_PROTECTION, {"entity_kind": EntityKind.SHEET, "target_required": False}),
    ("protectRange", MUTATES, RANGE, api.API_PROTECTION, {"description": "Mark cells locked."}),
    ("unprotectRange", MUTATES, RANGE, api.API_PROTECTION, {"description": "Mark cells unlocked."}),
    ("protectWorkbook", MUTATES, TargetKind.NONE, api.API_WORKBOOK_PROTECTION, {"target_required": False}),
    ("unprotectWorkbook", MUTATES, TargetKind.NONE, api.API_WORKBOOK_PROTECTION, {"target_required": False}),
], protection_exempt=True)

_SHAPES = _family("shapes", [
    ("insertShape", CREATES, SHEET, api.API_SHAPES, {"target_required": False, "name_param": "name"}),
    ("insertImage", CREATES, SHEET, api.API_SHAPES, {"target_required": False, "name_param": "name"}),
    ("insertTextBox", CREATES, SHEET, api.API_SHAPES, {"target_required": False, "name_param": "name"}),
    ("formatShape", MUTATES, ENTITY, api.API_SHAPES, {}),
    ("deleteShape", DELETES, ENTITY, api.API_SHAPES, {}),
    ("groupShapes", CREATES, SHEET, api.API_SHAPES, {
        "target_required": False, "name_param": "name",
        "reference_params": (("shapes", EntityKind.SHAPE),),
    }),
    ("arrangeShapes", MUTATES, ENTITY, api.API_SHAPES, {}),
    ("ungroupShapes", DELETES, ENTITY, api.API_SHAPES, {}),
], entity_kind=EntityKind.SHAPE, protection_option="edit_objects")

_COMMENTS = _family("comments", [
    ("addComment", CREATES, CELL, api.API_COMMENTS, {"entity_kind": EntityKind.COMMENT}),
    ("addNote", CREATES, CELL, api.API_NOTES, {"entity_kind": EntityKind.NOTE}),
    ("editComment", MUTATES, CELL, api.API_COMMENTS, {"entity_kind": EntityKind.COMMENT}),
    ("editNote", MUTATES, CELL, api.API_NOTES, {"entity_kind": EntityKind.NOTE}),
    ("deleteComment", DELETES, CELL, api.API_COMMENTS, {"entity_kind": EntityKind.COMMENT}),
    ("deleteNote", DELETES, CELL, api.API_NOTES, {"entity_kind": EntityKind.NOTE}),
    ("replyToComment", MUTATES, CELL, api.API_COMMENTS, {"entity_kind": EntityKind.COMMENT}),
    ("resolveComment", MUTATES, CELL, api.API_COMMENTS, {"entity_kind": EntityKind.COMMENT}),
], protection_option="edit_objects")

_SPARKLINES = _family("sparklines", [
    ("createSparkline", CREATES, RANGE, api.API_SPARKLINES, {
        "contiguous_target": True, "name_param": "name", "range_params": ("source_data",),
    }),
    ("configureSparkline", MUTATES, ENTITY, api.API_SPARKLINES, {}),
    ("deleteSparkline", DELETES, ENTITY, api.API_SPARKLINES, {}),
], entity_kind=EntityKind.SPARKLINE, protection_option="edit_objects")

_PAGE_SETUP = _family("page_setup", [
    ("setPageSetup", MUTATES, SHEET, api.API_PAGE_LAYOUT, {}),
    ("setPageMargins", MUTATES, SHEET, api.API_PAGE_LAYOUT, {}),
    ("setPageOrientation", MUTATES, SHEET, api.API_PAGE_LAYOUT, {}),
    ("setPrintArea", MUTATES, RANGE, api.API_PAGE_LAYOUT, {"target_required": True, "entity_kind": None}),
    ("setHeaderFooter", MUTATES, SHEET, api.API_PAGE_LAYOUT, {}),
    ("setPageBreaks", MUTATES, SHEET, api.API_PAGE_LAYOUT, {}),
], entity_kind=EntityKind.SHEET, target_required=False, protection_exempt=True)

_DATA_TYPES = _family("data_types", [
    ("insertDataType", CREATES, CELL, api.API_DATA_TYPES, {}),
    ("refreshDataType", MUTATES, CELL, api.API_DATA_TYPES, {}),
], entity_kind=EntityKind.DATA_TYPE)

_HYPERLINKS = _family("hyperlinks", [
    ("addHyperlink", CREATES, CELL, api.API_HYPERLINKS, {"range_params": ("document_reference",)}),
    ("removeHyperlink", DELETES, CELL, api.API_HYPERLINKS, {}),
    ("editHyperlink", MUTATES, CELL, api.API_HYPERLINKS, {"range_params": ("document_reference",)}),
], entity_kind=EntityKind.HYPERLINK, protection_option="insert_hyperlinks")

CATALOGUE: list[ActionSchema] = [
    *_RANGE,
    *_CONDITIONAL,
    *_CHARTS,
    *_WORKSHEETS,
    *_TABLES,
    *_ROWS_COLUMNS,
    *_PIVOTS,
    *_SLICERS,
    *_NAMED_RANGES,
    *_PROTECTION,
    *_SHAPES,
    *_COMMENTS,
    *_SPARKLINES,
    *_PAGE_SETUP,
    *_DATA_TYPES,
    *_HYPERLINKS,
]
