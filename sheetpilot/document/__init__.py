"""Document layer — the capability surface mutators drive, and its implementations."""

from sheetpilot.document.base import (
    ChartInfo,
    CommentInfo,
    DocumentCapabilitySnapshot,
    DocumentHandle,
    HyperlinkInfo,
    NamedRangeInfo,
    PivotInfo,
    ShapeInfo,
    SheetProtection,
    SlicerInfo,
    SparklineInfo,
    TableInfo,
)
from sheetpilot.document.memory import InMemoryWorkbook
from sheetpilot.document.xlsx import load_workbook, save_workbook

__all__ = [
    "ChartInfo",
    "CommentInfo",
    "DocumentCapabilitySnapshot",
    "DocumentHandle",
    "HyperlinkInfo",
    "InMemoryWorkbook",
    "NamedRangeInfo",
    "PivotInfo",
    "ShapeInfo",
    "SheetProtection",
    "SlicerInfo",
    "SparklineInfo",
    "TableInfo",
    "load_workbook",
    "save_workbook",
]
