"""Protocol layer — Static vocabularies and bounds shared by schemas and mutators."""

from __future__ import annotations

MAX_NAME_LENGTH = 255
MAX_SHEET_NAME_LENGTH = 31
SHEET_NAME_FORBIDDEN = frozenset("[]:*?/\\")

MIN_ZOOM = 10
MAX_ZOOM = 400

MIN_ENTITY_PROPERTIES = 1
MAX_ENTITY_PROPERTIES = 10

DEFAULT_TABLE_STYLE = "TableStyleMedium2"
TABLE_STYLES: frozenset[str] = frozenset(
    [f"TableStyleLight{i}" for i in range(1, 22)]
    + [f"TableStyleMedium{i}" for i in range(1, 29)]
    + [f"TableStyleDark{i}" for i in range(1, 12)]
)

DEFAULT_SLICER_STYLE = "SlicerStyleLight1"
SLICER_STYLES: frozenset[str] = frozenset(
    [f"SlicerStyleLight{i}" for i in range(1, 7)]
    + [f"SlicerStyleDark{i}" for i in range(1, 7)]
)

NAMED_COLORS = frozenset(
    {
        "black", "white", "red", "green", "blue", "yellow", "orange", "purple",
        "gray", "grey", "pink", "brown", "cyan", "magenta", "navy", "teal",
        "maroon", "olive", "silver", "lime",
    }
)

# Entity API requirement sets (Excel JavaScript API style).
API_BASE = "1.1"
API_SORT = "1.2"
API_MERGE = "1.2"
API_PROTECTION = "1.2"
API_TABLE_TOTALS = "1.3"
API_NAMED_RANGES = "1.4"
API_CONDITIONAL_FORMAT = "1.6"
API_WINDOW = "1.7"
API_HYPERLINKS = "1.7"
API_WORKBOOK_PROTECTION = "1.7"
API_PIVOTS = "1.8"
API_DATA_VALIDATION = "1.8"
API_RANGE_OPS = "1.9"
API_SHAPES = "1.9"
API_PAGE_LAYOUT = "1.9"
API_COMMENTS = "1.10"
API_SLICERS = "1.10"
API_SPARKLINES = "1.12"
API_SHEET_VIEWS = "1.13"
API_TABLE_RESIZE = "1.13"
API_DATA_TYPES = "1.16"
API_NOTES = "1.18"
