"""Protocol layer — A1 reference parsing.

Addresses are parsed into ``CellRange`` values (1-based, inclusive bounds).
Whole-row spans (``5:7``) and whole-column spans (``C:E``) are represented as
ranges that run to the sheet limits.  A comma separates the areas of a
multi-area (non-contiguous) reference.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterator

MAX_ROWS = 1_048_576
MAX_COLUMNS = 16_384

_CELL_RE = re.compile(r"^\$?([A-Za-z]{1,3})\$?(\d{1,7})$")
_ROW_RE = re.compile(r"^\$?(\d{1,7})$")
_COLUMN_RE = re.compile(r"^\$?([A-Za-z]{1,3})$")
_R1C1_RE = re.compile(r"^(R\d*C\d*|R\d*|C\d*)$", re.IGNORECASE)
_FORMULA_REF_RE = re.compile(
    r"(?<![A-Za-z0-9_$.])(\$?)([A-Z]{1,3})(\$?)(\d{1,7})(?![A-Za-z0-9_(])"
)


class RangeSyntaxError(ValueError):
    """The text is not a valid A1 reference."""


def column_index(letters: str) -> int:
    """``"A"`` -> 1, ``"AA"`` -> 27."""
    index = 0
    for char in letters.upper():
        if not "A" <= char <= "Z":
            raise RangeSyntaxError(f"Invalid column letters: {letters!r}")
        index = index * 26 + (ord(char) - ord("A") + 1)
    if not 1 <= index <= MAX_COLUMNS:
        raise RangeSyntaxError(f"Column out of range: {letters!r}")
    return index


def column_letter(index: int) -> str:
    if not 1 <= index <= MAX_COLUMNS:
        raise RangeSyntaxError(f"Column index out of range: {index}")
    letters = ""
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def format_cell(row: int, column: int) -> str:
    return f"{column_letter(column)}{row}"


def _row_number(text: str) -> int:
    row = int(text)
    if not 1 <= row <= MAX_ROWS:
        raise RangeSyntaxError(f"Row out of range: {text!r}")
    return row


def quote_sheet(sheet: str) -> str:
    if re.fullmatch(r"[A-Za-z_][A-Za-z0-9_.]*", sheet):
        return sheet
    return "'" + sheet.replace("'", "''") + "'"


@dataclass(frozen=True)
class CellRange:
    top: int
    left: int
    bottom: int
    right: int
    sheet: str | None = None

    @property
    def row_count(self) -> int:
        return self.bottom - self.top + 1

    @property
    def column_count(self) -> int:
        return self.right - self.left + 1

    @property
    def size(self) -> int:
        return self.row_count * self.column_count

    @property
    def is_single_cell(self) -> bool:
        return self.top == self.bottom and self.left == self.right

    @property
    def is_whole_rows(self) -> bool:
        return self.left == 1 and self.right == MAX_COLUMNS

    @property
    def is_whole_columns(self) -> bool:
        return self.top == 1 and self.bottom == MAX_ROWS

    @property
    def address(self) -> str:
        """Sheet-less address such as ``A1:C10``, ``5:7`` or ``C:E``."""
        if self.is_whole_rows and not self.is_whole_columns:
            return f"{self.top}:{self.bottom}"
        if self.is_whole_columns and not self.is_whole_rows:
            return f"{column_letter(self.left)}:{column_letter(self.right)}"
        start = format_cell(self.top, self.left)
        if self.is_single_cell:
            return start
        return f"{start}:{format_cell(self.bottom, self.right)}"

    @property
    def qualified(self) -> str:
        if self.sheet is None:
            return self.address
        return f"{quote_sheet(self.sheet)}!{self.address}"

    def with_sheet(self, sheet: str | None) -> "CellRange":
        return replace(self, sheet=sheet)

    def top_left(self) -> "CellRange":
        return CellRange(self.top, self.left, self.top, self.left, self.sheet)

    def resized(self, rows: int, columns: int) -> "CellRange":
        """Anchor at the top-left corner and span *rows* x *columns*."""
        return CellRange(
            self.top, self.left, self.top + rows - 1, self.left + columns - 1, self.sheet
        )

    def offset(self, rows: int = 0, columns: int = 0) -> "CellRange":
        return CellRange(
            self.top + rows, self.left + columns,
            self.bottom + rows, self.right + columns, self.sheet,
        )

    def contains(self, row: int, column: int) -> bool:
        return self.top <= row <= self.bottom and self.left <= column <= self.right

    def overlaps(self, other: "CellRange") -> bool:
        return not (
            other.left > self.right
            or other.right < self.left
            or other.top > self.bottom
            or other.bottom < self.top
        )

    def cells(self) -> Iterator[tuple[int, int]]:
        for row in range(self.top, self.bottom + 1):
            for column in range(self.left, self.right + 1):
                yield row, column

    def __str__(self) -> str:
        return self.qualified


def split_sheet(text: str) -> tuple[str | None, str]:
    """Split ``'My Sheet'!A1`` into ``("My Sheet", "A1")``."""
    text = text.strip()
    if "!" not in text:
        return None, text
    sheet, address = text.rsplit("!", 1)
    sheet = sheet.strip()
    if len(sheet) >= 2 and sheet[0] == "'" and sheet[-1] == "'":
        sheet = sheet[1:-1].replace("''", "'")
    if not sheet:
        raise RangeSyntaxError(f"Empty sheet name in reference {text!r}")
    return sheet, address.strip()


def parse_range(text: str) -> CellRange:
    """Parse a single-area reference (cell, rectangle, row span or column span)."""
    if not isinstance(text, str) or not text.strip():
        raise RangeSyntaxError("Reference must be a non-empty string")
    sheet, address = split_sheet(text)
    if "," in address:
        raise RangeSyntaxError(f"{text!r} is a multi-area reference")
    parts = address.split(":")
    if len(parts) > 2 or not all(parts):
        raise RangeSyntaxError(f"Invalid reference: {text!r}")

    if len(parts) == 1:
        match = _CELL_RE.match(parts[0])
        if not match:
            raise RangeSyntaxError(f"Invalid cell reference: {text!r}")
        column = column_index(match.group(1))
        row = _row_number(match.group(2))
        return CellRange(row, column, row, column, sheet)

    first, second = parts
    cell_a, cell_b = _CELL_RE.match(first), _CELL_RE.match(second)
    if cell_a and cell_b:
        r1, c1 = _row_number(cell_a.group(2)), column_index(cell_a.group(1))
        r2, c2 = _row_number(cell_b.group(2)), column_index(cell_b.group(1))
        return CellRange(min(r1, r2), min(c1, c2), max(r1, r2), max(c1, c2), sheet)
    row_a, row_b = _ROW_RE.match(first), _ROW_RE.match(second)
    if row_a and row_b:
        r1, r2 = _row_number(row_a.group(1)), _row_number(row_b.group(1))
        return CellRange(min(r1, r2), 1, max(r1, r2), MAX_COLUMNS, sheet)
    col_a, col_b = _COLUMN_RE.match(first), _COLUMN_RE.match(second)
    if col_a and col_b:
        c1, c2 = column_index(col_a.group(1)), column_index(col_b.group(1))
        return CellRange(1, min(c1, c2), MAX_ROWS, max(c1, c2), sheet)
    raise RangeSyntaxError(f"Invalid reference: {text!r}")


def parse_areas(text: str) -> list[CellRange]:
    """Parse a possibly multi-area reference such as ``A1:B2,D1:E2``."""
    if not isinstance(text, str) or not text.strip():
        raise RangeSyntaxError("Reference must be a non-empty string")
    sheet, _ = split_sheet(text.split(",", 1)[0])
    areas = []
    for chunk in text.split(","):
        area = parse_range(chunk)
        if area.sheet is None:
            area = area.with_sheet(sheet)
        areas.append(area)
    return areas


def parse_cell(text: str) -> CellRange:
    area = parse_range(text)
    if not area.is_single_cell:
        raise RangeSyntaxError(f"{text!r} is not a single cell")
    return area


def parse_rows(text: str) -> CellRange:
    """Parse ``5`` or ``5:7`` (optionally sheet-qualified) as a row span."""
    sheet, address = split_sheet(text)
    parts = address.split(":")
    if len(parts) > 2 or not all(_ROW_RE.match(p) for p in parts):
        raise RangeSyntaxError(f"Invalid row reference: {text!r}")
    rows = [_row_number(_ROW_RE.match(p).group(1)) for p in parts]
    return CellRange(min(rows), 1, max(rows), MAX_COLUMNS, sheet)


def parse_columns(text: str) -> CellRange:
    """Parse ``C`` or ``C:E`` (optionally sheet-qualified) as a column span."""
    sheet, address = split_sheet(text)
    parts = address.split(":")
    if len(parts) > 2 or not all(_COLUMN_RE.match(p) for p in parts):
        raise RangeSyntaxError(f"Invalid column reference: {text!r}")
    columns = [column_index(_COLUMN_RE.match(p).group(1)) for p in parts]
    return CellRange(1, min(columns), MAX_ROWS, max(columns), sheet)


def is_range_reference(text: str) -> bool:
    try:
        parse_areas(text)
    except RangeSyntaxError:
        return False
    return True


def looks_like_cell_reference(name: str) -> bool:
    """True when *name* would be read by Excel as a cell address (A1 or R1C1)."""
    if _R1C1_RE.match(name):
        return True
    match = _CELL_RE.match(name)
    if not match:
        return False
    try:
        column_index(match.group(1))
        _row_number(match.group(2))
    except RangeSyntaxError:
        return False
    return True


def shift_formula(formula: str, rows: int, columns: int) -> str:
    """Move relative A1 references in *formula* by the given offset.

    Absolute parts (``$A``, ``$1``) and text inside string literals are left
    untouched.
    """
    if not formula.startswith("=") or (rows == 0 and columns == 0):
        return formula

    def _shift(match: re.Match[str]) -> str:
        col_abs, letters, row_abs, digits = match.groups()
        try:
            column = column_index(letters)
        except RangeSyntaxError:
            return match.group(0)
        row = int(digits)
        if not col_abs:
            column = max(1, column + columns)
        if not row_abs:
            row = max(1, row + rows)
        return f"{col_abs}{column_letter(column)}{row_abs}{row}"

    pieces = formula.split('"')
    for i in range(0, len(pieces), 2):
        pieces[i] = _FORMULA_REF_RE.sub(_shift, pieces[i])
    return '"'.join(pieces)


def anchor_name(cell: CellRange) -> str:
    """Entity name for things anchored to one cell (comments, notes, links)."""
    return f"{cell.sheet}!{cell.address}" if cell.sheet else cell.address
