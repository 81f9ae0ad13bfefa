"""Document layer — xlsx bridge.

Loads an ``.xlsx`` file into an :class:`InMemoryWorkbook` and writes one
back, using openpyxl.  The bridge covers what openpyxl can represent:
cell values and formulas, basic formatting, merges, tables, defined names,
notes, hyperlinks, data validation, sheet and workbook protection, views
and page layout.  Pivots, slicers, charts, shapes, sparklines, threaded
comments and conditional formats live only in memory; ``save_workbook``
returns the list of such features it had to leave out.
"""

from __future__ import annotations

from copy import copy
from pathlib import Path
from typing import Any

import openpyxl
from openpyxl.comments import Comment
from openpyxl.styles import Alignment, Border, PatternFill, Protection, Side
from openpyxl.workbook.defined_name import DefinedName
from openpyxl.workbook.protection import WorkbookProtection
from openpyxl.worksheet.datavalidation import DataValidation
from openpyxl.worksheet.hyperlink import Hyperlink
from openpyxl.worksheet.pagebreak import Break
from openpyxl.worksheet.table import Table, TableStyleInfo

from sheetpilot.document.base import CommentInfo, HyperlinkInfo, NamedRangeInfo, SheetProtection, TableInfo
from sheetpilot.document.memory import InMemoryWorkbook, Worksheet
from sheetpilot.logging import get_logger
from sheetpilot.protocol.ranges import (
    CellRange,
    RangeSyntaxError,
    column_letter,
    format_cell,
    parse_areas,
    parse_cell,
    parse_range,
    split_sheet,
)

log = get_logger(__name__)

# Protection option -> openpyxl SheetProtection attribute (True there means "locked").
_PROTECTION_ATTRS = {
    "format_cells": "formatCells",
    "format_columns": "formatColumns",
    "format_rows": "formatRows",
    "insert_rows": "insertRows",
    "insert_columns": "insertColumns",
    "insert_hyperlinks": "insertHyperlinks",
    "delete_rows": "deleteRows",
    "delete_columns": "deleteColumns",
    "sort": "sort",
    "auto_filter": "autoFilter",
    "pivot_tables": "pivotTables",
    "edit_objects": "objects",
}

_NAMED_COLORS = {
    "black": "000000", "white": "FFFFFF", "red": "FF0000", "green": "008000",
    "blue": "0000FF", "yellow": "FFFF00", "orange": "FFA500", "purple": "800080",
    "gray": "808080", "grey": "808080", "pink": "FFC0CB", "brown": "A52A2A",
    "cyan": "00FFFF", "magenta": "FF00FF", "navy": "000080", "teal": "008080",
    "maroon": "800000", "olive": "808000", "silver": "C0C0C0", "lime": "00FF00",
}

_PAPER_SIZES = {"letter": 1, "tabloid": 3, "legal": 5, "a3": 8, "a4": 9, "a5": 11}

_VALIDATION_TYPES = {"list": "list", "wholeNumber": "whole", "decimal": "decimal", "textLength": "textLength"}


def _argb(color: str) -> str:
    return "FF" + _NAMED_COLORS.get(color, color.lstrip("#")).upper()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_workbook(path: str | Path, api_level: str = "1.18") -> InMemoryWorkbook:
    """Read *path* into a fresh in-memory workbook."""
    wb = openpyxl.load_workbook(path)
    doc = InMemoryWorkbook(sheets=wb.sheetnames, api_level=api_level)

    for xl in wb.worksheets:
        _load_sheet(doc, doc.worksheet(xl.title), xl)

    for name, defined in wb.defined_names.items():
        if name.startswith("_xlnm."):
            continue
        doc.seed_named_range(_named_range(name, defined.attr_text, None))
    for xl in wb.worksheets:
        for name, defined in xl.defined_names.items():
            if name.startswith("_xlnm."):
                continue
            doc.seed_named_range(_named_range(name, defined.attr_text, xl.title))

    if wb.security is not None and wb.security.lockStructure:
        doc.seed_workbook_protection(wb.security.workbookPassword)
    active = wb.active
    if active is not None and active.sheet_state == "visible":
        doc.set_active(active.title)

    log.info("xlsx_loaded", path=str(path), sheets=len(wb.sheetnames), tables=len(doc.tables))
    return doc


def _load_sheet(doc: InMemoryWorkbook, ws: Worksheet, xl: Any) -> None:
    for row in xl.iter_rows():
        for cell in row:
            key = (cell.row, cell.column)
            if cell.value is not None and cell.value != "":
                ws.cells[key] = cell.value
            if cell.comment is not None:
                anchor = CellRange(cell.row, cell.column, cell.row, cell.column, ws.name)
                ws.notes[key] = CommentInfo(anchor, cell.comment.text, cell.comment.author or None)
            if cell.hyperlink is not None:
                ws.hyperlinks[key] = HyperlinkInfo(
                    address=cell.hyperlink.target,
                    document_reference=cell.hyperlink.location,
                    text_to_display=cell.hyperlink.display,
                    screen_tip=cell.hyperlink.tooltip,
                )
            if cell.has_style and cell.protection.locked is False:
                ws.locks.append(
                    (CellRange(cell.row, cell.column, cell.row, cell.column, ws.name), False,
                     bool(cell.protection.hidden))
                )

    ws.visibility = xl.sheet_state
    ws.merges = [parse_range(str(merged)).with_sheet(ws.name) for merged in xl.merged_cells.ranges]
    if xl.freeze_panes:
        anchor = parse_cell(xl.freeze_panes)
        ws.freeze = (anchor.top - 1, anchor.left - 1)
    if xl.sheet_view.zoomScale:
        ws.zoom = int(xl.sheet_view.zoomScale)

    if xl.protection.sheet:
        allowed = frozenset(
            option for option, attr in _PROTECTION_ATTRS.items() if getattr(xl.protection, attr) is False
        )
        ws.protection = SheetProtection(True, allowed, bool(xl.protection.password))
        ws.password_hash = xl.protection.password or None

    if xl.print_area:
        first = xl.print_area.split(",")[0] if isinstance(xl.print_area, str) else xl.print_area[0]
        _, address = split_sheet(first)
        ws.print_area = parse_range(address.replace("$", "")).with_sheet(ws.name)
    ws.row_breaks = {brk.id for brk in xl.row_breaks.brk}
    ws.column_breaks = {brk.id for brk in xl.col_breaks.brk}
    if xl.page_setup.orientation:
        ws.page["orientation"] = xl.page_setup.orientation

    for table in xl.tables.values():
        rng = parse_range(table.ref).with_sheet(ws.name)
        has_headers = table.headerRowCount != 0
        if has_headers:
            headers = [ws.cells.get((rng.top, c)) for c in range(rng.left, rng.right + 1)]
            columns = InMemoryWorkbook.unique_headers([str(h) if h is not None else "" for h in headers])
        else:
            columns = [f"Column{i}" for i in range(1, rng.column_count + 1)]
        doc.seed_table(
            TableInfo(
                name=table.displayName,
                sheet=ws.name,
                range=rng,
                columns=columns,
                has_headers=has_headers,
                style=table.tableStyleInfo.name if table.tableStyleInfo else "TableStyleMedium2",
                show_totals=bool(table.totalsRowCount),
            )
        )


def _named_range(name: str, text: str, scope: str | None) -> NamedRangeInfo:
    text = text.strip()
    if "!" in text:
        try:
            areas = parse_areas(text.replace("$", ""))
        except RangeSyntaxError:
            areas = []
        if areas:
            return NamedRangeInfo(name, reference=",".join(a.qualified for a in areas), scope=scope)
    if text.startswith('"') and text.endswith('"') and len(text) >= 2:
        return NamedRangeInfo(name, value=text[1:-1], scope=scope)
    if text.upper() in ("TRUE", "FALSE"):
        return NamedRangeInfo(name, value=text.upper() == "TRUE", scope=scope)
    try:
        number = float(text)
    except ValueError:
        return NamedRangeInfo(name, formula=f"={text}", scope=scope)
    return NamedRangeInfo(name, value=int(number) if number.is_integer() else number, scope=scope)


# ---------------------------------------------------------------------------
# Saving
# ---------------------------------------------------------------------------


def save_workbook(doc: InMemoryWorkbook, path: str | Path) -> list[str]:
    """Write *doc* to *path*; return the features that could not be written."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for name in doc.sheet_names:
        _save_sheet(doc, doc.worksheet(name), wb.create_sheet(title=name))

    for named in doc.named_ranges:
        attr_text = named.refers_to.removeprefix("=")
        if isinstance(named.value, bool):
            attr_text = "TRUE" if named.value else "FALSE"
        defined = DefinedName(named.name, attr_text=attr_text, comment=named.comment)
        if named.scope is not None:
            wb[named.scope].defined_names[named.name] = defined
        else:
            wb.defined_names[named.name] = defined

    if doc.is_workbook_protected:
        security = WorkbookProtection(lockStructure=True)
        if doc.workbook_password_hash:
            security.set_workbook_password(doc.workbook_password_hash, already_hashed=True)
        wb.security = security

    active = doc.active_sheet_name
    if doc.worksheet(active).visibility == "visible":
        wb.active = wb.sheetnames.index(active)

    skipped = _unsupported(doc)
    if skipped:
        log.warning("xlsx_features_not_persisted", path=str(path), features=skipped)
    wb.save(path)
    log.info("xlsx_saved", path=str(path), sheets=len(doc.sheet_names))
    return skipped


def _save_sheet(doc: InMemoryWorkbook, ws: Worksheet, xl: Any) -> None:
    for (row, column), value in ws.cells.items():
        xl.cell(row=row, column=column, value=value)

    for rng, fmt in ws.formats:
        _apply_format(xl, rng, fmt)
    for rng, locked, hidden in ws.locks:
        for row, column in _bounded_cells(xl, rng):
            xl.cell(row=row, column=column).protection = Protection(locked=locked, hidden=hidden)
    for rng in ws.merges:
        xl.merge_cells(rng.address)
    for rng, rule in ws.validations:
        validation = _validation(rule)
        validation.add(rng.address)
        xl.add_data_validation(validation)

    for key, note in ws.notes.items():
        xl.cell(row=key[0], column=key[1]).comment = Comment(note.content, note.author or "sheetpilot")
    for key, link in ws.hyperlinks.items():
        cell = xl.cell(row=key[0], column=key[1])
        cell.hyperlink = Hyperlink(
            ref=cell.coordinate,
            target=link.address,
            location=link.document_reference,
            tooltip=link.screen_tip,
            display=link.text_to_display,
        )

    for table in doc.tables:
        if table.sheet != ws.name:
            continue
        xl_table = Table(
            displayName=table.name,
            ref=table.range.address,
            headerRowCount=1 if table.has_headers else 0,
            totalsRowCount=1 if table.show_totals else None,
        )
        xl_table.tableStyleInfo = TableStyleInfo(name=table.style, showRowStripes=True)
        xl.add_table(xl_table)

    xl.sheet_state = ws.visibility
    if ws.freeze is not None:
        xl.freeze_panes = format_cell(ws.freeze[0] + 1, ws.freeze[1] + 1)
    if ws.zoom != 100:
        xl.sheet_view.zoomScale = ws.zoom
    if ws.autofilter is not None:
        xl.auto_filter.ref = ws.autofilter[0].address
    for row in ws.hidden_rows:
        xl.row_dimensions[row].hidden = True

    if ws.protection.protected:
        xl.protection.sheet = True
        for option, attr in _PROTECTION_ATTRS.items():
            setattr(xl.protection, attr, option not in ws.protection.allowed)
        if ws.password_hash:
            xl.protection.set_password(ws.password_hash, already_hashed=True)

    if ws.print_area is not None:
        xl.print_area = ws.print_area.address
    for row in sorted(ws.row_breaks):
        xl.row_breaks.append(Break(id=row))
    for column in sorted(ws.column_breaks):
        xl.col_breaks.append(Break(id=column))
    _apply_page(xl, ws.page)


def _bounded_cells(xl: Any, rng: CellRange) -> list[tuple[int, int]]:
    """Cells of *rng* clipped to the sheet's written area."""
    bottom = min(rng.bottom, max(xl.max_row, rng.top))
    right = min(rng.right, max(xl.max_column, rng.left))
    return list(CellRange(rng.top, rng.left, bottom, right).cells())


def _apply_format(xl: Any, rng: CellRange, fmt: dict[str, Any]) -> None:
    if "column_width" in fmt:
        for column in range(rng.left, min(rng.right, xl.max_column) + 1):
            xl.column_dimensions[column_letter(column)].width = fmt["column_width"] / 7
    if "row_height" in fmt:
        for row in range(rng.top, min(rng.bottom, xl.max_row) + 1):
            xl.row_dimensions[row].height = fmt["row_height"]
    for row, column in _bounded_cells(xl, rng):
        cell = xl.cell(row=row, column=column)
        font_changes = {
            key: fmt[src]
            for key, src in (("bold", "bold"), ("italic", "italic"), ("name", "font_name"), ("size", "font_size"))
            if src in fmt
        }
        if fmt.get("underline"):
            font_changes["underline"] = "single"
        if "font_color" in fmt:
            font_changes["color"] = _argb(fmt["font_color"])
        if font_changes:
            font = copy(cell.font)
            for key, value in font_changes.items():
                setattr(font, key, value)
            cell.font = font
        if "fill" in fmt:
            cell.fill = PatternFill("solid", fgColor=_argb(fmt["fill"]))
        if "number_format" in fmt:
            cell.number_format = fmt["number_format"]
        if {"horizontal_alignment", "vertical_alignment", "wrap_text"} & fmt.keys():
            cell.alignment = Alignment(
                horizontal=fmt.get("horizontal_alignment", cell.alignment.horizontal),
                vertical=fmt.get("vertical_alignment", cell.alignment.vertical),
                wrap_text=fmt.get("wrap_text", cell.alignment.wrap_text),
            )
        if fmt.get("borders"):
            side = Side(style="thin")
            cell.border = Border(left=side, right=side, top=side, bottom=side)


def _validation(rule: dict[str, Any]) -> DataValidation:
    kind = _VALIDATION_TYPES[rule.get("type", "list")]
    if kind == "list":
        if "items" in rule:
            formula1 = '"' + ",".join(rule["items"]) + '"'
        else:
            formula1 = "=" + rule["source"]
        validation = DataValidation(type="list", formula1=formula1, allow_blank=rule.get("allow_blank", True))
    else:
        validation = DataValidation(
            type=kind,
            operator=rule.get("operator"),
            formula1=str(rule["minimum"]),
            formula2=str(rule["maximum"]) if "maximum" in rule else None,
            allow_blank=rule.get("allow_blank", True),
        )
    if rule.get("error_message"):
        validation.error = rule["error_message"]
        validation.showErrorMessage = True
    return validation


def _apply_page(xl: Any, page: dict[str, Any]) -> None:
    if "orientation" in page:
        xl.page_setup.orientation = page["orientation"]
    setup = page.get("setup", {})
    if "paper_size" in setup:
        xl.page_setup.paperSize = _PAPER_SIZES[setup["paper_size"]]
    if "scale" in setup:
        xl.page_setup.scale = setup["scale"]
    if "fit_to_pages_wide" in setup or "fit_to_pages_tall" in setup:
        xl.sheet_properties.pageSetUpPr.fitToPage = True
        xl.page_setup.fitToWidth = setup.get("fit_to_pages_wide", 1)
        xl.page_setup.fitToHeight = setup.get("fit_to_pages_tall", 1)
    for key, attr in (
        ("center_horizontally", "horizontalCentered"),
        ("center_vertically", "verticalCentered"),
        ("print_gridlines", "gridLines"),
        ("print_headings", "headings"),
    ):
        if key in setup:
            setattr(xl.print_options, attr, setup[key])
    for key, value in page.get("margins", {}).items():
        setattr(xl.page_margins, key, value)
    header_footer = page.get("header_footer", {})
    for part, target in (("header", xl.oddHeader), ("footer", xl.oddFooter)):
        for section, text in header_footer.get(part, {}).items():
            getattr(target, section).text = text


def _unsupported(doc: InMemoryWorkbook) -> list[str]:
    skipped = []
    counts = {
        "pivot tables": len(doc.pivots),
        "slicers": len(doc.slicers),
        "charts": len(doc.charts),
        "shapes": len(doc.shapes),
        "sparklines": len(doc.sparklines),
        "threaded comments": sum(len(doc.worksheet(n).comments) for n in doc.sheet_names),
        "conditional formats": sum(len(doc.worksheet(n).conditional_formats) for n in doc.sheet_names),
        "data types": sum(len(doc.worksheet(n).entity_values) for n in doc.sheet_names),
    }
    for feature, count in counts.items():
        if count:
            skipped.append(feature)
    return skipped
