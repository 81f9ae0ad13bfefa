"""Parameter models for the ``protection`` family."""

from __future__ import annotations

from sheetpilot.protocol.params.base import ActionParams


class ProtectWorksheetParams(ActionParams):
    password: str | None = None
    allow_format_cells: bool = False
    allow_format_columns: bool = False
    allow_format_rows: bool = False
    allow_insert_rows: bool = False
    allow_insert_columns: bool = False
    allow_insert_hyperlinks: bool = False
    allow_delete_rows: bool = False
    allow_delete_columns: bool = False
    allow_sort: bool = False
    allow_auto_filter: bool = False
    allow_pivot_tables: bool = False
    allow_edit_objects: bool = False

    def allowed_options(self) -> frozenset[str]:
        """Option names (without the ``allow_`` prefix) this protection permits."""
        return frozenset(
            name.removeprefix("allow_")
            for name in type(self).model_fields
            if name.startswith("allow_") and getattr(self, name)
        )


class PasswordParams(ActionParams):
    password: str | None = None


class RangeLockParams(ActionParams):
    hide_formulas: bool = False


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "protectWorksheet": ProtectWorksheetParams,
    "unprotectWorksheet": PasswordParams,
    "protectRange": RangeLockParams,
    "unprotectRange": RangeLockParams,
    "protectWorkbook": PasswordParams,
    "unprotectWorkbook": PasswordParams,
}
