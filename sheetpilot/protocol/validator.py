"""Protocol layer — Action validator.

Checks one descriptor against its schema: target syntax (per target kind),
target shape constraints, and parameters via the schema's pydantic model in
strict mode.  The validator never raises for bad input; it returns a
``rejected`` ``ValidatedAction`` with ``InvalidParameter`` and the offending
field name.
"""

from __future__ import annotations

from pydantic import ValidationError

from sheetpilot.logging import get_logger
from sheetpilot.protocol.models import ActionDescriptor, ErrorKind, ValidatedAction
from sheetpilot.protocol.params.base import check_defined_name, check_sheet_name
from sheetpilot.protocol.ranges import (
    RangeSyntaxError,
    looks_like_cell_reference,
    parse_areas,
    parse_cell,
    parse_columns,
    parse_rows,
)
from sheetpilot.protocol.schema import ActionSchema, EntityKind, TargetKind

log = get_logger(__name__)

_STRICT_NAME_KINDS = frozenset(
    {
        EntityKind.NAMED_RANGE,
        EntityKind.TABLE,
        EntityKind.PIVOT_TABLE,
        EntityKind.SLICER,
        EntityKind.SPARKLINE,
    }
)


class _TargetProblem(ValueError):
    pass


class ActionValidator:
    """Schema-level validation of a single descriptor."""

    def validate(
        self, index: int, descriptor: ActionDescriptor, schema: ActionSchema
    ) -> ValidatedAction:
        try:
            self._check_target(descriptor.target, schema)
        except _TargetProblem as exc:
            log.debug("target_rejected", index=index, kind=schema.kind, reason=str(exc))
            return ValidatedAction.rejected(
                index, descriptor, ErrorKind.INVALID_PARAMETER, str(exc), "target", schema
            )

        try:
            params = schema.params_model.model_validate(descriptor.parameters)
        except ValidationError as exc:
            error = exc.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or "parameters"
            message = error["msg"]
            if exc.error_count() > 1:
                message = f"{message} (+{exc.error_count() - 1} more)"
            log.debug("parameters_rejected", index=index, kind=schema.kind, field=field)
            return ValidatedAction.rejected(
                index, descriptor, ErrorKind.INVALID_PARAMETER, message, field, schema
            )

        return ValidatedAction.ready(index, descriptor, schema, params)

    # ------------------------------------------------------------------
    # Target checks
    # ------------------------------------------------------------------

    def _check_target(self, target: str | None, schema: ActionSchema) -> None:
        if target is None:
            if schema.target_required and schema.target_kind != TargetKind.NONE:
                raise _TargetProblem(f"{schema.kind} requires a target")
            return

        kind = schema.target_kind
        try:
            if kind == TargetKind.RANGE:
                self._check_range(target, schema)
            elif kind == TargetKind.CELL:
                parse_cell(target)
            elif kind == TargetKind.ROWS:
                parse_rows(target)
            elif kind == TargetKind.COLUMNS:
                parse_columns(target)
            elif kind == TargetKind.SHEET:
                check_sheet_name(target)
            elif kind == TargetKind.ENTITY:
                self._check_entity_name(target, schema.entity_kind)
            elif kind == TargetKind.SOURCE:
                if any(ch in target for ch in ":!$") or _starts_like_cell(target):
                    self._check_range(target, schema)
                else:
                    check_defined_name(target)
            elif kind == TargetKind.SLICER_SOURCE:
                check_defined_name(target)
        except (RangeSyntaxError, ValueError) as exc:
            raise _TargetProblem(str(exc)) from exc

    def _check_range(self, target: str, schema: ActionSchema) -> None:
        areas = parse_areas(target)
        if schema.contiguous_target and len(areas) > 1:
            raise _TargetProblem(f"{schema.kind} needs a single contiguous range, got {target!r}")
        area = areas[0]
        if schema.multi_cell_target and area.is_single_cell:
            raise _TargetProblem(f"{schema.kind} needs more than one cell")
        if schema.single_column_target and area.column_count != 1:
            raise _TargetProblem(f"{schema.kind} works on a single column")

    def _check_entity_name(self, name: str, entity_kind: EntityKind | None) -> None:
        if entity_kind in _STRICT_NAME_KINDS:
            check_defined_name(name)
        elif not name.strip() or len(name) > 255:
            raise _TargetProblem("entity names must be 1-255 characters")


def _starts_like_cell(text: str) -> bool:
    return looks_like_cell_reference(text.split(",", 1)[0])
