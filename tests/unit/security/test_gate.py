"""Unit tests — CapabilityGate (API level, protection, existence)."""

from __future__ import annotations

from typing import Any

import pytest

from sheetpilot.document.base import DocumentCapabilitySnapshot, SheetProtection
from sheetpilot.protocol.models import ActionDescriptor, ErrorKind
from sheetpilot.protocol.schema import EntityKind, SchemaRegistry
from sheetpilot.security.gate import CapabilityGate


def _snapshot(
    api_level: str = "1.18",
    protected: dict[str, SheetProtection] | None = None,
    workbook_protected: bool = False,
    **entities: dict[str, str | None],
) -> DocumentCapabilitySnapshot:
    sheets = {"Sheet1": SheetProtection(), "Data": SheetProtection()}
    sheets.update(protected or {})
    return DocumentCapabilitySnapshot.build(
        api_level=api_level,
        active_sheet="Sheet1",
        sheets=sheets,
        entities={EntityKind(kind): names for kind, names in entities.items()},
        workbook_protected=workbook_protected,
    )


def _check(
    gate: CapabilityGate,
    registry: SchemaRegistry,
    snapshot: DocumentCapabilitySnapshot,
    kind: str,
    target: str | None = None,
    params: dict[str, Any] | None = None,
    defer_missing: bool = False,
    defer_protection: bool = False,
):
    descriptor = ActionDescriptor(kind=kind, target=target, parameters=params or {})
    schema = registry.get(kind)
    validated = schema.params_model.model_validate(params or {})
    return gate.check(
        schema, descriptor, snapshot, validated,
        defer_missing=defer_missing, defer_protection=defer_protection,
    )


LOCKED = SheetProtection(protected=True)


@pytest.mark.unit
class TestApiLevel:
    def test_below_minimum_denied(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        decision = _check(
            gate, registry, _snapshot(api_level="1.7", table={"Sales": "Sheet1"}),
            "createPivotTable", "Sales", {"name": "P", "destination": "A10"},
        )
        assert not decision.allowed
        assert decision.error_kind == ErrorKind.UNSUPPORTED_API_LEVEL
        assert "1.8" in decision.reason

    def test_levels_compare_numerically(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        # 1.10 is above 1.9 even though it sorts below as text
        decision = _check(
            gate, registry, _snapshot(api_level="1.10", table={"Sales": "Sheet1"}),
            "createSlicer", "Sales", {"sourceType": "table", "field": "Region"},
        )
        assert decision.allowed

    def test_unparseable_level_denies(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        decision = _check(gate, registry, _snapshot(api_level="beta"), "values", "A1", {"values": 1})
        assert decision.error_kind == ErrorKind.UNSUPPORTED_API_LEVEL


@pytest.mark.unit
class TestProtection:
    def test_write_on_protected_sheet_denied(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        snapshot = _snapshot(protected={"Sheet1": LOCKED})
        decision = _check(gate, registry, snapshot, "values", "A1", {"values": 1})
        assert decision.error_kind == ErrorKind.SHEET_PROTECTED
        assert "Sheet1" in decision.reason

    def test_other_sheet_unaffected(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        snapshot = _snapshot(protected={"Sheet1": LOCKED})
        assert _check(gate, registry, snapshot, "values", "Data!A1", {"values": 1}).allowed

    def test_allowed_option_passes(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        protection = SheetProtection(protected=True, allowed=frozenset({"format_cells"}))
        snapshot = _snapshot(protected={"Sheet1": protection})
        assert _check(gate, registry, snapshot, "format", "A1", {"bold": True}).allowed
        assert not _check(gate, registry, snapshot, "values", "A1", {"values": 1}).allowed

    def test_protection_family_is_exempt(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        snapshot = _snapshot(protected={"Sheet1": LOCKED})
        assert _check(gate, registry, snapshot, "unprotectWorksheet", "Sheet1").allowed
        assert _check(gate, registry, snapshot, "protectRange", "A1:A10").allowed

    def test_reads_never_blocked(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        snapshot = _snapshot(protected={"Sheet1": LOCKED}, workbook_protected=True)
        assert _check(gate, registry, snapshot, "listNamedRanges").allowed

    def test_workbook_structure(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        snapshot = _snapshot(workbook_protected=True)
        decision = _check(gate, registry, snapshot, "sheet", "Summary")
        assert decision.error_kind == ErrorKind.SHEET_PROTECTED
        assert "workbook structure" in decision.reason
        assert _check(gate, registry, snapshot, "setZoom", None, {"zoom": 120}).allowed

    def test_entity_on_protected_sheet(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        snapshot = _snapshot(protected={"Data": LOCKED}, table={"Sales": "Data"})
        decision = _check(gate, registry, snapshot, "styleTable", "Sales", {"style": "TableStyleLight2"})
        assert decision.error_kind == ErrorKind.SHEET_PROTECTED

    def test_defer_protection_skips_protection(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        snapshot = _snapshot(protected={"Sheet1": LOCKED}, workbook_protected=True)
        assert _check(gate, registry, snapshot, "values", "A1", {"values": 1}, defer_protection=True).allowed
        assert _check(gate, registry, snapshot, "sheet", "Summary", defer_protection=True).allowed

    def test_defer_protection_keeps_api_level(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        snapshot = _snapshot(api_level="1.1", protected={"Sheet1": LOCKED})
        decision = _check(gate, registry, snapshot, "sort", "A1:C5", defer_protection=True)
        assert decision.error_kind == ErrorKind.UNSUPPORTED_API_LEVEL


@pytest.mark.unit
class TestExistence:
    def test_missing_entity_denied(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        decision = _check(gate, registry, _snapshot(), "styleTable", "Sales", {"style": "TableStyleLight2"})
        assert decision.error_kind == ErrorKind.ENTITY_NOT_FOUND
        assert "table 'Sales'" in decision.reason

    def test_existing_entity_case_insensitive(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        snapshot = _snapshot(table={"Sales": "Sheet1"})
        assert _check(gate, registry, snapshot, "styleTable", "SALES", {"style": "TableStyleLight2"}).allowed

    def test_missing_sheet_prefix(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        decision = _check(gate, registry, _snapshot(), "values", "Nowhere!A1", {"values": 1})
        assert decision.error_kind == ErrorKind.ENTITY_NOT_FOUND

    def test_defer_missing_skips_existence(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        decision = _check(
            gate, registry, _snapshot(), "styleTable", "Sales", {"style": "TableStyleLight2"},
            defer_missing=True,
        )
        assert decision.allowed

    def test_order_api_level_before_protection(self, gate: CapabilityGate, registry: SchemaRegistry) -> None:
        snapshot = _snapshot(api_level="1.1", protected={"Sheet1": LOCKED})
        decision = _check(gate, registry, snapshot, "sort", "A1:C5")
        assert decision.error_kind == ErrorKind.UNSUPPORTED_API_LEVEL
