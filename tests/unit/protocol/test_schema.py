"""Unit tests — ActionSchema entity bookkeeping and the SchemaRegistry."""

from __future__ import annotations

from dataclasses import replace

import pytest

from sheetpilot.document.base import DocumentCapabilitySnapshot, SheetProtection
from sheetpilot.exceptions import SchemaRegistrationError, UnknownActionError
from sheetpilot.mutators import DEFAULT_MUTATORS
from sheetpilot.protocol.models import ActionDescriptor, EntityRole
from sheetpilot.protocol.schema import EntityKind, EntityRef, SchemaRegistry, TargetKind


def _snapshot(**entities: dict[str, str | None]) -> DocumentCapabilitySnapshot:
    return DocumentCapabilitySnapshot.build(
        api_level="1.18",
        active_sheet="Sheet1",
        sheets={"Sheet1": SheetProtection(), "Data": SheetProtection()},
        entities={EntityKind(kind): names for kind, names in entities.items()},
    )


def _params(registry: SchemaRegistry, kind: str, raw: dict):
    return registry.get(kind).params_model.model_validate(raw)


@pytest.mark.unit
class TestCatalogue:
    def test_ninety_kinds_in_sixteen_families(self, registry: SchemaRegistry) -> None:
        assert len(registry) == 90
        assert len(registry.families()) == 16

    def test_every_family_has_a_mutator_handler_per_kind(self, registry: SchemaRegistry) -> None:
        mutators = {cls.FAMILY_ID: cls() for cls in DEFAULT_MUTATORS}
        assert set(mutators) == registry.families()
        for kind in registry.kinds():
            schema = registry.get(kind)
            assert mutators[schema.family_id].handles(kind), kind

    def test_creating_kinds_declare_entity_kind(self, registry: SchemaRegistry) -> None:
        for kind in registry.kinds():
            schema = registry.get(kind)
            if schema.entity_role == EntityRole.CREATES:
                assert schema.entity_kind is not None, kind

    def test_api_levels(self, registry: SchemaRegistry) -> None:
        assert registry.get("values").min_api_level == "1.1"
        assert registry.get("createPivotTable").min_api_level == "1.8"
        assert registry.get("createSlicer").min_api_level == "1.10"
        assert registry.get("addNote").min_api_level == "1.18"

    def test_by_family(self, registry: SchemaRegistry) -> None:
        kinds = {s.kind for s in registry.by_family("pivots")}
        assert kinds == {
            "createPivotTable", "addPivotField", "configurePivotLayout",
            "refreshPivotTable", "deletePivotTable",
        }


@pytest.mark.unit
class TestRegistry:
    def test_lookup_unknown_returns_none(self, registry: SchemaRegistry) -> None:
        assert registry.lookup("teleport") is None
        assert "teleport" not in registry

    def test_get_unknown_raises(self, registry: SchemaRegistry) -> None:
        with pytest.raises(UnknownActionError):
            registry.get("teleport")

    def test_duplicate_registration_rejected(self, registry: SchemaRegistry) -> None:
        fresh = SchemaRegistry([registry.get("values")])
        with pytest.raises(SchemaRegistrationError):
            fresh.register(registry.get("values"))

    def test_entity_target_without_entity_kind_rejected(self, registry: SchemaRegistry) -> None:
        broken = replace(registry.get("styleTable"), kind="styleThing", entity_kind=None)
        with pytest.raises(SchemaRegistrationError):
            SchemaRegistry([broken])


@pytest.mark.unit
class TestCreatedEntity:
    def test_name_param(self, registry: SchemaRegistry) -> None:
        schema = registry.get("createTable")
        d = ActionDescriptor(kind="createTable", target="A1:C5", parameters={"name": "Sales"})
        created = schema.created_entity(d, _params(registry, "createTable", d.parameters), "Sheet1")
        assert created == EntityRef(EntityKind.TABLE, "Sales")

    def test_unnamed_table_lets_document_pick(self, registry: SchemaRegistry) -> None:
        schema = registry.get("createTable")
        d = ActionDescriptor(kind="createTable", target="A1:C5")
        assert schema.created_entity(d, _params(registry, "createTable", {}), "Sheet1") is None

    def test_target_is_the_new_sheet(self, registry: SchemaRegistry) -> None:
        schema = registry.get("sheet")
        d = ActionDescriptor(kind="sheet", target="Summary")
        assert schema.target_is_created_name
        assert schema.created_entity(d, None, "Sheet1") == EntityRef(EntityKind.SHEET, "Summary")

    def test_cell_anchored_entity_qualified_with_default_sheet(self, registry: SchemaRegistry) -> None:
        schema = registry.get("addNote")
        d = ActionDescriptor(kind="addNote", target="B2")
        assert schema.created_entity(d, None, "Sheet1") == EntityRef(EntityKind.NOTE, "Sheet1!B2")

    def test_rename_introduces_new_name(self, registry: SchemaRegistry) -> None:
        schema = registry.get("renameSheet")
        d = ActionDescriptor(kind="renameSheet", target="Sheet1", parameters={"newName": "Summary"})
        names = schema.introduced_names(d, _params(registry, "renameSheet", d.parameters), "Sheet1")
        assert names == [EntityRef(EntityKind.SHEET, "Summary")]

    def test_entity_ref_key_is_case_insensitive(self) -> None:
        assert EntityRef(EntityKind.TABLE, "Sales").key == EntityRef(EntityKind.TABLE, "SALES").key


@pytest.mark.unit
class TestReferencedEntities:
    def test_entity_target(self, registry: SchemaRegistry) -> None:
        d = ActionDescriptor(kind="styleTable", target="Sales")
        refs = registry.get("styleTable").referenced_entities(d, "Sheet1")
        assert refs == [EntityRef(EntityKind.TABLE, "Sales")]

    def test_slicer_source_kind_follows_source_type(self, registry: SchemaRegistry) -> None:
        schema = registry.get("createSlicer")
        table = ActionDescriptor(kind="createSlicer", target="Sales", parameters={"sourceType": "table"})
        pivot = ActionDescriptor(kind="createSlicer", target="SalesPivot", parameters={"sourceType": "pivot"})
        assert schema.referenced_entities(table, "Sheet1") == [EntityRef(EntityKind.TABLE, "Sales")]
        assert schema.referenced_entities(pivot, "Sheet1") == [
            EntityRef(EntityKind.PIVOT_TABLE, "SalesPivot")
        ]

    def test_pivot_source_table_name(self, registry: SchemaRegistry) -> None:
        d = ActionDescriptor(kind="createPivotTable", target="Sales")
        refs = registry.get("createPivotTable").referenced_entities(d, "Sheet1")
        assert refs == [EntityRef(EntityKind.TABLE, "Sales")]

    def test_sheet_prefix_on_address(self, registry: SchemaRegistry) -> None:
        d = ActionDescriptor(kind="values", target="Data!A1")
        assert registry.get("values").referenced_entities(d, "Sheet1") == [
            EntityRef(EntityKind.SHEET, "Data")
        ]

    def test_entity_valued_params(self, registry: SchemaRegistry) -> None:
        schema = registry.get("connectSlicerToTable")
        raw = {"table": "Orders", "field": "Region"}
        d = ActionDescriptor(kind="connectSlicerToTable", target="Slicer_Region", parameters=raw)
        refs = schema.referenced_entities(d, "Sheet1", _params(registry, "connectSlicerToTable", raw))
        assert EntityRef(EntityKind.SLICER, "Slicer_Region") in refs
        assert EntityRef(EntityKind.TABLE, "Orders") in refs

    def test_sheet_qualified_range_param(self, registry: SchemaRegistry) -> None:
        schema = registry.get("createNamedRange")
        raw = {"reference": "Data!B1:B9"}
        d = ActionDescriptor(kind="createNamedRange", target="Rates", parameters=raw)
        refs = schema.referenced_entities(d, "Sheet1", _params(registry, "createNamedRange", raw))
        assert refs == [EntityRef(EntityKind.SHEET, "Data")]


@pytest.mark.unit
class TestTargetSheet:
    def test_address_prefix_wins(self, registry: SchemaRegistry) -> None:
        d = ActionDescriptor(kind="values", target="Data!A1")
        assert registry.get("values").target_sheet(d, _snapshot()) == "Data"

    def test_defaults_to_active_sheet(self, registry: SchemaRegistry) -> None:
        d = ActionDescriptor(kind="values", target="A1")
        assert registry.get("values").target_sheet(d, _snapshot()) == "Sheet1"

    def test_entity_sheet_from_snapshot(self, registry: SchemaRegistry) -> None:
        d = ActionDescriptor(kind="styleTable", target="Sales")
        snapshot = _snapshot(table={"Sales": "Data"})
        assert registry.get("styleTable").target_sheet(d, snapshot) == "Data"

    def test_workbook_level_action_has_no_sheet(self, registry: SchemaRegistry) -> None:
        d = ActionDescriptor(kind="protectWorkbook")
        assert registry.get("protectWorkbook").target_sheet(d, _snapshot()) is None


@pytest.mark.unit
class TestJsonSchema:
    def test_parameters_use_camel_case(self, registry: SchemaRegistry) -> None:
        doc = registry.get("createTable").to_json_schema()
        assert doc["kind"] == "createTable"
        assert doc["family"] == "tables"
        assert doc["target"]["kind"] == TargetKind.RANGE.value
        assert "hasHeaders" in doc["parameters"]["properties"]
