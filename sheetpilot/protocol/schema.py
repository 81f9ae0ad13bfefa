"""Protocol layer — Action schemas and the schema registry.

An ``ActionSchema`` is the static description of one action kind: its
parameter model, the API level it needs, what it does to entities, what its
target addresses and how it interacts with sheet protection.

The schema also knows how to read the entity references out of a descriptor,
which both the capability gate (existence checks) and the ordering resolver
(dependency edges) rely on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable

from pydantic.alias_generators import to_camel

from sheetpilot.exceptions import SchemaRegistrationError, UnknownActionError
from sheetpilot.protocol.models import ActionDescriptor, EntityRole
from sheetpilot.protocol.params.base import ActionParams
from sheetpilot.protocol.ranges import (
    RangeSyntaxError,
    anchor_name,
    parse_areas,
    parse_cell,
    split_sheet,
)

if TYPE_CHECKING:
    from sheetpilot.document.base import DocumentCapabilitySnapshot


class TargetKind(str, Enum):
    NONE = "none"
    RANGE = "range"
    CELL = "cell"
    ROWS = "rows"
    COLUMNS = "columns"
    SHEET = "sheet"
    ENTITY = "entity"
    SOURCE = "source"
    SLICER_SOURCE = "slicer_source"


class EntityKind(str, Enum):
    SHEET = "sheet"
    TABLE = "table"
    PIVOT_TABLE = "pivotTable"
    SLICER = "slicer"
    NAMED_RANGE = "namedRange"
    SHAPE = "shape"
    CHART = "chart"
    COMMENT = "comment"
    NOTE = "note"
    SPARKLINE = "sparkline"
    VIEW = "view"
    HYPERLINK = "hyperlink"
    DATA_TYPE = "dataType"


CELL_ANCHORED: frozenset[EntityKind] = frozenset(
    {EntityKind.COMMENT, EntityKind.NOTE, EntityKind.HYPERLINK, EntityKind.DATA_TYPE}
)

_ADDRESS_TARGETS = frozenset({TargetKind.RANGE, TargetKind.CELL, TargetKind.ROWS, TargetKind.COLUMNS})


@dataclass(frozen=True)
class EntityRef:
    kind: EntityKind
    name: str

    @property
    def key(self) -> tuple[EntityKind, str]:
        return self.kind, self.name.casefold()

    def __str__(self) -> str:
        return f"{self.kind.value} '{self.name}'"


def raw_param(descriptor: ActionDescriptor, name: str) -> Any:
    """Read a parameter from an unvalidated descriptor by snake or camel name."""
    params = descriptor.parameters
    if name in params:
        return params[name]
    return params.get(to_camel(name))


def _sheet_prefix(address: str | None) -> str | None:
    if not address:
        return None
    try:
        sheet, _ = split_sheet(address.split(",", 1)[0])
    except RangeSyntaxError:
        return None
    return sheet


def _is_address(text: str) -> bool:
    try:
        parse_areas(text)
    except RangeSyntaxError:
        return False
    return True


@dataclass(frozen=True)
class ActionSchema:
    kind: str
    family_id: str
    params_model: type[ActionParams]
    min_api_level: str
    entity_role: EntityRole
    target_kind: TargetKind
    entity_kind: EntityKind | None = None
    target_required: bool = True
    contiguous_target: bool = False
    single_column_target: bool = False
    multi_cell_target: bool = False
    protection_option: str | None = None
    protection_exempt: bool = False
    workbook_structure: bool = False
    name_param: str | None = None
    renames_param: str | None = None
    reference_params: tuple[tuple[str, EntityKind], ...] = ()
    range_params: tuple[str, ...] = ()
    sheet_params: tuple[str, ...] = ("sheet",)
    description: str = ""

    # ------------------------------------------------------------------
    # Target interpretation
    # ------------------------------------------------------------------

    @property
    def target_is_created_name(self) -> bool:
        """The target *is* the name of the entity this action creates."""
        return self.entity_role == EntityRole.CREATES and self.name_param is None

    def target_entity(
        self, descriptor: ActionDescriptor, default_sheet: str | None
    ) -> EntityRef | None:
        """The pre-existing entity the target addresses, if any."""
        target = descriptor.target
        kind = self.target_kind
        if kind == TargetKind.SHEET:
            name = target or _raw_str(descriptor, "sheet")
            if self.target_is_created_name or name is None:
                return None
            return EntityRef(EntityKind.SHEET, name)
        if target is None:
            return None
        if kind == TargetKind.ENTITY:
            if self.target_is_created_name:
                return None
            return EntityRef(self.entity_kind, target)
        if kind == TargetKind.CELL and self.entity_kind in CELL_ANCHORED:
            if self.target_is_created_name:
                return None
            return EntityRef(self.entity_kind, self.anchor(target, default_sheet))
        if kind == TargetKind.SOURCE and not _is_address(target):
            return EntityRef(EntityKind.TABLE, target)
        if kind == TargetKind.SLICER_SOURCE:
            source_type = raw_param(descriptor, "source_type")
            entity = EntityKind.PIVOT_TABLE if source_type == "pivot" else EntityKind.TABLE
            return EntityRef(entity, target)
        return None

    def anchor(self, target: str, default_sheet: str | None) -> str:
        try:
            cell = parse_cell(target)
        except RangeSyntaxError:
            return target
        if cell.sheet is None:
            cell = cell.with_sheet(default_sheet)
        return anchor_name(cell)

    def target_address_sheet(self, descriptor: ActionDescriptor) -> str | None:
        """Sheet named by a ``Sheet!A1`` prefix on an address target."""
        if self.target_kind in _ADDRESS_TARGETS or self.target_kind == TargetKind.SOURCE:
            return _sheet_prefix(descriptor.target)
        return None

    def target_sheet(
        self, descriptor: ActionDescriptor, snapshot: DocumentCapabilitySnapshot
    ) -> str | None:
        """The sheet whose protection governs this action (None: workbook level)."""
        kind = self.target_kind
        explicit = _raw_str(descriptor, "sheet")
        if kind == TargetKind.NONE:
            return None
        if kind == TargetKind.SHEET:
            return descriptor.target or explicit or snapshot.active_sheet
        if kind in _ADDRESS_TARGETS:
            return self.target_address_sheet(descriptor) or explicit or snapshot.active_sheet
        entity = self.target_entity(descriptor, snapshot.active_sheet)
        if entity is None:
            if kind == TargetKind.SOURCE and descriptor.target:
                return self.target_address_sheet(descriptor) or snapshot.active_sheet
            if self.entity_kind == EntityKind.NAMED_RANGE:
                return None
            return explicit or snapshot.active_sheet
        if entity.kind == EntityKind.SHEET:
            return entity.name
        return snapshot.entity_sheet(entity) or explicit

    # ------------------------------------------------------------------
    # Entity bookkeeping
    # ------------------------------------------------------------------

    def created_entity(
        self,
        descriptor: ActionDescriptor,
        params: ActionParams | None,
        default_sheet: str | None,
    ) -> EntityRef | None:
        """Name this action will create, or None when the document picks one."""
        if self.entity_role != EntityRole.CREATES or self.entity_kind is None:
            return None
        if self.name_param is not None:
            name = getattr(params, self.name_param, None) if params is not None else None
            return EntityRef(self.entity_kind, name) if name else None
        if descriptor.target is None:
            return None
        if self.entity_kind in CELL_ANCHORED:
            return EntityRef(self.entity_kind, self.anchor(descriptor.target, default_sheet))
        return EntityRef(self.entity_kind, descriptor.target)

    def introduced_names(
        self,
        descriptor: ActionDescriptor,
        params: ActionParams | None,
        default_sheet: str | None,
    ) -> list[EntityRef]:
        """Names that exist after this action and may be referenced later."""
        names = []
        created = self.created_entity(descriptor, params, default_sheet)
        if created is not None:
            names.append(created)
        if self.renames_param and params is not None:
            new_name = getattr(params, self.renames_param, None)
            if new_name:
                names.append(EntityRef(self.entity_kind, new_name))
        return names

    def referenced_entities(
        self,
        descriptor: ActionDescriptor,
        default_sheet: str | None,
        params: ActionParams | None = None,
    ) -> list[EntityRef]:
        """Entities that must exist for this action to run.

        Without *params* only the target is inspected; with validated params
        entity-valued parameters and sheet-qualified range parameters are
        included as well.
        """
        refs: list[EntityRef] = []
        entity = self.target_entity(descriptor, default_sheet)
        if entity is not None:
            refs.append(entity)
        prefix = self.target_address_sheet(descriptor)
        if prefix is not None and not self.target_is_created_name:
            refs.append(EntityRef(EntityKind.SHEET, prefix))
        if params is None:
            return _unique(refs)

        for param, kind in self.reference_params:
            value = getattr(params, param, None)
            for name in _as_names(value):
                refs.append(EntityRef(kind, name))
        for param in self.range_params:
            sheet = _sheet_prefix(getattr(params, param, None))
            if sheet is not None:
                refs.append(EntityRef(EntityKind.SHEET, sheet))
        if self.target_kind != TargetKind.SHEET:
            for param in self.sheet_params:
                value = getattr(params, param, None)
                if isinstance(value, str):
                    refs.append(EntityRef(EntityKind.SHEET, value))
        return _unique(refs)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def to_json_schema(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "family": self.family_id,
            "description": self.description,
            "min_api_level": self.min_api_level,
            "entity_role": self.entity_role.value,
            "entity_kind": self.entity_kind.value if self.entity_kind else None,
            "target": {
                "kind": self.target_kind.value,
                "required": self.target_required,
                "contiguous": self.contiguous_target,
            },
            "protection": {
                "exempt": self.protection_exempt,
                "option": self.protection_option,
            },
            "parameters": self.params_model.model_json_schema(by_alias=True),
        }


def _raw_str(descriptor: ActionDescriptor, name: str) -> str | None:
    value = raw_param(descriptor, name)
    return value if isinstance(value, str) and value else None


def _as_names(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [v for v in value if isinstance(v, str)]
    return []


def _unique(refs: list[EntityRef]) -> list[EntityRef]:
    seen: set[tuple[EntityKind, str]] = set()
    unique = []
    for ref in refs:
        if ref.key not in seen:
            seen.add(ref.key)
            unique.append(ref)
    return unique


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class SchemaRegistry:
    """Lookup table from action kind to ``ActionSchema``.

    Usage::

        registry = SchemaRegistry.default()
        schema = registry.lookup("createTable")
    """

    def __init__(self, schemas: Iterable[ActionSchema] = ()) -> None:
        self._schemas: dict[str, ActionSchema] = {}
        for schema in schemas:
            self.register(schema)

    @classmethod
    def default(cls) -> "SchemaRegistry":
        from sheetpilot.protocol.catalogue import CATALOGUE

        return cls(CATALOGUE)

    def register(self, schema: ActionSchema) -> None:
        if schema.kind in self._schemas:
            raise SchemaRegistrationError(schema.kind, "kind already registered")
        if not issubclass(schema.params_model, ActionParams):
            raise SchemaRegistrationError(schema.kind, "params_model must subclass ActionParams")
        if schema.target_kind == TargetKind.ENTITY and schema.entity_kind is None:
            raise SchemaRegistrationError(schema.kind, "entity targets need an entity_kind")
        if schema.entity_role == EntityRole.CREATES and schema.entity_kind is None:
            raise SchemaRegistrationError(schema.kind, "creating actions need an entity_kind")
        self._schemas[schema.kind] = schema

    def lookup(self, kind: str) -> ActionSchema | None:
        """Return the schema for *kind*, or None if the kind is unknown."""
        return self._schemas.get(kind)

    def get(self, kind: str) -> ActionSchema:
        schema = self._schemas.get(kind)
        if schema is None:
            raise UnknownActionError(kind)
        return schema

    def kinds(self) -> list[str]:
        return sorted(self._schemas)

    def families(self) -> set[str]:
        return {schema.family_id for schema in self._schemas.values()}

    def by_family(self, family_id: str) -> list[ActionSchema]:
        return [s for s in self._schemas.values() if s.family_id == family_id]

    def __contains__(self, kind: object) -> bool:
        return kind in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)
