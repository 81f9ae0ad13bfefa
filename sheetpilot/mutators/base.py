"""Mutator layer — BaseMutator interface.

Every action family has one mutator: a subclass of ``BaseMutator`` that
turns validated actions of that family into document calls.

Design principles:
  - Mutators are stateless between actions; all state lives in the document.
  - Each action is re-gated against a fresh snapshot immediately before it
    runs, since earlier actions in the batch may have changed the document.
  - Business-rule refusals never escape: they become ``ExecutionOutcome``
    records.  Handlers signal them by raising ``DocumentRejectedError``
    (the document refused) or ``MutationPolicyError`` (a family policy
    refused before the document was touched).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from sheetpilot.config import EngineConfig
from sheetpilot.document.base import DocumentCapabilitySnapshot, DocumentHandle
from sheetpilot.exceptions import (
    ActionHandlerNotFoundError,
    DocumentRejectedError,
    MutationPolicyError,
    MutatorNotFoundError,
)
from sheetpilot.logging import get_logger
from sheetpilot.protocol.models import (
    ErrorKind,
    ExecutionOutcome,
    OutcomeStatus,
    ValidatedAction,
)
from sheetpilot.protocol.ranges import CellRange, parse_areas, parse_cell, parse_range
from sheetpilot.protocol.schema import ActionSchema, EntityKind, EntityRef
from sheetpilot.security.gate import CapabilityGate

log = get_logger(__name__)

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def handler_name(kind: str) -> str:
    """``"createTable"`` -> ``"_action_create_table"``."""
    return "_action_" + _CAMEL_RE.sub("_", kind).lower()


@dataclass
class MutationEffect:
    """What a handler reports back.  ``created`` is the concrete entity name."""

    detail: dict[str, Any] = field(default_factory=dict)
    created: str | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class MutationContext:
    """Everything a handler needs about the action being applied."""

    action: ValidatedAction
    snapshot: DocumentCapabilitySnapshot

    @property
    def schema(self) -> ActionSchema:
        assert self.action.schema is not None
        return self.action.schema

    @property
    def params(self) -> Any:
        return self.action.params

    @property
    def target(self) -> str | None:
        return self.action.target

    @property
    def active_sheet(self) -> str:
        return self.snapshot.active_sheet

    def canonical_sheet(self, name: str) -> str:
        return self.snapshot.entity_sheet(EntityRef(EntityKind.SHEET, name)) or name

    def sheet(self) -> str:
        """Sheet for SHEET-targeted actions: target, then ``sheet`` param, then active."""
        name = self.target or getattr(self.params, "sheet", None) or self.active_sheet
        return self.canonical_sheet(name)

    def qualify(self, rng: CellRange) -> CellRange:
        if rng.sheet is None:
            return rng.with_sheet(self.active_sheet)
        return rng.with_sheet(self.canonical_sheet(rng.sheet))

    def range(self, text: str | None = None) -> CellRange:
        return self.qualify(parse_range(text if text is not None else self.target or ""))

    def areas(self) -> list[CellRange]:
        return [self.qualify(area) for area in parse_areas(self.target or "")]

    def cell(self) -> CellRange:
        return self.qualify(parse_cell(self.target or ""))


Handler = Callable[[MutationContext, DocumentHandle], Awaitable[MutationEffect]]


async def clip_to_used(document: DocumentHandle, rng: CellRange) -> CellRange | None:
    """Shrink whole-row / whole-column ranges to the sheet's used area."""
    if not (rng.is_whole_rows or rng.is_whole_columns):
        return rng
    used = await document.used_range(rng.sheet or await document.active_sheet())
    if used is None or not used.overlaps(rng):
        return None
    return CellRange(
        max(rng.top, used.top), max(rng.left, used.left),
        min(rng.bottom, used.bottom), min(rng.right, used.right), rng.sheet,
    )


def as_grid(values: Any) -> list[list[Any]]:
    """Normalise a scalar, a row or a grid into a grid."""
    if not isinstance(values, list):
        return [[values]]
    if values and all(isinstance(row, list) for row in values):
        return values
    return [values]


class BaseMutator:
    """Base class for all action-family mutators.

    Subclasses must:
      1. Set ``FAMILY_ID`` (matches ``ActionSchema.family_id``)
      2. Implement one ``_action_<snake_kind>`` coroutine per action kind,
         taking ``(ctx, document)`` and returning a ``MutationEffect``
    """

    FAMILY_ID: str = ""

    def __init__(self, gate: CapabilityGate | None = None, config: EngineConfig | None = None) -> None:
        self._gate = gate or CapabilityGate()
        self._config = config or EngineConfig()

    def handles(self, kind: str) -> bool:
        return callable(getattr(self, handler_name(kind), None))

    def _get_handler(self, kind: str) -> Handler:
        handler = getattr(self, handler_name(kind), None)
        if handler is None:
            raise ActionHandlerNotFoundError(family_id=self.FAMILY_ID, kind=kind)
        return handler

    async def apply(self, action: ValidatedAction, document: DocumentHandle) -> ExecutionOutcome:
        """Re-gate *action* against the live document and run its handler.

        Returns an outcome in every case; only a missing handler (a
        programming error) raises.
        """
        schema = action.schema
        assert schema is not None and action.is_ready
        handler = self._get_handler(action.kind)

        try:
            snapshot = await document.capture_snapshot()
        except DocumentRejectedError as exc:
            log.info("snapshot_rejected", kind=action.kind, reason=exc.message)
            return self._outcome(action, OutcomeStatus.FAILED, ErrorKind.DOCUMENT_REJECTED, exc.message)
        except Exception as exc:
            log.exception("snapshot_error", kind=action.kind)
            return self._outcome(
                action, OutcomeStatus.FAILED, ErrorKind.DOCUMENT_REJECTED,
                f"{type(exc).__name__}: {exc}",
            )
        decision = self._gate.check(schema, action.descriptor, snapshot, action.params)
        if not decision.allowed:
            log.info("action_gated", kind=action.kind, error_kind=str(decision.error_kind))
            return self._outcome(action, OutcomeStatus.SKIPPED, decision.error_kind, decision.reason)

        created = schema.created_entity(action.descriptor, action.params, snapshot.active_sheet)
        if created is not None and snapshot.has_entity(created):
            return self._outcome(
                action, OutcomeStatus.FAILED, ErrorKind.DOCUMENT_REJECTED, f"{created} already exists"
            )

        ctx = MutationContext(action, snapshot)
        try:
            effect = await handler(ctx, document)
        except DocumentRejectedError as exc:
            log.info("document_rejected", kind=action.kind, reason=exc.message)
            return self._outcome(action, OutcomeStatus.FAILED, ErrorKind.DOCUMENT_REJECTED, exc.message)
        except MutationPolicyError as exc:
            log.info("policy_rejected", kind=action.kind, error_kind=str(exc.error_kind))
            return self._outcome(action, OutcomeStatus.FAILED, exc.error_kind, exc.message, exc.field)
        except Exception as exc:
            log.exception("mutator_error", kind=action.kind)
            return self._outcome(
                action, OutcomeStatus.FAILED, ErrorKind.DOCUMENT_REJECTED,
                f"{type(exc).__name__}: {exc}",
            )

        detail = dict(effect.detail)
        if effect.created is not None:
            detail["entity"] = effect.created
        return ExecutionOutcome(
            index=action.index,
            kind=action.kind,
            status=OutcomeStatus.APPLIED,
            target=action.target,
            detail=detail,
            warnings=tuple(effect.warnings),
        )

    @staticmethod
    def _outcome(
        action: ValidatedAction,
        status: OutcomeStatus,
        error_kind: ErrorKind | None,
        message: str | None,
        field_name: str | None = None,
    ) -> ExecutionOutcome:
        return ExecutionOutcome(
            index=action.index,
            kind=action.kind,
            status=status,
            target=action.target,
            error_kind=error_kind,
            message=message,
            field_name=field_name,
        )

    @staticmethod
    def policy(message: str, field: str | None = None,
               error_kind: ErrorKind = ErrorKind.INVALID_PARAMETER) -> MutationPolicyError:
        return MutationPolicyError(message, error_kind, field)


class MutatorRegistry:
    """Family id -> mutator instance."""

    def __init__(self) -> None:
        self._mutators: dict[str, BaseMutator] = {}

    def register(self, mutator: BaseMutator) -> None:
        self._mutators[mutator.FAMILY_ID] = mutator

    def get(self, family_id: str) -> BaseMutator:
        mutator = self._mutators.get(family_id)
        if mutator is None:
            raise MutatorNotFoundError(family_id)
        return mutator

    def families(self) -> list[str]:
        return sorted(self._mutators)

    def __contains__(self, family_id: object) -> bool:
        return family_id in self._mutators