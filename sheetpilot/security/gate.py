"""Security layer — Capability gate.

The CapabilityGate is the single enforcement point for document capability
checks.  It runs twice for every action: once while the batch is validated
(against the snapshot taken before anything ran) and again immediately
before dispatch (against a fresh snapshot), because earlier actions in the
same batch may have protected a sheet or removed an entity.

Checks performed (in order):
  1. Document API level >= the schema's minimum level
  2. Sheet / workbook protection
  3. Existence of every entity the action references
"""

from __future__ import annotations

from dataclasses import dataclass

from packaging.version import InvalidVersion, Version

from sheetpilot.document.base import DocumentCapabilitySnapshot
from sheetpilot.logging import get_logger
from sheetpilot.protocol.models import ActionDescriptor, EntityRole, ErrorKind
from sheetpilot.protocol.params.base import ActionParams
from sheetpilot.protocol.schema import ActionSchema

log = get_logger(__name__)


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    error_kind: ErrorKind | None = None
    reason: str | None = None

    @classmethod
    def deny(cls, error_kind: ErrorKind, reason: str) -> "GateDecision":
        return cls(False, error_kind, reason)


ALLOW = GateDecision(True)


def _version(level: str) -> Version:
    try:
        return Version(level)
    except InvalidVersion:
        return Version("0")


class CapabilityGate:
    """Decides whether the document can accept an action right now.

    Usage::

        gate = CapabilityGate()
        decision = gate.check(schema, descriptor, snapshot)
        if not decision.allowed:
            ...  # decision.error_kind, decision.reason
    """

    def check(
        self,
        schema: ActionSchema,
        descriptor: ActionDescriptor,
        snapshot: DocumentCapabilitySnapshot,
        params: ActionParams | None = None,
        defer_missing: bool = False,
        defer_protection: bool = False,
    ) -> GateDecision:
        """Run the three checks in order and return the first denial.

        With ``defer_missing`` the existence check is skipped: the batch may
        create the missing entity itself, which only the ordering resolver
        can tell.

        With ``defer_protection`` the protection check is skipped: an earlier
        action in the batch changes protection on the same sheet or on the
        workbook, so only the dispatch-time check sees the state that applies.
        """
        if _version(snapshot.api_level) < _version(schema.min_api_level):
            return GateDecision.deny(
                ErrorKind.UNSUPPORTED_API_LEVEL,
                f"{schema.kind} requires API level {schema.min_api_level}; "
                f"the document supports {snapshot.api_level}",
            )

        if not defer_protection:
            decision = self._check_protection(schema, descriptor, snapshot)
            if not decision.allowed:
                return decision

        if defer_missing:
            return ALLOW

        for ref in schema.referenced_entities(descriptor, snapshot.active_sheet, params):
            if not snapshot.has_entity(ref):
                log.debug("entity_missing", kind=schema.kind, entity=str(ref))
                return GateDecision.deny(ErrorKind.ENTITY_NOT_FOUND, f"{ref} does not exist")
        return ALLOW

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _check_protection(
        self,
        schema: ActionSchema,
        descriptor: ActionDescriptor,
        snapshot: DocumentCapabilitySnapshot,
    ) -> GateDecision:
        if schema.entity_role == EntityRole.READS:
            return ALLOW
        if schema.workbook_structure and snapshot.workbook_protected:
            return GateDecision.deny(
                ErrorKind.SHEET_PROTECTED,
                f"{schema.kind} changes the workbook structure, which is protected",
            )
        if schema.protection_exempt:
            return ALLOW
        sheet = schema.target_sheet(descriptor, snapshot)
        if sheet is None or not snapshot.has_sheet(sheet):
            return ALLOW
        protection = snapshot.protection(sheet)
        if protection.permits(schema.protection_option):
            return ALLOW
        return GateDecision.deny(ErrorKind.SHEET_PROTECTED, f"Sheet '{sheet}' is protected")
