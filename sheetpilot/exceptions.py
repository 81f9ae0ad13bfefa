"""SheetPilot — Exception hierarchy.

Business-rule outcomes (a rejected parameter, a protected sheet, a document
refusal) are never raised past the execution session: they become
``ExecutionOutcome`` records.  The exceptions below are for programming
contract violations and for the document boundary, where the session
converts them into outcomes.

Hierarchy:
    SheetPilotError
    ├── ProtocolError
    │   ├── SchemaRegistrationError
    │   └── UnknownActionError
    ├── OrchestrationError
    │   └── SessionStateError
    ├── DocumentError
    │   └── DocumentRejectedError
    └── MutatorError
        ├── MutatorNotFoundError
        ├── ActionHandlerNotFoundError
        └── MutationPolicyError
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sheetpilot.protocol.models import ErrorKind


class SheetPilotError(Exception):
    """Base exception for all SheetPilot errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Protocol layer
# ---------------------------------------------------------------------------


class ProtocolError(SheetPilotError):
    """Base for schema and descriptor errors."""


class SchemaRegistrationError(ProtocolError):
    """A schema was registered twice or is internally inconsistent."""

    def __init__(self, kind: str, reason: str) -> None:
        super().__init__(
            f"Cannot register schema for '{kind}': {reason}",
            context={"kind": kind},
        )
        self.kind = kind


class UnknownActionError(ProtocolError):
    def __init__(self, kind: str) -> None:
        super().__init__(f"No schema registered for action kind '{kind}'.", context={"kind": kind})
        self.kind = kind


# ---------------------------------------------------------------------------
# Orchestration layer
# ---------------------------------------------------------------------------


class OrchestrationError(SheetPilotError):
    """Base for execution session errors."""


class SessionStateError(OrchestrationError):
    """The session was driven out of its one-directional phase sequence."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            f"Illegal session transition {current} -> {requested}",
            context={"current": current, "requested": requested},
        )
        self.current = current
        self.requested = requested


# ---------------------------------------------------------------------------
# Document layer
# ---------------------------------------------------------------------------


class DocumentError(SheetPilotError):
    """Base for errors raised by a document handle."""


class DocumentRejectedError(DocumentError):
    """The spreadsheet refused a mutation (collision, wrong password, limits...)."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message, context={"operation": operation})
        self.operation = operation


# ---------------------------------------------------------------------------
# Mutator layer
# ---------------------------------------------------------------------------


class MutatorError(SheetPilotError):
    """Base for mutator errors."""


class MutatorNotFoundError(MutatorError):
    def __init__(self, family_id: str) -> None:
        super().__init__(
            f"No mutator registered for family '{family_id}'.",
            context={"family_id": family_id},
        )
        self.family_id = family_id


class ActionHandlerNotFoundError(MutatorError):
    def __init__(self, family_id: str, kind: str) -> None:
        super().__init__(
            f"Mutator '{family_id}' has no handler for action kind '{kind}'.",
            context={"family_id": family_id, "kind": kind},
        )
        self.family_id = family_id
        self.kind = kind


class MutationPolicyError(MutatorError):
    """A family policy refused the action before the document was touched.

    Carries the ``ErrorKind`` the resulting outcome should report.
    """

    def __init__(self, message: str, error_kind: ErrorKind, field: str | None = None) -> None:
        super().__init__(message, context={"error_kind": str(error_kind), "field": field})
        self.error_kind = error_kind
        self.field = field
