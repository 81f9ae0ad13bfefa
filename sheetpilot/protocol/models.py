"""Protocol layer — Action descriptors, outcomes and the execution report.

An ``ActionDescriptor`` is one instruction emitted by the assistant.  It is
immutable once parsed.  Every descriptor in a batch ends up as exactly one
``ExecutionOutcome`` in the batch's ``ExecutionReport``.
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterator

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

if TYPE_CHECKING:
    from sheetpilot.protocol.params.base import ActionParams
    from sheetpilot.protocol.schema import ActionSchema


class ErrorKind(str, Enum):
    UNKNOWN_ACTION = "UnknownAction"
    INVALID_PARAMETER = "InvalidParameter"
    UNSUPPORTED_API_LEVEL = "UnsupportedApiLevel"
    SHEET_PROTECTED = "SheetProtected"
    ENTITY_NOT_FOUND = "EntityNotFound"
    UNRESOLVED_DEPENDENCY = "UnresolvedDependency"
    DOCUMENT_REJECTED = "DocumentRejected"
    BATCH_ABORTED = "BatchAborted"

    def __str__(self) -> str:
        return self.value


class EntityRole(str, Enum):
    CREATES = "creates"
    MUTATES = "mutates"
    DELETES = "deletes"
    READS = "reads"


class OutcomeStatus(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"
    REJECTED = "rejected"

    def __str__(self) -> str:
        return self.value


class ValidationStatus(str, Enum):
    READY = "ready"
    REJECTED = "rejected"


class CompletionPolicy(str, Enum):
    CONTINUE_ON_FAILURE = "continue_on_failure"
    ABORT_ON_FIRST_FAILURE = "abort_on_first_failure"


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------


class ActionDescriptor(BaseModel):
    """One structured instruction from the assistant.

    ``kind`` is also accepted as ``type`` and ``parameters`` as ``params`` or
    ``data``; a JSON-encoded ``data`` string is decoded.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    kind: str = Field(validation_alias=AliasChoices("kind", "type"))
    target: str | None = None
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("parameters", "params", "data"),
    )
    depends_on: str | None = Field(
        default=None, validation_alias=AliasChoices("dependsOn", "depends_on")
    )

    @field_validator("parameters", mode="before")
    @classmethod
    def decode_parameters(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, str):
            try:
                decoded = json.loads(v) if v.strip() else {}
            except json.JSONDecodeError as exc:
                raise ValueError(f"parameters is not valid JSON: {exc.msg}") from exc
            return decoded
        return v

    @field_validator("target", mode="before")
    @classmethod
    def blank_target_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


@dataclass(frozen=True)
class DescriptorParseFailure:
    """A raw batch entry that could not be turned into a descriptor."""

    raw: Any
    error_kind: ErrorKind
    reason: str
    field_name: str | None = None

    @property
    def kind(self) -> str:
        if isinstance(self.raw, dict):
            value = self.raw.get("kind", self.raw.get("type"))
            if isinstance(value, str):
                return value
        return ""

    @property
    def target(self) -> str | None:
        if isinstance(self.raw, dict) and isinstance(self.raw.get("target"), str):
            return self.raw["target"]
        return None


def parse_descriptor(raw: Any) -> ActionDescriptor | DescriptorParseFailure:
    """Turn one raw batch entry into a descriptor without raising."""
    if isinstance(raw, ActionDescriptor):
        return raw
    if not isinstance(raw, dict):
        return DescriptorParseFailure(raw, ErrorKind.UNKNOWN_ACTION, "Action entry is not an object")
    try:
        return ActionDescriptor.model_validate(raw)
    except ValidationError as exc:
        error = exc.errors()[0]
        loc = ".".join(str(p) for p in error["loc"]) or None
        kind = ErrorKind.UNKNOWN_ACTION if loc in ("kind", "type") else ErrorKind.INVALID_PARAMETER
        return DescriptorParseFailure(raw, kind, error["msg"], loc)


# ---------------------------------------------------------------------------
# Validated action
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidatedAction:
    """A descriptor after schema lookup, capability gating and validation."""

    index: int
    descriptor: ActionDescriptor
    status: ValidationStatus
    schema: ActionSchema | None = None
    params: ActionParams | None = None
    error_kind: ErrorKind | None = None
    reason: str | None = None
    field_name: str | None = None

    @classmethod
    def ready(
        cls, index: int, descriptor: ActionDescriptor, schema: ActionSchema, params: ActionParams
    ) -> "ValidatedAction":
        return cls(index, descriptor, ValidationStatus.READY, schema, params)

    @classmethod
    def rejected(
        cls,
        index: int,
        descriptor: ActionDescriptor,
        error_kind: ErrorKind,
        reason: str,
        field: str | None = None,
        schema: ActionSchema | None = None,
    ) -> "ValidatedAction":
        return cls(
            index, descriptor, ValidationStatus.REJECTED, schema,
            error_kind=error_kind, reason=reason, field_name=field,
        )

    @property
    def is_ready(self) -> bool:
        return self.status == ValidationStatus.READY

    @property
    def kind(self) -> str:
        return self.descriptor.kind

    @property
    def target(self) -> str | None:
        return self.descriptor.target


# ---------------------------------------------------------------------------
# Outcomes and report
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExecutionOutcome:
    index: int
    kind: str
    status: OutcomeStatus
    target: str | None = None
    error_kind: ErrorKind | None = None
    message: str | None = None
    field_name: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    @property
    def entity(self) -> str | None:
        """Concrete name of the entity this action created, if any."""
        return self.detail.get("entity")

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "kind": self.kind,
            "target": self.target,
            "status": self.status.value,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "message": self.message,
            "field": self.field_name,
            "detail": self.detail,
            "warnings": list(self.warnings),
        }


@dataclass
class ExecutionReport:
    """Append-only sequence of outcomes, in the order they were produced."""

    batch_id: str
    action_count: int
    outcomes: list[ExecutionOutcome] = field(default_factory=list)

    def append(self, outcome: ExecutionOutcome) -> None:
        self.outcomes.append(outcome)

    def __iter__(self) -> Iterator[ExecutionOutcome]:
        return iter(self.outcomes)

    def __len__(self) -> int:
        return len(self.outcomes)

    def get(self, index: int) -> ExecutionOutcome | None:
        """Outcome for the descriptor at input position *index*."""
        for outcome in self.outcomes:
            if outcome.index == index:
                return outcome
        return None

    def by_input_order(self) -> list[ExecutionOutcome]:
        return sorted(self.outcomes, key=lambda o: o.index)

    def counts(self) -> dict[str, int]:
        counter = Counter(o.status.value for o in self.outcomes)
        return {status.value: counter.get(status.value, 0) for status in OutcomeStatus}

    @property
    def is_complete(self) -> bool:
        return len(self.outcomes) == self.action_count

    @property
    def all_applied(self) -> bool:
        return all(o.status == OutcomeStatus.APPLIED for o in self.outcomes)

    @property
    def has_failures(self) -> bool:
        return any(o.status == OutcomeStatus.FAILED for o in self.outcomes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "action_count": self.action_count,
            "counts": self.counts(),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
