"""Protocol layer — descriptors, schemas, parameter models and validation."""

from sheetpilot.protocol.models import (
    ActionDescriptor,
    CompletionPolicy,
    EntityRole,
    ErrorKind,
    ExecutionOutcome,
    ExecutionReport,
    OutcomeStatus,
    ValidatedAction,
)
from sheetpilot.protocol.schema import ActionSchema, EntityKind, EntityRef, SchemaRegistry, TargetKind
from sheetpilot.protocol.validator import ActionValidator

__all__ = [
    "ActionDescriptor",
    "ActionSchema",
    "ActionValidator",
    "CompletionPolicy",
    "EntityKind",
    "EntityRef",
    "EntityRole",
    "ErrorKind",
    "ExecutionOutcome",
    "ExecutionReport",
    "OutcomeStatus",
    "SchemaRegistry",
    "TargetKind",
    "ValidatedAction",
]
