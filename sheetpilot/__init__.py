"""SheetPilot — Action execution engine for spreadsheet documents.

SheetPilot takes a batch of structured action descriptors (as emitted by an
assistant) and applies them to a workbook, reporting exactly one outcome per
action.

Architecture layers (bottom to top):
    1. Protocol      — descriptors, schema registry, parameter models, validator
    2. Document      — capability surface, in-memory workbook, xlsx bridge
    3. Security      — capability gate (API level, protection, existence)
    4. Mutators      — one mutator per action family
    5. Orchestration — ordering resolver, execution session, diagnostics log
    6. CLI           — ``sheetpilot run`` / ``sheetpilot schema``
"""

__version__ = "0.1.0"

from sheetpilot.document.memory import InMemoryWorkbook
from sheetpilot.orchestration.session import ExecutionSession
from sheetpilot.protocol.models import (
    ActionDescriptor,
    CompletionPolicy,
    ErrorKind,
    ExecutionOutcome,
    ExecutionReport,
    OutcomeStatus,
)
from sheetpilot.protocol.schema import SchemaRegistry

__all__ = [
    "__version__",
    "ActionDescriptor",
    "CompletionPolicy",
    "ErrorKind",
    "ExecutionOutcome",
    "ExecutionReport",
    "ExecutionSession",
    "InMemoryWorkbook",
    "OutcomeStatus",
    "SchemaRegistry",
]
