"""Orchestration layer — dependency resolution, session state and diagnostics."""

from sheetpilot.orchestration.dag import DependencyResolver, ResolvedBatch
from sheetpilot.orchestration.diagnostics import DiagnosticEntry, DiagnosticsLog
from sheetpilot.orchestration.session import ExecutionSession
from sheetpilot.orchestration.state import SessionPhase, SessionState

__all__ = [
    "DependencyResolver",
    "ResolvedBatch",
    "DiagnosticEntry",
    "DiagnosticsLog",
    "ExecutionSession",
    "SessionPhase",
    "SessionState",
]
