"""Orchestration layer — Execution session.

The ExecutionSession drives one batch through its full lifecycle:
  1. Validating: parse each raw entry, look its kind up in the schema
     registry, gate it against the snapshot (API level and protection;
     existence is deferred to the resolver, and protection too when an
     earlier action changes it), then validate target and parameters
  2. Ordering: resolve in-batch name references into a dispatch order
     (DependencyResolver)
  3. Dispatching: hand each ordered action to its family mutator, one at a
     time, awaiting each before the next
  4. Completed: the report holds exactly one outcome per input entry

Completion policies:
  ``continue_on_failure`` lets independent actions run after a failure.
  ``abort_on_first_failure`` marks every undispatched action
  ``skipped``/``BatchAborted`` once one action failed.

There is no rollback: partially applied batches are reported as such.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Sequence

from sheetpilot.config import EngineConfig
from sheetpilot.document.base import DocumentCapabilitySnapshot, DocumentHandle
from sheetpilot.exceptions import MutatorNotFoundError
from sheetpilot.logging import action_context, batch_context, get_logger
from sheetpilot.mutators import MutatorRegistry, build_default_registry
from sheetpilot.orchestration.dag import DependencyResolver
from sheetpilot.orchestration.diagnostics import DiagnosticsLog
from sheetpilot.orchestration.state import SessionPhase, SessionState
from sheetpilot.protocol.models import (
    ActionDescriptor,
    CompletionPolicy,
    DescriptorParseFailure,
    ErrorKind,
    ExecutionOutcome,
    ExecutionReport,
    OutcomeStatus,
    ValidatedAction,
    parse_descriptor,
)
from sheetpilot.protocol.schema import EntityRef, SchemaRegistry
from sheetpilot.protocol.validator import ActionValidator
from sheetpilot.security.gate import CapabilityGate

log = get_logger(__name__)

PROTECTION_FAMILY = "protection"


class ExecutionSession:
    """Runs one batch of action descriptors against a document.

    Usage::

        session = ExecutionSession(document)
        report = await session.run(batch)
        for outcome in report:
            print(outcome.kind, outcome.status)

    A session is single-use: calling ``run()`` a second time raises
    :class:`SessionStateError`.
    """

    def __init__(
        self,
        document: DocumentHandle,
        registry: SchemaRegistry | None = None,
        mutators: MutatorRegistry | None = None,
        config: EngineConfig | None = None,
        diagnostics: DiagnosticsLog | None = None,
        snapshot: DocumentCapabilitySnapshot | None = None,
        batch_id: str | None = None,
    ) -> None:
        self._document = document
        self._config = config or EngineConfig()
        self._registry = registry if registry is not None else SchemaRegistry.default()
        self._gate = CapabilityGate()
        self._mutators = mutators or build_default_registry(self._gate, self._config)
        self._validator = ActionValidator()
        self._resolver = DependencyResolver()
        self._snapshot = snapshot
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsLog()
        self.state = SessionState(batch_id=batch_id or uuid.uuid4().hex[:12])
        self._in_flight: set[tuple[str, str]] = set()

        missing = sorted(f for f in self._registry.families() if f not in self._mutators)
        if missing:
            raise MutatorNotFoundError(missing[0])

    @property
    def batch_id(self) -> str:
        return self.state.batch_id

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def run(self, batch: Sequence[Any]) -> ExecutionReport:
        """Execute *batch* and return a report with one outcome per entry."""
        self.state.advance(SessionPhase.VALIDATING)
        report = ExecutionReport(batch_id=self.batch_id, action_count=len(batch))
        with batch_context(self.batch_id):
            self.diagnostics.info("batch_started", {"batch_id": self.batch_id, "actions": len(batch)})
            try:
                snapshot = self._snapshot or await self._document.capture_snapshot()
            except Exception as exc:
                self.diagnostics.error("snapshot_failed", {"batch_id": self.batch_id, "error": str(exc)})
                self._fail_unread(batch, report, f"could not read the document: {exc}")
                return report
            ready = self._validate_all(batch, snapshot, report)

            self.state.advance(SessionPhase.ORDERING)
            resolved = self._resolver.resolve(ready, snapshot)
            for action in resolved.rejected:
                self._append(report, self._rejected_outcome(action))

            self.state.advance(SessionPhase.DISPATCHING)
            await self._dispatch_all(resolved.ordered, resolved.prerequisites, snapshot, report)

            self.state.advance(SessionPhase.COMPLETED)
            self.diagnostics.info(
                "batch_finished",
                {"batch_id": self.batch_id, "counts": report.counts(), "duration": self.state.duration},
            )
        return report

    # ------------------------------------------------------------------
    # Validating
    # ------------------------------------------------------------------

    def _validate_all(
        self, batch: Sequence[Any], snapshot: DocumentCapabilitySnapshot, report: ExecutionReport
    ) -> list[ValidatedAction]:
        ready: list[ValidatedAction] = []
        # sheets (casefolded) whose protection an earlier action changes; None is the workbook
        reprotected: set[str | None] = set()
        for index, raw in enumerate(batch):
            parsed = parse_descriptor(raw)
            if isinstance(parsed, DescriptorParseFailure):
                self._append(
                    report,
                    ExecutionOutcome(
                        index=index,
                        kind=parsed.kind,
                        status=OutcomeStatus.REJECTED,
                        target=parsed.target,
                        error_kind=parsed.error_kind,
                        message=parsed.reason,
                        field_name=parsed.field_name,
                    ),
                )
                continue
            action = self._validate_one(index, parsed, snapshot, reprotected)
            if action.is_ready:
                ready.append(action)
                if action.schema.family_id == PROTECTION_FAMILY:
                    sheet = action.schema.target_sheet(parsed, snapshot)
                    reprotected.add(sheet.casefold() if sheet else None)
            else:
                self._append(report, self._rejected_outcome(action))
        return ready

    def _validate_one(
        self,
        index: int,
        descriptor: ActionDescriptor,
        snapshot: DocumentCapabilitySnapshot,
        reprotected: set[str | None],
    ) -> ValidatedAction:
        schema = self._registry.lookup(descriptor.kind)
        if schema is None:
            return ValidatedAction.rejected(
                index, descriptor, ErrorKind.UNKNOWN_ACTION,
                f"'{descriptor.kind}' is not a known action kind",
            )
        sheet = schema.target_sheet(descriptor, snapshot)
        defer_protection = (sheet.casefold() if sheet else None) in reprotected or (
            schema.workbook_structure and None in reprotected
        )
        decision = self._gate.check(
            schema, descriptor, snapshot, defer_missing=True, defer_protection=defer_protection
        )
        if not decision.allowed:
            return ValidatedAction.rejected(
                index, descriptor, decision.error_kind, decision.reason, schema=schema
            )
        return self._validator.validate(index, descriptor, schema)

    # ------------------------------------------------------------------
    # Dispatching
    # ------------------------------------------------------------------

    async def _dispatch_all(
        self,
        ordered: list[ValidatedAction],
        prerequisites: dict[int, set[int]],
        snapshot: DocumentCapabilitySnapshot,
        report: ExecutionReport,
    ) -> None:
        loop = asyncio.get_running_loop()
        timeout = self._config.session_timeout_seconds
        deadline = loop.time() + timeout if timeout is not None else None
        abort_reason: str | None = None
        statuses: dict[int, OutcomeStatus] = {}

        for action in ordered:
            if abort_reason is None and deadline is not None and loop.time() >= deadline:
                abort_reason = f"session timeout of {timeout}s reached"
                self.diagnostics.warn("session_timeout", {"batch_id": self.batch_id})
            if abort_reason is not None:
                outcome = self._skipped(action, ErrorKind.BATCH_ABORTED, abort_reason)
            else:
                blocked = sorted(
                    i for i in prerequisites.get(action.index, ())
                    if statuses.get(i) != OutcomeStatus.APPLIED
                )
                if blocked:
                    outcome = self._skipped(
                        action, ErrorKind.UNRESOLVED_DEPENDENCY,
                        f"depends on action {blocked[0]}, which was not applied",
                    )
                else:
                    outcome = await self._dispatch(action, snapshot)

            statuses[action.index] = outcome.status
            self._append(report, outcome)
            if (
                outcome.status == OutcomeStatus.FAILED
                and abort_reason is None
                and self._config.completion_policy == CompletionPolicy.ABORT_ON_FIRST_FAILURE
            ):
                abort_reason = f"aborted after action {action.index} failed"

    async def _dispatch(
        self, action: ValidatedAction, snapshot: DocumentCapabilitySnapshot
    ) -> ExecutionOutcome:
        schema = action.schema
        assert schema is not None
        guard_key = (action.kind, (action.target or "").casefold())
        if guard_key in self._in_flight:
            return ExecutionOutcome(
                index=action.index,
                kind=action.kind,
                status=OutcomeStatus.FAILED,
                target=action.target,
                error_kind=ErrorKind.DOCUMENT_REJECTED,
                message=f"{action.kind} on {action.target!r} is already being applied",
            )

        mutator = self._mutators.get(schema.family_id)
        self._in_flight.add(guard_key)
        try:
            with action_context(action.index, action.kind):
                outcome = await mutator.apply(action, self._document)
        finally:
            self._in_flight.discard(guard_key)

        if outcome.entity is not None:
            requested = schema.created_entity(action.descriptor, action.params, snapshot.active_sheet)
            if requested is None and schema.entity_kind is not None:
                requested = EntityRef(schema.entity_kind, outcome.entity)
            self.state.record_created(requested, outcome.entity)
        return outcome

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    @staticmethod
    def _rejected_outcome(action: ValidatedAction) -> ExecutionOutcome:
        return ExecutionOutcome(
            index=action.index,
            kind=action.kind,
            status=OutcomeStatus.REJECTED,
            target=action.target,
            error_kind=action.error_kind,
            message=action.reason,
            field_name=action.field_name,
        )

    @staticmethod
    def _skipped(action: ValidatedAction, error_kind: ErrorKind, message: str) -> ExecutionOutcome:
        return ExecutionOutcome(
            index=action.index,
            kind=action.kind,
            status=OutcomeStatus.SKIPPED,
            target=action.target,
            error_kind=error_kind,
            message=message,
        )

    def _fail_unread(self, batch: Sequence[Any], report: ExecutionReport, message: str) -> None:
        """Fail every entry of *batch* when the document could not be read at all."""
        for index, raw in enumerate(batch):
            parsed = parse_descriptor(raw)
            self._append(
                report,
                ExecutionOutcome(
                    index=index,
                    kind=parsed.kind,
                    status=OutcomeStatus.FAILED,
                    target=parsed.target,
                    error_kind=ErrorKind.DOCUMENT_REJECTED,
                    message=message,
                ),
            )
        for phase in (SessionPhase.ORDERING, SessionPhase.DISPATCHING, SessionPhase.COMPLETED):
            self.state.advance(phase)

    def _append(self, report: ExecutionReport, outcome: ExecutionOutcome) -> None:
        report.append(outcome)
        data = {"index": outcome.index, "kind": outcome.kind, "status": outcome.status.value}
        if outcome.status == OutcomeStatus.APPLIED:
            if outcome.entity is not None:
                data["entity"] = outcome.entity
            self.diagnostics.info("action_applied", data)
            for warning in outcome.warnings:
                self.diagnostics.warn("action_warning", {**data, "warning": warning})
            return
        data["error_kind"] = str(outcome.error_kind) if outcome.error_kind else None
        data["message"] = outcome.message
        if outcome.status == OutcomeStatus.FAILED:
            self.diagnostics.error("action_failed", data)
        else:
            self.diagnostics.warn(f"action_{outcome.status.value}", data)
