"""Orchestration layer — Session state machine.

Phase transitions are one-directional:
    collecting -> validating -> ordering -> dispatching -> completed

A session that reached ``completed`` can never run again.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from sheetpilot.exceptions import SessionStateError
from sheetpilot.protocol.schema import EntityKind, EntityRef


class SessionPhase(str, Enum):
    COLLECTING = "collecting"
    VALIDATING = "validating"
    ORDERING = "ordering"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"


_ORDER = list(SessionPhase)


@dataclass
class SessionState:
    """Live phase and bookkeeping of one execution session."""

    batch_id: str
    phase: SessionPhase = SessionPhase.COLLECTING
    started_at: float | None = None
    finished_at: float | None = None
    phase_times: dict[str, float] = field(default_factory=dict)
    # (entity kind, casefolded requested name) -> name the document assigned
    created: dict[tuple[EntityKind, str], str] = field(default_factory=dict)

    def advance(self, phase: SessionPhase) -> None:
        """Move to *phase*, which must be the next phase in sequence."""
        current = _ORDER.index(self.phase)
        if _ORDER.index(phase) != current + 1:
            raise SessionStateError(self.phase.value, phase.value)
        now = time.time()
        if phase == SessionPhase.VALIDATING:
            self.started_at = now
        if phase == SessionPhase.COMPLETED:
            self.finished_at = now
        self.phase = phase
        self.phase_times[phase.value] = now

    def record_created(self, ref: EntityRef | None, assigned: str) -> None:
        if ref is not None:
            self.created[ref.key] = assigned

    def created_name(self, ref: EntityRef) -> str | None:
        return self.created.get(ref.key)

    @property
    def duration(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return self.finished_at - self.started_at
