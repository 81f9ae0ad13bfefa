"""Orchestration layer — Diagnostics log.

A small bounded, newest-first record of what the engine did, meant for a
UI panel or a CLI ``--verbose`` dump.  Every entry is also forwarded to
structlog, so the diagnostics log never replaces regular logging.
"""

from __future__ import annotations

import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Literal

from sheetpilot.logging import get_logger

log = get_logger(__name__)

Level = Literal["debug", "info", "warn", "error"]
Subscriber = Callable[[list["DiagnosticEntry"]], None]

_STRUCTLOG_METHOD = {"debug": "debug", "info": "info", "warn": "warning", "error": "error"}


@dataclass(frozen=True)
class DiagnosticEntry:
    id: str
    timestamp: float
    level: Level
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "level": self.level,
            "message": self.message,
            "data": self.data,
        }


class DiagnosticsLog:
    """Bounded in-memory diagnostics, newest entry first.

    Usage::

        diagnostics = DiagnosticsLog(max_entries=100)
        diagnostics.subscribe(lambda entries: render(entries))
        diagnostics.info("batch_started", {"actions": 3})
    """

    def __init__(self, max_entries: int = 100, debug: bool = False) -> None:
        self._entries: deque[DiagnosticEntry] = deque(maxlen=max_entries)
        self._subscribers: list[Subscriber] = []
        self.debug_mode = debug

    def record(self, message: str, level: Level = "info", data: dict[str, Any] | None = None) -> DiagnosticEntry | None:
        """Append an entry; debug entries are dropped unless debug mode is on."""
        getattr(log, _STRUCTLOG_METHOD[level])(message, **(data or {}))
        if level == "debug" and not self.debug_mode:
            return None
        entry = DiagnosticEntry(
            id=uuid.uuid4().hex[:12],
            timestamp=time.time(),
            level=level,
            message=message,
            data=dict(data or {}),
        )
        self._entries.appendleft(entry)
        snapshot = self.entries()
        for subscriber in list(self._subscribers):
            subscriber(snapshot)
        return entry

    def info(self, message: str, data: dict[str, Any] | None = None) -> DiagnosticEntry | None:
        return self.record(message, "info", data)

    def warn(self, message: str, data: dict[str, Any] | None = None) -> DiagnosticEntry | None:
        return self.record(message, "warn", data)

    def error(self, message: str, data: dict[str, Any] | None = None) -> DiagnosticEntry | None:
        return self.record(message, "error", data)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> DiagnosticEntry | None:
        return self.record(message, "debug", data)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def entries(self, level: Level | None = None) -> list[DiagnosticEntry]:
        if level is None:
            return list(self._entries)
        return [e for e in self._entries if e.level == level]

    def clear(self) -> None:
        self._entries.clear()
        for subscriber in list(self._subscribers):
            subscriber([])

    def to_list(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)
