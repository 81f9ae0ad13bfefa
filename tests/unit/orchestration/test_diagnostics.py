"""Unit tests — DiagnosticsLog (bounded, newest first, subscribers)."""

from __future__ import annotations

import pytest

from sheetpilot.orchestration.diagnostics import DiagnosticEntry, DiagnosticsLog


@pytest.mark.unit
class TestRecording:
    def test_newest_first(self) -> None:
        diagnostics = DiagnosticsLog()
        diagnostics.info("first")
        diagnostics.warn("second")
        assert [e.message for e in diagnostics.entries()] == ["second", "first"]

    def test_bounded(self) -> None:
        diagnostics = DiagnosticsLog(max_entries=3)
        for i in range(5):
            diagnostics.info(f"entry-{i}")
        assert len(diagnostics) == 3
        assert diagnostics.entries()[-1].message == "entry-2"

    def test_debug_dropped_unless_enabled(self) -> None:
        quiet = DiagnosticsLog()
        assert quiet.debug("noise") is None
        assert len(quiet) == 0

        loud = DiagnosticsLog(debug=True)
        assert isinstance(loud.debug("noise"), DiagnosticEntry)
        assert len(loud) == 1

    def test_filter_by_level(self) -> None:
        diagnostics = DiagnosticsLog()
        diagnostics.info("ok")
        diagnostics.error("bad", {"index": 2})
        [entry] = diagnostics.entries("error")
        assert entry.data == {"index": 2}

    def test_entry_data_is_copied(self) -> None:
        diagnostics = DiagnosticsLog()
        data = {"a": 1}
        entry = diagnostics.info("x", data)
        data["a"] = 2
        assert entry.data == {"a": 1}

    def test_to_list(self) -> None:
        diagnostics = DiagnosticsLog()
        diagnostics.info("x")
        [item] = diagnostics.to_list()
        assert item["message"] == "x"
        assert item["level"] == "info"
        assert len(item["id"]) == 12


@pytest.mark.unit
class TestSubscribers:
    def test_subscriber_gets_snapshot(self) -> None:
        diagnostics = DiagnosticsLog()
        seen: list[list[DiagnosticEntry]] = []
        diagnostics.subscribe(seen.append)
        diagnostics.info("one")
        diagnostics.info("two")
        assert [len(s) for s in seen] == [1, 2]
        assert seen[-1][0].message == "two"

    def test_unsubscribe(self) -> None:
        diagnostics = DiagnosticsLog()
        seen: list[list[DiagnosticEntry]] = []
        unsubscribe = diagnostics.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        diagnostics.info("one")
        assert seen == []

    def test_clear_notifies_with_empty_list(self) -> None:
        diagnostics = DiagnosticsLog()
        seen: list[list[DiagnosticEntry]] = []
        diagnostics.info("one")
        diagnostics.subscribe(seen.append)
        diagnostics.clear()
        assert len(diagnostics) == 0
        assert seen == [[]]
