"""Unit tests — SparklineMutator."""

from __future__ import annotations

import pytest

from sheetpilot.config import EngineConfig
from sheetpilot.document.memory import InMemoryWorkbook
from sheetpilot.mutators.sparklines import SparklineMutator
from sheetpilot.protocol.models import ErrorKind, OutcomeStatus

TREND = {"sourceData": "C2:C5"}


@pytest.fixture
def mutator() -> SparklineMutator:
    return SparklineMutator()


@pytest.mark.unit
class TestCreateSparkline:
    async def test_one_per_source_row(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("createSparkline", "D2:D5", TREND), doc)
        assert outcome.entity == "Sparkline1"
        assert outcome.detail == {"location": "Sheet1!D2:D5", "source": "Sheet1!C2:C5", "count": 4, "entity": "Sparkline1"}
        assert outcome.warnings == ()

    async def test_source_width_may_match_instead(self, mutator, make_action, doc) -> None:
        action = make_action("createSparkline", "E1", {"sourceData": "A5:C5", "sparklineType": "column"})
        outcome = await mutator.apply(action, doc)
        assert outcome.status == OutcomeStatus.APPLIED
        assert doc.sparkline("Sparkline1").sparkline_type == "column"

    async def test_location_must_be_one_dimensional(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("createSparkline", "D2:E5", TREND), doc)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.INVALID_PARAMETER
        assert outcome.field_name == "target"

    async def test_size_mismatch(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("createSparkline", "D2:D3", TREND), doc)
        assert outcome.field_name == "sourceData"
        assert "2 cells" in outcome.message
        assert doc.sparklines == []

    async def test_soft_limit_warns(self, make_action, doc) -> None:
        mutator = SparklineMutator(config=EngineConfig(sparkline_soft_limit=3))
        outcome = await mutator.apply(make_action("createSparkline", "D2:D5", TREND), doc)
        assert outcome.status == OutcomeStatus.APPLIED
        [warning] = outcome.warnings
        assert "4 sparklines" in warning

    async def test_overlapping_group_rejected(self, mutator, make_action, doc) -> None:
        await mutator.apply(make_action("createSparkline", "D2:D5", TREND), doc)
        outcome = await mutator.apply(make_action("createSparkline", "D4:D7", TREND), doc)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.DOCUMENT_REJECTED

    async def test_missing_source_sheet_skipped(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("createSparkline", "D2:D5", {"sourceData": "Old!C2:C5"}), doc)
        assert outcome.status == OutcomeStatus.SKIPPED
        assert outcome.error_kind == ErrorKind.ENTITY_NOT_FOUND


@pytest.mark.unit
class TestEditSparkline:
    async def test_configure_and_delete(self, mutator, make_action, doc) -> None:
        await mutator.apply(make_action("createSparkline", "D2:D5", {**TREND, "name": "Trend"}), doc)
        action = make_action("configureSparkline", "Trend", {"showMarkers": True, "sparklineType": "winLoss"})
        outcome = await mutator.apply(action, doc)
        assert outcome.detail == {"applied": ["show_markers", "sparkline_type"]}
        sparkline = doc.sparkline("Trend")
        assert sparkline.sparkline_type == "winLoss"
        assert sparkline.properties == {"show_markers": True}

        await mutator.apply(make_action("deleteSparkline", "trend"), doc)
        assert doc.sparkline("Trend") is None
