"""Shared pytest fixtures for the sheetpilot test suite."""

from __future__ import annotations

from typing import Any, Callable, Generator

import pytest

from sheetpilot.config import EngineConfig, Settings, override_settings
from sheetpilot.document.memory import InMemoryWorkbook
from sheetpilot.protocol.models import ActionDescriptor, ValidatedAction
from sheetpilot.protocol.schema import SchemaRegistry
from sheetpilot.protocol.validator import ActionValidator
from sheetpilot.security.gate import CapabilityGate

SALES_ROWS: list[list[Any]] = [
    ["Region", "Product", "Revenue"],
    ["North", "Widget", 120],
    ["South", "Widget", 80],
    ["North", "Gadget", 200],
    ["East", "Gadget", 50],
]

MakeAction = Callable[..., ValidatedAction]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Generator[Settings, None, None]:
    settings = Settings(
        logging={"level": "debug", "format": "console", "file": None},
        diagnostics={"max_entries": 50, "debug": True},
    )
    override_settings(settings)
    yield settings
    override_settings(None)


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig()


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def registry() -> SchemaRegistry:
    return SchemaRegistry.default()


@pytest.fixture
def validator() -> ActionValidator:
    return ActionValidator()


@pytest.fixture
def gate() -> CapabilityGate:
    return CapabilityGate()


@pytest.fixture
def make_action(registry: SchemaRegistry, validator: ActionValidator) -> MakeAction:
    """Build a ready ``ValidatedAction`` the way the session would."""

    def _make(
        kind: str,
        target: str | None = None,
        params: dict[str, Any] | None = None,
        index: int = 0,
        depends_on: str | None = None,
    ) -> ValidatedAction:
        descriptor = ActionDescriptor(
            kind=kind, target=target, parameters=params or {}, depends_on=depends_on
        )
        action = validator.validate(index, descriptor, registry.get(kind))
        assert action.is_ready, action.reason
        return action

    return _make


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@pytest.fixture
def doc() -> InMemoryWorkbook:
    """Two-sheet workbook with a small sales block at Sheet1!A1:C5."""
    workbook = InMemoryWorkbook(sheets=["Sheet1", "Report"])
    workbook.set_values("Sheet1", "A1", SALES_ROWS)
    return workbook


@pytest.fixture
def empty_doc() -> InMemoryWorkbook:
    return InMemoryWorkbook()
