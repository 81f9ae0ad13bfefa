"""Mutator layer — one mutator per action family, and their registry."""

from __future__ import annotations

from sheetpilot.config import EngineConfig
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect, MutatorRegistry
from sheetpilot.mutators.charts import ChartMutator
from sheetpilot.mutators.comments import CommentMutator
from sheetpilot.mutators.conditional_format import ConditionalFormatMutator
from sheetpilot.mutators.data_types import DataTypeMutator
from sheetpilot.mutators.hyperlinks import HyperlinkMutator
from sheetpilot.mutators.named_ranges import NamedRangeMutator
from sheetpilot.mutators.page_setup import PageSetupMutator
from sheetpilot.mutators.pivots import PivotMutator
from sheetpilot.mutators.protection import ProtectionMutator
from sheetpilot.mutators.range_ops import RangeMutator
from sheetpilot.mutators.rows_columns import RowsColumnsMutator
from sheetpilot.mutators.shapes import ShapeMutator
from sheetpilot.mutators.slicers import SlicerMutator
from sheetpilot.mutators.sparklines import SparklineMutator
from sheetpilot.mutators.tables import TableMutator
from sheetpilot.mutators.worksheets import WorksheetMutator
from sheetpilot.security.gate import CapabilityGate

DEFAULT_MUTATORS: tuple[type[BaseMutator], ...] = (
    RangeMutator,
    ConditionalFormatMutator,
    ChartMutator,
    WorksheetMutator,
    TableMutator,
    RowsColumnsMutator,
    PivotMutator,
    SlicerMutator,
    NamedRangeMutator,
    ProtectionMutator,
    ShapeMutator,
    CommentMutator,
    SparklineMutator,
    PageSetupMutator,
    DataTypeMutator,
    HyperlinkMutator,
)


def build_default_registry(
    gate: CapabilityGate | None = None, config: EngineConfig | None = None
) -> MutatorRegistry:
    """Registry holding one instance of every built-in family mutator."""
    gate = gate or CapabilityGate()
    registry = MutatorRegistry()
    for mutator_cls in DEFAULT_MUTATORS:
        registry.register(mutator_cls(gate=gate, config=config))
    return registry


__all__ = [
    "BaseMutator",
    "DEFAULT_MUTATORS",
    "MutationContext",
    "MutationEffect",
    "MutatorRegistry",
    "build_default_registry",
]
