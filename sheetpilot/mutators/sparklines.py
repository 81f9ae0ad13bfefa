"""Sparkline mutator — in-cell charts.

A sparkline group occupies a one-dimensional block of cells, one sparkline
per cell, each summarising one row (or column) of the source data.  Crossing
the per-sheet soft limit produces a warning, never a failure.
"""

from __future__ import annotations

from sheetpilot.document.base import DocumentHandle, SparklineInfo
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect


class SparklineMutator(BaseMutator):
    FAMILY_ID = "sparklines"

    async def _action_create_sparkline(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        p = ctx.params
        location = ctx.range()
        source = ctx.range(p.source_data)
        if location.row_count > 1 and location.column_count > 1:
            raise self.policy("a sparkline location must be a single row or column", "target")
        if location.size not in (source.row_count, source.column_count):
            raise self.policy(
                f"the location holds {location.size} cells but the source data is "
                f"{source.row_count}x{source.column_count}",
                "sourceData",
            )

        warnings = []
        total = await document.count_sparklines(location.sheet) + location.size
        if total > self._config.sparkline_soft_limit:
            warnings.append(
                f"sheet '{location.sheet}' now holds {total} sparklines; "
                f"more than {self._config.sparkline_soft_limit} may slow the workbook down"
            )

        properties = {"color": p.color} if p.color else {}
        name = await document.add_sparkline(
            SparklineInfo(
                name=p.name or "",
                sheet=location.sheet,
                location=location,
                source=source,
                sparkline_type=p.sparkline_type,
                properties=properties,
            )
        )
        return MutationEffect(
            detail={"location": location.qualified, "source": source.qualified, "count": location.size},
            created=name,
            warnings=warnings,
        )

    async def _action_configure_sparkline(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        changes = ctx.params.model_dump(exclude_none=True)
        await document.update_sparkline(ctx.target, changes)
        return MutationEffect(detail={"applied": sorted(changes)})

    async def _action_delete_sparkline(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        await document.delete_sparkline(ctx.target)
        return MutationEffect()
