"""Chart mutator — chart, pivotChart.

``pivotChart`` aggregates one column of the target by another, writes the
aggregated table (largest value first) below the source, and charts that
helper table.
"""

from __future__ import annotations

import statistics
from typing import Any

from sheetpilot.document.base import ChartInfo, DocumentHandle
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect
from sheetpilot.protocol.ranges import CellRange


def _numbers(values: list[Any]) -> list[float]:
    return [v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)]


def aggregate(values: list[Any], function: str) -> float:
    """Apply a pivot-style aggregate to one group of raw cell values."""
    if function == "count":
        return len([v for v in values if v is not None])
    numbers = _numbers(values)
    if function == "countNumbers":
        return len(numbers)
    if not numbers:
        return 0
    if function == "sum":
        return sum(numbers)
    if function == "average":
        return statistics.fmean(numbers)
    if function == "max":
        return max(numbers)
    if function == "min":
        return min(numbers)
    if len(numbers) < 2:
        return 0
    if function == "stdDev":
        return statistics.stdev(numbers)
    return statistics.variance(numbers)


class ChartMutator(BaseMutator):
    FAMILY_ID = "charts"

    async def _action_chart(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        p = ctx.params
        source = ctx.range()
        properties = {"series_by": p.series_by}
        if p.width is not None:
            properties["width"] = p.width
        if p.height is not None:
            properties["height"] = p.height
        name = await document.add_chart(
            ChartInfo(
                name=p.name or "",
                sheet=source.sheet,
                chart_type=p.chart_type,
                source=source,
                title=p.title,
                position=p.position,
                properties=properties,
            )
        )
        return MutationEffect(detail={"chart_type": p.chart_type}, created=name)

    async def _action_pivot_chart(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        p = ctx.params
        source = ctx.range()
        grid = await document.read_range(source)
        headers = [str(h).strip().casefold() if h is not None else "" for h in grid[0]]
        try:
            group_index = headers.index(p.group_by.strip().casefold())
        except ValueError:
            raise self.policy(f"no column named {p.group_by!r} in the source", "groupBy") from None
        try:
            value_index = headers.index(p.value_field.strip().casefold())
        except ValueError:
            raise self.policy(f"no column named {p.value_field!r} in the source", "valueField") from None

        groups: dict[str, list[Any]] = {}
        for row in grid[1:]:
            key = row[group_index]
            if key is None or str(key).strip() == "":
                continue
            groups.setdefault(str(key).strip(), []).append(row[value_index])
        if not groups:
            raise self.policy(f"column {p.group_by!r} has no values to group by", "groupBy")

        rows = [[key, aggregate(values, p.aggregate)] for key, values in groups.items()]
        rows.sort(key=lambda row: row[1], reverse=True)
        table = [[p.group_by, f"{p.aggregate.capitalize()} of {p.value_field}"], *rows]

        if p.destination is not None:
            anchor = ctx.range(p.destination)
        else:
            anchor = CellRange(source.bottom + 3, source.left, source.bottom + 3, source.left, source.sheet)
        helper = anchor.resized(len(table), 2)
        await document.write_range(helper, table)

        name = await document.add_chart(
            ChartInfo(
                name=p.name or "",
                sheet=helper.sheet,
                chart_type=p.chart_type,
                source=helper,
                title=p.title or f"{p.aggregate.capitalize()} of {p.value_field} by {p.group_by}",
                properties={"series_by": "columns"},
            )
        )
        return MutationEffect(
            detail={"groups": len(rows), "helper_range": helper.qualified}, created=name
        )
