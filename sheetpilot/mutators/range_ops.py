"""Range mutator — cell contents and whole-range operations.

Actions: formula, values, format, validation, sort, autofill, copy,
copyValues, filter, clearFilter, removeDuplicates.

Whole-row and whole-column targets are clipped to the sheet's used range
before any cells are read or written.
"""

from __future__ import annotations

from typing import Any

from sheetpilot.document.base import DocumentHandle
from sheetpilot.mutators.base import (
    BaseMutator,
    MutationContext,
    MutationEffect,
    as_grid,
    clip_to_used,
)
from sheetpilot.protocol.ranges import CellRange, shift_formula


def _is_formula(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("=")


def _sort_rank(value: Any) -> tuple[int, Any]:
    # numbers < text < logicals, blanks handled by the caller
    if isinstance(value, bool):
        return 2, value
    if isinstance(value, (int, float)):
        return 0, value
    return 1, str(value).casefold()


def _dedupe_key(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


def _series(values: list[Any], length: int, step_offset: tuple[int, int]) -> list[Any]:
    """Extend *values* to *length* items the way a fill handle does."""
    numeric = values and all(
        isinstance(v, (int, float)) and not isinstance(v, bool) for v in values
    )
    result = []
    for i in range(length):
        if i < len(values):
            result.append(values[i])
        elif numeric and len(values) > 1:
            step = values[-1] - values[-2]
            result.append(values[-1] + step * (i - len(values) + 1))
        else:
            seed = values[i % len(values)]
            if _is_formula(seed):
                seed = shift_formula(seed, *((i - i % len(values)) * d for d in step_offset))
            result.append(seed)
    return result


class RangeMutator(BaseMutator):
    FAMILY_ID = "range"

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------

    async def _action_formula(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        formula = ctx.params.formula
        written = 0
        for area in ctx.areas():
            area = await clip_to_used(document, area)
            if area is None:
                continue
            grid = [
                [shift_formula(formula, r, c) for c in range(area.column_count)]
                for r in range(area.row_count)
            ]
            written += await document.write_range(area, grid)
        return MutationEffect(detail={"cells": written})

    async def _action_values(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        grid = as_grid(ctx.params.values)
        written = 0
        for area in ctx.areas():
            written += await document.write_range(area, grid)
        return MutationEffect(detail={"cells": written})

    async def _action_format(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        fmt = ctx.params.model_dump(exclude_none=True)
        for area in ctx.areas():
            await document.format_range(area, fmt)
        return MutationEffect(detail={"applied": sorted(fmt)})

    async def _action_validation(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        rule = ctx.params.model_dump(exclude_none=True)
        if ctx.params.source is not None:
            rule["source"] = ctx.range(ctx.params.source).qualified
        for area in ctx.areas():
            await document.set_validation(area, rule)
        return MutationEffect(detail={"type": ctx.params.type})

    # ------------------------------------------------------------------
    # Sorting and filtering
    # ------------------------------------------------------------------

    async def _action_sort(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        p = ctx.params
        rng = await clip_to_used(document, ctx.range())
        if rng is None:
            return MutationEffect(detail={"rows": 0})
        if p.column >= rng.column_count:
            raise self.policy(
                f"sort column {p.column} is outside the {rng.column_count}-column range", "column"
            )
        grid = await document.read_range(rng, formulas=True)
        header, body = (grid[:1], grid[1:]) if p.has_headers else ([], grid)
        filled = [row for row in body if row[p.column] is not None]
        blanks = [row for row in body if row[p.column] is None]
        filled.sort(key=lambda row: _sort_rank(row[p.column]), reverse=not p.ascending)
        await document.write_range(rng, header + filled + blanks)
        return MutationEffect(detail={"rows": len(body)})

    async def _action_filter(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        rng = ctx.range()
        if ctx.params.column >= rng.column_count:
            raise self.policy(
                f"filter column {ctx.params.column} is outside the {rng.column_count}-column range",
                "column",
            )
        visible = await document.apply_filter(rng, ctx.params.column, list(ctx.params.values))
        return MutationEffect(detail={"visible_rows": visible})

    async def _action_clear_filter(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        sheet = ctx.sheet()
        await document.clear_filter(sheet)
        return MutationEffect(detail={"sheet": sheet})

    async def _action_remove_duplicates(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        p = ctx.params
        rng = await clip_to_used(document, ctx.range())
        if rng is None:
            return MutationEffect(detail={"removed": 0, "remaining": 0})
        columns = p.columns if p.columns is not None else list(range(rng.column_count))
        outside = [c for c in columns if c >= rng.column_count]
        if outside:
            raise self.policy(
                f"column {outside[0]} is outside the {rng.column_count}-column range", "columns"
            )
        grid = await document.read_range(rng, formulas=True)
        header, body = (grid[:1], grid[1:]) if p.has_headers else ([], grid)
        seen: set[tuple[Any, ...]] = set()
        kept = []
        for row in body:
            key = tuple(_dedupe_key(row[c]) for c in columns)
            if key not in seen:
                seen.add(key)
                kept.append(row)
        removed = len(body) - len(kept)
        if removed:
            padding = [[None] * rng.column_count for _ in range(removed)]
            await document.write_range(rng, header + kept + padding)
        return MutationEffect(detail={"removed": removed, "remaining": len(kept)})

    # ------------------------------------------------------------------
    # Copying and filling
    # ------------------------------------------------------------------

    async def _action_autofill(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        target = ctx.range()
        source = ctx.range(ctx.params.source)
        if source.sheet != target.sheet or not (
            target.contains(source.top, source.left) and target.contains(source.bottom, source.right)
        ):
            raise self.policy("the target range must contain the source range", "source")
        if (source.top, source.left) != (target.top, target.left):
            raise self.policy("the source must sit at the top-left of the target", "source")
        vertical = source.column_count == target.column_count
        if not vertical and source.row_count != target.row_count:
            raise self.policy("autofill extends either down or right, not both", "source")

        seed = await document.read_range(source, formulas=True)
        if vertical:
            columns = [
                _series([row[c] for row in seed], target.row_count, (1, 0))
                for c in range(source.column_count)
            ]
            grid = [[columns[c][r] for c in range(target.column_count)] for r in range(target.row_count)]
        else:
            grid = [_series(row, target.column_count, (0, 1)) for row in seed]
        cells = await document.write_range(target, grid)
        return MutationEffect(detail={"cells": cells - source.size})

    async def _copy(self, ctx: MutationContext, document: DocumentHandle, formulas: bool) -> CellRange:
        source = ctx.range(ctx.params.source)
        target = ctx.range()
        grid = await document.read_range(source, formulas=formulas)
        rows, columns = target.top - source.top, target.left - source.left
        if formulas:
            grid = [
                [shift_formula(v, rows, columns) if _is_formula(v) else v for v in row]
                for row in grid
            ]
        dest = target.resized(source.row_count, source.column_count)
        await document.write_range(dest, grid)
        return dest

    async def _action_copy(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        dest = await self._copy(ctx, document, formulas=True)
        return MutationEffect(detail={"destination": dest.qualified})

    async def _action_copy_values(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        dest = await self._copy(ctx, document, formulas=False)
        return MutationEffect(detail={"destination": dest.qualified})
