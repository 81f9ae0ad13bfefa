"""Rows/columns mutator — structural edits, merging, find/replace and text splitting."""

from __future__ import annotations

import re
from typing import Any

from sheetpilot.document.base import DocumentHandle
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect, clip_to_used
from sheetpilot.protocol.models import ErrorKind
from sheetpilot.protocol.ranges import parse_columns, parse_rows


class RowsColumnsMutator(BaseMutator):
    FAMILY_ID = "rows_columns"

    # ------------------------------------------------------------------
    # Insert / delete
    # ------------------------------------------------------------------

    async def _action_insert_rows(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        rows = ctx.qualify(parse_rows(ctx.target))
        count = ctx.params.count or rows.row_count
        await document.insert_rows(rows.sheet, rows.top, count)
        return MutationEffect(detail={"at": rows.top, "count": count})

    async def _action_insert_columns(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        columns = ctx.qualify(parse_columns(ctx.target))
        count = ctx.params.count or columns.column_count
        await document.insert_columns(columns.sheet, columns.left, count)
        return MutationEffect(detail={"at": columns.left, "count": count})

    async def _action_delete_rows(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        rows = ctx.qualify(parse_rows(ctx.target))
        await document.delete_rows(rows.sheet, rows.top, rows.bottom)
        return MutationEffect(detail={"count": rows.row_count})

    async def _action_delete_columns(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        columns = ctx.qualify(parse_columns(ctx.target))
        await document.delete_columns(columns.sheet, columns.left, columns.right)
        return MutationEffect(detail={"count": columns.column_count})

    # ------------------------------------------------------------------
    # Merging
    # ------------------------------------------------------------------

    async def _action_merge_cells(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.merge_cells(ctx.range(), ctx.params.across)
        return MutationEffect(detail={"across": ctx.params.across})

    async def _action_unmerge_cells(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.unmerge_cells(ctx.range())
        return MutationEffect()

    # ------------------------------------------------------------------
    # Content transforms
    # ------------------------------------------------------------------

    async def _action_find_replace(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        p = ctx.params
        if ctx.target is None:
            used = await document.used_range(ctx.active_sheet)
            areas = [used] if used is not None else []
        else:
            areas = [await clip_to_used(document, area) for area in ctx.areas()]

        flags = 0 if p.match_case else re.IGNORECASE
        pattern = re.compile(re.escape(p.find), flags)
        whole = re.compile(f"^{re.escape(p.find)}$", flags)

        def replace(value: Any) -> Any:
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                return value
            text = str(value)
            if p.match_entire_cell:
                return p.replace if whole.match(text) else value
            replaced = pattern.sub(lambda _m: p.replace, text)
            return replaced if replaced != text else value

        changed = 0
        for area in areas:
            if area is None:
                continue
            grid = await document.read_range(area, formulas=True)
            updated = [[replace(v) for v in row] for row in grid]
            hits = sum(a is not b for ra, rb in zip(grid, updated) for a, b in zip(ra, rb))
            if hits:
                await document.write_range(area, updated)
                changed += hits
        return MutationEffect(detail={"cells": changed})

    async def _action_text_to_columns(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        p = ctx.params
        source = await clip_to_used(document, ctx.range())
        if source is None:
            return MutationEffect(detail={"rows": 0, "columns": 0})
        values = [row[0] for row in await document.read_range(source)]
        split = []
        for value in values:
            if isinstance(value, str):
                parts = value.split(p.delimiter)
                split.append([part.strip() if p.trim else part for part in parts])
            else:
                split.append([value])
        width = max(len(parts) for parts in split)
        grid = [parts + [None] * (width - len(parts)) for parts in split]

        anchor = ctx.range(p.destination) if p.destination else source.top_left()
        dest = anchor.resized(len(grid), width)
        if not p.force_overwrite:
            existing = await document.read_range(dest, formulas=True)
            for r, row in enumerate(existing):
                for c, value in enumerate(row):
                    cell = (dest.top + r, dest.left + c)
                    if value is not None and not (dest.sheet == source.sheet and source.contains(*cell)):
                        raise self.policy(
                            "the destination already contains data; set forceOverwrite to replace it",
                            "destination",
                            ErrorKind.DOCUMENT_REJECTED,
                        )
        await document.write_range(dest, grid)
        return MutationEffect(detail={"rows": len(grid), "columns": width})