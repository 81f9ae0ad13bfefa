"""Worksheet mutator — sheet lifecycle, visibility and window settings."""

from __future__ import annotations

from sheetpilot.document.base import DocumentHandle
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect
from sheetpilot.protocol.ranges import CellRange, parse_cell


class WorksheetMutator(BaseMutator):
    FAMILY_ID = "worksheets"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _action_sheet(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        p = ctx.params
        name = ctx.target
        await document.add_sheet(name, p.position)
        detail = {}
        if p.values:
            detail["cells"] = await document.write_range(CellRange(1, 1, 1, 1, name), p.values)
        if p.activate:
            await document.activate_sheet(name)
        return MutationEffect(detail=detail, created=name)

    async def _action_rename_sheet(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        old = ctx.sheet()
        await document.rename_sheet(old, ctx.params.new_name)
        return MutationEffect(detail={"old_name": old, "new_name": ctx.params.new_name})

    async def _action_move_sheet(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.move_sheet(ctx.sheet(), ctx.params.position)
        return MutationEffect(detail={"position": ctx.params.position})

    async def _action_hide_sheet(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        visibility = "veryHidden" if ctx.params.very_hidden else "hidden"
        await document.set_sheet_visibility(ctx.sheet(), visibility)
        return MutationEffect(detail={"visibility": visibility})

    async def _action_unhide_sheet(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.set_sheet_visibility(ctx.sheet(), "visible")
        return MutationEffect(detail={"visibility": "visible"})

    # ------------------------------------------------------------------
    # Window
    # ------------------------------------------------------------------

    async def _action_freeze_panes(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        p = ctx.params
        rows, columns = p.rows, p.columns
        if p.cell is not None:
            cell = parse_cell(p.cell)
            rows, columns = cell.top - 1, cell.left - 1
        await document.set_freeze_panes(ctx.sheet(), rows, columns)
        return MutationEffect(detail={"rows": rows, "columns": columns})

    async def _action_unfreeze_pane(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.set_freeze_panes(ctx.sheet(), 0, 0)
        return MutationEffect()

    async def _action_set_zoom(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.set_zoom(ctx.sheet(), ctx.params.zoom)
        return MutationEffect(detail={"zoom": ctx.params.zoom})

    async def _action_split_pane(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.set_split(ctx.sheet(), ctx.params.row, ctx.params.column)
        return MutationEffect(detail={"row": ctx.params.row, "column": ctx.params.column})

    async def _action_create_view(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        sheet = ctx.canonical_sheet(ctx.params.sheet or ctx.active_sheet)
        await document.add_sheet_view(sheet, ctx.target)
        if ctx.params.activate:
            await document.activate_sheet(sheet)
        return MutationEffect(detail={"sheet": sheet}, created=ctx.target)
