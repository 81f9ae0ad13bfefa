"""Page-setup mutator — print layout of a worksheet."""

from __future__ import annotations

from sheetpilot.document.base import DocumentHandle
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect


class PageSetupMutator(BaseMutator):
    FAMILY_ID = "page_setup"

    async def _layout(self, ctx: MutationContext, document: DocumentHandle, key: str) -> MutationEffect:
        sheet = ctx.sheet()
        values = ctx.params.model_dump(exclude_none=True)
        await document.update_page_layout(sheet, {key: values})
        return MutationEffect(detail={"sheet": sheet, "applied": sorted(values)})

    async def _action_set_page_setup(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        return await self._layout(ctx, document, "setup")

    async def _action_set_page_margins(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        return await self._layout(ctx, document, "margins")

    async def _action_set_page_orientation(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        sheet = ctx.sheet()
        await document.update_page_layout(sheet, {"orientation": ctx.params.orientation})
        return MutationEffect(detail={"sheet": sheet, "orientation": ctx.params.orientation})

    async def _action_set_header_footer(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        return await self._layout(ctx, document, "header_footer")

    async def _action_set_print_area(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        rng = ctx.range()
        await document.set_print_area(rng)
        return MutationEffect(detail={"print_area": rng.qualified})

    async def _action_set_page_breaks(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        p = ctx.params
        sheet = ctx.sheet()
        await document.set_page_breaks(sheet, list(p.rows), list(p.columns), p.clear_existing)
        return MutationEffect(detail={"sheet": sheet, "rows": list(p.rows), "columns": list(p.columns)})
