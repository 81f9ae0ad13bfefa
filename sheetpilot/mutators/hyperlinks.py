"""Hyperlink mutator — web, mail and in-workbook links on single cells."""

from __future__ import annotations

from sheetpilot.document.base import DocumentHandle, HyperlinkInfo
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect
from sheetpilot.protocol.ranges import anchor_name


class HyperlinkMutator(BaseMutator):
    FAMILY_ID = "hyperlinks"

    def _reference(self, ctx: MutationContext) -> str | None:
        if ctx.params.document_reference is None:
            return None
        return ctx.range(ctx.params.document_reference).qualified

    async def _action_add_hyperlink(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        p = ctx.params
        cell = ctx.cell()
        link = HyperlinkInfo(
            address=p.address,
            document_reference=self._reference(ctx),
            text_to_display=p.text_to_display,
            screen_tip=p.screen_tip,
        )
        await document.set_hyperlink(cell, link)
        return MutationEffect(
            detail={"destination": link.address or link.document_reference}, created=anchor_name(cell)
        )

    async def _action_edit_hyperlink(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        changes = ctx.params.model_dump(exclude_none=True)
        if "document_reference" in changes:
            changes["document_reference"] = self._reference(ctx)
        await document.edit_hyperlink(ctx.cell(), changes)
        return MutationEffect(detail={"applied": sorted(changes)})

    async def _action_remove_hyperlink(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        await document.remove_hyperlink(ctx.cell())
        return MutationEffect()
