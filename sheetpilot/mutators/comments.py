"""Comment mutator — threaded comments and legacy notes anchored to one cell."""

from __future__ import annotations

from sheetpilot.document.base import DocumentHandle
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect
from sheetpilot.protocol.ranges import anchor_name


class CommentMutator(BaseMutator):
    FAMILY_ID = "comments"

    async def _action_add_comment(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        cell = ctx.cell()
        await document.add_comment(cell, ctx.params.content, ctx.params.author)
        return MutationEffect(created=anchor_name(cell))

    async def _action_edit_comment(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.edit_comment(ctx.cell(), ctx.params.content)
        return MutationEffect()

    async def _action_delete_comment(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        await document.delete_comment(ctx.cell())
        return MutationEffect()

    async def _action_reply_to_comment(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        replies = await document.reply_to_comment(ctx.cell(), ctx.params.content, ctx.params.author)
        return MutationEffect(detail={"replies": replies})

    async def _action_resolve_comment(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        await document.resolve_comment(ctx.cell(), ctx.params.resolved)
        return MutationEffect(detail={"resolved": ctx.params.resolved})

    async def _action_add_note(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        cell = ctx.cell()
        await document.add_note(cell, ctx.params.content, ctx.params.author)
        return MutationEffect(created=anchor_name(cell))

    async def _action_edit_note(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.edit_note(ctx.cell(), ctx.params.content)
        return MutationEffect()

    async def _action_delete_note(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.delete_note(ctx.cell())
        return MutationEffect()
