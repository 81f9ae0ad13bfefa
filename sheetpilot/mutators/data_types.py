"""Data-type mutator — entity values (a display text plus typed properties) in cells."""

from __future__ import annotations

from sheetpilot.document.base import DocumentHandle
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect
from sheetpilot.protocol.ranges import anchor_name


class DataTypeMutator(BaseMutator):
    FAMILY_ID = "data_types"

    async def _action_insert_data_type(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        cell = ctx.cell()
        await document.set_entity_value(cell, ctx.params.text, dict(ctx.params.properties))
        return MutationEffect(
            detail={"properties": sorted(ctx.params.properties)}, created=anchor_name(cell)
        )

    async def _action_refresh_data_type(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        p = ctx.params
        await document.refresh_entity_value(ctx.cell(), p.text, p.properties)
        return MutationEffect(detail={"properties": sorted(p.properties or {})})
