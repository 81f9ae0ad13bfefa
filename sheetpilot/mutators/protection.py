"""Protection mutator — sheet, range-lock and workbook-structure protection.

Protection actions are never blocked by the protection they manage.  A wrong
password is refused by the document and reported as ``DocumentRejected``.
"""

from __future__ import annotations

from sheetpilot.document.base import DocumentHandle
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect


class ProtectionMutator(BaseMutator):
    FAMILY_ID = "protection"

    async def _action_protect_worksheet(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        sheet = ctx.sheet()
        allowed = ctx.params.allowed_options()
        await document.protect_sheet(sheet, ctx.params.password, allowed)
        return MutationEffect(
            detail={"sheet": sheet, "allowed": sorted(allowed), "password": ctx.params.password is not None}
        )

    async def _action_unprotect_worksheet(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        sheet = ctx.sheet()
        await document.unprotect_sheet(sheet, ctx.params.password)
        return MutationEffect(detail={"sheet": sheet})

    async def _lock(self, ctx: MutationContext, document: DocumentHandle, locked: bool) -> MutationEffect:
        areas = ctx.areas()
        for area in areas:
            await document.set_cells_locked(area, locked, ctx.params.hide_formulas)
        return MutationEffect(detail={"locked": locked, "cells": sum(a.size for a in areas)})

    async def _action_protect_range(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        return await self._lock(ctx, document, True)

    async def _action_unprotect_range(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        return await self._lock(ctx, document, False)

    async def _action_protect_workbook(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        await document.protect_workbook(ctx.params.password)
        return MutationEffect(detail={"password": ctx.params.password is not None})

    async def _action_unprotect_workbook(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        await document.unprotect_workbook(ctx.params.password)
        return MutationEffect()
