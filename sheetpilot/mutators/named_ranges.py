"""Named-range mutator — workbook and sheet-scoped defined names.

A name refers to exactly one of: a range reference, a formula, or a
constant value.  References without a sheet prefix are pinned to the
active sheet when the action runs.
"""

from __future__ import annotations

from sheetpilot.document.base import DocumentHandle, NamedRangeInfo
from sheetpilot.exceptions import DocumentRejectedError
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect
from sheetpilot.protocol.ranges import parse_areas


class NamedRangeMutator(BaseMutator):
    FAMILY_ID = "named_ranges"

    def _qualified_reference(self, ctx: MutationContext, reference: str) -> str:
        return ",".join(ctx.qualify(area).qualified for area in parse_areas(reference))

    async def _find(self, document: DocumentHandle, name: str) -> NamedRangeInfo:
        for named in await document.list_named_ranges():
            if named.name.casefold() == name.casefold():
                return named
        raise DocumentRejectedError(f"Name '{name}' was not found.")

    async def _action_create_named_range(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        p = ctx.params
        named = NamedRangeInfo(
            name=ctx.target,
            reference=self._qualified_reference(ctx, p.reference) if p.reference else None,
            formula=p.formula,
            value=p.value,
            comment=p.comment,
            scope=ctx.canonical_sheet(p.scope) if p.scope else None,
        )
        await document.add_named_range(named)
        return MutationEffect(detail={"refers_to": named.refers_to}, created=named.name)

    async def _action_update_named_range(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        p = ctx.params
        named = await self._find(document, ctx.target)
        previous = named.refers_to
        changes = p.model_dump(exclude_none=True)
        if p.reference is not None:
            changes["reference"] = self._qualified_reference(ctx, p.reference)
        await document.update_named_range(named.name, changes)
        updated = await self._find(document, named.name)
        return MutationEffect(detail={"previous": previous, "refers_to": updated.refers_to})

    async def _action_delete_named_range(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        named = await self._find(document, ctx.target)
        await document.delete_named_range(named.name)
        return MutationEffect(detail={"refers_to": named.refers_to})

    async def _action_list_named_ranges(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        names = sorted(await document.list_named_ranges(), key=lambda n: n.name.casefold())
        if not ctx.params.include_values:
            return MutationEffect(detail={"names": [n.name for n in names]})
        return MutationEffect(
            detail={
                "names": [
                    {"name": n.name, "refers_to": n.refers_to, "scope": n.scope, "comment": n.comment}
                    for n in names
                ]
            }
        )
