"""Slicer mutator — slicers over tables and pivot tables.

A source may carry at most one slicer per field.  Reconnecting a slicer to
another source replaces it with a new slicer of the same name, caption,
style and position; if the document refuses the replacement the original
slicer is put back.
"""

from __future__ import annotations

from dataclasses import replace

from sheetpilot.document.base import DocumentHandle, SlicerInfo
from sheetpilot.exceptions import DocumentRejectedError
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect
from sheetpilot.protocol.models import ErrorKind
from sheetpilot.protocol.schema import EntityKind


class SlicerMutator(BaseMutator):
    FAMILY_ID = "slicers"

    async def _source(
        self, document: DocumentHandle, kind: EntityKind, name: str
    ) -> tuple[str, str, list[str]]:
        """Canonical name, hosting sheet and field names of a slicer source."""
        if kind == EntityKind.TABLE:
            table = await document.get_table(name)
            return table.name, table.sheet, list(table.columns)
        pivot = await document.get_pivot(name)
        return pivot.name, pivot.sheet, list(pivot.source_fields)

    async def _check_field(
        self,
        document: DocumentHandle,
        kind: EntityKind,
        source: str,
        fields: list[str],
        field_name: str,
        ignore: str | None = None,
    ) -> str:
        canonical = {f.casefold(): f for f in fields}.get(field_name.strip().casefold())
        if canonical is None:
            raise self.policy(f"'{source}' has no field named {field_name!r}", "field")
        for slicer in await document.list_slicers():
            if ignore is not None and slicer.name.casefold() == ignore.casefold():
                continue
            if (
                slicer.source_kind == kind
                and slicer.source_name.casefold() == source.casefold()
                and slicer.field.casefold() == canonical.casefold()
            ):
                raise self.policy(
                    f"slicer '{slicer.name}' already filters '{source}' on '{canonical}'",
                    "field",
                    ErrorKind.DOCUMENT_REJECTED,
                )
        return canonical

    async def _action_create_slicer(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        p = ctx.params
        kind = EntityKind.TABLE if p.source_type == "table" else EntityKind.PIVOT_TABLE
        source, source_sheet, fields = await self._source(document, kind, ctx.target)
        field_name = await self._check_field(document, kind, source, fields, p.field)
        sheet = ctx.canonical_sheet(p.sheet) if p.sheet else source_sheet
        name = await document.add_slicer(
            SlicerInfo(
                name=p.name or "",
                sheet=sheet,
                source_kind=kind,
                source_name=source,
                field=field_name,
                items=[],
                caption=p.caption or "",
                style=p.style,
                position=p.position.model_dump(),
                selected_items=list(p.selected_items or []),
                multi_select=p.multi_select,
            )
        )
        return MutationEffect(detail={"source": source, "field": field_name}, created=name)

    async def _action_configure_slicer(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        slicer = await document.get_slicer(ctx.target)
        changes = ctx.params.model_dump(exclude_none=True)
        await document.update_slicer(slicer.name, changes)
        return MutationEffect(detail={"applied": sorted(changes)})

    async def _reconnect(
        self, ctx: MutationContext, document: DocumentHandle, kind: EntityKind, source_name: str
    ) -> MutationEffect:
        slicer = await document.get_slicer(ctx.target)
        source, _, fields = await self._source(document, kind, source_name)
        field_name = await self._check_field(
            document, kind, source, fields, ctx.params.field, ignore=slicer.name
        )
        replacement = replace(
            slicer, source_kind=kind, source_name=source, field=field_name,
            items=[], selected_items=[],
        )
        await document.delete_slicer(slicer.name)
        try:
            await document.add_slicer(replacement)
        except DocumentRejectedError:
            await document.add_slicer(slicer)
            raise
        return MutationEffect(detail={"source": source, "field": field_name})

    async def _action_connect_slicer_to_table(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        return await self._reconnect(ctx, document, EntityKind.TABLE, ctx.params.table)

    async def _action_connect_slicer_to_pivot(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        return await self._reconnect(ctx, document, EntityKind.PIVOT_TABLE, ctx.params.pivot)

    async def _action_delete_slicer(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        slicer = await document.get_slicer(ctx.target)
        await document.delete_slicer(slicer.name)
        return MutationEffect()
