"""Pivot mutator — pivot tables over a range or a table.

Every field named in a pivot request must match a source header
(case-insensitively); the canonical header spelling is what reaches the
document.  A destination on a sheet that does not exist yet creates that
sheet first.
"""

from __future__ import annotations

from sheetpilot.document.base import DocumentHandle, PivotInfo
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect
from sheetpilot.protocol.ranges import CellRange, is_range_reference, parse_cell


class PivotMutator(BaseMutator):
    FAMILY_ID = "pivots"

    async def _source(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> tuple[CellRange, list[str], str | None]:
        target = ctx.target
        if is_range_reference(target):
            rng = ctx.range()
            header = CellRange(rng.top, rng.left, rng.top, rng.right, rng.sheet)
            fields = [str(v).strip() if v is not None else "" for v in (await document.read_range(header))[0]]
            return rng, fields, None
        table = await document.get_table(target)
        body = table.body_range
        source = CellRange(table.range.top, table.range.left, body.bottom, table.range.right, table.sheet)
        return source, list(table.columns), table.name

    def _canonical(
        self, fields: list[str], requested: list[str], param: str, indexed: bool = True
    ) -> list[str]:
        lookup = {f.casefold(): f for f in fields if f}
        resolved = []
        for i, name in enumerate(requested):
            canonical = lookup.get(name.strip().casefold())
            if canonical is None:
                raise self.policy(
                    f"the source has no field named {name!r}; fields are {', '.join(fields)}",
                    f"{param}.{i}" if indexed else param,
                )
            resolved.append(canonical)
        return resolved

    async def _action_create_pivot_table(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        p = ctx.params
        source, fields, source_table = await self._source(ctx, document)
        rows = self._canonical(fields, p.rows, "rows")
        columns = self._canonical(fields, p.columns, "columns")
        filters = self._canonical(fields, p.filters, "filters")
        values = self._canonical(fields, [v.field for v in p.values], "values")
        placed: dict[str, str] = {}
        for area, names in (("rows", rows), ("columns", columns), ("filters", filters)):
            for i, name in enumerate(names):
                if name in placed:
                    raise self.policy(
                        f"field {name!r} is already used in {placed[name]}", f"{area}.{i}"
                    )
                placed[name] = area

        destination = parse_cell(p.destination)
        if destination.sheet is None:
            destination = destination.with_sheet(ctx.active_sheet)
        elif ctx.snapshot.has_sheet(destination.sheet):
            destination = ctx.qualify(destination)
        else:
            await document.add_sheet(destination.sheet)

        pivot = PivotInfo(
            name=p.name,
            sheet=destination.sheet,
            source=source,
            source_fields=fields,
            destination=destination,
            rows=rows,
            columns=columns,
            values=[(name, v.function) for name, v in zip(values, p.values)],
            filters=filters,
            layout=p.layout,
            source_table=source_table,
        )
        await document.add_pivot(pivot)
        return MutationEffect(
            detail={"source": source.qualified, "destination": destination.qualified},
            created=p.name,
        )

    async def _action_add_pivot_field(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        p = ctx.params
        pivot = await document.get_pivot(ctx.target)
        (field_name,) = self._canonical(pivot.source_fields, [p.field], "field", indexed=False)
        await document.add_pivot_field(pivot.name, field_name, p.area, p.function, p.position)
        return MutationEffect(detail={"field": field_name, "area": p.area})

    async def _action_configure_pivot_layout(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        pivot = await document.get_pivot(ctx.target)
        changes = ctx.params.model_dump(exclude_none=True)
        await document.set_pivot_layout(pivot.name, changes)
        return MutationEffect(detail={"applied": sorted(changes)})

    async def _action_refresh_pivot_table(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        name = None if ctx.params.refresh_all or ctx.target is None else ctx.target
        refreshed = await document.refresh_pivots(name)
        return MutationEffect(detail={"refreshed": refreshed})

    async def _action_delete_pivot_table(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        pivot = await document.get_pivot(ctx.target)
        await document.delete_pivot(pivot.name)
        return MutationEffect()

