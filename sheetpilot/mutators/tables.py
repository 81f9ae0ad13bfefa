"""Table mutator — structured tables, their rows, columns, style and totals."""

from __future__ import annotations

from sheetpilot.document.base import DocumentHandle
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect, as_grid
from sheetpilot.protocol.ranges import parse_range


class TableMutator(BaseMutator):
    FAMILY_ID = "tables"

    async def _action_create_table(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        p = ctx.params
        table = await document.add_table(ctx.range(), p.name, p.has_headers, p.style)
        return MutationEffect(
            detail={"range": table.range.qualified, "columns": list(table.columns)},
            created=table.name,
        )

    async def _action_style_table(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        table = await document.get_table(ctx.target)
        changes = ctx.params.model_dump(exclude_none=True)
        await document.update_table(table.name, changes)
        return MutationEffect(detail={"applied": sorted(changes)})

    async def _action_add_table_row(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        table = await document.get_table(ctx.target)
        rows = as_grid(ctx.params.values)
        await document.add_table_rows(table.name, rows, ctx.params.position)
        return MutationEffect(detail={"rows": len(rows)})

    async def _action_add_table_column(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        p = ctx.params
        table = await document.get_table(ctx.target)
        header = await document.add_table_column(table.name, p.header, p.values, p.position)
        return MutationEffect(detail={"header": header})

    async def _action_resize_table(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        table = await document.get_table(ctx.target)
        rng = parse_range(ctx.params.new_range)
        rng = rng.with_sheet(table.sheet) if rng.sheet is None else ctx.qualify(rng)
        await document.resize_table(table.name, rng)
        return MutationEffect(detail={"range": rng.qualified})

    async def _action_convert_to_range(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        table = await document.get_table(ctx.target)
        await document.convert_table_to_range(table.name)
        return MutationEffect(detail={"range": table.range.qualified})

    async def _action_toggle_table_totals(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        table = await document.get_table(ctx.target)
        by_name = {column.casefold(): column for column in table.columns}
        functions: dict[str, str] = {}
        for i, total in enumerate(ctx.params.totals):
            if isinstance(total.column, int):
                if total.column >= len(table.columns):
                    raise self.policy(
                        f"table '{table.name}' has {len(table.columns)} columns", f"totals.{i}.column"
                    )
                column = table.columns[total.column]
            else:
                column = by_name.get(total.column.casefold())
                if column is None:
                    raise self.policy(
                        f"table '{table.name}' has no column {total.column!r}", f"totals.{i}.column"
                    )
            functions[column] = total.function
        await document.set_table_totals(table.name, ctx.params.show, functions)
        return MutationEffect(detail={"show": ctx.params.show, "totals": functions})
