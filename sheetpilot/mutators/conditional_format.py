"""Conditional-format mutator — conditionalFormat, clearFormat."""

from __future__ import annotations

from sheetpilot.document.base import DocumentHandle
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect


class ConditionalFormatMutator(BaseMutator):
    FAMILY_ID = "conditional_format"

    async def _action_conditional_format(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        rules = [rule.model_dump(exclude_none=True) for rule in ctx.params.rules]
        for rule in rules:
            if rule["type"] == "colorScale":
                rule.setdefault("min_color", "#F8696B")
                rule.setdefault("max_color", "#63BE7B")
            elif rule["type"] == "dataBar":
                rule.setdefault("bar_color", "#638EC6")
        for area in ctx.areas():
            await document.set_conditional_formats(area, rules)
        return MutationEffect(detail={"rules": len(rules)})

    async def _action_clear_format(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        for area in ctx.areas():
            await document.clear_formats(area, ctx.params.conditional_only)
        return MutationEffect(detail={"conditional_only": ctx.params.conditional_only})
