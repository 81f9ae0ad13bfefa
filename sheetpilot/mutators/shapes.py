"""Shape mutator — geometric shapes, images, text boxes and groups."""

from __future__ import annotations

import base64
import struct

from sheetpilot.document.base import DocumentHandle, ShapeInfo
from sheetpilot.mutators.base import BaseMutator, MutationContext, MutationEffect

_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _png_size(payload: bytes) -> tuple[int, int] | None:
    if payload[:8] != _PNG_SIGNATURE or len(payload) < 24:
        return None
    width, height = struct.unpack(">II", payload[16:24])
    return width, height


class ShapeMutator(BaseMutator):
    FAMILY_ID = "shapes"

    async def _insert(
        self, ctx: MutationContext, document: DocumentHandle, shape_type: str,
        width: float, height: float, properties: dict,
    ) -> MutationEffect:
        p = ctx.params
        sheet = ctx.sheet()
        name = await document.add_shape(
            ShapeInfo(
                name=p.name or "",
                sheet=sheet,
                shape_type=shape_type,
                left=p.left,
                top=p.top,
                width=width,
                height=height,
                properties={k: v for k, v in properties.items() if v is not None},
            )
        )
        return MutationEffect(detail={"sheet": sheet, "shape_type": shape_type}, created=name)

    async def _action_insert_shape(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        p = ctx.params
        return await self._insert(
            ctx, document, p.shape_type, p.width, p.height,
            {"fill": p.fill, "line_color": p.line_color, "text": p.text},
        )

    async def _action_insert_image(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        p = ctx.params
        size = p.decoded_size()
        if size > self._config.max_image_bytes:
            raise self.policy(
                f"image is {size} bytes; the limit is {self._config.max_image_bytes}", "image"
            )
        natural = _png_size(base64.b64decode(p.image)) or (100, 100)
        width = p.width or float(natural[0])
        height = p.height or float(natural[1])
        effect = await self._insert(ctx, document, "image", width, height, {"bytes": size})
        effect.detail["bytes"] = size
        return effect

    async def _action_insert_text_box(
        self, ctx: MutationContext, document: DocumentHandle
    ) -> MutationEffect:
        p = ctx.params
        return await self._insert(
            ctx, document, "textBox", p.width, p.height,
            {"text": p.text, "font_size": p.font_size, "font_color": p.font_color, "fill": p.fill},
        )

    async def _action_format_shape(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        changes = ctx.params.model_dump(exclude_none=True)
        await document.update_shape(ctx.target, changes)
        return MutationEffect(detail={"applied": sorted(changes)})

    async def _action_delete_shape(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.delete_shape(ctx.target)
        return MutationEffect()

    async def _action_group_shapes(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        shapes = list(ctx.params.shapes)
        name = await document.group_shapes(shapes, ctx.params.name)
        return MutationEffect(detail={"members": shapes}, created=name)

    async def _action_ungroup_shapes(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        members = await document.ungroup_shapes(ctx.target)
        return MutationEffect(detail={"members": members})

    async def _action_arrange_shapes(self, ctx: MutationContext, document: DocumentHandle) -> MutationEffect:
        await document.arrange_shape(ctx.target, ctx.params.order)
        return MutationEffect(detail={"order": ctx.params.order})
