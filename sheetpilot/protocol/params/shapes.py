"""Parameter models for the ``shapes`` family."""

from __future__ import annotations

import base64
import binascii
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator

from sheetpilot.protocol.params.base import (
    ActionParams,
    Color,
    Dimension,
    EmptyParams,
    Points,
    SheetName,
    Text,
    require_any,
)

ShapeType = Literal[
    "rectangle", "roundedRectangle", "oval", "triangle", "rightTriangle", "diamond",
    "pentagon", "hexagon", "star5", "heart", "cloud",
    "arrowRight", "arrowLeft", "arrowUp", "arrowDown",
]
ShapeName = Annotated[str, Field(min_length=1, max_length=255)]


class _PlacedParams(ActionParams):
    sheet: SheetName | None = None
    name: ShapeName | None = None
    left: Points = 0
    top: Points = 0


class InsertShapeParams(_PlacedParams):
    shape_type: ShapeType = "rectangle"
    width: Dimension = 100
    height: Dimension = 100
    fill: Color | None = None
    line_color: Color | None = None
    text: str | None = None


class InsertImageParams(_PlacedParams):
    image: Text
    width: Dimension | None = None
    height: Dimension | None = None

    @field_validator("image")
    @classmethod
    def must_be_base64(cls, v: str) -> str:
        payload = v.split(",", 1)[1] if v.startswith("data:") else v
        try:
            base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("image must be base64 encoded") from exc
        return payload

    def decoded_size(self) -> int:
        return len(base64.b64decode(self.image))


class InsertTextBoxParams(_PlacedParams):
    text: str
    width: Dimension = 150
    height: Dimension = 50
    font_size: Annotated[float, Field(ge=1, le=409)] | None = None
    font_color: Color | None = None
    fill: Color | None = None


class FormatShapeParams(ActionParams):
    fill: Color | None = None
    line_color: Color | None = None
    line_weight: Points | None = None
    left: Points | None = None
    top: Points | None = None
    width: Dimension | None = None
    height: Dimension | None = None
    rotation: Annotated[float, Field(ge=0, le=360)] | None = None
    text: str | None = None

    @model_validator(mode="after")
    def something_to_apply(self) -> "FormatShapeParams":
        require_any(self, *type(self).model_fields)
        return self


class GroupShapesParams(ActionParams):
    shapes: list[ShapeName] = Field(min_length=2)
    name: ShapeName | None = None

    @field_validator("shapes")
    @classmethod
    def distinct(cls, v: list[str]) -> list[str]:
        if len({s.casefold() for s in v}) != len(v):
            raise ValueError("shapes must be distinct")
        return v


class ArrangeShapesParams(ActionParams):
    order: Literal["bringToFront", "sendToBack", "bringForward", "sendBackward"]


PARAMS_MAP: dict[str, type[ActionParams]] = {
    "insertShape": InsertShapeParams,
    "insertImage": InsertImageParams,
    "insertTextBox": InsertTextBoxParams,
    "formatShape": FormatShapeParams,
    "deleteShape": EmptyParams,
    "groupShapes": GroupShapesParams,
    "arrangeShapes": ArrangeShapesParams,
    "ungroupShapes": EmptyParams,
}
