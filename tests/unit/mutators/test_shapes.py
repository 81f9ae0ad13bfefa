"""Unit tests — ShapeMutator (shapes, images, text boxes, groups)."""

from __future__ import annotations

import base64
import struct

import pytest

from sheetpilot.config import EngineConfig
from sheetpilot.document.memory import InMemoryWorkbook
from sheetpilot.mutators.shapes import ShapeMutator
from sheetpilot.protocol.models import ErrorKind, OutcomeStatus

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _png(width: int, height: int, padding: int = 0) -> str:
    header = b"\x89PNG\r\n\x1a\n" + struct.pack(">I", 13) + b"IHDR" + struct.pack(">II", width, height)
    return base64.b64encode(header + b"\x00" * padding).decode()


@pytest.fixture
def mutator() -> ShapeMutator:
    return ShapeMutator()


@pytest.fixture
async def drawn(mutator: ShapeMutator, make_action, doc: InMemoryWorkbook) -> InMemoryWorkbook:
    await mutator.apply(make_action("insertShape"), doc)
    await mutator.apply(make_action("insertShape", None, {"shapeType": "oval", "left": 200}), doc)
    await mutator.apply(make_action("insertTextBox", None, {"text": "Note", "top": 300}), doc)
    assert [s.name for s in doc.shapes] == ["Rectangle 1", "Oval 1", "TextBox 1"]
    return doc


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestInsert:
    async def test_auto_names_per_type(self, mutator, make_action, doc) -> None:
        first = await mutator.apply(make_action("insertShape"), doc)
        second = await mutator.apply(make_action("insertShape"), doc)
        assert (first.entity, second.entity) == ("Rectangle 1", "Rectangle 2")
        assert first.detail == {"sheet": "Sheet1", "shape_type": "rectangle", "entity": "Rectangle 1"}

    async def test_on_named_sheet(self, mutator, make_action, doc) -> None:
        action = make_action("insertShape", "Report", {"name": "Banner", "fill": "#FF0000", "text": "Q3"})
        outcome = await mutator.apply(action, doc)
        assert outcome.entity == "Banner"
        shape = doc.shape("banner")
        assert shape.sheet == "Report"
        assert shape.properties == {"fill": "#FF0000", "text": "Q3"}

    async def test_duplicate_name_fails(self, mutator, make_action, drawn) -> None:
        outcome = await mutator.apply(make_action("insertShape", None, {"name": "oval 1"}), drawn)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.DOCUMENT_REJECTED

    async def test_image_takes_natural_size(self, mutator, make_action, doc) -> None:
        outcome = await mutator.apply(make_action("insertImage", None, {"image": _png(40, 30)}), doc)
        assert outcome.entity == "Picture 1"
        assert outcome.detail["bytes"] == 24
        shape = doc.shape("Picture 1")
        assert (shape.width, shape.height) == (40.0, 30.0)

    async def test_image_data_uri(self, mutator, make_action, doc) -> None:
        image = "data:image/png;base64," + _png(10, 10)
        outcome = await mutator.apply(make_action("insertImage", None, {"image": image, "width": 64}), doc)
        assert outcome.status == OutcomeStatus.APPLIED
        assert doc.shape("Picture 1").width == 64

    async def test_image_over_limit(self, make_action, doc) -> None:
        mutator = ShapeMutator(config=EngineConfig(max_image_bytes=1024))
        outcome = await mutator.apply(make_action("insertImage", None, {"image": _png(1, 1, padding=2000)}), doc)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.INVALID_PARAMETER
        assert outcome.field_name == "image"
        assert doc.shapes == []


@pytest.mark.unit
class TestEdit:
    async def test_format(self, mutator, make_action, drawn) -> None:
        action = make_action("formatShape", "Rectangle 1", {"width": 300, "rotation": 45})
        outcome = await mutator.apply(action, drawn)
        assert outcome.detail == {"applied": ["rotation", "width"]}
        shape = drawn.shape("Rectangle 1")
        assert shape.width == 300
        assert shape.properties["rotation"] == 45

    async def test_missing_shape_skipped(self, mutator, make_action, drawn) -> None:
        outcome = await mutator.apply(make_action("deleteShape", "Star 1"), drawn)
        assert outcome.status == OutcomeStatus.SKIPPED
        assert outcome.error_kind == ErrorKind.ENTITY_NOT_FOUND

    async def test_send_to_back(self, mutator, make_action, drawn) -> None:
        await mutator.apply(make_action("arrangeShapes", "TextBox 1", {"order": "sendToBack"}), drawn)
        ordered = sorted(drawn.shapes, key=lambda s: s.z_order)
        assert [s.name for s in ordered] == ["TextBox 1", "Rectangle 1", "Oval 1"]


@pytest.mark.unit
class TestGroups:
    async def test_group_and_ungroup(self, mutator, make_action, drawn) -> None:
        action = make_action("groupShapes", None, {"shapes": ["Rectangle 1", "Oval 1"]})
        outcome = await mutator.apply(action, drawn)
        assert outcome.entity == "Group 1"
        group = drawn.shape("Group 1")
        assert group.members == ["Rectangle 1", "Oval 1"]
        assert (group.left, group.width) == (0, 300)

        outcome = await mutator.apply(make_action("ungroupShapes", "Group 1"), drawn)
        assert outcome.detail == {"members": ["Rectangle 1", "Oval 1"]}
        assert drawn.shape("Group 1") is None

    async def test_shape_in_two_groups_rejected(self, mutator, make_action, drawn) -> None:
        await mutator.apply(make_action("groupShapes", None, {"shapes": ["Rectangle 1", "Oval 1"]}), drawn)
        action = make_action("groupShapes", None, {"shapes": ["Oval 1", "TextBox 1"]})
        outcome = await mutator.apply(action, drawn)
        assert outcome.status == OutcomeStatus.FAILED
        assert "already in a group" in outcome.message

    async def test_group_missing_member_skipped(self, mutator, make_action, drawn) -> None:
        action = make_action("groupShapes", None, {"shapes": ["Rectangle 1", "Star 1"]})
        outcome = await mutator.apply(action, drawn)
        assert outcome.status == OutcomeStatus.SKIPPED

    async def test_deleting_group_deletes_members(self, mutator, make_action, drawn) -> None:
        await mutator.apply(make_action("groupShapes", None, {"shapes": ["Rectangle 1", "Oval 1"]}), drawn)
        await mutator.apply(make_action("deleteShape", "Group 1"), drawn)
        assert [s.name for s in drawn.shapes] == ["TextBox 1"]
