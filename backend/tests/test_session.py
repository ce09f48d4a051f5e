"""
Tests for the Image Session and the project store

Run with: pytest tests/test_session.py -v
"""

import asyncio

import pytest
from PIL import Image

from planvision.agents.detection import RoomDetector
from planvision.agents.region_editor import RegionEditor
from planvision.core.compositor import Compositor
from planvision.core.exceptions import (
    DetectionError,
    EditInProgressError,
    InpaintError,
    InvalidEditError,
    ProjectNotFoundError,
)
from planvision.core.image_utils import decode_base64_image, encode_image
from planvision.core.session import ImageSession, SessionRegistry
from planvision.models.edit import InpaintResult
from planvision.tools.project_store import InMemoryProjectStore


SOURCE = encode_image(Image.new("RGB", (100, 100), (200, 200, 200)))

ROOMS = [
    {"label": "Living Room", "shape": "L-shaped", "path": "M 15,20 L 35,20 L 35,40 L 25,40 L 25,55 L 15,55 Z"},
    {"label": "Bedroom", "path": "M 60,20 L 80,20 L 80,45 L 60,45 Z"},
]


class FakeVisionClient:
    def __init__(self, answer):
        self.answer = answer

    async def ask_json(self, image, prompt):
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer


class FakeInpaintTool:
    """Hands back the crop unchanged, optionally waiting on a gate first."""

    def __init__(self, error=None, gate=None):
        self.error = error
        self.gate = gate
        self.calls = 0

    async def inpaint(self, prepared):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise self.error
        return InpaintResult(room_id=prepared.room_id, crop_url=prepared.crop_image)


def detected_session():
    session = ImageSession(source_image=SOURCE)
    asyncio.run(session.run_detection(RoomDetector(client=FakeVisionClient(ROOMS)), "svg_path"))
    return session


# ============ Detection ============

def test_detection_swaps_region_set():
    session = detected_session()

    assert [r.id for r in session.regions] == ["room-0", "room-1"]
    assert session.detection_method == "svg_path"


def test_failed_detection_keeps_previous_regions():
    session = detected_session()
    before = list(session.regions)

    with pytest.raises(DetectionError):
        asyncio.run(session.run_detection(RoomDetector(client=FakeVisionClient([])), "single_pass"))

    assert session.regions == before


def test_new_upload_resets_everything():
    session = detected_session()
    other = encode_image(Image.new("RGB", (50, 50), "white"))

    session.replace_source(other)

    assert session.source_image == other
    assert session.current_image == other
    assert session.regions == []
    assert session.edit_history == []


def test_render_invalidates_regions():
    session = detected_session()
    session.apply_render("https://cdn.example.com/render.png")

    assert session.current_image == "https://cdn.example.com/render.png"
    assert session.source_image == SOURCE
    assert session.regions == []


# ============ Editing ============

def test_submit_edit_replaces_image_and_records_history():
    session = detected_session()
    editor = RegionEditor(inpaint_tool=FakeInpaintTool())

    record = asyncio.run(session.submit_edit("room-1", "light wood", 0.6, editor, Compositor(), seed=7))

    assert record.room_label == "Bedroom"
    assert record.seed == 7
    assert record.composited_locally is True
    assert session.current_image.startswith("data:image/png;base64,")
    assert len(session.edit_history) == 1
    assert session.edit_in_flight is False


def test_failed_edit_leaves_session_untouched():
    """Test that an inpaint failure changes neither image nor history."""
    session = detected_session()
    before = session.current_image
    editor = RegionEditor(inpaint_tool=FakeInpaintTool(error=InpaintError("service down")))

    with pytest.raises(InpaintError):
        asyncio.run(session.submit_edit("room-0", "modern", 0.8, editor, Compositor()))

    assert session.current_image == before
    assert session.edit_history == []
    assert session.edit_in_flight is False


def test_unknown_room_rejected():
    session = detected_session()
    tool = FakeInpaintTool()

    with pytest.raises(InvalidEditError):
        asyncio.run(session.submit_edit("room-9", "modern", 0.8, RegionEditor(inpaint_tool=tool), Compositor()))
    assert tool.calls == 0


def test_invalid_strength_rejected_before_any_call():
    session = detected_session()
    tool = FakeInpaintTool()

    with pytest.raises(InvalidEditError):
        asyncio.run(session.submit_edit("room-0", "modern", 1.5, RegionEditor(inpaint_tool=tool), Compositor()))
    assert tool.calls == 0


def test_concurrent_edit_rejected():
    """Test that a second edit while one is in flight is rejected."""
    session = detected_session()

    async def scenario():
        gate = asyncio.Event()
        editor = RegionEditor(inpaint_tool=FakeInpaintTool(gate=gate))
        first = asyncio.create_task(session.submit_edit("room-0", "modern", 0.8, editor, Compositor()))
        while not session.edit_in_flight:
            await asyncio.sleep(0)

        with pytest.raises(EditInProgressError):
            await session.submit_edit("room-1", "cozy", 0.8, editor, Compositor())

        gate.set()
        return await first

    record = asyncio.run(scenario())

    assert record.room_id == "room-0"
    assert len(session.edit_history) == 1


class PaintingInpaintTool:
    """Fills each crop with the next color in `colors`."""

    def __init__(self, colors):
        self.colors = iter(colors)

    async def inpaint(self, prepared):
        crop = decode_base64_image(prepared.crop_image)
        painted = Image.new("RGB", crop.size, next(self.colors))
        return InpaintResult(room_id=prepared.room_id, crop_url=encode_image(painted))


def test_edits_compose():
    """Test that the second edit starts from the first edit's output."""
    session = detected_session()
    editor = RegionEditor(inpaint_tool=PaintingInpaintTool([(255, 0, 0), (0, 0, 255)]))

    asyncio.run(session.submit_edit("room-0", "modern", 0.8, editor, Compositor()))
    asyncio.run(session.submit_edit("room-1", "cozy", 0.8, editor, Compositor()))

    pixels = decode_base64_image(session.current_image).convert("RGB")
    assert [e.room_id for e in session.edit_history] == ["room-0", "room-1"]
    # living room keeps the first edit, bedroom carries the second
    assert pixels.getpixel((25, 30)) == (255, 0, 0)
    assert pixels.getpixel((70, 30)) == (0, 0, 255)


# ============ Persistence ============

def test_blob_round_trip_keeps_regions_and_history():
    session = detected_session()
    asyncio.run(session.submit_edit(
        "room-0", "modern", 0.8, RegionEditor(inpaint_tool=FakeInpaintTool()), Compositor(),
    ))

    restored = ImageSession.from_blob(session.to_blob())

    assert restored.current_image == session.current_image
    assert restored.regions == session.regions
    assert restored.edit_history[0].room_id == "room-0"


def test_registry_persists_through_store():
    store = InMemoryProjectStore()
    registry = SessionRegistry(store)
    project_id = registry.create(SOURCE)

    registry.get(project_id).apply_render("https://cdn.example.com/render.png")
    registry.save(project_id)

    assert store.get(project_id)["current_image"] == "https://cdn.example.com/render.png"

    # a fresh registry over the same store sees the saved state
    assert SessionRegistry(store).get(project_id).current_image == "https://cdn.example.com/render.png"


def test_registry_unknown_project():
    registry = SessionRegistry(InMemoryProjectStore())

    with pytest.raises(ProjectNotFoundError):
        registry.get("missing")


def test_store_delete():
    store = InMemoryProjectStore()
    project_id = store.create({"source_image": SOURCE})

    store.delete(project_id)

    assert project_id not in store
    with pytest.raises(ProjectNotFoundError):
        store.delete(project_id)
