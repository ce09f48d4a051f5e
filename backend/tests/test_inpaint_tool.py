"""
Tests for the Inpaint Tool

The predictions API is replaced by httpx.MockTransport; no token or network
needed.

Run with: pytest tests/test_inpaint_tool.py -v
"""

import asyncio
import json

import httpx
import pytest
from PIL import Image

from planvision.core.exceptions import InpaintError, InpaintTimeoutError
from planvision.core.image_utils import encode_image
from planvision.models.edit import CropBox, EditRequest, PreparedEdit
from planvision.models.geometry import Point, RoomRegion
from planvision.tools.inpaint import InpaintTool, parse_prediction_output


API_URL = "https://api.replicate.com/v1/predictions"
POLL_URL = "https://api.replicate.com/v1/predictions/abc123"


def make_prepared(seed=None):
    region = RoomRegion(
        id="room-2",
        label="Bedroom",
        polygon=[Point(x=10, y=10), Point(x=40, y=10), Point(x=40, y=40)],
    )
    return PreparedEdit(
        request=EditRequest(region=region, prompt="cozy bedroom", strength=0.7, seed=seed),
        crop_box=CropBox(left=0, top=0, width=8, height=8),
        image_size=(20, 20),
        crop_image=encode_image(Image.new("RGB", (8, 8), "white")),
        mask_image=encode_image(Image.new("L", (8, 8), 255)),
        prompt="Bedroom: cozy bedroom.",
        negative_prompt="blurry",
    )


def run_inpaint(handler, max_attempts=5, prepared=None):
    """Run InpaintTool.inpaint against a mock transport."""
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            tool = InpaintTool(api_token="test-token", http_client=client, poll_interval=0, max_attempts=max_attempts)
            return await tool.inpaint(prepared or make_prepared())
    return asyncio.run(go())


# ============ Output Parsing ============

def test_parse_prediction_output_list():
    urls = parse_prediction_output(["https://x/crop.png", "https://x/other.png"])
    assert urls == {"crop_url": "https://x/crop.png", "full_image_url": None}


def test_parse_prediction_output_dict_with_full_image():
    urls = parse_prediction_output({"crop": "https://x/crop.png", "full_image": "https://x/full.png"})
    assert urls["crop_url"] == "https://x/crop.png"
    assert urls["full_image_url"] == "https://x/full.png"


def test_parse_prediction_output_empty():
    assert parse_prediction_output([]) == {"crop_url": None, "full_image_url": None}


# ============ Request Building ============

def test_build_payload():
    tool = InpaintTool(api_token="test-token")
    payload = tool.build_payload(make_prepared(seed=42))

    assert payload["input"]["seed"] == 42
    assert payload["input"]["strength"] == 0.7
    assert payload["input"]["prompt"] == "Bedroom: cozy bedroom."
    assert payload["input"]["mask"].startswith("data:image/png;base64,")
    assert tool.headers["Authorization"] == "Token test-token"


def test_missing_token_raises(monkeypatch):
    from planvision.config import get_settings
    monkeypatch.setattr(get_settings(), "replicate_api_token", "")

    with pytest.raises(ValueError):
        InpaintTool()


# ============ Polling ============

def test_poll_until_succeeded():
    """Test starting -> processing -> succeeded via the status URL."""
    statuses = iter(["processing", "succeeded"])
    calls = []

    def handler(request):
        calls.append(request.method)
        if request.method == "POST":
            body = json.loads(request.content)
            assert body["input"]["strength"] == 0.7
            assert request.headers["Authorization"] == "Token test-token"
            return httpx.Response(201, json={"status": "starting", "urls": {"get": POLL_URL}})
        status = next(statuses)
        output = ["https://replicate.delivery/crop.png"] if status == "succeeded" else None
        return httpx.Response(200, json={"status": status, "urls": {"get": POLL_URL}, "output": output})

    result = run_inpaint(handler)

    assert result.room_id == "room-2"
    assert result.crop_url == "https://replicate.delivery/crop.png"
    assert result.full_image_url is None
    assert calls == ["POST", "GET", "GET"]


def test_immediate_success_skips_polling():
    def handler(request):
        assert request.method == "POST"
        return httpx.Response(201, json={"status": "succeeded", "output": "https://x/crop.png"})

    assert run_inpaint(handler).crop_url == "https://x/crop.png"


def test_failed_prediction_raises():
    def handler(request):
        if request.method == "POST":
            return httpx.Response(201, json={"status": "starting", "urls": {"get": POLL_URL}})
        return httpx.Response(200, json={"status": "failed", "error": "NSFW content detected"})

    with pytest.raises(InpaintError, match="NSFW"):
        run_inpaint(handler)


def test_poll_exhaustion_raises_timeout():
    """Test that a job still processing after max attempts is a timeout."""
    polls = []

    def handler(request):
        if request.method == "GET":
            polls.append(1)
        return httpx.Response(200, json={"status": "processing", "urls": {"get": POLL_URL}})

    with pytest.raises(InpaintTimeoutError):
        run_inpaint(handler, max_attempts=3)
    assert len(polls) == 3


def test_timeout_is_an_inpaint_error():
    assert issubclass(InpaintTimeoutError, InpaintError)


def test_http_error_status_raises():
    def handler(request):
        return httpx.Response(422, text="invalid version")

    with pytest.raises(InpaintError, match="invalid version"):
        run_inpaint(handler)


def test_transport_failure_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(InpaintError):
        run_inpaint(handler)


def test_success_without_output_raises():
    def handler(request):
        return httpx.Response(201, json={"status": "succeeded", "output": None})

    with pytest.raises(InpaintError):
        run_inpaint(handler)
