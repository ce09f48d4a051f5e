"""
Tests for the Render Pipeline and generation response parsing

Run with: pytest tests/test_render_pipeline.py -v
"""

import asyncio
from types import SimpleNamespace

import pytest

from planvision.agents.render_pipeline import RenderPipeline
from planvision.core.exceptions import GenerationError, InvalidImageError
from planvision.core.prompt_builder import build_inpaint_prompt, build_prompt, get_style_config
from planvision.models.render import Annotation, RenderJob, RenderState
from planvision.tools.generate_image import (
    GeneratedImage,
    parse_generation_content,
    response_to_parts,
)


PNG_URI = "data:image/png;base64,iVBORw0KGgo="


class FakeGenerateTool:
    """Returns a fixed image; styles listed in `failing` raise GenerationError."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    async def generate(self, prompt, images):
        self.calls.append((prompt, list(images)))
        for style in self.failing:
            if get_style_config(style).prompt_suffix in prompt:
                raise GenerationError("No image generated in response")
        return GeneratedImage(image=PNG_URI, description="A render", model="fake-model")


# ============ Response Parsing ============

def test_parse_typed_inline_part():
    content = [
        {"type": "text", "text": "Here is your render."},
        {"type": "image", "inline_data": {"mime_type": "image/jpeg", "data": "AAAA"}},
    ]
    image, description = parse_generation_content(content)

    assert image == "data:image/jpeg;base64,AAAA"
    assert description == "Here is your render."


def test_parse_image_url_part():
    image, _ = parse_generation_content([{"type": "image_url", "image_url": {"url": "https://x/render.png"}}])
    assert image == "https://x/render.png"


def test_parse_data_uri_inside_text():
    image, description = parse_generation_content(f"Done! {PNG_URI} Enjoy.")

    assert image == PNG_URI
    assert "Done!" in description


def test_parse_hosted_url_inside_text():
    image, _ = parse_generation_content("Your render: https://cdn.example.com/out/render.webp?sig=1")
    assert image == "https://cdn.example.com/out/render.webp?sig=1"


def test_parse_text_parts_fall_back_to_embedded_uri():
    image, _ = parse_generation_content([{"type": "text", "text": f"inline {PNG_URI}"}])
    assert image == PNG_URI


def test_parse_nothing_found():
    assert parse_generation_content("Sorry, I cannot draw that.") == (None, "Sorry, I cannot draw that.")


def test_response_to_parts():
    """Test conversion of a google-genai style response into typed parts."""
    response = SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[
        SimpleNamespace(inline_data=None, file_data=None, text="caption"),
        SimpleNamespace(inline_data=SimpleNamespace(mime_type="image/png", data=b"\x89PNG"), file_data=None, text=None),
    ]))])

    parts = response_to_parts(response)
    image, description = parse_generation_content(parts)

    assert image == "data:image/png;base64,iVBORw=="
    assert description == "caption"


# ============ Prompts ============

def test_build_prompt_includes_style_and_annotations():
    annotations = [
        Annotation(type="label", text="Kitchen"),
        Annotation(type="change", text="add an island"),
        Annotation(type="keep"),
    ]
    prompt = build_prompt(annotations, "industrial")

    assert get_style_config("industrial").prompt_suffix in prompt
    assert "Kitchen" in prompt
    assert "add an island" in prompt
    assert "KEEP AS-IS" in prompt


def test_unknown_style_falls_back_to_modern():
    assert get_style_config("baroque").value == "modern"


def test_build_inpaint_prompt():
    assert build_inpaint_prompt("Cozy reading nook.", "Office").startswith("Office: Cozy reading nook. ")


# ============ Pipeline ============

def test_generate_single_style():
    tool = FakeGenerateTool()
    job = asyncio.run(RenderPipeline(tool=tool).generate(PNG_URI, style="scandinavian"))

    assert job.state == RenderState.DONE
    assert job.image == PNG_URI
    assert job.model == "fake-model"
    assert len(tool.calls[0][1]) == 1


def test_refinement_sends_both_images():
    tool = FakeGenerateTool()
    asyncio.run(RenderPipeline(tool=tool).generate(
        PNG_URI, style="modern", feedback="make the sofa blue", previous_image="https://x/prev.png",
    ))

    prompt, images = tool.calls[0]
    assert images == [PNG_URI, "https://x/prev.png"]
    assert "make the sofa blue" in prompt


def test_generate_raises_without_image():
    with pytest.raises(GenerationError) as exc_info:
        asyncio.run(RenderPipeline(tool=FakeGenerateTool(failing=["modern"])).generate(PNG_URI))
    assert exc_info.value.message == "No image generated in response"


def test_run_job_refinement_ends_in_error():
    """Test that a failed refinement leaves the job in ERROR with the reason."""
    tool = FakeGenerateTool(failing=["modern"])
    job = asyncio.run(RenderPipeline(tool=tool).run_job(
        RenderJob(style="modern"), PNG_URI, [], feedback="bigger windows", previous_image="https://x/prev.png",
    ))

    assert job.state == RenderState.ERROR
    assert job.error == "No image generated in response"
    assert tool.calls[0][1] == [PNG_URI, "https://x/prev.png"]


class BrokenInputTool:
    async def generate(self, prompt, images):
        raise InvalidImageError("Could not decode image")


def test_generate_propagates_input_errors():
    with pytest.raises(InvalidImageError):
        asyncio.run(RenderPipeline(tool=BrokenInputTool()).generate(PNG_URI))


def test_generate_styles_partial_failure():
    """Test that a failing style does not block the others."""
    pipeline = RenderPipeline(tool=FakeGenerateTool(failing=["industrial"]))

    jobs = asyncio.run(pipeline.generate_styles(PNG_URI, ["modern", "industrial", "colorful"]))

    assert [job.style for job in jobs] == ["modern", "industrial", "colorful"]
    assert [job.state for job in jobs] == [RenderState.DONE, RenderState.ERROR, RenderState.DONE]
    assert jobs[1].error == "No image generated in response"
    assert jobs[1].image is None


def test_generate_styles_all_fail():
    pipeline = RenderPipeline(tool=FakeGenerateTool(failing=["modern", "colorful"]))

    with pytest.raises(GenerationError):
        asyncio.run(pipeline.generate_styles(PNG_URI, ["modern", "colorful"]))
