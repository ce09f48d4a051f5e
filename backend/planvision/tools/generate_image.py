"""
Generate Image Tool

Full-image isometric render generation with Gemini, plus the parser that
extracts the resulting image from a generation response.

Generation responses come in several shapes: an array of typed content
parts (inline data or image URL parts), a text body carrying an inline
base64 data URI, or a text body pointing at a hosted image. All of them are
checked before a response is declared imageless.

FULLY TRACED with LangSmith - all Gemini image generation calls are tracked.
"""

import asyncio
import base64
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from langsmith import traceable
from pydantic import BaseModel

from planvision.config import get_settings
from planvision.core.exceptions import GenerationError
from planvision.core.image_utils import load_image_bytes


logger = logging.getLogger(__name__)

DATA_URI_RE = re.compile(r"data:image/[^;]+;base64,[A-Za-z0-9+/=]+")
IMAGE_URL_RE = re.compile(r"https?://[^\s\"'<>)]+\.(?:png|jpe?g|webp|gif|avif)(?:\?[^\s\"'<>)]*)?", re.IGNORECASE)


class GeneratedImage(BaseModel):
    image: str
    description: Optional[str] = None
    model: str = ""


# ============ Response Parsing ============

def _image_from_part(part: Dict[str, Any]) -> Optional[str]:
    image_url = part.get("image_url")
    if isinstance(image_url, dict) and image_url.get("url"):
        return image_url["url"]
    if isinstance(image_url, str) and image_url:
        return image_url

    inline = part.get("inline_data") or part.get("inlineData")
    if isinstance(inline, dict) and inline.get("data"):
        mime = inline.get("mime_type") or inline.get("mimeType") or "image/png"
        return f"data:{mime};base64,{inline['data']}"
    return None


def _image_from_text(text: str) -> Tuple[Optional[str], str]:
    match = DATA_URI_RE.search(text)
    if match:
        return match.group(0), text.replace(match.group(0), "").strip()
    match = IMAGE_URL_RE.search(text)
    if match:
        return match.group(0), text.replace(match.group(0), "").strip()
    return None, text


def parse_generation_content(content: Any) -> Tuple[Optional[str], Optional[str]]:
    """
    Extract (image, description) from generation content.

    Args:
        content: A string, or a list of typed parts / strings

    Returns:
        The image as a data URI or hosted URL (None if absent) and any
        accompanying text
    """
    image: Optional[str] = None
    texts: List[str] = []

    if isinstance(content, list):
        for part in content:
            if isinstance(part, str):
                texts.append(part)
                continue
            if not isinstance(part, dict):
                continue
            found = _image_from_part(part)
            if found:
                image = image or found
            elif part.get("type") == "text" and part.get("text"):
                texts.append(part["text"])
        if image is None:
            for i, text in enumerate(texts):
                found, remainder = _image_from_text(text)
                if found:
                    image, texts[i] = found, remainder
                    break
    elif isinstance(content, str):
        image, remainder = _image_from_text(content)
        texts.append(remainder)

    description = "\n".join(t for t in texts if t) or None
    return image, description


def response_to_parts(response: Any) -> List[Dict[str, Any]]:
    """Convert a google-genai response into typed content parts."""
    parts: List[Dict[str, Any]] = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            file_data = getattr(part, "file_data", None)
            text = getattr(part, "text", None)
            if inline is not None and inline.data:
                parts.append({
                    "type": "image",
                    "inline_data": {
                        "mime_type": inline.mime_type or "image/png",
                        "data": base64.b64encode(inline.data).decode("utf-8"),
                    },
                })
            elif file_data is not None and file_data.file_uri:
                parts.append({"type": "image_url", "image_url": {"url": file_data.file_uri}})
            elif text:
                parts.append({"type": "text", "text": text})
    return parts


# ============ Tool ============

class GenerateImageTool:
    """
    Sends instruction text and one or two images to the Gemini image model.
    """

    def __init__(self, client: genai.Client = None, model: str = None):
        settings = get_settings()
        if client is None:
            if not settings.google_api_key:
                raise ValueError("GOOGLE_API_KEY environment variable is not set")
            client = genai.Client(api_key=settings.google_api_key)
        self.client = client
        self.model = model or settings.render_image_model_name

    @traceable(
        name="gemini_generate_image_call",
        run_type="llm",
        tags=["gemini", "image", "generate", "api-call"],
        metadata={"model_type": "gemini-image"}
    )
    async def generate(self, prompt: str, images: List[str]) -> GeneratedImage:
        """
        Generate an image from a prompt and reference images.

        Args:
            prompt: Instruction text
            images: Base floor plan, optionally followed by a previous render

        Returns:
            GeneratedImage with a data URI or hosted URL

        Raises:
            GenerationError: remote failure or no image in the response
        """
        contents: List[Any] = [prompt]
        for ref in images:
            data, mime_type = await load_image_bytes(ref)
            contents.append(types.Part.from_bytes(data=data, mime_type=mime_type))

        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE", "TEXT"],
                    temperature=0.5
                )
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise GenerationError(f"Image generation failed: {e}")

        image, description = parse_generation_content(response_to_parts(response))
        if not image:
            logger.error("No image in generation response (model=%s)", self.model)
            raise GenerationError("No image generated in response")

        return GeneratedImage(image=image, description=description, model=self.model)
