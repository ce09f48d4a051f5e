"""
Vision Client

Sends a floor-plan image plus an instruction prompt to Gemini and returns the
parsed JSON answer. Used by every room detection strategy.

FULLY TRACED with LangSmith.
"""

import asyncio
import json
import logging
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from langsmith import traceable

from planvision.config import get_settings
from planvision.core.exceptions import DetectionError
from planvision.core.image_utils import load_image_bytes, strip_code_fences


logger = logging.getLogger(__name__)


def parse_json_response(response_text: str) -> Any:
    """
    Parse a model's JSON answer, tolerating ```json fences around it.
    """
    if not response_text:
        raise DetectionError("No response from vision model")
    cleaned = strip_code_fences(response_text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse vision response: %s", response_text[:500])
        raise DetectionError(f"Failed to parse vision response as JSON: {e}")


class GeminiVisionClient:
    """
    Thin wrapper around the Gemini vision model.
    """

    def __init__(self, client: genai.Client = None, model: str = None, temperature: float = 0.1):
        settings = get_settings()
        if client is None:
            if not settings.google_api_key:
                raise ValueError(
                    "GOOGLE_API_KEY not set. Add it to your .env file:\n"
                    "GOOGLE_API_KEY=your_api_key_here"
                )
            client = genai.Client(api_key=settings.google_api_key)
        self.client = client
        self.model = model or settings.vision_model_name
        self.temperature = temperature

    @traceable(
        name="gemini_vision_call",
        run_type="llm",
        tags=["gemini", "vision", "api-call"],
        metadata={"model_type": "gemini-vision"}
    )
    async def ask_json(self, image: str, prompt: str) -> Any:
        """
        Ask the vision model about an image and parse its JSON answer.

        Args:
            image: Data URL, bare base64 or hosted URL of the floor plan
            prompt: Strategy-specific instruction text

        Returns:
            Parsed JSON (list or dict, depending on the prompt)
        """
        image_bytes, mime_type = await load_image_bytes(image)

        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                    prompt,
                ],
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    max_output_tokens=4096,
                ),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise DetectionError(f"Vision API error: {e}")

        return parse_json_response(response.text or "")
