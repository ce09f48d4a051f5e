"""
Inpaint Tool

Client for the remote inpainting service (Replicate predictions API, SDXL
inpaint). Sends the cropped room and its mask, then polls the prediction
until it reaches a terminal status or the attempt budget runs out.

FULLY TRACED with LangSmith.
"""

import asyncio
import logging
import random
from typing import Any, Dict, Optional

import httpx
from langsmith import traceable

from planvision.config import get_settings
from planvision.core.exceptions import InpaintError, InpaintTimeoutError
from planvision.models.edit import InpaintResult, PreparedEdit


logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {"succeeded", "failed", "canceled"}


def parse_prediction_output(output: Any) -> Dict[str, Optional[str]]:
    """
    Map a prediction's output to crop / full image URLs.

    Replicate returns either a URL string or a list of URLs; a dict output
    may additionally carry an already composited 'full_image'.
    """
    if isinstance(output, list):
        output = output[0] if output else None
    if isinstance(output, dict):
        return {
            "crop_url": output.get("crop") or output.get("image"),
            "full_image_url": output.get("full_image"),
        }
    if isinstance(output, str) and output:
        return {"crop_url": output, "full_image_url": None}
    return {"crop_url": None, "full_image_url": None}


class InpaintTool:
    """
    Dispatches one prepared room edit to the inpainting service.
    """

    def __init__(
        self,
        api_token: str = None,
        http_client: Optional[httpx.AsyncClient] = None,
        poll_interval: float = None,
        max_attempts: int = None,
    ):
        settings = get_settings()
        self.api_token = api_token or settings.replicate_api_token
        if not self.api_token:
            raise ValueError("REPLICATE_API_TOKEN not set in .env file")
        self.api_url = settings.replicate_api_url
        self.model_version = settings.inpaint_model_version
        self.timeout = settings.inpaint_request_timeout_s
        self.poll_interval = settings.inpaint_poll_interval_s if poll_interval is None else poll_interval
        self.max_attempts = settings.inpaint_max_poll_attempts if max_attempts is None else max_attempts
        self.http_client = http_client

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Token {self.api_token}",
            "Content-Type": "application/json",
            "Prefer": "wait",
        }

    def build_payload(self, prepared: PreparedEdit) -> Dict[str, Any]:
        seed = prepared.request.seed
        if seed is None:
            seed = random.randint(0, 999_999)
        return {
            "version": self.model_version,
            "input": {
                "image": prepared.crop_image,
                "mask": prepared.mask_image,
                "prompt": prepared.prompt,
                "negative_prompt": prepared.negative_prompt,
                "strength": prepared.request.strength,
                "num_inference_steps": 30,
                "guidance_scale": 7.5,
                "scheduler": "K_EULER",
                "seed": seed,
            },
        }

    @traceable(
        name="inpaint_tool.inpaint",
        run_type="tool",
        tags=["tool", "image", "inpaint", "replicate"],
        metadata={"description": "Regenerate one room crop"}
    )
    async def inpaint(self, prepared: PreparedEdit) -> InpaintResult:
        """
        Run the inpainting job for a prepared edit.

        Returns:
            InpaintResult carrying the crop URL (and a full image URL if the
            service composited it)

        Raises:
            InpaintError: non-success status or transport failure
            InpaintTimeoutError: job still running after max_attempts polls
        """
        payload = self.build_payload(prepared)
        try:
            if self.http_client is not None:
                prediction = await self._run(self.http_client, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    prediction = await self._run(client, payload)
        except httpx.HTTPError as e:
            raise InpaintError(f"Inpainting request failed: {e}")

        urls = parse_prediction_output(prediction.get("output"))
        if not urls["crop_url"] and not urls["full_image_url"]:
            raise InpaintError("Inpainting succeeded but returned no image")

        return InpaintResult(room_id=prepared.room_id, **urls)

    async def _run(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await client.post(self.api_url, json=payload, headers=self.headers)
        if response.status_code >= 400:
            raise InpaintError(f"Replicate API error: {response.text}")

        prediction = response.json()
        prediction = await self._poll(client, prediction)

        status = prediction.get("status")
        if status in ("failed", "canceled"):
            raise InpaintError(prediction.get("error") or f"Inpainting {status}")
        if status != "succeeded":
            raise InpaintTimeoutError(
                f"Inpainting timed out after {self.max_attempts} poll attempts (status: {status})"
            )
        return prediction

    async def _poll(self, client: httpx.AsyncClient, prediction: Dict[str, Any]) -> Dict[str, Any]:
        attempts = 0
        while prediction.get("status") not in TERMINAL_STATUSES and attempts < self.max_attempts:
            await asyncio.sleep(self.poll_interval)

            get_url = (prediction.get("urls") or {}).get("get")
            if not get_url:
                raise InpaintError("Prediction has no status URL to poll")

            response = await client.get(get_url, headers=self.headers)
            if response.status_code >= 400:
                raise InpaintError(f"Replicate API error: {response.text}")
            prediction = response.json()
            attempts += 1
            logger.debug("Inpaint poll %d: %s", attempts, prediction.get("status"))

        return prediction
