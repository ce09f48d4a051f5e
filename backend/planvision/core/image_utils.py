"""
Image Helpers

Conversions between the image references passed around the API (data URLs,
bare base64 strings, hosted URLs) and PIL images / raw bytes.
"""

import base64
import binascii
import io
import re
from typing import Optional, Tuple

import httpx
from PIL import Image, UnidentifiedImageError

from planvision.core.exceptions import InvalidImageError


DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]+)?(?:;base64)?,(?P<data>.*)$", re.DOTALL)
CODE_FENCE_RE = re.compile(r"```(?:json)?\n?", re.IGNORECASE)


def is_remote_url(ref: str) -> bool:
    return ref.startswith("http://") or ref.startswith("https://")


def split_data_url(ref: str) -> Tuple[str, str]:
    """Return (mime_type, base64_payload); bare base64 is assumed to be PNG."""
    match = DATA_URL_RE.match(ref)
    if match:
        return match.group("mime") or "image/png", match.group("data")
    return "image/png", ref


def to_data_url(image_base64: str, mime_type: str = "image/png") -> str:
    """Wrap bare base64 in a data URL; data URLs and hosted URLs pass through."""
    if image_base64.startswith("data:") or is_remote_url(image_base64):
        return image_base64
    return f"data:{mime_type};base64,{image_base64}"


def decode_image_bytes(image_base64: str) -> bytes:
    """Decode a data URL or bare base64 string to raw bytes."""
    _, payload = split_data_url(image_base64)
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Image is not valid base64: {e}")


def open_image(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageError(f"Could not decode image: {e}")
    return image


def decode_base64_image(image_base64: str) -> Image.Image:
    """Decode base64 string (optionally a data URL) to PIL Image."""
    return open_image(decode_image_bytes(image_base64))


def encode_image(image: Image.Image, image_format: str = "PNG") -> str:
    """Encode a PIL image as a data URL."""
    buffer = io.BytesIO()
    image.save(buffer, format=image_format)
    mime = Image.MIME.get(image_format.upper(), "image/png")
    return f"data:{mime};base64,{base64.b64encode(buffer.getvalue()).decode('utf-8')}"


async def load_image_bytes(
    ref: str,
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[bytes, str]:
    """
    Resolve an image reference to (bytes, mime_type).

    Hosted URLs are downloaded; everything else is treated as base64.
    """
    if not is_remote_url(ref):
        mime, _ = split_data_url(ref)
        return decode_image_bytes(ref), mime

    try:
        if client is not None:
            response = await client.get(ref)
        else:
            async with httpx.AsyncClient(timeout=30) as owned:
                response = await owned.get(ref)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise InvalidImageError(f"Could not download image from {ref}: {e}")

    mime = response.headers.get("content-type", "image/png").split(";")[0]
    return response.content, mime


async def load_image(ref: str, client: Optional[httpx.AsyncClient] = None) -> Image.Image:
    data, _ = await load_image_bytes(ref, client)
    return open_image(data)


def strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` wrapping that models put around JSON answers."""
    return CODE_FENCE_RE.sub("", text).strip()
