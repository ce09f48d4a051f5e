"""
Compositor

Merges a localized inpaint result back into the full-resolution image.

When the inpainting service already returns a composited full image it is
adopted as-is. When it only returns the edited crop, the crop is resized to
the crop box fixed at request time and blended in with a linear feather:
opacity ramps from 0 at the crop boundary to 1 at `feather_px` pixels
inward. Crop sides that sit on the image border have nothing to blend
against and are not feathered.

Every pixel outside the crop box is copied unchanged, so a no-op edit
reproduces the input exactly. Bases in a mode other than RGB, RGBA or L
(palette, LA, CMYK, ...) are blended and returned as RGBA; their pixels
outside the crop equal `base.convert("RGBA")`.
"""

import logging
import math
from typing import Optional, Tuple

import httpx
import numpy as np
from PIL import Image
from pydantic import BaseModel

from planvision.core.exceptions import InpaintError, InvalidImageError
from planvision.core.image_utils import encode_image, load_image
from planvision.models.edit import CropBox, InpaintResult, PreparedEdit
from planvision.models.geometry import BoundingBox


logger = logging.getLogger(__name__)

BLEND_MODES = ("RGB", "RGBA", "L")


def compute_crop_box(bbox: BoundingBox, image_size: Tuple[int, int], padding_px: int) -> CropBox:
    """
    Scale a percentage bbox to pixels and pad it with context on every side.

    The top-left is floored and the bottom-right ceiled so the crop always
    covers the whole room; the result is clamped to the image.
    """
    width, height = image_size
    left = math.floor(bbox.x / 100 * width) - padding_px
    top = math.floor(bbox.y / 100 * height) - padding_px
    right = math.ceil((bbox.x + bbox.width) / 100 * width) + padding_px
    bottom = math.ceil((bbox.y + bbox.height) / 100 * height) + padding_px

    left = max(0, min(width - 1, left))
    top = max(0, min(height - 1, top))
    right = max(left + 1, min(width, right))
    bottom = max(top + 1, min(height, bottom))

    return CropBox(left=left, top=top, width=right - left, height=bottom - top)


def feather_mask(
    width: int,
    height: int,
    feather_px: int,
    feather_sides: Tuple[bool, bool, bool, bool] = (True, True, True, True),
) -> np.ndarray:
    """
    Opacity mask of shape (height, width) with values in [0, 1].

    Args:
        width, height: Crop size in pixels
        feather_px: Ramp length; 0 disables feathering
        feather_sides: Which of (left, top, right, bottom) get a ramp

    The outermost pixel row/column of a feathered side has opacity 0 and the
    ramp reaches 1 at `feather_px` pixels from that side.
    """
    if feather_px <= 0:
        return np.ones((height, width), dtype=np.float32)

    cols = np.arange(width, dtype=np.float32)
    rows = np.arange(height, dtype=np.float32)
    inf = np.float32(np.inf)
    left, top, right, bottom = feather_sides

    dist_x = np.minimum(
        cols if left else np.full(width, inf, dtype=np.float32),
        (width - 1 - cols) if right else np.full(width, inf, dtype=np.float32),
    )
    dist_y = np.minimum(
        rows if top else np.full(height, inf, dtype=np.float32),
        (height - 1 - rows) if bottom else np.full(height, inf, dtype=np.float32),
    )
    distance = np.minimum(dist_y[:, None], dist_x[None, :])
    return np.clip(distance / np.float32(feather_px), 0.0, 1.0).astype(np.float32)


def composite_crop(base: Image.Image, crop: Image.Image, crop_box: CropBox, feather_px: int) -> Image.Image:
    """
    Blend `crop` into `base` at `crop_box` and return a new image.

    The result keeps `base.mode` for RGB, RGBA and L bases and is RGBA for
    every other mode.
    """
    if base.mode not in BLEND_MODES:
        base = base.convert("RGBA")
    if crop.mode != base.mode:
        crop = crop.convert(base.mode)
    if crop.size != (crop_box.width, crop_box.height):
        crop = crop.resize((crop_box.width, crop_box.height), Image.Resampling.LANCZOS)

    image_w, image_h = base.size
    sides = (
        crop_box.left > 0,
        crop_box.top > 0,
        crop_box.right < image_w,
        crop_box.bottom < image_h,
    )
    alpha = feather_mask(crop_box.width, crop_box.height, feather_px, sides)

    output = np.array(base, dtype=np.uint8)
    window = (slice(crop_box.top, crop_box.bottom), slice(crop_box.left, crop_box.right))
    region = output[window].astype(np.float32)
    edited = np.asarray(crop, dtype=np.float32)
    if output.ndim == 3:
        alpha = alpha[:, :, None]

    blended = edited * alpha + region * (1.0 - alpha)
    output[window] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)
    return Image.fromarray(output)


class CompositeOutcome(BaseModel):
    image: str
    composited_locally: bool


class Compositor:
    """
    Produces the next full-resolution image state from an inpaint result.
    """

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.http_client = http_client

    async def apply(
        self,
        result: InpaintResult,
        prepared: PreparedEdit,
        current_image: str,
    ) -> CompositeOutcome:
        """
        Args:
            result: Inpainting service response
            prepared: The edit as built at request time (crop box, feather)
            current_image: Image the edit was prepared against

        Returns:
            CompositeOutcome with the new image as a URL or PNG data URL
        """
        if result.full_image_url:
            return CompositeOutcome(image=result.full_image_url, composited_locally=False)

        if not result.crop_url:
            raise InpaintError("Inpainting returned no image")

        base = await load_image(current_image, self.http_client)
        if base.size != tuple(prepared.image_size):
            raise InpaintError(
                f"Image changed during edit: expected {prepared.image_size}, got {base.size}"
            )

        try:
            crop = await load_image(result.crop_url, self.http_client)
        except InvalidImageError as e:
            raise InpaintError(f"Could not load inpainted crop: {e.message}")
        feather = prepared.request.region.feather_px
        logger.info(
            "Compositing %s crop %s at (%d, %d), feather=%dpx",
            prepared.room_id, crop.size, prepared.crop_box.left, prepared.crop_box.top, feather,
        )
        merged = composite_crop(base, crop, prepared.crop_box, feather)
        return CompositeOutcome(image=encode_image(merged), composited_locally=True)
