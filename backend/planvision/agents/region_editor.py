"""
Region Editor

Turns a (room, prompt, strength) selection into the request the inpainting
service expects, and dispatches it.

Edits compose: the crop is always taken from the CURRENT image, which may
already be the product of earlier edits. The crop box is fixed here and
travels with the request so the compositor can put the result back at the
exact same pixels.

FULLY TRACED with LangSmith.
"""

import logging
from typing import Optional, Tuple

import httpx
from langsmith import traceable
from PIL import Image, ImageDraw

from planvision.config import get_settings
from planvision.core.compositor import compute_crop_box
from planvision.core.exceptions import InpaintError, InvalidEditError, PlanVisionError
from planvision.core.image_utils import encode_image, load_image
from planvision.core.prompt_builder import INPAINT_NEGATIVE_PROMPT, build_inpaint_prompt
from planvision.models.edit import MAX_STRENGTH, MIN_STRENGTH, CropBox, EditRequest, InpaintResult, PreparedEdit
from planvision.models.geometry import RoomRegion


logger = logging.getLogger(__name__)


def validate_edit(request: EditRequest) -> None:
    """Reject a submission locally, before any network call."""
    if not MIN_STRENGTH <= request.strength <= MAX_STRENGTH:
        raise InvalidEditError(
            f"Strength must be between {MIN_STRENGTH} and {MAX_STRENGTH}, got {request.strength}"
        )
    if not request.prompt or not request.prompt.strip():
        raise InvalidEditError("Edit prompt must not be empty")


def rasterize_polygon_mask(region: RoomRegion, crop_box: CropBox, image_size: Tuple[int, int]) -> Image.Image:
    """Room polygon drawn white on black, in crop coordinates."""
    width, height = image_size
    points = [
        (pt.x / 100 * width - crop_box.left, pt.y / 100 * height - crop_box.top)
        for pt in region.polygon
    ]
    mask = Image.new("L", (crop_box.width, crop_box.height), 0)
    ImageDraw.Draw(mask).polygon(points, fill=255)
    return mask


class RegionEditor:
    """
    Prepares and submits localized room edits.
    """

    def __init__(
        self,
        inpaint_tool=None,
        padding_px: int = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self._inpaint_tool = inpaint_tool
        self.padding_px = settings.crop_padding_px if padding_px is None else padding_px
        self.http_client = http_client

    @property
    def inpaint_tool(self):
        if self._inpaint_tool is None:
            from planvision.tools.inpaint import InpaintTool
            self._inpaint_tool = InpaintTool(http_client=self.http_client)
        return self._inpaint_tool

    async def _load_mask(self, region: RoomRegion, crop_box: CropBox, image_size: Tuple[int, int]) -> Image.Image:
        if not region.mask_url:
            return rasterize_polygon_mask(region, crop_box, image_size)

        mask = (await load_image(region.mask_url, self.http_client)).convert("L")
        if mask.size != image_size:
            mask = mask.resize(image_size, Image.Resampling.NEAREST)
        return mask.crop(crop_box.as_tuple())

    @traceable(name="region_editor.prepare", run_type="chain", tags=["edit", "crop"])
    async def prepare(self, request: EditRequest, current_image: str) -> PreparedEdit:
        """
        Build the localized edit request.

        Args:
            request: Room, prompt, strength and optional seed
            current_image: The image currently displayed (data URL or URL)

        Returns:
            PreparedEdit with the padded crop, its mask and the final prompt
        """
        validate_edit(request)

        image = await load_image(current_image, self.http_client)
        region = request.region
        crop_box = compute_crop_box(region.bbox, image.size, self.padding_px)

        crop = image.crop(crop_box.as_tuple())
        mask = await self._load_mask(region, crop_box, image.size)

        logger.info(
            "Prepared edit for %s (%s): crop %dx%d at (%d, %d)",
            region.id, region.label, crop_box.width, crop_box.height, crop_box.left, crop_box.top,
        )
        return PreparedEdit(
            request=request,
            crop_box=crop_box,
            image_size=image.size,
            crop_image=encode_image(crop),
            mask_image=encode_image(mask),
            prompt=build_inpaint_prompt(request.prompt, region.label),
            negative_prompt=INPAINT_NEGATIVE_PROMPT,
        )

    @traceable(name="region_editor.submit", run_type="chain", tags=["edit", "inpaint"])
    async def submit(self, prepared: PreparedEdit) -> InpaintResult:
        """Exactly one inpaint call per prepared edit."""
        try:
            return await self.inpaint_tool.inpaint(prepared)
        except PlanVisionError:
            raise
        except Exception as e:
            logger.exception("Inpainting failed for %s", prepared.room_id)
            raise InpaintError(f"Inpainting failed: {e}")
