"""
Edit Models

Types for a single localized room edit: the user's request, the pixel crop
fixed when the request is built, and the inpainting service's answer.
"""

from datetime import datetime, timezone
from typing import Optional, Tuple
from pydantic import BaseModel, Field

from planvision.models.geometry import RoomRegion


MIN_STRENGTH = 0.3
MAX_STRENGTH = 1.0


class EditRequest(BaseModel):
    """
    A user's edit intent for one room.

    Bounds on strength and prompt are checked by the region editor so that a
    bad submission is rejected with InvalidEditError, not a pydantic error.
    """
    region: RoomRegion
    prompt: str
    strength: float = 0.8
    seed: Optional[int] = None


class CropBox(BaseModel):
    """Padded crop rectangle in source-image pixels."""
    left: int = Field(..., ge=0)
    top: int = Field(..., ge=0)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    def as_tuple(self) -> Tuple[int, int, int, int]:
        """(left, top, right, bottom) as used by PIL."""
        return (self.left, self.top, self.right, self.bottom)


class PreparedEdit(BaseModel):
    """Everything the inpainting call and the compositor need."""
    request: EditRequest
    crop_box: CropBox
    image_size: Tuple[int, int] = Field(..., description="(width, height) of the image being edited")
    crop_image: str = Field(..., description="Cropped current image as a PNG data URL")
    mask_image: str = Field(..., description="Mask in crop space as a PNG data URL; white = editable")
    prompt: str = Field(..., description="Full prompt sent to the inpainting model")
    negative_prompt: str = ""

    @property
    def room_id(self) -> str:
        return self.request.region.id


class InpaintResult(BaseModel):
    """Inpainting service response."""
    room_id: str
    crop_url: Optional[str] = None
    full_image_url: Optional[str] = None


class EditRecord(BaseModel):
    """One applied edit, kept in the session's history."""
    room_id: str
    room_label: str
    prompt: str
    strength: float
    seed: Optional[int] = None
    composited_locally: bool = False
    applied_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
