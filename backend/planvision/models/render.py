"""
Render Models

Annotations, style presets and render jobs for full-image isometric
generation.
"""

from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from planvision.models.geometry import Point


StylePreset = Literal["modern", "scandinavian", "industrial", "traditional", "colorful"]

AnnotationType = Literal["label", "arrow", "keep", "change", "path"]


class RenderState(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    DONE = "done"
    ERROR = "error"


class Annotation(BaseModel):
    """User mark on the floor plan; only its type and text reach the prompt."""
    id: int = 0
    type: AnnotationType
    x: Optional[float] = None
    y: Optional[float] = None
    from_x: Optional[float] = None
    from_y: Optional[float] = None
    to_x: Optional[float] = None
    to_y: Optional[float] = None
    points: List[Point] = Field(default_factory=list)
    text: Optional[str] = None


class StyleConfig(BaseModel):
    value: StylePreset
    label: str
    description: str
    prompt_suffix: str


class EditPreset(BaseModel):
    label: str
    prompt: str


class RenderJob(BaseModel):
    """A single full-image generation: idle -> generating -> done/error."""
    style: StylePreset = "modern"
    state: RenderState = RenderState.IDLE
    image: Optional[str] = Field(default=None, description="Data URL or hosted URL of the render")
    description: Optional[str] = None
    model: Optional[str] = None
    error: Optional[str] = None
