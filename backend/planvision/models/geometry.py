"""
Geometry Models

Room geometry in percentage space (0-100 of image width/height).
Detection, overlays and edit requests all share this coordinate contract;
pixels only appear at crop/composite time.
"""

from typing import Annotated, Any, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, computed_field


class Point(BaseModel):
    """A polygon vertex as percentages of image width/height."""
    model_config = ConfigDict(frozen=True)

    x: float = Field(..., ge=0, le=100)
    y: float = Field(..., ge=0, le=100)


class BoundingBox(BaseModel):
    """Axis-aligned box; (x, y) is the top-left corner."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float


def bounds_of(points: List[Point]) -> BoundingBox:
    """
    Min/max extent of a point list.

    Seeds are 100 for the minimums and 0 for the maximums, so an empty list
    yields a degenerate box with negative size.
    """
    min_x, min_y, max_x, max_y = 100.0, 100.0, 0.0, 0.0
    for pt in points:
        min_x = min(min_x, pt.x)
        min_y = min(min_y, pt.y)
        max_x = max(max_x, pt.x)
        max_y = max(max_y, pt.y)
    return BoundingBox(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)


class RoomRegion(BaseModel):
    """
    One detected room.

    Regions are immutable: a new detection run replaces the whole set.
    The bounding box is always derived from the polygon.
    """

    id: str = Field(..., description="'room-<index>' within one detection run")
    label: str = Field(..., description="Free-text room type from the vision model")
    confidence: float = Field(default=0.9, ge=0, le=1)
    polygon: List[Point] = Field(..., min_length=3, description="Implicitly closed, clockwise by convention")
    mask_url: Optional[str] = Field(default=None, description="Refined binary mask; polygon is used when absent")
    feather_px: int = Field(default=12, ge=0)
    shape: Optional[str] = Field(default=None, description="Shape hint, e.g. 'L-shaped'")

    @computed_field
    @property
    def bbox(self) -> BoundingBox:
        return bounds_of(self.polygon)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "examples": [{
                "id": "room-0",
                "label": "Living Room",
                "confidence": 0.9,
                "polygon": [
                    {"x": 15, "y": 20}, {"x": 35, "y": 20}, {"x": 35, "y": 40},
                    {"x": 25, "y": 40}, {"x": 25, "y": 55}, {"x": 15, "y": 55},
                ],
                "mask_url": None,
                "feather_px": 12,
                "shape": "L-shaped",
            }]
        },
    )


# ============ Raw Vision Records ============
# The vision service answers in one of several encodings. Each raw record is
# resolved once into one of these variants, then normalized into RoomRegion.

class _RecordBase(BaseModel):
    label: Optional[str] = None
    confidence: Optional[Any] = None
    shape: Optional[str] = None
    mask_url: Optional[str] = None


class PolygonPoints(_RecordBase):
    """Explicit list of {x, y} points."""
    kind: Literal["polygon"] = "polygon"
    points: List[Any] = Field(default_factory=list)


class SvgPath(_RecordBase):
    """SVG-like path string, e.g. 'M 15,20 L 35,20 L 35,40 Z'."""
    kind: Literal["svg_path"] = "svg_path"
    path: str = ""


class BoundsOnly(_RecordBase):
    """Only a bounding box was reported."""
    kind: Literal["bounds"] = "bounds"
    x: Any = 0
    y: Any = 0
    width: Any = 0
    height: Any = 0


RoomRecord = Annotated[
    Union[PolygonPoints, SvgPath, BoundsOnly],
    Field(discriminator="kind"),
]


class DetectionResult(BaseModel):
    """Output of one detection run."""
    rooms: List[RoomRegion] = Field(..., min_length=1)
    method: str = Field(..., description="Name of the strategy that produced the rooms")
    bounds: Optional[BoundingBox] = Field(
        default=None, description="Floor-plan drawing bounds (two-pass detection only)"
    )
