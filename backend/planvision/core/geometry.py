"""
Geometry Normalizer

Turns raw room records from the vision service into validated RoomRegion
objects. Three encodings are accepted (point arrays, SVG path strings and
bare bounding boxes) plus Gemini's native box_2d. Each record is resolved
once into a tagged RoomRecord variant and then into a polygon clamped to
percentage space.

Records that cannot produce at least 3 points are dropped; a 1-2 point
polygon cannot bound a region and would break the crop math downstream.
"""

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional

from planvision.core.exceptions import GeometryError
from planvision.models.geometry import (
    BoundsOnly,
    Point,
    PolygonPoints,
    RoomRecord,
    RoomRegion,
    SvgPath,
)
from planvision.vision.labels import clean_room_label


logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.9
DEFAULT_FEATHER_PX = 12
MIN_POLYGON_POINTS = 3

_NUMBER = r"([-+]?(?:\d+(?:\.\d*)?|\.\d+))"
SVG_COMMAND_RE = re.compile(rf"([ML])\s*{_NUMBER}[,\s]+{_NUMBER}", re.IGNORECASE)


# ============ Coordinate Helpers ============

def to_number(value: Any) -> float:
    """Coerce a JSON value to float; missing values count as 0."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise GeometryError(f"Expected a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise GeometryError(f"Expected a number, got {value!r}")
    if math.isnan(number):
        raise GeometryError("Coordinate is NaN")
    return number


def clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def make_point(x: Any, y: Any) -> Point:
    return Point(x=clamp_percent(to_number(x)), y=clamp_percent(to_number(y)))


def rectangle_points(x: float, y: float, width: float, height: float) -> List[Point]:
    """Clockwise rectangle starting at the top-left corner."""
    return [
        make_point(x, y),
        make_point(x + width, y),
        make_point(x + width, y + height),
        make_point(x, y + height),
    ]


def parse_svg_path(path: str) -> List[Point]:
    """
    Extract one point per M/L command, in order.

    Both 'M 15,20' and 'M 15 20' are accepted. Z and any token that is not
    an M/L followed by two numbers are skipped.
    """
    if not path:
        return []
    return [make_point(m.group(2), m.group(3)) for m in SVG_COMMAND_RE.finditer(path)]


def convert_box_2d_to_bounds(box_2d: List[Any]) -> Dict[str, float]:
    """
    Convert Gemini's [ymin, xmin, ymax, xmax] (0-1000) to percentage bounds.
    """
    if not isinstance(box_2d, (list, tuple)) or len(box_2d) != 4:
        raise GeometryError(f"box_2d must have 4 values, got {box_2d!r}")
    ymin, xmin, ymax, xmax = (max(0.0, min(1000.0, to_number(v))) for v in box_2d)
    return {
        "x": xmin / 10,
        "y": ymin / 10,
        "width": (xmax - xmin) / 10,
        "height": (ymax - ymin) / 10,
    }


# ============ Record Resolution ============

def coerce_record(raw: Any) -> RoomRecord:
    """
    Resolve a raw JSON room record into one tagged variant.

    Priority: 'path' string, 'polygon' (a string polygon is read as a path),
    bounds ('bbox'/'bounds' object or top-level x/y/width/height), 'box_2d'.
    """
    if not isinstance(raw, dict):
        raise GeometryError(f"Room record must be an object, got {type(raw).__name__}")

    label = raw.get("label")
    shape = raw.get("shape")
    mask_url = raw.get("mask_url") or raw.get("maskUrl")
    common = {
        "label": None if label is None else str(label),
        "confidence": raw.get("confidence", raw.get("score")),
        "shape": shape if isinstance(shape, str) else None,
        "mask_url": mask_url if isinstance(mask_url, str) else None,
    }

    path = raw.get("path")
    if isinstance(path, str) and path.strip():
        return SvgPath(path=path, **common)

    polygon = raw.get("polygon")
    if isinstance(polygon, str):
        return SvgPath(path=polygon, **common)
    if isinstance(polygon, list) and polygon:
        return PolygonPoints(points=polygon, **common)

    bounds = raw.get("bbox") or raw.get("bounds")
    if isinstance(bounds, dict):
        return BoundsOnly(
            x=bounds.get("x"), y=bounds.get("y"),
            width=bounds.get("width"), height=bounds.get("height"),
            **common,
        )
    if all(key in raw for key in ("x", "y", "width", "height")):
        return BoundsOnly(x=raw["x"], y=raw["y"], width=raw["width"], height=raw["height"], **common)

    if "box_2d" in raw:
        return BoundsOnly(**convert_box_2d_to_bounds(raw["box_2d"]), **common)

    # A record with no geometry at all normalizes to an empty polygon.
    return PolygonPoints(points=[], **common)


def record_points(record: RoomRecord) -> List[Point]:
    """Point sequence for a resolved record, clamped to [0, 100]."""
    if isinstance(record, SvgPath):
        return parse_svg_path(record.path)

    if isinstance(record, BoundsOnly):
        return rectangle_points(
            to_number(record.x), to_number(record.y),
            to_number(record.width), to_number(record.height),
        )

    points = []
    for pt in record.points:
        if not isinstance(pt, dict):
            raise GeometryError(f"Polygon point must be an object, got {pt!r}")
        points.append(make_point(pt.get("x"), pt.get("y")))
    return points


def resolve_confidence(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return max(0.0, min(1.0, to_number(value)))
    except GeometryError:
        return default


# ============ Normalization ============

def normalize_rooms(
    raw_records: Iterable[Any],
    default_confidence: float = DEFAULT_CONFIDENCE,
    feather_px: int = DEFAULT_FEATHER_PX,
    mask_urls: Optional[Dict[int, str]] = None,
) -> List[RoomRegion]:
    """
    Normalize raw vision records into RoomRegions.

    Args:
        raw_records: JSON objects as returned by the vision service
        default_confidence: Used when the service reports no score
        feather_px: Edge-blend radius stored on every region
        mask_urls: Refined masks from a segmentation pass, keyed by raw index

    Returns:
        Regions with ids 'room-0', 'room-1', ... in filtered order. Malformed
        records and polygons with fewer than 3 points are dropped.
    """
    mask_urls = mask_urls or {}
    regions: List[RoomRegion] = []

    for raw_index, raw in enumerate(raw_records):
        try:
            record = coerce_record(raw)
            polygon = record_points(record)
        except GeometryError as e:
            logger.warning("Dropping room record %d: %s", raw_index, e.message)
            continue

        if len(polygon) < MIN_POLYGON_POINTS:
            logger.warning(
                "Room %r has invalid polygon (%d points), skipping",
                record.label, len(polygon),
            )
            continue

        index = len(regions)
        regions.append(RoomRegion(
            id=f"room-{index}",
            label=clean_room_label(record.label, index),
            confidence=resolve_confidence(record.confidence, default_confidence),
            polygon=polygon,
            mask_url=mask_urls.get(raw_index) or record.mask_url,
            feather_px=feather_px,
            shape=record.shape,
        ))

    return regions
