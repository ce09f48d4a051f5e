"""
Room Detection

Runs one detection strategy against the vision service and returns a
normalized, non-empty set of RoomRegions.

Strategies share one contract: given an image, return raw room records.
- single_pass: one call, rooms traced as point arrays
- svg_path:    one call, rooms traced as SVG path strings with a shape hint
- two_pass:    locate the drawing bounds first, then trace rooms inside them
- per_room:    list rooms with centers, then trace each room on its own

FULLY TRACED with LangSmith.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type

from langsmith import traceable

from planvision.config import get_settings
from planvision.core.exceptions import DetectionError, PlanVisionError
from planvision.core.geometry import normalize_rooms, to_number
from planvision.models.geometry import BoundingBox, DetectionResult


logger = logging.getLogger(__name__)

FULL_IMAGE_BOUNDS = BoundingBox(x=0, y=0, width=100, height=100)


# ============ Prompts ============

SINGLE_PASS_PROMPT = """Analyze this 2D floor plan image. Identify all distinct rooms/spaces and trace their boundaries.

For each room, provide:
- label: The room type (Living Room, Kitchen, Bedroom, Bathroom, Hallway, Dining Room, Office, Closet, Balcony, etc.)
- polygon: Array of points tracing the room boundary, as percentages of image dimensions (0-100)
  - Each point is {x, y} where x is percentage from left, y is percentage from top
  - Trace along the INTERIOR walls of each room
  - Add a point at EVERY corner where walls change direction (L-shaped rooms need 6 points)
  - Points should go clockwise starting from top-left corner

Important:
- Include ALL rooms visible in the floor plan
- Do NOT include space outside the floor plan drawing
- Rooms should NOT overlap - each polygon covers only its own room
- Use standard room names in English

Return ONLY valid JSON array, no markdown, no explanation:
[{"label": "Living Room", "polygon": [{"x": 10, "y": 20}, {"x": 40, "y": 20}, {"x": 40, "y": 55}, {"x": 10, "y": 55}]}]"""


SVG_PATH_PROMPT = """Analyze this floor plan image. For each room:

1. FIRST, describe its shape:
   - "rectangular" = 4 corners
   - "L-shaped" = 6 corners
   - "T-shaped" = 8 corners

2. THEN, trace its boundary as an SVG path string using percentages (0-100):
   - M = start point, L = line to next corner, Z = close path
   - Go clockwise from top-left

EXAMPLES:
{"label": "Living Room", "shape": "L-shaped", "path": "M 15,20 L 35,20 L 35,40 L 25,40 L 25,55 L 15,55 Z"}
{"label": "Bedroom", "shape": "rectangular", "path": "M 40,10 L 60,10 L 60,35 L 40,35 Z"}

CRITICAL:
- Count the actual corners in the floor plan for each room
- Stay inside the floor plan drawing, ignore margins
- Follow the black wall lines exactly

Output ONLY valid JSON array:
[{"label": "...", "shape": "...", "path": "M ... Z"}]"""


BOUNDS_DETECTION_PROMPT = """Look at this image containing a 2D floor plan.

Identify the BOUNDING BOX of the actual floor plan drawing (the architectural drawing with walls).
Ignore white margins, text labels, logos, and dimensions that are outside the floor plan.

Return the bounds as percentages of the image dimensions:
- x: left edge of floor plan (0-100)
- y: top edge of floor plan (0-100)
- width: width of floor plan area (0-100)
- height: height of floor plan area (0-100)

Return ONLY valid JSON, no markdown:
{"x": 15, "y": 10, "width": 60, "height": 75}"""


BOUNDED_ROOMS_TEMPLATE = """Analyze this 2D floor plan. The floor plan drawing is at:
- Left: {x:g}%, Top: {y:g}%, Width: {width:g}%, Height: {height:g}%

Trace the EXACT boundary of each room by following the wall lines.

CRITICAL - POLYGON TRACING:
- Most rooms are NOT simple rectangles
- Add a point at EVERY corner where walls change direction
- L-shaped rooms need 6 points, T-shaped need 8 points
- Start top-left, go clockwise

For each room provide:
- label: Room type in English
- polygon: Array of {{x, y}} points as percentages (0-100) of the FULL image

RULES:
- ALL points must be within the floor plan bounds above
- Follow BLACK WALL LINES exactly
- No overlapping rooms

Return ONLY valid JSON array:
[{{"label": "...", "polygon": [...]}}]"""


IDENTIFY_ROOMS_PROMPT = """Look at this 2D floor plan. List all the rooms you can identify.

For each room, provide:
- label: The room type (Bedroom, Living Room, Kitchen, Bathroom, Hallway, Balcony, etc.)
- center: Approximate center point as {x, y} percentages (0-100) of the image
- shape: Brief description (e.g., "rectangular", "L-shaped", "irregular")

Output ONLY a JSON array:
[{"label": "Living Room", "center": {"x": 30, "y": 40}, "shape": "L-shaped"}]"""


TRACE_ROOM_TEMPLATE = """Look at this 2D floor plan. Focus ONLY on the {label} located near coordinates ({center_x:g}%, {center_y:g}%).

Trace the EXACT boundary of this room by following its walls. The room is described as: {shape}.

CRITICAL:
- Add a point at EVERY corner where walls turn
- If it's L-shaped, you need 6 points; if rectangular, 4 points
- Follow the interior wall lines exactly
- Coordinates are percentages (0-100) of the image

Output ONLY a JSON object with the polygon points, clockwise from top-left:
{{"polygon": [{{"x": 20, "y": 15}}, {{"x": 40, "y": 15}}, ...]}}"""


# ============ Strategies ============

class DetectionStrategy(ABC):
    """Given an image, return raw room records from the vision service."""

    name: str = ""

    def __init__(self, client):
        self.client = client
        self.bounds: Optional[BoundingBox] = None

    @abstractmethod
    async def run(self, image: str) -> List[Any]:
        ...

    @staticmethod
    def _expect_list(data: Any) -> List[Any]:
        if not isinstance(data, list):
            raise DetectionError("Invalid room detection format: expected a JSON array")
        return data


class SinglePassStrategy(DetectionStrategy):
    """One call: enumerate rooms and trace their boundaries."""

    name = "single_pass"
    prompt = SINGLE_PASS_PROMPT

    async def run(self, image: str) -> List[Any]:
        return self._expect_list(await self.client.ask_json(image, self.prompt))


class SvgPathStrategy(SinglePassStrategy):
    """One call, boundaries returned as SVG paths with a shape hint."""

    name = "svg_path"
    prompt = SVG_PATH_PROMPT


class TwoPassStrategy(DetectionStrategy):
    """Find the drawing bounds, then trace rooms anchored to them."""

    name = "two_pass"

    async def detect_bounds(self, image: str) -> BoundingBox:
        """Pass 1. Any failure falls back to the full image."""
        try:
            data = await self.client.ask_json(image, BOUNDS_DETECTION_PROMPT)
            if not isinstance(data, dict):
                raise DetectionError("Bounds response is not a JSON object")
            x = max(0.0, min(100.0, to_number(data.get("x"))))
            y = max(0.0, min(100.0, to_number(data.get("y"))))
            width = to_number(data.get("width")) or 100.0
            height = to_number(data.get("height")) or 100.0
            return BoundingBox(
                x=x, y=y,
                width=max(0.0, min(100.0 - x, width)),
                height=max(0.0, min(100.0 - y, height)),
            )
        except Exception as e:
            logger.warning("Bounds detection failed, using full image: %s", e)
            return FULL_IMAGE_BOUNDS

    async def run(self, image: str) -> List[Any]:
        self.bounds = await self.detect_bounds(image)
        logger.info("Detected floor plan bounds: %s", self.bounds.model_dump())

        prompt = BOUNDED_ROOMS_TEMPLATE.format(**self.bounds.model_dump())
        return self._expect_list(await self.client.ask_json(image, prompt))


class PerRoomTraceStrategy(DetectionStrategy):
    """List rooms with centers, then trace each room individually in batches."""

    name = "per_room"

    def __init__(self, client, batch_size: int = None):
        super().__init__(client)
        self.batch_size = batch_size or get_settings().detection_batch_size

    async def _trace_room(self, image: str, room: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Trace one room; failures are logged and the room omitted."""
        label = room.get("label") or "room"
        try:
            center = room.get("center") if isinstance(room.get("center"), dict) else {}
            prompt = TRACE_ROOM_TEMPLATE.format(
                label=label,
                center_x=to_number(center.get("x")) or 50,
                center_y=to_number(center.get("y")) or 50,
                shape=room.get("shape") or "rectangular",
            )
            result = await self.client.ask_json(image, prompt)
            if not isinstance(result, dict):
                raise DetectionError("Trace response is not a JSON object")
        except Exception as e:
            logger.warning("Failed to trace %s: %s", label, e)
            return None

        traced = dict(result)
        traced["label"] = room.get("label")
        traced.setdefault("shape", room.get("shape"))
        return traced

    async def run(self, image: str) -> List[Any]:
        rooms = await self.client.ask_json(image, IDENTIFY_ROOMS_PROMPT)
        if not isinstance(rooms, list) or not rooms:
            raise DetectionError("No rooms identified")

        rooms = [room for room in rooms if isinstance(room, dict)]
        logger.info("Found %d rooms, tracing each...", len(rooms))

        traced: List[Any] = []
        for start in range(0, len(rooms), self.batch_size):
            batch = rooms[start:start + self.batch_size]
            results = await asyncio.gather(*(self._trace_room(image, room) for room in batch))
            traced.extend(r for r in results if r is not None)
        return traced


STRATEGIES: Dict[str, Type[DetectionStrategy]] = {
    SinglePassStrategy.name: SinglePassStrategy,
    SvgPathStrategy.name: SvgPathStrategy,
    TwoPassStrategy.name: TwoPassStrategy,
    PerRoomTraceStrategy.name: PerRoomTraceStrategy,
}


# ============ Orchestrator ============

class RoomDetector:
    """
    Runs a detection strategy end-to-end and returns normalized regions.

    Either returns a DetectionResult with at least one room or raises
    DetectionError; no partially-normalized records ever leave this class.
    """

    def __init__(self, client=None, default_confidence: float = None, feather_px: int = None):
        settings = get_settings()
        if client is None:
            from planvision.tools.vision_client import GeminiVisionClient
            client = GeminiVisionClient()
        self.client = client
        self.default_confidence = (
            settings.default_confidence if default_confidence is None else default_confidence
        )
        self.feather_px = settings.default_feather_px if feather_px is None else feather_px

    def build_strategy(self, strategy: str) -> DetectionStrategy:
        strategy_cls = STRATEGIES.get(strategy)
        if strategy_cls is None:
            raise DetectionError(
                f"Unknown detection strategy '{strategy}'. Available: {sorted(STRATEGIES)}"
            )
        return strategy_cls(self.client)

    @traceable(name="room_detector.detect", run_type="chain", tags=["vision", "detection"])
    async def detect(self, image: str, strategy: str = SinglePassStrategy.name) -> DetectionResult:
        """
        Detect rooms in a floor plan image.

        Args:
            image: Data URL, bare base64 or hosted URL
            strategy: Strategy name, see STRATEGIES

        Returns:
            DetectionResult with a non-empty list of RoomRegions
        """
        runner = self.build_strategy(strategy)
        logger.info("Running room detection (%s)", runner.name)

        try:
            raw_records = await runner.run(image)
        except PlanVisionError:
            raise
        except Exception as e:
            logger.exception("Room detection failed")
            raise DetectionError(f"Room detection failed: {e}")

        rooms = normalize_rooms(
            raw_records,
            default_confidence=self.default_confidence,
            feather_px=self.feather_px,
        )
        if not rooms:
            raise DetectionError(
                f"No valid rooms detected ({len(raw_records)} record(s) returned, none usable)"
            )

        logger.info("Detected %d room(s) with %s", len(rooms), runner.name)
        return DetectionResult(rooms=rooms, method=runner.name, bounds=runner.bounds)
