"""
Detect Route

POST /detect - Detect rooms on a floor plan image (stateless).
Uses Gemini vision with one of the detection strategies.

FULLY TRACED with LangSmith.
"""

import base64
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from langsmith import traceable

from planvision.agents.detection import RoomDetector
from planvision.core.image_utils import to_data_url
from planvision.models.api import DetectRequest, DetectResponse
from planvision.routes.deps import get_detector


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/detect", tags=["Detection"])

ALLOWED_TYPES = ["image/jpeg", "image/png", "image/webp"]


@router.post("", response_model=DetectResponse)
@traceable(name="detect_rooms_endpoint", run_type="chain", tags=["api", "detection"])
async def detect_rooms(
    request: DetectRequest,
    detector: RoomDetector = Depends(get_detector),
) -> DetectResponse:
    """
    Detect room regions on a floor plan.

    Returns polygons in percentage space (0-100) with ids 'room-<index>'.
    """
    result = await detector.detect(to_data_url(request.image), request.strategy)
    return DetectResponse(
        rooms=result.rooms,
        method=result.method,
        bounds=result.bounds,
        message=f"Detected {len(result.rooms)} rooms using {result.method}.",
    )


@router.post("/upload", response_model=DetectResponse)
@traceable(name="detect_rooms_upload", run_type="chain", tags=["api", "detection", "upload"])
async def detect_rooms_upload(
    file: UploadFile = File(...),
    strategy: str = Form("single_pass"),
    detector: RoomDetector = Depends(get_detector),
) -> DetectResponse:
    """
    Detect rooms on a floor plan uploaded as a file.

    Accepts: JPEG, PNG, WebP
    """
    if file.content_type not in ALLOWED_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Allowed: {ALLOWED_TYPES}"
        )

    contents = await file.read()
    image = to_data_url(base64.b64encode(contents).decode("utf-8"), file.content_type)

    return await detect_rooms(DetectRequest(image=image, strategy=strategy), detector)
