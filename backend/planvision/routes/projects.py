"""
Projects Route

POST   /projects              - Create a project from an uploaded floor plan
GET    /projects/{id}         - Current image, rooms and edit history
DELETE /projects/{id}         - Drop a project
POST   /projects/{id}/detect  - Detect rooms on the current image

FULLY TRACED with LangSmith.
"""

import logging

from fastapi import APIRouter, Depends
from langsmith import traceable

from planvision.agents.detection import RoomDetector
from planvision.core.image_utils import to_data_url
from planvision.core.session import SessionRegistry
from planvision.models.api import CreateProjectRequest, DetectResponse, ProjectDetectRequest, ProjectResponse
from planvision.routes.deps import get_detector, get_registry


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/projects", tags=["Projects"])


def project_response(project_id: str, registry: SessionRegistry) -> ProjectResponse:
    session = registry.get(project_id)
    return ProjectResponse(
        project_id=project_id,
        source_image=session.source_image,
        current_image=session.current_image,
        regions=session.regions,
        edit_history=session.edit_history,
        detection_method=session.detection_method,
    )


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    request: CreateProjectRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> ProjectResponse:
    """Start a project; the uploaded image is both source and current image."""
    project_id = registry.create(to_data_url(request.image))
    logger.info("Project %s created", project_id)
    return project_response(project_id, registry)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> ProjectResponse:
    return project_response(project_id, registry)


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> None:
    registry.delete(project_id)


@router.post("/{project_id}/detect", response_model=DetectResponse)
@traceable(name="project_detect_endpoint", run_type="chain", tags=["api", "detection"])
async def detect_project_rooms(
    project_id: str,
    request: ProjectDetectRequest,
    registry: SessionRegistry = Depends(get_registry),
    detector: RoomDetector = Depends(get_detector),
) -> DetectResponse:
    """
    Detect rooms on the project's current image.

    The previous region set is replaced only when detection succeeds.
    """
    session = registry.get(project_id)
    result = await session.run_detection(detector, request.strategy)
    registry.save(project_id)

    return DetectResponse(
        rooms=result.rooms,
        method=result.method,
        bounds=result.bounds,
        message=f"Detected {len(result.rooms)} rooms using {result.method}.",
    )
