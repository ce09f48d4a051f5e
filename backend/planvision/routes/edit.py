"""
Edit Route

POST /projects/{id}/edit - Inpaint one detected room and composite it into
                           the project's current image
GET  /edit-presets       - Quick prompts for room edits

FULLY TRACED with LangSmith.
"""

import logging

from fastapi import APIRouter, Depends
from langsmith import traceable

from planvision.agents.region_editor import RegionEditor
from planvision.config import get_settings
from planvision.core.compositor import Compositor
from planvision.core.prompt_builder import EDIT_PRESETS
from planvision.core.session import SessionRegistry
from planvision.models.api import EditPresetsResponse, EditRoomRequest, EditRoomResponse, ErrorResponse
from planvision.routes.deps import get_compositor, get_region_editor, get_registry


logger = logging.getLogger(__name__)
router = APIRouter(tags=["Editing"])

EDIT_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Unknown room, bad strength or empty prompt"},
    404: {"model": ErrorResponse, "description": "Project not found"},
    409: {"model": ErrorResponse, "description": "Another edit is still running"},
    502: {"model": ErrorResponse, "description": "Inpainting service failed"},
    504: {"model": ErrorResponse, "description": "Inpainting did not finish in time"},
}


@router.post("/projects/{project_id}/edit", response_model=EditRoomResponse, responses=EDIT_ERROR_RESPONSES)
@traceable(name="edit_room_endpoint", run_type="chain", tags=["api", "edit", "inpaint"])
async def edit_room(
    project_id: str,
    request: EditRoomRequest,
    registry: SessionRegistry = Depends(get_registry),
    editor: RegionEditor = Depends(get_region_editor),
    compositor: Compositor = Depends(get_compositor),
) -> EditRoomResponse:
    """
    Apply a localized edit to one room.

    This endpoint:
    1. Looks up the room from the project's latest detection
    2. Crops the current image around it and builds the mask
    3. Sends crop + mask + prompt to the inpainting service
    4. Feathers the result back into the current image

    Edits compose: each one starts from the image the previous one produced.
    """
    session = registry.get(project_id)
    record = await session.submit_edit(
        room_id=request.room_id,
        prompt=request.prompt,
        strength=request.strength if request.strength is not None else get_settings().default_strength,
        editor=editor,
        compositor=compositor,
        seed=request.seed,
    )
    registry.save(project_id)

    return EditRoomResponse(
        current_image=session.current_image,
        edit=record,
        message=f"Edited {record.room_label} ({len(session.edit_history)} edit(s) applied).",
    )


@router.get("/edit-presets", response_model=EditPresetsResponse)
async def list_edit_presets() -> EditPresetsResponse:
    return EditPresetsResponse(presets=EDIT_PRESETS)
