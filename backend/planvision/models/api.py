"""
PlanVision - API Schemas

Request and response bodies for the HTTP endpoints.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from planvision.models.edit import EditRecord
from planvision.models.geometry import BoundingBox, RoomRegion
from planvision.models.render import Annotation, EditPreset, RenderJob, StyleConfig, StylePreset


class HealthResponse(BaseModel):
    status: str
    version: str
    message: Optional[str] = None
    langsmith_enabled: bool = False


class ErrorResponse(BaseModel):
    detail: str
    error_code: str


# ============ Projects ============

class CreateProjectRequest(BaseModel):
    """Request body for POST /projects."""
    image: str = Field(..., description="Floor plan as a data URL, raw base64 string or hosted URL")


class ProjectResponse(BaseModel):
    project_id: str
    source_image: str
    current_image: str
    regions: List[RoomRegion] = Field(default_factory=list)
    edit_history: List[EditRecord] = Field(default_factory=list)
    detection_method: Optional[str] = None


# ============ Detection ============

class DetectRequest(BaseModel):
    """Request body for POST /detect."""
    image: str = Field(..., description="Floor plan as a data URL, raw base64 string or hosted URL")
    strategy: str = Field(default="single_pass", description="single_pass | svg_path | two_pass | per_room")


class ProjectDetectRequest(BaseModel):
    """Request body for POST /projects/{id}/detect."""
    strategy: str = Field(default="single_pass", description="single_pass | svg_path | two_pass | per_room")


class DetectResponse(BaseModel):
    rooms: List[RoomRegion]
    method: str
    bounds: Optional[BoundingBox] = None
    message: str = ""


# ============ Editing ============

class EditRoomRequest(BaseModel):
    """Request body for POST /projects/{id}/edit."""
    room_id: str = Field(..., description="Id of a room from the latest detection, e.g. 'room-0'")
    prompt: str = Field(..., description="What the room should look like")
    strength: Optional[float] = Field(default=None, description="Inpainting strength, 0.3-1.0; server default when omitted")
    seed: Optional[int] = None

    model_config = {
        "json_schema_extra": {
            "examples": [{
                "room_id": "room-0",
                "prompt": "Modern minimalist with white walls and wooden floors",
                "strength": 0.8,
            }]
        }
    }


class EditRoomResponse(BaseModel):
    current_image: str
    edit: EditRecord
    message: str = ""


# ============ Rendering ============

class RenderRequest(BaseModel):
    """Request body for POST /render (stateless, several styles)."""
    image: str
    styles: List[StylePreset] = Field(default_factory=lambda: ["modern"], min_length=1)
    annotations: List[Annotation] = Field(default_factory=list)


class RenderResponse(BaseModel):
    renders: List[RenderJob]
    errors: Dict[str, str] = Field(default_factory=dict)
    message: str = ""


class ProjectRenderRequest(BaseModel):
    """Request body for POST /projects/{id}/render."""
    style: StylePreset = "modern"
    annotations: List[Annotation] = Field(default_factory=list)
    feedback: Optional[str] = Field(default=None, description="Refines the current render when set")


class ProjectRenderResponse(BaseModel):
    current_image: str
    render: RenderJob
    message: str = ""


class StylesResponse(BaseModel):
    styles: List[StyleConfig]


class EditPresetsResponse(BaseModel):
    presets: List[EditPreset]
