"""
Image Session

Owns one floor plan's image state: the uploaded source, the currently
displayed image, the detected room regions and the history of applied edits.

Invariants:
- the current image is only ever replaced as a whole, after an operation has
  fully succeeded; a failed detection, edit or render leaves everything as it
  was
- regions always describe the image they were detected on; a new upload or a
  regenerated render invalidates them
- at most one edit is in flight; a second submission is rejected
"""

import logging
from typing import Any, Dict, List, Optional

from planvision.agents.detection import RoomDetector
from planvision.agents.graph import run_edit
from planvision.agents.region_editor import RegionEditor, validate_edit
from planvision.core.compositor import Compositor
from planvision.core.exceptions import EditInProgressError, InvalidEditError
from planvision.models.edit import EditRecord, EditRequest
from planvision.models.geometry import DetectionResult, RoomRegion
from planvision.tools.project_store import ProjectStore


logger = logging.getLogger(__name__)


class ImageSession:
    """
    Current image state for one project.
    """

    def __init__(
        self,
        source_image: str,
        current_image: Optional[str] = None,
        regions: Optional[List[RoomRegion]] = None,
        edit_history: Optional[List[EditRecord]] = None,
        detection_method: Optional[str] = None,
    ):
        self.source_image = source_image
        self.current_image = current_image or source_image
        self.regions: List[RoomRegion] = list(regions or [])
        self.edit_history: List[EditRecord] = list(edit_history or [])
        self.detection_method = detection_method
        self._edit_in_flight = False

    @property
    def edit_in_flight(self) -> bool:
        return self._edit_in_flight

    # ============ Image Replacement ============

    def replace_source(self, image: str) -> None:
        """New upload: everything derived from the old image is dropped."""
        self.source_image = image
        self.current_image = image
        self.regions = []
        self.edit_history = []
        self.detection_method = None

    def apply_render(self, image: str) -> None:
        """A regenerated render becomes the current image; regions are stale."""
        self.current_image = image
        self.regions = []
        self.detection_method = None

    # ============ Detection ============

    async def run_detection(self, detector: RoomDetector, strategy: str = "single_pass") -> DetectionResult:
        """
        Detect rooms on the current image and swap in the new region set.

        Raises:
            DetectionError: the region set is left unchanged
        """
        image = self.current_image
        result = await detector.detect(image, strategy)

        if self.current_image != image:
            logger.warning("Image changed during detection; discarding %d rooms", len(result.rooms))
            return result

        self.regions = list(result.rooms)
        self.detection_method = result.method
        return result

    def get_region(self, room_id: str) -> RoomRegion:
        for region in self.regions:
            if region.id == room_id:
                return region
        raise InvalidEditError(f"Unknown room: {room_id}")

    # ============ Editing ============

    async def submit_edit(
        self,
        room_id: str,
        prompt: str,
        strength: float,
        editor: RegionEditor,
        compositor: Compositor,
        seed: Optional[int] = None,
    ) -> EditRecord:
        """
        Apply a localized edit to one room.

        Raises:
            EditInProgressError: another edit has not finished
            InvalidEditError: unknown room, bad strength or empty prompt
            InpaintError: the inpainting service failed
        """
        if self._edit_in_flight:
            raise EditInProgressError("An edit is already in progress for this image")

        request = EditRequest(region=self.get_region(room_id), prompt=prompt, strength=strength, seed=seed)
        validate_edit(request)

        self._edit_in_flight = True
        try:
            base_image = self.current_image
            state = await run_edit(request, base_image, editor, compositor)

            if self.current_image != base_image:
                raise InvalidEditError("Image changed while the edit was running")

            record = EditRecord(
                room_id=request.region.id,
                room_label=request.region.label,
                prompt=request.prompt,
                strength=request.strength,
                seed=request.seed,
                composited_locally=state["composited_locally"],
            )
            self.current_image = state["output_image"]
            self.edit_history.append(record)
        finally:
            self._edit_in_flight = False

        logger.info("Applied edit %d to %s (%s)", len(self.edit_history), record.room_id, record.room_label)
        return record

    # ============ Persistence ============

    def to_blob(self) -> Dict[str, Any]:
        return {
            "source_image": self.source_image,
            "current_image": self.current_image,
            "regions": [r.model_dump(mode="json", exclude={"bbox"}) for r in self.regions],
            "edit_history": [e.model_dump(mode="json") for e in self.edit_history],
            "detection_method": self.detection_method,
        }

    @classmethod
    def from_blob(cls, blob: Dict[str, Any]) -> "ImageSession":
        return cls(
            source_image=blob["source_image"],
            current_image=blob.get("current_image"),
            regions=[RoomRegion.model_validate(r) for r in blob.get("regions", [])],
            edit_history=[EditRecord.model_validate(e) for e in blob.get("edit_history", [])],
            detection_method=blob.get("detection_method"),
        )


class SessionRegistry:
    """
    Live sessions keyed by project id, persisted through a project store.

    Sessions stay cached so that the in-flight edit guard holds across
    requests for the same project.
    """

    def __init__(self, store: ProjectStore):
        self.store = store
        self._sessions: Dict[str, ImageSession] = {}

    def create(self, image: str) -> str:
        session = ImageSession(source_image=image)
        project_id = self.store.create(session.to_blob())
        self._sessions[project_id] = session
        return project_id

    def get(self, project_id: str) -> ImageSession:
        """Raises ProjectNotFoundError for unknown ids."""
        if project_id not in self._sessions:
            self._sessions[project_id] = ImageSession.from_blob(self.store.get(project_id))
        return self._sessions[project_id]

    def save(self, project_id: str) -> None:
        self.store.save(project_id, self.get(project_id).to_blob())

    def delete(self, project_id: str) -> None:
        self.store.delete(project_id)
        self._sessions.pop(project_id, None)
