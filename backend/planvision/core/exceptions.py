"""
PlanVision Exceptions

Typed errors raised by the detection, editing and rendering pipelines.
Every error carries a human-readable message and a stable error code that
the API layer returns alongside the HTTP status.
"""

from typing import Optional


class PlanVisionError(Exception):
    """Base class for all PlanVision errors."""

    error_code = "planvision_error"

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code


class DetectionError(PlanVisionError):
    """Room detection failed as a whole (remote failure, bad JSON, no rooms)."""

    error_code = "detection_failed"


class GeometryError(PlanVisionError):
    """A single room record could not be turned into a polygon."""

    error_code = "invalid_geometry"


class InvalidEditError(PlanVisionError):
    """Edit submission rejected locally, before any remote call."""

    error_code = "invalid_edit"


class EditInProgressError(PlanVisionError):
    """Another edit on the same image has not finished yet."""

    error_code = "edit_in_progress"


class InpaintError(PlanVisionError):
    """Inpainting service failed or returned a non-success status."""

    error_code = "inpaint_failed"


class InpaintTimeoutError(InpaintError):
    """Polling for the inpaint job ran out of attempts."""

    error_code = "inpaint_timeout"


class GenerationError(PlanVisionError):
    """Generation response contained no recognizable image payload."""

    error_code = "generation_failed"


class InvalidImageError(PlanVisionError):
    """Image data could not be decoded."""

    error_code = "invalid_image"


class ProjectNotFoundError(PlanVisionError):
    """No project stored under the requested id."""

    error_code = "project_not_found"
