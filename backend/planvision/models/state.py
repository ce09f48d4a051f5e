"""
Edit State

Defines the state passed between the LangGraph nodes of one room edit.
"""

from typing import TypedDict, Optional

from planvision.models.edit import EditRequest, InpaintResult, PreparedEdit


class EditState(TypedDict):
    """
    State for the edit workflow.

    Created per submission and discarded once the new image is produced.
    """

    # === Input ===
    request: EditRequest                        # Room, prompt, strength, seed
    current_image: str                          # Image the edit applies to

    # === Intermediate ===
    prepared: Optional[PreparedEdit]            # Crop, mask and prompt
    result: Optional[InpaintResult]             # Inpainting service answer

    # === Output ===
    output_image: Optional[str]                 # Next full image state
    composited_locally: bool                    # False when the service composited


def create_initial_state(request: EditRequest, current_image: str) -> EditState:
    """
    Create initial edit state from a submission.

    Args:
        request: The user's edit request
        current_image: Currently displayed image (data URL or hosted URL)

    Returns:
        Initial EditState ready for processing
    """
    return EditState(
        request=request,
        current_image=current_image,
        prepared=None,
        result=None,
        output_image=None,
        composited_locally=False,
    )
