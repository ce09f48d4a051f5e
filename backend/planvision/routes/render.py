"""
Render Route

POST /render                - Isometric renders of a floor plan, one per style
POST /projects/{id}/render  - Render (or refine) the project's image and make
                              it the current image
GET  /styles                - Available style presets

FULLY TRACED with LangSmith.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from langsmith import traceable

from planvision.agents.render_pipeline import RenderPipeline
from planvision.core.image_utils import to_data_url
from planvision.core.prompt_builder import STYLE_CONFIGS
from planvision.core.session import SessionRegistry
from planvision.models.api import (
    ProjectRenderRequest,
    ProjectRenderResponse,
    RenderRequest,
    RenderResponse,
    StylesResponse,
)
from planvision.models.render import RenderState
from planvision.routes.deps import get_registry, get_render_pipeline


logger = logging.getLogger(__name__)
router = APIRouter(tags=["Rendering"])


@router.post("/render", response_model=RenderResponse)
@traceable(name="render_styles_endpoint", run_type="chain", tags=["api", "render"])
async def render_styles(
    request: RenderRequest,
    pipeline: RenderPipeline = Depends(get_render_pipeline),
) -> RenderResponse:
    """
    Generate one isometric render per requested style.

    Styles that fail are reported in `errors`; the request only fails when
    every style fails.
    """
    try:
        jobs = await pipeline.generate_styles(to_data_url(request.image), request.styles, request.annotations)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    renders = [job for job in jobs if job.state == RenderState.DONE]
    errors = {job.style: job.error or "" for job in jobs if job.state == RenderState.ERROR}

    return RenderResponse(
        renders=renders,
        errors=errors,
        message=f"Generated {len(renders)} of {len(jobs)} renders.",
    )


@router.post("/projects/{project_id}/render", response_model=ProjectRenderResponse)
@traceable(name="project_render_endpoint", run_type="chain", tags=["api", "render"])
async def render_project(
    project_id: str,
    request: ProjectRenderRequest,
    registry: SessionRegistry = Depends(get_registry),
    pipeline: RenderPipeline = Depends(get_render_pipeline),
) -> ProjectRenderResponse:
    """
    Render the project's floor plan, or refine the current render when
    feedback is given. The result replaces the current image and
    invalidates detected rooms.
    """
    session = registry.get(project_id)
    previous = session.current_image if session.current_image != session.source_image else None

    try:
        job = await pipeline.generate(
            session.source_image,
            style=request.style,
            annotations=request.annotations,
            feedback=request.feedback,
            previous_image=previous,
        )
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    session.apply_render(job.image)
    registry.save(project_id)

    return ProjectRenderResponse(
        current_image=session.current_image,
        render=job,
        message=f"Rendered {job.style} style.",
    )


@router.get("/styles", response_model=StylesResponse)
async def list_styles() -> StylesResponse:
    return StylesResponse(styles=STYLE_CONFIGS)
