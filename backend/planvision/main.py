"""
PlanVision API v1.0

FastAPI application for floor plan room detection, localized room editing
and isometric rendering.

Features:
- Room detection with polygon tracing (single pass, SVG path, two pass, per room)
- Localized room edits: crop, inpaint, feather back into the current image
- Full-image isometric renders in several styles
- LangSmith tracing for observability
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from planvision.config import get_settings, setup_langsmith
from planvision.models.api import ErrorResponse, HealthResponse
from planvision.routes import detect, edit, projects, render
from planvision.core.exceptions import (
    PlanVisionError,
    DetectionError,
    InvalidEditError,
    EditInProgressError,
    InpaintError,
    InpaintTimeoutError,
    GenerationError,
    InvalidImageError,
    ProjectNotFoundError,
)


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# Get settings
settings = get_settings()

# Setup LangSmith tracing
langsmith_enabled = setup_langsmith()

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    **PlanVision API v1.0** - Floor plan room detection and localized editing.

    ## Features
    - **Detect**: Trace room polygons on a 2D floor plan
    - **Edit**: Restyle one room without touching the rest of the image
    - **Render**: Isometric renders of the whole plan in several styles

    ## Workflow
    1. Create a project from a floor plan → `/api/v1/projects`
    2. Detect rooms → `/api/v1/projects/{id}/detect`
    3. Edit a room with a prompt → `/api/v1/projects/{id}/edit`
    4. Or render the whole plan → `/api/v1/projects/{id}/render`
    """,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(projects.router, prefix=settings.api_prefix)
app.include_router(detect.router, prefix=settings.api_prefix)
app.include_router(edit.router, prefix=settings.api_prefix)
app.include_router(render.router, prefix=settings.api_prefix)


# ============ Exception Handlers ============

def error_response(status_code: int, exc: PlanVisionError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=exc.message, error_code=exc.error_code).model_dump()
    )


@app.exception_handler(DetectionError)
async def detection_error_handler(request: Request, exc: DetectionError):
    """Handle room detection failures."""
    return error_response(422, exc)


@app.exception_handler(InvalidEditError)
async def invalid_edit_error_handler(request: Request, exc: InvalidEditError):
    """Handle edit submissions rejected before any remote call."""
    return error_response(400, exc)


@app.exception_handler(EditInProgressError)
async def edit_in_progress_error_handler(request: Request, exc: EditInProgressError):
    """Handle a second edit while one is running."""
    return error_response(409, exc)


@app.exception_handler(InpaintTimeoutError)
async def inpaint_timeout_error_handler(request: Request, exc: InpaintTimeoutError):
    """Handle inpaint jobs that never finished."""
    return error_response(504, exc)


@app.exception_handler(InpaintError)
async def inpaint_error_handler(request: Request, exc: InpaintError):
    """Handle inpainting service failures."""
    return error_response(502, exc)


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    """Handle renders without an image."""
    return error_response(502, exc)


@app.exception_handler(InvalidImageError)
async def invalid_image_error_handler(request: Request, exc: InvalidImageError):
    """Handle invalid image data."""
    return error_response(400, exc)


@app.exception_handler(ProjectNotFoundError)
async def project_not_found_error_handler(request: Request, exc: ProjectNotFoundError):
    return error_response(404, exc)


@app.exception_handler(PlanVisionError)
async def planvision_error_handler(request: Request, exc: PlanVisionError):
    """Handle generic PlanVision errors."""
    return error_response(500, exc)


# ============ Health Check ============

@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root():
    """Root endpoint - health check."""
    return HealthResponse(
        status="ok",
        version=settings.app_version,
        message="PlanVision API is running. Visit /docs for API documentation.",
        langsmith_enabled=langsmith_enabled
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        version=settings.app_version,
        langsmith_enabled=langsmith_enabled
    )


# ============ Run with Uvicorn ============

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "planvision.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
