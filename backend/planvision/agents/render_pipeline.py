"""
Render Pipeline

Full-image isometric generation: assembles the style prompt, sends the
floor plan (and, for refinements, the previous render) to the generation
model and tracks each render as a small job (idle → generating → done/error).

Several styles can be rendered at once; a failing style never blocks the
styles that succeed.

FULLY TRACED with LangSmith.
"""

import asyncio
import logging
from typing import List, Optional

from langsmith import traceable

from planvision.core.exceptions import GenerationError
from planvision.core.prompt_builder import build_prompt, build_refinement_prompt
from planvision.models.render import Annotation, RenderJob, RenderState
from planvision.tools.generate_image import GeneratedImage


logger = logging.getLogger(__name__)


class RenderPipeline:
    """
    Generates isometric renders of a whole floor plan.
    """

    def __init__(self, tool=None):
        self._tool = tool

    @property
    def tool(self):
        if self._tool is None:
            from planvision.tools.generate_image import GenerateImageTool
            self._tool = GenerateImageTool()
        return self._tool

    async def _render(
        self,
        image: str,
        style: str,
        annotations: List[Annotation],
        feedback: Optional[str],
        previous_image: Optional[str],
    ) -> GeneratedImage:
        if feedback and previous_image:
            prompt = build_refinement_prompt(annotations, style, feedback)
            images = [image, previous_image]
        else:
            prompt = build_prompt(annotations, style)
            images = [image]
        return await self.tool.generate(prompt, images)

    @traceable(name="render_pipeline.generate", run_type="chain", tags=["render", "isometric"])
    async def generate(
        self,
        image: str,
        style: str = "modern",
        annotations: Optional[List[Annotation]] = None,
        feedback: Optional[str] = None,
        previous_image: Optional[str] = None,
    ) -> RenderJob:
        """
        Render one style.

        Returns:
            RenderJob in state DONE

        Raises:
            GenerationError: no image came back; the job ended in ERROR
        """
        job = await self.run_job(RenderJob(style=style), image, annotations or [], feedback, previous_image)
        if job.state == RenderState.ERROR:
            raise GenerationError(job.error or "No image generated in response")
        return job

    async def run_job(
        self,
        job: RenderJob,
        image: str,
        annotations: List[Annotation],
        feedback: Optional[str] = None,
        previous_image: Optional[str] = None,
    ) -> RenderJob:
        """
        Drive a job from IDLE through GENERATING to DONE or ERROR.

        Generation failures end the job in ERROR; configuration and input
        errors propagate.
        """
        job.state = RenderState.GENERATING
        try:
            result = await self._render(image, job.style, annotations, feedback, previous_image)
        except GenerationError as e:
            logger.warning("Render failed for style %s: %s", job.style, e.message)
            job.state = RenderState.ERROR
            job.error = e.message
            return job

        job.state = RenderState.DONE
        job.image = result.image
        job.description = result.description
        job.model = result.model
        return job

    @traceable(name="render_pipeline.generate_styles", run_type="chain", tags=["render", "batch"])
    async def generate_styles(
        self,
        image: str,
        styles: List[str],
        annotations: Optional[List[Annotation]] = None,
    ) -> List[RenderJob]:
        """
        Render several styles concurrently, one call per style.

        Returns:
            One job per style, in input order; failed styles are in ERROR

        Raises:
            GenerationError: every style failed
        """
        jobs = [RenderJob(style=style) for style in styles]
        await asyncio.gather(*(self.run_job(job, image, annotations or []) for job in jobs))

        if jobs and all(job.state == RenderState.ERROR for job in jobs):
            details = "; ".join(f"{job.style}: {job.error}" for job in jobs)
            raise GenerationError(f"All renders failed ({details})")
        return jobs
