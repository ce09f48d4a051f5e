"""
Route Dependencies

Shared pipeline instances for the routers. Each factory is cached so the
whole app works against one detector, editor, compositor and session
registry; tests swap them through `app.dependency_overrides`.
"""

from functools import lru_cache

from planvision.agents.detection import RoomDetector
from planvision.agents.region_editor import RegionEditor
from planvision.agents.render_pipeline import RenderPipeline
from planvision.core.compositor import Compositor
from planvision.core.session import SessionRegistry
from planvision.tools.project_store import InMemoryProjectStore


@lru_cache()
def get_detector() -> RoomDetector:
    return RoomDetector()


@lru_cache()
def get_region_editor() -> RegionEditor:
    return RegionEditor()


@lru_cache()
def get_compositor() -> Compositor:
    return Compositor()


@lru_cache()
def get_render_pipeline() -> RenderPipeline:
    return RenderPipeline()


@lru_cache()
def get_registry() -> SessionRegistry:
    return SessionRegistry(InMemoryProjectStore())
