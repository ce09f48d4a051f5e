"""
Project Store

Persistence collaborator for image sessions. A project is stored as one
opaque JSON-compatible blob: source image, current image, detected regions
and edit history.
"""

import copy
import logging
import uuid
from typing import Any, Dict, Optional, Protocol

from planvision.core.exceptions import ProjectNotFoundError


logger = logging.getLogger(__name__)


class ProjectStore(Protocol):
    def create(self, blob: Dict[str, Any]) -> str: ...

    def get(self, project_id: str) -> Dict[str, Any]: ...

    def save(self, project_id: str, blob: Dict[str, Any]) -> None: ...

    def delete(self, project_id: str) -> None: ...


class InMemoryProjectStore:
    """Process-local store; blobs are deep-copied in and out."""

    def __init__(self):
        self._projects: Dict[str, Dict[str, Any]] = {}

    def create(self, blob: Dict[str, Any], project_id: Optional[str] = None) -> str:
        project_id = project_id or uuid.uuid4().hex
        self._projects[project_id] = copy.deepcopy(blob)
        logger.info("Created project %s", project_id)
        return project_id

    def get(self, project_id: str) -> Dict[str, Any]:
        if project_id not in self._projects:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        return copy.deepcopy(self._projects[project_id])

    def save(self, project_id: str, blob: Dict[str, Any]) -> None:
        if project_id not in self._projects:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        self._projects[project_id] = copy.deepcopy(blob)

    def delete(self, project_id: str) -> None:
        if self._projects.pop(project_id, None) is None:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        logger.info("Deleted project %s", project_id)

    def __contains__(self, project_id: str) -> bool:
        return project_id in self._projects

    def __len__(self) -> int:
        return len(self._projects)
