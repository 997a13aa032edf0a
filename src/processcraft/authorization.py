from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .repositories import Repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskOwnership:
    owned: bool
    project_id: Optional[str] = None


# PUBLIC_INTERFACE
class AuthorizationGuard:
    """
    Ownership checks for projects and tasks.

    "Not found" and "not owned" produce the same negative answer so callers
    cannot reveal whether another user's resource exists. Repository faults
    are not caught here; they propagate to the calling service.
    """

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def verify_project_ownership(self, user_id: str, project_id: str) -> bool:
        project = self._repo.get_project(project_id)
        owned = project is not None and project["owner_id"] == user_id
        if not owned:
            logger.info("Project access denied: user=%s project=%s", user_id, project_id)
        return owned

    def verify_task_ownership(self, user_id: str, task_id: str) -> TaskOwnership:
        found = self._repo.get_task_with_project(task_id)
        if found is None or found.project["owner_id"] != user_id:
            logger.info("Task access denied: user=%s task=%s", user_id, task_id)
            return TaskOwnership(owned=False)
        return TaskOwnership(owned=True, project_id=found.project["id"])
