from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from .authorization import AuthorizationGuard
from .models import ProjectEntity
from .repositories import Repository
from .results import (
    Err,
    Ok,
    Result,
    authorization_error,
    field_errors_from,
    persistence_error,
    validation_error,
)
from .schemas import DashboardSummary, ProjectCreate, ProjectOut, ProjectUpdate
from .task_service import TaskMutationService

logger = logging.getLogger(__name__)

RECENT_PROJECTS = 3


def _not_logged_in(action: str) -> Err:
    return authorization_error(f"You must be logged in to {action}.", "Unauthorized access.")


def _project_denied(action: str) -> Err:
    return authorization_error(
        f"Project not found or you don't have permission to {action} it.", "Project not found."
    )


def completion_percentage(done: int, total: int) -> int:
    """Whole-number percentage, halves rounded up."""
    return math.floor(done * 100 / total + 0.5) if total > 0 else 0


# PUBLIC_INTERFACE
class ProjectService:
    """Owner-scoped project CRUD plus the dashboard summary."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo
        self._guard = AuthorizationGuard(repo)

    def create(
        self, user_id: Optional[str], name: str, description: Optional[str] = None
    ) -> Result[ProjectEntity]:
        if not user_id:
            return _not_logged_in("create a project")
        try:
            data = ProjectCreate(name=name, description=description)
        except PydanticValidationError as exc:
            return validation_error("Invalid project data.", field_errors_from(exc))

        try:
            project = self._repo.create_project(user_id, data)
        except Exception:
            logger.exception("Failed to create project for user %s", user_id)
            return persistence_error("Failed to create project. Please try again.")

        logger.info("Project %s created by %s", project["id"], user_id)
        return Ok(project, "Project created successfully.")

    def list(self, user_id: Optional[str]) -> Result[List[ProjectEntity]]:
        if not user_id:
            return _not_logged_in("view projects")
        try:
            return Ok(self._repo.list_projects_by_owner(user_id))
        except Exception:
            logger.exception("Failed to fetch projects for user %s", user_id)
            return persistence_error("Failed to fetch projects. Please try again.")

    def get_with_tasks(self, user_id: Optional[str], project_id: str) -> Result[Dict[str, Any]]:
        """Return the project with its tasks ordered for the board."""
        if not user_id:
            return _not_logged_in("view a project")
        try:
            if not self._guard.verify_project_ownership(user_id, project_id):
                return _project_denied("view")
            project = self._repo.get_project(project_id)
            if project is None:
                return _project_denied("view")
            tasks = self._repo.list_tasks_by_project(project_id)
        except Exception:
            logger.exception("Failed to fetch project %s", project_id)
            return persistence_error("Failed to fetch project. Please try again.")
        return Ok({**project, "tasks": tasks})

    def update(
        self, user_id: Optional[str], project_id: str, changes: Mapping[str, Any]
    ) -> Result[ProjectEntity]:
        if not user_id:
            return _not_logged_in("update a project")
        try:
            update = ProjectUpdate.model_validate(dict(changes))
        except PydanticValidationError as exc:
            return validation_error("Invalid project data.", field_errors_from(exc))

        fields = update.model_dump(exclude_unset=True)
        if fields.get("name", "") is None:
            del fields["name"]

        try:
            if not self._guard.verify_project_ownership(user_id, project_id):
                return _project_denied("update")
            updated = self._repo.update_project(project_id, fields)
        except Exception:
            logger.exception("Failed to update project %s", project_id)
            return persistence_error("Failed to update project. Please try again.")

        if updated is None:
            return _project_denied("update")
        return Ok(updated, "Project updated successfully.")

    def delete(self, user_id: Optional[str], project_id: str) -> Result[None]:
        """Delete the project; its tasks go with it."""
        if not user_id:
            return _not_logged_in("delete a project")
        try:
            if not self._guard.verify_project_ownership(user_id, project_id):
                return _project_denied("delete")
            deleted = self._repo.delete_project(project_id)
        except Exception:
            logger.exception("Failed to delete project %s", project_id)
            return persistence_error("Failed to delete project. Please try again.")

        if not deleted:
            return _project_denied("delete")
        logger.info("Project %s deleted by %s", project_id, user_id)
        return Ok(None, "Project deleted successfully.")

    def dashboard(self, user_id: Optional[str]) -> Result[DashboardSummary]:
        projects = self.list(user_id)
        if isinstance(projects, Err):
            return projects
        counts = TaskMutationService(self._repo).count_by_status(user_id)
        if isinstance(counts, Err):
            return counts

        totals = counts.data
        return Ok(
            DashboardSummary(
                total_projects=len(projects.data),
                active_tasks=totals.todo + totals.in_progress,
                completed_tasks=totals.done,
                completion_percentage=completion_percentage(totals.done, totals.total),
                counts=totals,
                recent_projects=[ProjectOut(**p) for p in projects.data[:RECENT_PROJECTS]],
            )
        )
