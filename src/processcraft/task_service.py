"""
Authoritative task mutations.

Every operation takes the acting user's id explicitly (``None`` means the
caller is not authenticated), checks ownership through the
``AuthorizationGuard`` and returns an ``Ok``/``Err`` result. Validation and
authorization failures are results, never exceptions; unexpected repository
faults are logged here and returned as a generic ``PersistenceError``.
"""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .authorization import AuthorizationGuard
from .models import TaskEntity, TaskStatus
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
from .schemas import TaskCounts, TaskCreate, TaskMove, TaskUpdate

logger = logging.getLogger(__name__)

# Fields that may not be cleared through a details edit
_REQUIRED_FIELDS = ("title", "status")


def _not_logged_in(action: str) -> Err:
    return authorization_error(f"You must be logged in to {action}.", "Unauthorized access.")


def _task_denied(action: str) -> Err:
    return authorization_error(
        f"Task not found or you don't have permission to {action} it.", "Task access denied."
    )


# PUBLIC_INTERFACE
class TaskMutationService:
    """Create, edit, move, delete and count tasks on behalf of a project owner."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo
        self._guard = AuthorizationGuard(repo)

    def create(
        self,
        user_id: Optional[str],
        project_id: str,
        title: str,
        description: Optional[str] = None,
        status: Union[TaskStatus, str] = TaskStatus.TODO,
        order: int = 0,
    ) -> Result[TaskEntity]:
        if not user_id:
            return _not_logged_in("create a task")

        try:
            data = TaskCreate(
                project_id=project_id,
                title=title,
                description=description,
                status=status,
                order=order,
            )
        except PydanticValidationError as exc:
            return validation_error("Invalid task data.", field_errors_from(exc))

        try:
            if not self._guard.verify_project_ownership(user_id, data.project_id):
                return authorization_error(
                    "Project not found or you don't have permission to add tasks to it.",
                    "Project access denied.",
                )
            task = self._repo.create_task(data)
        except Exception:
            logger.exception("Failed to create task in project %s", data.project_id)
            return persistence_error("Failed to create task. Please try again.")

        logger.info("Task %s created in project %s", task["id"], task["project_id"])
        return Ok(task, "Task created successfully.")

    def list_for_project(self, user_id: Optional[str], project_id: str) -> Result[List[TaskEntity]]:
        if not user_id:
            return _not_logged_in("view tasks")
        try:
            if not self._guard.verify_project_ownership(user_id, project_id):
                return authorization_error(
                    "Project not found or you don't have permission to view it.", "Project access denied."
                )
            tasks = self._repo.list_tasks_by_project(project_id)
        except Exception:
            logger.exception("Failed to fetch tasks for project %s", project_id)
            return persistence_error("Failed to fetch tasks. Please try again.")
        return Ok(tasks)

    def update_details(
        self, user_id: Optional[str], task_id: str, changes: Mapping[str, Any]
    ) -> Result[TaskEntity]:
        """
        Partially update title, description and/or status.

        Keys absent from ``changes`` are left untouched. ``description`` may be
        cleared with ``None``; ``title`` and ``status`` may not.
        """
        if not user_id:
            return _not_logged_in("update a task")

        try:
            update = TaskUpdate.model_validate(dict(changes))
        except PydanticValidationError as exc:
            return validation_error("Invalid task data.", field_errors_from(exc))

        fields = update.model_dump(exclude_unset=True)
        for name in _REQUIRED_FIELDS:
            if name in fields and fields[name] is None:
                del fields[name]

        try:
            ownership = self._guard.verify_task_ownership(user_id, task_id)
            if not ownership.owned:
                return _task_denied("update")
            updated = self._repo.update_task(task_id, fields)
        except Exception:
            logger.exception("Failed to update task %s", task_id)
            return persistence_error("Failed to update task. Please try again.")

        if updated is None:
            # Deleted between the ownership check and the write
            return _task_denied("update")
        logger.info("Task %s updated: %s", task_id, ", ".join(sorted(fields)) or "no changes")
        return Ok(updated, "Task updated successfully.")

    def update_status_and_order(
        self,
        user_id: Optional[str],
        task_id: str,
        new_status: Union[TaskStatus, str],
        new_order: int,
    ) -> Result[TaskEntity]:
        """
        Column move: write status and order together in one update.

        Sibling tasks are not renumbered; the caller-supplied order is stored
        as given. Moving a task onto its current status and order performs no
        write and returns the stored task.
        """
        if not user_id:
            return _not_logged_in("update a task")

        try:
            move = TaskMove(status=new_status, order=new_order)
        except PydanticValidationError as exc:
            return validation_error("Invalid task status data.", field_errors_from(exc))

        try:
            ownership = self._guard.verify_task_ownership(user_id, task_id)
            current = self._repo.get_task(task_id) if ownership.owned else None
            if current is None:
                return _task_denied("update")

            if current["status"] == move.status and current["order"] == move.order:
                return Ok(current, "Task status updated successfully.")

            updated = self._repo.update_task(task_id, {"status": move.status, "order": move.order})
        except Exception:
            logger.exception("Failed to update status of task %s", task_id)
            return persistence_error("Failed to update task status. Please try again.")

        if updated is None:
            return _task_denied("update")
        logger.info(
            "Task %s moved %r -> %r (order %d)",
            task_id,
            current["status"].value,
            move.status.value,
            move.order,
        )
        return Ok(updated, "Task status updated successfully.")

    def delete(self, user_id: Optional[str], task_id: str) -> Result[None]:
        if not user_id:
            return _not_logged_in("delete a task")
        try:
            ownership = self._guard.verify_task_ownership(user_id, task_id)
            if not ownership.owned:
                return _task_denied("delete")
            deleted = self._repo.delete_task(task_id)
        except Exception:
            logger.exception("Failed to delete task %s", task_id)
            return persistence_error("Failed to delete task. Please try again.")

        if not deleted:
            return _task_denied("delete")
        logger.info("Task %s deleted from project %s", task_id, ownership.project_id)
        return Ok(None, "Task deleted successfully.")

    def count_by_status(self, user_id: Optional[str]) -> Result[TaskCounts]:
        """Task totals per column across every project the user owns."""
        if not user_id:
            return _not_logged_in("view task counts")
        try:
            project_ids = [p["id"] for p in self._repo.list_projects_by_owner(user_id)]
            if not project_ids:
                return Ok(TaskCounts())
            counts = self._repo.count_tasks_by_status(project_ids)
        except Exception:
            logger.exception("Failed to fetch task counts for user %s", user_id)
            return persistence_error("Failed to fetch task counts. Please try again.")

        return Ok(
            TaskCounts(
                total=sum(counts.values()),
                todo=counts[TaskStatus.TODO],
                in_progress=counts[TaskStatus.IN_PROGRESS],
                done=counts[TaskStatus.DONE],
            )
        )
