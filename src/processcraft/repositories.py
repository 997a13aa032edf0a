from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from threading import RLock
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import ProjectEntity, TaskEntity, TaskStatus, UserEntity
from .schemas import ProjectCreate, TaskCreate
from .settings import get_settings

# Columns a task update may touch; id, project_id and created_at are immutable.
TASK_MUTABLE_FIELDS = frozenset({"title", "description", "status", "order"})
PROJECT_MUTABLE_FIELDS = frozenset({"name", "description"})


@dataclass(frozen=True)
class TaskWithProject:
    """A task joined with its owning project, used for ownership checks."""

    task: TaskEntity
    project: ProjectEntity


def new_id() -> str:
    return str(uuid.uuid4())


def empty_status_counts() -> Dict[TaskStatus, int]:
    return {status: 0 for status in TaskStatus}


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Persistence contract for users, projects and tasks.

    Implementations must:
    - cascade task deletion when a project is deleted
    - apply each update as a single write (no partial writes of a row)
    - return copies so callers cannot mutate stored state
    """

    # Users

    @abstractmethod
    def create_user(self, email: str, name: Optional[str], password_hash: str) -> UserEntity:
        """Create and return a new user."""

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserEntity]:
        """Return a user by id, or None if not found."""

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[UserEntity]:
        """Return a user by email (case-insensitive), or None if not found."""

    # Projects

    @abstractmethod
    def create_project(self, owner_id: str, data: ProjectCreate) -> ProjectEntity:
        """Create and return a new project owned by ``owner_id``."""

    @abstractmethod
    def get_project(self, project_id: str) -> Optional[ProjectEntity]:
        """Return a project by id, or None if not found."""

    @abstractmethod
    def list_projects_by_owner(self, owner_id: str) -> List[ProjectEntity]:
        """Return the owner's projects, newest first."""

    @abstractmethod
    def update_project(self, project_id: str, fields: Mapping[str, Any]) -> Optional[ProjectEntity]:
        """Write the given fields. Return the updated project or None if not found."""

    @abstractmethod
    def delete_project(self, project_id: str) -> bool:
        """Delete a project and all of its tasks. Return True if deleted."""

    # Tasks

    @abstractmethod
    def create_task(self, data: TaskCreate) -> TaskEntity:
        """Create and return a new task."""

    @abstractmethod
    def get_task(self, task_id: str) -> Optional[TaskEntity]:
        """Return a task by id, or None if not found."""

    @abstractmethod
    def get_task_with_project(self, task_id: str) -> Optional[TaskWithProject]:
        """Return a task together with its project, or None if either is missing."""

    @abstractmethod
    def list_tasks_by_project(self, project_id: str) -> List[TaskEntity]:
        """Return a project's tasks ordered by ``order`` then creation time."""

    @abstractmethod
    def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Optional[TaskEntity]:
        """Write the given fields in one update. Return the updated task or None if not found."""

    @abstractmethod
    def delete_task(self, task_id: str) -> bool:
        """Delete a task by id. Return True if deleted, False if not found."""

    @abstractmethod
    def count_tasks_by_status(self, project_ids: Iterable[str]) -> Dict[TaskStatus, int]:
        """Count tasks per status across the given projects. Every status is present."""


def _check_fields(fields: Mapping[str, Any], allowed: frozenset) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._users: dict[str, UserEntity] = {}
        self._projects: dict[str, ProjectEntity] = {}
        self._tasks: dict[str, TaskEntity] = {}

    def _now(self) -> datetime:
        return datetime.now()

    # Users

    def create_user(self, email: str, name: Optional[str], password_hash: str) -> UserEntity:
        user: UserEntity = {
            "id": new_id(),
            "email": email,
            "name": name,
            "password_hash": password_hash,
            "created_at": self._now(),
        }
        with self._lock:
            if self._find_user_by_email(email) is not None:
                raise ValueError("email already registered")
            self._users[user["id"]] = user
        return user.copy()

    def _find_user_by_email(self, email: str) -> Optional[UserEntity]:
        wanted = email.lower()
        for user in self._users.values():
            if user["email"].lower() == wanted:
                return user
        return None

    def get_user(self, user_id: str) -> Optional[UserEntity]:
        with self._lock:
            user = self._users.get(user_id)
            return None if user is None else user.copy()

    def get_user_by_email(self, email: str) -> Optional[UserEntity]:
        with self._lock:
            user = self._find_user_by_email(email)
            return None if user is None else user.copy()

    # Projects

    def create_project(self, owner_id: str, data: ProjectCreate) -> ProjectEntity:
        project: ProjectEntity = {
            "id": new_id(),
            "name": data.name,
            "description": data.description or None,
            "owner_id": owner_id,
            "created_at": self._now(),
        }
        with self._lock:
            self._projects[project["id"]] = project
        return project.copy()

    def get_project(self, project_id: str) -> Optional[ProjectEntity]:
        with self._lock:
            project = self._projects.get(project_id)
            return None if project is None else project.copy()

    def list_projects_by_owner(self, owner_id: str) -> List[ProjectEntity]:
        with self._lock:
            owned = [p for p in self._projects.values() if p["owner_id"] == owner_id]
            # Stable sort keeps insertion order for equal timestamps; reverse it explicitly
            owned = list(reversed(owned))
            owned.sort(key=lambda p: p["created_at"], reverse=True)
            return [p.copy() for p in owned]

    def update_project(self, project_id: str, fields: Mapping[str, Any]) -> Optional[ProjectEntity]:
        _check_fields(fields, PROJECT_MUTABLE_FIELDS)
        with self._lock:
            existing = self._projects.get(project_id)
            if existing is None:
                return None
            updated = existing.copy()
            updated.update(fields)  # type: ignore[typeddict-item]
            self._projects[project_id] = updated
            return updated.copy()

    def delete_project(self, project_id: str) -> bool:
        with self._lock:
            if self._projects.pop(project_id, None) is None:
                return False
            for task_id in [t["id"] for t in self._tasks.values() if t["project_id"] == project_id]:
                del self._tasks[task_id]
            return True

    # Tasks

    def create_task(self, data: TaskCreate) -> TaskEntity:
        task: TaskEntity = {
            "id": new_id(),
            "title": data.title,
            "description": data.description or None,
            "status": data.status,
            "order": data.order,
            "created_at": self._now(),
            "project_id": data.project_id,
        }
        with self._lock:
            if data.project_id not in self._projects:
                raise ValueError(f"project {data.project_id} does not exist")
            self._tasks[task["id"]] = task
        return task.copy()

    def get_task(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            task = self._tasks.get(task_id)
            return None if task is None else task.copy()

    def get_task_with_project(self, task_id: str) -> Optional[TaskWithProject]:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            project = self._projects.get(task["project_id"])
            if project is None:
                return None
            return TaskWithProject(task=task.copy(), project=project.copy())

    def list_tasks_by_project(self, project_id: str) -> List[TaskEntity]:
        with self._lock:
            tasks = [t for t in self._tasks.values() if t["project_id"] == project_id]
            tasks.sort(key=lambda t: (t["order"], t["created_at"]))
            return [t.copy() for t in tasks]

    def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Optional[TaskEntity]:
        _check_fields(fields, TASK_MUTABLE_FIELDS)
        with self._lock:
            existing = self._tasks.get(task_id)
            if existing is None:
                return None
            updated = existing.copy()
            updated.update(fields)  # type: ignore[typeddict-item]
            self._tasks[task_id] = updated
            return updated.copy()

    def delete_task(self, task_id: str) -> bool:
        with self._lock:
            return self._tasks.pop(task_id, None) is not None

    def count_tasks_by_status(self, project_ids: Iterable[str]) -> Dict[TaskStatus, int]:
        wanted = set(project_ids)
        counts = empty_status_counts()
        with self._lock:
            for task in self._tasks.values():
                if task["project_id"] in wanted:
                    counts[task["status"]] += 1
        return counts


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_repository() -> Repository:
    """
    Factory to return the configured repository based on settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository backed by SQLITE_DB_PATH

    The instance is cached so every request shares the same store.
    """
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        return SQLiteRepository(settings.sqlite_db_path)
    return InMemoryRepository()
