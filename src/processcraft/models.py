from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TaskStatus(str, enum.Enum):
    """Kanban column a task lives in. Values are the column ids used by the board."""

    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def parse(cls, value: object) -> Optional["TaskStatus"]:
        """Return the matching status for a column id, or None if it is not a column."""
        if isinstance(value, cls):
            return value
        for status in cls:
            if status.value == value:
                return status
        return None


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    Stored user record.

    Fields:
    - id: Opaque unique string (uuid4)
    - email: Unique login email
    - name: Optional display name
    - password_hash: bcrypt hash; never serialized outward
    - created_at: Creation timestamp
    """

    id: str
    email: str
    name: Optional[str]
    password_hash: str
    created_at: datetime


# PUBLIC_INTERFACE
class ProjectEntity(TypedDict):
    """
    A named container of tasks, owned by exactly one user.
    """

    id: str
    name: str
    description: Optional[str]
    owner_id: str
    created_at: datetime


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A unit of work inside a project.

    Fields:
    - id: Opaque unique string (uuid4)
    - title: 1..100 chars
    - description: Optional free text
    - status: One of the three board columns
    - order: Non-negative intra-column position
    - created_at: Creation timestamp
    - project_id: Owning project; authorization derives from its owner
    """

    id: str
    title: str
    description: Optional[str]
    status: TaskStatus
    order: int
    created_at: datetime
    project_id: str
