from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .models import TaskStatus

TITLE_MAX_LENGTH = 100
PROJECT_NAME_MIN_LENGTH = 2
PROJECT_NAME_MAX_LENGTH = 100


def _clean_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    s = v.strip()
    if not s:
        raise ValueError("Task title is required")
    if len(s) > TITLE_MAX_LENGTH:
        raise ValueError(f"Task title must be less than {TITLE_MAX_LENGTH} characters")
    return s


def _clean_project_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    s = v.strip()
    if len(s) < PROJECT_NAME_MIN_LENGTH:
        raise ValueError(f"Project name must be at least {PROJECT_NAME_MIN_LENGTH} characters long")
    if len(s) > PROJECT_NAME_MAX_LENGTH:
        raise ValueError(f"Project name must be less than {PROJECT_NAME_MAX_LENGTH} characters")
    return s


# PUBLIC_INTERFACE
class UserCreate(BaseModel):
    """Registration payload."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Ada Lovelace", "email": "ada@example.com", "password": "analytical-engine"}
        }
    )

    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Login email, unique per account")
    password: str = Field(..., description="Plain password, hashed before storage")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        s = v.strip()
        if len(s) < 2:
            raise ValueError("Name must be at least 2 characters long")
        return s

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    created_at: datetime


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# PUBLIC_INTERFACE
class ProjectCreate(BaseModel):
    """Schema for creating a project."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"name": "Website relaunch", "description": "Q3 marketing site"}}
    )

    name: str = Field(..., description="Project name (2..100 characters)")
    description: Optional[str] = Field(default=None, description="Optional free text")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_project_name(v)  # type: ignore[return-value]


# PUBLIC_INTERFACE
class ProjectUpdate(BaseModel):
    """
    Partial project update.
    Only fields present in the payload are written.
    """

    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _clean_project_name(v)


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a task inside a project.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "project_id": "7d4c2d0e-2f0b-4c61-9a55-0b4a8b0cf0a1",
                "title": "Write release notes",
                "description": "Cover the new board view",
                "status": "To Do",
                "order": 0,
            }
        }
    )

    project_id: str = Field(..., min_length=1, description="Project the task belongs to")
    title: str = Field(..., description="Short title (1..100 characters)")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Initial board column")
    order: int = Field(default=0, ge=0, description="Position within the column")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)  # type: ignore[return-value]


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Schema for editing task details.
    All fields are optional; only provided fields will be updated.
    """

    title: Optional[str] = Field(default=None, description="Short title (1..100 characters)")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: Optional[TaskStatus] = Field(default=None, description="Board column")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return _clean_title(v)


# PUBLIC_INTERFACE
class TaskMove(BaseModel):
    """Column move issued by the board: new status and position, written together."""

    model_config = ConfigDict(json_schema_extra={"example": {"status": "In Progress", "order": 0}})

    status: TaskStatus
    order: int = Field(..., ge=0, strict=True)


class TaskOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    order: int
    created_at: datetime
    project_id: str


class ProjectOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    created_at: datetime


class ProjectDetailOut(ProjectOut):
    tasks: List[TaskOut] = Field(default_factory=list)


class TaskCounts(BaseModel):
    total: int = 0
    todo: int = 0
    in_progress: int = 0
    done: int = 0


class DashboardSummary(BaseModel):
    total_projects: int
    active_tasks: int
    completed_tasks: int
    completion_percentage: int
    counts: TaskCounts
    recent_projects: List[ProjectOut] = Field(default_factory=list)


# PUBLIC_INTERFACE
class ActionResponse(BaseModel):
    """
    Uniform envelope for every project/task mutation and query.

    Response format:
        {"status": "success", "message": "...", "data": {...}}
        {"status": "error", "message": "...", "errors": {"field": ["..."]}}
    """

    status: Literal["success", "error"]
    message: str
    data: Optional[Any] = None
    errors: Optional[Dict[str, List[str]]] = None
