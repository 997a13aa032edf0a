from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..auth import get_current_user_id
from ..project_service import ProjectService
from ..repositories import Repository, get_repository
from ..schemas import ProjectCreate, ProjectDetailOut, ProjectOut, ProjectUpdate, TaskOut
from ..task_service import TaskMutationService
from ..utils import result_response

router = APIRouter(
    prefix="/api/v1/projects",
    tags=["projects"],
)

dashboard_router = APIRouter(
    prefix="/api/v1/dashboard",
    tags=["projects"],
)


def _get_projects(repo: Repository = Depends(get_repository)) -> ProjectService:
    return ProjectService(repo)


def _get_tasks(repo: Repository = Depends(get_repository)) -> TaskMutationService:
    return TaskMutationService(repo)


def _project_detail(project: Dict[str, Any]) -> ProjectDetailOut:
    return ProjectDetailOut(**project)


# PUBLIC_INTERFACE
@router.get(
    "",
    summary="List Projects",
    description="List the current user's projects, newest first.",
)
def list_projects(
    user_id: Optional[str] = Depends(get_current_user_id),
    projects: ProjectService = Depends(_get_projects),
) -> JSONResponse:
    """
    List projects owned by the caller.
    """
    return result_response(projects.list(user_id), lambda items: [ProjectOut(**p) for p in items])


# PUBLIC_INTERFACE
@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Project",
    responses={
        201: {"description": "Project created"},
        422: {"description": "Validation error"},
    },
)
def create_project(
    payload: ProjectCreate,
    user_id: Optional[str] = Depends(get_current_user_id),
    projects: ProjectService = Depends(_get_projects),
) -> JSONResponse:
    """
    Create a project owned by the caller.
    """
    result = projects.create(user_id, payload.name, payload.description)
    return result_response(result, lambda p: ProjectOut(**p), success_status=status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.get(
    "/{project_id}",
    summary="Get Project",
    description="Get a project with its tasks ordered for the board. Foreign projects are reported as not found.",
    responses={404: {"description": "Project not found"}},
)
def get_project(
    project_id: str,
    user_id: Optional[str] = Depends(get_current_user_id),
    projects: ProjectService = Depends(_get_projects),
) -> JSONResponse:
    """
    Retrieve a single project and its tasks.
    """
    return result_response(projects.get_with_tasks(user_id, project_id), _project_detail)


# PUBLIC_INTERFACE
@router.patch(
    "/{project_id}",
    summary="Update Project",
    description="Partially update a project's name and/or description.",
    responses={404: {"description": "Project not found"}},
)
def update_project(
    project_id: str,
    payload: ProjectUpdate,
    user_id: Optional[str] = Depends(get_current_user_id),
    projects: ProjectService = Depends(_get_projects),
) -> JSONResponse:
    """
    Partial update of a project.
    """
    result = projects.update(user_id, project_id, payload.model_dump(exclude_unset=True))
    return result_response(result, lambda p: ProjectOut(**p))


# PUBLIC_INTERFACE
@router.delete(
    "/{project_id}",
    summary="Delete Project",
    description="Delete a project and every task in it.",
    responses={404: {"description": "Project not found"}},
)
def delete_project(
    project_id: str,
    user_id: Optional[str] = Depends(get_current_user_id),
    projects: ProjectService = Depends(_get_projects),
) -> JSONResponse:
    """
    Delete a project; its tasks are removed with it.
    """
    return result_response(projects.delete(user_id, project_id))


# PUBLIC_INTERFACE
@router.get(
    "/{project_id}/tasks",
    summary="List Project Tasks",
    responses={404: {"description": "Project not found"}},
)
def list_project_tasks(
    project_id: str,
    user_id: Optional[str] = Depends(get_current_user_id),
    tasks: TaskMutationService = Depends(_get_tasks),
) -> JSONResponse:
    """
    List a project's tasks ordered by position.
    """
    return result_response(tasks.list_for_project(user_id, project_id), lambda items: [TaskOut(**t) for t in items])


# PUBLIC_INTERFACE
@dashboard_router.get(
    "",
    summary="Dashboard Summary",
    description="Project count, task totals per column and overall completion for the caller.",
)
def dashboard(
    user_id: Optional[str] = Depends(get_current_user_id),
    projects: ProjectService = Depends(_get_projects),
) -> JSONResponse:
    """
    Summarise the caller's projects and tasks.
    """
    return result_response(projects.dashboard(user_id))
