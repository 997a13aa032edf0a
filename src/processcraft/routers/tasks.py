from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..auth import get_current_user_id
from ..repositories import Repository, get_repository
from ..schemas import TaskCreate, TaskMove, TaskOut, TaskUpdate
from ..task_service import TaskMutationService
from ..utils import result_response

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
)


def _get_service(repo: Repository = Depends(get_repository)) -> TaskMutationService:
    """
    Dependency wrapper building the mutation service over the shared repository.
    """
    return TaskMutationService(repo)


def _task_out(task: dict) -> TaskOut:
    return TaskOut(**task)


# PUBLIC_INTERFACE
@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task in one of the caller's projects.",
    responses={
        201: {"description": "Task created successfully"},
        404: {"description": "Project not found"},
        422: {"description": "Validation error"},
    },
)
def create_task(
    payload: TaskCreate,
    user_id: Optional[str] = Depends(get_current_user_id),
    service: TaskMutationService = Depends(_get_service),
) -> JSONResponse:
    """
    Create a new task.
    """
    result = service.create(
        user_id,
        payload.project_id,
        payload.title,
        description=payload.description,
        status=payload.status,
        order=payload.order,
    )
    return result_response(result, _task_out, success_status=status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.get(
    "/counts",
    summary="Task Counts",
    description="Count the caller's tasks per column across all owned projects.",
)
def task_counts(
    user_id: Optional[str] = Depends(get_current_user_id),
    service: TaskMutationService = Depends(_get_service),
) -> JSONResponse:
    """
    Totals for the dashboard; zeros when the caller owns no projects.
    """
    return result_response(service.count_by_status(user_id))


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}",
    summary="Update Task",
    description="Partially update a task's title, description and/or status.",
    responses={
        200: {"description": "Task updated"},
        404: {"description": "Task not found"},
    },
)
def update_task(
    task_id: str,
    payload: TaskUpdate,
    user_id: Optional[str] = Depends(get_current_user_id),
    service: TaskMutationService = Depends(_get_service),
) -> JSONResponse:
    """
    Partial update of task details.
    """
    result = service.update_details(user_id, task_id, payload.model_dump(exclude_unset=True))
    return result_response(result, _task_out)


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}/move",
    summary="Move Task",
    description=(
        "Move a task to a board column. Status and order are written together; "
        "other tasks in the column are not renumbered."
    ),
    responses={
        200: {"description": "Task moved"},
        404: {"description": "Task not found"},
        422: {"description": "Invalid status or order"},
    },
)
def move_task(
    task_id: str,
    payload: TaskMove,
    user_id: Optional[str] = Depends(get_current_user_id),
    service: TaskMutationService = Depends(_get_service),
) -> JSONResponse:
    """
    Column move used by drag and drop.
    """
    result = service.update_status_and_order(user_id, task_id, payload.status, payload.order)
    return result_response(result, _task_out)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    summary="Delete Task",
    responses={
        200: {"description": "Task deleted"},
        404: {"description": "Task not found"},
    },
)
def delete_task(
    task_id: str,
    user_id: Optional[str] = Depends(get_current_user_id),
    service: TaskMutationService = Depends(_get_service),
) -> JSONResponse:
    """
    Delete a task.
    """
    return result_response(service.delete(user_id, task_id))
