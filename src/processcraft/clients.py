"""
Mutation clients used by the board controller.

``ServiceMutationClient`` calls ``TaskMutationService`` in process.
``HttpMutationClient`` talks to the ``/api/v1/tasks`` endpoints over httpx and
turns the JSON envelope back into ``Ok``/``Err`` values.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from .models import TaskEntity, TaskStatus
from .results import Err, ErrorKind, Ok, Result, network_error
from .schemas import TaskOut
from .task_service import TaskMutationService

logger = logging.getLogger(__name__)

_STATUS_KINDS = {
    401: ErrorKind.AUTHORIZATION,
    403: ErrorKind.AUTHORIZATION,
    404: ErrorKind.AUTHORIZATION,
    422: ErrorKind.VALIDATION,
}


def _kind_for_status(status_code: int) -> ErrorKind:
    return _STATUS_KINDS.get(status_code, ErrorKind.PERSISTENCE)


def _task_entity(data: Any) -> TaskEntity:
    return TaskOut.model_validate(data).model_dump()  # type: ignore[return-value]


# PUBLIC_INTERFACE
class ServiceMutationClient:
    """Runs moves directly against the service layer on behalf of one user."""

    def __init__(self, service: TaskMutationService, user_id: Optional[str]) -> None:
        self._service = service
        self._user_id = user_id

    async def update_status_and_order(self, task_id: str, status: TaskStatus, order: int) -> Result[TaskEntity]:
        return self._service.update_status_and_order(self._user_id, task_id, status, order)

    async def list_tasks(self, project_id: str) -> Result[List[TaskEntity]]:
        return self._service.list_for_project(self._user_id, project_id)


# PUBLIC_INTERFACE
class HttpMutationClient:
    """
    Board client for a remote ProcessCraft API.

    Args:
        base_url: Server root, e.g. ``http://localhost:8000``.
        token: Bearer token from ``/api/v1/auth/login``.
        http: Optional pre-built ``httpx.AsyncClient`` (tests pass one bound to the app).
    """

    def __init__(
        self,
        base_url: str = "",
        token: Optional[str] = None,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_http = http is None
        self._http = http if http is not None else httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = headers

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "HttpMutationClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def update_status_and_order(self, task_id: str, status: TaskStatus, order: int) -> Result[TaskEntity]:
        payload = {"status": TaskStatus(status).value, "order": order}
        return await self._request("PATCH", f"/api/v1/tasks/{task_id}/move", json=payload, convert=_task_entity)

    async def list_tasks(self, project_id: str) -> Result[List[TaskEntity]]:
        return await self._request(
            "GET",
            f"/api/v1/projects/{project_id}/tasks",
            convert=lambda data: [_task_entity(item) for item in data or []],
        )

    async def _request(self, method: str, url: str, convert, json: Optional[Dict[str, Any]] = None) -> Result[Any]:
        try:
            response = await self._http.request(method, url, json=json, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            return network_error()

        try:
            body = response.json()
        except ValueError:
            logger.warning("%s %s returned a non-JSON body (HTTP %d)", method, url, response.status_code)
            return Err(_kind_for_status(response.status_code), f"Unexpected server response (HTTP {response.status_code}).")

        if response.is_success and isinstance(body, dict) and body.get("status") == "success":
            try:
                return Ok(convert(body.get("data")), body.get("message") or "")
            except PydanticValidationError:
                logger.warning("%s %s returned a malformed payload", method, url)
                return Err(ErrorKind.PERSISTENCE, "Unexpected server response.")

        message = ""
        errors: Dict[str, List[str]] = {}
        if isinstance(body, dict):
            message = body.get("message") or body.get("detail") or ""
            errors = body.get("errors") or {}
        return Err(_kind_for_status(response.status_code), str(message), errors)
