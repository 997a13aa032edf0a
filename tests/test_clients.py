import asyncio

import httpx
import pytest

from processcraft.auth import create_access_token
from processcraft.board import BoardStateController
from processcraft.clients import HttpMutationClient, ServiceMutationClient
from processcraft.main import app
from processcraft.models import TaskStatus
from processcraft.results import ErrorKind
from processcraft.schemas import ProjectCreate, TaskCreate
from processcraft.task_service import TaskMutationService


@pytest.fixture
def board(repo, make_user, client):
    """Owner, stranger and one task in the shared repository (``client`` installs the override)."""
    owner = make_user("owner@example.com", "Owner")
    stranger = make_user("stranger@example.com", "Stranger")
    project = repo.create_project(owner, ProjectCreate(name="Board"))
    task = repo.create_task(TaskCreate(project_id=project["id"], title="Card", order=5))
    return {"owner": owner, "stranger": stranger, "project": project, "task": task}


def http_client(user_id):
    transport = httpx.ASGITransport(app=app)
    http = httpx.AsyncClient(transport=transport, base_url="http://testserver")
    return HttpMutationClient(token=create_access_token(user_id), http=http), http


def test_service_client_moves_task(repo, board):
    client = ServiceMutationClient(TaskMutationService(repo), board["owner"])
    result = asyncio.run(client.update_status_and_order(board["task"]["id"], TaskStatus.DONE, 0))
    assert result.ok
    assert repo.get_task(board["task"]["id"])["status"] == TaskStatus.DONE


def test_http_client_moves_task(repo, board):
    async def scenario():
        client, http = http_client(board["owner"])
        async with http:
            return await client.update_status_and_order(board["task"]["id"], TaskStatus.IN_PROGRESS, 0)

    result = asyncio.run(scenario())

    assert result.ok
    assert result.message == "Task status updated successfully."
    assert result.data["status"] == TaskStatus.IN_PROGRESS
    assert result.data["order"] == 0
    assert repo.get_task(board["task"]["id"])["status"] == TaskStatus.IN_PROGRESS


def test_http_client_reports_forbidden_move(repo, board):
    async def scenario():
        client, http = http_client(board["stranger"])
        async with http:
            return await client.update_status_and_order(board["task"]["id"], TaskStatus.DONE, 0)

    result = asyncio.run(scenario())

    assert result.kind == ErrorKind.AUTHORIZATION
    assert result.message == "Task not found or you don't have permission to update it."
    assert repo.get_task(board["task"]["id"]) == board["task"]


def test_http_client_lists_tasks(board):
    async def scenario():
        client, http = http_client(board["owner"])
        async with http:
            return await client.list_tasks(board["project"]["id"])

    result = asyncio.run(scenario())
    assert [t["id"] for t in result.data] == [board["task"]["id"]]


def test_transport_failure_is_network_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        http = httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://testserver")
        async with http:
            return await HttpMutationClient(token="t", http=http).update_status_and_order("x", TaskStatus.DONE, 0)

    result = asyncio.run(scenario())
    assert result.kind == ErrorKind.NETWORK


def test_non_json_error_response():
    async def scenario():
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))
        http = httpx.AsyncClient(transport=transport, base_url="http://testserver")
        async with http:
            return await HttpMutationClient(http=http).update_status_and_order("x", TaskStatus.DONE, 0)

    result = asyncio.run(scenario())
    assert result.kind == ErrorKind.PERSISTENCE
    assert "502" in result.message


def test_board_rolls_back_forbidden_move_over_http(repo, board):
    async def scenario():
        client, http = http_client(board["stranger"])
        controller = BoardStateController([board["task"]], client)
        async with http:
            outcome = await controller.on_drag_end(board["task"]["id"], "Done")
        return controller, outcome

    controller, outcome = asyncio.run(scenario())

    assert not outcome.committed
    assert controller.tasks == [board["task"]]
    assert controller.notification.kind == "error"
    assert repo.get_task(board["task"]["id"])["status"] == TaskStatus.TODO


def test_board_loads_from_service_client(repo, board):
    client = ServiceMutationClient(TaskMutationService(repo), board["owner"])

    result = asyncio.run(BoardStateController.load(client, board["project"]["id"]))

    assert result.ok
    assert result.data.tasks == [board["task"]]
    assert [t["id"] for t in result.data.columns[TaskStatus.TODO]] == [board["task"]["id"]]


def test_board_load_of_foreign_project_is_denied(repo, board):
    client = ServiceMutationClient(TaskMutationService(repo), board["stranger"])

    result = asyncio.run(BoardStateController.load(client, board["project"]["id"]))

    assert result.kind == ErrorKind.AUTHORIZATION
