import asyncio
from datetime import datetime

import pytest

from processcraft.board import BoardStateController
from processcraft.drag import ColumnRegion, DragAdapter
from processcraft.models import TaskStatus
from processcraft.results import Ok


class EchoClient:
    def __init__(self):
        self.calls = []

    async def update_status_and_order(self, task_id, status, order):
        self.calls.append((task_id, status, order))
        return Ok({"id": task_id, "status": status, "order": order})


@pytest.fixture
def client():
    return EchoClient()


@pytest.fixture
def adapter(client):
    task = {
        "id": "t1",
        "title": "Card",
        "description": None,
        "status": TaskStatus.TODO,
        "order": 0,
        "created_at": datetime(2024, 1, 1),
        "project_id": "p1",
    }
    controller = BoardStateController([task], client)
    adapter = DragAdapter(controller)
    for i, status in enumerate(TaskStatus):
        adapter.register_column(ColumnRegion(status.value, x=i * 300, y=0, width=280, height=600))
    return adapter


def test_region_center():
    assert ColumnRegion("Done", 10, 20, 100, 40).center == (60.0, 40.0)


def test_resolve_nearest_center(adapter):
    assert adapter.resolve_column((140, 300)) == "To Do"
    assert adapter.resolve_column((430, 10)) == "In Progress"
    # Past the last column still lands in it
    assert adapter.resolve_column((2000, 300)) == "Done"


def test_resolve_without_columns(client):
    adapter = DragAdapter(BoardStateController([], client))
    assert adapter.resolve_column((0, 0)) is None


def test_drop_by_point_moves_task(adapter, client):
    adapter.drag_start("t1")
    assert adapter.active_task_id == "t1"

    outcome = asyncio.run(adapter.drag_end("t1", point=(740, 200)))

    assert outcome.committed
    assert client.calls == [("t1", TaskStatus.DONE, 0)]
    assert adapter.active_task_id is None


def test_over_id_wins_over_point(adapter, client):
    asyncio.run(adapter.drag_end("t1", point=(740, 200), over_id="In Progress"))
    assert client.calls == [("t1", TaskStatus.IN_PROGRESS, 0)]


def test_unresolvable_drop_is_discarded(adapter, client):
    adapter.drag_start("t1")
    assert asyncio.run(adapter.drag_end("t1")) is None
    assert client.calls == []


def test_unregistered_column_id_is_discarded(adapter, client):
    assert asyncio.run(adapter.drag_end("t1", over_id="Archive")) is None
    assert client.calls == []


def test_drag_cancel(adapter):
    adapter.drag_start("t1")
    adapter.drag_cancel()
    assert adapter.active_task_id is None


def test_unregister_column(adapter):
    adapter.unregister_column("Done")
    assert adapter.resolve_column((2000, 300)) == "In Progress"
