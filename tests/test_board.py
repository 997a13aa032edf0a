import asyncio
import copy
from datetime import datetime

import pytest

from processcraft.board import BoardPhase, BoardStateController, Notification
from processcraft.models import TaskStatus
from processcraft.results import Ok, authorization_error, persistence_error


def make_task(task_id, status=TaskStatus.TODO, order=0, title=None):
    return {
        "id": task_id,
        "title": title or f"Task {task_id}",
        "description": None,
        "status": status,
        "order": order,
        "created_at": datetime(2024, 5, 1, 12, 0, 0),
        "project_id": "p1",
    }


class ScriptedClient:
    """Returns queued results and records every call."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    async def update_status_and_order(self, task_id, status, order):
        self.calls.append((task_id, status, order))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class GatedClient:
    """Blocks every call until the test releases it."""

    def __init__(self, result):
        self.result = result
        self.release = asyncio.Event()
        self.calls = []

    async def update_status_and_order(self, task_id, status, order):
        self.calls.append((task_id, status, order))
        await self.release.wait()
        return self.result


def moved(task, status):
    out = copy.deepcopy(task)
    out["status"] = status
    out["order"] = 0
    return out


@pytest.fixture
def tasks():
    return [
        make_task("t1", TaskStatus.TODO, order=2),
        make_task("t2", TaskStatus.TODO, order=1),
        make_task("t3", TaskStatus.DONE, order=0),
    ]


def test_columns_group_and_sort_by_order(tasks):
    controller = BoardStateController(tasks, ScriptedClient())
    columns = controller.columns
    assert [t["id"] for t in columns[TaskStatus.TODO]] == ["t2", "t1"]
    assert columns[TaskStatus.IN_PROGRESS] == []
    assert [t["id"] for t in columns[TaskStatus.DONE]] == ["t3"]


def test_progress_summary(tasks):
    progress = BoardStateController(tasks, ScriptedClient()).progress
    assert (progress.completed, progress.total, progress.percentage) == (1, 3, 33)


def test_successful_move_commits_optimistic_state(tasks):
    client = ScriptedClient(Ok(moved(tasks[0], TaskStatus.IN_PROGRESS), "Task status updated successfully."))
    phases = []
    controller = BoardStateController(tasks, client, listener=lambda tid, phase: phases.append(phase))

    outcome = asyncio.run(controller.on_drag_end("t1", "In Progress"))

    assert outcome.committed
    assert client.calls == [("t1", TaskStatus.IN_PROGRESS, 0)]
    task = next(t for t in controller.tasks if t["id"] == "t1")
    assert task["status"] == TaskStatus.IN_PROGRESS
    assert task["order"] == 0
    assert controller.notification == Notification("success", "Task status updated successfully.")
    assert phases == [
        BoardPhase.OPTIMISTICALLY_MOVED,
        BoardPhase.RECONCILING,
        BoardPhase.COMMITTED,
        BoardPhase.IDLE,
    ]
    assert controller.phase("t1") == BoardPhase.IDLE


def test_failed_move_restores_exact_snapshot(tasks):
    before = copy.deepcopy(tasks)
    client = ScriptedClient(authorization_error("Task not found or you don't have permission to update it."))
    phases = []
    controller = BoardStateController(tasks, client, listener=lambda tid, phase: phases.append(phase))

    outcome = asyncio.run(controller.on_drag_end("t1", TaskStatus.DONE))

    assert not outcome.committed
    assert controller.tasks == before
    assert controller.notification == Notification(
        "error", "Task not found or you don't have permission to update it."
    )
    assert BoardPhase.ROLLED_BACK in phases
    assert phases[-1] == BoardPhase.IDLE


def test_client_exception_rolls_back_with_generic_message(tasks):
    before = copy.deepcopy(tasks)
    controller = BoardStateController(tasks, ScriptedClient(ConnectionError("offline")))

    outcome = asyncio.run(controller.on_drag_end("t2", "Done"))

    assert not outcome.committed
    assert controller.tasks == before
    assert controller.notification.kind == "error"
    assert controller.notification.message


def test_empty_server_message_falls_back(tasks):
    controller = BoardStateController(tasks, ScriptedClient(persistence_error("")))
    asyncio.run(controller.on_drag_end("t2", "Done"))
    assert controller.notification == Notification("error", "Failed to move task. Please try again.")


def test_optimistic_state_visible_while_reconciling(tasks):
    seen = {}

    class Probe:
        async def update_status_and_order(self, task_id, status, order):
            task = next(t for t in controller.tasks if t["id"] == task_id)
            seen["status"] = task["status"]
            seen["phase"] = controller.phase(task_id)
            seen["reconciling"] = controller.is_reconciling(task_id)
            return persistence_error("Failed to update task status. Please try again.")

    controller = BoardStateController(tasks, Probe())
    asyncio.run(controller.on_drag_end("t1", "Done"))

    assert seen == {"status": TaskStatus.DONE, "phase": BoardPhase.RECONCILING, "reconciling": True}
    assert not controller.is_reconciling("t1")


def test_drop_on_current_column_is_a_no_op(tasks):
    client = ScriptedClient()
    controller = BoardStateController(tasks, client)

    assert asyncio.run(controller.on_drag_end("t1", "To Do")) is None

    assert client.calls == []
    assert controller.tasks == tasks
    assert controller.notification is None


@pytest.mark.parametrize("column", ["Blocked", "", None, 3])
def test_unknown_column_is_discarded(tasks, column):
    client = ScriptedClient()
    controller = BoardStateController(tasks, client)

    assert asyncio.run(controller.on_drag_end("t1", column)) is None

    assert client.calls == []
    assert controller.tasks == tasks


def test_unknown_task_is_discarded(tasks):
    client = ScriptedClient()
    controller = BoardStateController(tasks, client)
    assert asyncio.run(controller.on_drag_end("missing", "Done")) is None
    assert client.calls == []


def test_second_move_while_in_flight_is_ignored(tasks):
    async def scenario():
        client = GatedClient(Ok(moved(tasks[0], TaskStatus.IN_PROGRESS)))
        controller = BoardStateController(tasks, client)

        first = asyncio.ensure_future(controller.on_drag_end("t1", "In Progress"))
        await asyncio.sleep(0)
        second = await controller.on_drag_end("t1", "Done")
        client.release.set()
        return controller, client, second, await first

    controller, client, second, first = asyncio.run(scenario())

    assert second is None
    assert first.committed
    assert client.calls == [("t1", TaskStatus.IN_PROGRESS, 0)]
    task = next(t for t in controller.tasks if t["id"] == "t1")
    assert task["status"] == TaskStatus.IN_PROGRESS


class RoutedClient:
    """Holds every call until released, then answers per task id."""

    def __init__(self, results):
        self.results = results
        self.release = asyncio.Event()

    async def update_status_and_order(self, task_id, status, order):
        await self.release.wait()
        return self.results[task_id]


def test_moves_of_different_tasks_resolve_independently(tasks):
    async def scenario():
        client = RoutedClient({"t1": Ok(moved(tasks[0], TaskStatus.DONE)), "t2": persistence_error("nope")})
        controller = BoardStateController(tasks, client)
        a = asyncio.ensure_future(controller.on_drag_end("t1", "Done"))
        b = asyncio.ensure_future(controller.on_drag_end("t2", "In Progress"))
        await asyncio.sleep(0)
        assert controller.is_reconciling("t1") and controller.is_reconciling("t2")
        client.release.set()
        await asyncio.gather(a, b)
        return controller

    controller = asyncio.run(scenario())
    by_id = {t["id"]: t for t in controller.tasks}
    assert by_id["t1"]["status"] == TaskStatus.DONE
    assert by_id["t2"] == tasks[1]


def test_drag_preview_and_dismiss(tasks):
    controller = BoardStateController(tasks, ScriptedClient(persistence_error("nope")))

    controller.on_drag_start("t3")
    assert controller.dragging_task == tasks[2]
    controller.on_drag_cancel()
    assert controller.dragging_task is None

    controller.on_drag_start("t1")
    asyncio.run(controller.on_drag_end("t1", "Done"))
    assert controller.dragging_task is None
    assert controller.notification is not None
    controller.dismiss_notification()
    assert controller.notification is None


def test_controller_does_not_alias_input(tasks):
    controller = BoardStateController(tasks, ScriptedClient())
    tasks[0]["title"] = "mutated outside"
    assert controller.tasks[0]["title"] == "Task t1"
