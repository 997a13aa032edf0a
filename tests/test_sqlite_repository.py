import sqlite3

import pytest

from processcraft.db import SQLiteRepository
from processcraft.models import TaskStatus
from processcraft.schemas import ProjectCreate, TaskCreate


@pytest.fixture
def sqlite_repo(tmp_path):
    return SQLiteRepository(str(tmp_path / "nested" / "board.db"))


@pytest.fixture
def owner_id(sqlite_repo):
    return sqlite_repo.create_user("Owner@Example.com", "Owner", "hash")["id"]


@pytest.fixture
def project(sqlite_repo, owner_id):
    return sqlite_repo.create_project(owner_id, ProjectCreate(name="Roadmap"))


def test_user_email_is_unique_case_insensitively(sqlite_repo, owner_id):
    assert sqlite_repo.get_user_by_email("owner@example.com")["id"] == owner_id
    with pytest.raises(sqlite3.IntegrityError):
        sqlite_repo.create_user("OWNER@example.com", "Dup", "hash")


def test_task_round_trips_enum_status(sqlite_repo, project):
    task = sqlite_repo.create_task(
        TaskCreate(project_id=project["id"], title="Plan", status=TaskStatus.IN_PROGRESS, order=2)
    )
    stored = sqlite_repo.get_task(task["id"])
    assert stored["status"] is TaskStatus.IN_PROGRESS
    assert stored["order"] == 2
    assert stored == task


def test_task_requires_existing_project(sqlite_repo):
    with pytest.raises(sqlite3.IntegrityError):
        sqlite_repo.create_task(TaskCreate(project_id="missing", title="Orphan"))


def test_update_task_writes_status_and_order_together(sqlite_repo, project):
    task = sqlite_repo.create_task(TaskCreate(project_id=project["id"], title="Move me", order=7))
    updated = sqlite_repo.update_task(task["id"], {"status": TaskStatus.DONE, "order": 0})
    assert updated["status"] == TaskStatus.DONE
    assert updated["order"] == 0
    assert updated["created_at"] == task["created_at"]


def test_update_task_rejects_immutable_fields(sqlite_repo, project):
    task = sqlite_repo.create_task(TaskCreate(project_id=project["id"], title="Fixed"))
    with pytest.raises(ValueError):
        sqlite_repo.update_task(task["id"], {"project_id": "elsewhere"})


def test_delete_project_cascades(sqlite_repo, project):
    task = sqlite_repo.create_task(TaskCreate(project_id=project["id"], title="Gone soon"))
    assert sqlite_repo.delete_project(project["id"]) is True
    assert sqlite_repo.get_task(task["id"]) is None
    assert sqlite_repo.delete_project(project["id"]) is False


def test_get_task_with_project(sqlite_repo, project, owner_id):
    task = sqlite_repo.create_task(TaskCreate(project_id=project["id"], title="Joined"))
    joined = sqlite_repo.get_task_with_project(task["id"])
    assert joined.task == task
    assert joined.project["owner_id"] == owner_id
    assert sqlite_repo.get_task_with_project("missing") is None


def test_count_tasks_by_status(sqlite_repo, project, owner_id):
    other = sqlite_repo.create_project(owner_id, ProjectCreate(name="Other"))
    sqlite_repo.create_task(TaskCreate(project_id=project["id"], title="a"))
    sqlite_repo.create_task(TaskCreate(project_id=project["id"], title="b", status=TaskStatus.DONE))
    sqlite_repo.create_task(TaskCreate(project_id=other["id"], title="c", status=TaskStatus.DONE))

    counts = sqlite_repo.count_tasks_by_status([project["id"]])
    assert counts == {TaskStatus.TODO: 1, TaskStatus.IN_PROGRESS: 0, TaskStatus.DONE: 1}

    assert sqlite_repo.count_tasks_by_status([]) == {status: 0 for status in TaskStatus}


def test_list_tasks_by_project_orders_by_position(sqlite_repo, project):
    sqlite_repo.create_task(TaskCreate(project_id=project["id"], title="third", order=3))
    sqlite_repo.create_task(TaskCreate(project_id=project["id"], title="first", order=1))
    titles = [t["title"] for t in sqlite_repo.list_tasks_by_project(project["id"])]
    assert titles == ["first", "third"]
