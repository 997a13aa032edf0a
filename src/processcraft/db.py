from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Generator, Iterable, List, Mapping, Optional

from .models import ProjectEntity, TaskEntity, TaskStatus, UserEntity
from .repositories import (
    PROJECT_MUTABLE_FIELDS,
    TASK_MUTABLE_FIELDS,
    Repository,
    TaskWithProject,
    _check_fields,
    empty_status_counts,
    new_id,
)
from .schemas import ProjectCreate, TaskCreate

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE COLLATE NOCASE,
        name TEXT NULL,
        password_hash TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS projects (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT NULL,
        owner_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT NULL,
        status TEXT NOT NULL CHECK (status IN ('To Do', 'In Progress', 'Done')),
        "order" INTEGER NOT NULL DEFAULT 0 CHECK ("order" >= 0),
        created_at TEXT NOT NULL,
        project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_projects_owner_id ON projects(owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_project_id ON tasks(project_id)",
)


def _parse_dt(s: str) -> datetime:
    return datetime.fromisoformat(s)


def _row_to_user(row: sqlite3.Row) -> UserEntity:
    return {
        "id": row["id"],
        "email": row["email"],
        "name": row["name"],
        "password_hash": row["password_hash"],
        "created_at": _parse_dt(row["created_at"]),
    }


def _row_to_project(row: sqlite3.Row, prefix: str = "") -> ProjectEntity:
    return {
        "id": row[f"{prefix}id"],
        "name": row[f"{prefix}name"],
        "description": row[f"{prefix}description"],
        "owner_id": row[f"{prefix}owner_id"],
        "created_at": _parse_dt(row[f"{prefix}created_at"]),
    }


def _row_to_task(row: sqlite3.Row) -> TaskEntity:
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "status": TaskStatus(row["status"]),
        "order": int(row["order"]),
        "created_at": _parse_dt(row["created_at"]),
        "project_id": row["project_id"],
    }


def _to_column(value: Any) -> Any:
    if isinstance(value, TaskStatus):
        return value.value
    return value


class SQLiteRepository(Repository):
    """
    SQLite repository implementing the Repository interface.

    Foreign keys are enabled on every connection so deleting a project
    cascades to its tasks inside the database.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    # Users

    def create_user(self, email: str, name: Optional[str], password_hash: str) -> UserEntity:
        user_id = new_id()
        now = datetime.now().isoformat()
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO users (id, email, name, password_hash, created_at) VALUES (?, ?, ?, ?, ?)",
                (user_id, email, name, password_hash, now),
            )
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            assert row is not None
            return _row_to_user(row)

    def get_user(self, user_id: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return _row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            return _row_to_user(row) if row else None

    # Projects

    def create_project(self, owner_id: str, data: ProjectCreate) -> ProjectEntity:
        project_id = new_id()
        now = datetime.now().isoformat()
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO projects (id, name, description, owner_id, created_at) VALUES (?, ?, ?, ?, ?)",
                (project_id, data.name, data.description or None, owner_id, now),
            )
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
            assert row is not None
            return _row_to_project(row)

    def get_project(self, project_id: str) -> Optional[ProjectEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
            return _row_to_project(row) if row else None

    def list_projects_by_owner(self, owner_id: str) -> List[ProjectEntity]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT * FROM projects WHERE owner_id = ? ORDER BY created_at DESC, rowid DESC",
                (owner_id,),
            ).fetchall()
            return [_row_to_project(r) for r in rows]

    def update_project(self, project_id: str, fields: Mapping[str, Any]) -> Optional[ProjectEntity]:
        _check_fields(fields, PROJECT_MUTABLE_FIELDS)
        with self._conn() as conn:
            if fields:
                assignments = ", ".join(f"{name} = ?" for name in fields)
                conn.execute(
                    f"UPDATE projects SET {assignments} WHERE id = ?",
                    [*fields.values(), project_id],
                )
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
            return _row_to_project(row) if row else None

    def delete_project(self, project_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
            return cur.rowcount > 0

    # Tasks

    def create_task(self, data: TaskCreate) -> TaskEntity:
        task_id = new_id()
        now = datetime.now().isoformat()
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO tasks (id, title, description, status, "order", created_at, project_id)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    data.title,
                    data.description or None,
                    data.status.value,
                    data.order,
                    now,
                    data.project_id,
                ),
            )
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            assert row is not None
            return _row_to_task(row)

    def get_task(self, task_id: str) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return _row_to_task(row) if row else None

    def get_task_with_project(self, task_id: str) -> Optional[TaskWithProject]:
        with self._conn() as conn:
            row = conn.execute(
                """
                SELECT t.*,
                       p.id AS p_id, p.name AS p_name, p.description AS p_description,
                       p.owner_id AS p_owner_id, p.created_at AS p_created_at
                FROM tasks t
                JOIN projects p ON p.id = t.project_id
                WHERE t.id = ?
                """,
                (task_id,),
            ).fetchone()
            if row is None:
                return None
            return TaskWithProject(task=_row_to_task(row), project=_row_to_project(row, prefix="p_"))

    def list_tasks_by_project(self, project_id: str) -> List[TaskEntity]:
        with self._conn() as conn:
            rows = conn.execute(
                'SELECT * FROM tasks WHERE project_id = ? ORDER BY "order" ASC, created_at ASC, rowid ASC',
                (project_id,),
            ).fetchall()
            return [_row_to_task(r) for r in rows]

    def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Optional[TaskEntity]:
        _check_fields(fields, TASK_MUTABLE_FIELDS)
        with self._conn() as conn:
            if fields:
                # Single UPDATE so status and order land together
                assignments = ", ".join(f'"{name}" = ?' for name in fields)
                conn.execute(
                    f"UPDATE tasks SET {assignments} WHERE id = ?",
                    [*(_to_column(v) for v in fields.values()), task_id],
                )
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return _row_to_task(row) if row else None

    def delete_task(self, task_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            return cur.rowcount > 0

    def count_tasks_by_status(self, project_ids: Iterable[str]) -> Dict[TaskStatus, int]:
        ids = list(project_ids)
        counts = empty_status_counts()
        if not ids:
            return counts
        placeholders = ", ".join("?" for _ in ids)
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT status, COUNT(*) AS cnt FROM tasks WHERE project_id IN ({placeholders}) GROUP BY status",
                ids,
            ).fetchall()
        for row in rows:
            counts[TaskStatus(row["status"])] = int(row["cnt"])
        return counts
