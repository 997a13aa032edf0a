"""
Client-side board state for one open project.

``BoardStateController`` keeps the task list the UI renders and runs the
optimistic move protocol around ``update_status_and_order``:

    Idle -> OptimisticallyMoved -> Reconciling -> Committed | RolledBack -> Idle

The moved task is deep-copied before the optimistic write; a failed move
restores that copy verbatim. A task with a move still in flight does not
accept another move until the first one resolves.
"""
from __future__ import annotations

import copy
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol

from .models import TaskEntity, TaskStatus
from .project_service import completion_percentage
from .results import Ok, Result, network_error

logger = logging.getLogger(__name__)

# Order written on every column move; sibling ordering is not maintained.
PLACEHOLDER_ORDER = 0
GENERIC_MOVE_ERROR = "Failed to move task. Please try again."


class BoardPhase(str, enum.Enum):
    IDLE = "Idle"
    OPTIMISTICALLY_MOVED = "OptimisticallyMoved"
    RECONCILING = "Reconciling"
    COMMITTED = "Committed"
    ROLLED_BACK = "RolledBack"


@dataclass(frozen=True)
class Notification:
    kind: str  # "success" or "error"
    message: str


@dataclass(frozen=True)
class BoardProgress:
    completed: int
    total: int
    percentage: int


@dataclass(frozen=True)
class MoveOutcome:
    task_id: str
    committed: bool
    result: Result[TaskEntity]


# PUBLIC_INTERFACE
class TaskMutationClient(Protocol):
    """Anything that can perform a column move and report an Ok/Err result."""

    async def update_status_and_order(
        self, task_id: str, status: TaskStatus, order: int
    ) -> Result[TaskEntity]:
        ...


# PUBLIC_INTERFACE
class BoardClient(TaskMutationClient, Protocol):
    """A mutation client that can also fetch a project's tasks."""

    async def list_tasks(self, project_id: str) -> Result[List[TaskEntity]]:
        ...


PhaseListener = Callable[[str, BoardPhase], None]


# PUBLIC_INTERFACE
class BoardStateController:
    """
    Owns the in-memory task list of one project and reconciles moves with the server.

    Args:
        tasks: Last-known-good server state for the project.
        client: Performs the authoritative move.
        listener: Optional callback receiving every (task_id, phase) transition.
    """

    def __init__(
        self,
        tasks: List[TaskEntity],
        client: TaskMutationClient,
        listener: Optional[PhaseListener] = None,
    ) -> None:
        self._tasks: List[TaskEntity] = [copy.deepcopy(t) for t in tasks]
        self._client = client
        self._listener = listener
        self._phases: Dict[str, BoardPhase] = {}
        self._in_flight: set = set()
        self.notification: Optional[Notification] = None
        self.dragging_task: Optional[TaskEntity] = None

    @classmethod
    async def load(
        cls, client: BoardClient, project_id: str, listener: Optional[PhaseListener] = None
    ) -> Result["BoardStateController"]:
        """Open a board from the server's current task list, or pass its Err through."""
        result = await client.list_tasks(project_id)
        if not isinstance(result, Ok):
            logger.info("Board for project %s not loaded: %s", project_id, result.message)
            return result
        return Ok(cls(result.data, client, listener))

    # Render state

    @property
    def tasks(self) -> List[TaskEntity]:
        return [copy.deepcopy(t) for t in self._tasks]

    @property
    def columns(self) -> Dict[TaskStatus, List[TaskEntity]]:
        """Tasks grouped per column, each column sorted by order (stable)."""
        grouped: Dict[TaskStatus, List[TaskEntity]] = {status: [] for status in TaskStatus}
        for task in self._tasks:
            grouped[task["status"]].append(copy.deepcopy(task))
        for column in grouped.values():
            column.sort(key=lambda t: t["order"])
        return grouped

    @property
    def progress(self) -> BoardProgress:
        total = len(self._tasks)
        completed = sum(1 for t in self._tasks if t["status"] == TaskStatus.DONE)
        return BoardProgress(completed, total, completion_percentage(completed, total))

    def phase(self, task_id: str) -> BoardPhase:
        return self._phases.get(task_id, BoardPhase.IDLE)

    def is_reconciling(self, task_id: str) -> bool:
        return task_id in self._in_flight

    def dismiss_notification(self) -> None:
        self.notification = None

    # Drag events

    def on_drag_start(self, task_id: str) -> None:
        index = self._index_of(task_id)
        self.dragging_task = copy.deepcopy(self._tasks[index]) if index is not None else None

    def on_drag_cancel(self) -> None:
        self.dragging_task = None

    async def on_drag_end(self, task_id: str, destination_column_id: object) -> Optional[MoveOutcome]:
        """
        Apply a move intent optimistically, then reconcile it with the server.

        Returns None when the intent is discarded without touching state:
        unknown column, unknown task, same column, or a move of this task is
        already in flight.
        """
        self.dragging_task = None

        destination = TaskStatus.parse(destination_column_id)
        if destination is None:
            logger.debug("Discarding drop on unknown column %r", destination_column_id)
            return None

        index = self._index_of(task_id)
        if index is None:
            logger.debug("Discarding drop of unknown task %s", task_id)
            return None

        current = self._tasks[index]
        if current["status"] == destination:
            return None

        if task_id in self._in_flight:
            logger.info("Ignoring move of task %s while a previous move is in flight", task_id)
            return None

        snapshot = copy.deepcopy(current)
        optimistic = copy.deepcopy(current)
        optimistic["status"] = destination
        optimistic["order"] = PLACEHOLDER_ORDER
        self._tasks[index] = optimistic
        self._set_phase(task_id, BoardPhase.OPTIMISTICALLY_MOVED)

        self._in_flight.add(task_id)
        self._set_phase(task_id, BoardPhase.RECONCILING)
        try:
            result = await self._reconcile(task_id, destination)
        finally:
            self._in_flight.discard(task_id)

        if isinstance(result, Ok):
            self.notification = Notification("success", result.message or f"Task moved to {destination.value}.")
            self._set_phase(task_id, BoardPhase.COMMITTED)
            self._set_phase(task_id, BoardPhase.IDLE)
            return MoveOutcome(task_id, True, result)

        self._restore(snapshot)
        self.notification = Notification("error", result.message or GENERIC_MOVE_ERROR)
        logger.warning("Move of task %s rolled back: %s (%s)", task_id, result.message, result.kind.value)
        self._set_phase(task_id, BoardPhase.ROLLED_BACK)
        self._set_phase(task_id, BoardPhase.IDLE)
        return MoveOutcome(task_id, False, result)

    async def _reconcile(self, task_id: str, destination: TaskStatus) -> Result[TaskEntity]:
        try:
            return await self._client.update_status_and_order(task_id, destination, PLACEHOLDER_ORDER)
        except Exception:
            # A client that raises instead of returning Err is treated as a request failure
            logger.exception("Move request for task %s failed", task_id)
            return network_error()

    def _restore(self, snapshot: TaskEntity) -> None:
        index = self._index_of(snapshot["id"])
        if index is None:
            self._tasks.append(snapshot)
        else:
            self._tasks[index] = snapshot

    def _index_of(self, task_id: str) -> Optional[int]:
        for i, task in enumerate(self._tasks):
            if task["id"] == task_id:
                return i
        return None

    def _set_phase(self, task_id: str, phase: BoardPhase) -> None:
        if phase == BoardPhase.IDLE:
            self._phases.pop(task_id, None)
        else:
            self._phases[task_id] = phase
        if self._listener is not None:
            self._listener(task_id, phase)


__all__ = [
    "BoardClient",
    "BoardPhase",
    "BoardProgress",
    "BoardStateController",
    "MoveOutcome",
    "Notification",
    "PLACEHOLDER_ORDER",
    "TaskMutationClient",
]
