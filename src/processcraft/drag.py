"""
Pointer-level drag handling that turns drops into board move intents.

Columns register their on-screen rectangle. A drop resolves to the column
whose center lies closest to the drop point, unless the pointer layer already
reports the column it is over.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .board import BoardStateController, MoveOutcome

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


@dataclass(frozen=True)
class ColumnRegion:
    column_id: str
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def distance_to(self, point: Point) -> float:
        cx, cy = self.center
        return math.hypot(point[0] - cx, point[1] - cy)


# PUBLIC_INTERFACE
class DragAdapter:
    """Feeds drag start/end/cancel events from a pointer layer into a controller."""

    def __init__(self, controller: BoardStateController) -> None:
        self._controller = controller
        self._regions: Dict[str, ColumnRegion] = {}
        self.active_task_id: Optional[str] = None

    def register_column(self, region: ColumnRegion) -> None:
        self._regions[region.column_id] = region

    def unregister_column(self, column_id: str) -> None:
        self._regions.pop(column_id, None)

    def resolve_column(self, point: Point) -> Optional[str]:
        """Column whose center is nearest to ``point``; ties go to the first registered."""
        if not self._regions:
            return None
        nearest = min(self._regions.values(), key=lambda region: region.distance_to(point))
        return nearest.column_id

    def drag_start(self, task_id: str) -> None:
        self.active_task_id = task_id
        self._controller.on_drag_start(task_id)

    def drag_cancel(self) -> None:
        self.active_task_id = None
        self._controller.on_drag_cancel()

    async def drag_end(
        self,
        task_id: str,
        point: Optional[Point] = None,
        over_id: Optional[str] = None,
    ) -> Optional[MoveOutcome]:
        """
        Finish a drag. Drops that resolve to no column are discarded.

        Args:
            task_id: The dragged task.
            point: Drop position used for nearest-center resolution.
            over_id: Column reported directly by the pointer layer; wins over ``point``.
        """
        self.active_task_id = None
        column_id = over_id
        if column_id is None and point is not None:
            column_id = self.resolve_column(point)
        if column_id is None:
            logger.debug("Drop of task %s resolved to no column", task_id)
            self._controller.on_drag_cancel()
            return None
        return await self._controller.on_drag_end(task_id, column_id)
