"""Task Store Adapter: the only writer of ``tasks.position``."""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from taskboard.errors import InvalidAnchor, InvalidColumn, PositionRangeExhausted, TaskNotFound
from taskboard.models import KanbanColumn, Task
from taskboard.ordering.positions import EXHAUSTED, allocate_position
from taskboard.ordering.rebalance import rebalance_column

logger = logging.getLogger(__name__)

Neighbours = Tuple[Optional[Task], Optional[Task]]


def _same_task(a: Optional[Task], b: Optional[Task]) -> bool:
    return (a.id if a is not None else None) == (b.id if b is not None else None)


class TaskStore:
    """Ordered access to the ``tasks`` relation, keyed by ``(column, position)``.

    Every write happens inside the caller's transaction; the store flushes but
    never commits. Neighbour rows are read ``FOR UPDATE`` before a position is
    chosen, which serialises writers racing for the same slot on databases that
    support row locks.
    """

    def __init__(self, session: Session):
        self.session = session

    # Columns

    def list_columns(self) -> List[KanbanColumn]:
        return self.session.query(KanbanColumn).order_by(KanbanColumn.rank.asc(), KanbanColumn.id.asc()).all()

    def get_column(self, column_id: int) -> KanbanColumn:
        column = self.session.query(KanbanColumn).filter(KanbanColumn.id == column_id).first()
        if column is None:
            raise InvalidColumn(f"Column {column_id} not found")
        return column

    def get_column_by_name(self, name: str) -> KanbanColumn:
        column = self.session.query(KanbanColumn).filter(KanbanColumn.name == name).first()
        if column is None:
            raise InvalidColumn(f"Column '{name}' not found")
        return column

    # Tasks

    def get_task(self, task_id: int, lock: bool = False) -> Task:
        query = self.session.query(Task).filter(Task.id == task_id)
        if lock:
            query = query.with_for_update()
        task = query.first()
        if task is None:
            raise TaskNotFound(f"Task {task_id} not found")
        return task

    def get_task_by_code(self, code: str) -> Task:
        task = self.session.query(Task).filter(Task.code == code).first()
        if task is None:
            raise TaskNotFound(f"Task {code} not found")
        return task

    def list_column(self, column_id: int, lock: bool = False) -> List[Task]:
        query = (
            self.session.query(Task)
            .filter(Task.column_id == column_id)
            .order_by(Task.position.asc(), Task.id.asc())
        )
        if lock:
            query = query.with_for_update()
        return query.all()

    def write_position(self, task: Task, position: int) -> None:
        task.position = position
        self.session.flush()

    # Ordering writes

    def insert(
        self,
        column_id: int,
        fields: Dict[str, Any],
        after_id: Optional[int] = None,
        before_id: Optional[int] = None,
    ) -> Tuple[Task, bool]:
        """Create a task in ``column_id`` next to the given anchors (tail by default)."""
        tasks = self.list_column(column_id, lock=True)
        left, right = self._resolve_neighbours(column_id, tasks, after_id, before_id)
        position, rebalanced = self._allocate(column_id, left, right)

        task = Task(column_id=column_id, position=position, **fields)
        self.session.add(task)
        self.session.flush()
        return task, rebalanced

    def move(
        self,
        task: Task,
        target_column_id: int,
        after_id: Optional[int] = None,
        before_id: Optional[int] = None,
    ) -> Tuple[Task, bool, bool]:
        """Relocate ``task``; returns ``(task, changed, rebalanced)``.

        Only ``column_id`` and ``position`` are written. A move that would leave
        the task between the neighbours it already has is a no-op.
        """
        same_column = task.column_id == target_column_id

        if task.id in (after_id, before_id):
            if same_column:
                return task, False, False
            raise InvalidAnchor("A task cannot be anchored to itself in another column")

        column_tasks = self.list_column(target_column_id, lock=True)
        others = [t for t in column_tasks if t.id != task.id]
        left, right = self._resolve_neighbours(target_column_id, others, after_id, before_id)

        if same_column:
            index = next(i for i, t in enumerate(column_tasks) if t.id == task.id)
            current_left = column_tasks[index - 1] if index > 0 else None
            current_right = column_tasks[index + 1] if index + 1 < len(column_tasks) else None
            if _same_task(current_left, left) and _same_task(current_right, right):
                return task, False, False

        position, rebalanced = self._allocate(target_column_id, left, right)
        task.column_id = target_column_id
        task.position = position
        self.session.flush()
        return task, True, rebalanced

    def remove(self, task: Task) -> None:
        # Deleting only widens gaps, so no rebalance here.
        self.session.delete(task)
        self.session.flush()

    # Internals

    def _resolve_neighbours(
        self,
        column_id: int,
        tasks: List[Task],
        after_id: Optional[int],
        before_id: Optional[int],
    ) -> Neighbours:
        if after_id is None and before_id is None:
            return (tasks[-1] if tasks else None), None

        after_index = self._anchor_index(column_id, tasks, after_id) if after_id is not None else None
        before_index = self._anchor_index(column_id, tasks, before_id) if before_id is not None else None

        if after_index is not None and before_index is not None:
            if before_index != after_index + 1:
                raise InvalidAnchor("afterId and beforeId must be adjacent in the target column")
            return tasks[after_index], tasks[before_index]

        if after_index is not None:
            right = tasks[after_index + 1] if after_index + 1 < len(tasks) else None
            return tasks[after_index], right

        left = tasks[before_index - 1] if before_index > 0 else None
        return left, tasks[before_index]

    def _anchor_index(self, column_id: int, tasks: List[Task], anchor_id: int) -> int:
        for index, task in enumerate(tasks):
            if task.id == anchor_id:
                return index
        anchor = self.session.query(Task.id).filter(Task.id == anchor_id).first()
        if anchor is None:
            raise TaskNotFound(f"Anchor task {anchor_id} not found")
        raise InvalidAnchor(f"Anchor task {anchor_id} is not in column {column_id}")

    def _allocate(self, column_id: int, left: Optional[Task], right: Optional[Task]) -> Tuple[int, bool]:
        position = allocate_position(
            left.position if left is not None else None,
            right.position if right is not None else None,
        )
        if position is not EXHAUSTED:
            return position, False

        # Neighbour objects are rewritten in place by the rebalance.
        rebalance_column(self, column_id)
        position = allocate_position(
            left.position if left is not None else None,
            right.position if right is not None else None,
        )
        if position is EXHAUSTED:
            logger.error("Column %s has no room left after rebalancing", column_id)
            raise PositionRangeExhausted(f"No ordering positions left in column {column_id}")
        return position, True
