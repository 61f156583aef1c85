"""Sparse-position ordering of tasks within kanban columns."""
from taskboard.ordering.positions import EXHAUSTED, GAP, allocate_position
from taskboard.ordering.service import MoveResult, TaskOrderingService
from taskboard.ordering.store import TaskStore

__all__ = [
    "EXHAUSTED",
    "GAP",
    "allocate_position",
    "MoveResult",
    "TaskOrderingService",
    "TaskStore",
]
