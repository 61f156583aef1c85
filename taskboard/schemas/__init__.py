"""
Pydantic schemas for request/response validation
"""
from taskboard.schemas.task import TaskCreate, TaskUpdate, TaskMove, TaskResponse, TaskMoveResponse, TaskDeleteResponse
from taskboard.schemas.board import ColumnResponse, BoardResponse, BoardEvent

__all__ = [
    "TaskCreate",
    "TaskUpdate",
    "TaskMove",
    "TaskResponse",
    "TaskMoveResponse",
    "TaskDeleteResponse",
    "ColumnResponse",
    "BoardResponse",
    "BoardEvent",
]
