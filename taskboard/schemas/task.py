"""Schemas for kanban tasks"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from taskboard.models import TaskPriority


class TaskCreate(BaseModel):
    column_name: str
    title: str
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_to: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    after_id: Optional[int] = None
    before_id: Optional[int] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    assigned_to: Optional[str] = None
    tags: Optional[List[str]] = None

    class Config:
        # Column and position only change through the move endpoint
        extra = "forbid"


class TaskMove(BaseModel):
    column_name: Optional[str] = None
    after_id: Optional[int] = None
    before_id: Optional[int] = None


class TaskResponse(BaseModel):
    id: int
    code: str
    column_id: int
    column_name: Optional[str] = None
    title: str
    description: Optional[str]
    priority: TaskPriority
    assigned_to: Optional[str]
    tags: List[str]
    position: int
    created_at: datetime
    updated_at: datetime

    @field_serializer("position", when_used="json")
    def _position_as_string(self, position: int) -> str:
        # 64-bit positions do not survive a round trip through a JS number
        return str(position)

    class Config:
        from_attributes = True


class TaskMoveResponse(TaskResponse):
    changed: bool
    rebalanced: bool


class TaskDeleteResponse(BaseModel):
    success: bool = True
    deleted: TaskResponse
