"""Schemas for the board and its columns"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from taskboard.schemas.task import TaskResponse


class ColumnResponse(BaseModel):
    id: int
    name: str
    display_name: str
    emoji: str
    color: str
    rank: int
    tasks: List[TaskResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class BoardResponse(BaseModel):
    columns: List[ColumnResponse]


class BoardEvent(BaseModel):
    """One real-time update, carrying the new task lists of the columns it touched."""

    event_type: str
    task_code: Optional[str] = None
    actor: Optional[str] = None
    rebalanced: bool = False
    columns: List[ColumnResponse] = Field(default_factory=list)
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
