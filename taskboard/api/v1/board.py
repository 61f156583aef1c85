"""Board endpoints"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskboard.database import get_db
from taskboard.ordering import TaskOrderingService
from taskboard.schemas import BoardResponse, TaskResponse

router = APIRouter()


@router.get("", response_model=BoardResponse)
def get_board(db: Session = Depends(get_db)):
    """Return every column in display order with its tasks in board order."""
    return TaskOrderingService(db).list_board()


@router.get("/columns/{column_name}", response_model=List[TaskResponse])
def list_column_tasks(column_name: str, db: Session = Depends(get_db)):
    """Return the tasks of one column, ascending by position."""
    tasks = TaskOrderingService(db).list_column(column_name)
    return [TaskResponse.model_validate(task) for task in tasks]
