"""Task endpoints"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from taskboard.database import get_db
from taskboard.dependencies import get_actor, get_broadcaster
from taskboard.ordering import TaskOrderingService
from taskboard.schemas import (
    TaskCreate,
    TaskDeleteResponse,
    TaskMove,
    TaskMoveResponse,
    TaskResponse,
    TaskUpdate,
)

router = APIRouter()


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    task_data: TaskCreate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
    broadcaster=Depends(get_broadcaster),
):
    """Create a task at the tail of a column, or next to an anchor task."""
    service = TaskOrderingService(db, broadcaster=broadcaster, actor=actor)
    task = service.create_task(
        task_data.column_name,
        task_data.title,
        description=task_data.description,
        priority=task_data.priority,
        tags=task_data.tags,
        assigned_to=task_data.assigned_to,
        after_id=task_data.after_id,
        before_id=task_data.before_id,
    )
    return TaskResponse.model_validate(task)


@router.patch("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    update_data: TaskUpdate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
    broadcaster=Depends(get_broadcaster),
):
    """Edit task fields. Column and position are changed by the move endpoint."""
    service = TaskOrderingService(db, broadcaster=broadcaster, actor=actor)
    task = service.update_task(task_id, update_data.model_dump(exclude_unset=True))
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/move", response_model=TaskMoveResponse)
def move_task(
    task_id: int,
    move_data: TaskMove,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
    broadcaster=Depends(get_broadcaster),
):
    """Reorder a task within its column or move it to another column."""
    service = TaskOrderingService(db, broadcaster=broadcaster, actor=actor)
    result = service.move_task(
        task_id,
        column=move_data.column_name,
        after_id=move_data.after_id,
        before_id=move_data.before_id,
    )
    return TaskMoveResponse(
        **TaskResponse.model_validate(result.task).model_dump(),
        changed=result.changed,
        rebalanced=result.rebalanced,
    )


@router.delete("/{task_id}", response_model=TaskDeleteResponse)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
    broadcaster=Depends(get_broadcaster),
):
    """Delete a task. Remaining positions are left as they are."""
    service = TaskOrderingService(db, broadcaster=broadcaster, actor=actor)
    return TaskDeleteResponse(deleted=service.delete_task(task_id))
