"""Ordering API consumed by the route layer and the automation adapter."""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar, Union

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from taskboard.config import settings
from taskboard.errors import ContentionError, InvalidTitle, ValidationFailed
from taskboard.models import KanbanColumn, Task, TaskPriority
from taskboard.ordering.store import TaskStore
from taskboard.schemas import BoardEvent, BoardResponse, ColumnResponse, TaskResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 2
TITLE_MAX_LENGTH = 255
ASSIGNEE_MAX_LENGTH = 50
EDITABLE_FIELDS = {"title", "description", "priority", "assigned_to", "tags"}

ColumnRef = Union[int, str]


@dataclass
class MoveResult:
    task: Task
    changed: bool
    rebalanced: bool


def _sanitize(value: str) -> str:
    return value.replace("<", "").replace(">", "")


def clean_title(title: Any) -> str:
    if not isinstance(title, str):
        raise InvalidTitle()
    title = _sanitize(title).strip()
    if not 1 <= len(title) <= TITLE_MAX_LENGTH:
        raise InvalidTitle()
    return title


def clean_description(description: Any) -> Optional[str]:
    if description is None:
        return None
    if not isinstance(description, str):
        raise ValidationFailed("Description must be a string")
    return _sanitize(description)


def clean_priority(priority: Any) -> TaskPriority:
    try:
        return TaskPriority(priority)
    except ValueError:
        raise ValidationFailed("Priority must be one of: low, medium, high") from None


def clean_tags(tags: Optional[Iterable[Any]]) -> List[str]:
    if tags is None:
        return []
    if isinstance(tags, str):
        raise ValidationFailed("Tags must be a list of strings")
    cleaned: List[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            raise ValidationFailed("Tags must be a list of strings")
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


def clean_assignee(assigned_to: Any) -> Optional[str]:
    if assigned_to is None:
        return None
    if not isinstance(assigned_to, str) or len(assigned_to) > ASSIGNEE_MAX_LENGTH:
        raise ValidationFailed(f"assigned_to must be a string of at most {ASSIGNEE_MAX_LENGTH} characters")
    return assigned_to.strip() or None


class TaskOrderingService:
    """Creates, moves, edits and deletes tasks, one transaction per call.

    Lock waits and unique-constraint collisions are treated as contention: the
    session is rolled back and the whole operation runs once more after a short
    backoff. Each committed mutation publishes one ``BoardEvent``.
    """

    def __init__(self, db: Session, broadcaster=None, actor: str = "system"):
        self.db = db
        self.store = TaskStore(db)
        self.broadcaster = broadcaster
        self.actor = actor

    # Reads

    def list_column(self, column: ColumnRef) -> List[Task]:
        return self.store.list_column(self._resolve_column(column).id)

    def list_board(self) -> BoardResponse:
        return BoardResponse(
            columns=[self._column_snapshot(column) for column in self.store.list_columns()]
        )

    # Mutations

    def create_task(
        self,
        column: ColumnRef,
        title: str,
        description: Optional[str] = None,
        priority: Any = TaskPriority.MEDIUM,
        tags: Optional[Iterable[str]] = None,
        assigned_to: Optional[str] = None,
        after_id: Optional[int] = None,
        before_id: Optional[int] = None,
    ) -> Task:
        fields = {
            "title": clean_title(title),
            "description": clean_description(description),
            "priority": clean_priority(priority),
            "tags": clean_tags(tags),
            "assigned_to": clean_assignee(assigned_to),
        }

        def operation():
            target = self._resolve_column(column)
            return self.store.insert(target.id, dict(fields), after_id=after_id, before_id=before_id)

        task, rebalanced = self._run(operation)
        logger.info(
            "Task %s created in column %s at position %s by %s",
            task.code, task.column_id, task.position, self.actor,
        )
        self._publish("task.created", task.code, [task.column_id], rebalanced)
        return task

    def move_task(
        self,
        task_id: int,
        column: Optional[ColumnRef] = None,
        after_id: Optional[int] = None,
        before_id: Optional[int] = None,
    ) -> MoveResult:
        def operation():
            task = self.store.get_task(task_id, lock=True)
            source_column_id = task.column_id
            target_column_id = self._resolve_column(column).id if column is not None else source_column_id
            task, changed, rebalanced = self.store.move(task, target_column_id, after_id=after_id, before_id=before_id)
            return task, source_column_id, changed, rebalanced

        task, source_column_id, changed, rebalanced = self._run(operation)
        if not changed:
            logger.debug("Move of task %s was a no-op", task.code)
            return MoveResult(task=task, changed=False, rebalanced=False)

        logger.info(
            "Task %s moved from column %s to column %s at position %s by %s",
            task.code, source_column_id, task.column_id, task.position, self.actor,
        )
        affected = [source_column_id] if source_column_id == task.column_id else [source_column_id, task.column_id]
        self._publish("task.moved", task.code, affected, rebalanced)
        return MoveResult(task=task, changed=True, rebalanced=rebalanced)

    def update_task(self, task_id: int, changes: Dict[str, Any]) -> Task:
        if {"position", "column_id", "column", "column_name"} & set(changes):
            raise ValidationFailed("Column and position can only be changed by moving the task")
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationFailed(f"Unknown task fields: {', '.join(sorted(unknown))}")

        cleaners: Dict[str, Callable[[Any], Any]] = {
            "title": clean_title,
            "description": clean_description,
            "priority": clean_priority,
            "tags": clean_tags,
            "assigned_to": clean_assignee,
        }
        cleaned = {field: cleaners[field](value) for field, value in changes.items()}
        if not cleaned:
            try:
                return self.store.get_task(task_id)
            finally:
                self.db.rollback()

        def operation():
            task = self.store.get_task(task_id, lock=True)
            for field, value in cleaned.items():
                setattr(task, field, value)
            self.db.flush()
            return task

        task = self._run(operation)
        logger.info("Task %s updated (%s) by %s", task.code, ", ".join(sorted(cleaned)), self.actor)
        self._publish("task.updated", task.code, [task.column_id], False)
        return task

    def delete_task(self, task_id: int) -> TaskResponse:
        def operation():
            task = self.store.get_task(task_id, lock=True)
            snapshot = TaskResponse.model_validate(task)
            self.store.remove(task)
            return snapshot

        snapshot = self._run(operation)
        logger.info("Task %s deleted from column %s by %s", snapshot.code, snapshot.column_id, self.actor)
        self._publish("task.deleted", snapshot.code, [snapshot.column_id], False)
        return snapshot

    # Internals

    def _resolve_column(self, column: ColumnRef) -> KanbanColumn:
        if isinstance(column, int):
            return self.store.get_column(column)
        return self.store.get_column_by_name(column)

    def _run(self, operation: Callable[[], T]) -> T:
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                result = operation()
                self.db.commit()
                return result
            except (OperationalError, IntegrityError) as exc:
                self.db.rollback()
                if attempt == MAX_ATTEMPTS:
                    logger.warning("Giving up after %d attempts: %s", attempt, exc)
                    raise ContentionError() from exc
                logger.warning("Contention on attempt %d, retrying: %s", attempt, exc)
                time.sleep(settings.CONTENTION_RETRY_BACKOFF_SECONDS * attempt)
            except Exception:
                self.db.rollback()
                raise

    def _column_snapshot(self, column: KanbanColumn) -> ColumnResponse:
        return ColumnResponse(
            id=column.id,
            name=column.name,
            display_name=column.display_name,
            emoji=column.emoji,
            color=column.color,
            rank=column.rank,
            tasks=[TaskResponse.model_validate(task) for task in self.store.list_column(column.id)],
        )

    def _publish(self, event_type: str, task_code: str, column_ids: List[int], rebalanced: bool) -> None:
        if self.broadcaster is None:
            return
        try:
            event = BoardEvent(
                event_type=event_type,
                task_code=task_code,
                actor=self.actor,
                rebalanced=rebalanced,
                columns=[self._column_snapshot(self.store.get_column(column_id)) for column_id in column_ids],
            )
            self.broadcaster.publish(event)
        except Exception:
            # The mutation is already committed; clients reconcile on reconnect.
            logger.exception("Failed to publish %s for task %s", event_type, task_code)
