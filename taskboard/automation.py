"""Agent-facing tool surface over the ordering API.

Tools address columns by name and tasks by their human-facing code
(``TASK-7QX2M``), and return plain JSON-ready dicts. Codes are translated to
internal ids before the ordering service is called.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from taskboard.ordering import TaskOrderingService, TaskStore
from taskboard.schemas import TaskResponse


class AutomationAdapter:
    def __init__(self, db: Session, broadcaster=None, actor: str = "automation"):
        self.store = TaskStore(db)
        self.service = TaskOrderingService(db, broadcaster=broadcaster, actor=actor)

    def _task_id(self, code: Optional[str]) -> Optional[int]:
        if code is None:
            return None
        return self.store.get_task_by_code(code).id

    @staticmethod
    def _dump(task) -> Dict[str, Any]:
        return TaskResponse.model_validate(task).model_dump(mode="json")

    def get_board(self) -> Dict[str, Any]:
        return self.service.list_board().model_dump(mode="json")

    def create_task(
        self,
        column_name: str,
        title: str,
        description: Optional[str] = None,
        priority: str = "medium",
        tags: Optional[List[str]] = None,
        assigned_to: Optional[str] = None,
        after_code: Optional[str] = None,
        before_code: Optional[str] = None,
    ) -> Dict[str, Any]:
        task = self.service.create_task(
            column_name,
            title,
            description=description,
            priority=priority,
            tags=tags,
            assigned_to=assigned_to,
            after_id=self._task_id(after_code),
            before_id=self._task_id(before_code),
        )
        return self._dump(task)

    def move_task(
        self,
        code: str,
        column_name: Optional[str] = None,
        after_code: Optional[str] = None,
        before_code: Optional[str] = None,
    ) -> Dict[str, Any]:
        result = self.service.move_task(
            self._task_id(code),
            column=column_name,
            after_id=self._task_id(after_code),
            before_id=self._task_id(before_code),
        )
        payload = self._dump(result.task)
        payload.update(changed=result.changed, rebalanced=result.rebalanced)
        return payload

    def update_task(self, code: str, **changes: Any) -> Dict[str, Any]:
        return self._dump(self.service.update_task(self._task_id(code), changes))

    def delete_task(self, code: str) -> Dict[str, Any]:
        deleted = self.service.delete_task(self._task_id(code))
        return {"success": True, "deleted": deleted.model_dump(mode="json")}
