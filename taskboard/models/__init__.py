"""Taskboard Database Models"""
from taskboard.models.column import KanbanColumn
from taskboard.models.task import Task, TaskPriority
from taskboard.utils.task_codes import register_task_code_listener

__all__ = [
    "KanbanColumn",
    "Task",
    "TaskPriority",
]


register_task_code_listener(Task)
