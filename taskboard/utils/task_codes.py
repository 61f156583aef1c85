"""Utilities for assigning human-facing task codes."""
from __future__ import annotations

import secrets
import string
from typing import Type

from sqlalchemy import event, select
from sqlalchemy.orm import Mapper

CODE_PREFIX = "TASK-"
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 5
MAX_CODE_ATTEMPTS = 10


def generate_task_code() -> str:
    """Return a random code such as ``TASK-7QX2M``."""
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def register_task_code_listener(model: Type[object], code_name: str = "code") -> None:
    """Ensure ``model`` receives a unique human-facing code before insert.

    Codes are what people and the automation adapter use to talk about a task,
    so they are assigned once, at insert time, and never rewritten. The listener
    only fills the column when the caller left it empty. Uniqueness is checked
    against the table first; a collision that slips past the check (two writers
    drawing the same code concurrently) is caught by the column's unique
    constraint and retried by the ordering service like any other contention.
    """

    table = getattr(model, "__table__", None)
    if table is None or code_name not in table.c:
        raise ValueError(f"Model {model!r} does not expose a '{code_name}' column")

    code_column = table.c[code_name]

    @event.listens_for(model, "before_insert", propagate=True)
    def _assign_task_code(_: Mapper, connection, target) -> None:
        if getattr(target, code_name):
            return

        for _attempt in range(MAX_CODE_ATTEMPTS):
            candidate = generate_task_code()
            taken = connection.execute(
                select(code_column).where(code_column == candidate)
            ).first()
            if taken is None:
                setattr(target, code_name, candidate)
                return
        raise RuntimeError("Could not allocate a unique task code")
