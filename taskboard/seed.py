"""Board provisioning: the six fixed columns."""
import logging

from sqlalchemy.orm import Session

from taskboard.database import Base
from taskboard.models import KanbanColumn

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = [
    {"name": "backlog", "display_name": "Backlog", "emoji": "\U0001F4DD", "color": "#6b7280", "rank": 0},
    {"name": "todo", "display_name": "To Do", "emoji": "\U0001F4CB", "color": "#3b82f6", "rank": 1},
    {"name": "inProgress", "display_name": "In Progress", "emoji": "\U0001F680", "color": "#f59e0b", "rank": 2},
    {"name": "review", "display_name": "Review", "emoji": "\U0001F440", "color": "#8b5cf6", "rank": 3},
    {"name": "done", "display_name": "Done", "emoji": "✅", "color": "#10b981", "rank": 4},
    {"name": "waiting-for-neil", "display_name": "Waiting for Neil", "emoji": "⏸️", "color": "#ef4444", "rank": 5},
]


def seed_columns(db: Session) -> int:
    """Insert missing columns and refresh the display attributes of existing ones.

    Safe to run on every startup. Returns the number of columns inserted.
    """
    inserted = 0
    for spec in DEFAULT_COLUMNS:
        column = db.query(KanbanColumn).filter(KanbanColumn.name == spec["name"]).first()
        if column is None:
            db.add(KanbanColumn(**spec))
            inserted += 1
            continue
        for field in ("display_name", "emoji", "color", "rank"):
            setattr(column, field, spec[field])
    db.commit()
    if inserted:
        logger.info("Seeded %d kanban columns", inserted)
    return inserted


def provision(engine, session_factory) -> None:
    """Create the schema and seed the columns."""
    Base.metadata.create_all(bind=engine)
    db = session_factory()
    try:
        seed_columns(db)
    finally:
        db.close()
