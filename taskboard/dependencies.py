"""Request-scoped dependencies shared by the API routers."""
from typing import Optional

from fastapi import Header, Request

ANONYMOUS_ACTOR = "anonymous"


def get_actor(x_actor: Optional[str] = Header(default=None)) -> str:
    """Caller identity for audit log lines. Authentication happens upstream."""
    return (x_actor or "").strip() or ANONYMOUS_ACTOR


def get_broadcaster(request: Request):
    return getattr(request.app.state, "broadcaster", None)
