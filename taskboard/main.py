"""Taskboard FastAPI Application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskboard.api.v1 import board, tasks
from taskboard.config import settings
from taskboard.database import SessionLocal, engine
from taskboard.errors import OrderingError, ordering_error_handler
from taskboard.realtime import hub
from taskboard.realtime.hub import BoardBroadcaster
from taskboard.seed import provision

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    configure_logging()
    app.state.broadcaster = BoardBroadcaster(queue_size=settings.BROADCAST_QUEUE_SIZE)
    if settings.PROVISION_ON_STARTUP:
        provision(engine, SessionLocal)
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)

    yield

    app.state.broadcaster.close()
    logger.info("%s stopped", settings.APP_NAME)


app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(OrderingError, ordering_error_handler)

app.include_router(board.router, prefix="/api/v1/board", tags=["board"])
app.include_router(tasks.router, prefix="/api/v1/tasks", tags=["tasks"])
app.include_router(hub.router)


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("taskboard.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
