import os

os.environ.setdefault("PROVISION_ON_STARTUP", "false")
os.environ.setdefault("CONTENTION_RETRY_BACKOFF_SECONDS", "0")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import taskboard.models  # noqa: F401
from taskboard.database import Base
from taskboard.models import KanbanColumn
from taskboard.seed import seed_columns

TEST_DATABASE_URL = "sqlite://"
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingBroadcaster:
    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)
        return 1


@pytest.fixture(autouse=True)
def db_session() -> Session:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    seed_columns(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def column_id(db_session: Session):
    def lookup(name: str) -> int:
        return db_session.query(KanbanColumn).filter(KanbanColumn.name == name).one().id

    return lookup
