import threading
import time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from taskboard.config import settings
from taskboard.database import Base
from taskboard.ordering import GAP, TaskOrderingService, TaskStore
from taskboard.seed import seed_columns


@pytest.fixture
def file_sessions(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'board.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    SessionFactory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    with SessionFactory() as db:
        seed_columns(db)
    try:
        yield SessionFactory
    finally:
        engine.dispose()


def _create_pair(SessionFactory):
    with SessionFactory() as db:
        service = TaskOrderingService(db)
        x_id = service.create_task("todo", "X").id
        y_id = service.create_task("todo", "Y").id
    return x_id, y_id


def _titles(SessionFactory):
    with SessionFactory() as db:
        return [task.title for task in TaskOrderingService(db).list_column("todo")]


def test_concurrent_inserts_after_the_same_task(file_sessions):
    x_id, _ = _create_pair(file_sessions)
    barrier = threading.Barrier(2)
    errors = []

    def worker(title):
        db = file_sessions()
        try:
            barrier.wait()
            TaskOrderingService(db, actor=title).create_task("todo", title, after_id=x_id)
        except Exception as exc:
            errors.append(exc)
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(title,)) for title in ("A", "B")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    titles = _titles(file_sessions)
    assert titles[0] == "X"
    assert set(titles[1:3]) == {"A", "B"}
    assert titles[3] == "Y"
    with file_sessions() as db:
        positions = [task.position for task in TaskOrderingService(db).list_column("todo")]
    assert positions == sorted(set(positions))


def test_reading_neighbours_holds_the_write_lock(file_sessions, monkeypatch):
    monkeypatch.setattr(settings, "SQLITE_BUSY_TIMEOUT_SECONDS", 0.1)
    x_id, _ = _create_pair(file_sessions)

    reader = file_sessions()
    writer = file_sessions()
    try:
        store = TaskStore(reader)
        store.list_column(store.get_column_by_name("todo").id, lock=True)

        with pytest.raises(OperationalError):
            TaskStore(writer).get_task(x_id)
    finally:
        writer.close()
        reader.close()


def test_move_waits_for_an_insert_that_already_read_its_neighbours(file_sessions, monkeypatch):
    x_id, _ = _create_pair(file_sessions)
    neighbours_read = threading.Event()
    move_committed = threading.Event()
    seen_during_insert = []
    errors = []
    real_allocate = TaskStore._allocate

    def allocate_slowly(self, column_id, left, right):
        if threading.current_thread().name == "inserter":
            neighbours_read.set()
            time.sleep(0.3)
            seen_during_insert.append(move_committed.is_set())
        return real_allocate(self, column_id, left, right)

    monkeypatch.setattr(TaskStore, "_allocate", allocate_slowly)

    def insert():
        with file_sessions() as db:
            TaskOrderingService(db).create_task("todo", "N", after_id=x_id)

    def move():
        neighbours_read.wait(5)
        with file_sessions() as db:
            TaskOrderingService(db).move_task(x_id, "todo")
        move_committed.set()

    def guarded(target):
        def run():
            try:
                target()
            except Exception as exc:
                errors.append(exc)
        return run

    threads = [
        threading.Thread(target=guarded(insert), name="inserter"),
        threading.Thread(target=guarded(move), name="mover"),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert seen_during_insert == [False]
    assert _titles(file_sessions) == ["N", "Y", "X"]
    with file_sessions() as db:
        positions = [task.position for task in TaskOrderingService(db).list_column("todo")]
    assert positions == [GAP // 2, GAP, 2 * GAP]
