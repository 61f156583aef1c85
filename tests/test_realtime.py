import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from taskboard.database import get_db
from taskboard.main import app
from taskboard.realtime.hub import BoardBroadcaster
from taskboard.schemas import BoardEvent


@pytest.fixture
def client(db_session: Session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def test_publish_reaches_every_subscriber():
    hub = BoardBroadcaster(queue_size=5)
    first = hub.subscribe()
    second = hub.subscribe()

    assert hub.publish(BoardEvent(event_type="task.created", task_code="TASK-AAAAA")) == 2
    assert first.get_nowait().task_code == "TASK-AAAAA"
    assert second.get_nowait().event_type == "task.created"


def test_unsubscribe_stops_delivery():
    hub = BoardBroadcaster()
    queue = hub.subscribe()
    hub.unsubscribe(queue)

    assert hub.subscriber_count == 0
    assert hub.publish(BoardEvent(event_type="task.deleted")) == 0
    assert queue.empty()


def test_full_queue_drops_events():
    hub = BoardBroadcaster(queue_size=1)
    queue = hub.subscribe()

    assert hub.publish(BoardEvent(event_type="task.created")) == 1
    assert hub.publish(BoardEvent(event_type="task.moved")) == 0
    assert queue.qsize() == 1
    assert queue.get_nowait().event_type == "task.created"


def test_capacity_evicts_oldest_subscriber():
    hub = BoardBroadcaster()
    queues = [hub.subscribe() for _ in range(BoardBroadcaster.MAX_SUBSCRIBERS)]
    newest = hub.subscribe()

    assert hub.subscriber_count == BoardBroadcaster.MAX_SUBSCRIBERS
    assert queues[0].get_nowait() is None
    assert hub.publish(BoardEvent(event_type="task.updated")) == BoardBroadcaster.MAX_SUBSCRIBERS
    assert newest.get_nowait().event_type == "task.updated"


def test_close_signals_subscribers():
    hub = BoardBroadcaster()
    queue = hub.subscribe()
    hub.close()

    assert queue.get_nowait() is None
    assert hub.subscriber_count == 0


def test_publish_from_worker_thread_reaches_loop_subscriber():
    hub = BoardBroadcaster()

    async def scenario():
        queue = hub.subscribe()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, hub.publish, BoardEvent(event_type="task.moved"))
        return await asyncio.wait_for(queue.get(), timeout=1)

    assert asyncio.run(scenario()).event_type == "task.moved"


def test_event_serializes_positions_as_strings(db_session: Session):
    from taskboard.ordering import TaskOrderingService

    service = TaskOrderingService(db_session)
    service.create_task("todo", "A")
    service.create_task("todo", "B")
    event = BoardEvent(event_type="board.snapshot", columns=service.list_board().columns)

    todo = next(column for column in event.model_dump(mode="json")["columns"] if column["name"] == "todo")
    assert [task["position"] for task in todo["tasks"]] == ["0", "1000000"]


def test_websocket_sends_snapshot_then_mutations(client: TestClient):
    client.post("/api/v1/tasks", json={"column_name": "todo", "title": "A"})

    with client.websocket_connect("/ws/board") as websocket:
        snapshot = websocket.receive_json()
        assert snapshot["event_type"] == "board.snapshot"
        assert len(snapshot["columns"]) == 6
        todo = next(column for column in snapshot["columns"] if column["name"] == "todo")
        assert [task["title"] for task in todo["tasks"]] == ["A"]

        created = client.post(
            "/api/v1/tasks", json={"column_name": "done", "title": "B"}, headers={"X-Actor": "sam"}
        ).json()

        event = websocket.receive_json()
        assert event["event_type"] == "task.created"
        assert event["task_code"] == created["code"]
        assert event["actor"] == "sam"
        assert [column["name"] for column in event["columns"]] == ["done"]
        assert event["columns"][0]["tasks"][0]["position"] == "0"


def test_publish_from_worker_thread_skips_a_full_queue():
    hub = BoardBroadcaster(queue_size=1)

    async def scenario():
        queue = hub.subscribe()
        queue.put_nowait(BoardEvent(event_type="task.created"))
        loop = asyncio.get_running_loop()
        reached = await loop.run_in_executor(None, hub.publish, BoardEvent(event_type="task.moved"))
        await asyncio.sleep(0)
        return reached, queue.qsize(), queue.get_nowait().event_type

    assert asyncio.run(scenario()) == (0, 1, "task.created")
