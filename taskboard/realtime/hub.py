"""WebSocket hub for real-time board updates.

Every successful mutation publishes one ``BoardEvent``. Delivery is
fire-and-forget and at most once: a client whose queue is full misses the
event and reconciles from the ``board.snapshot`` it receives on reconnect.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from taskboard.database import get_db
from taskboard.ordering.service import TaskOrderingService
from taskboard.schemas import BoardEvent

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class BoardBroadcaster:
    """Holds one bounded queue per connected client.

    The broadcaster lives on ``app.state`` for the lifetime of the application
    and is closed on shutdown. ``publish`` may be called from the event loop or
    from a worker thread; queues created on a loop are always fed on that loop.
    """

    MAX_SUBSCRIBERS = 50

    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = queue_size
        self._subscribers: list[tuple[asyncio.Queue[BoardEvent | None], Optional[asyncio.AbstractEventLoop]]] = []
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[BoardEvent | None]:
        """Create a subscriber queue. ``None`` on the queue signals shutdown."""
        queue: asyncio.Queue[BoardEvent | None] = asyncio.Queue(maxsize=self.queue_size)
        with self._lock:
            if len(self._subscribers) >= self.MAX_SUBSCRIBERS:
                logger.warning(
                    "Board hub at capacity (%d/%d), evicting oldest subscriber",
                    len(self._subscribers), self.MAX_SUBSCRIBERS,
                )
                oldest, oldest_loop = self._subscribers.pop(0)
                self._deliver(oldest, oldest_loop, None)
            self._subscribers.append((queue, _running_loop()))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[BoardEvent | None]) -> None:
        with self._lock:
            self._subscribers = [(q, loop) for q, loop in self._subscribers if q is not queue]

    def publish(self, event: BoardEvent) -> int:
        """Hand ``event`` to every subscriber and return how many were reached.

        Queues fed on the calling loop are counted only if the event was
        enqueued. Queues owned by another loop are skipped when already full and
        otherwise counted once the hand-off is scheduled; if the queue fills up
        before the loop runs it, the event is still dropped there, so the
        count is an upper bound.
        """
        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for queue, loop in subscribers:
            if self._deliver(queue, loop, event):
                delivered += 1
        logger.debug("Published %s to %d/%d subscribers", event.event_type, delivered, len(subscribers))
        return delivered

    def close(self) -> None:
        with self._lock:
            subscribers, self._subscribers = self._subscribers, []
        for queue, loop in subscribers:
            self._deliver(queue, loop, None)

    def _deliver(self, queue, loop, event) -> bool:
        if loop is None or loop is _running_loop():
            return self._offer(queue, event)
        if loop.is_closed():
            return False
        if queue.full():
            logger.warning("Subscriber queue full, dropping %s", event.event_type if event else "close")
            return False
        loop.call_soon_threadsafe(self._offer, queue, event)
        return True

    @staticmethod
    def _offer(queue, event) -> bool:
        try:
            queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            logger.warning("Subscriber queue full, dropping %s", event.event_type if event else "close")
            return False


async def _forward_events(websocket: WebSocket, queue: asyncio.Queue[BoardEvent | None]) -> None:
    while True:
        event = await queue.get()
        if event is None:
            return
        await websocket.send_text(event.model_dump_json())


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/board")
async def board_updates(websocket: WebSocket, db: Session = Depends(get_db)):
    """Stream board events; the first message is a full snapshot of the board."""
    broadcaster: BoardBroadcaster = websocket.app.state.broadcaster
    await websocket.accept()
    queue = broadcaster.subscribe()
    logger.info("Board client connected (%d subscribers)", broadcaster.subscriber_count)
    try:
        snapshot = BoardEvent(
            event_type="board.snapshot",
            columns=TaskOrderingService(db).list_board().columns,
        )
        # Release the read transaction before idling on the queue
        db.rollback()
        await websocket.send_text(snapshot.model_dump_json())

        forward = asyncio.create_task(_forward_events(websocket, queue))
        disconnect = asyncio.create_task(_wait_for_disconnect(websocket))
        done, pending = await asyncio.wait({forward, disconnect}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        if forward in done:
            forward.result()
            await websocket.close()
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.unsubscribe(queue)
        logger.info("Board client disconnected (%d subscribers)", broadcaster.subscriber_count)
