"""
Per-connection bridge between one SSE client and the monitor's subscribers.

- On open: counts the connection, subscribes, starts a heartbeat task.
- Snapshots and heartbeats are queued without blocking; a full queue is a
  write failure and closes the connection.
- close() is idempotent: a write failure racing a client disconnect tears
  down exactly once.
"""
import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator, Callable, Optional

from eci_tracker.core.config import settings
from eci_tracker.db.schemas import Snapshot

logger = logging.getLogger("eci.stream")

_connection_count: int = 0


def connection_count() -> int:
    return _connection_count


def _now_ms() -> int:
    return int(time.time() * 1000)


def data_event(snapshot: Snapshot) -> str:
    return json.dumps({"data": snapshot.to_wire(), "timestamp": _now_ms()})


def heartbeat_event() -> str:
    return json.dumps({"type": "heartbeat", "timestamp": _now_ms()})


class LiveConnection:
    """Connecting -> Open (data on change, heartbeat on interval) -> Closed."""

    def __init__(
        self,
        monitor: Any,
        heartbeat_sec: Optional[float] = None,
        queue_size: Optional[int] = None,
    ):
        self._monitor = monitor
        self._heartbeat_sec = (
            settings.HEARTBEAT_SEC if heartbeat_sec is None else heartbeat_sec
        )
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(
            maxsize=settings.SUBSCRIBER_QUEUE_SIZE if queue_size is None else queue_size
        )
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._heartbeat: Optional[asyncio.Task[Any]] = None
        self._opened = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        global _connection_count
        if self._opened:
            return
        self._opened = True
        _connection_count += 1
        logger.info("New client connected (%d total)", _connection_count)
        self._heartbeat = asyncio.create_task(self._heartbeat_loop(), name="eci-heartbeat")
        self._unsubscribe = self._monitor.subscribe(self._on_snapshot)

    def close(self) -> None:
        global _connection_count
        if self._closed or not self._opened:
            return
        self._closed = True
        _connection_count -= 1
        if self._unsubscribe is not None:
            self._unsubscribe()
        if self._heartbeat is not None:
            self._heartbeat.cancel()
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass
        logger.info("Connection cleaned up (%d remaining)", _connection_count)

    def send(self, message: str) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait(message)
            return True
        except asyncio.QueueFull:
            logger.warning("Client queue full; closing connection")
            self.close()
            return False

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        if self.send(data_event(snapshot)):
            logger.debug("Pushed update to client")

    async def _heartbeat_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self._heartbeat_sec)
            self.send(heartbeat_event())

    async def events(self) -> AsyncIterator[str]:
        """Yield SSE frames until the connection closes."""
        self.open()
        try:
            while not self._closed:
                msg = await self._queue.get()
                if msg is None or self._closed:
                    break
                yield f"data: {msg}\n\n"
        finally:
            self.close()
