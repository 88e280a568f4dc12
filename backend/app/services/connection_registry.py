"""In-process registry of open real-time connections.

The registry is the only shared mutable state in the process. Membership
changes and broadcast snapshots are taken under a lock; sends happen outside
it so a slow connection never blocks add/remove.
"""
import asyncio
import enum
import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)

MAX_PENDING_FRAMES = 256


class BroadcastType(str, enum.Enum):
    event_created = "EVENT_CREATED"
    event_updated = "EVENT_UPDATED"
    event_deleted = "EVENT_DELETED"
    event_approved = "EVENT_APPROVED"
    rsvp_created = "RSVP_CREATED"
    rsvp_updated = "RSVP_UPDATED"


class ConnectionClosed(Exception):
    """Raised when sending on a connection that is no longer open."""


class Connection(Protocol):
    def send(self, text: str) -> None: ...


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def envelope(message_type: str, payload: Any) -> dict[str, Any]:
    return {"type": message_type, "payload": payload, "timestamp": utc_timestamp()}


class ConnectionRegistry:
    """Set of OPEN connections with partial-failure-isolated broadcast."""

    def __init__(self):
        self._lock = threading.Lock()
        self._connections: set[Connection] = set()

    def add(self, conn: Connection) -> None:
        with self._lock:
            self._connections.add(conn)
            total = len(self._connections)
        logger.info("WebSocket connected. Total connections: %d", total)

    def remove(self, conn: Connection) -> None:
        with self._lock:
            if conn not in self._connections:
                return
            self._connections.discard(conn)
            total = len(self._connections)
        logger.info("WebSocket disconnected. Total connections: %d", total)

    def count(self) -> int:
        with self._lock:
            return len(self._connections)

    def broadcast(self, message: dict[str, Any]) -> int:
        """Send ``message`` to every open connection; return how many accepted it."""
        data = json.dumps(message, default=str)
        with self._lock:
            snapshot = list(self._connections)

        sent = 0
        for conn in snapshot:
            try:
                conn.send(data)
            except Exception:
                logger.exception("Error sending to client; dropping connection")
                self.remove(conn)
                continue
            sent += 1

        logger.info("Broadcast %s to %d clients", message.get("type"), sent)
        return sent

    def publish(self, message_type: BroadcastType, payload: Any) -> int:
        return self.broadcast(envelope(message_type.value, payload))


class WebSocketConnection:
    """Adapts a Starlette WebSocket to the registry's synchronous ``send``.

    ``send`` may be called from any thread (sync route handlers run in a worker
    pool). Text is queued onto the socket's event loop and written by a single
    writer task, so frames go out in order and never concurrently.

    At most ``max_pending`` frames may be waiting for the writer. A client that
    stops reading fills that budget; the next ``send`` closes the connection and
    raises ``ConnectionClosed`` so the registry drops it.
    """

    def __init__(
        self,
        websocket: WebSocket,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        max_pending: int = MAX_PENDING_FRAMES,
    ):
        self.websocket = websocket
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._pending = 0
        self._pending_lock = threading.Lock()
        self.max_pending = max_pending
        self.closed = False

    def send(self, text: str) -> None:
        if self.closed:
            raise ConnectionClosed("connection is closed")
        with self._pending_lock:
            if self._pending >= self.max_pending:
                self.closed = True
                raise ConnectionClosed("send queue is full")
            self._pending += 1
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, text)
        except RuntimeError as exc:
            self.closed = True
            raise ConnectionClosed("event loop is closed") from exc

    def close(self) -> None:
        self.closed = True

    async def run_writer(self, registry: ConnectionRegistry) -> None:
        """Drain queued frames to the socket until it fails or is cancelled."""
        try:
            while True:
                text = await self._queue.get()
                await self.websocket.send_text(text)
                with self._pending_lock:
                    self._pending -= 1
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("WebSocket send failed; closing connection")
            self.close()
            registry.remove(self)
