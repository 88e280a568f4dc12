"""WebSocket endpoint — registers the connection and echoes client messages."""
import asyncio
import json
import logging
from typing import Any, Union

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.services.connection_registry import ConnectionClosed, WebSocketConnection, envelope, utc_timestamp

logger = logging.getLogger(__name__)
router = APIRouter()

CONNECTED_MESSAGE = "Successfully connected to Event Management WebSocket"


def _decode(data: Union[str, bytes, None]) -> Any:
    """Client frames that are JSON are echoed as JSON, anything else as text.

    Binary frames are decoded as UTF-8, with undecodable bytes replaced.
    """
    if data is None:
        return None
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    try:
        return json.loads(data)
    except ValueError:
        return data


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    registry = websocket.app.state.registry
    await websocket.accept()
    conn = WebSocketConnection(websocket)
    writer = asyncio.create_task(conn.run_writer(registry))

    conn.send(json.dumps({"type": "CONNECTED", "message": CONNECTED_MESSAGE, "timestamp": utc_timestamp()}))
    registry.add(conn)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            data = message.get("text")
            if data is None:
                data = message.get("bytes")
            logger.debug("Received message: %r", data)
            conn.send(json.dumps(envelope("ECHO", _decode(data))))
    except (WebSocketDisconnect, ConnectionClosed):
        pass
    finally:
        conn.close()
        registry.remove(conn)
        writer.cancel()
