"""Tests for the in-process connection registry."""
import asyncio
import threading

import pytest

from app.services.connection_registry import BroadcastType, ConnectionClosed, ConnectionRegistry, WebSocketConnection
from tests.conftest import BrokenConnection, RecordingConnection


class TestMembership:
    """add / remove / count."""

    def test_add_and_remove_are_idempotent(self):
        registry = ConnectionRegistry()
        conn = RecordingConnection()
        registry.add(conn)
        registry.add(conn)
        assert registry.count() == 1
        registry.remove(conn)
        registry.remove(conn)
        assert registry.count() == 0

    def test_remove_unknown_connection(self):
        registry = ConnectionRegistry()
        registry.remove(RecordingConnection())
        assert registry.count() == 0


class TestBroadcast:
    """Fan-out with per-connection failure isolation."""

    def test_delivers_to_every_open_connection(self):
        registry = ConnectionRegistry()
        conns = [RecordingConnection() for _ in range(3)]
        for c in conns:
            registry.add(c)

        sent = registry.broadcast({"type": "PING", "payload": {"n": 1}})
        assert sent == 3
        for c in conns:
            assert c.messages == [{"type": "PING", "payload": {"n": 1}}]

    def test_removed_connection_gets_nothing(self):
        registry = ConnectionRegistry()
        kept, gone = RecordingConnection(), RecordingConnection()
        registry.add(kept)
        registry.add(gone)
        registry.remove(gone)

        registry.broadcast({"type": "PING"})
        assert kept.types == ["PING"]
        assert gone.messages == []

    def test_failing_connection_is_dropped_and_others_still_receive(self):
        registry = ConnectionRegistry()
        before, broken, after = RecordingConnection(), BrokenConnection(), RecordingConnection()
        for c in (before, broken, after):
            registry.add(c)

        sent = registry.broadcast({"type": "PING"})
        assert sent == 2
        assert before.types == ["PING"]
        assert after.types == ["PING"]
        assert registry.count() == 2

        registry.broadcast({"type": "PONG"})
        assert broken.attempts == 1
        assert after.types == ["PING", "PONG"]

    def test_broadcast_with_no_connections(self):
        assert ConnectionRegistry().broadcast({"type": "PING"}) == 0

    def test_publish_builds_envelope(self):
        registry = ConnectionRegistry()
        conn = RecordingConnection()
        registry.add(conn)

        registry.publish(BroadcastType.event_deleted, {"event_id": "abc"})
        message = conn.messages[0]
        assert message["type"] == "EVENT_DELETED"
        assert message["payload"] == {"event_id": "abc"}
        assert message["timestamp"].endswith("+00:00")

    def test_concurrent_add_remove_during_broadcast(self):
        registry = ConnectionRegistry()
        stable = RecordingConnection()
        registry.add(stable)
        errors = []

        def churn():
            try:
                for _ in range(200):
                    c = RecordingConnection()
                    registry.add(c)
                    registry.remove(c)
            except Exception as exc:  # pragma: no cover - surfaced via assertion
                errors.append(exc)

        threads = [threading.Thread(target=churn) for _ in range(4)]
        for t in threads:
            t.start()
        for _ in range(50):
            registry.broadcast({"type": "TICK"})
        for t in threads:
            t.join()

        assert errors == []
        assert registry.count() == 1
        assert stable.types == ["TICK"] * 50


class TestWebSocketConnection:
    """Outbound queue bound for clients that stop reading."""

    @pytest.fixture
    def loop(self):
        # Never run: queued frames stay pending, like a client that has stalled.
        loop = asyncio.new_event_loop()
        yield loop
        loop.close()

    def test_full_queue_closes_connection(self, loop):
        conn = WebSocketConnection(websocket=None, loop=loop, max_pending=3)
        for n in range(3):
            conn.send(f"frame {n}")

        with pytest.raises(ConnectionClosed):
            conn.send("one too many")
        assert conn.closed
        with pytest.raises(ConnectionClosed):
            conn.send("after close")

    def test_stalled_client_is_dropped_by_broadcast(self, loop):
        registry = ConnectionRegistry()
        stalled = WebSocketConnection(websocket=None, loop=loop, max_pending=2)
        healthy = RecordingConnection()
        registry.add(stalled)
        registry.add(healthy)

        assert registry.broadcast({"type": "PING"}) == 2
        assert registry.broadcast({"type": "PING"}) == 2
        assert registry.broadcast({"type": "PING"}) == 1
        assert registry.count() == 1
        assert healthy.types == ["PING"] * 3

    def test_closed_loop_counts_as_closed(self):
        loop = asyncio.new_event_loop()
        loop.close()
        conn = WebSocketConnection(websocket=None, loop=loop)
        with pytest.raises(ConnectionClosed):
            conn.send("x")
