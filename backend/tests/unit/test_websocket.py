"""Unit tests for WebSocket infrastructure.

Tests for the ConnectionManager and the data-update message helper.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi import WebSocket

from nelsonqc.api.v1.websocket import ConnectionManager, WSConnection, data_update_message
from nelsonqc.core.series import FALLBACK_SERIES, Sample, Series


def _socket():
    ws = MagicMock(spec=WebSocket)
    ws.accept = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


def _stalled_socket():
    """Socket whose sends never complete."""
    ws = _socket()

    async def never_returns(message):
        await asyncio.sleep(3600)

    ws.send_json.side_effect = never_returns
    return ws


class TestWSConnection:
    """Tests for WSConnection dataclass."""

    def test_ws_connection_creation(self):
        mock_ws = MagicMock(spec=WebSocket)
        now = datetime.now(timezone.utc)

        conn = WSConnection(websocket=mock_ws, connected_at=now)

        assert conn.websocket == mock_ws
        assert conn.connected_at == now
        assert isinstance(conn.last_heartbeat, datetime)
        assert conn.outbox.empty()
        assert conn.revision == -1


class TestConnectionManager:
    """Tests for ConnectionManager class."""

    @pytest_asyncio.fixture
    async def manager(self):
        manager = ConnectionManager(heartbeat_interval=1, heartbeat_timeout=2)
        yield manager
        await manager.stop()

    @pytest.mark.asyncio
    async def test_connect(self, manager):
        ws = _socket()
        await manager.connect(ws, "conn-1")

        ws.accept.assert_awaited_once()
        assert manager.get_connection_count() == 1
        assert manager.get_connection_ids() == {"conn-1"}

    @pytest.mark.asyncio
    async def test_disconnect(self, manager):
        await manager.connect(_socket(), "conn-1")
        await manager.disconnect("conn-1")
        await manager.disconnect("unknown")

        assert manager.get_connection_count() == 0

    @pytest.mark.asyncio
    async def test_broadcast_to_all(self, manager):
        ws1, ws2 = _socket(), _socket()
        await manager.connect(ws1, "conn-1")
        await manager.connect(ws2, "conn-2")

        message = {"type": "data-update", "samples": []}
        await manager.broadcast_to_all(message)
        await manager.drain()

        ws1.send_json.assert_awaited_once_with(message)
        ws2.send_json.assert_awaited_once_with(message)

    @pytest.mark.asyncio
    async def test_broadcast_excludes_origin(self, manager):
        ws1, ws2 = _socket(), _socket()
        await manager.connect(ws1, "conn-1")
        await manager.connect(ws2, "conn-2")

        await manager.broadcast_to_all({"type": "data-update"}, exclude="conn-1")
        await manager.drain()

        ws1.send_json.assert_not_awaited()
        ws2.send_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_broadcast_with_no_connections(self, manager):
        await manager.broadcast_to_all({"type": "data-update"})
        await manager.drain()

    @pytest.mark.asyncio
    async def test_broadcast_drops_dead_connection(self, manager):
        dead, alive = _socket(), _socket()
        dead.send_json.side_effect = RuntimeError("socket closed")
        await manager.connect(dead, "dead")
        await manager.connect(alive, "alive")

        await manager.broadcast_to_all({"type": "data-update"})
        await manager.drain()

        alive.send_json.assert_awaited_once()
        assert manager.get_connection_ids() == {"alive"}

    @pytest.mark.asyncio
    async def test_messages_sent_in_queue_order(self, manager):
        ws = _socket()
        await manager.connect(ws, "conn-1")

        for n in range(5):
            await manager.broadcast_to_all({"type": "data-update", "n": n})
        await manager.drain()

        assert [c.args[0]["n"] for c in ws.send_json.call_args_list] == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_stalled_client_does_not_block_broadcast(self, manager):
        stalled, healthy = _stalled_socket(), _socket()
        await manager.connect(stalled, "stalled")
        await manager.connect(healthy, "healthy")

        await asyncio.wait_for(
            manager.broadcast_to_all({"type": "data-update"}), timeout=1.0
        )
        await asyncio.sleep(0.01)

        healthy.send_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_client_too_far_behind_is_dropped(self):
        manager = ConnectionManager(max_pending=2)
        await manager.connect(_stalled_socket(), "stalled")

        for n in range(5):
            await manager.broadcast_to_all({"type": "data-update", "n": n})

        assert manager.get_connection_count() == 0
        await manager.stop()

    @pytest.mark.asyncio
    async def test_older_revision_skipped(self, manager):
        ws = _socket()
        await manager.connect(ws, "conn-1")

        await manager.send("conn-1", {"type": "data-update", "n": 2}, revision=2)
        await manager.broadcast_to_all({"type": "data-update", "n": 1}, revision=1)
        await manager.broadcast_to_all({"type": "data-update", "n": 2}, revision=2)
        await manager.broadcast_to_all({"type": "data-update", "n": 3}, revision=3)
        await manager.drain()

        assert [c.args[0]["n"] for c in ws.send_json.call_args_list] == [2, 3]

    @pytest.mark.asyncio
    async def test_send_to_one(self, manager):
        ws = _socket()
        await manager.connect(ws, "conn-1")

        await manager.send("conn-1", {"type": "pong"})
        await manager.send("missing", {"type": "pong"})
        await manager.drain()

        ws.send_json.assert_awaited_once_with({"type": "pong"})

    @pytest.mark.asyncio
    async def test_update_heartbeat(self, manager):
        await manager.connect(_socket(), "conn-1")
        conn = manager._connections["conn-1"]
        conn.last_heartbeat = datetime.now(timezone.utc) - timedelta(minutes=5)

        manager.update_heartbeat("conn-1")

        assert datetime.now(timezone.utc) - conn.last_heartbeat < timedelta(seconds=5)

    @pytest.mark.asyncio
    async def test_cleanup_removes_stale(self):
        manager = ConnectionManager(heartbeat_interval=0.01, heartbeat_timeout=1)
        await manager.connect(_socket(), "stale")
        await manager.connect(_socket(), "fresh")
        manager._connections["stale"].last_heartbeat = (
            datetime.now(timezone.utc) - timedelta(seconds=10)
        )

        await manager.start()
        await asyncio.sleep(0.05)

        assert manager.get_connection_ids() == {"fresh"}
        await manager.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_senders(self):
        manager = ConnectionManager()
        await manager.connect(_stalled_socket(), "stalled")
        await manager.broadcast_to_all({"type": "data-update"})
        sender = manager._connections["stalled"].sender

        await manager.stop()
        await asyncio.sleep(0)

        assert manager.get_connection_count() == 0
        assert sender.done()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        await ConnectionManager().stop()


class TestDataUpdateMessage:
    def test_message_shape(self):
        message = data_update_message(FALLBACK_SERIES)

        assert message["type"] == "data-update"
        assert message["samples"][0] == {"id": 1, "weight": 27.2, "hardness": 10.1}
        assert len(message["samples"]) == 5

    def test_non_finite_values_sent_as_null(self):
        series = Series.of([Sample(id=1, weight=float("nan"), hardness=float("inf"))])
        message = data_update_message(series)

        assert message["samples"] == [{"id": 1, "weight": None, "hardness": None}]
