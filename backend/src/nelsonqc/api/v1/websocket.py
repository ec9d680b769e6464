"""WebSocket infrastructure for real-time series synchronization.

Every connected viewer receives the full current series on connect and
again whenever any source replaces it. Editors submit complete series over
the same socket; their own submissions are not echoed back to them.

Outgoing messages go through a bounded per-connection queue drained by a
sender task, so a slow viewer never holds up the coordinator or the other
viewers. A viewer that falls too far behind is disconnected.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import TypeAdapter, ValidationError

from nelsonqc.api.schemas import SampleIn, samples_payload, to_series

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

_samples_adapter = TypeAdapter(list[SampleIn])


@dataclass
class WSConnection:
    """Represents a WebSocket connection.

    Attributes:
        websocket: The FastAPI WebSocket instance
        connected_at: Timestamp when the connection was established
        last_heartbeat: Timestamp of the last received heartbeat/ping
        outbox: Messages waiting to be sent, in order
        sender: Task draining the outbox
        revision: Newest series revision queued for this client
    """

    websocket: WebSocket
    connected_at: datetime
    last_heartbeat: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue)
    sender: asyncio.Task | None = None
    revision: int = -1


class ConnectionManager:
    """Manages WebSocket connections and fan-out.

    Attributes:
        _connections: Mapping of connection IDs to WSConnection instances
        _heartbeat_interval: Seconds between cleanup checks
        _heartbeat_timeout: Seconds before a connection is considered stale
        _max_pending: Outbox size at which a viewer is dropped as too slow
        _cleanup_task: Background task for connection cleanup
    """

    def __init__(
        self,
        heartbeat_interval: int = 30,
        heartbeat_timeout: int = 90,
        max_pending: int = 256,
    ):
        self._connections: dict[str, WSConnection] = {}
        self._heartbeat_interval = heartbeat_interval
        self._heartbeat_timeout = heartbeat_timeout
        self._max_pending = max_pending
        self._cleanup_task: asyncio.Task | None = None

    async def start(self) -> None:
        """Launch the loop that removes stale connections."""
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def stop(self) -> None:
        """Cancel the cleanup task and every sender task."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        senders = [c.sender for c in self._connections.values() if c.sender is not None]
        for connection_id in list(self._connections):
            await self.disconnect(connection_id)
        await asyncio.gather(*senders, return_exceptions=True)

    async def connect(self, websocket: WebSocket, connection_id: str) -> None:
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        conn = WSConnection(
            websocket=websocket,
            connected_at=datetime.now(timezone.utc),
            outbox=asyncio.Queue(maxsize=self._max_pending),
        )
        conn.sender = asyncio.create_task(self._send_loop(connection_id, conn))
        self._connections[connection_id] = conn
        logger.info("Client connected: %s", connection_id)

    async def disconnect(self, connection_id: str) -> None:
        """Forget a connection and stop its sender. Unknown ids are ignored."""
        conn = self._connections.pop(connection_id, None)
        if conn is None:
            return
        if conn.sender is not None and conn.sender is not asyncio.current_task():
            conn.sender.cancel()
        logger.info("Client disconnected: %s", connection_id)

    async def send(
        self,
        connection_id: str,
        message: dict[str, Any],
        revision: int | None = None,
    ) -> None:
        """Queue a message for one connection.

        Args:
            connection_id: Target connection
            message: Message dictionary to send as JSON
            revision: Series revision the message carries; skipped if the
                connection has already been sent this revision or a newer one
        """
        conn = self._connections.get(connection_id)
        if conn is not None:
            await self._enqueue(connection_id, conn, message, revision)

    async def broadcast_to_all(
        self,
        message: dict[str, Any],
        exclude: str | None = None,
        revision: int | None = None,
    ) -> None:
        """Queue a message for every connected client except ``exclude``.

        Returns without waiting for any client. Delivery is not
        acknowledged; clients whose send fails are disconnected by their
        sender task.

        Args:
            message: Message dictionary to send as JSON
            exclude: Connection ID to skip (the update's origin)
            revision: Series revision the message carries
        """
        for conn_id, conn in list(self._connections.items()):
            if conn_id == exclude:
                continue
            await self._enqueue(conn_id, conn, message, revision)

    async def drain(self) -> None:
        """Wait until every queued message has been handed to its socket."""
        await asyncio.gather(
            *(conn.outbox.join() for conn in list(self._connections.values()))
        )

    async def _enqueue(
        self,
        connection_id: str,
        conn: WSConnection,
        message: dict[str, Any],
        revision: int | None,
    ) -> None:
        if revision is not None:
            if revision <= conn.revision:
                return
            conn.revision = revision
        try:
            conn.outbox.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("Dropping slow client: %s", connection_id)
            await self.disconnect(connection_id)

    async def _send_loop(self, connection_id: str, conn: WSConnection) -> None:
        while True:
            message = await conn.outbox.get()
            try:
                await conn.websocket.send_json(message)
            except Exception:
                logger.debug("Send failed for %s", connection_id, exc_info=True)
                await self.disconnect(connection_id)
                return
            finally:
                conn.outbox.task_done()

    def update_heartbeat(self, connection_id: str) -> None:
        """Record a ping so the connection is not reaped as stale."""
        if connection_id in self._connections:
            self._connections[connection_id].last_heartbeat = datetime.now(timezone.utc)

    async def _cleanup_loop(self) -> None:
        """Periodically disconnect clients whose heartbeat has lapsed."""
        while True:
            try:
                await asyncio.sleep(self._heartbeat_interval)
                now = datetime.now(timezone.utc)
                stale = [
                    conn_id
                    for conn_id, conn in self._connections.items()
                    if (now - conn.last_heartbeat).total_seconds() > self._heartbeat_timeout
                ]
                for conn_id in stale:
                    await self.disconnect(conn_id)

            except asyncio.CancelledError:
                break
            except Exception:
                logger.debug("WebSocket cleanup error", exc_info=True)

    def get_connection_count(self) -> int:
        """Number of currently connected clients."""
        return len(self._connections)

    def get_connection_ids(self) -> set[str]:
        return set(self._connections)


def data_update_message(series) -> dict[str, Any]:
    """Build the message that carries a full series to viewers."""
    return {"type": "data-update", "samples": samples_payload(series)}


@router.websocket("/ws/data")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for series synchronization.

    Message Protocol:
        Client -> Server:
            - {"type": "update-data", "samples": [{"id": 1, "weight": 27.2, "hardness": 10.1}, ...]}
            - {"type": "ping"}

        Server -> Client:
            - {"type": "data-update", "samples": [...]}
            - {"type": "pong"}
            - {"type": "error", "message": "..."}
    """
    manager: ConnectionManager = websocket.app.state.connection_manager
    coordinator = websocket.app.state.coordinator

    connection_id = str(uuid.uuid4())
    await manager.connect(websocket, connection_id)

    try:
        # Greet the new viewer with the current series
        await manager.send(
            connection_id,
            data_update_message(coordinator.get_current_series()),
            revision=coordinator.revision,
        )

        while True:
            data = await websocket.receive_json()

            if not isinstance(data, dict):
                await manager.send(connection_id, {
                    "type": "error",
                    "message": "Message must be a JSON object",
                })
                continue

            message_type = data.get("type")
            if not message_type:
                await manager.send(connection_id, {
                    "type": "error",
                    "message": "Message must contain a 'type' field",
                })
                continue

            if message_type == "update-data":
                try:
                    samples = _samples_adapter.validate_python(data.get("samples"))
                except ValidationError as e:
                    await manager.send(connection_id, {
                        "type": "error",
                        "message": f"Invalid samples: {e.error_count()} error(s)",
                    })
                    continue

                logger.info("Received data update from %s", connection_id)
                await coordinator.apply_update(
                    to_series(samples), origin=connection_id
                )

            elif message_type == "ping":
                manager.update_heartbeat(connection_id)
                await manager.send(connection_id, {"type": "pong"})

            else:
                await manager.send(connection_id, {
                    "type": "error",
                    "message": f"Unknown message type: {message_type}",
                })

    except WebSocketDisconnect:
        await manager.disconnect(connection_id)
    except Exception:
        logger.exception("Unexpected error in WebSocket connection %s", connection_id)
        await manager.disconnect(connection_id)


__all__ = [
    "router",
    "ConnectionManager",
    "WSConnection",
    "data_update_message",
]
