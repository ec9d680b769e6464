"""WebSocket broadcaster for series replacements.

Bridges the event bus and the WebSocket connection manager: every
SeriesUpdatedEvent published by the sync coordinator becomes a
``data-update`` message for connected viewers, skipping the update's
origin so editors do not receive an echo of their own write.
"""

import logging

from nelsonqc.api.v1.websocket import ConnectionManager, data_update_message
from nelsonqc.core.events import EventBus, SeriesUpdatedEvent

logger = logging.getLogger(__name__)


class WebSocketBroadcaster:
    """Broadcasts series updates to WebSocket clients.

    Attributes:
        _manager: WebSocket connection manager for broadcasting
        _event_bus: Event bus for subscribing to domain events

    Example:
        >>> broadcaster = WebSocketBroadcaster(connection_manager, event_bus)
        >>> # Broadcaster now forwards every SeriesUpdatedEvent to viewers
    """

    def __init__(
        self,
        connection_manager: ConnectionManager,
        event_bus: EventBus,
    ):
        self._manager = connection_manager
        self._event_bus = event_bus
        self._event_bus.subscribe(SeriesUpdatedEvent, self._on_series_updated)
        logger.info("WebSocketBroadcaster initialized")

    async def _on_series_updated(self, event: SeriesUpdatedEvent) -> None:
        """Send the new series to every viewer except the origin.

        Only queues the message; the handler never waits on a viewer, so
        queued order matches publication order.

        Message Format:
            {
                "type": "data-update",
                "samples": [{"id": int, "weight": float, "hardness": float}, ...]
            }
        """
        logger.debug(
            f"Broadcasting {len(event.series)} samples "
            f"({event.source.value}, excluding {event.origin})"
        )
        await self._manager.broadcast_to_all(
            data_update_message(event.series),
            exclude=event.origin,
            revision=event.revision,
        )

    def close(self) -> None:
        """Stop forwarding events."""
        self._event_bus.unsubscribe(SeriesUpdatedEvent, self._on_series_updated)


__all__ = ["WebSocketBroadcaster"]
