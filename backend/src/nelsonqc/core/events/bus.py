"""Asynchronous event bus for decoupled component communication.

The sync coordinator publishes series replacements here; delivery
components (the WebSocket broadcaster, tests, future consumers) subscribe
without the coordinator knowing about them.

Key features:
- Subscription keyed by event class
- Multiple handlers per event type
- Async handlers that don't block publishers
- Error isolation - one handler failure doesn't affect others
- Optional waiting for all handlers to complete
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Type

import structlog

from nelsonqc.core.events.events import Event

# Type alias for event handler functions
EventHandler = Callable[[Event], Awaitable[None]]

logger = structlog.get_logger(__name__)


class EventBus:
    """Asynchronous event bus for internal communication.

    Example:
        >>> bus = EventBus()
        >>> bus.subscribe(SeriesUpdatedEvent, broadcaster.on_series_updated)
        >>> await bus.publish(SeriesUpdatedEvent(
        ...     series=series, origin="conn-1", source=UpdateSource.EDITOR
        ... ))

    Thread Safety:
        This implementation is designed for use within a single async event loop.
    """

    def __init__(self) -> None:
        self._handlers: dict[Type[Event], list[EventHandler]] = {}
        self._running_tasks: set[asyncio.Task] = set()

    def subscribe(self, event_type: Type[Event], handler: EventHandler) -> None:
        """Subscribe a handler to an event type.

        Args:
            event_type: The event class to subscribe to
            handler: Async function to handle the event
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(
            "handler_subscribed",
            handler=getattr(handler, "__name__", repr(handler)),
            event_type=event_type.__name__,
        )

    def unsubscribe(self, event_type: Type[Event], handler: EventHandler) -> None:
        """Unsubscribe a handler. No-op if it was not subscribed."""
        if event_type in self._handlers:
            self._handlers[event_type] = [
                h for h in self._handlers[event_type] if h != handler
            ]

    async def publish(self, event: Event) -> None:
        """Publish an event to all subscribed handlers.

        Each handler runs in its own task and the publisher does not wait
        for it. Tasks start in publication order, so a handler that hands
        the event off without awaiting (e.g. onto a queue) sees events in
        the order they were published. Handler errors are logged.

        Args:
            event: The event to publish
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type, [])

        if handlers:
            logger.debug(
                "publishing_event",
                event_type=event_type.__name__,
                handler_count=len(handlers),
            )

        for handler in handlers:
            task = asyncio.create_task(self._safe_invoke(handler, event))
            self._running_tasks.add(task)
            task.add_done_callback(self._running_tasks.discard)

    async def publish_and_wait(self, event: Event) -> list[Exception]:
        """Publish an event and wait for all handlers to complete.

        Args:
            event: The event to publish

        Returns:
            List of exceptions from failed handlers (empty if all succeeded)
        """
        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))
        if not handlers:
            return []

        results = await asyncio.gather(
            *(self._safe_invoke(handler, event) for handler in handlers)
        )
        errors = [r for r in results if r is not None]

        if errors:
            logger.warning(
                "handlers_failed",
                failed=len(errors),
                total=len(handlers),
                event_type=event_type.__name__,
            )

        return errors

    async def _safe_invoke(
        self, handler: EventHandler, event: Event
    ) -> Exception | None:
        """Invoke handler and return its exception, if any."""
        try:
            await handler(event)
            return None
        except Exception as e:
            logger.error(
                "event_handler_failed",
                handler=getattr(handler, "__name__", repr(handler)),
                event_type=type(event).__name__,
                error=str(e),
                exc_info=True,
            )
            return e

    async def shutdown(self) -> None:
        """Wait for all pending handler tasks to complete."""
        if self._running_tasks:
            logger.info("waiting_for_handlers", count=len(self._running_tasks))
            await asyncio.gather(*self._running_tasks, return_exceptions=True)

    def get_handler_count(self, event_type: Type[Event]) -> int:
        """Get the number of handlers subscribed to an event type."""
        return len(self._handlers.get(event_type, []))

    def clear_handlers(self, event_type: Type[Event] | None = None) -> None:
        """Clear handlers for an event type, or for all event types."""
        if event_type is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event_type, None)
