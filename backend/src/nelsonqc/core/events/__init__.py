"""Event bus and event definitions for nelsonqc.

Usage:
    >>> from nelsonqc.core.events import EventBus, SeriesUpdatedEvent
    >>>
    >>> bus = EventBus()
    >>> async def on_update(event: SeriesUpdatedEvent):
    ...     print(f"{len(event.series)} samples from {event.origin}")
    >>>
    >>> bus.subscribe(SeriesUpdatedEvent, on_update)
"""

from nelsonqc.core.events.bus import EventBus, EventHandler
from nelsonqc.core.events.events import Event, SeriesUpdatedEvent, UpdateSource

__all__ = [
    "EventBus",
    "EventHandler",
    "Event",
    "SeriesUpdatedEvent",
    "UpdateSource",
]
