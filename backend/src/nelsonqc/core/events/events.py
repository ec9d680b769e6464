"""Event definitions for the nelsonqc event bus.

Events are immutable dataclasses carrying a UTC timestamp for ordering.
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from nelsonqc.core.series import Series


class Event(ABC):
    """Base class for all events.

    Attributes:
        timestamp: UTC timestamp when event was created
    """

    timestamp: datetime


class UpdateSource(str, Enum):
    """Where an authoritative series replacement came from."""

    EDITOR = "editor"
    EXTERNAL = "external"


@dataclass(frozen=True)
class SeriesUpdatedEvent(Event):
    """Emitted after the authoritative series has been replaced.

    Attributes:
        series: The new authoritative series
        origin: Subscriber that submitted the update, excluded from the
            fan-out. None means every subscriber receives it.
        source: Editor submission or out-of-band store change
        revision: Coordinator revision counter, increasing with every update
        timestamp: When the update was applied
    """

    series: Series
    origin: str | None
    source: UpdateSource
    revision: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
