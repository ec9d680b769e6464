"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from nelsonqc.core.events import EventBus
from nelsonqc.core.series import Sample, Series
from nelsonqc.core.store import InMemorySeriesStore


def make_series(weights: list[float], hardness: float = 10.0) -> Series:
    """Build a series with the given weights and a constant hardness."""
    return Series.of(
        Sample(id=i + 1, weight=w, hardness=hardness)
        for i, w in enumerate(weights)
    )


@pytest.fixture
def series_factory():
    """Factory fixture wrapping make_series."""
    return make_series


@pytest.fixture
def series_a() -> Series:
    return make_series([27.0, 27.1, 27.2])


@pytest.fixture
def series_b() -> Series:
    return make_series([30.0, 30.5])


@pytest.fixture
def memory_store() -> InMemorySeriesStore:
    """Store that already holds a three-sample series."""
    return InMemorySeriesStore(make_series([1.0, 2.0, 3.0]))


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def mock_websocket():
    """Create a mock WebSocket that records sent messages."""
    ws = MagicMock()
    ws.accept = AsyncMock()
    ws.send_json = AsyncMock()
    return ws
