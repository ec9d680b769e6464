"""Shared-series synchronization: coordinator and persistence writer."""

from .coordinator import CoordinatorNotReadyError, CoordinatorState, SyncCoordinator
from .writer import SeriesWriter

__all__ = [
    "CoordinatorNotReadyError",
    "CoordinatorState",
    "SyncCoordinator",
    "SeriesWriter",
]
