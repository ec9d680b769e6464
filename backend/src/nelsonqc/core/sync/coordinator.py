"""Owner of the single authoritative QC series.

The SyncCoordinator is the only component that replaces the shared series.
Every source of change (an editor submitting a new series, the backing
file being edited out-of-band) goes through it, one update at a time, in
arrival order. Conflicts resolve as last-write-wins: each update replaces
the previous series wholesale, with no merge.

After each replacement the coordinator asks the writer to persist the new
series (best-effort, in the background) and then publishes a
SeriesUpdatedEvent for delivery to viewers without waiting on them. Each
replacement bumps a revision counter so delivery can discard stale
copies. Readers get the current series by reference; since Series is
immutable, a reader always sees one complete snapshot.
"""

import asyncio
from enum import Enum

import structlog

from nelsonqc.core.engine.nelson_rules import NelsonRuleLibrary
from nelsonqc.core.engine.spc_engine import AnnotatedSeries, annotate_series
from nelsonqc.core.events import EventBus, SeriesUpdatedEvent, UpdateSource
from nelsonqc.core.series import FALLBACK_SERIES, Channel, Series
from nelsonqc.core.store import SeriesNotFoundError, SeriesStore
from nelsonqc.core.sync.writer import SeriesWriter

logger = structlog.get_logger(__name__)


class CoordinatorState(Enum):
    """Lifecycle of the coordinator."""
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class CoordinatorNotReadyError(RuntimeError):
    """Raised when the series is used before initialize() has run."""


class SyncCoordinator:
    """Maintains the authoritative series and reconciles update sources.

    Attributes:
        _store: Persistence collaborator
        _event_bus: Bus carrying SeriesUpdatedEvent to delivery components
        _fallback: Series served when nothing can be loaded
        _writer: Background persistence writer
        _current: Authoritative series (None until initialized)
        _revision: Incremented on every replacement
        _update_lock: Serializes update application

    Example:
        >>> coordinator = SyncCoordinator(ExcelSeriesStore("qc_data.xlsx"), bus)
        >>> series = await coordinator.initialize()
        >>> await coordinator.apply_update(new_series, origin="conn-1")
    """

    def __init__(
        self,
        store: SeriesStore,
        event_bus: EventBus,
        fallback: Series = FALLBACK_SERIES,
        rule_library: NelsonRuleLibrary | None = None,
    ):
        self._store = store
        self._event_bus = event_bus
        self._fallback = fallback
        self._rule_library = rule_library or NelsonRuleLibrary()
        self._writer = SeriesWriter(store)
        self._current: Series | None = None
        self._revision = 0
        self._state = CoordinatorState.UNINITIALIZED
        self._update_lock = asyncio.Lock()

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def writer(self) -> SeriesWriter:
        return self._writer

    @property
    def revision(self) -> int:
        """Revision of the current series; 0 until the first update."""
        return self._revision

    async def initialize(self) -> Series:
        """Load the startup series and become ready.

        Never raises: a missing or unreadable store degrades to the
        fallback series. Calling it again once ready returns the current
        series without reloading.

        Returns:
            The authoritative series
        """
        if self._state is CoordinatorState.READY:
            return self._current

        try:
            series = await asyncio.to_thread(self._store.load)
            source = "store"
        except SeriesNotFoundError as e:
            logger.info("no_persisted_series", reason=str(e))
            series, source = self._fallback, "fallback"
        except Exception as e:
            logger.warning("series_load_failed", error=str(e))
            series, source = self._fallback, "fallback"

        self._current = series
        self._state = CoordinatorState.READY
        await self._writer.start()

        logger.info("coordinator_ready", samples=len(series), source=source)
        return series

    async def apply_update(self, series: Series, origin: str | None) -> None:
        """Replace the authoritative series with an editor's submission.

        The series is queued for persistence (a failed save is logged, not
        raised, and the in-memory series stays updated) and then broadcast
        to every subscriber except origin. Neither step is waited on.

        Args:
            series: The complete new series
            origin: Identifier of the submitting subscriber, or None
        """
        self._require_ready()
        async with self._update_lock:
            await self._replace(series, origin, UpdateSource.EDITOR, persist=True)

    async def on_external_change(self, series: Series) -> None:
        """Adopt a series that changed in the backing store out-of-band.

        Broadcast to every subscriber. The series is not written back, since
        it was just read from the store.
        """
        self._require_ready()
        async with self._update_lock:
            await self._replace(series, None, UpdateSource.EXTERNAL, persist=False)

    async def reload_from_store(self) -> Series | None:
        """Re-read the store and adopt the result if it differs.

        Used as the file-watch trigger. Runs under the update lock so no
        editor update can land between the read and the adoption. While the
        writer still has a save pending or in flight, the file is older than
        the in-memory series and the reload is skipped; the save itself
        changes the file and triggers the next reload. A failed read is
        logged and the current series kept. Reading back our own write finds
        no difference and broadcasts nothing.

        Returns:
            The adopted series, or None if nothing changed
        """
        self._require_ready()
        async with self._update_lock:
            if self._writer.busy:
                logger.debug("series_reload_deferred")
                return None

            try:
                series = await asyncio.to_thread(self._store.load)
            except Exception as e:
                logger.warning("series_reload_failed", error=str(e))
                return None

            if series == self._current:
                logger.debug("series_reload_unchanged", samples=len(series))
                return None

            logger.info("external_change_detected", samples=len(series))
            await self._replace(series, None, UpdateSource.EXTERNAL, persist=False)
            return series

    def get_current_series(self) -> Series:
        """Return the current authoritative snapshot."""
        self._require_ready()
        return self._current

    def get_annotated(self, channel: Channel) -> AnnotatedSeries:
        """Evaluate Nelson Rules over one channel of the current series.

        Recomputed from scratch on every call.
        """
        return annotate_series(
            self.get_current_series(), channel, self._rule_library
        )

    async def flush(self) -> None:
        """Wait for queued persistence to finish."""
        await self._writer.flush()

    async def shutdown(self) -> None:
        """Flush pending writes and stop background work."""
        await self._writer.stop()
        logger.info("coordinator_stopped")

    async def _replace(
        self,
        series: Series,
        origin: str | None,
        source: UpdateSource,
        persist: bool,
    ) -> None:
        # Caller holds _update_lock. publish() only schedules delivery.
        self._current = series
        self._revision += 1
        if persist:
            self._writer.submit(series)
        logger.info(
            "update_applied",
            source=source.value,
            origin=origin,
            samples=len(series),
            revision=self._revision,
        )
        await self._event_bus.publish(
            SeriesUpdatedEvent(
                series=series,
                origin=origin,
                source=source,
                revision=self._revision,
            )
        )

    def _require_ready(self) -> None:
        if self._state is not CoordinatorState.READY:
            raise CoordinatorNotReadyError(
                "SyncCoordinator.initialize() has not been called"
            )


__all__ = ["CoordinatorNotReadyError", "CoordinatorState", "SyncCoordinator"]
