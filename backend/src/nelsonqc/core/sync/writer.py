"""Serialized, non-blocking persistence of the authoritative series.

Writes to the backing store run one at a time in a background task. While
a write is in flight, newer submissions replace any pending one, so the
store always converges on the latest series without the caller waiting on
disk. A failed write is logged; the next submission retries naturally.
"""

import asyncio

import structlog

from nelsonqc.core.series import Series
from nelsonqc.core.store import SeriesStore

logger = structlog.get_logger(__name__)


class SeriesWriter:
    """Background writer that coalesces saves to the newest series.

    Attributes:
        _store: Persistence collaborator
        _pending: Newest series not yet handed to the store
        _wakeup: Set when a series is submitted
        _idle: Set when nothing is pending or being written
    """

    def __init__(self, store: SeriesStore):
        self._store = store
        self._pending: Series | None = None
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._task: asyncio.Task | None = None
        self.failed_writes = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def busy(self) -> bool:
        """True while a submitted series is pending or being written."""
        return not self._idle.is_set()

    async def start(self) -> None:
        """Start the writer task. Calling it twice is harmless."""
        if not self.running:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Flush pending writes and stop the writer task."""
        if self._task is None:
            return
        await self.flush()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def submit(self, series: Series) -> None:
        """Queue a series for persistence without waiting for the write."""
        self._pending = series
        self._idle.clear()
        self._wakeup.set()

    async def flush(self) -> None:
        """Wait until every submitted series has been handled."""
        if not self.running:
            return
        await self._idle.wait()

    async def _run(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            while self._pending is not None:
                series, self._pending = self._pending, None
                await self._write(series)
            self._idle.set()

    async def _write(self, series: Series) -> None:
        try:
            await asyncio.to_thread(self._store.save, series)
        except Exception as e:
            self.failed_writes += 1
            logger.error(
                "series_save_failed",
                samples=len(series),
                error=str(e),
            )


__all__ = ["SeriesWriter"]
