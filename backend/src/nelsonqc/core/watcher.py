"""Polling watcher for out-of-band edits to the backing data file.

The watcher samples the file's (mtime, size) signature at a fixed
interval. A change fires the handler only after the signature has held
steady for the stability threshold, so a file still being written by a
spreadsheet program is not read half-way. The state present when the
watcher starts never fires.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

ChangeHandler = Callable[[], Awaitable[object]]
Signature = tuple[int, int] | None


class FileWatcher:
    """Fires an async handler when a file settles after a change.

    Attributes:
        path: Watched file (may not exist yet)
        _handler: Called with no arguments on each settled change
        _poll_interval: Seconds between checks
        _stability_threshold: Seconds a new signature must hold before firing
        _clock: Monotonic time source
    """

    def __init__(
        self,
        path: Path | str,
        handler: ChangeHandler,
        poll_interval: float = 0.1,
        stability_threshold: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = Path(path)
        self._handler = handler
        self._poll_interval = poll_interval
        self._stability_threshold = stability_threshold
        self._clock = clock
        self._task: asyncio.Task | None = None

        self._fired = self._read_signature()
        self._candidate = self._fired
        self._candidate_since = self._clock()

    def _read_signature(self) -> Signature:
        try:
            stat = self.path.stat()
        except OSError:
            return None
        return (stat.st_mtime_ns, stat.st_size)

    async def check(self) -> bool:
        """Run one poll step.

        Returns:
            True if the handler was fired
        """
        signature = self._read_signature()
        now = self._clock()

        if signature != self._candidate:
            self._candidate = signature
            self._candidate_since = now
            return False
        if signature == self._fired:
            return False
        if now - self._candidate_since < self._stability_threshold:
            return False

        self._fired = signature
        if signature is None:
            # Deleted files are not an update; the current series stays.
            logger.info("watched_file_removed", path=str(self.path))
            return False

        logger.info("watched_file_changed", path=str(self.path))
        try:
            await self._handler()
        except Exception as e:
            logger.error(
                "file_change_handler_failed",
                path=str(self.path),
                error=str(e),
                exc_info=True,
            )
        return True

    async def start(self) -> None:
        """Start polling in a background task."""
        if self._task is None:
            self._task = asyncio.create_task(self._poll_loop())
            logger.info("file_watch_started", path=str(self.path))

    async def stop(self) -> None:
        """Stop polling."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            await self.check()


__all__ = ["FileWatcher"]
