"""Unit tests for the polling file watcher.

Polls are driven by calling ``check()`` directly with a fake clock, so no
test depends on real timing except the background-loop smoke test.
"""

import asyncio
import os
from unittest.mock import AsyncMock

import pytest

from nelsonqc.core.watcher import FileWatcher


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _touch(path, content: str, mtime_ns: int) -> None:
    path.write_text(content)
    os.utime(path, ns=(mtime_ns, mtime_ns))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "qc_data.csv"
    _touch(path, "id,weight,hardness\n", 1_000_000_000)
    return path


class TestFileWatcher:
    @pytest.mark.asyncio
    async def test_initial_state_never_fires(self, data_file, clock):
        handler = AsyncMock()
        watcher = FileWatcher(data_file, handler, stability_threshold=0.5, clock=clock)

        for _ in range(3):
            clock.advance(1.0)
            assert await watcher.check() is False
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fires_once_after_stable(self, data_file, clock):
        handler = AsyncMock()
        watcher = FileWatcher(data_file, handler, stability_threshold=0.5, clock=clock)

        _touch(data_file, "id,weight,hardness\n1,2,3\n", 2_000_000_000)
        assert await watcher.check() is False  # change noticed
        clock.advance(0.2)
        assert await watcher.check() is False  # not yet stable
        clock.advance(0.4)
        assert await watcher.check() is True
        clock.advance(1.0)
        assert await watcher.check() is False

        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ongoing_writes_delay_firing(self, data_file, clock):
        handler = AsyncMock()
        watcher = FileWatcher(data_file, handler, stability_threshold=0.5, clock=clock)

        for step in range(5):
            _touch(data_file, "x" * (step + 1), 2_000_000_000 + step)
            await watcher.check()
            clock.advance(0.3)
        handler.assert_not_awaited()

        clock.advance(0.3)
        assert await watcher.check() is True
        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_file_created_later(self, tmp_path, clock):
        path = tmp_path / "later.xlsx"
        handler = AsyncMock()
        watcher = FileWatcher(path, handler, stability_threshold=0.5, clock=clock)

        assert await watcher.check() is False
        path.write_bytes(b"data")
        await watcher.check()
        clock.advance(0.6)
        assert await watcher.check() is True

    @pytest.mark.asyncio
    async def test_removed_file_does_not_fire(self, data_file, clock):
        handler = AsyncMock()
        watcher = FileWatcher(data_file, handler, stability_threshold=0.5, clock=clock)

        data_file.unlink()
        await watcher.check()
        clock.advance(1.0)
        assert await watcher.check() is False
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_watching(self, data_file, clock):
        handler = AsyncMock(side_effect=RuntimeError("bad read"))
        watcher = FileWatcher(data_file, handler, stability_threshold=0.5, clock=clock)

        _touch(data_file, "a", 3_000_000_000)
        await watcher.check()
        clock.advance(1.0)
        assert await watcher.check() is True

        _touch(data_file, "ab", 4_000_000_000)
        await watcher.check()
        clock.advance(1.0)
        assert await watcher.check() is True
        assert handler.await_count == 2

    @pytest.mark.asyncio
    async def test_background_polling(self, data_file):
        fired = asyncio.Event()

        async def handler():
            fired.set()

        watcher = FileWatcher(
            data_file, handler, poll_interval=0.01, stability_threshold=0.02
        )
        await watcher.start()
        _touch(data_file, "changed", 5_000_000_000)

        await asyncio.wait_for(fired.wait(), timeout=2.0)
        await watcher.stop()
