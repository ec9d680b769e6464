"""Persistence collaborators for the shared series.

A store knows how to ``load()`` a Series and ``save()`` one. Stores are
synchronous and may block on file I/O; the sync layer runs them off the
event loop. Failures are reported as StoreError so callers can degrade
instead of crashing.

The persisted shape is a table with the columns ``id, weight, hardness``.
Headers are matched case-insensitively and cells are parsed leniently
(see ``Series.from_records``).
"""

import csv
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Protocol

import structlog
from openpyxl import Workbook, load_workbook

from nelsonqc.core.series import Series

logger = structlog.get_logger(__name__)

COLUMNS = ("id", "weight", "hardness")
SHEET_TITLE = "QC Data"


class StoreError(Exception):
    """Raised when a series cannot be loaded or saved."""


class SeriesNotFoundError(StoreError):
    """Raised when no persisted series exists yet."""


class SeriesStore(Protocol):
    """Protocol for series persistence."""

    def load(self) -> Series:
        """Read the persisted series.

        Raises:
            StoreError: If the backing store is missing or unreadable
        """
        ...

    def save(self, series: Series) -> None:
        """Replace the persisted series.

        Raises:
            StoreError: If the write fails
        """
        ...


class InMemorySeriesStore:
    """Keeps the series in process memory. Used by tests and embedders."""

    def __init__(self, series: Series | None = None):
        self._series = series
        self.save_count = 0

    def load(self) -> Series:
        if self._series is None:
            raise SeriesNotFoundError("No series has been saved")
        return self._series

    def save(self, series: Series) -> None:
        self._series = series
        self.save_count += 1


class FileSeriesStore:
    """Base class for stores backed by a single tabular file.

    Subclasses implement ``_read_rows`` and ``_write`` for one format.
    Writes go to a temporary file in the same directory and are moved over
    the target, so a concurrent reader never sees a half-written table.
    """

    suffix = ""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Series:
        if not self.path.exists():
            raise SeriesNotFoundError(f"Data file not found: {self.path}")
        try:
            series = Series.from_records(self._read_rows())
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to read {self.path}: {e}") from e

        logger.info("series_loaded", path=str(self.path), samples=len(series))
        return series

    def save(self, series: Series) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.stem}-", suffix=self.suffix, dir=directory
            )
            os.close(fd)
            try:
                self._write(Path(tmp_name), series)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except Exception as e:
            raise StoreError(f"Failed to write {self.path}: {e}") from e

        logger.info("series_saved", path=str(self.path), samples=len(series))

    def _read_rows(self) -> Iterator[dict[str, Any]]:
        raise NotImplementedError

    def _write(self, target: Path, series: Series) -> None:
        raise NotImplementedError


class ExcelSeriesStore(FileSeriesStore):
    """Series stored in the first worksheet of an .xlsx workbook."""

    suffix = ".xlsx"

    def _read_rows(self) -> Iterator[dict[str, Any]]:
        workbook = load_workbook(self.path, read_only=True, data_only=True)
        try:
            sheet = workbook.worksheets[0]
            rows = sheet.iter_rows(values_only=True)
            header = next(rows, None)
            if header is None:
                return iter(())
            keys = [str(cell) if cell is not None else None for cell in header]
            records = [
                dict(zip(keys, row))
                for row in rows
                if any(cell is not None and cell != "" for cell in row)
            ]
        finally:
            workbook.close()
        return iter(records)

    def _write(self, target: Path, series: Series) -> None:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = SHEET_TITLE
        sheet.append(list(COLUMNS))
        for sample in series:
            sheet.append([sample.id, sample.weight, sample.hardness])
        workbook.save(target)


class CsvSeriesStore(FileSeriesStore):
    """Series stored as a CSV table with a header row."""

    suffix = ".csv"

    def _read_rows(self) -> Iterator[dict[str, Any]]:
        with self.path.open(newline="", encoding="utf-8-sig") as f:
            records = [
                row for row in csv.DictReader(f)
                if any(value not in (None, "") for value in row.values())
            ]
        return iter(records)

    def _write(self, target: Path, series: Series) -> None:
        with target.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=COLUMNS)
            writer.writeheader()
            writer.writerows(series.to_records())


def open_store(path: Path | str) -> FileSeriesStore:
    """Pick a file store for a data file by its suffix (.csv or Excel)."""
    path = Path(path)
    if path.suffix.lower() == ".csv":
        return CsvSeriesStore(path)
    return ExcelSeriesStore(path)


__all__ = [
    "StoreError",
    "SeriesNotFoundError",
    "SeriesStore",
    "InMemorySeriesStore",
    "FileSeriesStore",
    "ExcelSeriesStore",
    "CsvSeriesStore",
    "open_store",
]
