"""QC measurement series data model.

A Series is the ordered collection of samples shared by every viewer. The
order of samples is the X-axis of every chart and the sequence over which
Nelson Rules are evaluated. Sample ids are cosmetic: they are neither
required to be unique nor sorted, and nothing here enforces it.

Both Sample and Series are frozen. Any change produces a new Series, so a
reader holding a reference always sees a complete snapshot.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Channel(str, Enum):
    """Measured quantity, evaluated independently by the SPC engine."""

    WEIGHT = "weight"
    HARDNESS = "hardness"


@dataclass(frozen=True)
class Sample:
    """One QC sample with a reading per channel.

    Attributes:
        id: Display identifier (not guaranteed unique)
        weight: Weight reading
        hardness: Hardness reading
    """

    id: int
    weight: float
    hardness: float

    def value(self, channel: Channel) -> float:
        """Return the reading for a channel."""
        return self.weight if channel is Channel.WEIGHT else self.hardness

    def to_record(self) -> dict[str, Any]:
        return {"id": self.id, "weight": self.weight, "hardness": self.hardness}


@dataclass(frozen=True)
class Series:
    """Ordered, immutable sequence of samples."""

    samples: tuple[Sample, ...] = ()

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self):
        return iter(self.samples)

    def __getitem__(self, index: int) -> Sample:
        return self.samples[index]

    def values(self, channel: Channel) -> list[float]:
        """Extract a channel's readings in series order."""
        return [sample.value(channel) for sample in self.samples]

    def to_records(self) -> list[dict[str, Any]]:
        return [sample.to_record() for sample in self.samples]

    @classmethod
    def of(cls, samples: Iterable[Sample]) -> "Series":
        return cls(samples=tuple(samples))

    @classmethod
    def from_records(cls, rows: Iterable[Mapping[str, Any]]) -> "Series":
        """Build a series from loosely-typed table rows.

        Column names are matched case-insensitively, so ``Weight`` and
        ``weight`` are the same column. Missing or unparseable numeric cells
        become 0.0 and a missing (or zero) id becomes the row's 1-based
        position in the table.

        Args:
            rows: Mappings of column name to cell value, in table order

        Returns:
            Series with one sample per row
        """
        samples = []
        for position, row in enumerate(rows, start=1):
            normalized = {
                str(key).strip().lower(): value
                for key, value in row.items()
                if key is not None
            }
            samples.append(Sample(
                id=_parse_id(normalized.get("id"), position),
                weight=_parse_float(normalized.get("weight")),
                hardness=_parse_float(normalized.get("hardness")),
            ))
        return cls.of(samples)


def _parse_float(raw: Any) -> float:
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return 0.0
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


def _parse_id(raw: Any, position: int) -> int:
    if raw is None or isinstance(raw, bool):
        return position
    try:
        parsed = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return position
    return parsed or position


# Served when no persisted series can be loaded. Fixed across cold starts.
FALLBACK_SERIES = Series.of([
    Sample(id=1, weight=27.2, hardness=10.1),
    Sample(id=2, weight=26.8, hardness=9.8),
    Sample(id=3, weight=27.5, hardness=10.3),
    Sample(id=4, weight=26.5, hardness=9.5),
    Sample(id=5, weight=27.8, hardness=10.8),
])


__all__ = ["Channel", "Sample", "Series", "FALLBACK_SERIES"]
