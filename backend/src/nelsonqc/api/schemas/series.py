"""Pydantic schemas for series data on the wire.

Incoming samples must be sample-shaped (id, weight, hardness); their
numeric values are not otherwise validated. Outgoing floats that are not
finite (NaN, inf) are sent as null, since JSON has no spelling for them.
"""

import math

from pydantic import BaseModel, ConfigDict

from nelsonqc.core.engine.spc_engine import AnnotatedSeries
from nelsonqc.core.engine.statistics import ChannelStatistics
from nelsonqc.core.series import Sample, Series


def finite_or_none(value: float) -> float | None:
    """Map non-finite floats to None for JSON encoding."""
    return value if math.isfinite(value) else None


class SampleIn(BaseModel):
    """Schema for a sample submitted by an editor.

    Attributes:
        id: Display identifier (duplicates and gaps are allowed)
        weight: Weight reading
        hardness: Hardness reading
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    weight: float
    hardness: float

    def to_sample(self) -> Sample:
        return Sample(id=self.id, weight=self.weight, hardness=self.hardness)


def to_series(samples: list[SampleIn]) -> Series:
    """Convert validated editor samples to a Series, preserving order."""
    return Series.of(sample.to_sample() for sample in samples)


class SampleOut(BaseModel):
    """Schema for a sample sent to viewers."""

    id: int
    weight: float | None
    hardness: float | None

    @classmethod
    def from_sample(cls, sample: Sample) -> "SampleOut":
        return cls(
            id=sample.id,
            weight=finite_or_none(sample.weight),
            hardness=finite_or_none(sample.hardness),
        )


def samples_payload(series: Series) -> list[dict]:
    """JSON-ready list of samples for REST and WebSocket messages."""
    return [SampleOut.from_sample(sample).model_dump() for sample in series]


class DataUpdateResponse(BaseModel):
    """Response from a REST series submission."""

    success: bool
    data: list[SampleOut]


class StatisticsResponse(BaseModel):
    """Channel statistics; null where undefined (e.g. empty series)."""

    mean: float | None
    std_dev: float | None
    relative_std_dev_percent: float | None

    @classmethod
    def from_statistics(cls, stats: ChannelStatistics) -> "StatisticsResponse":
        return cls(
            mean=finite_or_none(stats.mean),
            std_dev=finite_or_none(stats.std_dev),
            relative_std_dev_percent=finite_or_none(stats.relative_std_dev_percent),
        )


class AnnotatedPointResponse(BaseModel):
    """One point of an annotated channel.

    Attributes:
        index: Position in the series
        id: Sample display id
        value: Channel reading
        violations: Matching Nelson rule ids, ascending
        descriptions: Human-readable rule descriptions
    """

    index: int
    id: int
    value: float | None
    violations: list[int]
    descriptions: list[str]


class AnnotatedSeriesResponse(BaseModel):
    """A channel of the current series annotated with rule violations."""

    channel: str
    statistics: StatisticsResponse
    violation_count: int
    points: list[AnnotatedPointResponse]

    @classmethod
    def from_annotated(cls, annotated: AnnotatedSeries) -> "AnnotatedSeriesResponse":
        return cls(
            channel=annotated.channel.value,
            statistics=StatisticsResponse.from_statistics(annotated.statistics),
            violation_count=annotated.violation_count,
            points=[
                AnnotatedPointResponse(
                    index=point.index,
                    id=point.sample.id,
                    value=finite_or_none(point.value),
                    violations=list(point.violations),
                    descriptions=list(point.descriptions),
                )
                for point in annotated.points
            ],
        )


class RuleResponse(BaseModel):
    """Description of one Nelson rule."""

    rule_id: int
    rule_name: str
    description: str
    window: int
    severity: str


class HealthResponse(BaseModel):
    """Health check payload."""

    status: str
    samples: int
    data_file_exists: bool
