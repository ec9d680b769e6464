"""SPC engine: annotate a series with Nelson Rule violations.

Composes the statistics computer and the rule library into the one
structure a presentation layer renders from. The projection is rebuilt
from the raw series on every call and is never stored.
"""

from dataclasses import dataclass

from nelsonqc.core.engine.nelson_rules import NelsonRuleLibrary, ViolationSet
from nelsonqc.core.engine.statistics import ChannelStatistics, compute_statistics
from nelsonqc.core.series import Channel, Sample, Series


@dataclass(frozen=True)
class AnnotatedPoint:
    """A sample seen through one channel, with the rules it violates.

    Attributes:
        index: Position in the series
        sample: The underlying sample
        value: The sample's reading for the annotated channel
        violations: Matching rule ids, ascending
        descriptions: Rule descriptions in the same order as violations
    """

    index: int
    sample: Sample
    value: float
    violations: ViolationSet
    descriptions: tuple[str, ...]

    @property
    def has_violation(self) -> bool:
        return bool(self.violations)


@dataclass(frozen=True)
class AnnotatedSeries:
    """A series annotated for one channel."""

    channel: Channel
    statistics: ChannelStatistics
    points: tuple[AnnotatedPoint, ...]

    @property
    def violation_count(self) -> int:
        """Number of points with at least one violation."""
        return sum(1 for point in self.points if point.has_violation)


_default_library = NelsonRuleLibrary()


def annotate_series(
    series: Series,
    channel: Channel,
    library: NelsonRuleLibrary | None = None,
) -> AnnotatedSeries:
    """Evaluate all Nelson Rules over one channel of a series.

    Args:
        series: Snapshot to evaluate
        channel: Channel to evaluate
        library: Rule library (defaults to the standard 8 rules)

    Returns:
        AnnotatedSeries with one point per sample, in series order
    """
    library = library or _default_library
    values = series.values(channel)
    stats = compute_statistics(values)
    violation_sets = library.evaluate(values, stats.mean, stats.std_dev)

    points = tuple(
        AnnotatedPoint(
            index=index,
            sample=sample,
            value=value,
            violations=violations,
            descriptions=tuple(library.describe(violations)),
        )
        for index, (sample, value, violations) in enumerate(
            zip(series, values, violation_sets)
        )
    )
    return AnnotatedSeries(channel=channel, statistics=stats, points=points)


__all__ = ["AnnotatedPoint", "AnnotatedSeries", "annotate_series"]
