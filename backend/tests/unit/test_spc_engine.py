"""Tests for series annotation."""

import math

from nelsonqc.core.engine.nelson_rules import NelsonRuleLibrary
from nelsonqc.core.engine.spc_engine import annotate_series
from nelsonqc.core.series import FALLBACK_SERIES, Channel, Sample, Series


def _outlier_series() -> Series:
    """Fourteen quiet points followed by a spike in weight."""
    weights = [10.0] * 14 + [100.0]
    return Series.of(
        Sample(id=i + 1, weight=w, hardness=5.0) for i, w in enumerate(weights)
    )


class TestAnnotateSeries:
    def test_fallback_series_is_in_control(self):
        annotated = annotate_series(FALLBACK_SERIES, Channel.WEIGHT)
        assert annotated.channel is Channel.WEIGHT
        assert len(annotated.points) == 5
        assert annotated.violation_count == 0
        assert [p.value for p in annotated.points] == [27.2, 26.8, 27.5, 26.5, 27.8]

    def test_points_follow_series_order(self):
        annotated = annotate_series(FALLBACK_SERIES, Channel.HARDNESS)
        assert [p.index for p in annotated.points] == [0, 1, 2, 3, 4]
        assert [p.sample.id for p in annotated.points] == [1, 2, 3, 4, 5]
        assert annotated.points[0].value == 10.1

    def test_violations_and_descriptions(self):
        annotated = annotate_series(_outlier_series(), Channel.WEIGHT)
        assert annotated.statistics.mean == 16.0

        spike = annotated.points[14]
        assert spike.violations == (1,)
        assert spike.descriptions == ("1 point beyond 3σ from mean",)
        assert spike.has_violation

        # Nine quiet points below the mean trigger the shift rule
        assert annotated.points[8].violations == (2,)
        assert annotated.points[7].violations == ()
        assert annotated.violation_count == 7

    def test_channels_independent(self):
        annotated = annotate_series(_outlier_series(), Channel.HARDNESS)
        assert annotated.violation_count == 0
        assert annotated.statistics.std_dev == 0.0

    def test_empty_series(self):
        annotated = annotate_series(Series(), Channel.WEIGHT)
        assert annotated.points == ()
        assert math.isnan(annotated.statistics.mean)

    def test_duplicate_ids_tolerated(self):
        series = Series.of([
            Sample(id=1, weight=1.0, hardness=1.0),
            Sample(id=1, weight=2.0, hardness=1.0),
        ])
        annotated = annotate_series(series, Channel.WEIGHT)
        assert [p.sample.id for p in annotated.points] == [1, 1]

    def test_recomputed_each_call(self):
        library = NelsonRuleLibrary()
        first = annotate_series(_outlier_series(), Channel.WEIGHT, library)
        second = annotate_series(_outlier_series(), Channel.WEIGHT, library)
        assert first == second
        assert first is not second
