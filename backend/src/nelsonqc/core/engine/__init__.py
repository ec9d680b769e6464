"""SPC Engine - Statistical Process Control calculations."""

from .nelson_rules import (
    NelsonRule,
    NelsonRuleLibrary,
    Rule1Outlier,
    Rule2Shift,
    Rule3Trend,
    Rule4Alternator,
    Rule5ZoneA,
    Rule6ZoneB,
    Rule7Stratification,
    Rule8Mixture,
    Severity,
    ViolationSet,
)
from .spc_engine import AnnotatedPoint, AnnotatedSeries, annotate_series
from .statistics import ChannelStatistics, EMPTY_STATISTICS, compute_statistics

__all__ = [
    # SPC Engine
    "AnnotatedPoint",
    "AnnotatedSeries",
    "annotate_series",
    # Statistics
    "ChannelStatistics",
    "EMPTY_STATISTICS",
    "compute_statistics",
    # Nelson Rules
    "NelsonRule",
    "NelsonRuleLibrary",
    "Rule1Outlier",
    "Rule2Shift",
    "Rule3Trend",
    "Rule4Alternator",
    "Rule5ZoneA",
    "Rule6ZoneB",
    "Rule7Stratification",
    "Rule8Mixture",
    "Severity",
    "ViolationSet",
]
