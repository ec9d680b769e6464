"""Nelson Rules implementation for SPC violation detection.

This module provides all 8 Nelson Rules as pluggable rule classes for detecting
non-random patterns in a measurement series. Each rule is implemented as a
standalone class following the NelsonRule protocol.

Every rule looks only at the window of points ending at the index being
checked (no lookahead). Windows are addressed by index arithmetic on the
original sequence; no sub-sequences are built per index. An index earlier
than a rule's minimum window is never flagged by that rule.

Comparisons against mean and sigma follow plain IEEE float semantics: with
a NaN sigma every sigma comparison is false, with a zero sigma they remain
ordinary comparisons.

References:
    - Lloyd S. Nelson, "The Shewhart Control Chart - Tests for Special Causes" (1984)
    - AIAG SPC Manual, 2nd Edition
"""

from collections.abc import Sequence
from enum import Enum
from typing import Protocol

# Rule ids that matched at one index, ascending.
ViolationSet = tuple[int, ...]


class Severity(Enum):
    """Violation severity levels."""
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class NelsonRule(Protocol):
    """Protocol for Nelson Rule implementations.

    Each rule must implement these properties and the check method.
    """

    @property
    def rule_id(self) -> int:
        """Rule number (1-8)."""
        ...

    @property
    def rule_name(self) -> str:
        """Short rule name."""
        ...

    @property
    def description(self) -> str:
        """Description shown next to flagged points."""
        ...

    @property
    def min_samples_required(self) -> int:
        """Window length, inclusive of the current point."""
        ...

    @property
    def severity(self) -> Severity:
        """Severity level for violations of this rule."""
        ...

    def check(
        self, values: Sequence[float], index: int, mean: float, std_dev: float
    ) -> bool:
        """Check the window of values ending at index.

        Args:
            values: Full channel series
            index: Last point of the window
            mean: Center line
            std_dev: Process sigma

        Returns:
            True if the pattern is present, False otherwise
        """
        ...


def _window_start(rule: NelsonRule, index: int) -> int | None:
    """First index of the window ending at index, or None if too short."""
    start = index - rule.min_samples_required + 1
    return start if start >= 0 else None


class Rule1Outlier:
    """Rule 1: One point beyond 3 sigma.

    This is the most severe violation - a point beyond the control limits.
    Indicates a special cause or out-of-control condition.
    """

    rule_id = 1
    rule_name = "Outlier"
    description = "1 point beyond 3σ from mean"
    min_samples_required = 1
    severity = Severity.CRITICAL

    def check(self, values, index, mean, std_dev):
        if _window_start(self, index) is None:
            return False
        return abs(values[index] - mean) > 3 * std_dev


class Rule2Shift:
    """Rule 2: Nine points in a row on the same side of the mean.

    Indicates a shift in the process mean. A point exactly on the mean
    belongs to neither side.
    """

    rule_id = 2
    rule_name = "Shift"
    description = "9 consecutive points on same side of mean"
    min_samples_required = 9
    severity = Severity.WARNING

    def check(self, values, index, mean, std_dev):
        start = _window_start(self, index)
        if start is None:
            return False
        window = range(start, index + 1)
        all_above = all(values[j] > mean for j in window)
        all_below = all(values[j] < mean for j in window)
        return all_above or all_below


class Rule3Trend:
    """Rule 3: Six points in a row, all increasing OR all decreasing.

    Indicates a trend in the process, such as tool wear, temperature drift,
    or gradual degradation.
    """

    rule_id = 3
    rule_name = "Trend"
    description = "6 consecutive points increasing or decreasing"
    min_samples_required = 6
    severity = Severity.WARNING

    def check(self, values, index, mean, std_dev):
        start = _window_start(self, index)
        if start is None:
            return False
        steps = range(start + 1, index + 1)
        increasing = all(values[j] > values[j - 1] for j in steps)
        decreasing = all(values[j] < values[j - 1] for j in steps)
        return increasing or decreasing


class Rule4Alternator:
    """Rule 4: Fourteen points alternating up and down.

    Indicates systematic variation, such as alternating between two machines,
    operators, or measurement systems. Two equal consecutive values break
    the pattern.
    """

    rule_id = 4
    rule_name = "Alternator"
    description = "14 points alternating up and down"
    min_samples_required = 14
    severity = Severity.WARNING

    def check(self, values, index, mean, std_dev):
        start = _window_start(self, index)
        if start is None:
            return False
        for j in range(start + 2, index + 1):
            previous = values[j - 1] - values[j - 2]
            current = values[j] - values[j - 1]
            # Same direction or a tie breaks it; a NaN step does not
            if previous * current >= 0:
                return False
        return True


class Rule5ZoneA:
    """Rule 5: Two out of three consecutive points beyond 2 sigma.

    Indicates the process mean may be shifting or there's increased variation.
    """

    rule_id = 5
    rule_name = "Zone A Warning"
    description = "2 out of 3 points beyond 2σ from mean"
    min_samples_required = 3
    severity = Severity.WARNING

    def check(self, values, index, mean, std_dev):
        start = _window_start(self, index)
        if start is None:
            return False
        beyond = sum(
            1 for j in range(start, index + 1)
            if abs(values[j] - mean) > 2 * std_dev
        )
        return beyond >= 2


class Rule6ZoneB:
    """Rule 6: Four out of five consecutive points beyond 1 sigma.

    Indicates the process mean may be shifting or there's increased variation,
    though less severe than Rule 5.
    """

    rule_id = 6
    rule_name = "Zone B Warning"
    description = "4 out of 5 points beyond 1σ from mean"
    min_samples_required = 5
    severity = Severity.WARNING

    def check(self, values, index, mean, std_dev):
        start = _window_start(self, index)
        if start is None:
            return False
        beyond = sum(
            1 for j in range(start, index + 1)
            if abs(values[j] - mean) > std_dev
        )
        return beyond >= 4


class Rule7Stratification:
    """Rule 7: Fifteen consecutive points within 1 sigma of the mean.

    Indicates stratification - sigma is overstated or data is being
    smoothed/averaged inappropriately.
    """

    rule_id = 7
    rule_name = "Stratification"
    description = "15 consecutive points within 1σ of mean (low variation)"
    min_samples_required = 15
    severity = Severity.WARNING

    def check(self, values, index, mean, std_dev):
        start = _window_start(self, index)
        if start is None:
            return False
        return all(
            abs(values[j] - mean) < std_dev for j in range(start, index + 1)
        )


class Rule8Mixture:
    """Rule 8: Eight consecutive points beyond 1 sigma, either side.

    Indicates mixture - two or more processes or populations mixed together.
    """

    rule_id = 8
    rule_name = "Mixture"
    description = "8 consecutive points beyond 1σ on either side of mean"
    min_samples_required = 8
    severity = Severity.WARNING

    def check(self, values, index, mean, std_dev):
        start = _window_start(self, index)
        if start is None:
            return False
        return all(
            abs(values[j] - mean) > std_dev for j in range(start, index + 1)
        )


class NelsonRuleLibrary:
    """Aggregates and manages all Nelson Rules.

    Provides a central registry for all 8 Nelson Rules and evaluates them
    over whole series. The library holds no state between evaluations.
    """

    def __init__(self):
        """Initialize the library with all 8 Nelson Rules."""
        self._rules: dict[int, NelsonRule] = {}
        self._register_default_rules()

    def _register_default_rules(self) -> None:
        """Register all 8 standard Nelson Rules."""
        rules = [
            Rule1Outlier(),
            Rule2Shift(),
            Rule3Trend(),
            Rule4Alternator(),
            Rule5ZoneA(),
            Rule6ZoneB(),
            Rule7Stratification(),
            Rule8Mixture(),
        ]
        for rule in rules:
            self._rules[rule.rule_id] = rule

    @property
    def rules(self) -> list[NelsonRule]:
        """Registered rules in ascending rule id order."""
        return [self._rules[rule_id] for rule_id in sorted(self._rules)]

    def evaluate(
        self, values: Sequence[float], mean: float, std_dev: float
    ) -> list[ViolationSet]:
        """Classify every point of a series against all rules.

        Every rule is checked at every index; a match for one rule never
        skips another.

        Args:
            values: Channel readings in series order
            mean: Center line
            std_dev: Process sigma

        Returns:
            One ViolationSet per input value, same order as values
        """
        rules = self.rules
        return [
            tuple(
                rule.rule_id for rule in rules
                if rule.check(values, index, mean, std_dev)
            )
            for index in range(len(values))
        ]

    def check_single(
        self,
        values: Sequence[float],
        index: int,
        mean: float,
        std_dev: float,
        rule_id: int,
    ) -> bool:
        """Check a single rule at one index.

        Returns:
            True if the rule exists and matched, False otherwise
        """
        rule = self._rules.get(rule_id)
        if rule is None:
            return False
        return rule.check(values, index, mean, std_dev)

    def get_rule(self, rule_id: int) -> NelsonRule | None:
        """Get rule by ID.

        Args:
            rule_id: ID of the rule to retrieve

        Returns:
            NelsonRule instance if found, None otherwise
        """
        return self._rules.get(rule_id)

    def describe(self, violations: ViolationSet) -> list[str]:
        """Map rule ids to their descriptions, preserving order."""
        return [
            self._rules[rule_id].description
            for rule_id in violations
            if rule_id in self._rules
        ]
