"""Per-channel descriptive statistics for the SPC engine.

The engine derives its center line and sigma from the whole series every
time it evaluates. Nothing is cached: the same values always produce the
same statistics.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class ChannelStatistics:
    """Summary statistics for one channel of a series.

    Attributes:
        mean: Arithmetic mean of the values
        std_dev: Population standard deviation (divides by N)
        relative_std_dev_percent: 100 * std_dev / mean, NaN when mean is 0
    """

    mean: float
    std_dev: float
    relative_std_dev_percent: float


EMPTY_STATISTICS = ChannelStatistics(
    mean=math.nan,
    std_dev=math.nan,
    relative_std_dev_percent=math.nan,
)


def compute_statistics(values: Sequence[float]) -> ChannelStatistics:
    """Compute mean, population sigma and relative sigma for a channel.

    Empty input is valid and yields all-NaN statistics. NaN inputs propagate
    through the result rather than raising.

    Args:
        values: Channel readings in series order

    Returns:
        ChannelStatistics for the values

    Examples:
        >>> stats = compute_statistics([27.2, 26.8, 27.5, 26.5, 27.8])
        >>> round(stats.mean, 2)
        27.16
    """
    if len(values) == 0:
        return EMPTY_STATISTICS

    arr = np.asarray(values, dtype=float)
    # inf readings yield NaN statistics; keep numpy quiet about it
    with np.errstate(invalid="ignore", over="ignore"):
        mean = float(np.mean(arr))
        std_dev = float(np.std(arr, ddof=0))

    if mean == 0 or math.isnan(mean):
        relative = math.nan
    else:
        relative = 100.0 * std_dev / mean

    return ChannelStatistics(
        mean=mean,
        std_dev=std_dev,
        relative_std_dev_percent=relative,
    )


__all__ = ["ChannelStatistics", "EMPTY_STATISTICS", "compute_statistics"]
