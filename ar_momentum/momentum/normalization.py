"""Cohort normalization of raw deltas into z-scores.

A z-score measures how unusual an artist's delta is relative to peers:
``(value - mean(cohort)) / pstdev(cohort)`` using the population standard
deviation. Flat or empty cohorts contribute no signal (0.0), never NaN.

By default the evaluated artist's own delta is part of the distribution it
is scored against. ``include_self=False`` switches to a leave-one-out
cohort; changing it shifts the meaning of every stored alert threshold.
"""

from collections.abc import Sequence
from statistics import mean, pstdev


def zscore(value: float, cohort: Sequence[float]) -> float:
    """Z-score of ``value`` against ``cohort``.

    Args:
        value: Raw delta being normalized.
        cohort: The same delta across the peer cohort.

    Returns:
        The z-score, or 0.0 when the cohort is empty or has zero variance
        (which includes a cohort of size 1).
    """
    if not cohort:
        return 0.0
    if min(cohort) == max(cohort):
        return 0.0

    std = pstdev(cohort)
    if std == 0:
        return 0.0

    return (value - mean(cohort)) / std


def cohort_zscores(
    values: Sequence[float],
    *,
    include_self: bool = True,
) -> list[float]:
    """Normalize every member of a cohort against the cohort.

    Args:
        values: One delta per cohort member, in cohort order.
        include_self: Score each member against the full cohort (True) or
            against the cohort without that member (False).

    Returns:
        One z-score per input value, in the same order.
    """
    values = list(values)
    if include_self:
        return [zscore(v, values) for v in values]

    return [
        zscore(v, values[:i] + values[i + 1:])
        for i, v in enumerate(values)
    ]
