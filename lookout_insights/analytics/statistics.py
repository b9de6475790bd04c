"""Small numeric helpers shared by the analytics modules."""

from __future__ import annotations

import math
from typing import Optional, Sequence

from ..constants import REVIEW_HEALTH_THRESHOLDS
from ..core.utils import round_half_up


def mean(values: Sequence[float]) -> Optional[float]:
    """Arithmetic mean, or ``None`` for an empty sequence."""
    if not values:
        return None
    return sum(values) / len(values)


def median(values: Sequence[float]) -> Optional[float]:
    """Median, averaging the two middle values for even-length input."""
    if not values:
        return None
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[middle]
    return (ordered[middle - 1] + ordered[middle]) / 2


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population standard deviation divided by the mean (0 when the mean is 0)."""
    average = mean(values)
    if not average:
        return 0.0
    variance = sum((value - average) ** 2 for value in values) / len(values)
    return math.sqrt(variance) / average


def load_balance_score(counts: Sequence[int]) -> int:
    """Score 0-100 for how evenly review work is spread across reviewers.

    Fewer than two reviewers is treated as perfectly balanced.
    """
    if len(counts) < REVIEW_HEALTH_THRESHOLDS['min_reviewers_for_balance']:
        return REVIEW_HEALTH_THRESHOLDS['load_balance_max']

    cv = coefficient_of_variation(counts)
    score = round_half_up(
        REVIEW_HEALTH_THRESHOLDS['load_balance_max'] - cv * REVIEW_HEALTH_THRESHOLDS['load_balance_cv_weight']
    )
    return max(
        REVIEW_HEALTH_THRESHOLDS['load_balance_min'],
        min(REVIEW_HEALTH_THRESHOLDS['load_balance_max'], score),
    )


def percent(part: float, whole: float) -> float:
    """``part`` as a percentage of ``whole``, 0 when ``whole`` is 0."""
    return part / whole * 100 if whole else 0.0


__all__ = ["coefficient_of_variation", "load_balance_score", "mean", "median", "percent"]
