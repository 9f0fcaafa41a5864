"""
Decimal Utilities
feedback_insights/scoring/utils.py

Provides precision-safe decimal math for scoring calculations.
"""

from decimal import Decimal
from typing import Sequence


SCORE_MIN = Decimal("1")
SCORE_MAX = Decimal("5")


def clamp(
    value: Decimal,
    min_val: Decimal = Decimal("0"),
    max_val: Decimal = Decimal("1"),
) -> Decimal:
    """Clamp value to range [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def clamp_score(value: Decimal) -> Decimal:
    """Clamp a competency score to the 1-5 rating scale."""
    return clamp(value, SCORE_MIN, SCORE_MAX)


def population_variance(values: Sequence[Decimal]) -> Decimal:
    """
    Population variance of a list of scores.

    Formula: Σ(value_i - mean)² / n
    Returns Decimal("0") for fewer than two values.
    """
    if len(values) < 2:
        return Decimal("0")

    n = Decimal(len(values))
    mean = sum(values, Decimal("0")) / n
    return sum(((v - mean) ** 2 for v in values), Decimal("0")) / n
