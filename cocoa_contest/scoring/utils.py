"""
Decimal Utilities - Cocoa Contest Evaluation Engine
cocoa_contest/scoring/utils.py

Precision-safe decimal math shared by the scoring calculators.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Sequence

ZERO = Decimal("0")
TEN = Decimal("10")
ONE_PLACE = Decimal("0.1")
TWO_PLACES = Decimal("0.01")


def to_decimal(value: float) -> Decimal:
    """
    Convert a number to Decimal through its shortest repr.

    Going through str() keeps 0.3 as exactly 0.3 rather than the binary
    approximation, so sums like 8.95 round half-up as written.
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_to(value: Decimal, places: Decimal = ONE_PLACE) -> Decimal:
    """Round half-up to the given quantum (one decimal by default)."""
    return value.quantize(places, rounding=ROUND_HALF_UP)


def clamp(
    value: Decimal,
    min_val: Decimal = ZERO,
    max_val: Decimal = TEN,
) -> Decimal:
    """Clamp value to range [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def mean(values: Sequence[Decimal]) -> Decimal:
    """Arithmetic mean; Decimal("0") for an empty sequence."""
    if not values:
        return ZERO
    return sum(values, ZERO) / Decimal(len(values))


def weighted_mean(values: List[Decimal], weights: List[Decimal]) -> Decimal:
    """
    Calculate weighted mean.

    Formula: sum(value_i * weight_i) / sum(weight_i)
    Returns Decimal("0") if all weights are zero.
    """
    if len(values) != len(weights):
        raise ValueError("values and weights must have same length")

    total_weight = sum(weights, ZERO)
    if total_weight == 0:
        return ZERO

    numerator = sum((v * w for v, w in zip(values, weights)), ZERO)
    return numerator / total_weight


def sample_std_dev(values: Sequence[Decimal], center: Decimal) -> Decimal:
    """
    Sample standard deviation around ``center`` (Bessel corrected).

    Formula: sqrt(sum((value_i - center)^2) / (n - 1)); 0 when n < 2
    """
    if len(values) < 2:
        return ZERO
    variance = sum(((v - center) ** 2 for v in values), ZERO) / Decimal(len(values) - 1)
    return variance.sqrt()
