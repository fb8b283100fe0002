"""
Fixed-precision decimal helpers.

All ratio and percentage math in the indicators goes through these helpers so
that threshold comparisons are exact and reproducible across runs. Divisions
are rounded to DIVISION_SCALE places with ROUND_HALF_UP.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

Number = Union[Decimal, int, float, str]

DIVISION_SCALE = 8
ZERO = Decimal("0")
HUNDRED = Decimal("100")

_QUANTUM = Decimal(1).scaleb(-DIVISION_SCALE)


def to_decimal(value: Number) -> Decimal:
    """
    Convert a number to Decimal without binary float artifacts.

    Floats go through str() first, so 0.1 becomes Decimal("0.1") rather than
    Decimal(0.1000000000000000055511151231257827...).
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric price")
    return Decimal(str(value))


def quantize(value: Decimal, places: int = DIVISION_SCALE) -> Decimal:
    """Round to the given number of decimal places (ROUND_HALF_UP)."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide and round to DIVISION_SCALE places. Denominator must be non-zero."""
    return (numerator / denominator).quantize(_QUANTUM, rounding=ROUND_HALF_UP)


def safe_ratio(numerator: Decimal, denominator: Decimal) -> Optional[Decimal]:
    """
    Ratio numerator / denominator, or None when the denominator is not positive.

    Prices are never legitimately zero or negative, so a non-positive
    denominator is treated as "no signal" for that bar rather than an error.
    """
    if denominator <= ZERO:
        return None
    return divide(numerator, denominator)


def percent_of(value: Decimal, percent: Decimal) -> Decimal:
    """value * percent / 100."""
    return value * percent / HUNDRED


def percent_change(start: Decimal, end: Decimal) -> Optional[Decimal]:
    """Absolute percent change from start to end, or None if start <= 0."""
    ratio = safe_ratio(abs(end - start), start)
    if ratio is None:
        return None
    return quantize(ratio * HUNDRED)
