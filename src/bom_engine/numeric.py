"""Rounding and safe-division helpers shared by the analysis engines."""

import math

# Stock-days value reported when there is no consumption to divide by
STOCK_DAYS_SENTINEL = 999.0


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Rounds halves toward positive infinity (0.5 -> 1, -0.5 -> 0).

    Python's built-in round() is banker's rounding, which would make
    variance totals drift from the dashboard's figures.
    """
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(math.floor(value + 0.5))


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    if denominator == 0:
        return default
    return numerator / denominator


def pct(part: float, whole: float) -> float:
    """part/whole*100, 0 when whole is 0."""
    return safe_div(part, whole) * 100
