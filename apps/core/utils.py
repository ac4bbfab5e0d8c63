# apps/core/utils.py
"""Small numeric helpers shared by the stats views."""

from __future__ import annotations


def safe_ratio(numerator: float, denominator: float) -> float:
    """`numerator / denominator`, or 0.0 when there is nothing to divide by."""
    if not denominator:
        return 0.0
    return numerator / denominator


def safe_percent(numerator: float, denominator: float, *, ndigits: int = 1) -> float:
    """Percentage rounded to *ndigits*; a zero denominator yields 0, never an error."""
    return round(safe_ratio(numerator, denominator) * 100, ndigits)
