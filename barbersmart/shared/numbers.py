"""Numeric helpers shared by reports and labels"""

import math


def round_half_up(value: float, digits: int = 0) -> float:
    """Round .5 away from zero for positives (round() uses banker's rounding)"""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is 0"""
    if not denominator:
        return 0.0
    return numerator / denominator
