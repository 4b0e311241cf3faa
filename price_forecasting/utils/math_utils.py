# price_forecasting/utils/math_utils.py
import math
from typing import Optional

def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    """Clamp a value into [lower, upper].

    Args:
        value: Value to clamp
        lower: Lower bound
        upper: Upper bound

    Returns:
        Clamped value
    """
    return max(lower, min(upper, value))

def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning a default for a zero or non-finite denominator."""
    if denominator == 0 or not math.isfinite(denominator):
        return default
    return numerator / denominator

def percent_change(new_value: float, base_value: Optional[float]) -> float:
    """Percentage change of new_value relative to base_value.

    A missing or zero base yields 0.0.
    """
    if not base_value:
        return 0.0
    return (new_value - base_value) / base_value * 100.0

def round_price(value: float, places: int = 2) -> float:
    """Round a price for reporting."""
    return round(value, places)
