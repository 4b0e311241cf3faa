# price_forecasting/core/statistics.py
from typing import Sequence

import numpy as np

from .regression import RegressionFit

def calculate_mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty series."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))

def calculate_variance(values: Sequence[float]) -> float:
    """Sample variance (n - 1 denominator); 0.0 below two points."""
    if len(values) < 2:
        return 0.0
    return float(np.var(values, ddof=1))

def calculate_std_dev(values: Sequence[float]) -> float:
    """Sample standard deviation."""
    return float(np.sqrt(calculate_variance(values)))

def calculate_coefficient_of_variation(values: Sequence[float]) -> float:
    """Coefficient of variation as a percentage (stddev / mean * 100).

    Args:
        values: Price series

    Returns:
        CV percentage, 0.0 when the mean is zero
    """
    mean = calculate_mean(values)
    if mean == 0:
        return 0.0
    return calculate_std_dev(values) / abs(mean) * 100.0

def calculate_mape(values: Sequence[float], fit: RegressionFit, window: int = 10) -> float:
    """Back-test the fitted line against the most recent actuals.

    Each of the last `window` observations is compared with the line's value
    at its own x position. Zero prices are skipped.

    Args:
        values: Price series, oldest first (same order used for the fit)
        fit: Regression fitted over values
        window: Number of trailing points to back-test

    Returns:
        Mean absolute percentage error, 0.0 when no point is usable
    """
    n = len(values)
    if n == 0:
        return 0.0

    errors = []
    for x in range(max(0, n - window), n):
        actual = float(values[x])
        if actual == 0:
            continue
        errors.append(abs(actual - fit.predict(x)) / abs(actual) * 100.0)

    if not errors:
        return 0.0

    return float(np.mean(errors))
