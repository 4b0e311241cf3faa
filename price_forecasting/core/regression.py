# price_forecasting/core/regression.py
import math
from typing import Dict, List, Sequence

import numpy as np
from scipy import stats

from ..exceptions import CalculationError

class RegressionFit:
    """Ordinary least-squares trend over x = 0..n-1 (oldest to newest).

    r_squared is NaN for degenerate series (fewer than two points or a
    constant price); callers map that to a neutral value.
    """

    def __init__(self, slope: float, intercept: float, r_squared: float, n_points: int):
        self.slope = slope
        self.intercept = intercept
        self.r_squared = r_squared
        self.n_points = n_points

    def predict(self, x: float) -> float:
        """Extrapolate the trend line at x. Not clamped."""
        return self.intercept + self.slope * x

    @property
    def is_degenerate(self) -> bool:
        return math.isnan(self.r_squared)

    def to_dict(self) -> Dict:
        return {
            'slope': self.slope,
            'intercept': self.intercept,
            'r_squared': None if self.is_degenerate else self.r_squared,
            'n_points': self.n_points
        }

    def __repr__(self):
        return (
            f"RegressionFit(slope={self.slope:.4f}, intercept={self.intercept:.4f}, "
            f"r_squared={self.r_squared:.4f}, n_points={self.n_points})"
        )

def fit_linear_trend(values: Sequence[float]) -> RegressionFit:
    """Fit a linear trend to a series ordered oldest to newest.

    Args:
        values: Observed prices, oldest first

    Returns:
        RegressionFit

    Raises:
        CalculationError: If the series contains non-finite values
    """
    y = np.asarray(values, dtype=float)
    n = len(y)

    if n == 0:
        return RegressionFit(0.0, 0.0, float('nan'), 0)

    if not np.all(np.isfinite(y)):
        raise CalculationError("Price series contains non-finite values")

    mean_y = float(np.mean(y))

    # Constant series or a single point: no trend, undefined fit quality
    if n < 2 or float(np.ptp(y)) == 0.0:
        return RegressionFit(0.0, mean_y, float('nan'), n)

    x = np.arange(n, dtype=float)
    result = stats.linregress(x, y)

    return RegressionFit(
        slope=float(result.slope),
        intercept=float(result.intercept),
        r_squared=float(result.rvalue ** 2),
        n_points=n
    )

def history_to_series(history: List[Dict]) -> List[float]:
    """Turn newest-first history records into an oldest-first price list."""
    return [float(record['price']) for record in reversed(history)]
