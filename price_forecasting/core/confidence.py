# price_forecasting/core/confidence.py
import math
from typing import Dict

from ..utils.math_utils import clamp

FIT_WEIGHT = 0.30
STABILITY_WEIGHT = 0.30
ACCURACY_WEIGHT = 0.25
SUFFICIENCY_WEIGHT = 0.15

NEUTRAL_FIT_SCORE = 0.5
FULL_HISTORY_POINTS = 30
MIN_HISTORY_POINTS = 14

def fit_quality_score(r_squared: float) -> float:
    """R² clamped to [0, 1]; an undefined fit scores neutral."""
    if r_squared is None or math.isnan(r_squared):
        return NEUTRAL_FIT_SCORE
    return clamp(r_squared)

def stability_score(coefficient_of_variation: float) -> float:
    """1.0 below 10% CV, 0.0 above 50%, linear in between."""
    if coefficient_of_variation < 10.0:
        return 1.0
    if coefficient_of_variation > 50.0:
        return 0.0
    return 1.0 - (coefficient_of_variation - 10.0) / 40.0

def accuracy_score(mape: float) -> float:
    """1.0 below 5% MAPE, 0.0 above 25%, linear in between."""
    if mape < 5.0:
        return 1.0
    if mape > 25.0:
        return 0.0
    return 1.0 - (mape - 5.0) / 20.0

def sufficiency_score(n_points: int) -> float:
    """Reward longer windows: 0.5 below 14 points, 0.7 to 1.0 up to 30."""
    if n_points >= FULL_HISTORY_POINTS:
        return 1.0
    if n_points < MIN_HISTORY_POINTS:
        return 0.5
    return 0.7 + (n_points - MIN_HISTORY_POINTS) / 16.0 * 0.3

def confidence_breakdown(
    r_squared: float,
    coefficient_of_variation: float,
    mape: float,
    n_points: int
) -> Dict[str, float]:
    """Individual sub-scores and the combined confidence.

    Args:
        r_squared: Fit quality of the trend (NaN allowed)
        coefficient_of_variation: CV of the window, as a percentage
        mape: Back-tested MAPE, as a percentage
        n_points: Number of observations in the window

    Returns:
        Dictionary with each sub-score and the clamped weighted total
    """
    fit = fit_quality_score(r_squared)
    stability = stability_score(coefficient_of_variation)
    accuracy = accuracy_score(mape)
    sufficiency = sufficiency_score(n_points)

    total = (
        FIT_WEIGHT * fit
        + STABILITY_WEIGHT * stability
        + ACCURACY_WEIGHT * accuracy
        + SUFFICIENCY_WEIGHT * sufficiency
    )

    return {
        'fit_quality': fit,
        'stability': stability,
        'accuracy': accuracy,
        'sufficiency': sufficiency,
        'confidence': clamp(total)
    }

def calculate_confidence(
    r_squared: float,
    coefficient_of_variation: float,
    mape: float,
    n_points: int
) -> float:
    """Composite confidence score in [0, 1]."""
    return confidence_breakdown(r_squared, coefficient_of_variation, mape, n_points)['confidence']

def apply_day_decay(
    base_confidence: float,
    day: int,
    daily_decay: float = 0.03,
    floor: float = 0.30
) -> float:
    """Decay a base confidence for a day further out in the horizon.

    Day 1 keeps the base score; each later day multiplies by (1 - daily_decay).
    The decay multiplier never drops below `floor`.

    Args:
        base_confidence: Confidence for day 1
        day: Day index in the horizon, starting at 1
        daily_decay: Fractional decay per day
        floor: Lower bound for the decay multiplier

    Returns:
        Decayed confidence in [0, 1]
    """
    multiplier = max(floor, (1.0 - daily_decay) ** max(0, day - 1))
    return clamp(base_confidence * multiplier)
