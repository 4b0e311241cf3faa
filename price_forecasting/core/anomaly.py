# price_forecasting/core/anomaly.py
from typing import Tuple

from ..models import ForecastStatus

EXTREME_CHANGE_PCT = 40.0
LARGE_CHANGE_PCT = 30.0
LOW_CONFIDENCE = 0.40
UNRELIABLE_CONFIDENCE = 0.20
VOLATILE_CV = 60.0
FAR_HORIZON_DAY = 5
POOR_FIT_MAPE = 30.0

def classify_forecast(
    price_change_pct: float,
    confidence: float,
    coefficient_of_variation: float,
    day_index: int,
    mape: float
) -> Tuple[ForecastStatus, str]:
    """Classify one day-ahead forecast as NORMAL or ANOMALY.

    Rules are checked in order and the first match wins.

    Args:
        price_change_pct: Change vs. the latest actual price, as a percentage
        confidence: Decayed confidence for this day
        coefficient_of_variation: CV of the history window
        day_index: Day in the horizon, starting at 1
        mape: Back-tested MAPE of the trend

    Returns:
        Tuple of (status, reason)
    """
    change = abs(price_change_pct)

    if change > EXTREME_CHANGE_PCT:
        return ForecastStatus.ANOMALY, f"Extreme price movement ({price_change_pct:+.1f}%)"

    if change > LARGE_CHANGE_PCT and confidence < LOW_CONFIDENCE:
        return ForecastStatus.ANOMALY, (
            f"Large price movement ({price_change_pct:+.1f}%) with low confidence ({confidence:.2f})"
        )

    if confidence < UNRELIABLE_CONFIDENCE:
        return ForecastStatus.ANOMALY, f"Unreliable forecast (confidence {confidence:.2f})"

    if coefficient_of_variation > VOLATILE_CV:
        return ForecastStatus.ANOMALY, f"Source prices too volatile (CV {coefficient_of_variation:.1f}%)"

    if day_index >= FAR_HORIZON_DAY and confidence < LOW_CONFIDENCE:
        return ForecastStatus.ANOMALY, (
            f"Low confidence ({confidence:.2f}) on far horizon day {day_index}"
        )

    if mape > POOR_FIT_MAPE:
        return ForecastStatus.ANOMALY, f"Poor historical fit (MAPE {mape:.1f}%)"

    return ForecastStatus.NORMAL, "Within expected range"
