from .regression import RegressionFit, fit_linear_trend, history_to_series
from .statistics import (
    calculate_mean, calculate_variance, calculate_std_dev,
    calculate_coefficient_of_variation, calculate_mape
)
from .confidence import (
    calculate_confidence, confidence_breakdown, apply_day_decay,
    fit_quality_score, stability_score, accuracy_score, sufficiency_score
)
from .anomaly import classify_forecast
from .directives import parse_trend_directive, apply_trend

__all__ = [
    'RegressionFit',
    'fit_linear_trend',
    'history_to_series',
    'calculate_mean',
    'calculate_variance',
    'calculate_std_dev',
    'calculate_coefficient_of_variation',
    'calculate_mape',
    'calculate_confidence',
    'confidence_breakdown',
    'apply_day_decay',
    'fit_quality_score',
    'stability_score',
    'accuracy_score',
    'sufficiency_score',
    'classify_forecast',
    'parse_trend_directive',
    'apply_trend'
]
