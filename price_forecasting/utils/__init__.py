from .date_utils import convert_to_date, next_day, get_forecast_dates
from .math_utils import clamp, safe_divide, percent_change, round_price
from .validation import validate_pair_ids, validate_override_request

__all__ = [
    'convert_to_date',
    'next_day',
    'get_forecast_dates',
    'clamp',
    'safe_divide',
    'percent_change',
    'round_price',
    'validate_pair_ids',
    'validate_override_request'
]
