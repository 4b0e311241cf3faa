# price_forecasting/utils/date_utils.py
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

def convert_to_date(value: Union[date, datetime, str]) -> date:
    """Convert a date, datetime or ISO string (YYYY-MM-DD) to a date.

    Args:
        value: Value to convert

    Returns:
        Date object

    Raises:
        ValueError: If the value cannot be converted
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.strptime(value.strip(), '%Y-%m-%d').date()
    raise ValueError(f"Cannot convert {value!r} to date")

def next_day(as_of: Optional[date] = None) -> date:
    """Day after as_of (defaults to today)."""
    return (as_of or date.today()) + timedelta(days=1)

def get_forecast_dates(last_observed: date, horizon: int) -> List[date]:
    """Target dates for a forecast horizon starting the day after last_observed."""
    return [last_observed + timedelta(days=day) for day in range(1, horizon + 1)]
