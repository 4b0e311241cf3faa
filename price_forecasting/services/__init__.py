from .price_history_service import PriceHistoryService
from .forecast_store import ForecastStore
from .forecast_service import ForecastService
from .override_service import OverrideRequest, OverrideService
from .reporting_service import ReportingService

__all__ = [
    'PriceHistoryService',
    'ForecastStore',
    'ForecastService',
    'OverrideRequest',
    'OverrideService',
    'ReportingService'
]
