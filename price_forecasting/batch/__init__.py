# price_forecasting/batch/__init__.py

from .forecast_job import (
    BatchOrchestrator,
    partition,
    get_orchestrator,
    run_bulk_forecast,
    trigger_bulk_run,
    generate_single_forecast
)

__all__ = [
    'BatchOrchestrator',
    'partition',
    'get_orchestrator',
    'run_bulk_forecast',
    'trigger_bulk_run',
    'generate_single_forecast'
]
