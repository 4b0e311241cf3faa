from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    PriceForecastingError, ForecastError, InsufficientDataError,
    InvalidTargetError, DirectiveParseError, ValidationError, NotFoundError
)

__version__ = '0.1.0'

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'PriceForecastingError',
    'ForecastError',
    'InsufficientDataError',
    'InvalidTargetError',
    'DirectiveParseError',
    'ValidationError',
    'NotFoundError'
]
