class PriceForecastingError(Exception):
    """Base exception for the price forecasting engine."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the price forecasting engine"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(PriceForecastingError):
    """Exception raised for configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class DatabaseError(PriceForecastingError):
    """Exception raised for database-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Database error"
        super().__init__(message, code, details)


class ValidationError(PriceForecastingError):
    """Exception raised for request validation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class NotFoundError(PriceForecastingError):
    """Exception raised when a requested resource is not found."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Resource not found"
        super().__init__(message, code, details)


class ForecastError(PriceForecastingError):
    """Exception raised for forecasting-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Forecasting error"
        super().__init__(message, code, details)


class InsufficientDataError(ForecastError):
    """Raised when a pair has too little price history to forecast."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Insufficient price history"
        super().__init__(message, code or 'INSUFFICIENT_DATA', details)


class InvalidTargetError(PriceForecastingError):
    """Raised for an unknown product or market id."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Unknown product or market"
        super().__init__(message, code or 'INVALID_TARGET', details)


class DirectiveParseError(PriceForecastingError):
    """Raised when an override trend directive cannot be parsed."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Unrecognized trend directive"
        super().__init__(message, code or 'PARSE_FAILURE', details)


class OverrideError(PriceForecastingError):
    """Exception raised for manual override errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Override error"
        super().__init__(message, code, details)


class BatchProcessError(PriceForecastingError):
    """Exception raised for batch process errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Batch process error"
        super().__init__(message, code, details)


class CalculationError(PriceForecastingError):
    """Exception raised for calculation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Calculation error"
        super().__init__(message, code, details)


class ReportingError(PriceForecastingError):
    """Exception raised for reporting errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Reporting error"
        super().__init__(message, code, details)
