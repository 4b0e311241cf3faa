import logging
import logging.handlers
from datetime import datetime
from pathlib import Path

from price_forecasting.config import config

PACKAGE_PREFIX = 'price_forecasting.'

# Counters carried by chunk and bulk run results
RUN_COUNTERS = ('success', 'failed', 'skipped', 'written', 'anomalies')

class Logger:
    """Logging manager for the price forecasting engine.

    Every named logger writes to its own rotating file in the configured
    log directory. Module loggers drop the package prefix from their file
    name, so ``price_forecasting.services.forecast_service`` logs to
    ``services.forecast_service.log``. Bulk forecast runs are logged to the
    ``batch`` logger, one line per chunk plus a start and a summary line,
    each tagged with the job id.
    """

    _instance = None
    _loggers = {}

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the logger if not already initialized."""
        if self._initialized:
            return

        self._log_config = config.log_config
        self._log_dir = Path(self._log_config['directory'])
        self._log_dir.mkdir(parents=True, exist_ok=True)

        self._level = getattr(logging, self._log_config['level'].upper(), logging.INFO)
        self._formatter = logging.Formatter(self._log_config['format'])

        self._configure_root_logger()
        self._app_logger = self.get_logger('app')

        self._initialized = True

    def _configure_root_logger(self):
        root_logger = logging.getLogger()
        root_logger.setLevel(self._level)

        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        if self._log_config['console_output']:
            root_logger.addHandler(self._console_handler())

    def _console_handler(self):
        handler = logging.StreamHandler()
        handler.setFormatter(self._formatter)
        return handler

    def log_file_for(self, name):
        """Path of the file a named logger writes to."""
        if name.startswith(PACKAGE_PREFIX):
            name = name[len(PACKAGE_PREFIX):]
        return self._log_dir / f"{name}.log"

    def get_logger(self, name):
        """Get a logger with the specified name.

        Args:
            name: Logger name, usually a module's ``__name__``

        Returns:
            Configured logger instance
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(name)
        logger.setLevel(self._level)

        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

        file_handler = logging.handlers.RotatingFileHandler(
            self.log_file_for(name),
            maxBytes=self._log_config['max_size_mb'] * 1024 * 1024,
            backupCount=self._log_config['backup_count']
        )
        file_handler.setFormatter(self._formatter)
        logger.addHandler(file_handler)

        if self._log_config['console_output']:
            logger.addHandler(self._console_handler())

        # The root logger has its own console handler
        logger.propagate = False

        self._loggers[name] = logger
        return logger

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception with the stack trace it was raised with.

        Args:
            logger_name: Logger name
            exception: Exception object
            message: Optional message to include
        """
        text = f"{message}: {str(exception)}" if message else str(exception)
        self.get_logger(logger_name).error(text, exc_info=exception)

    @property
    def app_logger(self):
        """Get the application logger."""
        return self._app_logger

    @property
    def batch_logger(self):
        return self.get_logger('batch')

    def batch_start_log(self, job_id, total_pairs, total_chunks, force=False):
        """Log the start of a bulk forecast run.

        Args:
            job_id: Identifier of the run
            total_pairs: Number of (product, market) pairs to forecast
            total_chunks: Number of chunks the pairs were split into
            force: Whether overridden rows are regenerated

        Returns:
            Run log state, to be passed to batch_chunk_log and batch_end_log
        """
        log_info = {
            'job_id': job_id,
            'start_time': datetime.now(),
            'total_pairs': total_pairs,
            'total_chunks': total_chunks,
            'chunks_done': 0,
            'force': force
        }

        self.batch_logger.info(
            f"[{job_id}] Starting bulk forecast: {total_pairs} pairs in "
            f"{total_chunks} chunks{' (force)' if force else ''}"
        )
        return log_info

    def batch_chunk_log(self, log_info, chunk_result):
        """Log one finished chunk of a bulk run.

        Args:
            log_info: Run log state from batch_start_log
            chunk_result: Chunk result with the run counters
        """
        log_info['chunks_done'] += 1
        counters = ', '.join(f"{key}={chunk_result.get(key, 0)}" for key in RUN_COUNTERS)
        message = (
            f"[{log_info['job_id']}] Chunk {chunk_result['chunk']} done "
            f"({log_info['chunks_done']}/{log_info['total_chunks']}): {counters}"
        )

        if chunk_result.get('failed'):
            self.batch_logger.warning(message)
        else:
            self.batch_logger.info(message)

    def batch_end_log(self, log_info, totals):
        """Log the summary of a bulk run.

        The run counts as failed when any pair failed.

        Args:
            log_info: Run log state from batch_start_log
            totals: Aggregate run counters

        Returns:
            Duration of the run
        """
        duration = datetime.now() - log_info['start_time']
        counters = ', '.join(f"{key}={totals.get(key, 0)}" for key in RUN_COUNTERS)
        job_id = log_info['job_id']

        if totals.get('failed'):
            self.batch_logger.error(
                f"[{job_id}] Bulk forecast finished with failures in {duration}: {counters}"
            )
        else:
            self.batch_logger.info(f"[{job_id}] Bulk forecast completed in {duration}: {counters}")

        return duration

# Global logger instance
logger = Logger()

def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)

def log_exception(logger_name, exception, message=None):
    """Log an exception with stack trace."""
    logger.log_exception(logger_name, exception, message)
