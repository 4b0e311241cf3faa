import os
import configparser
from pathlib import Path

class Config:
    """Configuration manager for the price forecasting engine."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        env_path = os.getenv('PRICE_FORECASTING_CONFIG')
        if env_path:
            self._config_path = Path(env_path)
        else:
            self._config_path = Path('config') / 'settings.ini'
        self._config_dir = self._config_path.parent
        self._config = configparser.ConfigParser(interpolation=None)

        # Create config directory if it doesn't exist
        if not self._config_dir.exists():
            self._config_dir.mkdir(parents=True)

        # Load config or create default
        if self._config_path.exists():
            self._config.read(self._config_path)
        else:
            self._create_default_config()

        self._initialized = True

    def _create_default_config(self):
        """Create default configuration file."""
        self._config['DATABASE'] = {
            'url': 'sqlite:///price_forecasting.db',
            'echo': 'False',
            'pool_size': '10',
            'max_overflow': '20',
            'pool_timeout': '30',
            'pool_recycle': '1800',
            'busy_timeout': '60'  # seconds a SQLite writer waits for the lock
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True'
        }

        self._config['BATCH_PROCESS'] = {
            'chunk_size': '50',
            'max_workers': '0',  # 0 = max(4, cpu count)
            'purge_after_days': '0'
        }

        self._config['FORECASTING'] = {
            'history_window': '30',
            'min_history_points': '14',
            'horizon_days': '7',
            'mape_window': '10',
            'daily_decay': '0.03',
            'decay_floor': '0.30'
        }

        self._save_config()

    def _save_config(self):
        """Save configuration to file."""
        with open(self._config_path, 'w') as configfile:
            self._config.write(configfile)

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def set(self, section, key, value):
        """Set configuration value."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))
        self._save_config()

    def get_db_url(self):
        """Get the SQLAlchemy database URL."""
        return self.get('DATABASE', 'url', 'sqlite:///price_forecasting.db')

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def batch_config(self):
        """Get batch processing configuration."""
        max_workers = self.get_int('BATCH_PROCESS', 'max_workers', 0)
        if not max_workers or max_workers <= 0:
            max_workers = max(4, os.cpu_count() or 1)

        return {
            'chunk_size': self.get_int('BATCH_PROCESS', 'chunk_size', 50),
            'max_workers': max_workers,
            'purge_after_days': self.get_int('BATCH_PROCESS', 'purge_after_days', 0)
        }

    @property
    def forecast_config(self):
        """Get forecasting parameters."""
        return {
            'history_window': self.get_int('FORECASTING', 'history_window', 30),
            'min_history_points': self.get_int('FORECASTING', 'min_history_points', 14),
            'horizon_days': self.get_int('FORECASTING', 'horizon_days', 7),
            'mape_window': self.get_int('FORECASTING', 'mape_window', 10),
            'daily_decay': self.get_float('FORECASTING', 'daily_decay', 0.03),
            'decay_floor': self.get_float('FORECASTING', 'decay_floor', 0.30)
        }

# Global config instance
config = Config()
