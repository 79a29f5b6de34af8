import os
import configparser
from decimal import Decimal, InvalidOperation
from pathlib import Path

class Config:
    """Configuration manager for the Warehouse Sales Simulation engine."""

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

        self._config_dir = Path(os.getenv('WAREHOUSE_SIM_CONFIG_DIR', 'config'))
        self._config_path = self._config_dir / 'settings.ini'
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
            'engine': 'postgresql',
            'host': 'localhost',
            'port': '5432',
            'database': 'warehouse_sim',
            'username': 'postgres',
            'password': 'postgres',
            'echo': 'False'
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
            'tick_timeout_seconds': '90',
            'settlement_timeout_seconds': '60'
        }

        self._config['SETTLEMENT'] = {
            'payout_days': '5,20',
            'default_commission_rate': '0.10',
            'default_logistics_multiplier': '1',
            'default_return_rate_min': '0.02',
            'default_return_rate_max': '0.05',
            'default_shipping_profile': 'MEDIUM',
            'fallback_shipping_fee': '1.20',
            'high_return_rate_threshold': '0.10',
            'high_return_min_units': '20'
        }

        self._config['SIMULATION'] = {
            'awareness_cap': '0.5',
            'default_capacity_level': '1',
            'game_start_day': '2025-09-10'
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

    def get_decimal(self, section, key, default=None):
        """Get configuration value as Decimal.

        Money and rate settings are read as Decimal so that settlement
        arithmetic never passes through binary floats.
        """
        raw = self.get(section, key)
        if raw is None:
            return Decimal(str(default)) if default is not None else None
        try:
            return Decimal(raw.strip())
        except InvalidOperation:
            return Decimal(str(default)) if default is not None else None

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_int_list(self, section, key, default=None):
        """Get a comma separated configuration value as a list of integers."""
        raw = self.get(section, key)
        if raw is None:
            return list(default) if default is not None else []
        try:
            return [int(part) for part in raw.split(',') if part.strip()]
        except ValueError:
            return list(default) if default is not None else []

    def set(self, section, key, value):
        """Set configuration value."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))
        self._save_config()

    def get_db_url(self):
        """Generate SQLAlchemy database URL."""
        engine = self.get('DATABASE', 'engine', 'postgresql')
        database = self.get('DATABASE', 'database', 'warehouse_sim')

        if engine.startswith('sqlite'):
            return f"{engine}:///{database}"

        username = self.get('DATABASE', 'username', 'postgres')
        password = self.get('DATABASE', 'password', 'postgres')
        host = self.get('DATABASE', 'host', 'localhost')
        port = self.get('DATABASE', 'port', '5432')

        return f"{engine}://{username}:{password}@{host}:{port}/{database}"

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
        return {
            'tick_timeout_seconds': self.get_int('BATCH_PROCESS', 'tick_timeout_seconds', 90),
            'settlement_timeout_seconds': self.get_int('BATCH_PROCESS', 'settlement_timeout_seconds', 60)
        }

    @property
    def settlement_config(self):
        """Get settlement fee defaults and notification thresholds."""
        return {
            'payout_days': self.get_int_list('SETTLEMENT', 'payout_days', [5, 20]),
            'default_commission_rate': self.get_decimal('SETTLEMENT', 'default_commission_rate', '0.10'),
            'default_logistics_multiplier': self.get_decimal('SETTLEMENT', 'default_logistics_multiplier', '1'),
            'default_return_rate_min': self.get_decimal('SETTLEMENT', 'default_return_rate_min', '0.02'),
            'default_return_rate_max': self.get_decimal('SETTLEMENT', 'default_return_rate_max', '0.05'),
            'default_shipping_profile': self.get('SETTLEMENT', 'default_shipping_profile', 'MEDIUM'),
            'fallback_shipping_fee': self.get_decimal('SETTLEMENT', 'fallback_shipping_fee', '1.20'),
            'high_return_rate_threshold': self.get_decimal('SETTLEMENT', 'high_return_rate_threshold', '0.10'),
            'high_return_min_units': self.get_int('SETTLEMENT', 'high_return_min_units', 20)
        }

    @property
    def simulation_config(self):
        """Get simulation configuration."""
        return {
            'awareness_cap': self.get_decimal('SIMULATION', 'awareness_cap', '0.5'),
            'default_capacity_level': self.get_int('SIMULATION', 'default_capacity_level', 1),
            'game_start_day': self.get('SIMULATION', 'game_start_day', '2025-09-10')
        }

# Global config instance
config = Config()
