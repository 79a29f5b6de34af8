import logging
import logging.handlers
import time
from pathlib import Path

from warehouse_sim.config import config

PACKAGE_LOGGER = 'warehouse_sim'

def _format_context(context):
    """Render a context dict as 'key=value' pairs in insertion order."""
    if not context:
        return ''
    return ' '.join(f"{key}={value}" for key, value in context.items())

class Logger:
    """Log manager for the simulation engine.

    Every logger handed out lives under the ``warehouse_sim`` namespace, so
    module loggers (``logging.getLogger(__name__)``) and job loggers share
    one package-level handler set. Job loggers additionally write their own
    rotating file, e.g. ``logs/settlement.log``.
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
        """Set up the package logger once per process."""
        if self._initialized:
            return

        self._settings = config.log_config
        self._log_dir = Path(self._settings['directory'])
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._formatter = logging.Formatter(self._settings['format'])

        self._package_logger = self._configure_package_logger()
        self._app_logger = self.get_logger('app')

        self._initialized = True

    def _level(self):
        return getattr(logging, self._settings['level'].upper(), logging.INFO)

    def _file_handler(self, file_name):
        handler = logging.handlers.RotatingFileHandler(
            self._log_dir / file_name,
            maxBytes=self._settings['max_size_mb'] * 1024 * 1024,
            backupCount=self._settings['backup_count']
        )
        handler.setFormatter(self._formatter)
        return handler

    def _configure_package_logger(self):
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(self._level())

        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)

        package_logger.addHandler(self._file_handler(f"{PACKAGE_LOGGER}.log"))
        if self._settings['console_output']:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(self._formatter)
            package_logger.addHandler(console_handler)

        # Engine records stop at the package logger
        package_logger.propagate = False
        return package_logger

    def get_logger(self, name):
        """Get a job logger writing to ``<log dir>/<name>.log``.

        Records also reach the package handlers, so console output is not
        duplicated per job.

        Args:
            name: Short job name, e.g. 'day_tick'

        Returns:
            Logger named ``warehouse_sim.<name>``
        """
        if name in self._loggers:
            return self._loggers[name]

        job_logger = logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
        job_logger.setLevel(self._level())
        for handler in job_logger.handlers[:]:
            job_logger.removeHandler(handler)
        job_logger.addHandler(self._file_handler(f"{name}.log"))

        self._loggers[name] = job_logger
        return job_logger

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception with its traceback on a job logger."""
        text = f"{message}: {exception}" if message else str(exception)
        self.get_logger(logger_name).error(text, exc_info=exception)

    @property
    def app_logger(self):
        """Logger for CLI and application setup messages."""
        return self._app_logger

    def batch_start_log(self, process_name, additional_info=None):
        """Log the start of a batch job.

        Args:
            process_name: Job name, e.g. 'settlement_job'
            additional_info: Context such as company_id and day_key

        Returns:
            Handle to pass to batch_end_log
        """
        context = _format_context(additional_info)
        self.get_logger('batch').info(f"Starting {process_name} {context}".rstrip())
        return {
            'process_name': process_name,
            'context': context,
            'started': time.monotonic()
        }

    def batch_end_log(self, log_info, success=True, result_info=None):
        """Log the end of a batch job with its duration and result counts."""
        batch_logger = self.get_logger('batch')
        elapsed = time.monotonic() - log_info.get('started', time.monotonic())
        summary = (
            f"{log_info.get('process_name', 'batch')} {log_info.get('context', '')} "
            f"in {elapsed:.2f}s {_format_context(result_info)}"
        ).replace('  ', ' ').rstrip()

        if success:
            batch_logger.info(f"Completed {summary}")
        else:
            batch_logger.error(f"Failed {summary}")

# Global logger instance
logger = Logger()

def get_logger(name):
    """Get a job logger by short name."""
    return logger.get_logger(name)

def log_exception(logger_name, exception, message=None):
    """Log an exception with its traceback."""
    logger.log_exception(logger_name, exception, message)
