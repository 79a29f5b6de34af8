from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    SimulationError, InvariantViolationError, SettlementError, SettlementPeriodError,
    CalendarError, TransactionTimeoutError
)

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'SimulationError',
    'InvariantViolationError',
    'SettlementError',
    'SettlementPeriodError',
    'CalendarError',
    'TransactionTimeoutError'
]
