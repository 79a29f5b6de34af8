class SimulationError(Exception):
    """Base exception for Warehouse Sales Simulation errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Warehouse Sales Simulation"
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


class ConfigError(SimulationError):
    """Exception raised for configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class DatabaseError(SimulationError):
    """Exception raised for database-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Database error"
        super().__init__(message, code, details)


class ValidationError(SimulationError):
    """Exception raised for data validation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class NotFoundError(SimulationError):
    """Exception raised when a requested resource is not found."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Resource not found"
        super().__init__(message, code, details)


class CalendarError(SimulationError):
    """Exception raised for malformed day keys or strict calendar lookups."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Calendar error"
        super().__init__(message, code, details)


class InvariantViolationError(SimulationError):
    """Exception raised when persisted state is inconsistent.

    Never coerced; the surrounding transaction is rolled back and the tick
    needs operator investigation before it is attempted again.
    """

    def __init__(self, message=None, code=None, details=None):
        message = message or "Invariant violation"
        super().__init__(message, code, details)


class SettlementError(SimulationError):
    """Exception raised for settlement-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Settlement error"
        super().__init__(message, code, details)


class SettlementPeriodError(SettlementError):
    """Exception raised when a payout day has no canonical settlement period."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "No settlement period for payout day"
        super().__init__(message, code, details)


class BatchProcessError(SimulationError):
    """Exception raised for batch process errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Batch process error"
        super().__init__(message, code, details)


class TransactionTimeoutError(SimulationError):
    """Exception raised when a transactional unit exceeds its time ceiling."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Transaction timed out"
        super().__init__(message, code, details)
