"""
Domain-specific exceptions for the active-table layer.

Database errors raised by SQLAlchemy during query execution are not wrapped;
they reach the caller unchanged. The exceptions here cover what the gateway
itself decides is wrong:

1. Input validation (unknown columns in strict mode, missing primary key)
2. Rows that must exist but do not
3. Engine construction failures
"""

from typing import Any, Dict, Optional

from .base import ActiveTableError


# =============================================================================
# Data Validation Errors
# =============================================================================

class ValidationError(ActiveTableError):
    """Raised when gateway input is rejected.

    Used for:
    - Unknown or nested fields when strict column checking is on
    - Updates without a primary key value
    - Conditions naming a column the table does not have
    """

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None, original_error: Optional[Exception] = None):
        """Initialize validation error.

        Args:
            message: Human-readable error message
            errors: Dictionary of field-level validation errors
            original_error: The original exception that caused this error
        """
        self.errors = errors or {}
        context = {
            'validation_errors': self.errors
        }
        super().__init__(message, original_error, context)


# =============================================================================
# Row Not Found Errors
# =============================================================================

class RowNotFoundError(ActiveTableError):
    """Raised when a row addressed by primary key does not exist.

    Used for:
    - update() against a primary key with no row behind it
    - get_or_raise() lookups
    """

    def __init__(self, table_name: str, key: dict, original_error: Optional[Exception] = None):
        """Initialize row not found error.

        Args:
            table_name: Name of the table
            key: The primary key mapping that was not found
            original_error: The original exception that caused this error
        """
        self.table_name = table_name
        self.key = key
        message = f"Row not found in table '{table_name}' with key: {key}"
        context = {
            'table_name': table_name,
            'key': key
        }
        super().__init__(message, original_error, context)


RowNotFound = RowNotFoundError


# =============================================================================
# Infrastructure Errors
# =============================================================================

class ConnectionError(ActiveTableError):
    """Raised when the database engine cannot be created.

    Used for:
    - Malformed database URLs
    - Missing DBAPI drivers
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, original_error, context)
