# Base exception class
from .base import ActiveTableError

from .domain_exceptions import (
    ConnectionError,
    RowNotFound,
    RowNotFoundError,
    ValidationError,
)

__all__ = [
    # Base exception
    "ActiveTableError",

    # Domain exceptions (alphabetically ordered)
    "ConnectionError",
    "RowNotFound",
    "RowNotFoundError",
    "ValidationError",
]
