"""
Active Table

A convention-over-configuration table gateway for SQL databases, built on
SQLAlchemy Core and Pydantic. Subclass TableGateway once per table to get
CRUD operations, cached column metadata and over-posting protection.
"""

from .config import DatabaseConfig
from .exceptions import (
    ActiveTableError,
    ConnectionError,
    RowNotFound,
    RowNotFoundError,
    ValidationError,
)
from .core import (
    ActiveRow,
    Database,
    InMemoryMetadataCache,
    MetadataCache,
    Selection,
    TableGateway,
    columns_cache_key,
    create_table_gateway,
    derive_table_name,
    registered_gateways,
)

__version__ = "1.0.0"
__all__ = [
    # Configuration
    "DatabaseConfig",

    # Exceptions
    "ActiveTableError",
    "ConnectionError",
    "RowNotFound",
    "RowNotFoundError",
    "ValidationError",

    # Database access
    "ActiveRow",
    "Database",
    "Selection",

    # Metadata caching
    "InMemoryMetadataCache",
    "MetadataCache",

    # Gateways
    "TableGateway",
    "columns_cache_key",
    "create_table_gateway",
    "derive_table_name",
    "registered_gateways",
]
