"""
Core components of the active-table layer.

- Database: handle over a SQLAlchemy engine
- Selection / ActiveRow: single-table query builder and fetched row
- TableGateway: conventional CRUD base class for table-specific gateways
- MetadataCache: load-or-compute cache for column metadata
"""

from .cache import InMemoryMetadataCache, MetadataCache
from .database import Database
from .naming import columns_cache_key, derive_table_name
from .selection import ActiveRow, Selection
from .table_gateway import TableGateway, create_table_gateway, registered_gateways

__all__ = [
    "ActiveRow",
    "Database",
    "InMemoryMetadataCache",
    "MetadataCache",
    "Selection",
    "TableGateway",
    "columns_cache_key",
    "create_table_gateway",
    "derive_table_name",
    "registered_gateways",
]
