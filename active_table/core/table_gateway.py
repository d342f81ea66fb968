"""
Active Table Gateway

Base class for table-specific data-access classes. A subclass maps to one
table and inherits conventional CRUD operations over it:

    class UserLoginLog(TableGateway):
        pass

    logs = UserLoginLog(database, cache)     # table "user_login_log"
    logs.insert({'user_id': 5, 'ip': '10.0.0.1', 'unexpected': 'dropped'})

The gateway adds three things on top of the database handle:

1. Table names derived from the class name when the subclass is declared
2. Column metadata loaded once per gateway class through a shared cache
3. Writes filtered against that column set, so stray request fields never
   reach an INSERT or UPDATE

Query building and execution stay with the database handle. Database errors
propagate unchanged; the gateway opens no transactions and retries nothing.
"""

import logging
import types
import weakref
from collections.abc import Mapping
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple, Type, Union

from pydantic import BaseModel

from ..exceptions import RowNotFoundError, ValidationError
from .cache import MetadataCache
from .database import Database, QueryResult
from .naming import columns_cache_key, derive_table_name
from .selection import ActiveRow, Selection

logger = logging.getLogger(__name__)

WriteData = Union[Mapping, BaseModel]

_NESTED_TYPES = (Mapping, list, tuple, set, frozenset, BaseModel)

_registry: "weakref.WeakValueDictionary[str, Type[TableGateway]]" = weakref.WeakValueDictionary()


def _is_empty(value: Any) -> bool:
    """True for values that mean "no key yet": None, "", "0", 0 and False."""
    if value is None:
        return True
    if isinstance(value, str):
        return value in ("", "0")
    if isinstance(value, (int, float)):
        return value == 0
    return False


class TableGateway:
    """
    Conventional CRUD gateway for one table.

    Class attributes a subclass may set:
    - table_name: explicit table name; derived from the class name otherwise
    - record_model: pydantic model describing a row, for typed writes
    - strict_columns: reject unknown fields instead of dropping them
      (defaults to the database configuration)

    Declaring ``abstract=True`` in the class statement keeps an intermediate
    base class out of the gateway registry.
    """

    table_name: ClassVar[str] = ""
    record_model: ClassVar[Optional[Type[BaseModel]]] = None
    strict_columns: ClassVar[Optional[bool]] = None

    _columns_cache_key: ClassVar[str] = ""

    def __init_subclass__(cls, abstract: bool = False, **kwargs):
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("table_name"):
            cls.table_name = derive_table_name(cls.__name__)
        qualified_name = f"{cls.__module__}.{cls.__qualname__}"
        cls._columns_cache_key = columns_cache_key(qualified_name)
        if not abstract:
            _registry[qualified_name] = cls

    def __init__(self, database: Database, cache: MetadataCache, strict_columns: Optional[bool] = None):
        """Initialize the gateway and load the table's column set.

        Args:
            database: Database-access handle
            cache: Metadata cache shared between gateway instances
            strict_columns: Override for the class/config strictness setting
        """
        if not self._columns_cache_key:
            raise TypeError("TableGateway must be subclassed for a concrete table")
        self.database = database
        self.cache = cache
        if strict_columns is None:
            strict_columns = self.strict_columns
        if strict_columns is None:
            strict_columns = database.config.strict_columns
        self._strict = strict_columns
        self.columns: FrozenSet[str] = self.get_table_columns()

    # ------------------------------------------------------------------
    # Table metadata
    # ------------------------------------------------------------------

    def get_table_name(self) -> str:
        return self.table_name

    def get_delimited_table_name(self) -> str:
        return self.database.quote_identifier(self.get_table_name())

    def get_table(self) -> Selection:
        """Return a fresh, unfiltered selection over the table."""
        return self.database.table(self.get_table_name())

    def get_primary(self) -> Union[str, Tuple[str, ...], None]:
        return self.database.get_primary(self.get_table_name())

    def get_table_columns(self) -> FrozenSet[str]:
        """Return the table's column names, introspecting only on a cache miss."""
        return self.cache.load(self._columns_cache_key, self._describe_columns)

    def _describe_columns(self) -> FrozenSet[str]:
        columns = frozenset(self.database.describe(self.get_table_name()))
        logger.debug(f"Loaded {len(columns)} columns for {self.get_table_name()}")
        return columns

    def _require_primary(self) -> str:
        primary = self.get_primary()
        if not isinstance(primary, str):
            raise ValidationError(
                f"Table '{self.get_table_name()}' needs a single-column primary key for this operation",
                {"primary_key": primary}
            )
        return primary

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_all(self) -> Selection:
        return self.get_table()

    def find_all_by(self, condition, *params: Any) -> Selection:
        return self.find_all().where(condition, *params)

    def find(self, id: Any) -> Selection:
        """Return a selection matching the row with primary key ``id``."""
        return self.find_all_by(f"{self.get_table_name()}.{self._require_primary()}", id)

    def find_by(self, condition, *params: Any) -> Optional[ActiveRow]:
        return self.find_all_by(condition, *params).limit(1).fetch()

    def get(self, id: Any) -> Optional[ActiveRow]:
        """Return the row with primary key ``id``, or None."""
        return self.get_table().get(id)

    def get_or_raise(self, id: Any) -> ActiveRow:
        """Return the row with primary key ``id``.

        Raises:
            RowNotFoundError: If no such row exists
        """
        row = self.get(id)
        if row is None:
            raise RowNotFoundError(self.get_table_name(), {self._require_primary(): id})
        return row

    def get_by(self, column: str, value: Any) -> Optional[ActiveRow]:
        return self.find_all_by(column, value).limit(1).fetch()

    def get_record(self, id: Any) -> Optional[BaseModel]:
        """Return the row with primary key ``id`` as a ``record_model`` instance, or None."""
        if self.record_model is None:
            raise TypeError(f"{type(self).__name__} declares no record_model")
        row = self.get(id)
        return row.to_model(self.record_model) if row is not None else None

    def row_exist(self, column: str, value: Any, exclude_id: Any = None) -> bool:
        """Check whether another row already holds ``value`` in ``column``.

        Args:
            column: Column to test
            value: Value to look for
            exclude_id: Primary key of the row being edited; None behaves as 0
        """
        primary = self._require_primary()
        selection = self.find_all().where(column, value).where(f"{primary} != ?", exclude_id or 0)
        return selection.fetch() is not None

    def row_exist_except(self, column: str, value: Any, except_value: Any) -> bool:
        selection = self.find_all_by({column: value, f"{column} != ?": except_value})
        return selection.limit(1).fetch() is not None

    def get_pairs(self, key: Optional[str] = None, value: str = "name") -> Dict[Any, Any]:
        """Return ``{primary key: name}`` for every row, ordered by name."""
        key = key or self._require_primary()
        return self.find_all().order(value).fetch_pairs(key, value)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def filter_columns(self, data: Mapping) -> Dict[str, Any]:
        """Keep scalar entries whose key is a column of this table.

        Nested values (mappings, sequences, models) are never written. Dropped
        entries are logged, or raise ValidationError in strict mode.
        """
        values = {}
        rejected = {}
        for key, value in data.items():
            if isinstance(value, _NESTED_TYPES):
                rejected[key] = "nested value"
            elif key not in self.columns:
                rejected[key] = "unknown column"
            else:
                values[key] = value

        if rejected:
            if self._strict:
                raise ValidationError(
                    f"Fields rejected for table '{self.get_table_name()}': {sorted(rejected)}",
                    rejected
                )
            logger.debug(f"Dropped fields for {self.get_table_name()}: {sorted(rejected)}")
        return values

    def _to_values(self, data: WriteData) -> Dict[str, Any]:
        if isinstance(data, BaseModel):
            return data.model_dump(exclude_unset=True)
        if isinstance(data, Mapping):
            return dict(data)
        raise TypeError(f"Expected a mapping or pydantic model, got {type(data).__name__}")

    def insert(self, data: WriteData) -> ActiveRow:
        """Insert a row built from the known columns of ``data``.

        An empty primary-key value is dropped so the database assigns one.
        """
        values = self.filter_columns(self._to_values(data))
        primary = self.get_primary()
        if isinstance(primary, str) and _is_empty(values.get(primary)):
            values.pop(primary, None)

        row = self.get_table().insert(values)
        logger.info(f"Inserted row into {self.get_table_name()}: {row.primary_value}")
        return row

    def update(self, data: WriteData) -> ActiveRow:
        """Update the row addressed by the primary key carried in ``data``.

        Raises:
            ValidationError: If ``data`` has no primary-key value
            RowNotFoundError: If no row has that primary key
        """
        primary = self._require_primary()
        values = self.filter_columns(self._to_values(data))
        key = values.pop(primary, None)
        if key is None or key == "":
            raise ValidationError(
                f"Cannot update '{self.get_table_name()}' without a value for primary key '{primary}'",
                {primary: "missing"}
            )

        row = self.get(key)
        if row is None:
            raise RowNotFoundError(self.get_table_name(), {primary: key})

        row.update(values)
        logger.info(f"Updated row in {self.get_table_name()}: {key}")
        return row

    def save(self, values: WriteData) -> ActiveRow:
        """Insert when the primary-key value is empty, update otherwise."""
        values = self._to_values(values)
        if _is_empty(values.get(self._require_primary())):
            return self.insert(values)
        return self.update(values)

    def delete(self, id: Any) -> int:
        """Delete the row with primary key ``id``; return the affected count."""
        affected = self.find_all().where(self._require_primary(), id).delete()
        logger.info(f"Deleted {affected} row(s) from {self.get_table_name()}: {id}")
        return affected

    def truncate(self) -> None:
        self.database.truncate(self.get_table_name())

    # ------------------------------------------------------------------
    # Raw statements
    # ------------------------------------------------------------------

    def query(self, statement: str, *params: Any) -> QueryResult:
        return self.database.query(statement, *params)

    def query_args(self, statement: str, params=None) -> QueryResult:
        return self.database.query_args(statement, params)


def registered_gateways() -> Dict[str, Type[TableGateway]]:
    """Return every live gateway class keyed by its qualified name.

    Classes are held weakly, so gateways declared inside a function drop out
    once nothing else references them.
    """
    return dict(_registry)


def create_table_gateway(
    database: Database,
    cache: MetadataCache,
    table_name: str,
    **options: Any
) -> TableGateway:
    """
    Factory function to create a gateway for a table without declaring a class.

    Args:
        database: Database-access handle
        cache: Metadata cache
        table_name: Table to wrap
        **options: Passed to the gateway constructor

    Returns:
        Gateway instance bound to ``table_name``
    """
    class_name = "".join(part.capitalize() for part in table_name.split("_")) or "Table"
    gateway_class = types.new_class(
        class_name,
        (TableGateway,),
        {"abstract": True},
        lambda namespace: namespace.update({
            "table_name": table_name,
            "__module__": __name__,
            "__qualname__": f"create_table_gateway.<{table_name}>",
        }),
    )
    # Class names collide for tables like item2/item_2; key on the raw table name
    gateway_class._columns_cache_key = f"{columns_cache_key(f'{__name__}.create_table_gateway')}[{table_name}]"
    return gateway_class(database, cache, **options)
