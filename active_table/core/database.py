"""
Database access handle.

Wraps a SQLAlchemy engine with the handful of facilities table gateways
consume: single-table selections, raw statements, schema introspection,
identifier quoting and truncation. Outside ``transaction()`` every call runs
in its own ``engine.begin()`` block and commits on return.
"""

import logging
import re
import threading
from collections.abc import Mapping
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from sqlalchemy import MetaData, Table, create_engine, inspect, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql.elements import TextClause

from ..config import DatabaseConfig
from ..exceptions import ActiveTableError, ConnectionError, ValidationError
from .selection import Selection

logger = logging.getLogger(__name__)

QueryResult = Union[List[Mapping], int]

# Quoted literals are matched first so a "?" inside them is left alone
_PLACEHOLDER = re.compile(r"""'(?:[^']|'')*'|"(?:[^"]|"")*"|\?""")


def bind_positional(statement: str, params: Sequence) -> Tuple[TextClause, Dict[str, Any]]:
    """Turn a ``?``-placeholder statement into a text clause with named binds.

    Raises:
        ValidationError: If the placeholder and parameter counts differ
    """
    names: List[str] = []

    def replace(match: "re.Match[str]") -> str:
        if match.group() != "?":
            return match.group()
        names.append(f"p{len(names)}")
        return f":{names[-1]}"

    rewritten = _PLACEHOLDER.sub(replace, statement)
    if len(names) != len(params):
        raise ValidationError(
            f"Statement has {len(names)} placeholder(s) but {len(params)} parameter(s) were given",
            {"statement": statement}
        )
    return text(rewritten), dict(zip(names, params))


class Database:
    """Database-access handle shared by table gateways."""

    def __init__(self, config: Optional[DatabaseConfig] = None, engine: Optional[Engine] = None):
        """Initialize the handle.

        Args:
            config: Database configuration; read from the environment when omitted
            engine: Ready-made engine to use instead of building one from config
        """
        self.config = config or DatabaseConfig.from_env()
        self._engine = engine
        self._tables: Dict[str, Table] = {}
        self._lock = threading.Lock()
        self._local = threading.local()

        if self.config.enable_debug_logging:
            logging.getLogger("active_table").setLevel(logging.DEBUG)

    @property
    def engine(self) -> Engine:
        """Lazy initialization of the SQLAlchemy engine."""
        if self._engine is None:
            try:
                engine_options: Dict[str, Any] = {
                    'echo': self.config.echo,
                    'pool_pre_ping': self.config.pool_pre_ping,
                    'pool_recycle': self.config.pool_recycle,
                }
                url = make_url(self.config.database_url)
                if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
                    # One shared connection keeps the in-memory database alive
                    engine_options['poolclass'] = StaticPool
                    engine_options['connect_args'] = {'check_same_thread': False}

                self._engine = create_engine(url, **engine_options)
                logger.info(f"Database engine initialized: {url.render_as_string(hide_password=True)}")
            except Exception as e:
                logger.error(f"Failed to create database engine: {e}")
                raise ConnectionError("Failed to create database engine", e) from e
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    # ------------------------------------------------------------------
    # Connections and transactions
    # ------------------------------------------------------------------

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Yield this thread's transaction connection, or a fresh autocommitting one."""
        connection = getattr(self._local, "connection", None)
        if connection is not None:
            yield connection
            return
        with self.engine.begin() as connection:
            yield connection

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Run every statement this thread issues through the handle in one transaction.

        Commits when the block exits normally, rolls back when it raises.
        Not re-entrant. Other threads keep their own connections meanwhile.
        """
        if getattr(self._local, "connection", None) is not None:
            raise ActiveTableError("A transaction is already active on this database handle")
        with self.engine.begin() as connection:
            self._local.connection = connection
            try:
                yield connection
            finally:
                self._local.connection = None

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def reflect(self, table_name: str) -> Table:
        """Return the reflected table, loading it on first use."""
        with self._lock:
            table = self._tables.get(table_name)
        if table is None:
            with self.connect() as connection:
                table = Table(table_name, MetaData(), autoload_with=connection)
            with self._lock:
                self._tables[table_name] = table
        return table

    def describe(self, table_name: str) -> List[str]:
        """Return the table's column names in schema order."""
        with self.connect() as connection:
            columns = [column['name'] for column in inspect(connection).get_columns(table_name)]
        logger.debug(f"Described {table_name}: {columns}")
        return columns

    def get_primary(self, table_name: str) -> Union[str, Tuple[str, ...], None]:
        """Return the primary-key column, a tuple for composite keys, or None."""
        columns = tuple(column.name for column in self.reflect(table_name).primary_key.columns)
        if not columns:
            return None
        if len(columns) == 1:
            return columns[0]
        return columns

    def quote_identifier(self, name: str) -> str:
        return self.engine.dialect.identifier_preparer.quote_identifier(name)

    def forget(self, table_name: Optional[str] = None) -> None:
        """Drop memoized reflection for one table, or for all of them."""
        with self._lock:
            if table_name is None:
                self._tables.clear()
            else:
                self._tables.pop(table_name, None)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def table(self, table_name: str) -> Selection:
        return Selection(self, self.reflect(table_name))

    def query(self, statement: str, *params: Any) -> QueryResult:
        """Execute a raw statement.

        A single mapping argument binds named ``:params``; any other arguments
        fill ``?`` placeholders in order.
        """
        if len(params) == 1 and isinstance(params[0], Mapping):
            return self.query_args(statement, params[0])
        return self.query_args(statement, params)

    def query_args(self, statement: str, params: Union[Mapping, Sequence, None] = None) -> QueryResult:
        """Execute a raw statement with an explicit parameter collection.

        Positional ``?`` placeholders are rewritten as bound parameters, so the
        same statement runs on any driver regardless of its paramstyle.

        Returns:
            Rows as mappings for row-returning statements, otherwise the
            affected row count
        """
        with self.connect() as connection:
            if isinstance(params, Mapping):
                result = connection.execute(text(statement), dict(params))
            elif params:
                result = connection.execute(*bind_positional(statement, params))
            else:
                result = connection.exec_driver_sql(statement)

            if result.returns_rows:
                return result.mappings().all()
            return result.rowcount

    def truncate(self, table_name: str) -> None:
        """Remove every row from a table."""
        quoted = self.quote_identifier(table_name)
        if self.dialect_name == "sqlite":
            statement = f"DELETE FROM {quoted}"
        else:
            statement = f"TRUNCATE TABLE {quoted}"
        with self.connect() as connection:
            connection.exec_driver_sql(statement)
        logger.info(f"Truncated table {table_name}")
