"""
Single-table selections and active rows.

A Selection is a lazily executed, chainable query over one reflected table.
Builder calls (where/order/limit) return a new Selection and never touch the
receiver; nothing reaches the database until a terminal call such as
fetch(), fetch_all(), count(), insert(), update() or delete().

Conditions accepted by ``where``:

- ``"name"`` with one value: equality, ``IN`` for list/tuple/set values,
  ``IS NULL`` for None
- ``"name != ?"`` with one value; operators ``= != <> < <= > >= LIKE``,
  ``NOT LIKE``, ``IN`` and ``NOT IN``
- a mapping of such conditions to values, AND-ed together
- a SQLAlchemy column expression
- any other string: a raw SQL fragment, with named ``:params`` given as one
  mapping
"""

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import Table, delete, func, insert, select, text, update
from sqlalchemy.sql.elements import ClauseElement

from ..exceptions import ValidationError

if TYPE_CHECKING:
    from .database import Database

M = TypeVar('M', bound=BaseModel)

_COLUMN = r"[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)?"
_IDENTIFIER = re.compile(rf"^\s*(?P<column>{_COLUMN})\s*$")
_OPERATOR_CONDITION = re.compile(
    rf"^\s*(?P<column>{_COLUMN})\s*"
    r"(?P<op>=|!=|<>|<=|>=|<|>|NOT\s+LIKE|LIKE|NOT\s+IN|IN)\s*\?\s*$",
    re.IGNORECASE,
)
_ORDER = re.compile(rf"^\s*(?P<column>{_COLUMN})(?:\s+(?P<direction>ASC|DESC))?\s*$", re.IGNORECASE)

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


class Selection:
    """Chainable query builder over a single table."""

    def __init__(
        self,
        database: 'Database',
        table: Table,
        criteria: Tuple[ClauseElement, ...] = (),
        ordering: Tuple[ClauseElement, ...] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ):
        self.database = database
        self.table = table
        self._criteria = criteria
        self._ordering = ordering
        self._limit = limit
        self._offset = offset

    @property
    def name(self) -> str:
        return self.table.name

    def _copy(self, **changes) -> 'Selection':
        state = {
            'criteria': self._criteria,
            'ordering': self._ordering,
            'limit': self._limit,
            'offset': self._offset,
        }
        state.update(changes)
        return Selection(self.database, self.table, **state)

    def _column(self, name: str):
        table_name, _, column_name = name.rpartition(".")
        if table_name and table_name != self.table.name:
            raise ValidationError(
                f"Column '{name}' does not belong to table '{self.table.name}'",
                {name: "foreign table qualifier"}
            )
        try:
            return self.table.c[column_name]
        except KeyError:
            raise ValidationError(
                f"Unknown column '{column_name}' in table '{self.table.name}'",
                {column_name: "unknown column"}
            ) from None

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def where(self, condition: Union[str, Mapping, ClauseElement], *params: Any) -> 'Selection':
        """Return a copy filtered by ``condition`` (see module docstring)."""
        return self._copy(criteria=self._criteria + tuple(self._build_criteria(condition, params)))

    def order(self, *columns: Union[str, ClauseElement]) -> 'Selection':
        """Return a copy ordered by ``columns`` (``"name"`` or ``"name DESC"``)."""
        clauses = []
        for column in columns:
            if isinstance(column, ClauseElement):
                clauses.append(column)
                continue
            match = _ORDER.match(column)
            if not match:
                raise ValidationError(f"Invalid order clause: {column!r}", {str(column): "invalid order clause"})
            target = self._column(match.group("column"))
            direction = (match.group("direction") or "ASC").upper()
            clauses.append(target.desc() if direction == "DESC" else target.asc())
        return self._copy(ordering=self._ordering + tuple(clauses))

    def limit(self, limit: int, offset: Optional[int] = None) -> 'Selection':
        return self._copy(limit=limit, offset=offset if offset is not None else self._offset)

    def _build_criteria(self, condition, params: Tuple[Any, ...]) -> List[ClauseElement]:
        if isinstance(condition, Mapping):
            if params:
                raise ValidationError("Mapping conditions take their values from the mapping", {"params": params})
            criteria = []
            for key, value in condition.items():
                criteria.extend(self._build_criteria(key, (value,)))
            return criteria

        if isinstance(condition, ClauseElement):
            return [condition]

        if not isinstance(condition, str):
            raise TypeError(f"Unsupported condition type: {type(condition).__name__}")

        match = _OPERATOR_CONDITION.match(condition)
        if match:
            value = self._single_param(condition, params)
            operator = " ".join(match.group("op").upper().split())
            return [_compare(self._column(match.group("column")), operator, value)]

        match = _IDENTIFIER.match(condition)
        if match:
            value = self._single_param(condition, params)
            return [_compare(self._column(match.group("column")), "=", value)]

        clause = text(condition)
        if params:
            if len(params) != 1 or not isinstance(params[0], Mapping):
                raise ValidationError(
                    f"Raw condition {condition!r} takes its parameters as a single mapping",
                    {"params": params}
                )
            clause = clause.bindparams(**params[0])
        return [clause]

    @staticmethod
    def _single_param(condition: str, params: Tuple[Any, ...]) -> Any:
        if len(params) != 1:
            raise ValidationError(
                f"Condition {condition!r} expects exactly one value, got {len(params)}",
                {condition: "expects one value"}
            )
        return params[0]

    def _select_statement(self):
        statement = select(self.table)
        if self._criteria:
            statement = statement.where(*self._criteria)
        if self._ordering:
            statement = statement.order_by(*self._ordering)
        if self._limit is not None:
            statement = statement.limit(self._limit)
        if self._offset is not None:
            statement = statement.offset(self._offset)
        return statement

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_primary(self) -> Union[str, Tuple[str, ...], None]:
        return self.database.get_primary(self.table.name)

    def fetch_all(self) -> List['ActiveRow']:
        with self.database.connect() as connection:
            rows = connection.execute(self._select_statement()).mappings().all()
        return [ActiveRow(self.database, self.table, row) for row in rows]

    def fetch(self) -> Optional['ActiveRow']:
        """Return the first matching row, or None."""
        with self.database.connect() as connection:
            row = connection.execute(self._select_statement().limit(1)).mappings().first()
        if row is None:
            return None
        return ActiveRow(self.database, self.table, row)

    def __iter__(self) -> Iterator['ActiveRow']:
        return iter(self.fetch_all())

    def count(self) -> int:
        statement = select(func.count()).select_from(self.table)
        if self._criteria:
            statement = statement.where(*self._criteria)
        with self.database.connect() as connection:
            return connection.execute(statement).scalar_one()

    def get(self, key: Any) -> Optional['ActiveRow']:
        """Return the row with primary key ``key``, or None."""
        primary = self._single_primary()
        return self.where(self.table.c[primary] == key).fetch()

    def fetch_pairs(self, key: str, value: Optional[str] = None) -> Dict[Any, Any]:
        """Map ``key`` to ``value`` over the selection, keeping row order.

        When ``value`` is omitted, each key maps to its whole row.
        """
        pairs = {}
        for row in self.fetch_all():
            pairs[row[key]] = row if value is None else row[value]
        return pairs

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, data: Mapping) -> 'ActiveRow':
        """Insert one row and return it as stored."""
        values = dict(data)
        primary = self.get_primary()
        with self.database.connect() as connection:
            statement = insert(self.table)
            if values:
                statement = statement.values(values)
            result = connection.execute(statement)
            if not isinstance(primary, str):
                return ActiveRow(self.database, self.table, values)

            key = values.get(primary)
            if key is None and result.inserted_primary_key:
                key = result.inserted_primary_key[0]
            row = connection.execute(
                select(self.table).where(self.table.c[primary] == key)
            ).mappings().first()
        return ActiveRow(self.database, self.table, row if row is not None else values)

    def update(self, data: Mapping) -> int:
        """Apply ``data`` to every selected row; return the affected count."""
        values = dict(data)
        if not values:
            return 0
        statement = update(self.table).values(values)
        if self._criteria:
            statement = statement.where(*self._criteria)
        with self.database.connect() as connection:
            return connection.execute(statement).rowcount

    def delete(self) -> int:
        """Delete every selected row; return the affected count."""
        statement = delete(self.table)
        if self._criteria:
            statement = statement.where(*self._criteria)
        with self.database.connect() as connection:
            return connection.execute(statement).rowcount

    def _single_primary(self) -> str:
        primary = self.get_primary()
        if not isinstance(primary, str):
            raise ValidationError(
                f"Table '{self.table.name}' needs a single-column primary key for this operation",
                {"primary_key": primary}
            )
        return primary

    def __repr__(self) -> str:
        return f"Selection(table={self.table.name!r}, criteria={len(self._criteria)}, limit={self._limit!r})"


class ActiveRow(Mapping):
    """A fetched row that can write changes back to its table.

    Behaves as a read-only mapping of column name to value; columns are also
    reachable as attributes when they do not clash with a method name.
    """

    def __init__(self, database: 'Database', table: Table, data: Mapping):
        self._database = database
        self._table = table
        self._data = dict(data)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self):
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getattr__(self, name: str) -> Any:
        data = self.__dict__.get('_data', {})
        try:
            return data[name]
        except KeyError:
            raise AttributeError(name) from None

    @property
    def table_name(self) -> str:
        return self._table.name

    @property
    def primary_value(self) -> Any:
        primary = self._database.get_primary(self._table.name)
        if isinstance(primary, str):
            return self._data.get(primary)
        if primary:
            return tuple(self._data.get(column) for column in primary)
        return None

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def to_model(self, model_class: Type[M]) -> M:
        return model_class.model_validate(self._data)

    def _identity(self) -> Tuple[str, Selection]:
        selection = Selection(self._database, self._table)
        primary = selection._single_primary()
        if self._data.get(primary) is None:
            raise ValidationError(
                f"Row of '{self._table.name}' has no primary key value",
                {primary: "missing"}
            )
        return primary, selection.where(self._table.c[primary] == self._data[primary])

    def update(self, data: Mapping) -> bool:
        """Write ``data`` to this row and refresh it.

        Returns:
            True when the database reported a matching row
        """
        values = dict(data)
        if not values:
            return False
        primary, selection = self._identity()
        affected = selection.update(values)
        if affected:
            self._data.update(values)
            refreshed = Selection(self._database, self._table).get(self._data[primary])
            if refreshed is not None:
                self._data = refreshed.to_dict()
        return affected > 0

    def delete(self) -> int:
        _, selection = self._identity()
        return selection.delete()

    def __repr__(self) -> str:
        return f"ActiveRow(table={self._table.name!r}, data={self._data!r})"


def _compare(column, operator: str, value: Any) -> ClauseElement:
    if operator == "=":
        if value is None:
            return column.is_(None)
        if isinstance(value, _SEQUENCE_TYPES):
            return column.in_(list(value))
        return column == value
    if operator in ("!=", "<>"):
        if value is None:
            return column.is_not(None)
        if isinstance(value, _SEQUENCE_TYPES):
            return column.not_in(list(value))
        return column != value
    if operator == "IN":
        return column.in_(list(value) if isinstance(value, _SEQUENCE_TYPES) else [value])
    if operator == "NOT IN":
        return column.not_in(list(value) if isinstance(value, _SEQUENCE_TYPES) else [value])
    if operator == "LIKE":
        return column.like(value)
    if operator == "NOT LIKE":
        return column.not_like(value)
    if operator == "<":
        return column < value
    if operator == "<=":
        return column <= value
    if operator == ">":
        return column > value
    return column >= value
