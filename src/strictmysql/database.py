# src/strictmysql/database.py
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, TypeVar, Union

from .bulk import BulkInserter
from .config import DEFAULT_STRICT_SQL_MODE, MySQLConnectionConfig
from .errors import InvalidArgumentError, NoMatchingRowFound
from .escaping import (
    build_conditions,
    build_insert_sql,
    escape_identifier,
    validate_column_names,
    validate_table_name,
)
from .guard import ConnectionStateGuard
from .mixins import LoggingMixin
from .session import MySQLSession, Row, Session
from .statement import BoundStatement, StatementBuilder
from .telemetry import LoggingQueryLogger, QueryLogger
from .transaction import TransactionCoordinator

T = TypeVar('T')

Scalar = Union[bool, int, float, str, None]


class StrictDB(LoggingMixin):
    """Strict, parameterized access to a connection shared with lenient legacy code.

    Every public method switches the session into strict mode for its own
    duration and restores the previous configuration afterwards, so code that
    uses the same connection outside of this class keeps its lenient behaviour.

    Table and column names are escaped but never allow-listed: they must come
    from trusted code, never from user input. Values are always bound.
    """

    _logger_suffix = "db"

    def __init__(self, session: Session, query_logger: Optional[QueryLogger] = None,
                 strict_sql_mode: str = DEFAULT_STRICT_SQL_MODE, logger: Optional[logging.Logger] = None):
        self._session = session
        self._init_logger(logger)
        self._builder = StatementBuilder(session, query_logger)
        self._guard = ConnectionStateGuard(session, strict_sql_mode)
        self._transactions = TransactionCoordinator(session, self._guard, self._builder)
        self._bulk = BulkInserter(self._builder, self._transactions)

    @classmethod
    def from_config(cls, config: MySQLConnectionConfig, query_logger: Optional[QueryLogger] = None,
                    logger: Optional[logging.Logger] = None) -> 'StrictDB':
        """Open a new MySQL connection and wrap it"""
        if query_logger is None and config.log_queries:
            query_logger = LoggingQueryLogger(level=config.log_level)
        session = MySQLSession.connect(config, logger)
        return cls(session, query_logger, config.strict_sql_mode, logger)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def guard(self) -> ConnectionStateGuard:
        return self._guard

    @property
    def in_transaction(self) -> bool:
        return self._transactions.is_active

    def close(self) -> None:
        """Close the underlying session"""
        self._session.close()

    def prepared_query(self, sql: str, bindings: Sequence[Scalar] = ()) -> BoundStatement:
        """Prepare and execute ``sql`` with ``bindings``.

        The returned statement gives access to the affected rows, the insert id
        and any result rows.

        Raises:
            InvalidArgumentError: If a binding is not a scalar or None
            QueryError: If the statement fails
        """
        return self._guard.run(lambda: self._builder.run(sql, bindings))

    def unprepared(self, sql: str) -> Union[List[Row], bool]:
        """Run SQL without bindings; result rows, or True for statements without a result set"""
        return self._guard.run(lambda: self._builder.run_unprepared(sql))

    def transactional(self, callback: Callable[['StrictDB'], T]) -> T:
        """Run ``callback`` in a transaction that commits on success and rolls back on any error.

        The callback receives this instance. Nested calls raise
        NestedTransactionError and leave the outer transaction untouched.
        """
        return self._transactions.run(lambda: callback(self))

    @contextmanager
    def transaction(self) -> Iterator['StrictDB']:
        """Context manager form of :meth:`transactional`"""
        with self._transactions.transaction():
            yield self

    def select(self, sql: str, bindings: Sequence[Scalar] = ()) -> BoundStatement:
        return self.prepared_query(sql, bindings)

    def select_all(self, sql: str, bindings: Sequence[Scalar] = ()) -> List[Row]:
        """Return the entire result set as a list of rows"""
        statement = self.select(sql, bindings)
        try:
            return statement.fetch_all()
        finally:
            statement.close()

    def select_row(self, sql: str, bindings: Sequence[Scalar] = ()) -> Row:
        """Return the first row of the result; booleans come back as 1 or 0.

        Raises:
            NoMatchingRowFound: If the query returned no row
        """
        row = self._first_row(sql, bindings)
        if row is None:
            raise NoMatchingRowFound("No matching row found", sql, bindings)
        return row

    def select_value(self, sql: str, bindings: Sequence[Scalar] = ()) -> Any:
        """Return the first column of the first row"""
        row = self.select_row(sql, bindings)
        return next(iter(row.values()), None)

    def select_lazy(self, sql: str, bindings: Sequence[Scalar] = ()) -> Iterator[Row]:
        """Yield rows one at a time.

        The statement runs guarded and its result is buffered on the client,
        so the session is back in its original mode before the first row is
        yielded. Stopping early needs no cleanup beyond dropping the generator.
        """
        statement = self.select(sql, bindings)
        try:
            yield from statement
        finally:
            statement.close()

    def exists(self, table: str, conditions: Mapping[str, Scalar]) -> bool:
        """Check whether at least one row matches all conditions (None matches NULL)"""
        validate_table_name(table)
        validate_column_names(conditions.keys())

        wheres, bindings = build_conditions(conditions)
        sql = f"select 1 from {escape_identifier(table)} where {' and '.join(wheres)} limit 1"

        return self._first_row(sql, bindings) is not None

    def insert(self, table: str, data: Mapping[str, Scalar]) -> BoundStatement:
        """Insert one row.

        Keys of ``data`` are column names and must never be user provided.
        The returned statement carries ``insert_id`` and ``affected_rows``.
        """
        validate_table_name(table)
        columns = list(data.keys())
        validate_column_names(columns)

        statement = self.prepared_query(build_insert_sql(table, columns), list(data.values()))
        statement.close()
        return statement

    def update(self, table: str, conditions: Mapping[str, Scalar], changes: Mapping[str, Scalar]) -> int:
        """Update all rows matching ``conditions``; returns the affected row count.

        Keys of ``changes`` and ``conditions`` must never be user provided.
        """
        validate_table_name(table)
        validate_column_names(conditions.keys())
        validate_column_names(changes.keys())

        updates = [f"{escape_identifier(column)} = ?" for column in changes.keys()]
        wheres, where_bindings = build_conditions(conditions)

        sql = f"update {escape_identifier(table)} set {', '.join(updates)} where {' and '.join(wheres)}"
        return self._affected_rows(sql, [*changes.values(), *where_bindings])

    def update_by_primary(self, table: str, primary_key: Union[int, str, Mapping[str, Scalar]],
                          changes: Mapping[str, Scalar]) -> int:
        """Update one row by primary key.

        A scalar ``primary_key`` targets the ``id`` column, a mapping is used
        as the full (possibly composite) key.
        """
        if primary_key == '':
            raise InvalidArgumentError("The primary key can not be an empty string.")

        conditions: Dict[str, Any] = dict(primary_key) if isinstance(primary_key, Mapping) else {'id': primary_key}
        return self.update(table, conditions, changes)

    def delete(self, table: str, conditions: Mapping[str, Scalar]) -> int:
        """Delete all rows matching ``conditions``; returns the number of deleted rows"""
        validate_table_name(table)

        wheres, bindings = build_conditions(conditions)
        sql = f"delete from {escape_identifier(table)} where {' and '.join(wheres)}"
        return self._affected_rows(sql, bindings)

    def bulk_insert(self, table: str, records: Iterable[Mapping[str, Scalar]]) -> int:
        """Insert all records in one transaction, or none if any of them fails.

        See :meth:`BulkInserter.insert` for the shape rules and the returned count.
        """
        return self._bulk.insert(table, records)

    def _first_row(self, sql: str, bindings: Sequence[Scalar]) -> Optional[Row]:
        statement = self.select(sql, bindings)
        try:
            return statement.fetch_one()
        finally:
            statement.close()

    def _affected_rows(self, sql: str, bindings: Sequence[Scalar]) -> int:
        statement = self.prepared_query(sql, bindings)
        try:
            return statement.affected_rows
        finally:
            statement.close()
