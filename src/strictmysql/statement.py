# src/strictmysql/statement.py
"""Parameterized statements with runtime bind-type inference."""
import logging
import time
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from mysql.connector.errors import Error as MySQLError

from .errors import InvalidArgumentError, QueryError
from .mixins import LoggingMixin
from .session import PreparedStatement, Row, Session
from .telemetry import NullQueryLogger, QueryInfo, QueryLogger

TYPE_INTEGER = 'i'
TYPE_DOUBLE = 'd'
TYPE_STRING = 's'

_TYPE_NAMES = {
    TYPE_STRING: 'string',
    TYPE_DOUBLE: 'double',
    TYPE_INTEGER: 'integer',
}

_SCALAR_TYPES = (bool, int, float, str)


def convert_bindings(bindings: Sequence[Any]) -> List[Any]:
    """Validate bindings and normalize booleans to 1/0.

    Raises:
        InvalidArgumentError: If a binding is not a scalar or None
    """
    converted = []
    for binding in bindings:
        if binding is not None and not isinstance(binding, _SCALAR_TYPES):
            raise InvalidArgumentError(
                f"All bindings have to be of type bool, int, float, str or None, "
                f"got {type(binding).__name__}."
            )
        if isinstance(binding, bool):
            binding = 1 if binding else 0
        converted.append(binding)
    return converted


def infer_type(value: Any) -> str:
    # bool is an int subclass, so it lands on the integer tag once normalized
    if isinstance(value, float):
        return TYPE_DOUBLE
    if isinstance(value, int):
        return TYPE_INTEGER
    return TYPE_STRING


def infer_types(bindings: Sequence[Any]) -> Optional[str]:
    """One type tag per binding, or None when there is nothing to bind"""
    types = ''.join(infer_type(binding) for binding in bindings)
    return types or None


def describe_types(types: Optional[str]) -> str:
    """Readable form of a tag sequence, e.g. ``string,integer``"""
    return ','.join(_TYPE_NAMES[tag] for tag in (types or ''))


class BoundStatement:
    """A prepared statement together with its current, type-tagged bindings.

    Result access (``fetch_one``, ``fetch_all``, iteration) reads from the
    underlying driver statement. Callers that keep a BoundStatement should
    ``close()`` it once done.
    """

    def __init__(self, statement: PreparedStatement, bindings: Sequence[Any] = ()):
        self._statement = statement
        self._bindings: Tuple[Any, ...] = ()
        self._types: Optional[str] = None
        self.rebind(bindings)

    def rebind(self, bindings: Sequence[Any]) -> 'BoundStatement':
        """Replace the bindings, recomputing their type tags"""
        self._bindings = tuple(convert_bindings(bindings))
        self._types = infer_types(self._bindings)
        return self

    @property
    def sql(self) -> str:
        return self._statement.sql

    @property
    def bindings(self) -> Tuple[Any, ...]:
        return self._bindings

    @property
    def types(self) -> Optional[str]:
        return self._types

    @property
    def affected_rows(self) -> int:
        return self._statement.affected_rows

    @property
    def insert_id(self) -> Optional[int]:
        return self._statement.insert_id

    def fetch_one(self) -> Optional[Row]:
        return self._statement.fetch_one()

    def fetch_all(self) -> List[Row]:
        return self._statement.fetch_all()

    def __iter__(self) -> Iterator[Row]:
        while True:
            row = self._statement.fetch_one()
            if row is None:
                return
            yield row

    def close(self) -> None:
        self._statement.close()

    def _execute(self) -> None:
        self._statement.bind_and_execute(self._types, self._bindings)


class StatementBuilder(LoggingMixin):
    """Prepares and executes statements, reporting each execution to the query logger."""

    _logger_suffix = "statement"

    def __init__(self, session: Session, query_logger: Optional[QueryLogger] = None,
                 logger: Optional[logging.Logger] = None):
        self._session = session
        self._query_logger = query_logger or NullQueryLogger()
        self._init_logger(logger)

    @property
    def query_logger(self) -> QueryLogger:
        return self._query_logger

    def emit(self, start: float, end: float, sql: str, bindings: Sequence[Any] = ()) -> None:
        """Hand one telemetry record to the query logger"""
        self._query_logger.log(QueryInfo(start, end, sql, tuple(bindings)))

    def prepare(self, sql: str, bindings: Sequence[Any] = ()) -> BoundStatement:
        """Validate the bindings and prepare ``sql`` on the connection.

        Raises:
            InvalidArgumentError: If a binding is not a scalar or None
            QueryError: If the driver fails to prepare the statement
        """
        bindings = convert_bindings(bindings)
        try:
            statement = self._session.prepare(sql)
        except MySQLError as e:
            raise QueryError.from_driver_error(sql, bindings, e) from e
        return BoundStatement(statement, bindings)

    def execute(self, bound: BoundStatement) -> BoundStatement:
        """Execute a bound statement; only successful executions are reported."""
        start = time.time()
        try:
            bound._execute()
        except MySQLError as e:
            self.log(logging.DEBUG, f"Query failed: {bound.sql} ({e})")
            raise QueryError.from_driver_error(bound.sql, bound.bindings, e) from e
        end = time.time()

        self.emit(start, end, bound.sql, bound.bindings)
        return bound

    def run(self, sql: str, bindings: Sequence[Any] = ()) -> BoundStatement:
        """Prepare and execute in one step"""
        return self.execute(self.prepare(sql, bindings))

    def run_unprepared(self, sql: str):
        """Execute raw SQL without bindings through the session's text protocol"""
        start = time.time()
        try:
            result = self._session.query(sql)
        except MySQLError as e:
            raise QueryError.from_driver_error(sql, (), e) from e
        end = time.time()

        self.emit(start, end, sql)
        return result
