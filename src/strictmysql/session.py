# src/strictmysql/session.py
"""Raw connection capability consumed by the strict-mode layer.

:class:`Session` is the only surface the core talks to. :class:`MySQLSession`
implements it on top of a ``mysql.connector`` connection. Every method may
raise a native ``mysql.connector.Error``; converting those into the package's
error taxonomy is the job of the callers, which know the SQL and bindings.
"""
import logging
import re
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Sequence, Union

import mysql.connector
from mysql.connector.errors import Error as MySQLError

from .config import MySQLConnectionConfig
from .errors import DatabaseConnectionError, InvalidArgumentError
from .mixins import LoggingMixin

Row = Dict[str, Any]

_VARIABLE_NAME = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


class PreparedStatement(ABC):
    """A statement prepared once on the server and executable many times"""

    @property
    @abstractmethod
    def sql(self) -> str:
        pass

    @abstractmethod
    def bind_and_execute(self, types: Optional[str], values: Sequence[Any]) -> None:
        """Execute with the given values; ``types`` holds one tag per value, or None for no bindings"""

    @property
    @abstractmethod
    def affected_rows(self) -> int:
        pass

    @property
    @abstractmethod
    def insert_id(self) -> Optional[int]:
        pass

    @abstractmethod
    def fetch_one(self) -> Optional[Row]:
        pass

    @abstractmethod
    def fetch_all(self) -> List[Row]:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class Session(ABC):
    """Capability interface of the underlying database connection"""

    @abstractmethod
    def prepare(self, sql: str) -> PreparedStatement:
        pass

    @abstractmethod
    def query(self, sql: str) -> Union[List[Row], bool]:
        """Run an unprepared statement; result rows, or True when it yields none"""

    @abstractmethod
    def begin_transaction(self) -> None:
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass

    @abstractmethod
    def get_session_variable(self, name: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_session_variable(self, name: str, value: str) -> None:
        pass

    @abstractmethod
    def get_strict_reporting(self) -> bool:
        pass

    @abstractmethod
    def set_strict_reporting(self, enabled: bool) -> None:
        pass

    @abstractmethod
    def get_native_numeric_typing(self) -> bool:
        pass

    @abstractmethod
    def set_native_numeric_typing(self, enabled: bool) -> None:
        pass

    def close(self) -> None:
        """Release the connection; sessions wrapping a borrowed connection keep it open"""


def _coerce(tag: str, value: Any) -> Any:
    if value is None:
        return None
    if tag == 'i':
        return int(value)
    if tag == 'd':
        return float(value)
    return str(value)


class MySQLPreparedStatement(PreparedStatement):
    """Server-side prepared statement backed by a ``cursor(prepared=True)``.

    The whole result is read right after execution, which leaves the
    connection free for the next statement (the guard's restoring ``SET``
    included) while rows are still being consumed.
    """

    def __init__(self, connection, sql: str):
        self._sql = sql
        self._cursor = connection.cursor(prepared=True)
        self._columns: Sequence[str] = ()
        self._rows: Deque[tuple] = deque()
        self._affected_rows = -1
        self._insert_id: Optional[int] = None

    @property
    def sql(self) -> str:
        return self._sql

    def bind_and_execute(self, types: Optional[str], values: Sequence[Any]) -> None:
        self._rows.clear()
        if types:
            if len(types) != len(values):
                raise ValueError(f"Got {len(types)} type tags for {len(values)} values")
            params = tuple(_coerce(tag, value) for tag, value in zip(types, values))
            self._cursor.execute(self._sql, params)
        else:
            self._cursor.execute(self._sql)

        self._affected_rows = self._cursor.rowcount
        self._insert_id = self._cursor.lastrowid
        self._columns = tuple(self._cursor.column_names or ())
        if self._cursor.with_rows:
            self._rows.extend(self._cursor.fetchall())

    @property
    def affected_rows(self) -> int:
        return self._affected_rows

    @property
    def insert_id(self) -> Optional[int]:
        return self._insert_id

    def _to_row(self, values) -> Row:
        return dict(zip(self._columns, values))

    def fetch_one(self) -> Optional[Row]:
        return self._to_row(self._rows.popleft()) if self._rows else None

    def fetch_all(self) -> List[Row]:
        rows = [self._to_row(values) for values in self._rows]
        self._rows.clear()
        return rows

    def close(self) -> None:
        self._rows.clear()
        self._cursor.close()


class MySQLSession(LoggingMixin, Session):
    """Session over a ``mysql.connector`` connection.

    Strict reporting maps to the connection's ``raise_on_warnings`` flag,
    native numeric typing to the inverse of its ``raw`` flag.
    """

    _logger_suffix = "session"

    def __init__(self, connection, logger: Optional[logging.Logger] = None):
        self._connection = connection
        self._owns_connection = False
        self._get_warnings_default = bool(connection.get_warnings)
        self._init_logger(logger)

    @classmethod
    def connect(cls, config: MySQLConnectionConfig, logger: Optional[logging.Logger] = None) -> 'MySQLSession':
        """Open a new connection described by ``config``"""
        try:
            connection = mysql.connector.connect(**config.to_dict())
        except MySQLError as e:
            raise DatabaseConnectionError(f"Failed to connect to MySQL: {e}") from e

        session = cls(connection, logger)
        session._owns_connection = True
        session.log(logging.INFO, f"Connected to MySQL at {config.host}:{config.port}")
        return session

    @property
    def connection(self):
        """The wrapped driver connection"""
        return self._connection

    def close(self) -> None:
        """Close the connection if this session opened it"""
        if not self._owns_connection:
            return
        self._connection.close()
        self.log(logging.INFO, "Disconnected from MySQL")

    def prepare(self, sql: str) -> MySQLPreparedStatement:
        return MySQLPreparedStatement(self._connection, sql)

    def query(self, sql: str) -> Union[List[Row], bool]:
        cursor = self._connection.cursor(buffered=True, dictionary=True)
        try:
            cursor.execute(sql)
            if cursor.with_rows:
                return list(cursor.fetchall())
            return True
        finally:
            cursor.close()

    def begin_transaction(self) -> None:
        self._connection.start_transaction()

    def commit(self) -> None:
        self._connection.commit()

    def rollback(self) -> None:
        self._connection.rollback()

    @staticmethod
    def _check_variable_name(name: str) -> None:
        if not _VARIABLE_NAME.match(name):
            raise InvalidArgumentError(f"Invalid session variable name: {name!r}")

    def get_session_variable(self, name: str) -> Optional[str]:
        self._check_variable_name(name)
        cursor = self._connection.cursor(buffered=True)
        try:
            cursor.execute(f"SELECT @@SESSION.{name}")
            row = cursor.fetchone()
        finally:
            cursor.close()

        if not row:
            return None
        value = row[0]
        if isinstance(value, (bytes, bytearray)):
            value = value.decode('utf-8')
        return value if isinstance(value, str) else None

    def set_session_variable(self, name: str, value: str) -> None:
        self._check_variable_name(name)
        cursor = self._connection.cursor()
        try:
            cursor.execute(f"SET SESSION {name} = %s", (value,))
        finally:
            cursor.close()

    def get_strict_reporting(self) -> bool:
        return bool(self._connection.raise_on_warnings)

    def set_strict_reporting(self, enabled: bool) -> None:
        self._connection.raise_on_warnings = enabled
        if not enabled:
            self._connection.get_warnings = self._get_warnings_default

    def get_native_numeric_typing(self) -> bool:
        return not self._connection.raw

    def set_native_numeric_typing(self, enabled: bool) -> None:
        self._connection.raw = not enabled
