# tests/conftest.py
"""Shared fixtures: an in-memory Session test double backed by SQLite.

SQLite understands MySQL's backtick identifier quoting, ``?`` placeholders,
``is null`` and ``limit``, which is all the statements generated by
strictmysql need. Session variables and the reporting/typing flags are
simulated, and SQLite errors are re-raised as mysql.connector errors so the
layer sees exactly what the real driver would give it.
"""
import sqlite3
from collections import deque
from typing import Any, Dict, List, Optional, Sequence

import pytest
from mysql.connector import errors as mysql_errors

from strictmysql import NullQueryLogger, QueryLogger, Session, StrictDB
from strictmysql.session import PreparedStatement

LENIENT_SQL_MODE = "NO_ENGINE_SUBSTITUTION"


def to_driver_error(error: sqlite3.Error) -> mysql_errors.Error:
    if isinstance(error, sqlite3.IntegrityError):
        return mysql_errors.IntegrityError(msg=str(error), errno=1062, sqlstate="23000")
    return mysql_errors.ProgrammingError(msg=str(error), errno=1064, sqlstate="42000")


class SQLitePreparedStatement(PreparedStatement):
    def __init__(self, session: 'SQLiteSession', sql: str):
        self._session = session
        self._sql = sql
        self._cursor = session.connection.cursor()
        self._columns: List[str] = []
        self._rows: deque = deque()
        self._affected_rows = -1
        self._insert_id = None
        self.executions = 0
        self.closed = False

    @property
    def sql(self) -> str:
        return self._sql

    def bind_and_execute(self, types: Optional[str], values: Sequence[Any]) -> None:
        self._session.check_failure("execute", self._sql)
        self._session.executed.append((self._sql, tuple(values), types))
        try:
            if types:
                assert len(types) == len(values)
                self._cursor.execute(self._sql, tuple(values))
            else:
                self._cursor.execute(self._sql)
        except sqlite3.Error as e:
            raise to_driver_error(e) from e
        self.executions += 1
        self._affected_rows = self._cursor.rowcount
        self._insert_id = self._cursor.lastrowid
        self._columns = [column[0] for column in self._cursor.description or ()]
        self._rows.clear()
        if self._columns:
            self._rows.extend(self._cursor.fetchall())

    @property
    def affected_rows(self) -> int:
        return self._affected_rows

    @property
    def insert_id(self) -> Optional[int]:
        return self._insert_id

    def fetch_one(self):
        return dict(zip(self._columns, self._rows.popleft())) if self._rows else None

    def fetch_all(self):
        rows = [dict(zip(self._columns, values)) for values in self._rows]
        self._rows.clear()
        return rows

    def close(self) -> None:
        self.closed = True
        self._cursor.close()


class SQLiteSession(Session):
    def __init__(self):
        self.connection = sqlite3.connect(":memory:", isolation_level=None)
        self.variables: Dict[str, str] = {"sql_mode": LENIENT_SQL_MODE}
        self.strict_reporting = False
        self.native_numeric_typing = False
        self.failures: Dict[str, Any] = {}
        self.calls: List[tuple] = []
        self.executed: List[tuple] = []
        self.statements: List[SQLitePreparedStatement] = []

    def fail(self, operation: str, match: Optional[str] = None, error: Optional[Exception] = None) -> None:
        """Make the next matching ``operation`` raise a driver error"""
        self.failures[operation] = (match, error or mysql_errors.OperationalError(msg=f"{operation} failed", errno=2013))

    def check_failure(self, operation: str, argument: Any = None) -> None:
        if operation not in self.failures:
            return
        match, error = self.failures[operation]
        if match is None or (argument is not None and match in str(argument)):
            del self.failures[operation]
            raise error

    def setup(self, sql: str) -> None:
        """Run DDL or fixture data directly, bypassing the layer"""
        self.connection.executescript(sql)

    def count(self, table: str) -> int:
        return self.connection.execute(f"select count(*) from {table}").fetchone()[0]

    def prepare(self, sql: str) -> SQLitePreparedStatement:
        self.calls.append(("prepare", sql))
        self.check_failure("prepare", sql)
        statement = SQLitePreparedStatement(self, sql)
        self.statements.append(statement)
        return statement

    def query(self, sql: str):
        self.calls.append(("query", sql))
        self.check_failure("query", sql)
        try:
            cursor = self.connection.execute(sql)
        except sqlite3.Error as e:
            raise to_driver_error(e) from e
        if cursor.description:
            columns = [column[0] for column in cursor.description]
            return [dict(zip(columns, values)) for values in cursor.fetchall()]
        return True

    def begin_transaction(self) -> None:
        self.calls.append(("begin",))
        self.check_failure("begin")
        self.connection.execute("BEGIN")

    def commit(self) -> None:
        self.calls.append(("commit",))
        self.check_failure("commit")
        self.connection.execute("COMMIT")

    def rollback(self) -> None:
        self.calls.append(("rollback",))
        self.check_failure("rollback")
        self.connection.execute("ROLLBACK")

    def get_session_variable(self, name: str) -> Optional[str]:
        self.calls.append(("get_variable", name))
        self.check_failure("get_variable", name)
        return self.variables.get(name)

    def set_session_variable(self, name: str, value: str) -> None:
        self.calls.append(("set_variable", name, value))
        self.check_failure("set_variable", value)
        self.variables[name] = value

    def get_strict_reporting(self) -> bool:
        return self.strict_reporting

    def set_strict_reporting(self, enabled: bool) -> None:
        self.calls.append(("strict_reporting", enabled))
        self.strict_reporting = enabled

    def get_native_numeric_typing(self) -> bool:
        return self.native_numeric_typing

    def set_native_numeric_typing(self, enabled: bool) -> None:
        self.calls.append(("numeric_typing", enabled))
        self.native_numeric_typing = enabled

    def close(self) -> None:
        self.connection.close()

    def state(self):
        """The session configuration a guarded call must leave untouched"""
        return self.variables["sql_mode"], self.strict_reporting, self.native_numeric_typing


class RecordingQueryLogger(QueryLogger):
    def __init__(self):
        self.records = []

    def log(self, info) -> None:
        self.records.append(info)

    @property
    def statements(self) -> List[str]:
        return [record.sql for record in self.records]


@pytest.fixture
def session():
    session = SQLiteSession()
    session.setup("""
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name VARCHAR(255) NOT NULL,
            email VARCHAR(255) UNIQUE,
            active INTEGER DEFAULT 0,
            score REAL
        );
    """)
    yield session
    session.connection.close()


@pytest.fixture
def query_logger():
    return RecordingQueryLogger()


@pytest.fixture
def db(session, query_logger):
    return StrictDB(session, query_logger)


@pytest.fixture
def silent_db(session):
    return StrictDB(session, NullQueryLogger())
