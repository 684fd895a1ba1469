# src/strictmysql/errors.py
"""Error taxonomy of the strict-mode layer.

Every error raised by this package derives from :class:`StrictMySQLError`.
Driver errors never escape unwrapped from a statement execution: they are
converted into :class:`QueryError` (or one of its subclasses) carrying the SQL
text and the bindings that produced them.
"""
from typing import Any, Optional, Sequence, Tuple

from mysql.connector.errors import (
    Error as MySQLError,
    IntegrityError as MySQLIntegrityError,
)

# MySQL server error codes with a dedicated error class
ER_DUP_ENTRY = 1062
ER_NO_REFERENCED_ROW_2 = 1452
ER_LOCK_WAIT_TIMEOUT = 1205
ER_LOCK_DEADLOCK = 1213


class StrictMySQLError(Exception):
    """Base class for all errors raised by strictmysql"""


class InvalidArgumentError(StrictMySQLError, ValueError):
    """Input rejected before any statement reached the connection"""


class ConfigurationError(StrictMySQLError, RuntimeError):
    """The session error mode could not be read, switched or restored.

    The connection should be considered unusable for the current unit of work.
    """


class TransactionError(StrictMySQLError):
    """Invalid transaction state transition"""


class NestedTransactionError(TransactionError):
    """A transaction was requested while another one is active"""


class QueryError(StrictMySQLError):
    """A statement failed on the connection.

    Attributes:
        sql: The SQL text that failed
        bindings: The bindings sent with the statement
        errno: MySQL error number reported by the driver, if any
        sqlstate: SQLSTATE reported by the driver, if any
    """

    def __init__(self, message: str, sql: str, bindings: Sequence[Any] = (),
                 errno: Optional[int] = None, sqlstate: Optional[str] = None):
        super().__init__(message)
        self.sql = sql
        self.bindings: Tuple[Any, ...] = tuple(bindings)
        self.errno = errno
        self.sqlstate = sqlstate

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base}\nQuery: [{self.sql}]\nBindings: [{_format_bindings(self.bindings)}]"

    @classmethod
    def from_driver_error(cls, sql: str, bindings: Sequence[Any], error: MySQLError) -> 'QueryError':
        """Wrap a driver error, picking the most specific subclass for its error number"""
        errno = getattr(error, 'errno', None)
        sqlstate = getattr(error, 'sqlstate', None)
        message = getattr(error, 'msg', None) or str(error)

        if errno in (ER_LOCK_WAIT_TIMEOUT, ER_LOCK_DEADLOCK):
            error_cls = DeadlockError
        elif errno in (ER_DUP_ENTRY, ER_NO_REFERENCED_ROW_2) or isinstance(error, MySQLIntegrityError):
            error_cls = IntegrityError
        else:
            error_cls = QueryError

        return error_cls(message, sql, bindings, errno=errno, sqlstate=sqlstate)


class IntegrityError(QueryError):
    """Unique or foreign key constraint violation"""


class DeadlockError(QueryError):
    """Deadlock or lock wait timeout"""


class DatabaseConnectionError(StrictMySQLError):
    """Could not open a connection to the MySQL server"""


class NoMatchingRowFound(StrictMySQLError):
    """A single-row fetch returned no row; the query itself succeeded"""

    def __init__(self, message: str, sql: str, bindings: Sequence[Any] = ()):
        super().__init__(message)
        self.sql = sql
        self.bindings: Tuple[Any, ...] = tuple(bindings)

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base}\nQuery: [{self.sql}]\nBindings: [{_format_bindings(self.bindings)}]"


def _format_bindings(bindings: Sequence[Any]) -> str:
    return ", ".join(repr(binding) for binding in bindings)
