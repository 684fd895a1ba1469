# src/strictmysql/__init__.py
"""
Strict-mode safety layer for MySQL connections shared with lenient legacy code.

This package provides:
- A connection state guard switching the session into strict, exception-raising
  mode for the duration of each operation and restoring it afterwards
- Parameterized statements with bind types inferred from the runtime values
- Transactions with rollback on failure and nesting prevention
- Atomic bulk inserts validating that all records share one shape
- Identifier escaping and safe WHERE clause building

Architecture:
- StrictDB: Public query surface
- Session: Capability interface of the raw connection, MySQLSession implements
  it with mysql-connector-python
- QueryLogger: Sink receiving one QueryInfo per executed statement
"""

__version__ = "1.0.0"

from .config import MySQLConnectionConfig
from .database import StrictDB
from .errors import (
    ConfigurationError,
    DatabaseConnectionError,
    DeadlockError,
    IntegrityError,
    InvalidArgumentError,
    NestedTransactionError,
    NoMatchingRowFound,
    QueryError,
    StrictMySQLError,
    TransactionError,
)
from .escaping import build_conditions, escape_identifier, validate_column_names
from .guard import ConnectionStateGuard
from .session import MySQLSession, PreparedStatement, Session
from .statement import BoundStatement, StatementBuilder
from .telemetry import LoggingQueryLogger, NullQueryLogger, QueryInfo, QueryLogger
from .transaction import TransactionCoordinator, TransactionState


__all__ = [
    # Query surface
    'StrictDB',

    # Configuration
    'MySQLConnectionConfig',

    # Connection
    'Session',
    'PreparedStatement',
    'MySQLSession',

    # Core components
    'ConnectionStateGuard',
    'StatementBuilder',
    'BoundStatement',
    'TransactionCoordinator',
    'TransactionState',

    # Safety helpers
    'escape_identifier',
    'validate_column_names',
    'build_conditions',

    # Telemetry
    'QueryInfo',
    'QueryLogger',
    'NullQueryLogger',
    'LoggingQueryLogger',

    # Errors
    'StrictMySQLError',
    'InvalidArgumentError',
    'QueryError',
    'IntegrityError',
    'DeadlockError',
    'NoMatchingRowFound',
    'TransactionError',
    'NestedTransactionError',
    'ConfigurationError',
    'DatabaseConnectionError',
]
