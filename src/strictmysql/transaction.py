# src/strictmysql/transaction.py
import logging
import time
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterator, Optional, TypeVar

from mysql.connector.errors import Error as MySQLError

from .errors import NestedTransactionError, QueryError, TransactionError
from .guard import ConnectionStateGuard
from .mixins import LoggingMixin
from .session import Session
from .statement import StatementBuilder

T = TypeVar('T')

BEGIN_SQL = 'START TRANSACTION'
COMMIT_SQL = 'COMMIT'
ROLLBACK_SQL = 'ROLLBACK'


class TransactionState(Enum):
    IDLE = "IDLE"
    ACTIVE = "ACTIVE"


class TransactionCoordinator(LoggingMixin):
    """Runs a unit of work in a single transaction on the session.

    Commits when the unit of work returns and rolls back when it, or the
    commit itself, raises. Transactions do not nest: a second begin while one
    is active is rejected without touching the connection.
    """

    _logger_suffix = "transaction"

    _TRANSITIONS: Dict[TransactionState, FrozenSet[TransactionState]] = {
        TransactionState.IDLE: frozenset({TransactionState.ACTIVE}),
        TransactionState.ACTIVE: frozenset({TransactionState.IDLE}),
    }

    def __init__(self, session: Session, guard: ConnectionStateGuard, builder: StatementBuilder,
                 logger: Optional[logging.Logger] = None):
        self._session = session
        self._guard = guard
        self._builder = builder
        self._state = TransactionState.IDLE
        self._init_logger(logger)

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state == TransactionState.ACTIVE

    def _can_transition(self, target: TransactionState) -> bool:
        return target in self._TRANSITIONS[self._state]

    def _transition(self, target: TransactionState) -> None:
        if not self._can_transition(target):
            raise TransactionError(f"Invalid transaction state transition: {self._state.value} -> {target.value}")
        self.log(logging.DEBUG, f"Transaction state {self._state.value} -> {target.value}")
        self._state = target

    def run(self, unit_of_work: Callable[[], T]) -> T:
        """Run ``unit_of_work`` in a transaction and return its result"""
        with self.transaction():
            return unit_of_work()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Context manager form of :meth:`run`.

        Raises:
            NestedTransactionError: If a transaction is already active
            QueryError: If the transaction can not be started or committed
        """
        if not self._can_transition(TransactionState.ACTIVE):
            self.log(logging.ERROR, "Nested transactions are not supported")
            raise NestedTransactionError("Nested transactions are currently not supported.")

        with self._guard.strict():
            self._begin()
            try:
                yield
                self._commit()
            except BaseException:
                self._rollback()
                raise

    def _begin(self) -> None:
        start = time.time()
        try:
            self._session.begin_transaction()
        except MySQLError as e:
            self.log(logging.ERROR, f"Failed to begin transaction: {e}")
            raise QueryError.from_driver_error(BEGIN_SQL, (), e) from e
        end = time.time()

        self._builder.emit(start, end, BEGIN_SQL)
        self._transition(TransactionState.ACTIVE)

    def _commit(self) -> None:
        start = time.time()
        try:
            self._session.commit()
        except MySQLError as e:
            self.log(logging.ERROR, f"Failed to commit transaction: {e}")
            raise QueryError.from_driver_error(COMMIT_SQL, (), e) from e
        end = time.time()

        self._transition(TransactionState.IDLE)
        self._builder.emit(start, end, COMMIT_SQL)

    def _rollback(self) -> None:
        # Runs while another exception is propagating: failures here are logged, never raised
        try:
            start = time.time()
            try:
                self._session.rollback()
            except Exception as e:
                self.log(logging.WARNING, f"Failed to rollback transaction: {e}")
                return
            end = time.time()

            try:
                self._builder.emit(start, end, ROLLBACK_SQL)
            except Exception as e:
                self.log(logging.WARNING, f"Failed to report rollback to the query logger: {e}")
        finally:
            if self.is_active:
                self._transition(TransactionState.IDLE)
