# src/strictmysql/guard.py
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from mysql.connector.errors import Error as MySQLError

from .config import DEFAULT_STRICT_SQL_MODE
from .errors import ConfigurationError
from .mixins import LoggingMixin
from .session import Session

T = TypeVar('T')

SQL_MODE = 'sql_mode'


class ConnectionStateGuard(LoggingMixin):
    """Switches a session into strict mode for the duration of an operation.

    On the outermost entry the guard remembers the session's ``sql_mode``
    (once per guard, see :meth:`reset_snapshot`) together with the current
    strict-reporting and numeric-typing flags, then turns all three strict.
    Nested entries run directly. When the outermost entry exits, by return
    or by exception, everything is put back the way it was found.

    The guard is plain instance state and not thread-safe. Nothing else may
    change the session configuration while the guard is active.
    """

    _logger_suffix = "guard"

    def __init__(self, session: Session, strict_sql_mode: str = DEFAULT_STRICT_SQL_MODE,
                 logger: Optional[logging.Logger] = None):
        self._session = session
        self._strict_sql_mode = strict_sql_mode
        self._original_sql_mode: Optional[str] = None
        self._depth = 0
        self._init_logger(logger)

    @property
    def active(self) -> bool:
        """True while a strict-mode operation is in flight"""
        return self._depth > 0

    @property
    def snapshot(self) -> Optional[str]:
        """The sql_mode captured on first entry, None until then"""
        return self._original_sql_mode

    def reset_snapshot(self) -> None:
        """Forget the captured sql_mode so the next outermost entry reads it again"""
        if self.active:
            raise ConfigurationError("Cannot reset the sql_mode snapshot while the guard is active.")
        self._original_sql_mode = None

    def run(self, operation: Callable[[], T]) -> T:
        """Run ``operation`` in strict mode and return its result"""
        with self.strict():
            return operation()

    @contextmanager
    def strict(self) -> Iterator[None]:
        if self._depth > 0:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        previous = self._enter()
        self._depth = 1
        try:
            yield
        finally:
            try:
                self._restore(*previous)
            finally:
                self._depth = 0

    def _read_original_sql_mode(self) -> str:
        try:
            mode = self._session.get_session_variable(SQL_MODE)
        except MySQLError as e:
            self.log(logging.ERROR, f"Could not determine current sql_mode: {e}")
            raise ConfigurationError("Could not determine current sql_mode.") from e

        if not isinstance(mode, str):
            self.log(logging.ERROR, "Could not determine current sql_mode: no value returned")
            raise ConfigurationError("Could not determine current sql_mode.")
        return mode

    def _enter(self):
        if self._original_sql_mode is None:
            self._original_sql_mode = self._read_original_sql_mode()
            self.log(logging.DEBUG, f"Captured original sql_mode '{self._original_sql_mode}'")

        numeric_typing = self._session.get_native_numeric_typing()
        strict_reporting = self._session.get_strict_reporting()

        self._session.set_native_numeric_typing(True)
        self._session.set_strict_reporting(True)
        try:
            self._session.set_session_variable(SQL_MODE, self._strict_sql_mode)
        except MySQLError as e:
            self._session.set_native_numeric_typing(numeric_typing)
            self._session.set_strict_reporting(strict_reporting)
            self.log(logging.ERROR, f"Could not set sql_mode to '{self._strict_sql_mode}': {e}")
            raise ConfigurationError(f"Could not set mysql error reporting to {self._strict_sql_mode}.") from e

        self.log(logging.DEBUG, f"Strict mode enabled (sql_mode='{self._strict_sql_mode}')")
        return numeric_typing, strict_reporting

    def _restore(self, numeric_typing: bool, strict_reporting: bool) -> None:
        self._session.set_native_numeric_typing(numeric_typing)
        self._session.set_strict_reporting(strict_reporting)
        try:
            self._session.set_session_variable(SQL_MODE, self._original_sql_mode)
        except MySQLError as e:
            self.log(logging.ERROR, f"Could not restore sql_mode to '{self._original_sql_mode}': {e}")
            raise ConfigurationError("Could not restore the original sql_mode.") from e

        self.log(logging.DEBUG, f"Strict mode disabled (sql_mode='{self._original_sql_mode}')")
