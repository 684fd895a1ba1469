# src/strictmysql/telemetry.py
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class QueryInfo:
    """Timing and content of one executed statement.

    ``start`` and ``end`` are Unix timestamps taken right around the execute
    step of the statement.
    """
    start: float
    end: float
    sql: str
    bindings: Tuple[Any, ...] = ()

    @property
    def duration(self) -> float:
        return self.end - self.start


class QueryLogger(ABC):
    """Sink receiving one QueryInfo per executed statement"""

    @abstractmethod
    def log(self, info: QueryInfo) -> None:
        pass


class NullQueryLogger(QueryLogger):
    """Default sink, discards every record"""

    def log(self, info: QueryInfo) -> None:
        pass


class LoggingQueryLogger(QueryLogger):
    """Writes every executed statement to a standard library logger"""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.DEBUG):
        self._logger = logger or logging.getLogger("strictmysql.queries")
        self._level = level

    def log(self, info: QueryInfo) -> None:
        self._logger.log(
            self._level,
            "Executed query in %.3fms: %s with bindings %r",
            info.duration * 1000, info.sql, list(info.bindings)
        )
