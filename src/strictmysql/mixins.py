# src/strictmysql/mixins.py
import logging
from typing import Optional

DEFAULT_LOGGER_NAME = "strictmysql"


class LoggingMixin:
    """Gives a component an optional logger and a ``log(level, msg)`` helper."""

    _logger_suffix: Optional[str] = None

    def _init_logger(self, logger: Optional[logging.Logger] = None) -> None:
        if logger is None:
            name = DEFAULT_LOGGER_NAME
            if self._logger_suffix:
                name = f"{name}.{self._logger_suffix}"
            logger = logging.getLogger(name)
        self._logger = logger

    @property
    def logger(self) -> logging.Logger:
        """Get the logger used by this component"""
        if getattr(self, '_logger', None) is None:
            self._init_logger()
        return self._logger

    @logger.setter
    def logger(self, logger: Optional[logging.Logger]) -> None:
        """Replace the logger, falling back to the default one"""
        self._init_logger(logger)

    def log(self, level: int, msg: str, *args, **kwargs) -> None:
        """Log a message at the given level"""
        self.logger.log(level, msg, *args, **kwargs)
