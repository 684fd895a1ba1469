# src/strictmysql/config.py
"""MySQL connection configuration

This module provides the connection configuration used to bootstrap a
strict-mode session from scratch. Callers that already own a connection (for
example one shared with legacy code) wrap it directly and never need this.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from mysql.connector.constants import ClientFlag

DEFAULT_STRICT_SQL_MODE = "TRADITIONAL"


@dataclass
class MySQLConnectionConfig:
    """MySQL connection configuration.

    Besides the driver connection parameters this carries the options of the
    strict-mode layer itself (``strict_sql_mode``, ``log_queries``,
    ``log_level``), which are never passed to the driver.
    """

    host: str = "localhost"
    port: int = 3306
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    charset: str = "utf8mb4"
    collation: Optional[str] = None

    # MySQL-specific connection options
    autocommit: bool = True
    connect_timeout: Optional[int] = 10
    use_pure: bool = True
    ssl_disabled: Optional[bool] = None

    # Report matched rows instead of changed rows for UPDATE statements
    found_rows: bool = False

    # Strict-mode layer options
    strict_sql_mode: str = DEFAULT_STRICT_SQL_MODE
    log_queries: bool = False
    log_level: int = logging.INFO

    options: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to driver keyword arguments for ``mysql.connector.connect``."""
        params = {
            'host': self.host,
            'port': self.port,
            'database': self.database,
            'user': self.username,
            'password': self.password,
            'charset': self.charset,
            'collation': self.collation,
            'autocommit': self.autocommit,
            'connection_timeout': self.connect_timeout,
            'use_pure': self.use_pure,
            'ssl_disabled': self.ssl_disabled,
        }

        # Only include non-None values
        config_dict = {key: value for key, value in params.items() if value is not None}

        if not self.found_rows:
            config_dict['client_flags'] = [-ClientFlag.FOUND_ROWS]

        config_dict.update(self.options)
        return config_dict

    @classmethod
    def from_env(cls, **overrides) -> 'MySQLConnectionConfig':
        """Build a config from the MYSQL_* environment variables."""
        params: Dict[str, Any] = {
            'host': os.getenv('MYSQL_HOST', 'localhost'),
            'port': int(os.getenv('MYSQL_PORT', 3306)),
            'database': os.getenv('MYSQL_DATABASE'),
            'username': os.getenv('MYSQL_USER', 'root'),
            'password': os.getenv('MYSQL_PASSWORD', ''),
            'charset': os.getenv('MYSQL_CHARSET', 'utf8mb4'),
        }
        params.update(overrides)
        return cls(**params)
