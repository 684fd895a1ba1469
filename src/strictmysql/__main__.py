# src/strictmysql/__main__.py
import argparse
import datetime
import decimal
import json
import logging
import os
import sys

from .config import DEFAULT_STRICT_SQL_MODE, MySQLConnectionConfig
from .database import StrictDB
from .errors import DatabaseConnectionError, InvalidArgumentError, QueryError

# Configure basic logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Execute a SQL statement against MySQL in strict mode.",
        formatter_class=argparse.RawTextHelpFormatter
    )

    # Connection parameters with defaults from environment variables
    parser.add_argument(
        '--host',
        default=os.getenv('MYSQL_HOST', 'localhost'),
        help='Database host (default: MYSQL_HOST environment variable or localhost)'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=int(os.getenv('MYSQL_PORT', 3306)),
        help='Database port (default: MYSQL_PORT environment variable or 3306)'
    )
    parser.add_argument(
        '--database',
        default=os.getenv('MYSQL_DATABASE'),
        help='Database name (optional, default: MYSQL_DATABASE environment variable)'
    )
    parser.add_argument(
        '--user',
        default=os.getenv('MYSQL_USER', 'root'),
        help='Database user (default: MYSQL_USER environment variable or root)'
    )
    parser.add_argument(
        '--password',
        default=os.getenv('MYSQL_PASSWORD', ''),
        help='Database password (default: MYSQL_PASSWORD environment variable or empty string)'
    )
    parser.add_argument(
        '--charset',
        default=os.getenv('MYSQL_CHARSET', 'utf8mb4'),
        help='Connection charset (default: MYSQL_CHARSET environment variable or utf8mb4)'
    )
    parser.add_argument(
        '--sql-mode',
        default=DEFAULT_STRICT_SQL_MODE,
        help=f'sql_mode used while the statement runs (default: {DEFAULT_STRICT_SQL_MODE})'
    )

    parser.add_argument(
        'query',
        help='SQL statement to execute. Must be enclosed in quotes. Use ? for bound values.'
    )
    parser.add_argument(
        '--params',
        default=None,
        help='JSON array of values bound to the ? placeholders, e.g. \'[1, "Ada", null]\''
    )
    parser.add_argument('--log-queries', action='store_true', help='Log every executed statement')
    parser.add_argument('--log-level', default='INFO', help='Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)')

    return parser.parse_args(argv)


def json_serializer(obj):
    """Handles serialization of types not supported by default JSON encoder."""
    if isinstance(obj, (datetime.datetime, datetime.date)):
        return obj.isoformat()
    if isinstance(obj, datetime.timedelta):
        return str(obj)
    if isinstance(obj, decimal.Decimal):
        return str(obj)
    if isinstance(obj, (bytes, bytearray)):
        return obj.decode('utf-8', errors='replace')
    raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")


def print_rows(rows):
    if not rows:
        logger.info("No data returned.")
        return
    logger.info("Results:")
    for row in rows:
        print(json.dumps(row, indent=2, ensure_ascii=False, default=json_serializer))


def execute_query(args, db):
    if args.params is None:
        result = db.unprepared(args.query)
        if result is True:
            logger.info("Statement executed successfully.")
        else:
            print_rows(result)
        return

    params = json.loads(args.params)
    if not isinstance(params, list):
        raise InvalidArgumentError("--params must be a JSON array")

    statement = db.prepared_query(args.query, params)
    try:
        rows = statement.fetch_all()
        logger.info(f"Statement executed successfully. Affected rows: {statement.affected_rows}")
        print_rows(rows)
    finally:
        statement.close()


def main(argv=None):
    args = parse_args(argv)

    # Set logging level
    numeric_level = getattr(logging, args.log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {args.log_level}')
    logging.getLogger().setLevel(numeric_level)

    config = MySQLConnectionConfig(
        host=args.host,
        port=args.port,
        database=args.database,
        username=args.user,
        password=args.password,
        charset=args.charset,
        strict_sql_mode=args.sql_mode,
        log_queries=args.log_queries,
        log_level=logging.INFO,
    )

    try:
        db = StrictDB.from_config(config)
    except DatabaseConnectionError as e:
        logger.error(f"Database connection error: {e}")
        return 1

    try:
        logger.info(f"Executing query: {args.query}")
        execute_query(args, db)
    except (InvalidArgumentError, json.JSONDecodeError) as e:
        logger.error(f"Invalid input: {e}")
        return 2
    except QueryError as e:
        logger.error(f"Database query error: {e}")
        return 1
    finally:
        db.close()
        logger.info("Disconnected from database.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
