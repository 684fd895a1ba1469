# src/strictmysql/bulk.py
import logging
from typing import Any, Iterable, List, Mapping, Optional

from .errors import InvalidArgumentError
from .escaping import build_insert_sql, validate_column_names, validate_table_name
from .mixins import LoggingMixin
from .statement import BoundStatement, StatementBuilder, describe_types
from .transaction import TransactionCoordinator


class BulkInserter(LoggingMixin):
    """Inserts a batch of records through one prepared statement in one transaction."""

    _logger_suffix = "bulk"

    def __init__(self, builder: StatementBuilder, transactions: TransactionCoordinator,
                 logger: Optional[logging.Logger] = None):
        self._builder = builder
        self._transactions = transactions
        self._init_logger(logger)

    def insert(self, table: str, records: Iterable[Mapping[str, Any]]) -> int:
        """Insert all records or none of them.

        The first record defines the batch shape: its keys become the column
        list and the types of its values the expected type tags. Every record
        must match both; values are bound in the first record's column order.

        Returns:
            int: The sum of the affected-row counts reported by the driver.
            For plain inserts this equals the number of records.

        Raises:
            InvalidArgumentError: If a record is empty or differs in shape from
                the first one. Nothing is committed in that case.
            QueryError: If an insert fails. Nothing is committed in that case.
        """
        validate_table_name(table)
        return self._transactions.run(lambda: self._insert_all(table, records))

    def _insert_all(self, table: str, records: Iterable[Mapping[str, Any]]) -> int:
        bound: Optional[BoundStatement] = None
        columns: Optional[List[str]] = None
        expected_types = None
        inserted = 0

        try:
            for index, record in enumerate(records, start=1):
                if not isinstance(record, Mapping) or not record:
                    raise InvalidArgumentError(f"Each record has to be a non-empty mapping (record {index}).")

                if columns is None:
                    columns = list(record.keys())
                    validate_column_names(columns)
                elif set(record.keys()) != set(columns):
                    raise InvalidArgumentError(
                        "Records are not of consistent shape.\nExpected columns: [{}] and got [{}] for record {}.".format(
                            ','.join(columns), ','.join(str(key) for key in record.keys()), index
                        )
                    )

                values = [record[column] for column in columns]

                try:
                    # one prepared statement for the whole batch
                    if bound is None:
                        bound = self._builder.prepare(build_insert_sql(table, columns), values)
                        expected_types = bound.types
                    else:
                        bound.rebind(values)
                except InvalidArgumentError as e:
                    raise InvalidArgumentError(f"{e} Invalid value for record {index}.") from e

                if bound.types != expected_types:
                    raise InvalidArgumentError(
                        "Records are not of consistent type.\nExpected: [{}] and got [{}] for record {}.".format(
                            describe_types(expected_types), describe_types(bound.types), index
                        )
                    )

                self._builder.execute(bound)
                inserted += bound.affected_rows
        finally:
            if bound is not None:
                bound.close()

        self.log(logging.DEBUG, f"Bulk inserted {inserted} rows into {table}")
        return inserted
