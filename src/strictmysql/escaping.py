# src/strictmysql/escaping.py
"""Identifier escaping and safe condition building.

Identifiers only ever enter generated SQL through :func:`escape_identifier`.
Values only ever enter it as ``?`` placeholders. Identifiers are structurally
safe after escaping but are not allow-listed, so table and column names must
still come from trusted code.
"""
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

from .errors import InvalidArgumentError

IDENTIFIER_QUOTE = '`'
PLACEHOLDER = '?'


def escape_identifier(identifier: str) -> str:
    """Quote a table or column name for MySQL.

    Embedded backticks are doubled, so ``a`b`` becomes ```a``b```.
    """
    escaped = identifier.replace(IDENTIFIER_QUOTE, IDENTIFIER_QUOTE * 2)
    return f"{IDENTIFIER_QUOTE}{escaped}{IDENTIFIER_QUOTE}"


def validate_table_name(table: Any) -> None:
    if not isinstance(table, str) or table == '':
        raise InvalidArgumentError("A table name must be a non-empty string.")


def validate_column_names(names: Iterable[Any]) -> None:
    """Reject an empty collection or any entry that is not a non-empty string"""
    names = list(names)
    if not names:
        raise InvalidArgumentError("Column names can not be an empty collection.")

    for name in names:
        if not isinstance(name, str) or name == '':
            raise InvalidArgumentError("All column names must be non-empty strings.")


def build_conditions(conditions: Mapping[str, Any]) -> Tuple[List[str], List[Any]]:
    """Turn a column => value mapping into WHERE clauses and their bindings.

    ``None`` values produce an ``is null`` clause without a binding, every other
    value produces ``= ?`` with exactly one binding. An empty mapping is
    rejected so that updates and deletes can never run without a condition.

    Returns:
        Tuple[List[str], List[Any]]: The clauses (to be joined with ``and``)
        and the bindings in placeholder order.
    """
    if not conditions:
        raise InvalidArgumentError("Conditions can not be an empty mapping.")

    clauses = []
    bindings = []
    for column, value in conditions.items():
        if not isinstance(column, str) or column == '':
            raise InvalidArgumentError("A column name must be a non-empty string.")

        column = escape_identifier(column)
        if value is None:
            clauses.append(f"{column} is null")
        else:
            clauses.append(f"{column} = {PLACEHOLDER}")
            bindings.append(value)

    return clauses, bindings


def build_insert_sql(table: str, columns: Sequence[str]) -> str:
    """Build a single-row INSERT template for the given columns"""
    column_list = ','.join(escape_identifier(column) for column in columns)
    placeholders = ','.join(PLACEHOLDER for _ in columns)
    return f"insert into {escape_identifier(table)} ({column_list}) values ({placeholders})"
