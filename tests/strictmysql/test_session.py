# tests/strictmysql/test_session.py
from unittest.mock import MagicMock, patch

import pytest
from mysql.connector import errors as mysql_errors

from strictmysql import DatabaseConnectionError, InvalidArgumentError, MySQLConnectionConfig, MySQLSession
from strictmysql.session import MySQLPreparedStatement


@pytest.fixture
def cursor():
    cursor = MagicMock()
    cursor.rowcount = 1
    cursor.lastrowid = 42
    cursor.column_names = ("id", "name")
    cursor.with_rows = False
    cursor.fetchall.return_value = []
    return cursor


@pytest.fixture
def connection(cursor):
    connection = MagicMock()
    connection.cursor.return_value = cursor
    connection.get_warnings = False
    connection.raise_on_warnings = False
    connection.raw = False
    return connection


def test_prepared_statement_coerces_values_by_tag(connection, cursor):
    statement = MySQLPreparedStatement(connection, "insert into t (a,b,c,d) values (?,?,?,?)")

    statement.bind_and_execute("idss", [True, 2, 3, None])

    connection.cursor.assert_called_once_with(prepared=True)
    cursor.execute.assert_called_once_with("insert into t (a,b,c,d) values (?,?,?,?)", (1, 2.0, "3", None))
    assert statement.affected_rows == 1
    assert statement.insert_id == 42


def test_prepared_statement_without_bindings(connection, cursor):
    statement = MySQLPreparedStatement(connection, "select 1")

    statement.bind_and_execute(None, [])

    cursor.execute.assert_called_once_with("select 1")


def test_prepared_statement_rejects_tag_count_mismatch(connection, cursor):
    statement = MySQLPreparedStatement(connection, "select ?")

    with pytest.raises(ValueError):
        statement.bind_and_execute("ii", [1])

    cursor.execute.assert_not_called()


def test_statement_reads_all_rows_on_execute(connection, cursor):
    cursor.with_rows = True
    cursor.fetchall.return_value = [(1, "Ada"), (2, "Grace")]
    statement = MySQLPreparedStatement(connection, "select id, name from users")

    statement.bind_and_execute(None, [])
    cursor.fetchall.assert_called_once_with()

    assert statement.fetch_one() == {"id": 1, "name": "Ada"}
    assert statement.fetch_all() == [{"id": 2, "name": "Grace"}]
    assert statement.fetch_one() is None


def test_results_survive_cursor_close(connection, cursor):
    statement = MySQLPreparedStatement(connection, "insert into users (name) values (?)")
    statement.bind_and_execute("s", ["Ada"])

    cursor.rowcount = -1
    cursor.lastrowid = None
    statement.close()

    assert statement.affected_rows == 1
    assert statement.insert_id == 42


def test_rows_remain_readable_after_other_statements(connection, cursor):
    cursor.with_rows = True
    cursor.fetchall.return_value = [(1, "Ada"), (2, "Grace")]
    statement = MySQLPreparedStatement(connection, "select id, name from users")
    statement.bind_and_execute(None, [])
    assert statement.fetch_one() == {"id": 1, "name": "Ada"}

    session = MySQLSession(connection)
    session.set_session_variable("sql_mode", "NO_ENGINE_SUBSTITUTION")

    assert statement.fetch_one() == {"id": 2, "name": "Grace"}
    cursor.fetchone.assert_not_called()


def test_get_session_variable(connection, cursor):
    cursor.fetchone.return_value = (b"NO_ENGINE_SUBSTITUTION",)
    session = MySQLSession(connection)

    assert session.get_session_variable("sql_mode") == "NO_ENGINE_SUBSTITUTION"
    cursor.execute.assert_called_once_with("SELECT @@SESSION.sql_mode")


def test_get_session_variable_without_string_value(connection, cursor):
    cursor.fetchone.return_value = (None,)

    assert MySQLSession(connection).get_session_variable("sql_mode") is None


def test_set_session_variable_binds_value(connection, cursor):
    MySQLSession(connection).set_session_variable("sql_mode", "TRADITIONAL")

    cursor.execute.assert_called_once_with("SET SESSION sql_mode = %s", ("TRADITIONAL",))
    cursor.close.assert_called_once_with()


@pytest.mark.parametrize("name", ["sql_mode; drop table users", "", "1abc", "a.b"])
def test_invalid_variable_names_are_rejected(connection, cursor, name):
    session = MySQLSession(connection)

    with pytest.raises(InvalidArgumentError):
        session.set_session_variable(name, "x")

    cursor.execute.assert_not_called()


def test_strict_reporting_maps_to_raise_on_warnings(connection):
    session = MySQLSession(connection)

    session.set_strict_reporting(True)
    assert connection.raise_on_warnings is True
    assert session.get_strict_reporting()

    session.set_strict_reporting(False)
    assert connection.raise_on_warnings is False
    assert connection.get_warnings is False


def test_native_numeric_typing_maps_to_raw(connection):
    session = MySQLSession(connection)

    assert session.get_native_numeric_typing()
    session.set_native_numeric_typing(False)
    assert connection.raw is True
    assert not session.get_native_numeric_typing()


def test_query_returns_rows_or_true(connection, cursor):
    session = MySQLSession(connection)

    cursor.with_rows = True
    cursor.fetchall.return_value = [{"one": 1}]
    assert session.query("select 1 as one") == [{"one": 1}]
    connection.cursor.assert_called_with(buffered=True, dictionary=True)

    cursor.with_rows = False
    assert session.query("do 1") is True
    assert cursor.close.call_count == 2


def test_transaction_calls(connection):
    session = MySQLSession(connection)

    session.begin_transaction()
    session.commit()
    session.rollback()

    connection.start_transaction.assert_called_once_with()
    connection.commit.assert_called_once_with()
    connection.rollback.assert_called_once_with()


def test_borrowed_connection_is_not_closed(connection):
    MySQLSession(connection).close()

    connection.close.assert_not_called()


def test_connect_owns_connection(connection):
    config = MySQLConnectionConfig(database="app", username="app")

    with patch("mysql.connector.connect", return_value=connection) as connect:
        session = MySQLSession.connect(config)
        session.close()

    connect.assert_called_once_with(**config.to_dict())
    connection.close.assert_called_once_with()


def test_connect_failure(connection):
    error = mysql_errors.InterfaceError(msg="Can't connect", errno=2003)

    with patch("mysql.connector.connect", side_effect=error):
        with pytest.raises(DatabaseConnectionError):
            MySQLSession.connect(MySQLConnectionConfig())
