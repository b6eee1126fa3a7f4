# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.
from unittest.mock import MagicMock, patch

import psycopg2
import pytest
from psycopg2.sql import SQL, Identifier

from pg_replication.deadline import Deadline
from pg_replication.errors import PassCancelledError
from pg_replication.postgresql import PostgreSQL


@pytest.fixture
def connection():
    connection = MagicMock()
    connection.closed = 0
    return connection


def test_fetchone(connection):
    cursor = connection.cursor.return_value.__enter__.return_value
    cursor.fetchone.return_value = (True,)

    row = PostgreSQL(connection, "subscriber").fetchone("SELECT %s;", ("x",))

    cursor.execute.assert_called_once_with("SELECT %s;", ("x",))
    assert row == (True,)


def test_fetchall(connection):
    cursor = connection.cursor.return_value.__enter__.return_value
    cursor.fetchall.return_value = [("public", "people")]

    rows = PostgreSQL(connection, "publisher").fetchall("SELECT 1;")

    cursor.execute.assert_called_once_with("SELECT 1;", None)
    assert rows == [("public", "people")]


def test_execute(connection):
    statement = SQL("CREATE SCHEMA {};").format(Identifier("sales"))

    PostgreSQL(connection, "subscriber").execute(statement)

    cursor = connection.cursor.return_value.__enter__.return_value
    cursor.execute.assert_called_once_with(statement, None)


def test_calls_check_the_deadline(connection):
    deadline = Deadline()
    session = PostgreSQL(connection, "subscriber", deadline)
    deadline.cancel()

    for method in (session.execute, session.fetchone, session.fetchall):
        with pytest.raises(PassCancelledError):
            method("SELECT 1;")

    connection.cursor.assert_not_called()


def test_close(connection):
    session = PostgreSQL(connection, "subscriber")

    session.close()
    connection.close.assert_called_once_with()

    connection.closed = 1
    session.close()
    connection.close.assert_called_once_with()


def test_close_failure_is_logged(connection):
    connection.close.side_effect = psycopg2.InterfaceError
    with patch("pg_replication.postgresql.logger") as _logger:
        PostgreSQL(connection, "publisher").close()

        _logger.warning.assert_called_once()
