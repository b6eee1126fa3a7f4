# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""PostgreSQL session used by the convergence stages.

A session wraps one connection that is exclusively owned by a pass. Every
database call checks the pass deadline before it blocks.
"""

import logging

import psycopg2
from psycopg2.sql import Composable

from pg_replication.deadline import Deadline

logger = logging.getLogger(__name__)

Query = str | Composable


class PostgreSQL:
    """Class to encapsulate the database calls of one side of the replication."""

    def __init__(
        self,
        connection: psycopg2.extensions.connection,
        role: str,
        deadline: Deadline | None = None,
    ):
        self.connection = connection
        self.role = role
        self.deadline = deadline if deadline is not None else Deadline()

    def execute(self, query: Query, params: tuple | None = None) -> None:
        """Run a statement that returns no rows."""
        self.deadline.check()
        with self.connection.cursor() as cursor:
            cursor.execute(query, params)

    def fetchone(self, query: Query, params: tuple | None = None) -> tuple | None:
        """Run a query and return its first row, or None for an empty result."""
        self.deadline.check()
        with self.connection.cursor() as cursor:
            cursor.execute(query, params)
            return cursor.fetchone()

    def fetchall(self, query: Query, params: tuple | None = None) -> list[tuple]:
        """Run a query and return all its rows."""
        self.deadline.check()
        with self.connection.cursor() as cursor:
            cursor.execute(query, params)
            return cursor.fetchall()

    def close(self) -> None:
        """Release the connection; safe to call more than once."""
        if self.connection.closed:
            return
        try:
            self.connection.close()
        except psycopg2.Error as e:
            logger.warning(f"Failed to close {self.role} connection: {e}")
