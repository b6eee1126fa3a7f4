# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.
from lightkube.core.exceptions import ApiError
from psycopg2.sql import Literal

from pg_replication.schema import TABLE_COLUMNS_QUERY, TABLE_EXISTS_QUERY
from pg_replication.subscription import SUBSCRIPTION_QUERY


class _FakeResponse:
    """Used to fake an httpx response during testing only."""

    def __init__(self, status_code: int):
        self.status_code = status_code

    def json(self):
        return {
            "apiVersion": 1,
            "code": self.status_code,
            "message": "broken",
            "reason": "",
        }


class _FakeApiError(ApiError):
    """Used to simulate an ApiError during testing."""

    def __init__(self, status_code: int = 400):
        super().__init__(response=_FakeResponse(status_code))


class FakeSession:
    """Database session answering catalog queries from a fixed table.

    Answers are keyed by (query, params). Statements passed to `execute` are
    recorded in order and don't change the answers.
    """

    def __init__(self, role: str, answers: dict | None = None):
        self.role = role
        self.answers = answers or {}
        self.statements = []
        self.closed = False

    def fetchone(self, query, params=None):
        return self.answers.get((query, params))

    def fetchall(self, query, params=None):
        return self.answers.get((query, params), [])

    def execute(self, query, params=None):
        self.statements.append(query)

    def close(self):
        self.closed = True


class CatalogSession(FakeSession):
    """Subscriber session whose tables and subscriptions follow the statements run.

    Args:
        role: role of the session.
        answers: fixed answers for the other catalog queries.
        tables: existing tables, (schema, name) -> column rows.
        subscriptions: existing subscriptions, name -> (enabled, connection info).
        created_columns: column rows given to tables created by CREATE TABLE.
    """

    def __init__(
        self,
        role: str,
        answers: dict | None = None,
        tables: dict | None = None,
        subscriptions: dict | None = None,
        created_columns: dict | None = None,
    ):
        super().__init__(role, answers)
        self.tables = dict(tables or {})
        self.subscriptions = dict(subscriptions or {})
        self.created_columns = created_columns or {}

    def fetchone(self, query, params=None):
        if query == TABLE_EXISTS_QUERY:
            return (True,) if params in self.tables else None
        if query == SUBSCRIPTION_QUERY:
            name = params[0]
            if name not in self.subscriptions:
                return None
            return (name, *self.subscriptions[name])
        return super().fetchone(query, params)

    def fetchall(self, query, params=None):
        if query == TABLE_COLUMNS_QUERY:
            return self.tables.get(params, [])
        return super().fetchall(query, params)

    def execute(self, query, params=None):
        super().execute(query, params)
        parts = query.seq
        head = parts[0].string
        if head == "CREATE TABLE ":
            table = (parts[1].strings[0], parts[3].strings[0])
            self.tables[table] = self.created_columns.get(table, [])
        elif head == "ALTER TABLE ":
            schema, name, new_name = (parts[i].strings[0] for i in (1, 3, 5))
            self.tables[(schema, new_name)] = self.tables.pop((schema, name))
        elif head == "CREATE SUBSCRIPTION ":
            self.subscriptions[parts[1].strings[0]] = (False, parts[3].wrapped)
        elif head == "ALTER SUBSCRIPTION ":
            name = parts[1].strings[0]
            enabled, connection_info = self.subscriptions[name]
            if len(parts) > 3 and isinstance(parts[3], Literal):
                connection_info = parts[3].wrapped
            elif parts[2].string == " ENABLE;":
                enabled = True
            elif parts[2].string == " DISABLE;":
                enabled = False
            self.subscriptions[name] = (enabled, connection_info)
