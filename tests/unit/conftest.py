# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.
from unittest.mock import MagicMock

import pytest

from pg_replication.credentials import DatabaseCredentials
from pg_replication.models import PgColumn, PgTable, PgTableDetail


@pytest.fixture
def publisher_credentials():
    return DatabaseCredentials(
        host="pub.example",
        port="5432",
        user="replicator",
        password="pub-secret",  # noqa: S106
        database_name="appdb",
    )


@pytest.fixture
def subscriber_credentials():
    return DatabaseCredentials(
        host="sub.example",
        port="5433",
        user="operator",
        password="sub-secret",  # noqa: S106
        database_name="appdb",
    )


@pytest.fixture
def people():
    return PgTable("public", "people")


@pytest.fixture
def people_columns():
    return (
        PgColumn("id", None, False, "uuid"),
        PgColumn("name", None, True, "character varying", character_maximum_length=255),
    )


@pytest.fixture
def people_detail(people_columns):
    return PgTableDetail("public", "people", people_columns)


@pytest.fixture
def session():
    """Mocked database session of one side of the replication."""
    session = MagicMock()
    session.fetchone.return_value = None
    session.fetchall.return_value = []
    return session
