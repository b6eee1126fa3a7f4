# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.
from pg_replication.errors import Condition, ErrorKind, SubscriptionTableError
from pg_replication.models import (
    PgColumn,
    PgTable,
    PgTableDetail,
    ReconciledFingerprint,
    ReplicationPhase,
    ReplicationStatus,
)


def test_table_identity():
    assert PgTable("public", "people") == PgTable("public", "people")
    assert PgTable("public", "people") != PgTable("public", "People")
    assert PgTable("public", "people") != PgTable("sales", "people")
    assert len({PgTable("public", "people"), PgTable("public", "people")}) == 1
    assert str(PgTable("sales", "orders")) == "sales.orders"


def test_column_from_row():
    column = PgColumn.from_row(("id", None, False, "integer", None, None, None, None))

    assert column == PgColumn("id", None, False, "integer")
    assert column.numeric_precision is None


def test_table_detail():
    detail = PgTableDetail("public", "people")

    assert detail.table == PgTable("public", "people")
    assert detail.columns == ()
    assert str(detail) == "public.people"


def test_fingerprint_tables_are_an_ordered_set():
    orders = PgTable("sales", "orders")
    people = PgTable("public", "people")

    fingerprint = ReconciledFingerprint(
        publication_name="pub1",
        publisher_credential_hash="p",
        subscriber_credential_hash="s",
        tables=(orders, people, orders),
    )

    assert fingerprint.tables == (orders, people)


def test_status_defaults_to_pending():
    assert ReplicationStatus().phase == ReplicationPhase.PENDING


def test_error_fields():
    error = SubscriptionTableError("table public.people differs", Condition.WRONG_ATTRIBUTES)

    assert error.kind == ErrorKind.SUBSCRIPTION_TABLE
    assert str(error) == "table public.people differs"
    assert "condition=WrongAttributes" in repr(error)
