# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Schema and table shape on the subscriber.

Tables missing on the subscriber are created from the published column shape.
Existing tables are only compared: a drifted table is reported and never
dropped, since it may already hold replicated data and secondary objects.
"""

import dataclasses
import logging

import psycopg2
from psycopg2.sql import SQL, Composed, Identifier

from pg_replication.constants import DATETIME_TYPES_WITH_ZONE
from pg_replication.errors import Condition, SubscriptionSchemaError, SubscriptionTableError
from pg_replication.models import PgColumn, PgTable, PgTableDetail
from pg_replication.postgresql import PostgreSQL
from pg_replication.publication import COLUMNS_SELECT

logger = logging.getLogger(__name__)

SCHEMA_EXISTS_QUERY = "SELECT TRUE FROM pg_namespace WHERE nspname = %s;"
TABLE_EXISTS_QUERY = "SELECT TRUE FROM pg_tables WHERE schemaname = %s AND tablename = %s;"
TABLE_COLUMNS_QUERY = f"""{COLUMNS_SELECT}
 WHERE c.table_schema = %s AND c.table_name = %s
 ORDER BY c.ordinal_position;"""


def type_modifier(column: PgColumn) -> str | None:
    """Length or precision modifier of the column type, if any."""
    if column.character_maximum_length is not None:
        return f"({column.character_maximum_length})"
    if column.numeric_precision is not None:
        if column.numeric_scale is None:
            return f"({column.numeric_precision})"
        return f"({column.numeric_precision}, {column.numeric_scale})"
    if column.datetime_precision is not None:
        return f"({column.datetime_precision})"
    return None


def type_declaration(column: PgColumn) -> str:
    """Column type with its modifier, e.g. `character varying (255)`."""
    if (modifier := type_modifier(column)) is None:
        return column.data_type
    # "timestamp (3) without time zone": the modifier binds to the first word.
    name, _, zone = column.data_type.partition(" ")
    if zone and name in DATETIME_TYPES_WITH_ZONE:
        return f"{name} {modifier} {zone}"
    return f"{column.data_type} {modifier}"


def column_definition(column: PgColumn) -> Composed:
    """Column DDL: name, type and modifier, then NOT NULL, then DEFAULT."""
    definition = f" {type_declaration(column)}"
    if not column.nullable:
        definition += " NOT NULL"
    if column.default is not None:
        definition += f" DEFAULT {column.default}"
    return Composed([Identifier(column.name), SQL(definition)])


def create_table_statement(detail: PgTableDetail) -> Composed:
    """CREATE TABLE statement for the columns of the table, in order."""
    return SQL("CREATE TABLE {}.{} ({});").format(
        Identifier(detail.schema),
        Identifier(detail.name),
        SQL(", ").join(column_definition(column) for column in detail.columns),
    )


def column_differences(
    expected: tuple[PgColumn, ...], actual: tuple[PgColumn, ...]
) -> list[str]:
    """Compare two column lists position by position.

    Returns:
        Human readable differences; empty when the lists are equal.
    """
    differences = []
    if len(expected) != len(actual):
        differences.append(f"expected {len(expected)} columns, found {len(actual)}")
    for position, (wanted, found) in enumerate(zip(expected, actual), start=1):
        if wanted == found:
            continue
        for field in dataclasses.fields(PgColumn):
            wanted_value = getattr(wanted, field.name)
            found_value = getattr(found, field.name)
            if wanted_value != found_value:
                differences.append(
                    f"column {position} {field.name}: expected {wanted_value!r}, found {found_value!r}"
                )
    return differences


class SchemaSynchronizer:
    """Ensures the subscriber can host the replicated tables."""

    def __init__(self, subscriber: PostgreSQL):
        self.subscriber = subscriber

    def ensure_schema(self, schema: str) -> None:
        """Create the schema when it's missing.

        Raises:
            SubscriptionSchemaError: if checking or creating the schema fails.
        """
        try:
            if self.subscriber.fetchone(SCHEMA_EXISTS_QUERY, (schema,)) is not None:
                logger.debug(f"Schema {schema} exists")
                return
            logger.info(f"Schema {schema} does not exist, creating it")
            self.subscriber.execute(
                SQL("CREATE SCHEMA IF NOT EXISTS {};").format(Identifier(schema))
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to ensure schema {schema}: {e}")
            raise SubscriptionSchemaError(f"ensuring schema {schema}: {e}") from e
        logger.info(f"Created schema {schema}")

    def table_exists(self, table: PgTable) -> bool:
        """Whether the table exists on the subscriber.

        Raises:
            SubscriptionTableError: if the lookup fails.
        """
        try:
            row = self.subscriber.fetchone(TABLE_EXISTS_QUERY, (table.schema, table.name))
        except psycopg2.Error as e:
            logger.error(f"Failed to check table {table}: {e}")
            raise SubscriptionTableError(f"checking table {table}: {e}") from e
        return row is not None

    def table_detail(self, table: PgTable) -> PgTableDetail:
        """Current columns of a subscriber table, ordered by physical position.

        Raises:
            SubscriptionTableError: if the query fails.
        """
        try:
            rows = self.subscriber.fetchall(TABLE_COLUMNS_QUERY, (table.schema, table.name))
        except psycopg2.Error as e:
            logger.error(f"Failed to read columns of {table}: {e}")
            raise SubscriptionTableError(f"reading columns of {table}: {e}") from e
        columns = tuple(PgColumn.from_row(row) for row in rows)
        return PgTableDetail(table.schema, table.name, columns)

    def ensure_table(self, detail: PgTableDetail) -> bool:
        """Create the table when missing, otherwise check it for drift.

        Args:
            detail: published shape of the table.

        Returns:
            Whether the table was created.

        Raises:
            SubscriptionTableError: with WrongAttributes condition when the
                existing table differs from the published shape, or when a
                query fails.
        """
        if not self.table_exists(detail.table):
            logger.info(f"Table {detail} does not exist, creating it")
            try:
                self.subscriber.execute(create_table_statement(detail))
            except psycopg2.Error as e:
                logger.error(f"Failed to create table {detail}: {e}")
                raise SubscriptionTableError(f"creating table {detail}: {e}") from e
            logger.info(f"Created table {detail}")
            return True

        current = self.table_detail(detail.table)
        if differences := column_differences(detail.columns, current.columns):
            message = f"table {detail} differs from publication: {'; '.join(differences)}"
            logger.error(message)
            raise SubscriptionTableError(message, Condition.WRONG_ATTRIBUTES)
        logger.debug(f"Table {detail} matches publication")
        return False

    def rename_table(self, table: PgTable, new_name: str) -> None:
        """Rename a table within its schema.

        Raises:
            SubscriptionTableError: if the rename fails.
        """
        try:
            self.subscriber.execute(
                SQL("ALTER TABLE {}.{} RENAME TO {};").format(
                    Identifier(table.schema), Identifier(table.name), Identifier(new_name)
                )
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to rename table {table} to {new_name}: {e}")
            raise SubscriptionTableError(f"renaming table {table} to {new_name}: {e}") from e
        logger.info(f"Renamed table {table} to {table.schema}.{new_name}")

    def ensure_view(self, table: PgTable) -> None:
        """Compatibility view stage of the per-table loop; takes no action."""
        logger.debug(f"No compatibility view required for {table}")
