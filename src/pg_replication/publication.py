# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Publication inspection on the publisher.

Validates that a publication is safe to replicate from and reads the tables
and per-table column shapes it exposes.
"""

import logging

import psycopg2

from pg_replication.errors import Condition, PublicationError, PublicationTablesError
from pg_replication.models import PgColumn, PgTable, PgTableDetail
from pg_replication.postgresql import PostgreSQL

logger = logging.getLogger(__name__)

# Column metadata normalized so that it always forms a valid type declaration:
# array and user defined types by their type name, numeric modifiers only for
# the numeric type and precision only for the time, timestamp and interval types.
COLUMNS_SELECT = """SELECT c.column_name,
       c.column_default,
       (c.is_nullable = 'YES'),
       CASE WHEN c.data_type IN ('ARRAY', 'USER-DEFINED') THEN c.udt_name ELSE c.data_type END,
       c.character_maximum_length,
       CASE WHEN c.data_type = 'numeric' THEN c.numeric_precision END,
       CASE WHEN c.data_type = 'numeric' THEN c.numeric_scale END,
       CASE WHEN c.data_type LIKE 'time%%' OR c.data_type = 'interval'
            THEN c.datetime_precision END
  FROM information_schema.columns c"""

PUBLICATION_ATTRIBUTES_QUERY = """SELECT p.puballtables,
       (p.pubinsert AND p.pubupdate AND p.pubdelete AND p.pubtruncate) AS pubops,
       (SELECT COUNT(*) FROM pg_publication_namespace pn WHERE pn.pnpubid = p.oid) AS pubnamespaces
  FROM pg_publication p
 WHERE p.pubname = %s;"""

PUBLICATION_TABLES_QUERY = """SELECT n.nspname, r.relname
  FROM pg_publication p
  JOIN pg_publication_rel pr ON pr.prpubid = p.oid
  JOIN pg_class r ON r.oid = pr.prrelid
  JOIN pg_namespace n ON n.oid = r.relnamespace
 WHERE p.pubname = %s;"""

PUBLICATION_COLUMNS_QUERY = f"""{COLUMNS_SELECT}
  JOIN pg_publication_tables pt
    ON pt.schemaname = c.table_schema
   AND pt.tablename = c.table_name
   AND c.column_name = ANY(pt.attnames)
 WHERE pt.pubname = %s AND c.table_schema = %s AND c.table_name = %s
 ORDER BY c.ordinal_position;"""


class PublicationInspector:
    """Reads a publication from the publisher database."""

    def __init__(self, publisher: PostgreSQL):
        self.publisher = publisher

    def validate(self, name: str) -> None:
        """Check that the publication exists and is eligible for replication.

        A publication is eligible when it isn't FOR ALL TABLES, publishes
        inserts, updates, deletes and truncates, and has no FOR TABLES IN
        SCHEMA membership.

        Raises:
            PublicationError: with NotFound or WrongAttributes condition, or
                when the query fails.
        """
        try:
            row = self.publisher.fetchone(PUBLICATION_ATTRIBUTES_QUERY, (name,))
        except psycopg2.Error as e:
            logger.error(f"Failed to check publication {name}: {e}")
            raise PublicationError(f"checking publication {name}: {e}") from e

        if row is None:
            logger.error(f"Publication {name} does not exist")
            raise PublicationError(f"publication {name} does not exist", Condition.NOT_FOUND)

        all_tables, all_operations, schemas = row
        problems = []
        if all_tables:
            problems.append("is FOR ALL TABLES")
        if not all_operations:
            problems.append("doesn't publish all of insert, update, delete and truncate")
        if schemas > 0:
            problems.append("includes tables by schema")
        if problems:
            message = f"publication {name} has wrong attributes: {'; '.join(problems)}"
            logger.error(message)
            raise PublicationError(message, Condition.WRONG_ATTRIBUTES)
        logger.debug(f"Publication {name} is valid")

    def list_tables(self, name: str) -> list[PgTable]:
        """Tables currently attached to the publication, in catalog order.

        Raises:
            PublicationTablesError: if the query fails.
        """
        try:
            rows = self.publisher.fetchall(PUBLICATION_TABLES_QUERY, (name,))
        except psycopg2.Error as e:
            logger.error(f"Failed to list tables of publication {name}: {e}")
            raise PublicationTablesError(f"listing tables of publication {name}: {e}") from e
        tables = [PgTable(schema, table) for schema, table in rows]
        logger.debug(f"Publication {name} tables: {', '.join(str(table) for table in tables)}")
        return tables

    def table_detail(self, table: PgTable, publication_name: str) -> PgTableDetail:
        """Published columns of a table, ordered by physical position.

        Raises:
            PublicationTablesError: if the query fails.
        """
        try:
            rows = self.publisher.fetchall(
                PUBLICATION_COLUMNS_QUERY, (publication_name, table.schema, table.name)
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to read published columns of {table}: {e}")
            raise PublicationTablesError(f"reading published columns of {table}: {e}") from e
        columns = tuple(PgColumn.from_row(row) for row in rows)
        return PgTableDetail(table.schema, table.name, columns)
