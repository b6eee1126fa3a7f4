# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Retiring the replication wiring of a previous publication identity.

When the desired publication name changes, the tables replicated under the old
name are archived as `<table>_<old publication>` and the old subscription is
disabled, before anything is created for the new publication.
"""

import logging

from pg_replication.constants import MAX_IDENTIFIER_LENGTH
from pg_replication.errors import Condition, SubscriptionTableError
from pg_replication.models import DesiredState, PgTable, ReconciledFingerprint
from pg_replication.schema import SchemaSynchronizer
from pg_replication.subscription import SubscriptionManager

logger = logging.getLogger(__name__)


def archive_name(table: PgTable, publication_name: str) -> str:
    """Name under which a table of a retired publication is kept."""
    return f"{table.name}_{publication_name}"


class CutoverCoordinator:
    """Performs the rename and disable sequence of an identity change."""

    def __init__(self, schema: SchemaSynchronizer, subscriptions: SubscriptionManager):
        self.schema = schema
        self.subscriptions = subscriptions

    @staticmethod
    def identity_changed(desired: DesiredState, prior: ReconciledFingerprint | None) -> bool:
        """Whether the publication identity differs from the last converged one."""
        if prior is None or not prior.publication_name:
            return False
        return desired.publication_name != prior.publication_name

    def archive_table(self, table: PgTable, publication_name: str) -> bool:
        """Rename a table of the old publication out of the way.

        Returns:
            Whether a rename was issued.

        Raises:
            SubscriptionTableError: if a lookup or the rename fails, or with
                Malformed condition when the archive name is too long.
        """
        if not self.schema.table_exists(table):
            logger.warning(f"Old table {table} does not exist, nothing to archive")
            return False
        archived = PgTable(table.schema, archive_name(table, publication_name))
        if len(archived.name.encode("utf-8")) > MAX_IDENTIFIER_LENGTH:
            message = (
                f"archive name {archived.name} of table {table} is longer than"
                f" {MAX_IDENTIFIER_LENGTH} bytes"
            )
            logger.error(message)
            raise SubscriptionTableError(message, Condition.MALFORMED)
        if self.schema.table_exists(archived):
            logger.debug(f"Table {table} was already archived as {archived}")
            return False
        self.schema.rename_table(table, archived.name)
        return True

    def cutover(self, prior: ReconciledFingerprint) -> None:
        """Archive the tables of the prior publication and disable its subscription.

        Raises:
            SubscriptionTableError: if archiving a table fails.
            SubscriptionError: if disabling the old subscription fails.
        """
        old_name = prior.publication_name
        logger.info(f"Publication changed from {old_name}, retiring its replication")
        for table in prior.tables:
            self.archive_table(table, old_name)
        self.subscriptions.disable(old_name)
        logger.info(f"Retired replication of publication {old_name}")
