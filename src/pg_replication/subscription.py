# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Subscription lifecycle on the subscriber.

The subscription is named after the publication it pulls from. Its state is
derived from the catalog and moved to enabled with the desired connection
string; a subscription that is already in that state is left untouched.
"""

import logging
from enum import Enum

import psycopg2
from psycopg2 import errors
from psycopg2.sql import SQL, Identifier, Literal

from pg_replication.errors import SubscriptionError
from pg_replication.models import SubscriptionRecord
from pg_replication.postgresql import PostgreSQL

logger = logging.getLogger(__name__)

SUBSCRIPTION_QUERY = """SELECT s.subname, s.subenabled, s.subconninfo
  FROM pg_subscription s
 WHERE s.subname = %s
   AND s.subdbid = (SELECT oid FROM pg_database WHERE datname = current_database());"""


class SubscriptionState(str, Enum):
    """State of a subscription relative to the desired one."""

    ABSENT = "Absent"
    ENABLED_CORRECT = "EnabledCorrect"
    ENABLED_WRONG = "EnabledWrong"
    DISABLED = "Disabled"


def subscription_state(
    record: SubscriptionRecord | None, connection_info: str
) -> SubscriptionState:
    """Classify a catalog record against the desired connection string."""
    if record is None:
        return SubscriptionState.ABSENT
    if not record.enabled:
        return SubscriptionState.DISABLED
    if record.connection_info != connection_info:
        return SubscriptionState.ENABLED_WRONG
    return SubscriptionState.ENABLED_CORRECT


class SubscriptionManager:
    """Creates, repairs and disables subscriptions."""

    def __init__(self, subscriber: PostgreSQL):
        self.subscriber = subscriber

    def get(self, name: str) -> SubscriptionRecord | None:
        """Catalog record of the subscription in the current database, if any.

        Raises:
            SubscriptionError: if the query fails.
        """
        try:
            row = self.subscriber.fetchone(SUBSCRIPTION_QUERY, (name,))
        except psycopg2.Error as e:
            logger.error(f"Failed to check subscription {name}: {e}")
            raise SubscriptionError(f"checking subscription {name}: {e}") from e
        if row is None:
            return None
        return SubscriptionRecord(*row)

    def _execute(self, action: str, name: str, statement) -> None:
        try:
            self.subscriber.execute(statement)
        except psycopg2.Error as e:
            logger.error(f"Failed {action} subscription {name}: {e}")
            raise SubscriptionError(f"{action} subscription {name}: {e}") from e

    def create(self, name: str, connection_info: str) -> None:
        """Create the subscription without connecting to the publisher."""
        self._execute(
            "creating",
            name,
            SQL("CREATE SUBSCRIPTION {} CONNECTION {} PUBLICATION {} WITH (connect=false);").format(
                Identifier(name), Literal(connection_info), Identifier(name)
            ),
        )
        logger.info(f"Created subscription {name}")

    def alter_connection(self, name: str, connection_info: str) -> None:
        """Point the subscription to a new connection string."""
        self._execute(
            "altering",
            name,
            SQL("ALTER SUBSCRIPTION {} CONNECTION {};").format(
                Identifier(name), Literal(connection_info)
            ),
        )
        logger.info(f"Altered connection of subscription {name}")

    def enable(self, name: str) -> None:
        """Enable the subscription."""
        self._execute(
            "enabling", name, SQL("ALTER SUBSCRIPTION {} ENABLE;").format(Identifier(name))
        )
        logger.info(f"Enabled subscription {name}")

    def reconcile(self, name: str, connection_info: str) -> SubscriptionState:
        """Move the subscription to the enabled state with the given connection.

        Args:
            name: subscription name, equal to the publication name.
            connection_info: desired connection string of the publisher.

        Returns:
            The state the subscription was found in.

        Raises:
            SubscriptionError: if any statement fails.
        """
        state = subscription_state(self.get(name), connection_info)
        logger.debug(f"Subscription {name} is in state {state.value}")
        if state == SubscriptionState.ABSENT:
            self.create(name, connection_info)
            self.enable(name)
        elif state in (SubscriptionState.DISABLED, SubscriptionState.ENABLED_WRONG):
            self.alter_connection(name, connection_info)
            self.enable(name)
        return state

    def disable(self, name: str) -> None:
        """Disable the subscription; a missing subscription is left as is.

        Raises:
            SubscriptionError: if checking or disabling fails.
        """
        record = self.get(name)
        if record is None:
            logger.warning(f"Subscription {name} does not exist, nothing to disable")
            return
        if not record.enabled:
            logger.debug(f"Subscription {name} is already disabled")
            return
        try:
            self.subscriber.execute(
                SQL("ALTER SUBSCRIPTION {} DISABLE;").format(Identifier(name))
            )
        except errors.UndefinedObject:
            logger.warning(f"Subscription {name} was removed before it could be disabled")
            return
        except psycopg2.Error as e:
            logger.error(f"Failed disabling subscription {name}: {e}")
            raise SubscriptionError(f"disabling subscription {name}: {e}") from e
        logger.info(f"Disabled subscription {name}")
