# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Opening and validating the publisher and subscriber connections."""

import logging
import math

import psycopg2
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from pg_replication.config import EngineConfig
from pg_replication.constants import SSL_MODE
from pg_replication.credentials import DatabaseCredentials
from pg_replication.deadline import Deadline
from pg_replication.errors import ConnectError, PassCancelledError
from pg_replication.postgresql import PostgreSQL

logger = logging.getLogger(__name__)


def connection_string(credentials: DatabaseCredentials) -> str:
    """Build the connection string for the credentials.

    The field order is fixed so that the same credentials always produce the
    same string; the subscription compares it verbatim.
    """
    return (
        f"host={credentials.host} port={credentials.port} user={credentials.user}"
        f" password={credentials.password} dbname={credentials.database_name}"
        f" sslmode={SSL_MODE}"
    )


class ConnectionManager:
    """Opens connections owned by a single pass."""

    def __init__(self, config: EngineConfig, deadline: Deadline):
        self.config = config
        self.deadline = deadline

    def _connection_options(self) -> dict:
        options = self.config.connection_options()
        # The driver timeout must not outlive the pass.
        if (remaining := self.deadline.remaining()) is not None:
            timeout = min(options["connect_timeout"], math.ceil(remaining))
            options["connect_timeout"] = max(1, timeout)
        return options

    def _connect(self, credentials: DatabaseCredentials) -> psycopg2.extensions.connection:
        for attempt in Retrying(
            stop=stop_after_attempt(self.config.connect_attempts),
            wait=wait_fixed(self.config.connect_retry_wait),
            retry=retry_if_exception_type(psycopg2.OperationalError),
            reraise=True,
        ):
            with attempt:
                self.deadline.check()
                return psycopg2.connect(connection_string(credentials), **self._connection_options())

    def open(self, credentials: DatabaseCredentials, role: str) -> PostgreSQL:
        """Connect to a database and check that it answers.

        Args:
            credentials: credentials of the database.
            role: "publisher" or "subscriber", used in logs and errors.

        Returns:
            A session owning the new connection.

        Raises:
            ConnectError: if the connection can't be established or validated.
        """
        try:
            connection = self._connect(credentials)
        except psycopg2.Error as e:
            logger.error(f"Failed to connect to {role} database {credentials.database_name}: {e}")
            raise ConnectError(
                f"connecting to {role} database {credentials.database_name}: {e}"
            ) from e

        session = PostgreSQL(connection, role, self.deadline)
        try:
            connection.autocommit = True
            session.fetchone("SELECT 1;")
        except psycopg2.Error as e:
            session.close()
            logger.error(f"Failed to validate {role} database {credentials.database_name}: {e}")
            raise ConnectError(
                f"validating {role} database {credentials.database_name}: {e}"
            ) from e
        except PassCancelledError:
            session.close()
            raise
        logger.info(f"Connected to {role} database {credentials.database_name}")
        return session
