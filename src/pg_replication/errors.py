# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Classified errors raised by a convergence pass.

Each pipeline stage raises exactly one kind. The control loop maps the kind
onto the persisted replication status and decides whether to retry.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Stage that failed."""

    CREDENTIAL = "CredentialError"
    CONNECT = "ConnectError"
    PUBLICATION = "PublicationError"
    PUBLICATION_TABLES = "PublicationTablesError"
    SUBSCRIPTION_SCHEMA = "SubscriptionSchemaError"
    SUBSCRIPTION_TABLE = "SubscriptionTableError"
    SUBSCRIPTION = "SubscriptionError"
    CANCELLED = "Cancelled"


class Condition(str, Enum):
    """Detail of a failure that is not a raw database error."""

    NOT_FOUND = "NotFound"
    WRONG_ATTRIBUTES = "WrongAttributes"
    MALFORMED = "Malformed"


class ReplicationError(Exception):
    """Base class of the classified pass errors."""

    kind: ErrorKind

    def __init__(self, message: str, condition: Condition | None = None):
        super().__init__(message)
        self.message = message
        self.condition = condition

    def __repr__(self) -> str:
        condition = self.condition.value if self.condition is not None else None
        return (
            f"{type(self).__name__}(kind={self.kind.value}, condition={condition},"
            f" message={self.message!r})"
        )


class CredentialError(ReplicationError):
    """Exception raised when credentials can't be resolved or decoded."""

    kind = ErrorKind.CREDENTIAL


class ConnectError(ReplicationError):
    """Exception raised when connecting to a database fails."""

    kind = ErrorKind.CONNECT


class PublicationError(ReplicationError):
    """Exception raised when the publication is missing or not eligible."""

    kind = ErrorKind.PUBLICATION


class PublicationTablesError(ReplicationError):
    """Exception raised when reading the published tables fails."""

    kind = ErrorKind.PUBLICATION_TABLES


class SubscriptionSchemaError(ReplicationError):
    """Exception raised when checking or creating a subscriber schema fails."""

    kind = ErrorKind.SUBSCRIPTION_SCHEMA


class SubscriptionTableError(ReplicationError):
    """Exception raised when a subscriber table can't be created, renamed or drifted."""

    kind = ErrorKind.SUBSCRIPTION_TABLE


class SubscriptionError(ReplicationError):
    """Exception raised when creating, altering, enabling or disabling a subscription fails."""

    kind = ErrorKind.SUBSCRIPTION


class PassCancelledError(ReplicationError):
    """Exception raised when the pass deadline expires or the pass is cancelled."""

    kind = ErrorKind.CANCELLED
