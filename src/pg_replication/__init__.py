# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Convergence engine for PostgreSQL logical replication."""

from pg_replication.config import EngineConfig
from pg_replication.credentials import (
    BinarySecretData,
    CredentialResolver,
    DatabaseCredentials,
    StaticCredentialResolver,
    StringSecretData,
    decode_credentials,
)
from pg_replication.deadline import Deadline
from pg_replication.engine import PassResult, reconcile, run_pass
from pg_replication.errors import (
    Condition,
    ConnectError,
    CredentialError,
    ErrorKind,
    PassCancelledError,
    PublicationError,
    PublicationTablesError,
    ReplicationError,
    SubscriptionError,
    SubscriptionSchemaError,
    SubscriptionTableError,
)
from pg_replication.models import (
    DesiredState,
    PgColumn,
    PgTable,
    PgTableDetail,
    ReconciledFingerprint,
    ReplicationPhase,
    ReplicationStatus,
)

__all__ = [
    "BinarySecretData",
    "Condition",
    "ConnectError",
    "CredentialError",
    "CredentialResolver",
    "DatabaseCredentials",
    "Deadline",
    "DesiredState",
    "EngineConfig",
    "ErrorKind",
    "PassCancelledError",
    "PassResult",
    "PgColumn",
    "PgTable",
    "PgTableDetail",
    "PublicationError",
    "PublicationTablesError",
    "ReconciledFingerprint",
    "ReplicationError",
    "ReplicationPhase",
    "ReplicationStatus",
    "StaticCredentialResolver",
    "StringSecretData",
    "SubscriptionError",
    "SubscriptionSchemaError",
    "SubscriptionTableError",
    "decode_credentials",
    "reconcile",
    "run_pass",
]
