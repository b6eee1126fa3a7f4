# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Fingerprint of the last converged state."""

import hashlib
from collections.abc import Iterable

from pg_replication.connection import connection_string
from pg_replication.credentials import DatabaseCredentials
from pg_replication.models import DesiredState, PgTable, ReconciledFingerprint


def checksum(value: str) -> str:
    """One-way content hash, used only to detect changes."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class ConvergenceTracker:
    """Computes and compares reconciled fingerprints."""

    @staticmethod
    def compute(
        desired: DesiredState,
        publisher_credentials: DatabaseCredentials,
        subscriber_credentials: DatabaseCredentials,
        tables: Iterable[PgTable],
    ) -> ReconciledFingerprint:
        """Fingerprint of a pass that converged every table and the subscription."""
        return ReconciledFingerprint(
            publication_name=desired.publication_name,
            publisher_credential_hash=checksum(connection_string(publisher_credentials)),
            subscriber_credential_hash=checksum(connection_string(subscriber_credentials)),
            tables=tuple(tables),
        )

    @staticmethod
    def changes(
        prior: ReconciledFingerprint | None, current: ReconciledFingerprint
    ) -> list[str]:
        """Aspects that differ between two fingerprints."""
        if prior is None:
            return ["publication", "publisher-credentials", "subscriber-credentials", "tables"]
        changed = []
        if prior.publication_name != current.publication_name:
            changed.append("publication")
        if prior.publisher_credential_hash != current.publisher_credential_hash:
            changed.append("publisher-credentials")
        if prior.subscriber_credential_hash != current.subscriber_credential_hash:
            changed.append("subscriber-credentials")
        if set(prior.tables) != set(current.tables):
            changed.append("tables")
        return changed
