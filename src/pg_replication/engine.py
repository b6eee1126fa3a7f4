# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Convergence pass.

One pass validates the publication, retires the wiring of a previous
publication identity, brings every published table to the subscriber and
reconciles the subscription. The returned fingerprint is the commit point of
the pass: it is only produced once every stage succeeded.
"""

import dataclasses
import logging

from pg_replication.config import EngineConfig
from pg_replication.connection import ConnectionManager, connection_string
from pg_replication.credentials import CredentialResolver, DatabaseCredentials
from pg_replication.cutover import CutoverCoordinator
from pg_replication.deadline import Deadline
from pg_replication.errors import PassCancelledError, ReplicationError
from pg_replication.models import (
    DesiredState,
    PgTable,
    ReconciledFingerprint,
    ReplicationPhase,
    ReplicationStatus,
)
from pg_replication.postgresql import PostgreSQL
from pg_replication.publication import PublicationInspector
from pg_replication.schema import SchemaSynchronizer
from pg_replication.subscription import SubscriptionManager
from pg_replication.tracker import ConvergenceTracker

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class PassContext:
    """Immutable state of one pass, extended stage by stage."""

    desired: DesiredState
    prior: ReconciledFingerprint | None
    config: EngineConfig
    deadline: Deadline
    publisher_credentials: DatabaseCredentials | None = None
    subscriber_credentials: DatabaseCredentials | None = None
    publisher: PostgreSQL | None = None
    subscriber: PostgreSQL | None = None
    tables: tuple[PgTable, ...] = ()

    def replace(self, **changes) -> "PassContext":
        """Copy of the context with some fields changed."""
        return dataclasses.replace(self, **changes)


@dataclasses.dataclass(frozen=True)
class PassResult:
    """Outcome of a pass as persisted by the control loop."""

    fingerprint: ReconciledFingerprint | None
    status: ReplicationStatus


def read_credentials(context: PassContext, resolver: CredentialResolver) -> PassContext:
    """Resolve the publisher and subscriber credentials."""
    publisher_credentials = resolver.resolve(context.desired.publisher_credentials_ref)
    logger.info(
        f"Publishing database {publisher_credentials.host}:{publisher_credentials.port}"
    )
    subscriber_credentials = resolver.resolve(context.desired.subscriber_credentials_ref)
    logger.info(
        f"Subscribing database {subscriber_credentials.host}:{subscriber_credentials.port}"
    )
    return context.replace(
        publisher_credentials=publisher_credentials,
        subscriber_credentials=subscriber_credentials,
    )


def validate_publication(context: PassContext) -> PassContext:
    """Check that the desired publication is eligible."""
    PublicationInspector(context.publisher).validate(context.desired.publication_name)
    logger.info(f"Checked publication {context.desired.publication_name}")
    return context


def retire_previous_publication(context: PassContext) -> PassContext:
    """Run the cutover when the publication identity changed."""
    if not CutoverCoordinator.identity_changed(context.desired, context.prior):
        return context
    CutoverCoordinator(
        SchemaSynchronizer(context.subscriber), SubscriptionManager(context.subscriber)
    ).cutover(context.prior)
    return context


def list_publication_tables(context: PassContext) -> PassContext:
    """Read the published tables once for the rest of the pass."""
    tables = PublicationInspector(context.publisher).list_tables(context.desired.publication_name)
    logger.info(f"Checked publication tables: {len(tables)} table(s)")
    return context.replace(tables=tuple(tables))


def synchronize_tables(context: PassContext) -> PassContext:
    """Ensure the schema and shape of every published table on the subscriber."""
    inspector = PublicationInspector(context.publisher)
    schema = SchemaSynchronizer(context.subscriber)
    for table in context.tables:
        schema.ensure_schema(table.schema)
        schema.ensure_table(inspector.table_detail(table, context.desired.publication_name))
        logger.info(f"Checked subscription table {table}")
    return context


def reconcile_subscription(context: PassContext) -> PassContext:
    """Bring the subscription to enabled with the current publisher connection."""
    name = context.desired.publication_name
    SubscriptionManager(context.subscriber).reconcile(
        name, connection_string(context.publisher_credentials)
    )
    logger.info(f"Checked subscription {name}")
    return context


def ensure_views(context: PassContext) -> PassContext:
    """Compatibility view stage, run once the subscription is in place."""
    schema = SchemaSynchronizer(context.subscriber)
    for table in context.tables:
        schema.ensure_view(table)
    return context


def commit(context: PassContext) -> ReconciledFingerprint:
    """Compute the fingerprint of the converged pass."""
    context.deadline.check()
    fingerprint = ConvergenceTracker.compute(
        context.desired,
        context.publisher_credentials,
        context.subscriber_credentials,
        context.tables,
    )
    if changes := ConvergenceTracker.changes(context.prior, fingerprint):
        logger.info(f"Converged with changes in: {', '.join(changes)}")
    return fingerprint


def converge(context: PassContext) -> ReconciledFingerprint:
    """Run the stages that need both connections."""
    for stage in (
        validate_publication,
        retire_previous_publication,
        list_publication_tables,
        synchronize_tables,
        reconcile_subscription,
        ensure_views,
    ):
        context = stage(context)
    return commit(context)


def run_pass(
    desired: DesiredState,
    prior: ReconciledFingerprint | None,
    resolver: CredentialResolver,
    config: EngineConfig | None = None,
    deadline: Deadline | None = None,
) -> ReconciledFingerprint:
    """Run one convergence pass.

    Args:
        desired: desired replication wiring.
        prior: fingerprint of the last successful pass, if any.
        resolver: resolves the credentials references of `desired`.
        config: engine configuration.
        deadline: cancellation token; defaults to the configured pass timeout.

    Returns:
        The fingerprint to persist.

    Raises:
        ReplicationError: classified by the stage that failed.
    """
    config = config if config is not None else EngineConfig()
    deadline = deadline if deadline is not None else Deadline(config.pass_timeout)
    context = read_credentials(PassContext(desired, prior, config, deadline), resolver)

    connections = ConnectionManager(config, deadline)
    publisher = subscriber = None
    try:
        publisher = connections.open(context.publisher_credentials, "publisher")
        subscriber = connections.open(context.subscriber_credentials, "subscriber")
        return converge(context.replace(publisher=publisher, subscriber=subscriber))
    finally:
        for session in (subscriber, publisher):
            if session is not None:
                session.close()


def reconcile(
    desired: DesiredState,
    prior: ReconciledFingerprint | None,
    resolver: CredentialResolver,
    config: EngineConfig | None = None,
    deadline: Deadline | None = None,
) -> PassResult:
    """Run one pass and map its outcome onto the replication status."""
    try:
        fingerprint = run_pass(desired, prior, resolver, config, deadline)
    except PassCancelledError as e:
        logger.warning(f"Convergence of {desired.publication_name} interrupted: {e.message}")
        return PassResult(
            None,
            ReplicationStatus(
                phase=ReplicationPhase.UNKNOWN, reason=e.kind.value, message=e.message
            ),
        )
    except ReplicationError as e:
        logger.error(f"Convergence of {desired.publication_name} failed: {e.message}")
        return PassResult(None, failed_status(e))
    return PassResult(fingerprint, ReplicationStatus(phase=ReplicationPhase.REPLICATING))


def failed_status(error: ReplicationError) -> ReplicationStatus:
    """Replication status recording a classified failure."""
    return ReplicationStatus(
        phase=ReplicationPhase.FAILED, reason=error.kind.value, message=error.message
    )
