# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Data model shared by the convergence stages."""

import dataclasses
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


@dataclasses.dataclass(frozen=True)
class DesiredState:
    """Desired replication wiring, supplied once per pass."""

    publication_name: str
    publisher_credentials_ref: str
    subscriber_credentials_ref: str


@dataclasses.dataclass(frozen=True)
class PgTable:
    """Identity of a replicated relation."""

    schema: str
    name: str

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclasses.dataclass(frozen=True)
class PgColumn:
    """Shape of one column; absent metadata is None, never zero."""

    name: str
    default: str | None
    nullable: bool
    data_type: str
    character_maximum_length: int | None = None
    numeric_precision: int | None = None
    numeric_scale: int | None = None
    datetime_precision: int | None = None

    @classmethod
    def from_row(cls, row: tuple) -> "PgColumn":
        """Build a column from a row of the information_schema columns query."""
        return cls(*row)


@dataclasses.dataclass(frozen=True)
class PgTableDetail:
    """A table and its columns, ordered by physical position."""

    schema: str
    name: str
    columns: tuple[PgColumn, ...] = ()

    @property
    def table(self) -> PgTable:
        """Identity of the table."""
        return PgTable(self.schema, self.name)

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclasses.dataclass(frozen=True)
class SubscriptionRecord:
    """Catalog state of one subscription on the subscriber."""

    name: str
    enabled: bool
    connection_info: str


class ReconciledFingerprint(BaseModel):
    """Durable record of the last successfully converged desired state."""

    model_config = ConfigDict(frozen=True)

    publication_name: str
    publisher_credential_hash: str
    subscriber_credential_hash: str
    tables: tuple[PgTable, ...] = Field(default=())

    @field_validator("tables")
    @classmethod
    def _unique_tables(cls, tables: tuple[PgTable, ...]) -> tuple[PgTable, ...]:
        # Ordered set: keep the first occurrence of each table.
        return tuple(dict.fromkeys(tables))


class ReplicationPhase(str, Enum):
    """Outcome of the last pass."""

    PENDING = "Pending"
    REPLICATING = "Replicating"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class ReplicationStatus(BaseModel):
    """Last-pass outcome, overwritten on every pass."""

    model_config = ConfigDict(frozen=True)

    phase: ReplicationPhase = ReplicationPhase.PENDING
    reason: str | None = None
    message: str | None = None
