# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Structured configuration for the replication engine."""

import logging

from pydantic import BaseModel, Field, PositiveInt

from pg_replication.constants import DEFAULT_APPLICATION_NAME

logger = logging.getLogger(__name__)


class EngineConfig(BaseModel):
    """Manager for the structured configuration."""

    connect_timeout: int = Field(ge=1, le=600, default=5)
    connect_attempts: PositiveInt = Field(le=20, default=3)
    connect_retry_wait: float = Field(ge=0, le=60, default=1)
    statement_timeout: int | None = Field(ge=0, le=2147483647, default=None)
    pass_timeout: float | None = Field(gt=0, default=None)
    application_name: str = Field(min_length=1, max_length=63, default=DEFAULT_APPLICATION_NAME)

    @classmethod
    def keys(cls) -> list[str]:
        """Return config as list items."""
        return list(cls.model_fields.keys())

    def connection_options(self) -> dict:
        """Keyword arguments passed to the database driver on connect."""
        options = {
            "connect_timeout": self.connect_timeout,
            "application_name": self.application_name,
        }
        if self.statement_timeout is not None:
            options["options"] = f"-c statement_timeout={self.statement_timeout}"
        return options
