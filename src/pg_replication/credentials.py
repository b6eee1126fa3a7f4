# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Database credentials and their decoding from secret material.

Secret material comes either as a string-keyed mapping of strings or as a
string-keyed mapping of bytes. Both are normalized through the same fixed key
table into `DatabaseCredentials`.
"""

import dataclasses
import logging
from collections.abc import Mapping
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pg_replication.constants import (
    ADMIN_PASSWORD_KEY,
    ADMIN_USER_KEY,
    CREDENTIAL_KEYS,
    DATABASE_NAME_KEY,
    HOST_KEY,
    PASSWORD_KEY,
    PORT_KEY,
    REQUIRED_CREDENTIAL_KEYS,
    USER_KEY,
)
from pg_replication.errors import Condition, CredentialError

logger = logging.getLogger(__name__)


class DatabaseCredentials(BaseModel):
    """Connection parameters of one database."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, coerce_numbers_to_str=True)

    host: str = Field(alias=HOST_KEY)
    port: str = Field(alias=PORT_KEY)
    user: str = Field(alias=USER_KEY)
    password: str = Field(alias=PASSWORD_KEY, repr=False)
    database_name: str = Field(alias=DATABASE_NAME_KEY)
    admin_user: str = Field(alias=ADMIN_USER_KEY, default="")
    admin_password: str = Field(alias=ADMIN_PASSWORD_KEY, default="", repr=False)


@dataclasses.dataclass(frozen=True)
class StringSecretData:
    """Secret material whose values are strings."""

    values: Mapping[str, str]


@dataclasses.dataclass(frozen=True)
class BinarySecretData:
    """Secret material whose values are bytes."""

    values: Mapping[str, bytes]


SecretData = StringSecretData | BinarySecretData


class CredentialResolver(Protocol):
    """Resolves an opaque credentials reference."""

    def resolve(self, ref: str) -> DatabaseCredentials:
        """Return the credentials behind `ref`.

        Raises:
            CredentialError: if the reference can't be found or decoded.
        """
        ...


def _decode_value(key: str, value: bytes | str) -> str:
    if not isinstance(value, (bytes, bytearray)):
        return value
    try:
        return bytes(value).decode("utf-8")
    except UnicodeDecodeError as e:
        raise CredentialError(f"value of {key} is not valid UTF-8", Condition.MALFORMED) from e


def decode_credentials(data: SecretData) -> DatabaseCredentials:
    """Decode secret material into database credentials.

    Args:
        data: string or binary secret material keyed by the `db.*` keys.

    Returns:
        The decoded credentials.

    Raises:
        CredentialError: if a required key is missing or a value can't be decoded.
    """
    if isinstance(data, BinarySecretData):
        values = {key: _decode_value(key, value) for key, value in data.values.items()}
    elif isinstance(data, StringSecretData):
        values = dict(data.values)
    else:
        raise TypeError(f"unsupported secret data type {type(data).__name__}")

    if missing := [key for key in REQUIRED_CREDENTIAL_KEYS if key not in values]:
        raise CredentialError(
            f"missing credential keys: {', '.join(missing)}", Condition.MALFORMED
        )
    try:
        return DatabaseCredentials.model_validate({
            key: values[key] for key in CREDENTIAL_KEYS if key in values
        })
    except ValidationError as e:
        raise CredentialError(f"invalid credentials: {e}", Condition.MALFORMED) from e


class StaticCredentialResolver:
    """Resolves references from secret material held in memory."""

    def __init__(self, secrets: Mapping[str, SecretData]):
        self.secrets = secrets

    def resolve(self, ref: str) -> DatabaseCredentials:
        """Decode the secret material registered under `ref`."""
        if ref not in self.secrets:
            raise CredentialError(f"secret {ref} not found", Condition.NOT_FOUND)
        return decode_credentials(self.secrets[ref])
