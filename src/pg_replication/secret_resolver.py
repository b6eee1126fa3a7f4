# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Credentials resolution from Kubernetes secrets."""

import base64
import binascii
import logging

import httpx
from lightkube import ApiError, Client
from lightkube.resources.core_v1 import Secret

from pg_replication.credentials import (
    BinarySecretData,
    DatabaseCredentials,
    StringSecretData,
    decode_credentials,
)
from pg_replication.errors import Condition, CredentialError

logger = logging.getLogger(__name__)


class KubernetesSecretResolver:
    """Reads database credentials from secrets of one namespace."""

    def __init__(self, namespace: str, client: Client | None = None):
        self.namespace = namespace
        self._client = client

    @property
    def client(self) -> Client:
        """Kubernetes client, created on first use."""
        if self._client is None:
            self._client = Client()
        return self._client

    def resolve(self, ref: str) -> DatabaseCredentials:
        """Return the credentials stored in the secret named `ref`.

        Raises:
            CredentialError: if the secret doesn't exist, can't be read or is malformed.
        """
        try:
            secret = self.client.get(Secret, name=ref, namespace=self.namespace)
        except ApiError as e:
            if e.status.code == 404:
                raise CredentialError(
                    f"secret {ref} not found in namespace {self.namespace}", Condition.NOT_FOUND
                ) from e
            logger.error(f"Failed to read secret {ref}: {e}")
            raise CredentialError(f"failed to read secret {ref}: {e}") from e
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"Failed to reach the Kubernetes API for secret {ref}: {e}")
            raise CredentialError(f"failed to read secret {ref}: {e}") from e

        if secret.data:
            try:
                values = {key: base64.b64decode(value) for key, value in secret.data.items()}
            except binascii.Error as e:
                raise CredentialError(
                    f"secret {ref} holds invalid base64 data", Condition.MALFORMED
                ) from e
            return decode_credentials(BinarySecretData(values))
        if secret.stringData:
            return decode_credentials(StringSecretData(secret.stringData))
        raise CredentialError(f"secret {ref} has no data", Condition.MALFORMED)
