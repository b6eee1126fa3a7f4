# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""File containing constants used by the replication engine."""

SSL_MODE = "disable"
DEFAULT_APPLICATION_NAME = "pg-logical-replication"
# Longer identifiers are truncated by PostgreSQL (NAMEDATALEN - 1).
MAX_IDENTIFIER_LENGTH = 63

# Keys of the credential material, as stored in the secret.
HOST_KEY = "db.host"
PORT_KEY = "db.port"
USER_KEY = "db.user"
PASSWORD_KEY = "db.password"  # noqa: S105
DATABASE_NAME_KEY = "db.name"
ADMIN_USER_KEY = "db.admin_user"
ADMIN_PASSWORD_KEY = "db.admin_password"  # noqa: S105

CREDENTIAL_KEYS = [
    HOST_KEY,
    PORT_KEY,
    USER_KEY,
    PASSWORD_KEY,
    DATABASE_NAME_KEY,
    ADMIN_USER_KEY,
    ADMIN_PASSWORD_KEY,
]
REQUIRED_CREDENTIAL_KEYS = [HOST_KEY, PORT_KEY, USER_KEY, PASSWORD_KEY, DATABASE_NAME_KEY]

# Types whose precision modifier goes before the "with/without time zone" suffix.
DATETIME_TYPES_WITH_ZONE = ["time", "timestamp"]
