# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.
import pytest

from pg_replication.credentials import (
    BinarySecretData,
    DatabaseCredentials,
    StaticCredentialResolver,
    StringSecretData,
    decode_credentials,
)
from pg_replication.errors import Condition, CredentialError, ErrorKind

SECRET = {
    "db.host": "pub.example",
    "db.port": "5432",
    "db.user": "replicator",
    "db.password": "S3cret",
    "db.name": "appdb",
}


def test_decode_string_secret_data():
    credentials = decode_credentials(StringSecretData(SECRET))

    assert credentials == DatabaseCredentials(
        host="pub.example",
        port="5432",
        user="replicator",
        password="S3cret",  # noqa: S106
        database_name="appdb",
    )
    assert credentials.admin_user == ""
    assert credentials.admin_password == ""


def test_decode_binary_secret_data():
    data = {key: value.encode() for key, value in SECRET.items()}
    data["db.admin_user"] = b"postgres"
    data["db.admin_password"] = b"Adm1n"

    credentials = decode_credentials(BinarySecretData(data))

    assert credentials.host == "pub.example"
    assert credentials.password == "S3cret"  # noqa: S105
    assert credentials.admin_user == "postgres"
    assert credentials.admin_password == "Adm1n"  # noqa: S105


def test_decode_preserves_case():
    credentials = decode_credentials(StringSecretData({**SECRET, "db.user": "Replicator"}))

    assert credentials.user == "Replicator"


def test_decode_numeric_port():
    credentials = decode_credentials(StringSecretData({**SECRET, "db.port": 5432}))

    assert credentials.port == "5432"


def test_decode_ignores_unknown_keys():
    credentials = decode_credentials(StringSecretData({**SECRET, "db.sslmode": "require"}))

    assert credentials.database_name == "appdb"


@pytest.mark.parametrize("key", ["db.host", "db.port", "db.user", "db.password", "db.name"])
def test_decode_missing_required_key(key):
    data = {k: v for k, v in SECRET.items() if k != key}

    with pytest.raises(CredentialError) as e:
        decode_credentials(StringSecretData(data))

    assert e.value.kind == ErrorKind.CREDENTIAL
    assert e.value.condition == Condition.MALFORMED
    assert key in e.value.message


def test_decode_invalid_utf8():
    data = {key: value.encode() for key, value in SECRET.items()}
    data["db.password"] = b"\xff\xfe"

    with pytest.raises(CredentialError) as e:
        decode_credentials(BinarySecretData(data))

    assert e.value.condition == Condition.MALFORMED
    assert "db.password" in e.value.message


def test_decode_unsupported_type():
    with pytest.raises(TypeError):
        decode_credentials(SECRET)


def test_credentials_repr_hides_passwords():
    credentials = decode_credentials(
        StringSecretData({**SECRET, "db.admin_password": "Adm1n"})
    )

    assert "S3cret" not in repr(credentials)
    assert "Adm1n" not in repr(credentials)


def test_static_resolver():
    resolver = StaticCredentialResolver({"publisher": StringSecretData(SECRET)})

    assert resolver.resolve("publisher").host == "pub.example"

    with pytest.raises(CredentialError) as e:
        resolver.resolve("subscriber")
    assert e.value.condition == Condition.NOT_FOUND
