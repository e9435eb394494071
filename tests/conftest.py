import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption,
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    pkcs12,
)

from efikeygen.commands.keygen import KeyGen
from efikeygen.lib.provider import CryptoSession

FIXED_NOW = datetime.datetime(2024, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)

STORE_PASSWORD = "secret"
CA_NICKNAME = "Secure Boot CA"


def fixed_clock() -> datetime.datetime:
    return FIXED_NOW


def write_private_key(path, key) -> str:
    path.write_bytes(
        key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())
    )
    return str(path)


def write_public_key(path, key, encoding=Encoding.DER) -> str:
    path.write_bytes(
        key.public_key().public_bytes(encoding, PublicFormat.SubjectPublicKeyInfo)
    )
    return str(path)


@pytest.fixture(scope="session")
def ca_key():
    return rsa.generate_private_key(public_exponent=0x10001, key_size=2048)


@pytest.fixture(scope="session")
def subject_key():
    return rsa.generate_private_key(public_exponent=0x10001, key_size=2048)


@pytest.fixture
def ca_key_file(tmp_path, ca_key):
    return write_private_key(tmp_path / "ca.key", ca_key)


@pytest.fixture
def subject_key_file(tmp_path, subject_key):
    return write_private_key(tmp_path / "subject.key", subject_key)


@pytest.fixture
def subject_pubkey_file(tmp_path, subject_key):
    return write_public_key(tmp_path / "subject.pub", subject_key)


@pytest.fixture
def session():
    with CryptoSession() as session:
        yield session


@pytest.fixture
def ca_certificate(ca_key_file):
    der = KeyGen(
        common_name=CA_NICKNAME,
        ca=True,
        key=ca_key_file,
        serial="1",
        url="http://example.com/ca.cer",
        clock=fixed_clock,
    ).generate()
    return x509.load_der_x509_certificate(der)


@pytest.fixture
def database(tmp_path, ca_key, ca_certificate):
    """Credential database holding the CA as db/ca.p12 with a friendly name."""
    db = tmp_path / "db"
    db.mkdir()
    (db / "ca.p12").write_bytes(
        pkcs12.serialize_key_and_certificates(
            name=CA_NICKNAME.encode(),
            key=ca_key,
            cert=ca_certificate,
            cas=None,
            encryption_algorithm=BestAvailableEncryption(STORE_PASSWORD.encode()),
        )
    )
    return str(db)
