import hashlib

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from efikeygen.lib.credentials import CredentialStore
from efikeygen.lib.errors import CredentialLookupError, ProviderError
from efikeygen.lib.provider import CryptoSession

from .conftest import CA_NICKNAME, STORE_PASSWORD


def test_session_lifecycle():
    session = CryptoSession()
    assert not session.is_open

    with session:
        assert session.is_open

    assert not session.is_open
    with pytest.raises(ProviderError):
        session.open()


def test_session_is_closed_on_error(subject_key):
    session = CryptoSession()

    with pytest.raises(ZeroDivisionError):
        with session:
            session.encode_public_key(subject_key.public_key())
            1 / 0

    assert not session.is_open


def test_session_cannot_be_opened_twice():
    with CryptoSession() as session:
        with pytest.raises(ProviderError):
            session.open()


def test_closed_session_refuses_work(subject_key):
    session = CryptoSession()
    with session:
        pass

    with pytest.raises(ProviderError):
        session.sign(b"data", subject_key)
    with pytest.raises(ProviderError):
        session.make_key_id(b"\x30\x00")
    with pytest.raises(ProviderError):
        session.close()


def test_make_key_id_is_sha1_of_public_key(session, subject_key):
    der = session.encode_public_key(subject_key.public_key())

    assert der == subject_key.public_key().public_bytes(
        Encoding.DER, PublicFormat.SubjectPublicKeyInfo
    )
    assert session.make_key_id(der) == hashlib.sha1(der).digest()


def test_make_key_id_requires_data(session):
    with pytest.raises(ProviderError):
        session.make_key_id(b"")


def test_sign_produces_pkcs1v15_sha256(session, subject_key):
    signature = session.sign(b"to be signed", subject_key)

    assert len(signature) == 256
    subject_key.public_key().verify(
        signature, b"to be signed", padding.PKCS1v15(), hashes.SHA256()
    )


def test_sign_rejects_unsupported_algorithm(session, subject_key):
    with pytest.raises(ProviderError):
        session.sign(b"data", subject_key, algorithm="1.2.840.113549.1.1.5")


def test_sign_rejects_non_rsa_key(session):
    key = ec.generate_private_key(ec.SECP256R1())

    with pytest.raises(ProviderError) as excinfo:
        session.sign(b"data", key)

    assert "RSA" in str(excinfo.value)


def test_load_keys_in_pem_and_der(session, subject_key):
    pem = subject_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())
    der = subject_key.private_bytes(Encoding.DER, PrivateFormat.PKCS8, NoEncryption())
    public_pem = subject_key.public_key().public_bytes(
        Encoding.PEM, PublicFormat.SubjectPublicKeyInfo
    )
    expected = session.encode_public_key(subject_key.public_key())

    for data in (pem, der):
        key = session.load_private_key(data)
        assert session.encode_public_key(key.public_key()) == expected

    assert session.encode_public_key(session.load_public_key(public_pem)) == expected
    assert session.encode_public_key(session.load_public_key(expected)) == expected


def test_load_garbage_keys(session):
    with pytest.raises(ProviderError):
        session.load_public_key(b"garbage")
    with pytest.raises(ProviderError):
        session.load_private_key(b"garbage")


def test_find_certificate_requires_store():
    with CryptoSession() as session:
        with pytest.raises(CredentialLookupError):
            session.find_certificate("NSS Certificate DB", "ca")


def test_find_key_by_cert(database, ca_key):
    store = CredentialStore(database, STORE_PASSWORD)

    with CryptoSession(store) as session:
        handle = session.find_certificate("NSS Certificate DB", CA_NICKNAME)
        key = session.find_key_by_cert(handle)

        assert session.encode_public_key(key.public_key()) == session.encode_public_key(
            ca_key.public_key()
        )
        assert session.find_key_by_cert(handle) is key
        assert session.certificate_public_key(handle) == session.encode_public_key(
            ca_key.public_key()
        )
