import shutil

import pytest

from efikeygen.lib.constants import DEFAULT_TOKEN
from efikeygen.lib.credentials import CredentialStore
from efikeygen.lib.errors import CredentialLookupError

from .conftest import CA_NICKNAME, STORE_PASSWORD


def test_find_by_friendly_name(database, ca_certificate):
    store = CredentialStore(database, STORE_PASSWORD)

    handle = store.find_certificate(DEFAULT_TOKEN, CA_NICKNAME)

    assert handle.certificate == ca_certificate
    assert handle.path.name == "ca.p12"
    assert str(handle) == f"{DEFAULT_TOKEN}:{CA_NICKNAME}"


def test_find_by_file_name(database, ca_certificate):
    store = CredentialStore(database, STORE_PASSWORD)

    assert store.find_certificate(DEFAULT_TOKEN, "ca").certificate == ca_certificate


def test_empty_token_means_database(database, ca_certificate):
    store = CredentialStore(database, STORE_PASSWORD)

    assert store.find_certificate("", "ca").certificate == ca_certificate


def test_find_in_token_directory(tmp_path, database, ca_certificate):
    token = tmp_path / "db" / "hsm"
    token.mkdir()
    shutil.move(str(tmp_path / "db" / "ca.p12"), str(token / "signer.pfx"))
    store = CredentialStore(database, STORE_PASSWORD)

    assert store.find_certificate("hsm", "signer").certificate == ca_certificate
    with pytest.raises(CredentialLookupError):
        store.find_certificate(DEFAULT_TOKEN, "signer")


def test_unknown_nickname(database):
    store = CredentialStore(database, STORE_PASSWORD)

    with pytest.raises(CredentialLookupError) as excinfo:
        store.find_certificate(DEFAULT_TOKEN, "missing")

    assert "missing" in str(excinfo.value)


def test_unknown_token(database):
    store = CredentialStore(database, STORE_PASSWORD)

    with pytest.raises(CredentialLookupError):
        store.find_certificate("no such token", CA_NICKNAME)


def test_missing_database(tmp_path):
    store = CredentialStore(str(tmp_path / "nowhere"))

    with pytest.raises(CredentialLookupError):
        store.find_certificate(DEFAULT_TOKEN, CA_NICKNAME)


def test_wrong_password_for_named_bundle(database):
    store = CredentialStore(database, "wrong")

    with pytest.raises(CredentialLookupError):
        store.find_certificate(DEFAULT_TOKEN, "ca")


def test_wrong_password_skips_friendly_name_match(database):
    store = CredentialStore(database, "wrong")

    with pytest.raises(CredentialLookupError):
        store.find_certificate(DEFAULT_TOKEN, CA_NICKNAME)


def test_load_private_key(database, ca_key):
    store = CredentialStore(database, STORE_PASSWORD)
    handle = store.find_certificate(DEFAULT_TOKEN, CA_NICKNAME)

    key = store.load_private_key(handle)

    assert key.private_numbers() == ca_key.private_numbers()


def test_ignores_other_files(tmp_path, database, ca_certificate):
    (tmp_path / "db" / "notes.txt").write_text("not a bundle")
    (tmp_path / "db" / "broken.p12").write_bytes(b"not a bundle")
    store = CredentialStore(database, STORE_PASSWORD)

    assert store.find_certificate(DEFAULT_TOKEN, CA_NICKNAME).certificate == ca_certificate
