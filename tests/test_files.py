import base64
import os
import stat

import pytest

from efikeygen.lib import files
from efikeygen.lib.errors import OutputError
from efikeygen.lib.files import der_to_pem, save_file


def test_save_file_writes_owner_only(tmp_path):
    path = tmp_path / "signed.cer"

    assert save_file(b"\x30\x00", str(path)) == str(path)

    assert path.read_bytes() == b"\x30\x00"
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_save_file_truncates_existing(tmp_path):
    path = tmp_path / "signed.cer"
    path.write_bytes(b"x" * 100)

    save_file("text", str(path))

    assert path.read_bytes() == b"text"


def test_save_file_missing_directory(tmp_path):
    with pytest.raises(OutputError):
        save_file(b"data", str(tmp_path / "missing" / "signed.cer"))


def test_failed_write_removes_partial_output(tmp_path, monkeypatch):
    path = tmp_path / "signed.cer"

    class FailingFile:
        def __init__(self, fd):
            self.fd = fd

        def __enter__(self):
            return self

        def __exit__(self, *args):
            os.close(self.fd)

        def write(self, data):
            os.write(self.fd, data[:1])
            raise OSError(28, "No space left on device")

    monkeypatch.setattr(files.os, "fdopen", lambda fd, mode: FailingFile(fd))

    with pytest.raises(OutputError) as excinfo:
        save_file(b"\x30\x03\x02\x01\x01", str(path))

    assert isinstance(excinfo.value, OSError)
    assert not path.exists()


def test_der_to_pem_wraps_at_64_columns():
    der = bytes(range(200))

    pem = der_to_pem(der, "certificate")
    lines = pem.splitlines()

    assert lines[0] == "-----BEGIN CERTIFICATE-----"
    assert lines[-1] == "-----END CERTIFICATE-----"
    assert all(len(line) <= 64 for line in lines[1:-1])
    assert base64.b64decode("".join(lines[1:-1])) == der
