import argparse

import pytest
from cryptography import x509

from efikeygen import entry
from efikeygen.commands.parsers.keygen import add_arguments
from efikeygen.lib.constants import DEFAULT_DATABASE, DEFAULT_OUTPUT, DEFAULT_TOKEN


def run(argv):
    with pytest.raises(SystemExit) as excinfo:
        entry.main(argv)
    return excinfo.value.code


def test_parser_defaults():
    options = entry.build_parser().parse_args(["-ca", "-cn", "Test CA"])

    assert options.ca is True
    assert options.self_sign is None
    assert options.common_name == "Test CA"
    assert options.token == DEFAULT_TOKEN
    assert options.database == DEFAULT_DATABASE
    assert options.out == DEFAULT_OUTPUT
    assert options.validity_period == 3650
    assert options.pem is False


def test_parser_aliases():
    parser = argparse.ArgumentParser()
    add_arguments(parser)

    options = parser.parse_args(
        ["-cn", "Leaf", "-d", "/tmp/db", "-o", "leaf.cer", "-validity-period", "30"]
    )

    assert options.common_name == "Leaf"
    assert options.database == "/tmp/db"
    assert options.out == "leaf.cer"
    assert options.validity_period == 30


def test_self_signed_ca(tmp_path, subject_key_file):
    out = tmp_path / "ca.cer"

    status = run(
        [
            "-ca",
            "-self-sign",
            "-common-name",
            "Test CA",
            "-key",
            subject_key_file,
            "-serial",
            "1",
            "-url",
            "http://example.com/ca.cer",
            "-out",
            str(out),
        ]
    )

    assert status == 0
    certificate = x509.load_der_x509_certificate(out.read_bytes())
    assert certificate.subject.rfc4514_string() == "CN=Test CA"


def test_pem_output(tmp_path, subject_key_file):
    out = tmp_path / "ca.pem"

    status = run(
        [
            "-ca",
            "-cn",
            "Test CA",
            "-key",
            subject_key_file,
            "-serial",
            "0x10",
            "-url",
            "http://example.com",
            "-o",
            str(out),
            "-pem",
        ]
    )

    assert status == 0
    assert x509.load_pem_x509_certificate(out.read_bytes()).serial_number == 16


def test_conflicting_signers(tmp_path, capsys):
    out = tmp_path / "ca.cer"

    status = run(
        ["-ca", "-self-sign", "-signer", "ca", "-cn", "Test CA", "-o", str(out)]
    )

    assert status == 1
    assert not out.exists()
    assert "cannot be used at the same time" in capsys.readouterr().out


def test_leaf_without_signer(tmp_path, subject_pubkey_file):
    out = tmp_path / "leaf.cer"

    status = run(
        ["-cn", "Leaf", "-pubkey", subject_pubkey_file, "-serial", "1", "-o", str(out)]
    )

    assert status == 1
    assert not out.exists()


def test_no_arguments_prints_help(capsys):
    assert run([]) == 1
    assert "-common-name" in capsys.readouterr().out


def test_version_returns_early():
    assert entry.main(["-v"]) is None
