"""
Parser for the certificate generation command.

This module defines the command-line interface of efikeygen, which issues
self-signed CA certificates or certificates signed by a CA from the
credential store.
"""

import argparse

from efikeygen.lib.constants import (
    DEFAULT_DATABASE,
    DEFAULT_OUTPUT,
    DEFAULT_TOKEN,
    DEFAULT_VALIDITY_DAYS,
)


def entry(options: argparse.Namespace) -> int:
    """
    Entry point for certificate generation.

    Imports the implementation lazily so that argument parsing and
    completion stay fast.

    Args:
        options: Parsed command-line arguments
    """
    from efikeygen.commands import keygen

    return keygen.entry(options)


def add_arguments(parser: argparse.ArgumentParser) -> None:
    """
    Add the certificate generation options to a parser.

    Args:
        parser: Parser to configure
    """
    # Certificate type
    type_group = parser.add_argument_group("certificate type options")
    type_group.add_argument(
        "-ca",
        action="store_true",
        help="Generate a CA certificate",
    )
    type_group.add_argument(
        "-self-sign",
        action="store_const",
        const=True,
        default=None,
        help="Generate a self-signed certificate (default for -ca without -signer)",
    )

    # Subject
    subject_group = parser.add_argument_group("subject options")
    subject_group.add_argument(
        "-common-name",
        "-cn",
        action="store",
        metavar="cn",
        help="Common Name for the generated certificate",
    )
    subject_group.add_argument(
        "-pubkey",
        action="store",
        metavar="public key file",
        help="Use the subject public key from this file (PEM or DER)",
    )
    subject_group.add_argument(
        "-key",
        action="store",
        metavar="private key file",
        help="Subject private key (PEM or DER). Required for self-signed certificates",
    )

    # Signer
    signer_group = parser.add_argument_group("signer options")
    signer_group.add_argument(
        "-signer",
        action="store",
        metavar="nickname",
        help="Nickname of the signing certificate",
    )
    signer_group.add_argument(
        "-token",
        action="store",
        metavar="token",
        default=DEFAULT_TOKEN,
        help=f"Token holding the signing key (default: {DEFAULT_TOKEN!r})",
    )
    signer_group.add_argument(
        "-database",
        "-d",
        action="store",
        metavar="directory",
        default=DEFAULT_DATABASE,
        help=f"Credential database directory (default: {DEFAULT_DATABASE})",
    )
    signer_group.add_argument(
        "-password",
        action="store",
        metavar="password",
        help="Password for the PKCS#12 bundles in the credential database",
    )

    # Certificate content
    content_group = parser.add_argument_group("certificate content options")
    content_group.add_argument(
        "-url",
        action="store",
        metavar="url",
        help="Issuer URL for the authority information access extension",
    )
    content_group.add_argument(
        "-serial",
        action="store",
        metavar="serial number",
        help="Serial number (decimal, 0x-prefixed hex or 0-prefixed octal)",
    )
    content_group.add_argument(
        "-validity-period",
        action="store",
        metavar="days",
        default=DEFAULT_VALIDITY_DAYS,
        type=int,
        help=f"Validity period in days (default: {DEFAULT_VALIDITY_DAYS})",
    )

    # Output
    output_group = parser.add_argument_group("output options")
    output_group.add_argument(
        "-out",
        "-o",
        action="store",
        metavar="output file name",
        default=DEFAULT_OUTPUT,
        help=f"Certificate output file name (default: {DEFAULT_OUTPUT})",
    )
    output_group.add_argument(
        "-pem",
        action="store_true",
        help="Write the certificate in PEM format instead of DER",
    )
