"""
X.509v3 extensions for secure-boot signing certificates.

Each builder is a pure function returning the DER-encoded extension value
(the contents of extnValue). build_extension_set() assembles the ordered
extension list for one certificate:

1. Subject Key Identifier
2. Basic Constraints and Key Usage (CA certificates only)
3. Extended Key Usage (code signing)
4. Authority Key Identifier
5. Authority Information Access (caIssuers URL)
"""

import string
from dataclasses import dataclass
from typing import Callable, List, Optional

from asn1crypto import core as asn1core
from asn1crypto import x509 as asn1x509

from efikeygen.lib.constants import (
    EXTENDED_KEY_USAGE_CODE_SIGNING,
    EXTENSION_NAMES,
    KEY_USAGE_CA,
    OID_AUTHORITY_INFO_ACCESS,
    OID_AUTHORITY_KEY_IDENTIFIER,
    OID_BASIC_CONSTRAINTS,
    OID_CA_ISSUERS,
    OID_EXTENDED_KEY_USAGE,
    OID_KEY_USAGE,
    OID_SUBJECT_KEY_IDENTIFIER,
)
from efikeygen.lib.errors import EncodingError, ExtensionError, ProviderError
from efikeygen.lib.logger import logging
from efikeygen.lib.provider import CryptoSession

# Printable ASCII without space; anything else cannot appear in an IA5 URI
_URI_CHARACTERS = frozenset(string.ascii_letters + string.digits + string.punctuation)


@dataclass(frozen=True)
class Extension:
    """A certificate extension: OID, criticality and DER-encoded value."""

    oid: str
    critical: bool
    value: bytes

    @property
    def name(self) -> str:
        return EXTENSION_NAMES.get(self.oid, self.oid)


# =========================================================================
# Extension builders
# =========================================================================


def _key_id(session: CryptoSession, public_key_der: bytes) -> bytes:
    try:
        return session.make_key_id(public_key_der)
    except ProviderError as e:
        raise EncodingError(str(e)) from e


def subject_key_identifier(session: CryptoSession, public_key_der: bytes) -> bytes:
    """
    Build the Subject Key Identifier value.

    Args:
        session: Provider session computing the key identifier
        public_key_der: DER SubjectPublicKeyInfo of the subject

    Returns:
        OCTET STRING holding the key identifier
    """
    return asn1core.OctetString(_key_id(session, public_key_der)).dump()


def authority_key_identifier(
    session: CryptoSession, issuer_public_key_der: bytes
) -> bytes:
    """
    Build the Authority Key Identifier value.

    The key identifier goes into the keyIdentifier [0] IMPLICIT field of the
    AuthorityKeyIdentifier SEQUENCE. Which key to use (the subject's own for
    a self-signed certificate, the signer's otherwise) is up to the caller.

    Args:
        session: Provider session computing the key identifier
        issuer_public_key_der: DER SubjectPublicKeyInfo of the issuing key

    Returns:
        AuthorityKeyIdentifier SEQUENCE
    """
    key_id = _key_id(session, issuer_public_key_der)
    return asn1x509.AuthorityKeyIdentifier({"key_identifier": key_id}).dump()


def key_usage() -> bytes:
    """Build the fixed CA Key Usage value."""
    return KEY_USAGE_CA


def basic_constraints() -> bytes:
    """Build Basic Constraints for a CA without a path length limit."""
    return asn1x509.BasicConstraints({"ca": True}).dump()


def extended_key_usage() -> bytes:
    """Build the code-signing Extended Key Usage value."""
    return EXTENDED_KEY_USAGE_CODE_SIGNING


def authority_info_access(url: Optional[str]) -> bytes:
    """
    Build Authority Information Access pointing at the issuer's certificate.

    Args:
        url: Issuer URL

    Returns:
        AuthorityInfoAccessSyntax with one caIssuers access description

    Raises:
        EncodingError: If the URL is missing or not a valid IA5 string
    """
    if not url:
        raise EncodingError("issuer URL is required")

    bad = sorted(set(c for c in url if c not in _URI_CHARACTERS))
    if bad:
        raise EncodingError(
            f"issuer URL {url!r} contains characters not allowed in an IA5 "
            f"URI: {', '.join(repr(c) for c in bad)}"
        )

    if ":" not in url or not url.split(":", 1)[0]:
        raise EncodingError(f"issuer URL {url!r} has no scheme")

    return asn1x509.AuthorityInfoAccessSyntax(
        [
            asn1x509.AccessDescription(
                {
                    "access_method": OID_CA_ISSUERS,
                    "access_location": asn1x509.GeneralName(
                        name="uniform_resource_identifier", value=url
                    ),
                }
            )
        ]
    ).dump()


# =========================================================================
# Extension set assembly
# =========================================================================


def _make_extension(
    oid: str, critical: bool, builder: Callable[[], bytes]
) -> Extension:
    name = EXTENSION_NAMES.get(oid, oid)
    try:
        value = builder()
    except (EncodingError, ValueError, TypeError) as e:
        raise ExtensionError(name, str(e)) from e

    logging.debug(f"Adding {name} extension ({len(value)} bytes)")
    return Extension(oid, critical, value)


def build_extension_set(
    session: CryptoSession,
    is_ca: bool,
    is_self_signed: bool,
    subject_public_key: bytes,
    issuer_public_key: Optional[bytes],
    issuer_url: Optional[str],
) -> List[Extension]:
    """
    Assemble the extensions of a certificate.

    Args:
        session: Provider session computing key identifiers
        is_ca: Whether the subject is a CA
        is_self_signed: Whether the subject signs its own certificate
        subject_public_key: DER SubjectPublicKeyInfo of the subject
        issuer_public_key: DER SubjectPublicKeyInfo of the signer (ignored
            when self-signed)
        issuer_url: URL for Authority Information Access

    Returns:
        Ordered list of extensions

    Raises:
        ExtensionError: If any extension cannot be built
    """
    authority_key = subject_public_key if is_self_signed else issuer_public_key
    if authority_key is None:
        raise ExtensionError(
            EXTENSION_NAMES[OID_AUTHORITY_KEY_IDENTIFIER], "no signer public key"
        )

    extensions = [
        _make_extension(
            OID_SUBJECT_KEY_IDENTIFIER,
            False,
            lambda: subject_key_identifier(session, subject_public_key),
        )
    ]

    if is_ca:
        extensions.append(
            _make_extension(OID_BASIC_CONSTRAINTS, True, basic_constraints)
        )
        extensions.append(_make_extension(OID_KEY_USAGE, True, key_usage))

    extensions.append(
        _make_extension(OID_EXTENDED_KEY_USAGE, False, extended_key_usage)
    )
    extensions.append(
        _make_extension(
            OID_AUTHORITY_KEY_IDENTIFIER,
            False,
            lambda: authority_key_identifier(session, authority_key),
        )
    )
    extensions.append(
        _make_extension(
            OID_AUTHORITY_INFO_ACCESS,
            False,
            lambda: authority_info_access(issuer_url),
        )
    )

    oids = [extension.oid for extension in extensions]
    duplicates = set(oid for oid in oids if oids.count(oid) > 1)
    if duplicates:
        raise ExtensionError(
            ", ".join(EXTENSION_NAMES.get(oid, oid) for oid in sorted(duplicates)),
            "duplicate extension",
        )

    return extensions
