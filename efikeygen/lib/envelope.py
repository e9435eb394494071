"""
Signed certificate envelope encoding.

The final certificate is the SEQUENCE

    { tbsCertificate, signatureAlgorithm, signature BIT STRING }

It is encoded with the generic pyasn1 DER encoder, which receives the
signature as an opaque OCTET STRING. The zero "unused bits" octet that a
BIT STRING carries is prepended to the signature before encoding, and the
OCTET STRING tag of the last field is then rewritten to the BIT STRING tag
by patch_signature_tag(). Since the signature is always the last field, its
tag sits at a fixed distance from the end of the buffer that depends only
on the signature length.
"""

from pyasn1.codec.der import encoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import univ

from efikeygen.lib.constants import (
    DER_BIT_STRING,
    DER_OCTET_STRING,
    OID_SHA256_WITH_RSA,
)
from efikeygen.lib.errors import EncodingError
from efikeygen.lib.logger import logging
from efikeygen.lib.structs import AlgorithmIdentifier, SignedCertificate


def algorithm_identifier(oid: str = OID_SHA256_WITH_RSA) -> AlgorithmIdentifier:
    """
    Create an AlgorithmIdentifier with NULL parameters.

    Args:
        oid: Dotted algorithm OID (default: sha256WithRSAEncryption)

    Returns:
        AlgorithmIdentifier structure
    """
    algorithm = AlgorithmIdentifier()
    algorithm["algorithm"] = univ.ObjectIdentifier(oid)
    algorithm["parameters"] = univ.Null("")
    return algorithm


def encode_algorithm_identifier(oid: str = OID_SHA256_WITH_RSA) -> bytes:
    """Return the DER encoding of the AlgorithmIdentifier for oid."""
    return encoder.encode(algorithm_identifier(oid))


def _length_octets(length: int) -> int:
    """Return how many octets the DER length field for length occupies."""
    if length < 0x80:
        return 1
    return 1 + (length.bit_length() + 7) // 8


def signature_tag_offset(signature_length: int) -> int:
    """
    Distance from the end of the envelope to the signature field tag.

    The signature field is tag (1 octet) + length octets + content, where the
    content is the unused-bits octet followed by the signature.

    Args:
        signature_length: Length of the raw signature in bytes

    Returns:
        Number of bytes between the tag and the end of the buffer, tag included
    """
    content_length = signature_length + 1
    return 1 + _length_octets(content_length) + content_length


def patch_signature_tag(encoded: bytes, signature_length: int) -> bytes:
    """
    Rewrite the OCTET STRING tag of the trailing signature field as BIT STRING.

    Args:
        encoded: DER envelope whose last field is the signature OCTET STRING
        signature_length: Length of the raw signature in bytes

    Returns:
        Patched envelope

    Raises:
        EncodingError: If the computed position does not hold an OCTET STRING tag
    """
    offset = signature_tag_offset(signature_length)
    if offset > len(encoded):
        raise EncodingError(
            f"signature field ({offset} bytes) does not fit in the "
            f"{len(encoded)}-byte certificate encoding"
        )

    position = len(encoded) - offset
    if encoded[position] != DER_OCTET_STRING:
        raise EncodingError(
            f"expected OCTET STRING tag at offset {position}, "
            f"found 0x{encoded[position]:02x}"
        )

    patched = bytearray(encoded)
    patched[position] = DER_BIT_STRING
    return bytes(patched)


def encode_signed_certificate(
    tbs_data: bytes, signature: bytes, algorithm: str = OID_SHA256_WITH_RSA
) -> bytes:
    """
    Assemble the signed certificate.

    Args:
        tbs_data: DER-encoded TBSCertificate
        signature: Raw signature over tbs_data
        algorithm: Dotted OID of the signature algorithm

    Returns:
        DER-encoded certificate

    Raises:
        EncodingError: If the envelope cannot be encoded
    """
    if not tbs_data:
        raise EncodingError("could not encode certificate: empty TBS certificate")
    if not signature:
        raise EncodingError("could not encode certificate: empty signature")

    certificate = SignedCertificate()
    try:
        certificate["tbsCertificate"] = univ.Any(tbs_data)
        certificate["signatureAlgorithm"] = algorithm_identifier(algorithm)
        certificate["signature"] = univ.OctetString(b"\x00" + signature)
        encoded = encoder.encode(certificate)
    except PyAsn1Error as e:
        raise EncodingError(f"could not encode certificate: {e}") from e

    logging.debug(
        f"Encoded certificate envelope ({len(encoded)} bytes, "
        f"{len(signature)}-byte signature)"
    )

    return patch_signature_tag(encoded, len(signature))
