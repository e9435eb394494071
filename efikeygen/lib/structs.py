"""
ASN.1 structure definitions for the signed certificate envelope.

These are pyasn1 definitions, used with the generic DER encoder. The
signature field is declared as an OCTET STRING because the envelope is fed
the signature as an opaque blob; see efikeygen.lib.envelope for how the
encoded tag is corrected afterwards.
"""

from pyasn1.type import namedtype, univ


class AlgorithmIdentifier(univ.Sequence):
    """
    AlgorithmIdentifier ::= SEQUENCE {
        algorithm   OBJECT IDENTIFIER,
        parameters  ANY DEFINED BY algorithm OPTIONAL }

    Only algorithms with NULL parameters (PKCS#1 RSA) are used here.
    """

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("algorithm", univ.ObjectIdentifier()),
        namedtype.OptionalNamedType("parameters", univ.Null()),
    )


class SignedCertificate(univ.Sequence):
    """
    Certificate ::= SEQUENCE {
        tbsCertificate      ANY,
        signatureAlgorithm  AlgorithmIdentifier,
        signature           OCTET STRING }   -- patched to BIT STRING
    """

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("tbsCertificate", univ.Any()),
        namedtype.NamedType("signatureAlgorithm", AlgorithmIdentifier()),
        namedtype.NamedType("signature", univ.OctetString()),
    )
