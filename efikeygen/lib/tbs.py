"""
To-be-signed certificate generation.

A TBSCertificateGenerator builds one unsigned X.509v3 certificate body and
serializes it to DER. Generators are single use: UNBUILT -> BUILT ->
SERIALIZED, with no way back.
"""

import datetime
import enum
from typing import List, Optional, Tuple

from asn1crypto import keys as asn1keys
from asn1crypto import x509 as asn1x509
from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import NameOID
from pyasn1.error import PyAsn1Error

from efikeygen.lib.constants import OID_SHA256_WITH_RSA
from efikeygen.lib.envelope import encode_algorithm_identifier
from efikeygen.lib.errors import SerializationError
from efikeygen.lib.extensions import Extension
from efikeygen.lib.logger import logging
from efikeygen.lib.time import uses_utc_time


class TBSState(enum.Enum):
    UNBUILT = "unbuilt"
    BUILT = "built"
    SERIALIZED = "serialized"


def subject_from_common_name(common_name: str) -> bytes:
    """
    Return the DER Name "CN=<common_name>".

    Raises:
        SerializationError: If the common name is empty or not a string
    """
    if not isinstance(common_name, str) or not common_name.strip():
        raise SerializationError("could not encode subject: empty common name")
    try:
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        return name.public_bytes()
    except (ValueError, TypeError) as e:
        raise SerializationError(f"could not encode subject: {e}") from e


def certificate_subject(certificate: x509.Certificate) -> bytes:
    """Return the subject of a certificate exactly as encoded in it."""
    der = certificate.public_bytes(Encoding.DER)
    return asn1x509.Certificate.load(der)["tbs_certificate"]["subject"].dump()


def _make_time(value: datetime.datetime) -> asn1x509.Time:
    if uses_utc_time(value):
        return asn1x509.Time({"utc_time": value})
    return asn1x509.Time({"general_time": value})


def _make_extension(extension: Extension) -> asn1x509.Extension:
    fields = {
        "extn_id": extension.oid,
        "extn_value": asn1x509.ParsableOctetString(extension.value),
    }
    if extension.critical:
        fields["critical"] = True
    return asn1x509.Extension(fields)


class TBSCertificateGenerator:
    """
    Builder for the unsigned certificate body.
    """

    def __init__(
        self,
        common_name: str,
        serial_number: int,
        public_key: bytes,
        extensions: List[Extension],
        validity: Tuple[datetime.datetime, datetime.datetime],
        issuer: Optional[bytes] = None,
        algorithm: str = OID_SHA256_WITH_RSA,
    ):
        """
        Args:
            common_name: Subject common name
            serial_number: Certificate serial number
            public_key: DER SubjectPublicKeyInfo of the subject
            extensions: Extensions to attach, in order
            validity: Tuple of (not_before, not_after)
            issuer: DER Name of the issuer; None for a self-signed certificate
            algorithm: Dotted OID of the signature algorithm
        """
        self.common_name = common_name
        self.serial_number = serial_number
        self.public_key = public_key
        self.extensions = list(extensions)
        self.validity = validity
        self.issuer = issuer
        self.algorithm = algorithm

        self.state = TBSState.UNBUILT
        self._tbs: Optional[asn1x509.TbsCertificate] = None

    def _public_key_info(self) -> asn1keys.PublicKeyInfo:
        if not self.public_key:
            raise SerializationError("could not encode public key: no key data")
        try:
            info = asn1keys.PublicKeyInfo.load(self.public_key, strict=True)
            # Force a full parse so that malformed keys fail here
            _ = info.native
        except (ValueError, TypeError) as e:
            raise SerializationError(f"could not encode public key: {e}") from e
        return info

    def build(self) -> None:
        """
        Build the certificate body.

        Raises:
            RuntimeError: If the generator was already used
            SerializationError: If any component cannot be encoded
        """
        if self.state != TBSState.UNBUILT:
            raise RuntimeError(f"TBS certificate already {self.state.value}")

        subject = subject_from_common_name(self.common_name)
        issuer = self.issuer if self.issuer is not None else subject
        not_before, not_after = self.validity

        if not_after <= not_before:
            raise SerializationError("could not encode validity: empty window")

        try:
            self._tbs = asn1x509.TbsCertificate(
                {
                    "version": "v3",
                    "serial_number": self.serial_number,
                    "signature": asn1x509.SignedDigestAlgorithm.load(
                        encode_algorithm_identifier(self.algorithm)
                    ),
                    "issuer": asn1x509.Name.load(issuer),
                    "validity": asn1x509.Validity(
                        {
                            "not_before": _make_time(not_before),
                            "not_after": _make_time(not_after),
                        }
                    ),
                    "subject": asn1x509.Name.load(subject),
                    "subject_public_key_info": self._public_key_info(),
                    "extensions": [_make_extension(e) for e in self.extensions],
                }
            )
        except (ValueError, TypeError, PyAsn1Error) as e:
            raise SerializationError(f"could not build certificate: {e}") from e

        self.state = TBSState.BUILT
        logging.debug(
            f"Built TBS certificate for CN={self.common_name} "
            f"(serial {self.serial_number}, {len(self.extensions)} extensions)"
        )

    def serialize(self) -> bytes:
        """
        Serialize the built certificate body to DER.

        Raises:
            RuntimeError: If build() has not been called or the body was
                already serialized
            SerializationError: If encoding fails
        """
        if self.state != TBSState.BUILT or self._tbs is None:
            raise RuntimeError(
                f"cannot serialize a TBS certificate that is {self.state.value}"
            )

        try:
            data = self._tbs.dump()
        except (ValueError, TypeError) as e:
            raise SerializationError(f"could not encode certificate: {e}") from e

        self.state = TBSState.SERIALIZED
        self._tbs = None
        return data
