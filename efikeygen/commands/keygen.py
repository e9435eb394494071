"""
Signing certificate generation for UEFI secure boot.

This module issues X.509v3 code-signing certificates suitable for
secure-boot key enrollment. It supports:
- Self-signed CA certificates, signed with the subject's own key
- Certificates signed by a CA certificate held in the credential store
- Fixed CA extensions (basic constraints, key usage) for CA certificates
- Code-signing extended key usage and issuer information access on all
  certificates

The signing mode is resolved once, before any cryptographic work, from the
-ca, -self-sign and -signer options.
"""

import argparse
import datetime
import enum
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from efikeygen.lib.constants import (
    DEFAULT_DATABASE,
    DEFAULT_OUTPUT,
    DEFAULT_TOKEN,
    DEFAULT_VALIDITY_DAYS,
    MAX_SERIAL_NUMBER,
    OID_SHA256_WITH_RSA,
)
from efikeygen.lib.credentials import CredentialStore
from efikeygen.lib.envelope import encode_signed_certificate
from efikeygen.lib.errors import ConfigurationError, EfiKeygenError, handle_error
from efikeygen.lib.extensions import build_extension_set
from efikeygen.lib.files import der_to_pem, save_file
from efikeygen.lib.logger import logging
from efikeygen.lib.provider import CryptoSession
from efikeygen.lib.tbs import TBSCertificateGenerator, certificate_subject
from efikeygen.lib.time import Clock, utc_now, validity_window

SIGNATURE_ALGORITHM = OID_SHA256_WITH_RSA


class WorkflowState(enum.Enum):
    START = "start"
    CONTEXT_RESOLVED = "context resolved"
    CERTIFICATE_BUILT = "certificate built"
    SIGNED = "signed"
    ENVELOPE_ENCODED = "envelope encoded"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class SelfSigned:
    """The subject signs its own certificate."""


@dataclass(frozen=True)
class CASigned:
    """A certificate from the credential store signs the subject."""

    token: str
    nickname: str


Signer = Union[SelfSigned, CASigned]


@dataclass(frozen=True)
class SigningContext:
    """Resolved inputs for one certificate."""

    signer: Signer
    common_name: str
    serial_number: int
    validity: Tuple[datetime.datetime, datetime.datetime]
    is_ca: bool
    issuer_url: Optional[str]

    @property
    def is_self_signed(self) -> bool:
        return isinstance(self.signer, SelfSigned)


@dataclass(frozen=True)
class SignerMaterial:
    """Key material of whoever signs the certificate."""

    private_key: PrivateKeyTypes
    public_key: bytes
    issuer: Optional[bytes]


def resolve_signer(
    is_ca: bool,
    self_sign: Optional[bool],
    signer: Optional[str],
    token: Optional[str] = DEFAULT_TOKEN,
) -> Signer:
    """
    Decide who signs the certificate.

    An explicit self_sign wins; when it is unset a CA certificate without a
    named signer is self-signed.

    Args:
        is_ca: Whether a CA certificate is requested
        self_sign: Explicit self-sign request, or None if unset
        signer: Nickname of the signing certificate, if any
        token: Token holding the signing certificate

    Returns:
        SelfSigned() or CASigned(token, nickname)

    Raises:
        ConfigurationError: If both self-signing and a signer were requested,
            or neither is available
    """
    if self_sign is None:
        self_sign = bool(is_ca and not signer)

    if self_sign and signer:
        raise ConfigurationError(
            "-self-sign and -signer cannot be used at the same time"
        )

    if self_sign:
        return SelfSigned()

    if not signer:
        raise ConfigurationError("signing certificate is required")

    return CASigned(token=token or DEFAULT_TOKEN, nickname=signer)


def parse_serial(value: Optional[str]) -> int:
    """
    Parse a serial number.

    Decimal, 0x-prefixed hexadecimal and 0-prefixed octal are accepted.

    Args:
        value: Serial number string

    Returns:
        Serial number as an unsigned 64-bit integer

    Raises:
        ConfigurationError: If the value is missing, not a number or out of range
    """
    if value is None or not str(value).strip():
        raise ConfigurationError("serial number must be specified")

    text = str(value).strip()
    if text.lower().startswith("0x"):
        digits, base = text[2:], 16
    elif len(text) > 1 and text.startswith("0"):
        digits, base = text[1:], 8
    else:
        digits, base = text, 10

    # int() would also accept signs, underscores and whitespace
    if not digits or not digits.isalnum() or not digits.isascii():
        raise ConfigurationError(f"invalid serial number {text!r}")

    try:
        serial = int(digits, base)
    except ValueError as e:
        raise ConfigurationError(f"invalid serial number {text!r}") from e

    if serial > MAX_SERIAL_NUMBER:
        raise ConfigurationError(
            f"invalid serial number {text!r}: larger than 64 bits"
        )

    return serial


class KeyGen:
    """
    Signing workflow for one certificate.

    START -> CONTEXT_RESOLVED -> CERTIFICATE_BUILT -> SIGNED ->
    ENVELOPE_ENCODED -> DONE, or FAILED from any state.
    """

    def __init__(
        self,
        common_name: Optional[str] = None,
        ca: bool = False,
        self_sign: Optional[bool] = None,
        signer: Optional[str] = None,
        token: str = DEFAULT_TOKEN,
        database: str = DEFAULT_DATABASE,
        password: Optional[str] = None,
        pubkey: Optional[str] = None,
        key: Optional[str] = None,
        url: Optional[str] = None,
        serial: Optional[str] = None,
        validity_period: int = DEFAULT_VALIDITY_DAYS,
        out: Optional[str] = None,
        pem: bool = False,
        clock: Clock = utc_now,
        **kwargs,  # type: ignore
    ):
        """
        Args:
            common_name: Subject common name
            ca: Issue a CA certificate
            self_sign: Force (True) self-signing; None lets -ca decide
            signer: Nickname of the signing certificate
            token: Token holding the signing certificate
            database: Credential database directory
            password: Password for the credential bundles
            pubkey: Path to the subject public key (PEM or DER)
            key: Path to the subject private key (PEM or DER)
            url: Issuer URL for Authority Information Access
            serial: Serial number string
            validity_period: Validity period in days
            out: Output file path
            pem: Write PEM instead of DER
            clock: Source of the current time
            kwargs: Additional arguments (not used)
        """
        self.common_name = common_name
        self.ca = ca
        self.self_sign = self_sign
        self.signer = signer
        self.token = token
        self.database = database
        self.password = password
        self.pubkey = pubkey
        self.key = key
        self.url = url
        self.serial = serial
        self.validity_period = validity_period
        self.out = out
        self.pem = pem
        self.clock = clock
        self.kwargs = kwargs

        self.state = WorkflowState.START

    def _transition(self, state: WorkflowState) -> None:
        logging.debug(f"Workflow: {self.state.value} -> {state.value}")
        self.state = state

    def resolve_context(self) -> SigningContext:
        """
        Resolve and validate all inputs.

        Raises:
            ConfigurationError: If the inputs are inconsistent or incomplete
        """
        signer = resolve_signer(self.ca, self.self_sign, self.signer, self.token)

        if not self.common_name or not self.common_name.strip():
            raise ConfigurationError("-common-name must be specified")

        if isinstance(signer, SelfSigned) and not self.key:
            raise ConfigurationError(
                "a self-signed certificate requires the subject private key (-key)"
            )

        if not self.key and not self.pubkey:
            raise ConfigurationError(
                "a subject key is required (-pubkey or -key)"
            )

        serial_number = parse_serial(self.serial)
        validity = validity_window(self.clock(), self.validity_period)

        return SigningContext(
            signer=signer,
            common_name=self.common_name,
            serial_number=serial_number,
            validity=validity,
            is_ca=bool(self.ca),
            issuer_url=self.url,
        )

    def _read_file(self, path: str, description: str) -> bytes:
        logging.debug(f"Loading {description} from {path!r}")
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise ConfigurationError(
                f"could not read {description} {path!r}: {e}"
            ) from e

    def load_subject_key(
        self, session: CryptoSession
    ) -> Tuple[Optional[PrivateKeyTypes], bytes]:
        """
        Load the subject key.

        Returns:
            Tuple of (private key or None, DER SubjectPublicKeyInfo)

        Raises:
            ConfigurationError: If the public and private keys do not match
        """
        private_key = None
        public_key = None

        if self.key:
            private_key = session.load_private_key(
                self._read_file(self.key, "private key")
            )
            public_key = session.encode_public_key(private_key.public_key())

        if self.pubkey:
            loaded = session.encode_public_key(
                session.load_public_key(self._read_file(self.pubkey, "public key"))
            )
            if public_key is not None and loaded != public_key:
                raise ConfigurationError(
                    f"public key {self.pubkey!r} does not match private key {self.key!r}"
                )
            public_key = loaded

        if public_key is None:
            raise ConfigurationError("a subject key is required (-pubkey or -key)")

        return private_key, public_key

    def resolve_signer_material(
        self,
        session: CryptoSession,
        context: SigningContext,
        subject_key: Optional[PrivateKeyTypes],
        subject_public_key: bytes,
    ) -> SignerMaterial:
        """
        Locate the signing key, the issuer key and the issuer name.

        Raises:
            CredentialLookupError: If the signer is not in the credential store
        """
        if isinstance(context.signer, SelfSigned):
            if subject_key is None:
                raise ConfigurationError(
                    "a self-signed certificate requires the subject private key (-key)"
                )
            return SignerMaterial(
                private_key=subject_key, public_key=subject_public_key, issuer=None
            )

        handle = session.find_certificate(
            context.signer.token, context.signer.nickname
        )
        logging.info(
            f"Using signing certificate {str(handle)!r} "
            f"({handle.certificate.subject.rfc4514_string()})"
        )

        return SignerMaterial(
            private_key=session.find_key_by_cert(handle),
            public_key=session.certificate_public_key(handle),
            issuer=certificate_subject(handle.certificate),
        )

    def generate(self) -> bytes:
        """
        Generate the signed certificate.

        Returns:
            DER-encoded certificate

        Raises:
            EfiKeygenError: If any step fails; nothing is produced
        """
        try:
            context = self.resolve_context()
            self._transition(WorkflowState.CONTEXT_RESOLVED)

            kind = "CA certificate" if context.is_ca else "certificate"
            if context.is_self_signed:
                kind = f"self-signed {kind}"
            logging.info(
                f"Generating {kind} for 'CN={context.common_name}' "
                f"with serial number {context.serial_number}"
            )

            store = CredentialStore(self.database, self.password)
            with CryptoSession(store) as session:
                subject_key, subject_public_key = self.load_subject_key(session)
                signer = self.resolve_signer_material(
                    session, context, subject_key, subject_public_key
                )

                extensions = build_extension_set(
                    session,
                    is_ca=context.is_ca,
                    is_self_signed=context.is_self_signed,
                    subject_public_key=subject_public_key,
                    issuer_public_key=signer.public_key,
                    issuer_url=context.issuer_url,
                )

                generator = TBSCertificateGenerator(
                    common_name=context.common_name,
                    serial_number=context.serial_number,
                    public_key=subject_public_key,
                    extensions=extensions,
                    validity=context.validity,
                    issuer=signer.issuer,
                    algorithm=SIGNATURE_ALGORITHM,
                )
                generator.build()
                tbs_data = generator.serialize()
                self._transition(WorkflowState.CERTIFICATE_BUILT)

                signature = session.sign(
                    tbs_data, signer.private_key, SIGNATURE_ALGORITHM
                )
                self._transition(WorkflowState.SIGNED)

            certificate = encode_signed_certificate(
                tbs_data, signature, SIGNATURE_ALGORITHM
            )
            self._transition(WorkflowState.ENVELOPE_ENCODED)
        except Exception:
            self._transition(WorkflowState.FAILED)
            raise

        self._transition(WorkflowState.DONE)
        return certificate

    def run(self) -> str:
        """
        Generate the certificate and write it to the output file.

        Returns:
            Path of the written file
        """
        certificate = self.generate()

        data: Union[bytes, str] = certificate
        if self.pem:
            data = der_to_pem(certificate, "CERTIFICATE")

        out_path = self.out or DEFAULT_OUTPUT
        logging.info(f"Saving certificate to {out_path!r}")
        out_path = save_file(data, out_path)
        logging.info(f"Wrote certificate to {out_path!r}")
        return out_path


def entry(options: argparse.Namespace) -> int:
    """
    Command-line entry point for certificate generation.

    Args:
        options: Command line arguments

    Returns:
        Process exit status
    """
    try:
        keygen = KeyGen(**vars(options))
        keygen.run()
    except EfiKeygenError as e:
        logging.error(f"Certificate generation failed: {e}")
        handle_error()
        return 1
    return 0
