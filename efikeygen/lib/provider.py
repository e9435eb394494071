"""
Cryptographic provider session.

All cryptographic primitives efikeygen needs go through a CryptoSession:
public key encoding, key identifier hashing, signing, and private key
lookup for a signer certificate. The session is opened and closed exactly
once, normally through a with-statement, and refuses to work outside that
window:

    with CryptoSession(store) as session:
        key_id = session.make_key_id(session.encode_public_key(key))

Keys loaded through the session are dropped when it closes.
"""

from typing import Dict, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.asymmetric.types import (
    PrivateKeyTypes,
    PublicKeyTypes,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from efikeygen.lib.constants import OID_SHA256_WITH_RSA
from efikeygen.lib.credentials import CertificateHandle, CredentialStore
from efikeygen.lib.errors import CredentialLookupError, ProviderError
from efikeygen.lib.logger import logging

# Signature algorithms the provider can compute, by OID
SIGNATURE_HASHES = {
    OID_SHA256_WITH_RSA: hashes.SHA256,
}


def hash_digest(data: bytes, hash_algorithm: type[hashes.HashAlgorithm]) -> bytes:
    """
    Compute hash digest of data.

    Args:
        data: Data to hash
        hash_algorithm: Hash algorithm to use

    Returns:
        Hash digest as bytes
    """
    digest = hashes.Hash(hash_algorithm())
    digest.update(data)
    return digest.finalize()


class CryptoSession:
    """
    Explicit cryptographic provider session.
    """

    def __init__(self, store: Optional[CredentialStore] = None):
        """
        Args:
            store: Credential store used to resolve signer certificates
        """
        self.store = store
        self._is_open = False
        self._is_closed = False
        self._keys: Dict[bytes, PrivateKeyTypes] = {}

    def __enter__(self) -> "CryptoSession":
        self.open()
        return self

    def __exit__(self, *args) -> None:  # type: ignore
        self.close()

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> None:
        """
        Initialize the session.

        Raises:
            ProviderError: If the session was already opened
        """
        if self._is_open or self._is_closed:
            raise ProviderError("cryptographic provider already initialized")
        self._is_open = True
        logging.debug("Cryptographic provider initialized")

    def close(self) -> None:
        """
        Tear down the session and forget all loaded keys.

        Raises:
            ProviderError: If the session is not open
        """
        if not self._is_open:
            raise ProviderError("cryptographic provider is not initialized")
        self._keys.clear()
        self._is_open = False
        self._is_closed = True
        logging.debug("Cryptographic provider shut down")

    def _check_open(self) -> None:
        if not self._is_open:
            raise ProviderError("cryptographic provider is not initialized")

    # =====================================================================
    # Key material
    # =====================================================================

    def load_public_key(self, data: bytes) -> PublicKeyTypes:
        """
        Load a public key from PEM or DER SubjectPublicKeyInfo data.

        Raises:
            ProviderError: If the data is not a public key
        """
        self._check_open()
        try:
            return serialization.load_pem_public_key(data)
        except (ValueError, UnsupportedAlgorithm):
            pass
        try:
            return serialization.load_der_public_key(data)
        except (ValueError, UnsupportedAlgorithm) as e:
            raise ProviderError(f"could not load public key: {e}") from e

    def load_private_key(
        self, data: bytes, password: Optional[bytes] = None
    ) -> PrivateKeyTypes:
        """
        Load a private key from PEM or DER data.

        Raises:
            ProviderError: If the data is not a private key
        """
        self._check_open()
        try:
            return serialization.load_pem_private_key(data, password)
        except (ValueError, TypeError, UnsupportedAlgorithm):
            pass
        try:
            return serialization.load_der_private_key(data, password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ProviderError(f"could not load private key: {e}") from e

    def encode_public_key(self, public_key: PublicKeyTypes) -> bytes:
        """
        DER-encode a public key as SubjectPublicKeyInfo.

        Raises:
            ProviderError: If the key cannot be encoded
        """
        self._check_open()
        try:
            return public_key.public_bytes(
                Encoding.DER, PublicFormat.SubjectPublicKeyInfo
            )
        except (AttributeError, ValueError, TypeError) as e:
            raise ProviderError(f"could not encode public key: {e}") from e

    def make_key_id(self, public_key_der: bytes) -> bytes:
        """
        Compute the key identifier of a DER-encoded public key.

        The identifier is the SHA-1 digest of the encoded SubjectPublicKeyInfo.

        Raises:
            ProviderError: If the input is empty or cannot be hashed
        """
        self._check_open()
        if not public_key_der:
            raise ProviderError("could not make key identifier: empty public key")
        try:
            return hash_digest(public_key_der, hashes.SHA1)
        except TypeError as e:
            raise ProviderError(f"could not make key identifier: {e}") from e

    # =====================================================================
    # Signing
    # =====================================================================

    def sign(
        self,
        data: bytes,
        private_key: PrivateKeyTypes,
        algorithm: str = OID_SHA256_WITH_RSA,
    ) -> bytes:
        """
        Sign data.

        Args:
            data: Data to sign
            private_key: Signing key
            algorithm: Dotted OID of the signature algorithm

        Returns:
            Raw signature bytes

        Raises:
            ProviderError: If the algorithm or key is unsupported or signing fails
        """
        self._check_open()

        hash_algorithm = SIGNATURE_HASHES.get(algorithm)
        if hash_algorithm is None:
            raise ProviderError(f"unsupported signature algorithm {algorithm}")

        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise ProviderError(
                f"could not sign data: {type(private_key).__name__} is not an RSA key"
            )

        try:
            signature = private_key.sign(data, padding.PKCS1v15(), hash_algorithm())
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ProviderError(f"could not sign data: {e}") from e

        logging.debug(f"Signed {len(data)} bytes ({len(signature)}-byte signature)")
        return signature

    # =====================================================================
    # Certificate and key lookup
    # =====================================================================

    def find_certificate(self, token: str, nickname: str) -> CertificateHandle:
        """
        Resolve a signer certificate from the credential store.

        Raises:
            CredentialLookupError: If no store is configured or nothing matches
        """
        self._check_open()
        if self.store is None:
            raise CredentialLookupError("no credential store configured")
        return self.store.find_certificate(token, nickname)

    def find_key_by_cert(self, handle: CertificateHandle) -> PrivateKeyTypes:
        """
        Find the private key belonging to a certificate.

        Raises:
            CredentialLookupError: If the key is not available
            ProviderError: If the stored key does not match the certificate
        """
        self._check_open()

        fingerprint = handle.certificate.fingerprint(hashes.SHA256())
        if fingerprint in self._keys:
            return self._keys[fingerprint]

        if self.store is None:
            raise CredentialLookupError("no credential store configured")

        key = self.store.load_private_key(handle)
        if self.encode_public_key(key.public_key()) != self.encode_public_key(
            handle.certificate.public_key()
        ):
            raise ProviderError(f"private key does not match certificate {handle}")

        self._keys[fingerprint] = key
        return key

    def certificate_public_key(self, handle: CertificateHandle) -> bytes:
        """Return the DER SubjectPublicKeyInfo of a certificate's key."""
        self._check_open()
        return self.encode_public_key(handle.certificate.public_key())
