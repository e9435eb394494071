"""
Credential store for signing certificates.

The store is a database directory of PKCS#12 bundles, each holding one
certificate and its private key. Tokens are subdirectories of the database;
the default token is the database directory itself. A certificate is found
by nickname, which matches either the bundle's file name (without suffix)
or the friendly name stored in the bundle.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.hazmat.primitives.serialization import pkcs12

from efikeygen.lib.constants import CREDENTIAL_SUFFIXES, DEFAULT_DATABASE, DEFAULT_TOKEN
from efikeygen.lib.errors import CredentialLookupError
from efikeygen.lib.logger import logging


@dataclass(frozen=True)
class CertificateHandle:
    """A certificate located in the credential store."""

    token: str
    nickname: str
    certificate: x509.Certificate
    path: Path

    def __str__(self) -> str:
        return f"{self.token}:{self.nickname}"


def load_bundle(
    data: bytes, password: Optional[bytes] = None
) -> pkcs12.PKCS12KeyAndCertificates:
    """
    Load a PKCS#12 bundle.

    Args:
        data: PKCS#12 data
        password: Optional decryption password

    Returns:
        Parsed bundle
    """
    return pkcs12.load_pkcs12(data, password)


class CredentialStore:
    """
    Read-only view of a directory of PKCS#12 bundles.
    """

    def __init__(
        self, database: str = DEFAULT_DATABASE, password: Optional[str] = None
    ):
        """
        Args:
            database: Path to the credential database directory
            password: Password protecting the bundles, if any
        """
        self.database = Path(database)
        self.password = password.encode() if password else None

    def token_path(self, token: str) -> Path:
        """
        Resolve a token name to its directory.

        Raises:
            CredentialLookupError: If the database or token does not exist
        """
        if not self.database.is_dir():
            raise CredentialLookupError(
                f"credential database {str(self.database)!r} does not exist"
            )

        if not token or token == DEFAULT_TOKEN:
            return self.database

        path = self.database / token
        if not path.is_dir():
            raise CredentialLookupError(
                f"token {token!r} not found in {str(self.database)!r}"
            )
        return path

    def _bundles(self, token: str) -> Iterator[Path]:
        for path in sorted(self.token_path(token).iterdir()):
            if path.is_file() and path.suffix.lower() in CREDENTIAL_SUFFIXES:
                yield path

    def _load(self, path: Path) -> pkcs12.PKCS12KeyAndCertificates:
        with open(path, "rb") as f:
            data = f.read()
        return load_bundle(data, self.password)

    def find_certificate(self, token: str, nickname: str) -> CertificateHandle:
        """
        Find a certificate by token and nickname.

        Args:
            token: Token name
            nickname: Certificate nickname

        Returns:
            Handle to the certificate

        Raises:
            CredentialLookupError: If no bundle matches
        """
        logging.debug(f"Looking up certificate {token}:{nickname}")

        for path in self._bundles(token):
            try:
                bundle = self._load(path)
            except (OSError, ValueError) as e:
                if path.stem == nickname:
                    raise CredentialLookupError(
                        f"could not open {str(path)!r} for {token}:{nickname}: {e}"
                    ) from e
                logging.debug(f"Skipping {str(path)!r}: {e}")
                continue

            if bundle.cert is None:
                continue

            friendly_name = bundle.cert.friendly_name
            names = [path.stem]
            if friendly_name:
                names.append(friendly_name.decode(errors="replace"))

            if nickname in names:
                logging.debug(f"Found {token}:{nickname} in {str(path)!r}")
                return CertificateHandle(
                    token=token,
                    nickname=nickname,
                    certificate=bundle.cert.certificate,
                    path=path,
                )

        raise CredentialLookupError(
            f"could not find signing certificate {token}:{nickname}"
        )

    def load_private_key(self, handle: CertificateHandle) -> PrivateKeyTypes:
        """
        Load the private key stored with a certificate.

        Raises:
            CredentialLookupError: If the bundle holds no key
        """
        try:
            bundle = self._load(handle.path)
        except (OSError, ValueError) as e:
            raise CredentialLookupError(
                f"could not open {str(handle.path)!r}: {e}"
            ) from e

        if bundle.key is None:
            raise CredentialLookupError(f"no private key stored for {handle}")

        return bundle.key
