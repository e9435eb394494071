"""
Error types and error reporting for efikeygen.

Every failure the tool can report is an EfiKeygenError subclass. All of them
are fatal: the command either writes one complete certificate or nothing.

Classes:
    ConfigurationError: Conflicting, missing or malformed inputs
    CredentialLookupError: Signer certificate or key not found
    EncodingError: A DER structure could not be built
    ExtensionError: A certificate extension could not be built
    SerializationError: The TBS certificate could not be serialized
    ProviderError: The cryptographic provider failed
    OutputError: The output artifact could not be written

Functions:
    handle_error: Print a stack trace in verbose mode, or a hint otherwise
"""

import traceback
from typing import Optional

from efikeygen.lib.logger import is_verbose, logging


class EfiKeygenError(Exception):
    """Base class for all efikeygen failures."""


class ConfigurationError(EfiKeygenError):
    """Inputs are mutually exclusive, missing or malformed."""


class CredentialLookupError(EfiKeygenError, LookupError):
    """The signer could not be resolved from the credential store."""


class EncodingError(EfiKeygenError):
    """A DER structure could not be constructed."""


class ExtensionError(EncodingError):
    """
    A certificate extension could not be constructed.

    Attributes:
        extension: Name of the offending extension
    """

    def __init__(self, extension: str, reason: Optional[str] = None):
        self.extension = extension
        message = f"could not encode {extension} extension"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SerializationError(EncodingError):
    """The to-be-signed certificate could not be serialized."""


class ProviderError(EfiKeygenError):
    """The cryptographic provider reported a failure."""


class OutputError(EfiKeygenError, OSError):
    """The output artifact could not be written."""


def handle_error(is_warning: bool = False) -> None:
    """
    Report the exception currently being handled.

    Prints the full traceback when verbose output is enabled, otherwise
    tells the user how to get one.

    Args:
        is_warning: Log the hint as a warning instead of an error
    """
    if is_verbose():
        traceback.print_exc()
    else:
        msg = "Use -debug to print a stacktrace"
        if is_warning:
            logging.warning(msg)
        else:
            logging.error(msg)
