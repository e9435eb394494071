"""
Output file handling for efikeygen.

The certificate is written in one go to a file created with owner-only
permissions. A write that fails part way removes the file, so a run leaves
either a complete certificate or nothing.
"""

import base64
import os
from typing import Union

from efikeygen.lib.errors import OutputError
from efikeygen.lib.logger import logging


def der_to_pem(der: bytes, pem_type: str) -> str:
    """
    Convert DER-encoded data to PEM format.

    Args:
        der: DER-encoded binary data
        pem_type: PEM header/footer type (e.g., "CERTIFICATE")

    Returns:
        PEM-encoded data as string
    """
    pem_type = pem_type.upper()
    b64_data = base64.b64encode(der).decode()
    return "-----BEGIN %s-----\n%s\n-----END %s-----\n" % (
        pem_type,
        "\n".join([b64_data[i : i + 64] for i in range(0, len(b64_data), 64)]),
        pem_type,
    )


def save_file(data: Union[bytes, str], output_path: str) -> str:
    """
    Write data to output_path, replacing any existing file.

    Args:
        data: Data to write (text is encoded as UTF-8)
        output_path: Path to output file

    Returns:
        The path written

    Raises:
        OutputError: If the file cannot be created or written; a partially
            written file is removed first
    """
    if isinstance(data, str):
        data = data.encode()

    logging.debug(f"Attempting to write data to {output_path!r}")

    try:
        fd = os.open(
            output_path,
            os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_CLOEXEC", 0),
            0o600,
        )
    except OSError as e:
        raise OutputError(f"could not open {output_path!r}: {e}") from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
    except OSError as e:
        try:
            os.unlink(output_path)
        except OSError as unlink_error:
            logging.warning(
                f"Could not remove partial output {output_path!r}: {unlink_error}"
            )
        raise OutputError(f"could not write to {output_path!r}: {e}") from e

    logging.debug(f"Data written to {output_path!r}")
    return output_path
