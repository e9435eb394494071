"""
Logging configuration for efikeygen.

Messages are prefixed with a bullet that reflects their level, so that the
tool's output reads the same whether it is run by hand or from a build
script.
"""

import logging as _logging
import sys
from typing import Dict

_IS_VERBOSE = False


def set_verbose(is_verbose: bool) -> None:
    """
    Enable or disable verbose output (stack traces on errors).

    Args:
        is_verbose: Whether verbose output is wanted
    """
    global _IS_VERBOSE
    _IS_VERBOSE = is_verbose  # type: ignore


def is_verbose() -> bool:
    """Return True if verbose output is enabled."""
    return _IS_VERBOSE


BULLET_POINTS: Dict[int, str] = {
    _logging.INFO: "[*]",
    _logging.DEBUG: "[+]",
    _logging.WARNING: "[!]",
    _logging.ERROR: "[-]",
    _logging.CRITICAL: "[-]",
}


class Formatter(_logging.Formatter):
    """
    Formatter that prefixes each record with a level bullet.

    - INFO:     [*]
    - DEBUG:    [+]
    - WARNING:  [!]
    - ERROR:    [-]
    - CRITICAL: [-]
    """

    def __init__(self) -> None:
        super().__init__("%(bullet)s %(message)s")

    def format(self, record: _logging.LogRecord) -> str:
        record.bullet = BULLET_POINTS.get(record.levelno, "[-]")
        return super().format(record)


def init(level: int = _logging.INFO) -> None:
    """
    Point the efikeygen logger at stdout with the bullet formatter.

    Calling init() again swaps the handler instead of stacking a second one,
    and records never reach the root logger.
    """
    handler = _logging.StreamHandler(sys.stdout)
    handler.setFormatter(Formatter())

    logging.handlers.clear()
    logging.addHandler(handler)
    logging.setLevel(level)
    logging.propagate = False


logging = _logging.getLogger("efikeygen")
