# PYTHON_ARGCOMPLETE_OK
import argparse
import logging
import sys
from typing import List, Optional

import argcomplete

from efikeygen import version
from efikeygen.commands.parsers import keygen
from efikeygen.lib import logger
from efikeygen.lib.errors import handle_error


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="efikeygen",
        add_help=False,
        description="Generate certificates for UEFI secure boot key enrollment",
    )

    _ = parser.add_argument(
        "-v",
        "--version",
        action="store_true",
        help="Show efikeygen's version number and exit",
        default=argparse.SUPPRESS,
    )
    _ = parser.add_argument(
        "-h",
        "--help",
        action="help",
        default=argparse.SUPPRESS,
        help="Show this help message and exit",
    )
    _ = parser.add_argument(
        "-debug",
        action="store_true",
        help="Enable debug output",
    )

    keygen.add_arguments(parser)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logger.init()

    print(version.BANNER, file=sys.stderr)

    args = sys.argv[1:] if argv is None else argv

    if "-debug" in args or "--debug" in args:
        logger.logging.setLevel(logging.DEBUG)
        logger.set_verbose(True)
    else:
        logger.logging.setLevel(logging.INFO)

    for arg in args:
        if arg.lower() in ["--version", "-v", "-version"]:
            return

    parser = build_parser()

    argcomplete.autocomplete(parser, always_complete_options=False)

    if len(args) == 0:
        parser.print_help()
        sys.exit(1)

    options = parser.parse_args(args)

    try:
        status = keygen.entry(options)
    except Exception as e:
        logger.logging.error(f"Got error: {e}")
        handle_error()
        status = 1

    sys.exit(status)


if __name__ == "__main__":
    main()
