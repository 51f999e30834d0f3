"""
=============================================================================
JAILHTTP CLI ENTRY POINT
=============================================================================

    # Serve ./site/ on port 1337 (the defaults)
    sudo python -m jailhttp

    # Serve /srv/www on port 80
    sudo python -m jailhttp -p 80 -d /srv/www

    # Usage and copyright
    python -m jailhttp -h

=============================================================================
EXIT STATUS
=============================================================================

    0   -h, or a bad/unknown option (usage is printed)
    1   fatal startup failure: not root, chroot, bind or privilege drop
    -   otherwise the server runs until it is killed

Bad options exit 0, not argparse's usual 2, so the parser's error()
prints usage and exits 0 instead.

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __author__, __version__
from .config import ServerConfig
from .core.sandbox import SandboxError
from .server import FileServer


logger = logging.getLogger("jailhttp")

COPYRIGHT = f"jailhttp {__version__}\nCopyright (c) {__author__}. Released under the MIT License."


class UsageParser(argparse.ArgumentParser):
    """ArgumentParser whose errors print usage and exit 0."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(0)


def build_parser() -> UsageParser:
    defaults = ServerConfig()
    parser = UsageParser(
        prog="jailhttp",
        description="Minimal sandboxed HTTP file server",
        add_help=False,
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )

    parser.add_argument(
        "-d", "--dir",
        dest="root_dir",
        default=defaults.root_dir,
        help=f"Website root directory (default: {defaults.root_dir})",
    )

    parser.add_argument(
        "-l", "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level,
        help=f"Logging level (default: {defaults.log_level})",
    )

    parser.add_argument(
        "-h", "--help",
        action="store_true",
        help="Print this message",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.help:
        parser.print_help(sys.stderr)
        print(COPYRIGHT, file=sys.stderr)
        return 0

    # Port 0 would mean "any port", which a file server should never do
    if not 0 < args.port < 65536:
        parser.print_usage(sys.stderr)
        return 0

    config = ServerConfig(
        port=args.port,
        root_dir=args.root_dir,
        log_level=args.log_level,
    )

    try:
        FileServer(config).run()
    except SandboxError as e:
        logger.error(f"Sandbox setup failed: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except OSError as e:
        logger.error(f"Socket setup failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
