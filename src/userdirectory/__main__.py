"""
Command-line entry point.

    python -m userdirectory --port 3000 --log-format json
    userdirectory --strict-auth --no-seed

Environment variables (``USERDIR_*``, see ``ServiceConfig.from_env``) supply
the defaults; flags given on the command line win.
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServiceConfig
from .server import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="userdirectory",
        description="In-memory user directory over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m userdirectory                       # Run with defaults
  python -m userdirectory --port 3000           # Custom port
  python -m userdirectory --host 0.0.0.0        # Listen on all interfaces
  python -m userdirectory --log-format json     # Structured access log
  python -m userdirectory --strict-auth         # Only the token passes
        """
    )

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 8080)"
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Maximum worker threads (default: 16)"
    )
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        help="Access log format (default: text)"
    )
    parser.add_argument(
        "--token",
        help="Authorization header value to compare against"
    )
    parser.add_argument(
        "--strict-auth",
        action="store_true",
        default=None,
        help="Accept only the token instead of rejecting it"
    )
    parser.add_argument(
        "--no-seed",
        action="store_true",
        help="Start with an empty directory"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"userdirectory {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServiceConfig:
    """Environment-derived config with command-line overrides applied."""
    config = ServiceConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.max_workers = args.workers
        config.min_workers = min(config.min_workers, args.workers)
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format
    if args.token is not None:
        config.auth_token = args.token
    if args.strict_auth:
        config.invert_token_check = False
    if args.no_seed:
        config.seed_users = False

    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        app = create_app(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        app.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
