"""
=============================================================================
HTTP SERVER CLI ENTRY POINT
=============================================================================

    # Defaults: 127.0.0.1:4221, no file serving
    python -m minihttp

    # Serve GET /files/<name> from a directory
    python -m minihttp --directory /tmp/data

    # Listen elsewhere, more workers, verbose
    python -m minihttp --host 0.0.0.0 --port 8080 --workers 32 --log-level DEBUG

Installed as the `minihttp` console script as well.

=============================================================================
12-FACTOR APP: ENTRY POINT
=============================================================================

1. Read configuration (environment first, then CLI overrides)
2. Construct the application with create_app()
3. Run it

Bad configuration (a --directory that does not exist, a port out of
range) is reported here and the process exits before binding.

=============================================================================
"""

import argparse
import dataclasses
import os
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .server import create_app


def _existing_directory(value: str) -> str:
    """argparse type: the value must name an existing directory."""
    if not os.path.isdir(value):
        raise argparse.ArgumentTypeError(f"not a directory: {value!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal HTTP/1.1 server built on raw sockets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttp                          # 127.0.0.1:4221
  python -m minihttp --directory ./files      # Enable GET /files/<name>
  python -m minihttp --port 8080 --workers 8  # Custom port and pool size
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        type=_existing_directory,
        default=None,
        help="Directory to serve GET /files/<name> from"
    )

    parser.add_argument(
        "--canonical-headers",
        action="store_true",
        default=None,
        help="Match request header names case-insensitively (normalize to Title-Case)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 4221)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum concurrent connections (default: 16)"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Per-connection read/write deadline in seconds (default: 30)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}"
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """
    Environment-derived config with every CLI flag that was given
    layered on top.
    """
    config = ServerConfig.from_env()

    overrides = {
        "directory": args.directory,
        "host": args.host,
        "port": args.port,
        "timeout": args.timeout,
        "log_level": args.log_level,
        "canonical_headers": args.canonical_headers,
    }
    if args.workers is not None:
        overrides["max_workers"] = args.workers
        overrides["min_workers"] = min(config.min_workers, args.workers)

    return dataclasses.replace(
        config,
        **{name: value for name, value in overrides.items() if value is not None},
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main CLI entry point. Returns the process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
        config.validate()
    except ValueError as e:
        parser.error(str(e))  # exits with status 2

    app = create_app(config)

    try:
        app.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
