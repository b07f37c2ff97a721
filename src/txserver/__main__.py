"""
=============================================================================
TXSERVER CLI ENTRY POINT
=============================================================================

    # Defaults: all interfaces, port 9999, resources from ./web
    python -m txserver

    # Custom port and resource directory
    python -m txserver --port 8000 --web-root /srv/txserver/web

    # Byte-for-byte compatible JSON/XML headers
    python -m txserver --legacy-headers

Every flag falls back to its TXSERVER_* environment variable, then to the
ServerConfig default. A bind failure exits with status 1.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import LOG_LEVELS, ServerConfig
from .server import TransactionServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="txserver",
        description="Serve an account page and transaction exports over HTTP/1.1",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m txserver                        # 0.0.0.0:9999
  python -m txserver --port 8000            # Custom port
  python -m txserver --web-root ./web       # Resource directory
  python -m txserver --legacy-headers       # Bare JSON/XML media type lines
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.max_workers,
        help=f"Maximum worker threads (default: {defaults.max_workers})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--web-root", "-r",
        default=defaults.web_root,
        help=f"Directory with template/ and shared/ (default: {defaults.web_root})",
    )
    parser.add_argument(
        "--cache",
        action="store_true",
        default=defaults.cache_resources,
        help="Keep resource files in memory after the first read",
    )

    # ─────────────────────────────────────────────────────────────────────
    # PROTOCOL ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--legacy-headers",
        action="store_true",
        default=defaults.legacy_headers,
        help="Send the bare media type line on JSON/XML responses",
    )
    parser.add_argument(
        "--reject-malformed",
        action="store_true",
        default=defaults.reject_malformed,
        help="Answer malformed request lines with 400 instead of closing",
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"txserver {__version__}",
    )
    return parser


def config_from_args(argv=None) -> ServerConfig:
    """Parse argv on top of the environment-derived defaults."""
    defaults = ServerConfig.from_env()
    args = build_parser(defaults).parse_args(argv)

    return ServerConfig(
        host=args.host,
        port=args.port,
        min_workers=min(defaults.min_workers, args.workers),
        max_workers=args.workers,
        timeout=defaults.timeout,
        web_root=args.web_root,
        cache_resources=args.cache,
        legacy_headers=args.legacy_headers,
        reject_malformed=args.reject_malformed,
        log_level=args.log_level,
    )


def main(argv=None):
    """Main CLI entry point."""
    try:
        config = config_from_args(argv)
        server = TransactionServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        server.run()
    except OSError as e:
        print(f"Error: cannot listen on {config.host}:{config.port}: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
