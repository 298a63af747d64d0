"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Defaults: http://127.0.0.1:8080, files from ./static
    python -m minihttpd

    # Custom port and document root
    python -m minihttpd --port 3000 --static ./public

    # Cap concurrent worker threads, JSON access log
    python -m minihttpd --max-connections 64 --log-format json

Settings come from, in order of priority: command-line flags,
MINIHTTPD_* environment variables, ServerConfig defaults.

The demo route GET /api/hello → {"message": "Hello, API!"} is registered
unless --no-demo-routes is given.

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .http.routes import json_handler
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttpd",
        description="Minimal HTTP/1.1 server: GET routes and static files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttpd                          # Run with defaults
  python -m minihttpd --port 3000              # Custom port
  python -m minihttpd --host 0.0.0.0           # Listen on all interfaces
  python -m minihttpd --static ./public        # Serve another directory
        """
    )

    # Flags default to None so unset ones fall back to the environment
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
        "--static", "-s",
        dest="static_dir",
        help="Directory to serve static files from (default: static)"
    )
    parser.add_argument(
        "--buffer-size",
        type=int,
        help="Bytes read per request (default: 1024)"
    )
    parser.add_argument(
        "--max-connections",
        type=int,
        help="Maximum concurrent worker threads (default: unbounded)"
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Access log format (default: text)"
    )
    parser.add_argument(
        "--no-demo-routes",
        action="store_true",
        help="Don't register GET /api/hello"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttpd {__version__}"
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment config with every flag that was given applied on top."""
    config = ServerConfig.from_env()
    for name in ("host", "port", "static_dir", "buffer_size",
                 "max_connections", "log_level", "log_format"):
        value = getattr(args, name)
        if value is not None:
            setattr(config, name, value)
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = HTTPServer(config)
    except ValueError as e:
        print(f"minihttpd: invalid configuration: {e}", file=sys.stderr)
        return 2

    if not args.no_demo_routes:
        server.add_route("/api/hello", json_handler({"message": "Hello, API!"}))

    try:
        server.run()
    except OSError as e:
        print(f"minihttpd: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
