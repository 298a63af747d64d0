"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the server can be told lives in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m minihttpd --port 3000                           │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── MINIHTTPD_PORT=3000 python -m minihttpd                   │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Values are validated once at startup. A bad port or buffer size stops
the server before it binds anything.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .access_log import LOG_FORMATS


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    The defaults reproduce the classic setup: localhost:8080, files from
    ./static, one 1 KiB read per request, unbounded worker threads.

        ServerConfig(port=3000, static_dir="public", log_level="DEBUG")
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """IP address to bind to. "0.0.0.0" listens on all interfaces."""

    port: int = 8080
    """TCP port to listen on. 0 lets the OS pick one."""

    backlog: int = 128
    """Maximum number of connections queued by the OS before accept()."""

    buffer_size: int = 1024
    """
    Size of the single read a request must fit in. Anything past it is
    never seen by the parser.
    """

    max_connections: Optional[int] = None
    """
    Cap on concurrently running worker threads. None = unbounded, one
    thread for every accepted connection.
    """

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    static_dir: str = "static"
    """Directory static files are served from. "/" maps to index.html."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        MINIHTTPD_HOST             Bind address (default: 127.0.0.1)
        MINIHTTPD_PORT             Port (default: 8080)
        MINIHTTPD_STATIC_DIR       Static files directory (default: static)
        MINIHTTPD_BUFFER_SIZE      Request read size (default: 1024)
        MINIHTTPD_MAX_CONNECTIONS  Worker cap (default: unbounded)
        MINIHTTPD_LOG_LEVEL        Logging level (default: INFO)
        MINIHTTPD_LOG_FORMAT       text or json (default: text)

        =====================================================================

        Raises:
            ValueError: If a numeric variable is not a number.
        """
        max_connections = os.getenv("MINIHTTPD_MAX_CONNECTIONS")
        return cls(
            host=os.getenv("MINIHTTPD_HOST", "127.0.0.1"),
            port=int(os.getenv("MINIHTTPD_PORT", "8080")),
            static_dir=os.getenv("MINIHTTPD_STATIC_DIR", "static"),
            buffer_size=int(os.getenv("MINIHTTPD_BUFFER_SIZE", "1024")),
            max_connections=int(max_connections) if max_connections else None,
            log_level=os.getenv("MINIHTTPD_LOG_LEVEL", "INFO"),
            log_format=os.getenv("MINIHTTPD_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Check values at startup, not at first use.

        Raises:
            ValueError: On the first invalid setting.
        """
        # Port 0 is allowed: the OS assigns a free port
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.buffer_size <= 0:
            raise ValueError(f"buffer_size must be > 0, got {self.buffer_size}")

        if self.backlog < 0:
            raise ValueError(f"backlog must be >= 0, got {self.backlog}")

        if self.max_connections is not None and self.max_connections <= 0:
            raise ValueError(f"max_connections must be > 0, got {self.max_connections}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")
