"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: configuration, the route table, the accept
loop and the per-connection handler.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        │  config, routes │                          │
    │                        └────────┬────────┘                          │
    │                                 │ run()                             │
    │                                 ▼                                    │
    │                        ┌─────────────────┐                          │
    │                        │  SocketServer   │  accept loop             │
    │                        └────────┬────────┘                          │
    │                                 │ one thread per client             │
    │                                 ▼                                    │
    │                    ┌──────────────────────────┐                     │
    │                    │   handle_connection()    │                     │
    │                    │  read → 400? → dispatch  │                     │
    │                    │  → write → close         │                     │
    │                    └────────────┬─────────────┘                     │
    │                                 │                                    │
    │                ┌────────────────┴───────────────┐                   │
    │                ▼                                ▼                   │
    │         ┌──────────────┐                ┌──────────────┐            │
    │         │  RouteTable  │                │ static files │            │
    │         │ (exact path) │                │  (base dir)  │            │
    │         └──────────────┘                └──────────────┘            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ROUTES ARE FROZEN AT STARTUP
=============================================================================

Routes are registered before run(). When run() starts, the registered
handlers are copied into one read-only RouteTable that every worker
thread shares. Registering a route after that raises RuntimeError
rather than racing with the workers.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from .config import ServerConfig
from .core import SocketServer, handle_connection
from .http.routes import Handler, RouteTable


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Minimal HTTP/1.1 server: GET only, exact-path routes, static files.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(static_dir="public"))

        @server.route("/api/hello")
        def hello():
            return '{"message": "Hello, API!"}', "application/json"

        server.add_route("/version", text_handler("1.0.0"))

        server.run()  # Blocks until Ctrl+C

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults are used if omitted.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)

        # Filled by add_route() until run() freezes it
        self._pending_routes: dict[str, Handler] = {}
        self._routes: Optional[RouteTable] = None

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(self, path: str, handler: Handler) -> "HTTPServer":
        """
        Register `handler` for the exact path `path`.

        A later registration for the same path replaces the earlier one.

        Returns:
            Self for method chaining.

        Raises:
            RuntimeError: If the server has already started.
            TypeError: If `handler` is not callable.
        """
        if self._routes is not None:
            raise RuntimeError(f"Cannot add route {path!r}: server already started")
        if not callable(handler):
            raise TypeError(f"Handler for {path!r} is not callable: {handler!r}")

        self._pending_routes[path] = handler
        logger.debug(f"Registered route: GET {path}")
        return self

    def route(self, path: str) -> Callable[[Handler], Handler]:
        """
        Decorator form of add_route().

            @server.route("/api/hello")
            def hello():
                return '{"message": "Hello, API!"}', "application/json"
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler)
            return handler
        return decorator

    @property
    def routes(self) -> RouteTable:
        """The frozen table once running, otherwise a snapshot of what is registered."""
        if self._routes is not None:
            return self._routes
        return RouteTable(self._pending_routes)

    @property
    def address(self):
        """Bound (host, port) while running."""
        return self._socket_server.address

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start serving (blocking until shutdown() or Ctrl+C).

        Args:
            host: Override config host.
            port: Override config port.

        Raises:
            OSError: If the address cannot be bound.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()

        self._routes = RouteTable(self._pending_routes)

        static_dir = Path(self.config.static_dir)
        if not static_dir.is_dir():
            logger.warning(f"Static directory {str(static_dir)!r} does not exist; file requests will 404")

        try:
            self._socket_server.start(self._on_connection, on_ready=self._print_startup_banner)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting connections. In-flight workers finish on their own."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def _print_startup_banner(self):
        """Runs once listening, so port 0 shows the port actually bound."""
        host, port = self.address
        print(f"Server running on http://{host}:{port}")
        self._routes.print_routes()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("minihttpd").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _on_connection(self, sock, address):
        """Runs in the connection's worker thread."""
        handle_connection(
            sock,
            self.config.static_dir,
            self._routes,
            buffer_size=self.config.buffer_size,
            address=address,
            log_format=self.config.log_format,
        )


def create_app(config: Optional[ServerConfig] = None, routes: Optional[dict] = None) -> HTTPServer:
    """
    Create a server, optionally pre-loaded with a path → handler mapping.

        app = create_app(ServerConfig(port=3000), {
            "/api/hello": json_handler({"message": "Hello, API!"}),
        })
        app.run()
    """
    server = HTTPServer(config)
    for path, handler in (routes or {}).items():
        server.add_route(path, handler)
    return server
