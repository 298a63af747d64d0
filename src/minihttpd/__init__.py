"""
=============================================================================
MINIHTTPD - A Minimal HTTP/1.1 Server on Raw Sockets
=============================================================================

One request per connection, GET only, answered either by an in-process
route handler or by a file from a static directory.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET /api/hello  ──► route table hit  ──► 200 application/json     │
    │   GET /           ──► static/index.html ──► 200 text/html           │
    │   GET /missing    ──► nothing          ──► 404                      │
    │   POST /anything  ──► not GET          ──► 405                      │
    │   GET / (no Host) ──► rejected         ──► 400                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttpd/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m minihttpd)
    ├── server.py            # HTTPServer: routes + lifecycle
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # One log line per answered request
    ├── core/
    │   ├── socket_server.py # Accept loop, thread per connection
    │   └── connection.py    # handle_connection(): one request, then close
    ├── http/
    │   ├── request.py       # parse_request_line(), parse_request()
    │   ├── response.py      # HTTPResponse, streamed bodies
    │   ├── routes.py        # RouteTable, handler factories
    │   ├── status_codes.py  # The four status codes in use
    │   └── mime_types.py    # Extension → Content-Type
    └── handlers/
        ├── dispatch.py      # handle_request(): 405 / route / file / 404
        └── static.py        # Static file lookup

=============================================================================
QUICK START
=============================================================================

    from minihttpd import HTTPServer, ServerConfig, json_handler

    server = HTTPServer(ServerConfig(port=8080, static_dir="static"))
    server.add_route("/api/hello", json_handler({"message": "Hello, API!"}))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .core import ConnectionState, SocketServer, handle_connection
from .handlers import handle_request, serve_static_file
from .http import (
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestLine,
    RouteTable,
    json_handler,
    parse_request,
    parse_request_line,
    text_handler,
)
from .server import HTTPServer, create_app

__all__ = [
    "__version__",
    # Server
    "HTTPServer",
    "create_app",
    "ServerConfig",
    "SocketServer",
    # Connection
    "handle_connection",
    "ConnectionState",
    # Dispatch
    "handle_request",
    "serve_static_file",
    # HTTP
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "RequestLine",
    "RouteTable",
    "parse_request",
    "parse_request_line",
    "json_handler",
    "text_handler",
]
