"""
=============================================================================
HTTP PROTOCOL PIECES
=============================================================================

    request.py       bytes → RequestLine / HTTPRequest. Never raises:
                     unparseable input gives empty fields and
                     malformed=True.

    response.py      HTTPResponse → status line, Content-Type,
                     Content-Length, blank line, body. Bodies are
                     buffered text or a file streamed from disk.

    routes.py        Read-only exact-path → handler table shared by
                     all worker threads.

    status_codes.py  200, 400, 404, 405 and their reason phrases.

    mime_types.py    .html → text/html, .css → text/css, anything else
                     application/octet-stream.

=============================================================================
"""

from .mime_types import DEFAULT_MIME_TYPE, MIME_TYPES, get_content_type
from .request import HTTPRequest, RequestLine, parse_request, parse_request_line
from .response import (
    BAD_REQUEST_RESPONSE,
    BufferedBody,
    HTTPResponse,
    StaticFileBody,
    method_not_allowed,
    not_found,
    ok,
    serve_file,
)
from .routes import Handler, RouteTable, json_handler, text_handler
from .status_codes import HTTPStatus

__all__ = [
    # Request
    "HTTPRequest",
    "RequestLine",
    "parse_request",
    "parse_request_line",
    # Response
    "HTTPResponse",
    "BufferedBody",
    "StaticFileBody",
    "BAD_REQUEST_RESPONSE",
    "ok",
    "serve_file",
    "not_found",
    "method_not_allowed",
    # Routes
    "Handler",
    "RouteTable",
    "json_handler",
    "text_handler",
    # Status & MIME
    "HTTPStatus",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
    "get_content_type",
]
