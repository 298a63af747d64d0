"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

Decides what a request gets back. This is the only place in the server
with real decision logic; everything else is parsing and plumbing.

=============================================================================
DECISION ORDER (first match wins)
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   method != "GET" ?  ──yes──►  405 Method Not Allowed (no body)     │
    │        │                                                             │
    │        no                                                            │
    │        ▼                                                             │
    │   path in routes ?   ──yes──►  200 OK, handler's body + type        │
    │        │                                                             │
    │        no                                                            │
    │        ▼                                                             │
    │   file under base ?  ──yes──►  200 OK, streamed file                │
    │        │                       type from extension                  │
    │        no                                                            │
    │        ▼                                                             │
    │   404 Not Found (no body)                                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Routes win over files: if "/api/hello" is registered AND
static/api/hello exists on disk, the handler answers.

The method check is an exact, case-sensitive comparison. "get" and "HEAD"
are both 405, and so is the empty method of an unparseable request line.

=============================================================================
"""

import logging
from collections.abc import Mapping
from pathlib import Path

from ..http.response import HTTPResponse, method_not_allowed, not_found, ok
from .static import serve_static_file


logger = logging.getLogger(__name__)

ALLOWED_METHOD = "GET"


def handle_request(
    method: str,
    path: str,
    base_dir: str | Path,
    routes: Mapping,
) -> HTTPResponse:
    """
    Dispatch one request.

    Args:
        method: Request method as parsed ("" if unparseable).
        path: Request path as parsed.
        base_dir: Directory for static files.
        routes: Mapping of exact path → zero-argument handler returning
                (body_text, content_type). Usually a RouteTable.

    Returns:
        HTTPResponse with status 200, 404 or 405. The body is present
        only for 200.

    Raises:
        Whatever a route handler raises. Handlers are application code;
        their failures are not turned into status codes here.
    """
    if method != ALLOWED_METHOD:
        logger.debug(f"{method!r} {path} → 405")
        return method_not_allowed()

    handler = routes.get(path)
    if handler is not None:
        body, content_type = handler()
        logger.debug(f"GET {path} → route handler ({content_type})")
        return ok(body, content_type)

    response = serve_static_file(base_dir, path)
    if response is not None:
        logger.debug(f"GET {path} → static file ({response.content_type})")
        return response

    logger.debug(f"GET {path} → 404")
    return not_found()
