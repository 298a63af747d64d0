"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The server speaks a deliberately small subset of HTTP/1.1, so it only ever
produces four status codes:

    ┌────────┬──────────────────────┬──────────────────────────────────────┐
    │  Code  │ Reason phrase        │ When                                 │
    ├────────┼──────────────────────┼──────────────────────────────────────┤
    │  200   │ OK                   │ Route handler or static file served  │
    │  400   │ Bad Request          │ Request with a method but no Host    │
    │  404   │ Not Found            │ No route and no file for the path    │
    │  405   │ Method Not Allowed   │ Anything other than GET              │
    └────────┴──────────────────────┴──────────────────────────────────────┘

The reason phrase is the text after the code on the status line:

    HTTP/1.1 404 Not Found
             ─── ─────────
              │      │
              │      └── Reason phrase (HTTPStatus.phrase)
              └───────── Status code   (int(HTTPStatus.NOT_FOUND))

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes produced by the server, with their reason phrases.

    Extends IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200                    # Handler or static file served
    BAD_REQUEST = 400           # Missing Host header
    NOT_FOUND = 404             # No route, no file
    METHOD_NOT_ALLOWED = 405    # Only GET is served

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        """True for 2xx codes. Only successful responses carry a body."""
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        """True for 4xx codes."""
        return 400 <= self < 500


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
}
