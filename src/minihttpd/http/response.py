"""
=============================================================================
HTTP RESPONSE
=============================================================================

Represents what the server sends back and knows how to write itself onto
a connection.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                  ← status line               │
    │    Content-Type: application/json\r\n   ← what the body is          │
    │    Content-Length: 26\r\n               ← how long the body is      │
    │    \r\n                                 ← end of headers            │
    │    {"message": "Hello, API!"}           ← body (200 only)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BODY PRODUCERS
=============================================================================

The body is not always a bytes object. A static file can be megabytes
long, and reading it all into memory just to copy it into a socket is
wasteful. So a response carries a BODY PRODUCER: something that knows
its length up front and can write itself into a sink later.

    ┌──────────────────┬─────────────────────────────────────────────────┐
    │  Producer        │  write_to(sink)                                 │
    ├──────────────────┼─────────────────────────────────────────────────┤
    │  BufferedBody    │  sink.write(data) - already in memory           │
    │  StaticFileBody  │  open file, copy in chunks (shutil.copyfileobj) │
    │  None            │  nothing is written (404, 405)                  │
    └──────────────────┴─────────────────────────────────────────────────┘

The sink is any binary file-like object with write(): in production the
buffered writer from socket.makefile("wb"), in tests an io.BytesIO.

=============================================================================
"""

import io
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union

from .mime_types import TEXT_PLAIN
from .status_codes import HTTPStatus


# Every response we produce is HTTP/1.1
HTTP_VERSION = "HTTP/1.1"

# Chunk size used when streaming static files into the socket
STREAM_CHUNK_SIZE = 64 * 1024


class BodyProducer(Protocol):
    """Anything that can write a response body into a sink."""

    @property
    def content_length(self) -> int:
        ...

    def write_to(self, sink: BinaryIO) -> None:
        ...


@dataclass(frozen=True)
class BufferedBody:
    """A body that is already in memory (route handler output)."""

    data: bytes

    @property
    def content_length(self) -> int:
        return len(self.data)

    def write_to(self, sink: BinaryIO) -> None:
        sink.write(self.data)


@dataclass(frozen=True)
class StaticFileBody:
    """
    A body streamed from a file on disk.

    The file is only opened when write_to() runs, so a response can be
    built, inspected and discarded without touching the file. The size is
    captured when the response is built (from stat()); if the file
    changes in between, the Content-Length we already sent wins and the
    peer sees a short or long body.

    Any OSError from open() or read() propagates: a file that vanished
    or became unreadable after the existence check is fatal for the
    connection.
    """

    path: Path
    size: int

    @property
    def content_length(self) -> int:
        return self.size

    def write_to(self, sink: BinaryIO) -> None:
        with open(self.path, "rb") as f:
            shutil.copyfileobj(f, sink, STREAM_CHUNK_SIZE)


@dataclass
class HTTPResponse:
    """
    A response ready to be written to a connection.

    =========================================================================
    INVARIANT
    =========================================================================

    A body is present if and only if the status is 200. 404 and 405
    responses carry body=None and are sent with Content-Length: 0.

    =========================================================================

    Attributes:
        status:       Status code (HTTPStatus enum).
        content_type: Value of the Content-Type header.
        body:         Body producer, or None.
    """

    status: HTTPStatus
    content_type: str
    body: Optional[BodyProducer] = None

    @property
    def reason(self) -> str:
        """Reason phrase for the status line ("OK", "Not Found", ...)."""
        return self.status.phrase

    @property
    def status_line(self) -> str:
        """
        The HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{HTTP_VERSION} {int(self.status)} {self.reason}"

    @property
    def content_length(self) -> int:
        """Length of the body in bytes, 0 when there is none."""
        return self.body.content_length if self.body is not None else 0

    def head_bytes(self) -> bytes:
        """
        Serialize the status line and headers, including the blank line.

            HTTP/1.1 200 OK\\r\\n
            Content-Type: text/html\\r\\n
            Content-Length: 22\\r\\n
            \\r\\n
        """
        lines = [
            self.status_line,
            f"Content-Type: {self.content_type}",
            f"Content-Length: {self.content_length}",
            "",
            "",
        ]
        return "\r\n".join(lines).encode("utf-8")

    def write_to(self, sink: BinaryIO) -> None:
        """
        Write the complete response (head, then body) into `sink`.

        The caller flushes. OSErrors from the sink or from a streamed
        file propagate unchanged.
        """
        sink.write(self.head_bytes())
        if self.body is not None:
            self.body.write_to(sink)

    def to_bytes(self) -> bytes:
        """
        Serialize the whole response into memory.

        Handy for tests and logging; the connection handler streams with
        write_to() instead so static files are never fully buffered.
        """
        buffer = io.BytesIO()
        self.write_to(buffer)
        return buffer.getvalue()


# =============================================================================
# FIXED RESPONSES
# =============================================================================
#
# The 400 for a missing Host header is written by the connection handler
# before dispatch ever happens. It has no Content-Type, just an explicit
# zero length.
#
# =============================================================================

BAD_REQUEST_RESPONSE = (
    f"{HTTP_VERSION} {int(HTTPStatus.BAD_REQUEST)} {HTTPStatus.BAD_REQUEST.phrase}\r\n"
    "Content-Length: 0\r\n"
    "\r\n"
).encode("latin-1")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, bytes], content_type: str) -> HTTPResponse:
    """
    Create a 200 OK response with an in-memory body.

    Strings are encoded as UTF-8.
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    return HTTPResponse(HTTPStatus.OK, content_type, BufferedBody(body))


def serve_file(path: Path, size: int, content_type: str) -> HTTPResponse:
    """Create a 200 OK response that streams `path`."""
    return HTTPResponse(HTTPStatus.OK, content_type, StaticFileBody(path, size))


def not_found() -> HTTPResponse:
    """Create an empty 404 Not Found response."""
    return HTTPResponse(HTTPStatus.NOT_FOUND, TEXT_PLAIN)


def method_not_allowed() -> HTTPResponse:
    """Create an empty 405 Method Not Allowed response."""
    return HTTPResponse(HTTPStatus.METHOD_NOT_ALLOWED, TEXT_PLAIN)
