"""
=============================================================================
CONNECTION HANDLING
=============================================================================

Serves exactly ONE request on one client connection, then closes it.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► VALIDATING ──► DISPATCHING ──► WRITING ──► CLOSED
               │             │                            │
               │             └── no Host header ──────────┤
               │                 (400, straight to        │
               │                  WRITING)                │
               │                                          │
               └────────── OSError anywhere ──────────────┴──► ABORTED

There is no arrow back to READING: no keep-alive, no pipelining. Every
response is followed by closing the socket.

=============================================================================
ONE READ, ONE REQUEST
=============================================================================

The request is read with a SINGLE recv() of up to `buffer_size` bytes
(1024 by default):

    recv(1024) → b"GET /api/hello HTTP/1.1\\r\\nHost: localhost\\r\\n\\r\\n"

TCP is a byte stream, so in general one recv() is not guaranteed to
hold a whole request. For the small GET requests this server accepts it
nearly always does. Whatever did arrive is parsed as-is: a request
larger than the buffer is truncated, and headers that did not make it
into the first read simply do not exist.

=============================================================================
THE HOST PRECONDITION
=============================================================================

HTTP/1.1 requires a Host header. If the request line produced a method
but no "Host" header was sent, the client gets a fixed

    HTTP/1.1 400 Bad Request\\r\\n
    Content-Length: 0\\r\\n
    \\r\\n

and the connection closes. The check is skipped when the method is
empty (unparseable request line); such requests go on to dispatch and
get 405, since "" is not "GET".

=============================================================================
FAILURES
=============================================================================

Any OSError (peer reset, broken pipe, a static file that vanished after
the existence check) aborts the connection: it is logged, the socket is
closed, and handle_connection() returns ConnectionState.ABORTED. It is
never re-raised, so one bad peer cannot take down the accept loop or any
other worker. There is no partial-response recovery: the peer sees an
abrupt close.

=============================================================================
CLOSING
=============================================================================

    shutdown(SHUT_WR) ──► drain unread input ──► close()

Closing a socket that still has unread input makes the kernel answer
with RST instead of FIN, and the peer can lose the response it has not
read yet. That is exactly the situation after a request larger than the
single read. So the rest of the request is read and discarded first,
bounded by DRAIN_LIMIT bytes and DRAIN_TIMEOUT seconds per read.

=============================================================================
"""

import logging
import socket
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional

from ..access_log import RequestLog, log_request, now_timestamp
from ..handlers.dispatch import handle_request
from ..http.request import parse_request
from ..http.response import BAD_REQUEST_RESPONSE, HTTPResponse
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

# Size of the single read a request must fit in
DEFAULT_BUFFER_SIZE = 1024

# Unread request bytes discarded before close, and how long each read waits
DRAIN_LIMIT = 64 * 1024
DRAIN_TIMEOUT = 0.1


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"                  # Accepted, nothing read yet
    READING = "reading"          # Waiting for the request bytes
    VALIDATING = "validating"    # Parsed, checking the Host precondition
    DISPATCHING = "dispatching"  # Route handler or static lookup running
    WRITING = "writing"          # Sending status line, headers, body
    CLOSED = "closed"            # Done, socket released
    ABORTED = "aborted"          # I/O failure, socket released


@dataclass
class Connection:
    """
    One accepted client socket.

    Wraps the raw socket with a single-read request API, a buffered
    writer for the response, state tracking, and an id for log lines.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port), ("", 0) when unknown.
        buffer_size: Maximum bytes read for the request.
        id: Short unique id for logging.
        state: Current ConnectionState.
        created_at: time.time() when the connection was wrapped.
    """

    socket: socket.socket
    address: tuple[str, int] = ("", 0)
    buffer_size: int = DEFAULT_BUFFER_SIZE

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    _writer: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        # Blocking, no timeout: a silent peer holds its worker until it
        # sends something or goes away.
        self.socket.settimeout(None)

    @property
    def client_ip(self) -> str:
        """The client IP address, "-" when unknown."""
        return self.address[0] or "-"

    @property
    def age_ms(self) -> float:
        """Milliseconds since the connection was accepted."""
        return (time.time() - self.created_at) * 1000

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> bytes:
        """
        Read the request with one recv() of up to buffer_size bytes.

        Returns:
            The bytes received; b"" if the peer closed without sending.

        Raises:
            OSError: If the read fails.
        """
        self.state = ConnectionState.READING
        return self.socket.recv(self.buffer_size)

    # =========================================================================
    # WRITING
    # =========================================================================

    @property
    def writer(self) -> BinaryIO:
        """Buffered binary writer over the socket, created on first use."""
        if self._writer is None:
            self._writer = self.socket.makefile("wb")
        return self._writer

    def send_response(self, response: HTTPResponse) -> None:
        """
        Write `response` (head and streamed body) and flush.

        Raises:
            OSError: If the socket write or a static file read fails.
        """
        self.state = ConnectionState.WRITING
        response.write_to(self.writer)
        self.writer.flush()

    def send_bytes(self, data: bytes) -> None:
        """Write a pre-serialized response and flush."""
        self.state = ConnectionState.WRITING
        self.writer.write(data)
        self.writer.flush()

    # =========================================================================
    # CLOSING
    # =========================================================================

    def abort(self, error: BaseException) -> None:
        """Mark the connection as failed. close() still has to run."""
        logger.warning(f"[{self.id}] Connection aborted in state {self.state.value}: {error}")
        self.state = ConnectionState.ABORTED

    def close(self) -> None:
        """
        Close the writer and the socket.

        Tolerates a peer that is already gone. The final state is CLOSED,
        or stays ABORTED if abort() was called.
        """
        if self.state == ConnectionState.CLOSED:
            return

        if self._writer is not None:
            try:
                self._writer.close()  # Also flushes anything left
            except OSError:
                pass  # Peer already gone
            self._writer = None

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        if self.state != ConnectionState.ABORTED:
            self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection {self.state.value} after {self.age_ms:.2f}ms")

    def _drain(self) -> None:
        """Discard whatever the peer sent that was never read."""
        drained = 0
        try:
            self.socket.settimeout(DRAIN_TIMEOUT)
            while drained < DRAIN_LIMIT:
                chunk = self.socket.recv(self.buffer_size)
                if not chunk:
                    break  # Peer finished sending
                drained += len(chunk)
        except OSError:
            pass  # Timeout or peer gone; closing anyway

        if drained:
            logger.debug(f"[{self.id}] Discarded {drained} unread bytes")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions


# =============================================================================
# ONE CONNECTION, ONE REQUEST
# =============================================================================

def handle_connection(
    sock: socket.socket,
    base_dir: str | Path,
    routes: Mapping,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    address: Optional[tuple[str, int]] = None,
    log_format: str = "text",
) -> ConnectionState:
    """
    Serve a single request on `sock`, then close it.

    =====================================================================
    FLOW
    =====================================================================

        1. READING      one recv(buffer_size)
        2. VALIDATING   method present but no Host → fixed 400, done
        3. DISPATCHING  handle_request(method, path, base_dir, routes)
        4. WRITING      status line, Content-Type, Content-Length,
                        blank line, body; flush
        5. close the socket

    =====================================================================

    Args:
        sock: Accepted client socket. Always closed on return.
        base_dir: Directory for static files.
        routes: Shared, read-only route table.
        buffer_size: Size of the single request read.
        address: Client (ip, port) for logging. Looked up from the
                 socket when not given.
        log_format: Access log format, "text" or "json".

    Returns:
        The final state: CLOSED normally, ABORTED on I/O failure.

    Raises:
        Exceptions from route handlers (after the socket is closed).
        OSErrors are never raised.
    """
    conn = Connection(
        socket=sock,
        address=address or _peer_address(sock),
        buffer_size=buffer_size,
    )

    with conn:
        try:
            _serve(conn, base_dir, routes, log_format)
        except OSError as e:
            conn.abort(e)

    return conn.state


def _serve(conn: Connection, base_dir: str | Path, routes: Mapping, log_format: str) -> None:
    """Run the READING → WRITING states for one connection."""
    # ─────────────────────────────────────────────────────────────────
    # READING
    # ─────────────────────────────────────────────────────────────────
    data = conn.read_request()
    if not data:
        logger.debug(f"[{conn.id}] Peer closed before sending a request")
        return

    request = parse_request(data)
    if request.malformed:
        logger.debug(f"[{conn.id}] Malformed request line")

    # ─────────────────────────────────────────────────────────────────
    # VALIDATING
    # ─────────────────────────────────────────────────────────────────
    conn.state = ConnectionState.VALIDATING
    if request.method and not request.has_host:
        logger.info(f"[{conn.id}] {request.method} {request.path} without Host header")
        conn.send_bytes(BAD_REQUEST_RESPONSE)
        _log_access(conn, request, HTTPStatus.BAD_REQUEST, 0, log_format)
        return

    # ─────────────────────────────────────────────────────────────────
    # DISPATCHING
    # ─────────────────────────────────────────────────────────────────
    conn.state = ConnectionState.DISPATCHING
    response = handle_request(request.method, request.path, base_dir, routes)

    # ─────────────────────────────────────────────────────────────────
    # WRITING
    # ─────────────────────────────────────────────────────────────────
    conn.send_response(response)
    _log_access(conn, request, response.status, response.content_length, log_format)


def _log_access(conn: Connection, request, status: int, content_length: int, log_format: str) -> None:
    log_request(
        RequestLog(
            connection_id=conn.id,
            client_ip=conn.client_ip,
            method=request.method,
            path=request.path,
            protocol=request.protocol,
            host=request.host or "-",
            user_agent=request.user_agent or "-",
            status_code=int(status),
            content_length=content_length,
            duration_ms=conn.age_ms,
            timestamp=now_timestamp(),
        ),
        log_format,
    )


def _peer_address(sock: socket.socket) -> tuple[str, int]:
    """(ip, port) of the peer, or ("", 0) for unix sockets and dead peers."""
    try:
        peer = sock.getpeername()
    except OSError:
        return ("", 0)
    if isinstance(peer, tuple):
        return (peer[0], peer[1])
    return ("", 0)
