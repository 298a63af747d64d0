"""
Unit tests for the per-connection handler.

Sockets come from socket.socketpair(): the test writes the request on one
end, handle_connection() serves the other end synchronously, then the
test reads whatever was written back.
"""

import json
import logging
import socket
from pathlib import Path

import pytest

from minihttpd.core import connection
from minihttpd.core.connection import Connection, ConnectionState, handle_connection
from minihttpd.http.routes import RouteTable


def recv_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def serve(raw: bytes, static_root: Path, routes, **kwargs):
    """Run one request through handle_connection(), return (state, response bytes)."""
    server_end, client_end = socket.socketpair()
    with client_end:
        client_end.sendall(raw)
        state = handle_connection(server_end, static_root, routes, **kwargs)
        return state, recv_all(client_end)


class FailingSocket:
    """Just enough of a socket to fail on the first read."""

    def __init__(self, error: OSError):
        self.error = error
        self.closed = False

    def settimeout(self, value):
        pass

    def getpeername(self):
        return ("10.0.0.1", 4242)

    def recv(self, size):
        raise self.error

    def makefile(self, mode):
        raise AssertionError("nothing should be written")

    def shutdown(self, how):
        raise OSError("not connected")

    def close(self):
        self.closed = True


class TestHandleConnection:
    """Tests for handle_connection()."""

    def test_api_route(self, static_root: Path, routes: RouteTable):
        state, response = serve(
            b"GET /api/hello HTTP/1.1\r\nHost: localhost\r\n\r\n", static_root, routes
        )

        assert state == ConnectionState.CLOSED
        assert response == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: application/json\r\n"
            b"Content-Length: 26\r\n"
            b"\r\n"
            b'{"message": "Hello, API!"}'
        )

    def test_index_html(self, static_root: Path, routes: RouteTable):
        _, response = serve(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n", static_root, routes)

        head, body = response.split(b"\r\n\r\n", 1)
        assert head.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Type: text/html" in head
        assert b"Content-Length: 22" in head
        assert body == b"<h1>Hello, World!</h1>"

    def test_not_found(self, static_root: Path, routes: RouteTable):
        _, response = serve(
            b"GET /nonexistent HTTP/1.1\r\nHost: localhost\r\n\r\n", static_root, routes
        )

        assert response == (
            b"HTTP/1.1 404 Not Found\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 0\r\n"
            b"\r\n"
        )

    def test_method_not_allowed(self, static_root: Path, routes: RouteTable):
        _, response = serve(
            b"POST /api/hello HTTP/1.1\r\nHost: localhost\r\n\r\n", static_root, routes
        )

        assert response.startswith(b"HTTP/1.1 405 Method Not Allowed\r\n")
        assert b"Content-Length: 0\r\n" in response

    def test_missing_host_is_400(self, static_root: Path, routes: RouteTable, sample_no_host_request: bytes):
        state, response = serve(sample_no_host_request, static_root, routes)

        assert state == ConnectionState.CLOSED
        assert response == b"HTTP/1.1 400 Bad Request\r\nContent-Length: 0\r\n\r\n"

    def test_missing_host_checked_before_method(self, static_root: Path, routes: RouteTable):
        """A non-GET without Host gets 400, not 405."""
        _, response = serve(b"DELETE /x HTTP/1.1\r\n\r\n", static_root, routes)

        assert response.startswith(b"HTTP/1.1 400 Bad Request\r\n")

    def test_malformed_request_line_skips_host_check(self, static_root: Path, routes: RouteTable):
        """An unparseable line has an empty method: no 400, dispatch says 405."""
        _, response = serve(b"GARBAGE\r\n\r\n", static_root, routes)

        assert response.startswith(b"HTTP/1.1 405 Method Not Allowed\r\n")

    def test_request_larger_than_buffer_is_truncated(self, static_root: Path, routes: RouteTable):
        """Only the first buffer_size bytes are parsed; the Host header is lost."""
        raw = b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n"

        _, response = serve(raw, static_root, routes, buffer_size=16)

        assert response.startswith(b"HTTP/1.1 400 Bad Request\r\n")

    def test_oversized_request_still_answered(self, static_root: Path, routes: RouteTable):
        """Unread input past the first read does not cost the peer its response."""
        raw = (
            b"GET /api/hello HTTP/1.1\r\n"
            b"Host: localhost\r\n"
            + b"X-Padding: " + b"a" * 3000 + b"\r\n"
            b"\r\n"
        )

        state, response = serve(raw, static_root, routes)

        assert state == ConnectionState.CLOSED
        assert response.endswith(b'{"message": "Hello, API!"}')

    def test_file_vanishing_after_dispatch_aborts(self, static_root: Path, routes: RouteTable, monkeypatch):
        """A static file deleted between lookup and streaming aborts the connection."""
        real_handle_request = connection.handle_request

        def handle_then_delete(method, path, base_dir, table):
            response = real_handle_request(method, path, base_dir, table)
            (static_root / "index.html").unlink()
            return response

        monkeypatch.setattr(connection, "handle_request", handle_then_delete)

        state, response = serve(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n", static_root, routes)

        assert state == ConnectionState.ABORTED
        assert response == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/html\r\n"
            b"Content-Length: 22\r\n"
            b"\r\n"
        )

    def test_peer_sends_nothing(self, static_root: Path, routes: RouteTable):
        """A peer that closes without a request gets no response at all."""
        server_end, client_end = socket.socketpair()
        with client_end:
            client_end.shutdown(socket.SHUT_WR)

            state = handle_connection(server_end, static_root, routes)

            assert state == ConnectionState.CLOSED
            assert recv_all(client_end) == b""

    def test_read_error_aborts(self, static_root: Path, routes: RouteTable, caplog):
        """An OSError is logged and reported, never raised."""
        sock = FailingSocket(ConnectionResetError("reset by peer"))
        caplog.set_level(logging.WARNING, logger="minihttpd.core.connection")

        state = handle_connection(sock, static_root, routes)

        assert state == ConnectionState.ABORTED
        assert sock.closed is True
        assert "reset by peer" in caplog.text

    def test_write_error_aborts(self, static_root: Path, routes: RouteTable):
        """A peer that vanished before the response is written."""
        server_end, client_end = socket.socketpair()
        client_end.sendall(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")
        client_end.close()

        state = handle_connection(server_end, static_root, routes)

        assert state == ConnectionState.ABORTED

    def test_handler_error_propagates_after_close(self, static_root: Path):
        """Route handler exceptions escape, but the socket is closed first."""
        def broken():
            raise RuntimeError("boom")

        server_end, client_end = socket.socketpair()
        with client_end:
            client_end.sendall(b"GET /broken HTTP/1.1\r\nHost: localhost\r\n\r\n")

            with pytest.raises(RuntimeError, match="boom"):
                handle_connection(server_end, static_root, RouteTable({"/broken": broken}))

            assert recv_all(client_end) == b""

    def test_socket_always_closed(self, static_root: Path, routes: RouteTable):
        server_end, client_end = socket.socketpair()
        with client_end:
            client_end.sendall(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")
            handle_connection(server_end, static_root, routes)

        assert server_end.fileno() == -1


class TestAccessLog:
    """One access log line per answered request."""

    def test_text_format(self, static_root: Path, routes: RouteTable, caplog):
        caplog.set_level(logging.INFO, logger="minihttpd.access")

        serve(b"GET /api/hello HTTP/1.1\r\nHost: localhost\r\n\r\n", static_root, routes)

        records = [r for r in caplog.records if r.name == "minihttpd.access"]
        assert len(records) == 1
        assert '"GET /api/hello HTTP/1.1" 200 26' in records[0].getMessage()
        assert records[0].getMessage().endswith('ms "localhost"')

    def test_json_format(self, static_root: Path, routes: RouteTable, caplog):
        caplog.set_level(logging.INFO, logger="minihttpd.access")

        serve(
            b"GET /nope HTTP/1.1\r\nHost: localhost\r\nUser-Agent: pytest\r\n\r\n",
            static_root, routes, address=("192.0.2.7", 5000), log_format="json",
        )

        records = [r for r in caplog.records if r.name == "minihttpd.access"]
        entry = json.loads(records[0].getMessage())
        assert entry["client_ip"] == "192.0.2.7"
        assert entry["method"] == "GET"
        assert entry["path"] == "/nope"
        assert entry["status_code"] == 404
        assert entry["content_length"] == 0
        assert entry["user_agent"] == "pytest"
        assert entry["host"] == "localhost"

    def test_bad_request_logged(self, static_root: Path, routes: RouteTable, caplog, sample_no_host_request: bytes):
        caplog.set_level(logging.INFO, logger="minihttpd.access")

        serve(sample_no_host_request, static_root, routes)

        records = [r for r in caplog.records if r.name == "minihttpd.access"]
        assert " 400 0 " in records[0].getMessage()
        assert records[0].getMessage().endswith('"-"')

    def test_nothing_logged_without_request(self, static_root: Path, routes: RouteTable, caplog):
        caplog.set_level(logging.INFO, logger="minihttpd.access")
        server_end, client_end = socket.socketpair()
        client_end.close()

        handle_connection(server_end, static_root, routes)

        assert not [r for r in caplog.records if r.name == "minihttpd.access"]


class TestConnection:
    """Tests for the Connection wrapper."""

    def test_lifecycle(self):
        server_end, client_end = socket.socketpair()
        with client_end:
            conn = Connection(socket=server_end)
            assert conn.state == ConnectionState.NEW
            assert len(conn.id) == 8
            assert conn.client_ip == "-"

            client_end.sendall(b"ping")
            assert conn.read_request() == b"ping"
            assert conn.state == ConnectionState.READING

            conn.send_bytes(b"pong")
            assert conn.state == ConnectionState.WRITING

            conn.close()
            assert conn.state == ConnectionState.CLOSED
            assert recv_all(client_end) == b"pong"

    def test_close_is_idempotent(self):
        server_end, client_end = socket.socketpair()
        with client_end:
            with Connection(socket=server_end) as conn:
                pass
            conn.close()

            assert conn.state == ConnectionState.CLOSED

    def test_abort_survives_close(self):
        server_end, client_end = socket.socketpair()
        with client_end:
            conn = Connection(socket=server_end)
            conn.abort(OSError("broken"))
            conn.close()

            assert conn.state == ConnectionState.ABORTED
