"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator

import pytest

from minihttpd import HTTPServer, ServerConfig
from minihttpd.http.routes import RouteTable, json_handler


INDEX_HTML = b"<h1>Hello, World!</h1>"
STYLE_CSS = b"body { color: red; }"


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /index.html HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_no_host_request() -> bytes:
    """GET request without the Host header HTTP/1.1 requires."""
    return (
        b"GET / HTTP/1.1\r\n"
        b"User-Agent: pytest\r\n"
        b"\r\n"
    )


@pytest.fixture
def static_root(tmp_path: Path) -> Path:
    """
    Temporary static directory:

        static/
        ├── index.html
        ├── style.css
        ├── data.bin
        └── docs/
            └── guide.html
    """
    root = tmp_path / "static"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "style.css").write_bytes(STYLE_CSS)
    (root / "data.bin").write_bytes(bytes(range(256)))
    (root / "docs").mkdir()
    (root / "docs" / "guide.html").write_bytes(b"<p>guide</p>")

    # Sits next to the static dir, must never be reachable
    (tmp_path / "secret.txt").write_bytes(b"top secret")
    return root


@pytest.fixture
def routes() -> RouteTable:
    """Route table with the demo API route."""
    return RouteTable({
        "/api/hello": json_handler({"message": "Hello, API!"}),
    })


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def recv_all(sock: socket.socket) -> bytes:
    """Read until the peer closes."""
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class

    def __init__(self, server: HTTPServer, port: int):
        self.server = server
        self.port = port
        self._thread: threading.Thread = None

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"port": self.port},
            daemon=True
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def request(self, raw: bytes) -> bytes:
        """Send raw bytes on a fresh connection, return everything received."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(raw)
            return recv_all(s)

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def test_server(free_port: int, static_root: Path) -> Generator[TestServer, None, None]:
    """A running server with the demo route and the temporary static dir."""
    server = HTTPServer(ServerConfig(
        host="127.0.0.1",
        port=free_port,
        static_dir=str(static_root),
        log_level="WARNING",
    ))

    server.add_route("/api/hello", json_handler({"message": "Hello, API!"}))

    @server.route("/boom")
    def boom():
        raise RuntimeError("handler exploded")

    test_srv = TestServer(server, free_port)
    test_srv.start()

    yield test_srv

    test_srv.stop()
