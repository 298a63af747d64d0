"""
=============================================================================
TCP ACCEPT LOOP
=============================================================================

Owns the listening socket and hands every accepted client to its own
worker thread.

=============================================================================
THREAD PER CONNECTION
=============================================================================

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once in start()
                    │   127.0.0.1:8080      │     Never sends/receives data
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        │                       │                       │
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Thread 1  │         │ Thread 2  │         │ Thread 3  │
    │ client 1  │         │ client 2  │         │ client 3  │
    └───────────┘         └───────────┘         └───────────┘

The accept loop is the only serialized point. Each worker is a daemon
thread that runs the connection handler once and exits; nothing is
pooled or reused. A slow client only ever blocks its own thread.

By default the number of workers is unbounded. With
`ServerConfig.max_connections` set, a BoundedSemaphore caps how many run
at once: the accept loop takes a slot before accepting, the worker gives
it back when it finishes.

=============================================================================
WORKER FAILURES
=============================================================================

The connection handler deals with I/O errors itself. Anything else that
escapes it (a route handler that raised, a bug) is logged here with the
traceback and the client socket is closed. The accept loop and the other
workers keep running.

If a worker thread cannot even be started (the process is out of
threads), that one client socket is closed and its slot given back. The
loop goes on accepting.

=============================================================================
SHUTDOWN
=============================================================================

accept() on the listening socket times out every second so the loop can
notice shutdown(), which is called from SIGINT/SIGTERM handlers or from
another thread. Workers are daemon threads and are not waited for.

Signal handlers can only be installed from the main thread, so a server
started in a background thread (as the tests do) skips them.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig


logger = logging.getLogger(__name__)

# Seconds accept() waits before re-checking the running flag
ACCEPT_TIMEOUT = 1.0

# Called in a worker thread with the client socket and its address
ConnectionCallback = Callable[[socket.socket, Tuple[str, int]], object]


class SocketServer:
    """
    Listening socket plus thread-per-connection accept loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(callback)                                                   │
    │        ├──► _create_socket()    SO_REUSEADDR, TCP_NODELAY, 1s       │
    │        ├──► bind() / listen()                                        │
    │        ├──► _setup_signals()    SIGINT/SIGTERM → shutdown()         │
    │        └──► _accept_loop()      blocks here                         │
    │                 │                                                    │
    │                 └──► while running:                                  │
    │                         take a slot (if max_connections)             │
    │                         accept()                                     │
    │                         Thread(_run_worker).start()                  │
    │                                                                      │
    │    shutdown()        running = False                                 │
    │    _cleanup()        restore signals, close listening socket         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def on_connection(sock, address):
            handle_connection(sock, "static", routes, address=address)

        server = SocketServer(config)
        server.start(on_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening
        self._ready_event = threading.Event()

        # None = unbounded
        self._slots: Optional[threading.BoundedSemaphore] = None
        if config.max_connections is not None:
            self._slots = threading.BoundedSemaphore(config.max_connections)

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port once listening on port 0."""
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses are written in one go; don't let Nagle hold them back
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(ACCEPT_TIMEOUT)
        return sock

    def _setup_signals(self):
        """Route SIGINT and SIGTERM to shutdown()."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, leaving signal handlers alone")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, callback: ConnectionCallback, on_ready: Optional[Callable[[], None]] = None):
        """
        Bind, listen and accept connections until shutdown().

        Args:
            callback: Runs in a new thread for every accepted client with
                      (client_socket, client_address).
            on_ready: Called once the socket is listening, before the
                      first accept() and before wait_until_ready() returns.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Listening on {host}:{port}")

        try:
            if on_ready is not None:
                on_ready()
            self._ready_event.set()
            self._accept_loop(callback)
        finally:
            self._cleanup()

    def _accept_loop(self, callback: ConnectionCallback):
        while self._running:
            if not self._acquire_slot():
                continue

            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                # Normal: lets us re-check self._running
                self._release_slot()
                continue
            except OSError as e:
                self._release_slot()
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                self._spawn_worker(callback, client_socket, client_address)
            except RuntimeError as e:
                # Out of threads: drop this client, keep accepting
                logger.error(f"Could not start worker for {client_address[0]}:{client_address[1]}: {e}")
                client_socket.close()
                self._release_slot()

    def _spawn_worker(self, callback: ConnectionCallback, client_socket: socket.socket, client_address):
        """Start a daemon thread serving one client. RuntimeError if it cannot start."""
        worker = threading.Thread(
            target=self._run_worker,
            args=(callback, client_socket, client_address),
            name=f"minihttpd-{client_address[0]}:{client_address[1]}",
            daemon=True,
        )
        worker.start()

    def _acquire_slot(self) -> bool:
        """Wait for a free worker slot. False means re-check the loop."""
        if self._slots is None:
            return True
        acquired = self._slots.acquire(timeout=ACCEPT_TIMEOUT)
        if not acquired:
            logger.debug("All worker slots busy")
        return acquired

    def _release_slot(self):
        if self._slots is not None:
            self._slots.release()

    def _run_worker(self, callback: ConnectionCallback, client_socket: socket.socket, client_address):
        try:
            callback(client_socket, client_address)
        except Exception:
            logger.exception(f"Unhandled error serving {client_address[0]}:{client_address[1]}")
            client_socket.close()
        finally:
            self._release_slot()

    def shutdown(self):
        """Stop the accept loop. Safe to call more than once, from any thread."""
        logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready_event.wait(timeout)
