"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Creates the listening socket, binds, listens                     │
    │  • accept() loop in the calling thread                              │
    │  • Starts one daemon thread per accepted connection                 │
    │  • SIGINT / SIGTERM → shutdown                                      │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ client socket, in a new thread
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                       handle_connection()                            │
    │  • One recv(), parse, Host check, dispatch, write, close            │
    │  • Tracks NEW → READING → ... → CLOSED / ABORTED                    │
    │  • Swallows and logs I/O errors                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState, handle_connection
from .socket_server import SocketServer

__all__ = [
    "SocketServer",       # Accept loop, thread per connection
    "Connection",         # Client socket wrapper
    "ConnectionState",    # Connection lifecycle states
    "handle_connection",  # Serve one request on one socket
]
