"""
Request handlers: the dispatcher and the static file lookup it falls
back to when no route matches.
"""

from .dispatch import ALLOWED_METHOD, handle_request
from .static import INDEX_FILE, resolve_static_path, serve_static_file

__all__ = [
    "handle_request",
    "ALLOWED_METHOD",
    "serve_static_file",
    "resolve_static_path",
    "INDEX_FILE",
]
