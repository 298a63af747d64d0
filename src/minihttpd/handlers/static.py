"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files from a base directory on disk.

=============================================================================
URL → FILE
=============================================================================

    base_dir = "static"

    GET /               → static/index.html
    GET /style.css      → static/style.css
    GET /docs/a.html    → static/docs/a.html
    GET /missing.png    → 404 Not Found

The root path is special-cased to index.html. Every other path has a
single leading "/" removed and is joined onto the base directory. There
is no directory index beyond the root: "GET /docs/" looks for a FILE
called "static/docs/", which never exists, so it is a 404.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /../secret.txt
        → static/../secret.txt
        → resolves to ./secret.txt, OUTSIDE static/

The candidate is resolved (following .. and symlinks) and must still be
inside the resolved base directory. Anything outside is treated exactly
like a missing file: 404, not 403, so the server never reveals that
something exists out there.

    PYTHON PROTECTION:

        full_path = (base_dir / relative).resolve()
        full_path.relative_to(base_dir)  # Raises if outside!

=============================================================================
STREAMING
=============================================================================

Files are not read here. The response carries a StaticFileBody that
opens and copies the file straight into the socket when the connection
handler writes the body, so a large file never sits in memory.

=============================================================================
"""

import logging
import os
from pathlib import Path
from typing import Optional

from ..http.mime_types import get_content_type
from ..http.response import HTTPResponse, serve_file


logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


def resolve_static_path(base_dir: str | Path, path: str) -> Path:
    """
    Map a request path to a candidate file path under `base_dir`.

    "/" becomes "index.html"; otherwise exactly one leading "/" is
    stripped. The result is NOT checked for existence or containment.

    Args:
        base_dir: Directory static files are served from.
        path: Request path ("/style.css").

    Returns:
        The joined candidate path (base_dir/style.css).
    """
    if path == "/":
        relative = INDEX_FILE
    elif path.startswith("/"):
        relative = path[1:]
    else:
        relative = path

    return Path(base_dir) / relative


def serve_static_file(base_dir: str | Path, path: str) -> Optional[HTTPResponse]:
    """
    Build a 200 response that streams the file for `path`, if there is one.

    Args:
        base_dir: Directory static files are served from.
        path: Request path.

    Returns:
        A streaming 200 response, or None when no servable file exists
        (missing, a directory, or outside base_dir).
    """
    candidate = resolve_static_path(base_dir, path)

    # ─────────────────────────────────────────────────────────────────
    # SECURITY: stay inside base_dir
    # ─────────────────────────────────────────────────────────────────
    try:
        root = Path(base_dir).resolve()
        full_path = candidate.resolve()
    except (OSError, ValueError, RuntimeError):
        # NUL bytes in the path, symlink loops: nothing we could serve
        return None

    try:
        full_path.relative_to(root)
    except ValueError:
        logger.warning(f"Path traversal attempt: {path}")
        return None

    # ─────────────────────────────────────────────────────────────────
    # CHECK FILE EXISTS
    # ─────────────────────────────────────────────────────────────────
    if not full_path.is_file():
        return None

    size = os.stat(full_path).st_size
    return serve_file(full_path, size, get_content_type(candidate))
