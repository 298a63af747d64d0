"""
=============================================================================
CONTENT-TYPE DETECTION
=============================================================================

Maps the extension of a static file to the Content-Type header sent with
it. The table is intentionally tiny: HTML pages, their stylesheets, and
everything else as opaque bytes.

    ┌──────────────┬────────────────────────────┐
    │  Extension   │  Content-Type              │
    ├──────────────┼────────────────────────────┤
    │  .html       │  text/html                 │
    │  .css        │  text/css                  │
    │  (anything)  │  application/octet-stream  │
    │  (none)      │  application/octet-stream  │
    └──────────────┴────────────────────────────┘

application/octet-stream means "I don't know what this is, treat it as
binary". Browsers will usually offer it as a download instead of
rendering it.

Matching is on the exact extension: "page.HTML" is not an HTML page.

=============================================================================
"""

from pathlib import Path


MIME_TYPES = {
    ".html": "text/html",
    ".css": "text/css",
}

# Default for unknown or missing extensions
DEFAULT_MIME_TYPE = "application/octet-stream"

# Used for the empty bodies of 404 and 405 responses
TEXT_PLAIN = "text/plain"


def get_content_type(path: str | Path) -> str:
    """
    Get the Content-Type for a file based on its extension.

    Args:
        path: File path or name.

    Returns:
        The content type string.

    Examples:
        >>> get_content_type("static/index.html")
        'text/html'

        >>> get_content_type("style.css")
        'text/css'

        >>> get_content_type("logo.png")
        'application/octet-stream'

        >>> get_content_type("README")
        'application/octet-stream'
    """
    if isinstance(path, str):
        path = Path(path)

    return MIME_TYPES.get(path.suffix, DEFAULT_MIME_TYPE)
