"""
=============================================================================
ROUTE TABLE
=============================================================================

Maps exact request paths to in-process handlers.

=============================================================================
HOW ROUTES ARE MATCHED
=============================================================================

Matching is EXACT string comparison, nothing else:

    Route "/api/hello"
        GET /api/hello     → handler
        GET /api/hello/    → no match (falls through to static files)
        GET /API/hello     → no match
        GET /api/hello?x=1 → no match (the query string is part of the path)

No patterns, no parameters, no prefix matching. If no route matches, the
dispatcher tries the static file directory next.

=============================================================================
HANDLERS
=============================================================================

A handler is any zero-argument callable that returns a tuple of
(body_text, content_type):

    def hello():
        return '{"message": "Hello, API!"}', "application/json"

Plain functions, lambdas, closures and objects with __call__ all work.
Closures are how a handler carries state without changing the contract:

    routes = RouteTable({
        "/api/hello": json_handler({"message": "Hello, API!"}),
        "/version":   text_handler("1.0.0"),
    })

=============================================================================
SHARING BETWEEN THREADS
=============================================================================

Every connection runs on its own thread, and they all read the same
table. RouteTable is a read-only Mapping built once at startup: it copies
the mapping it is given and exposes it through a MappingProxyType, so no
thread can change routes while others are reading them and nothing needs
a lock.

=============================================================================
"""

import json
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Iterator, Optional, Tuple


# Handler: takes nothing, returns (body_text, content_type)
Handler = Callable[[], Tuple[str, str]]


class RouteTable(Mapping):
    """
    Immutable mapping of exact path → handler.

    Example:
        routes = RouteTable({"/api/hello": hello})

        "/api/hello" in routes      # True
        routes["/api/hello"]()      # ('{"message": ...}', 'application/json')
        routes["/x"] = other        # TypeError - read-only
    """

    def __init__(self, routes: Optional[Mapping] = None):
        """
        Build the table.

        Args:
            routes: Mapping of path → handler. It is copied, so changing
                    it afterwards has no effect on the table.

        Raises:
            TypeError: If a handler is not callable.
        """
        entries = dict(routes or {})
        for path, handler in entries.items():
            if not callable(handler):
                raise TypeError(f"Handler for {path!r} is not callable: {handler!r}")
        self._routes = MappingProxyType(entries)

    def __getitem__(self, path: str) -> Handler:
        return self._routes[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def __repr__(self) -> str:
        return f"RouteTable({sorted(self._routes)!r})"

    def print_routes(self) -> None:
        """Print registered routes (for the startup banner)."""
        for path in sorted(self._routes):
            handler = self._routes[path]
            name = getattr(handler, "__name__", type(handler).__name__)
            print(f"  GET  {path:<30} → {name}")


# =============================================================================
# HANDLER FACTORIES
# =============================================================================

def json_handler(data: Any) -> Handler:
    """
    Handler that always answers with `data` serialized as JSON.

    The JSON is rendered once, when the handler is created.
    """
    body = json.dumps(data)

    def handler() -> Tuple[str, str]:
        return body, "application/json"

    handler.__name__ = "json_handler"
    return handler


def text_handler(text: str, content_type: str = "text/plain") -> Handler:
    """Handler that always answers with a fixed piece of text."""

    def handler() -> Tuple[str, str]:
        return text, content_type

    handler.__name__ = "text_handler"
    return handler
