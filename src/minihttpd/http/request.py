"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw text of an HTTP/1.1 request into an HTTPRequest.

=============================================================================
WHAT WE READ
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    GET /api/hello HTTP/1.1\r\n                                  │ │
    │  │    ─┬─ ─────┬──── ────┬───                                      │ │
    │  │     │       │         │                                         │ │
    │  │   Method   Path    Protocol (kept for logging only)             │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    Host: localhost:8080\r\n                                     │ │
    │  │    User-Agent: curl/8.5.0\r\n                                   │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE ───────────────────────────────────────────────────┐ │
    │  │    \r\n          ← parsing stops here, nothing after is read    │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LENIENT PARSING
=============================================================================

This parser never raises. Garbage in gives a well-defined result out:

    Request line without exactly 3 tokens → method/path/protocol = ""
                                            and request.malformed = True
    Header line without ": "              → silently skipped
    Duplicate header                      → last one wins
    No input at all                       → empty method/path, no headers

Header names are kept EXACTLY as sent. "host: x" does not satisfy a
lookup for "Host", and values are not trimmed. Callers that care about a
malformed request line check `request.malformed` (or
`RequestLine.is_malformed`) instead of guessing from empty strings.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, NamedTuple, Union


# Separator between a header name and its value. Only this exact
# two-character sequence counts: "Name:value" is not a header.
HEADER_SEPARATOR = ": "


class RequestLine(NamedTuple):
    """
    The three tokens of a request line.

    A NamedTuple so it unpacks like a plain tuple:

        method, path, protocol = parse_request_line("GET / HTTP/1.1")

    A line that could not be split into exactly three tokens is
    represented by RequestLine.MALFORMED (three empty strings).
    """

    method: str
    path: str
    protocol: str

    @property
    def is_malformed(self) -> bool:
        """True when the line did not have exactly three tokens."""
        return self == _MALFORMED


_MALFORMED = RequestLine("", "", "")
RequestLine.MALFORMED = _MALFORMED


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:    Request method ("GET", "POST", ...), "" if unparseable.
        path:      Request target as sent ("/api/hello"), "" if unparseable.
        protocol:  Protocol token ("HTTP/1.1"). Informational only.
        headers:   Header name → value, exactly as sent.
        malformed: True when the request line was not 3 tokens.
    """

    method: str
    path: str
    protocol: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    malformed: bool = False

    @property
    def host(self) -> str:
        """The Host header value, or "" when absent."""
        return self.headers.get("Host", "")

    @property
    def has_host(self) -> bool:
        """
        True if a Host header was sent at all.

        An empty "Host: " header still counts as present. Only absence
        fails the HTTP/1.1 Host precondition.
        """
        return "Host" in self.headers

    @property
    def user_agent(self) -> str:
        """The User-Agent header value, or "" when absent."""
        return self.headers.get("User-Agent", "")


def parse_request_line(line: str) -> RequestLine:
    """
    Split a request line into (method, path, protocol).

    Splits on runs of whitespace. Exactly three tokens are returned as-is;
    any other count (0, 1, 2, 4 or more) gives RequestLine.MALFORMED.
    Token contents are not validated: "FETCH" is a method as far as this
    function is concerned.

    Args:
        line: The first line of the request, without its line terminator.

    Returns:
        RequestLine with the three tokens, or RequestLine.MALFORMED.

    Examples:
        >>> parse_request_line("GET / HTTP/1.1")
        RequestLine(method='GET', path='/', protocol='HTTP/1.1')

        >>> parse_request_line("GET /").is_malformed
        True
    """
    parts = line.split()
    if len(parts) != 3:
        return RequestLine.MALFORMED
    return RequestLine(*parts)


def parse_request(data: Union[str, bytes]) -> HTTPRequest:
    """
    Parse a raw request into an HTTPRequest.

    =====================================================================
    PARSING ALGORITHM
    =====================================================================

        1. Decode bytes as UTF-8 (invalid sequences become U+FFFD)
        2. Line 1 → parse_request_line()
        3. Lines 2..n → headers, until the first empty line
        4. Each header splits on the first ": "; lines without it are
           dropped

    =====================================================================

    Args:
        data: Raw request text or bytes (whatever one socket read gave us).

    Returns:
        The parsed request. Never raises.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")

    lines = _iter_lines(data)

    first_line = next(lines, None)
    if first_line is None:
        # Nothing at all - same outcome as an unparseable request line
        return HTTPRequest(method="", path="", malformed=True)

    request_line = parse_request_line(first_line)

    headers: Dict[str, str] = {}
    for line in lines:
        if not line:
            break  # End of headers

        name, separator, value = line.partition(HEADER_SEPARATOR)
        if not separator:
            continue  # Not a header line, skip it

        headers[name] = value

    return HTTPRequest(
        method=request_line.method,
        path=request_line.path,
        protocol=request_line.protocol,
        headers=headers,
        malformed=request_line.is_malformed,
    )


def _iter_lines(text: str) -> Iterator[str]:
    """
    Yield the lines of `text` without their terminators.

    Lines end in "\\n" with an optional "\\r" before it. A trailing
    terminator does not produce an extra empty line, so "" yields
    nothing and "a\\r\\n" yields just "a".
    """
    if not text:
        return

    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()  # text ended with a newline

    for part in parts:
        yield part[:-1] if part.endswith("\r") else part
