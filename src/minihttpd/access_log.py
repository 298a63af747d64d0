"""
=============================================================================
ACCESS LOG
=============================================================================

One log line per answered request, written on the "minihttpd.access"
logger after the response has been flushed.

=============================================================================
FORMATS
=============================================================================

TEXT (default) - close to the Apache common log format:

    127.0.0.1 - - [17/Oct/2026:10:00:00 +0000] "GET /api/hello HTTP/1.1" 200 26 0.41ms "localhost"

JSON - one object per line, for log aggregators:

    {"connection_id": "3f2a9c1e", "method": "GET", "path": "/api/hello", ...}

The logger is namespaced so it can be routed separately:

    logging.getLogger("minihttpd.access").addHandler(file_handler)

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass


logger = logging.getLogger("minihttpd.access")

LOG_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    """
    Structured log entry for one answered request.

    Attributes:
        connection_id:  Short id of the connection (8 hex chars).
        client_ip:      Peer address, "-" when unknown (e.g. socketpair).
        method:         Request method ("" if unparseable).
        path:           Request path.
        protocol:       Protocol token from the request line.
        host:           Host header, "-" when absent.
        user_agent:     User-Agent header, "-" when absent.
        status_code:    Status written to the peer.
        content_length: Body length announced in Content-Length.
        duration_ms:    Time from first byte read to flush.
        timestamp:      When the response finished.
    """

    connection_id: str
    client_ip: str
    method: str
    path: str
    protocol: str
    host: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        """Convert to a dict for JSON serialization."""
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Format as a single Apache-style line."""
        request_line = " ".join(part for part in (self.method, self.path, self.protocol) if part)
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{request_line}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms "{self.host}"'
        )


def log_request(entry: RequestLog, log_format: str = "text") -> None:
    """Emit `entry` on the access logger in the requested format."""
    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())


def now_timestamp() -> str:
    """Current local time in access-log format."""
    return time.strftime("%d/%b/%Y:%H:%M:%S %z")
