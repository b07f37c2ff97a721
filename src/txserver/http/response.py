"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Serializes a status code, an ordered list of header lines and an optional
body into the exact bytes sent on the wire.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     RESPONSE FRAMING                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200\r\n                  ← status line, no phrase       │
    │    Content-Type: text/csv\r\n        ← header lines, in order      │
    │    Content-Length: 8\r\n                                            │
    │    Connection: close\r\n                                            │
    │    \r\n                              ← exactly one blank line       │
    │    a,b\n1,2\n                         ← body bytes, verbatim         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Header lines arrive pre-formatted ("Key: Value") and are written as-is.
There is no validation of header content and no automatic Content-Length:
handlers that send a body declare it themselves (see content_length()).

The blank line is written even when there is no body, and also when there
are no header lines, so the head is always well-formed.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Sequence


CRLF = "\r\n"


def content_length(body: bytes) -> str:
    """Format a Content-Length header line for the given body."""
    return f"Content-Length: {len(body)}"


def _head(status: int, header_lines: Sequence[str], version: str) -> bytes:
    lines = [f"{version} {status}"]
    lines.extend(header_lines)
    # Trailing "" produces the blank line that ends the head
    lines.append("")
    return (CRLF.join(lines) + CRLF).encode("utf-8")


def write_response(
    stream: BinaryIO,
    status: int,
    header_lines: Sequence[str],
    body: Optional[bytes] = None,
    version: str = "HTTP/1.1",
) -> None:
    """
    Write a complete response to a binary stream and flush it.

    The stream is not closed; closing belongs to the connection.

    Args:
        stream: Any writable binary stream (socket.makefile("wb"), BytesIO).
        status: Numeric status code, written without a reason phrase.
        header_lines: Pre-formatted "Key: Value" strings, without CRLF.
        body: Optional body bytes, written verbatim.

    Raises:
        OSError: If the underlying stream fails (e.g. client went away).
    """
    stream.write(_head(status, header_lines, version))
    if body is not None:
        stream.write(body)
    stream.flush()


@dataclass
class HTTPResponse:
    """
    A response produced by a route handler.

    Handlers build the whole response, body included, before anything is
    written. A handler that fails to load its body therefore never leaves
    a half-written status line on the socket.
    """

    status: int
    header_lines: List[str] = field(default_factory=list)
    body: Optional[bytes] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {self.status}"

    @property
    def has_body(self) -> bool:
        return self.body is not None

    def header_value(self, name: str) -> Optional[str]:
        """Return the value of the first "Name: value" line, case-insensitive."""
        prefix = name.lower() + ":"
        for line in self.header_lines:
            if line.lower().startswith(prefix):
                return line[len(prefix):].strip()
        return None

    def to_bytes(self) -> bytes:
        """Serialize to the exact bytes write_to() would produce."""
        head = _head(self.status, self.header_lines, self.version)
        return head + (self.body or b"")

    def write_to(self, stream: BinaryIO) -> None:
        write_response(stream, self.status, self.header_lines, self.body, self.version)


# =============================================================================
# CONVENIENCE CONSTRUCTORS
# =============================================================================

def not_found() -> HTTPResponse:
    """404 with no body, the fallback for every unknown path."""
    return HTTPResponse(404, ["Connection: close"])


def bad_request() -> HTTPResponse:
    """400 with no body, used only when reject_malformed is enabled."""
    return HTTPResponse(400, ["Connection: close"])


def service_unavailable() -> HTTPResponse:
    """503 with no body, sent when every worker is busy and the queue is full."""
    return HTTPResponse(503, ["Connection: close"])
