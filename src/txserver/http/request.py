"""
=============================================================================
REQUEST LINE PARSING
=============================================================================

The server only ever looks at the first line of a request:

    GET /transactions.csv HTTP/1.1\r\n
    ─┬─ ────────┬──────── ─────┬──────
     │          │              │
   Method      Path         Version (terminator kept)

Everything after that line (headers, body) is ignored.

=============================================================================
SPLITTING RULES
=============================================================================

    - Split on single space characters, nothing else.
    - Exactly three tokens, or the line is rejected.
    - The path is used verbatim: no percent-decoding, no query stripping,
      no normalization of "." or ".." segments.

    "GET / HTTP/1.1\n"            → ("GET", "/", "HTTP/1.1\n")
    "GET /a?b=1 HTTP/1.1\n"       → path "/a?b=1"
    "GET  / HTTP/1.1\n"           → 4 tokens → RequestLineError
    "BADLINE\n"                   → 1 token  → RequestLineError

The version token keeps the line terminator because the line is split
exactly as it was read. Nothing downstream depends on the version.

=============================================================================
"""

from dataclasses import dataclass

from ..errors import RequestLineError


@dataclass(frozen=True)
class RequestLine:
    """
    A parsed request line.

    Attributes:
        method:  First token, e.g. "GET". Not validated.
        path:    Second token, matched verbatim by the router.
        version: Third token, including any trailing CR/LF.
        raw:     The line exactly as it was read.
    """

    method: str
    path: str
    version: str
    raw: str = ""


def parse_request_line(line: str) -> RequestLine:
    """
    Split a raw request line into method, path and version.

    Args:
        line: The line as returned by Connection.read_line(), usually
              ending in "\\n" or "\\r\\n".

    Returns:
        RequestLine with the three tokens.

    Raises:
        RequestLineError: If the line does not contain exactly three
                          single-space-separated tokens.
    """
    parts = line.split(" ")
    if len(parts) != 3:
        raise RequestLineError(line)

    method, path, version = parts
    return RequestLine(method=method, path=path, version=version, raw=line)


def get_path(line: str) -> str:
    """Return only the path token of a request line."""
    return parse_request_line(line).path
