"""
=============================================================================
ERROR TYPES
=============================================================================

Every failure that can end a connection early has its own exception type,
so the connection handler can log it precisely and close the connection
without guessing what went wrong.

    TxServerError
    ├── RequestLineError       Request line is not METHOD SP PATH SP VERSION
    ├── ResourceError          A response body could not be loaded from disk
    └── ConnectionReadError    The socket failed before a full line arrived
        └── LineTooLongError   The peer sent more than max_line_size bytes

None of these bring down the server. They are local to one connection.

=============================================================================
"""

from typing import Optional


class TxServerError(Exception):
    """Base class for all txserver errors."""


class RequestLineError(TxServerError):
    """
    Raised when a request line does not split into exactly three tokens.

    Carries the offending line so it can be logged verbatim.
    """

    def __init__(self, line: str):
        super().__init__(f"invalid request line {line}")
        self.line = line


class ResourceError(TxServerError):
    """
    Raised when a logical resource cannot be read.

    Attributes:
        name: Logical resource name (e.g. "transactions.csv").
        path: Filesystem path that was tried, if the name was known.
    """

    def __init__(self, name: str, path: Optional[str] = None, reason: str = ""):
        message = f"cannot load resource {name!r}"
        if path:
            message += f" from {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.name = name
        self.path = path


class ConnectionReadError(TxServerError):
    """Raised when reading the request line fails for any reason but EOF."""


class LineTooLongError(ConnectionReadError):
    """Raised when no line feed arrives within the configured line limit."""

    def __init__(self, limit: int):
        super().__init__(f"request line exceeds {limit} bytes")
        self.limit = limit
