"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for exactly one request/response cycle.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

The request line can arrive split across any number of recv() calls:

    recv() → "GET /transac"
    recv() → "tions.csv HTTP/1.1\r\nHost: loc"
    recv() → "alhost\r\n\r\n"

So we buffer until the first line feed shows up. Whatever follows it in
the buffer (headers, body, a second request) is thrown away.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    AWAITING_LINE ──► PARSED ──► ROUTED ──► RESPONDED ──┐
         │              │           │            │        │
         └──────────────┴───────────┴────────────┘        │
                        │ first failure                   │
                        ▼                                 ▼
                     ABORTED ─────────────────────────► CLOSED

CLOSED is reached from every path, exactly once. The `aborted` flag and
`abort_reason` survive the final transition so callers can still tell a
clean response from an aborted one.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional

from ..errors import ConnectionReadError, LineTooLongError


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Per-connection lifecycle states."""
    AWAITING_LINE = "awaiting_line"  # Accepted, waiting for the request line
    PARSED = "parsed"                # Request line split into three tokens
    ROUTED = "routed"                # Handler selected for the path
    RESPONDED = "responded"          # Response fully written and flushed
    ABORTED = "aborted"              # Gave up after the first failure
    CLOSED = "closed"                # Socket released


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used as a log prefix.
        state: Current ConnectionState.
        aborted: True once abort() has been called.
        abort_reason: Why the connection was aborted, for logs and tests.
    """

    socket: socket.socket
    address: tuple = ("", 0)

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.AWAITING_LINE
    created_at: float = field(default_factory=time.time)
    aborted: bool = False
    abort_reason: Optional[str] = None

    buffer_size: int = 4096
    timeout: Optional[float] = 30.0
    max_line_size: int = 8192

    _writer: Optional[BinaryIO] = field(default=None, repr=False)

    DRAIN_TIMEOUT = 0.5

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> "tuple[str, bool]":
        """
        Read the first line from the socket, up to and including "\\n".

        Returns:
            (line, reached_eof). If the peer closed the stream before any
            line feed arrived, line holds whatever partial data was received
            (possibly "") and reached_eof is True. The caller must not treat
            such a line as a complete request.

        Raises:
            LineTooLongError: If more than max_line_size bytes precede the "\\n".
            ConnectionReadError: On any other socket failure, including
                                 the read timeout.
        """
        self.state = ConnectionState.AWAITING_LINE
        buffer = bytearray()

        while True:
            newline = buffer.find(b"\n")
            if newline > self.max_line_size or (newline == -1 and len(buffer) > self.max_line_size):
                raise LineTooLongError(self.max_line_size)
            if newline != -1:
                return self._decode(buffer[:newline + 1]), False

            try:
                chunk = self.socket.recv(self.buffer_size)
            except socket.timeout as e:
                raise ConnectionReadError(f"read timed out after {self.timeout}s") from e
            except OSError as e:
                raise ConnectionReadError(f"read failed: {e}") from e

            if not chunk:
                return self._decode(buffer), True

            buffer += chunk

    @staticmethod
    def _decode(data: bytes) -> str:
        return bytes(data).decode("utf-8", errors="replace")

    # =========================================================================
    # WRITING
    # =========================================================================

    @property
    def writer(self) -> BinaryIO:
        """
        Buffered binary stream over the socket.

        Writes accumulate in a buffer of buffer_size bytes and reach the
        network on flush(), which write_response() always calls.
        """
        if self._writer is None:
            self._writer = self.socket.makefile("wb", buffering=self.buffer_size)
        return self._writer

    # =========================================================================
    # TERMINATION
    # =========================================================================

    def abort(self, reason: str) -> None:
        """Mark the connection as failed. Closing still happens in close()."""
        if self.is_closed:
            return
        self.aborted = True
        self.abort_reason = reason
        self.state = ConnectionState.ABORTED
        logger.debug(f"[{self.id}] Aborted: {reason}")

    def close(self) -> None:
        """
        Close the connection. Safe to call more than once; only the first
        call touches the socket.

        1. Close the write buffer (flushes anything still pending)
        2. shutdown(SHUT_WR) so the client sees FIN after the response
        3. Drain unread request headers so close() does not send RST,
           which could discard the response on the client side
        4. close() the socket
        """
        if self.is_closed:
            return

        if self._writer is not None:
            try:
                self._writer.close()
            except OSError as e:
                logger.debug(f"[{self.id}] Discarding unsent data: {e}")
            self._writer = None

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        self._drain()

        try:
            self.socket.close()
        except OSError as e:
            logger.warning(f"[{self.id}] Close failed: {e}")

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def _drain(self) -> None:
        """
        Discard unread input, bounded by DRAIN_TIMEOUT seconds in total and
        by max_line_size bytes, so a client that keeps sending cannot hold
        the connection open.
        """
        deadline = time.monotonic() + self.DRAIN_TIMEOUT
        drained = 0

        try:
            while drained <= self.max_line_size:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(1024)
                if not chunk:
                    return
                drained += len(chunk)
        except OSError:
            return

        logger.debug(f"[{self.id}] Stopped draining after {drained} bytes")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
