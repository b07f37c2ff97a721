"""
=============================================================================
LISTENING SOCKET
=============================================================================

Owns the listening socket for the lifetime of the server and hands every
accepted client to a callback.

    start(callback)
        │
        ├──► socket() + setsockopt(SO_REUSEADDR)
        ├──► bind((host, port))        OSError propagates (fatal)
        ├──► listen(backlog)
        ├──► install SIGINT/SIGTERM handlers (main thread only)
        │
        └──► accept loop ───────────► callback(Connection)
                 │
                 └── finally: restore signals, close listening socket

The listening socket is created inside start() and closed in its finally
block, so it is released on normal shutdown, on signals and on errors.

accept() uses a one second timeout so the loop can notice shutdown().
A failed accept() is logged and the loop keeps going.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    TCP accept loop.

    Usage:
        def handle(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle)  # Blocks until shutdown()
    """

    ACCEPT_POLL_INTERVAL = 1.0

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port). Once listening this reports the real port,
        which matters when the configured port is 0.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.settimeout(self.ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        """Route SIGINT/SIGTERM to shutdown(). Only the main thread may do this."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on main thread, leaving signal handlers alone")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept until shutdown() is called.

        Raises:
            OSError: If the address cannot be bound. The socket is closed
                     before the error propagates.
        """
        self._socket = self._create_socket()
        self._shutdown_event.clear()

        try:
            try:
                self._socket.bind((self.config.host, self.config.port))
            except OSError as e:
                logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
                raise

            self._socket.listen(self.config.backlog)
            self._running = True
            self._setup_signals()

            host, port = self.address
            logger.info(f"Server listening on {host}:{port}")
            self._ready_event.set()

            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                logger.error(f"Accept error: {e}")
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_line_size=self.config.max_line_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop the accept loop. Idempotent and safe from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._running = False
        self._ready_event.clear()
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError as e:
                logger.warning(f"Error closing listening socket: {e}")
            self._socket = None

        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has exited. Returns False on timeout."""
        return self._shutdown_event.wait(timeout)
