"""
=============================================================================
TRANSACTION SERVER
=============================================================================

Ties the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       SERVER ARCHITECTURE                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer (accept loop, caller's thread)                        │
    │        │                                                             │
    │        ▼  submit(conn)                                               │
    │   ThreadPool ──► process_connection(conn)                            │
    │                       │                                              │
    │                       ├── conn.read_line()                           │
    │                       ├── parse_request_line()                       │
    │                       ├── router.resolve(path)(request)              │
    │                       ├── response.write_to(conn.writer)             │
    │                       └── conn.close()          (always, once)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

Every connection carries exactly one request line and gets at most one
response, after which it is closed. There is no keep-alive and nothing
after the first line is read.

The first failure on a connection ends it: nothing is retried and, apart
from the optional 400 for malformed lines, nothing is written. Failures are
logged and never reach the accept loop.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core.connection import Connection, ConnectionState
from .core.socket_server import SocketServer
from .core.thread_pool import ThreadPool
from .errors import ConnectionReadError, RequestLineError, ResourceError
from .handlers import build_router
from .http.request import parse_request_line
from .http.response import HTTPResponse, bad_request, service_unavailable
from .http.router import Router
from .resources import FileResourceProvider


logger = logging.getLogger(__name__)


class TransactionServer:
    """
    Serves the account page and the transaction exports.

    Usage:
        server = TransactionServer(ServerConfig(port=9999))
        server.run()  # Blocks until SIGINT/SIGTERM or shutdown()

    A custom router or resource provider can be injected; by default both
    are built from the config.
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        router: Optional[Router] = None,
        resources: Optional[FileResourceProvider] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        self.resources = resources or FileResourceProvider(
            self.config.web_root,
            cache=self.config.cache_resources,
        )
        self._router = router or build_router(self.resources, self.config)

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )

    @property
    def router(self) -> Router:
        return self._router

    @property
    def socket_server(self) -> SocketServer:
        return self._socket_server

    @property
    def thread_pool(self) -> ThreadPool:
        return self._thread_pool

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        self._setup_logging()
        self._thread_pool.start()

        logger.info(
            f"Starting transaction server on {self.config.host}:{self.config.port} "
            f"(workers {self.config.min_workers}-{self.config.max_workers}, "
            f"web root {self.config.web_root})"
        )
        for route in self._router.routes():
            logger.info(f"  {route.path} -> {route.name}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            tasks = self._thread_pool.stats["tasks"]
            self._thread_pool.shutdown(wait=True, timeout=self.config.timeout or 30.0)
            logger.info(
                f"Server stopped ({tasks['completed']} connections handled, "
                f"{tasks['failed']} failed)"
            )

    def shutdown(self):
        """Stop accepting connections. run() returns once in-flight work drains."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("txserver").setLevel(level)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand an accepted connection to the pool, or turn it away."""
        try:
            submitted = self._thread_pool.submit(self.process_connection, args=(conn,))
        except RuntimeError as e:
            logger.debug(f"[{conn.id}] Not queued: {e}")
            conn.close()
            return

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting {conn.client_ip}")
            with conn:
                self._send(conn, service_unavailable())

    def process_connection(self, conn: Connection):
        """
        Run one request/response cycle and close the connection.

        Never raises: every failure is logged, the connection is marked
        aborted and then closed.
        """
        with conn:
            try:
                line, eof = conn.read_line()
            except ConnectionReadError as e:
                logger.warning(f"[{conn.id}] Read from {conn.client_ip} failed: {e}")
                conn.abort(str(e))
                return

            logger.info(f"received: {line!r}")

            if eof:
                conn.abort("connection closed before end of request line")
                return

            try:
                request = parse_request_line(line)
            except RequestLineError as e:
                logger.error(f"[{conn.id}] {e!s}".rstrip())
                if self.config.reject_malformed:
                    self._send(conn, bad_request())
                conn.abort("malformed request line")
                return
            conn.state = ConnectionState.PARSED

            handler = self._router.resolve(request.path)
            conn.state = ConnectionState.ROUTED

            try:
                response = handler(request)
            except ResourceError as e:
                logger.error(f"[{conn.id}] {request.path}: {e}")
                conn.abort(str(e))
                return
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error on {request.path}: {e}")
                conn.abort(f"handler error: {e}")
                return

            if self._send(conn, response):
                logger.debug(f"[{conn.id}] {request.method} {request.path} -> {response.status}")

    def _send(self, conn: Connection, response: HTTPResponse) -> bool:
        """Write a response. Returns False (and aborts) if the write fails."""
        try:
            response.write_to(conn.writer)
        except OSError as e:
            logger.warning(f"[{conn.id}] Write to {conn.client_ip} failed: {e}")
            conn.abort(f"write failed: {e}")
            return False

        conn.state = ConnectionState.RESPONDED
        return True


def create_app(config: Optional[ServerConfig] = None) -> TransactionServer:
    """Build a server from config, falling back to environment variables."""
    return TransactionServer(config or ServerConfig.from_env())
