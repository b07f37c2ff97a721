"""
=============================================================================
TXSERVER
=============================================================================

A small HTTP/1.1 server on raw TCP sockets that serves one account page
and three transaction exports (CSV, JSON, XML).

    from txserver import TransactionServer, ServerConfig

    TransactionServer(ServerConfig(port=9999, web_root="web")).run()

Package layout:

    txserver/
    ├── config.py        ServerConfig (defaults, environment, validation)
    ├── errors.py        Exception hierarchy
    ├── resources.py     Logical resource names → file bytes
    ├── server.py        TransactionServer, per-connection state machine
    ├── core/            Connection, SocketServer, ThreadPool
    ├── http/            Request line parser, router, response writer
    └── handlers/        The four routes and build_router()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .errors import (
    TxServerError,
    RequestLineError,
    ResourceError,
    ConnectionReadError,
    LineTooLongError,
)
from .resources import FileResourceProvider, substitute
from .server import TransactionServer, create_app

__all__ = [
    "__version__",
    "ServerConfig",
    "TxServerError",
    "RequestLineError",
    "ResourceError",
    "ConnectionReadError",
    "LineTooLongError",
    "FileResourceProvider",
    "substitute",
    "TransactionServer",
    "create_app",
]
