"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, Optional, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from txserver import ServerConfig, TransactionServer, FileResourceProvider
from txserver.core.connection import Connection


INDEX_TEMPLATE = b"<p>{username} has {balance}</p>\n"
TRANSACTIONS_CSV = b"a,b\n1,2\n"
TRANSACTIONS_JSON = b'[{"id": 1, "amount": "12.00"}]\n'
TRANSACTIONS_XML = b'<transactions><t id="1"/></transactions>\n'


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """A resource directory with small, known file contents."""
    (tmp_path / "template").mkdir()
    (tmp_path / "shared").mkdir()
    (tmp_path / "template" / "index.html").write_bytes(INDEX_TEMPLATE)
    (tmp_path / "shared" / "transactions.csv").write_bytes(TRANSACTIONS_CSV)
    (tmp_path / "shared" / "transactions.json").write_bytes(TRANSACTIONS_JSON)
    (tmp_path / "shared" / "transactions.xml").write_bytes(TRANSACTIONS_XML)
    return tmp_path


@pytest.fixture
def resources(web_root: Path) -> FileResourceProvider:
    return FileResourceProvider(web_root)


@pytest.fixture
def config(web_root: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        web_root=str(web_root),
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def connection_pair(timeout: float = 5.0) -> Tuple[Connection, socket.socket]:
    """
    A Connection wrapping one end of a socketpair, plus the client end.
    """
    server_sock, client_sock = socket.socketpair()
    client_sock.settimeout(timeout)
    return Connection(socket=server_sock, timeout=timeout), client_sock


def send_and_receive(server: TransactionServer, request: bytes) -> Tuple[bytes, Connection]:
    """
    Run process_connection() synchronously against a request and return
    everything the client received.
    """
    conn, client = connection_pair()
    try:
        client.sendall(request)
        client.shutdown(socket.SHUT_WR)
        server.process_connection(conn)
        return recv_all(client), conn
    finally:
        client.close()


def recv_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


class ServerRunner:
    """Runs a TransactionServer in a background thread."""

    def __init__(self, server: TransactionServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.socket_server.address

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.socket_server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(self, data: bytes, half_close: bool = True) -> bytes:
        """Send raw bytes on a fresh connection and read until the server closes."""
        with socket.create_connection(self.address, timeout=5.0) as sock:
            sock.sendall(data)
            if half_close:
                sock.shutdown(socket.SHUT_WR)
            return recv_all(sock)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[ServerRunner, None, None]:
    """A live server on an OS-assigned port."""
    runner = ServerRunner(TransactionServer(config))
    runner.start()

    yield runner

    runner.stop()
