"""
Unit tests for the per-connection request cycle.

Each test feeds raw bytes through a socketpair and runs
process_connection() on the calling thread.
"""

import logging
import socket
import threading
import time

import pytest

from txserver import TransactionServer
from txserver.core.connection import Connection, ConnectionState
from txserver.http.response import HTTPResponse
from txserver.http.router import Router

from conftest import TRANSACTIONS_CSV, recv_all, send_and_receive


@pytest.fixture
def server(config) -> TransactionServer:
    return TransactionServer(config)


class TestProcessConnection:
    """Tests for TransactionServer.process_connection()."""

    def test_index(self, server):
        """Test the account page end to end."""
        body = b"<p>Michael has 1 000.50</p>\n"
        data, conn = send_and_receive(server, b"GET / HTTP/1.1\n")

        assert data == (
            b"HTTP/1.1 200\r\n"
            b"Connection: close\r\n"
            + f"Content-Length: {len(body)}\r\n".encode()
            + b"Content-Type: text/html; charset=utf-8\r\n"
            b"\r\n"
            + body
        )
        assert conn.state == ConnectionState.CLOSED
        assert not conn.aborted

    def test_not_found(self, server):
        data, conn = send_and_receive(server, b"GET /nope HTTP/1.1\n")

        assert data == b"HTTP/1.1 404\r\nConnection: close\r\n\r\n"
        assert not conn.aborted

    def test_csv(self, server):
        """Test the CSV export with the exact Content-Length."""
        data, _ = send_and_receive(server, b"GET /transactions.csv HTTP/1.1\r\nHost: x\r\n\r\n")

        assert data == (
            b"HTTP/1.1 200\r\n"
            b"Content-Type: text/csv\r\n"
            b"Content-Length: 8\r\n"
            b"Connection: close\r\n"
            b"\r\n"
            + TRANSACTIONS_CSV
        )

    def test_malformed_line(self, server, caplog):
        """Test that a bad request line is logged and closed without output."""
        with caplog.at_level(logging.ERROR, logger="txserver"):
            data, conn = send_and_receive(server, b"BADLINE\n")

        assert data == b""
        assert conn.aborted
        assert conn.is_closed
        assert "invalid request line BADLINE" in caplog.text

    def test_malformed_line_rejected(self, config):
        """Test the optional 400 for malformed lines."""
        config.reject_malformed = True
        data, conn = send_and_receive(TransactionServer(config), b"GET  / HTTP/1.1\n")

        assert data == b"HTTP/1.1 400\r\nConnection: close\r\n\r\n"
        assert conn.aborted

    def test_eof_before_newline(self, server, caplog):
        """Test that a truncated line is logged and produces no output."""
        with caplog.at_level(logging.INFO, logger="txserver"):
            data, conn = send_and_receive(server, b"GET / HT")

        assert data == b""
        assert conn.aborted
        assert "received: 'GET / HT'" in caplog.text

    def test_received_line_logged(self, server, caplog):
        with caplog.at_level(logging.INFO, logger="txserver"):
            send_and_receive(server, b"GET /nope HTTP/1.1\n")

        assert "received: 'GET /nope HTTP/1.1\\n'" in caplog.text

    def test_missing_resource(self, server, web_root):
        """Test that a missing file aborts before any byte is written."""
        (web_root / "shared" / "transactions.json").unlink()
        data, conn = send_and_receive(server, b"GET /transactions.json HTTP/1.1\n")

        assert data == b""
        assert conn.aborted
        assert "transactions.json" in conn.abort_reason

    def test_handler_exception(self, config):
        """Test that an unexpected handler error closes quietly."""
        router = Router()

        @router.route("/")
        def broken(request):
            raise KeyError("boom")

        data, conn = send_and_receive(TransactionServer(config, router=router), b"GET / HTTP/1.1\n")

        assert data == b""
        assert conn.aborted

    def test_identical_requests_identical_responses(self, server):
        first, _ = send_and_receive(server, b"GET /transactions.xml HTTP/1.1\n")
        second, _ = send_and_receive(server, b"GET /transactions.xml HTTP/1.1\n")

        assert first == second

    def test_only_first_line_is_read(self, server):
        """Test that a second request on the same connection is ignored."""
        data, _ = send_and_receive(server, b"GET /nope HTTP/1.1\nGET / HTTP/1.1\n")

        assert data == b"HTTP/1.1 404\r\nConnection: close\r\n\r\n"

    def test_write_failure(self, config):
        """Test that a failed write aborts and still closes."""
        class BrokenWriter:
            def write(self, data):
                raise BrokenPipeError("peer gone")

            def flush(self):
                pass

            def close(self):
                pass

        router = Router(default=lambda request: HTTPResponse(404, ["Connection: close"]))
        server = TransactionServer(config, router=router)
        server_sock, client = socket.socketpair()
        conn = Connection(socket=server_sock, timeout=5.0)
        conn._writer = BrokenWriter()
        client.sendall(b"GET /x HTTP/1.1\n")
        client.shutdown(socket.SHUT_WR)

        server.process_connection(conn)

        assert conn.aborted
        assert conn.abort_reason.startswith("write failed")
        assert conn.is_closed
        client.close()


class TestHandleConnection:
    """Tests for handing connections to the pool."""

    def test_not_started_pool_closes(self, server):
        """Test that a connection arriving during shutdown is just closed."""
        server_sock, client = socket.socketpair()
        conn = Connection(socket=server_sock, timeout=5.0)

        server._handle_connection(conn)

        assert conn.is_closed
        assert recv_all(client) == b""
        client.close()

    def test_full_queue_answers_503(self, config):
        """Test that a connection is turned away when no worker or slot is free."""
        config.min_workers = 1
        config.max_workers = 1
        config.queue_size = 1
        server = TransactionServer(config)
        pool = server.thread_pool
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def gated():
            started.set()
            release.wait(5.0)

        server_sock, client = socket.socketpair()
        client.settimeout(5.0)
        conn = Connection(socket=server_sock, timeout=5.0)
        try:
            assert pool.submit(gated)
            assert started.wait(2.0)
            assert pool.submit(gated)

            server._handle_connection(conn)

            assert conn.is_closed
            assert recv_all(client) == b"HTTP/1.1 503\r\nConnection: close\r\n\r\n"
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=5.0)
            client.close()

    def test_streaming_client_released(self, config):
        """Test that a client that keeps sending after its request line cannot hold a worker."""
        config.timeout = 1.0
        server = TransactionServer(config)
        server_sock, client = socket.socketpair()
        conn = Connection(socket=server_sock, timeout=1.0)
        stop = threading.Event()

        def stream():
            try:
                client.sendall(b"GET /nope HTTP/1.1\n")
                while not stop.is_set():
                    client.sendall(b"x" * 64)
                    time.sleep(0.1)
            except OSError:
                pass

        sender = threading.Thread(target=stream, daemon=True)
        worker = threading.Thread(target=server.process_connection, args=(conn,), daemon=True)
        sender.start()
        worker.start()
        worker.join(timeout=6.0)
        alive = worker.is_alive()
        stop.set()
        sender.join(timeout=2.0)
        client.close()

        assert not alive
        assert conn.is_closed


class TestConstruction:

    def test_invalid_config(self, config):
        config.port = 70000

        with pytest.raises(ValueError):
            TransactionServer(config)

    def test_default_router(self, server):
        assert len(server.router) == 4
