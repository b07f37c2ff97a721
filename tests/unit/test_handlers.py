"""
Unit tests for the transaction route handlers and route table.
"""

import pytest

from txserver.config import ServerConfig
from txserver.errors import ResourceError
from txserver.handlers import TransactionHandlers, build_router
from txserver.http.request import RequestLine
from txserver.http.router import not_found_handler

from conftest import TRANSACTIONS_CSV, TRANSACTIONS_JSON, TRANSACTIONS_XML


def make_request(path: str) -> RequestLine:
    return RequestLine(method="GET", path=path, version="HTTP/1.1\n")


def dispatch(router, path: str):
    return router.resolve(path)(make_request(path))


class TestTransactionHandlers:
    """Tests for TransactionHandlers."""

    def test_index(self, resources):
        """Test the substituted account page and its header order."""
        response = TransactionHandlers(resources).index(make_request("/"))
        body = b"<p>Michael has 1 000.50</p>\n"

        assert response.status == 200
        assert response.body == body
        assert response.header_lines == [
            "Connection: close",
            f"Content-Length: {len(body)}",
            "Content-Type: text/html; charset=utf-8",
        ]

    def test_index_custom_account(self, resources):
        handlers = TransactionHandlers(resources, account={"username": "Ada", "balance": "7"})

        assert handlers.index(make_request("/")).body == b"<p>Ada has 7</p>\n"

    def test_csv(self, resources):
        """Test the CSV export."""
        response = TransactionHandlers(resources).transactions_csv(make_request("/transactions.csv"))

        assert response.body == TRANSACTIONS_CSV
        assert response.header_lines == [
            "Content-Type: text/csv",
            "Content-Length: 8",
            "Connection: close",
        ]

    def test_json(self, resources):
        response = TransactionHandlers(resources).transactions_json(make_request("/transactions.json"))

        assert response.body == TRANSACTIONS_JSON
        assert response.header_lines == [
            "Content-Type: application/json; charset=utf-8",
            f"Content-Length: {len(TRANSACTIONS_JSON)}",
            "Connection: close",
        ]

    def test_xml(self, resources):
        response = TransactionHandlers(resources).transactions_xml(make_request("/transactions.xml"))

        assert response.body == TRANSACTIONS_XML
        assert response.header_value("Content-Type") == "application/xml"

    def test_legacy_headers(self, resources):
        """Test that legacy mode emits the bare media type for JSON and XML only."""
        handlers = TransactionHandlers(resources, legacy_headers=True)

        json_response = handlers.transactions_json(make_request("/transactions.json"))
        xml_response = handlers.transactions_xml(make_request("/transactions.xml"))
        csv_response = handlers.transactions_csv(make_request("/transactions.csv"))

        assert json_response.header_lines[0] == "application/json; charset=utf-8"
        assert xml_response.header_lines[0] == "application/xml"
        assert csv_response.header_lines[0] == "Content-Type: text/csv"

    def test_missing_resource_raises(self, web_root, resources):
        """Test that a missing file surfaces before any response exists."""
        (web_root / "shared" / "transactions.csv").unlink()

        with pytest.raises(ResourceError):
            TransactionHandlers(resources).transactions_csv(make_request("/transactions.csv"))


class TestBuildRouter:
    """Tests for build_router()."""

    def test_route_table(self, resources):
        router = build_router(resources)

        assert [r.path for r in router.routes()] == [
            "/",
            "/transactions.csv",
            "/transactions.json",
            "/transactions.xml",
        ]

    @pytest.mark.parametrize("path", ["/nope", "", "/?a=1", "/transactions.CSV", "/transactions.csv?x"])
    def test_everything_else_is_404(self, resources, path):
        router = build_router(resources)

        assert router.resolve(path) is not_found_handler
        assert dispatch(router, path).status == 404

    def test_config_values_applied(self, resources):
        """Test that account values and legacy mode come from config."""
        config = ServerConfig(username="Grace", balance="0.00", legacy_headers=True)
        router = build_router(resources, config)

        assert dispatch(router, "/").body == b"<p>Grace has 0.00</p>\n"
        assert dispatch(router, "/transactions.xml").header_lines[0] == "application/xml"
