"""
=============================================================================
TRANSACTION HANDLERS
=============================================================================

The four pages the server knows about. Each handler loads its body first
and only then builds the response, so a missing file raises ResourceError
before a single byte reaches the client.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   PATH                  HEADER ORDER                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │   /                     Connection, Content-Length, Content-Type    │
    │   /transactions.csv     Content-Type, Content-Length, Connection    │
    │   /transactions.json    Content-Type, Content-Length, Connection    │
    │   /transactions.xml     Content-Type, Content-Length, Connection    │
    └─────────────────────────────────────────────────────────────────────┘

The index page lists Connection first; the data files list it last.
Clients that compare responses byte for byte rely on that ordering.

=============================================================================
LEGACY HEADERS
=============================================================================

The JSON and XML responses of the first deployment carried the bare media
type as a header line:

    HTTP/1.1 200
    application/xml                ← no "Content-Type: " key
    Content-Length: 42
    Connection: close

legacy_headers=True reproduces that exactly. Otherwise the key is added.

=============================================================================
"""

import logging
from typing import Mapping, Optional

from ..http.request import RequestLine
from ..http.response import HTTPResponse, content_length
from ..resources import FileResourceProvider


logger = logging.getLogger(__name__)


HTML = "text/html; charset=utf-8"
CSV = "text/csv"
JSON = "application/json; charset=utf-8"
XML = "application/xml"

DEFAULT_ACCOUNT = {"username": "Michael", "balance": "1 000.50"}


class TransactionHandlers:
    """
    Route handlers bound to one resource provider.

    Usage:
        handlers = TransactionHandlers(FileResourceProvider("web"))
        response = handlers.transactions_csv(request)
    """

    def __init__(
        self,
        resources: FileResourceProvider,
        account: Optional[Mapping[str, str]] = None,
        legacy_headers: bool = False,
    ):
        self.resources = resources
        self.account = dict(DEFAULT_ACCOUNT if account is None else account)
        self.legacy_headers = legacy_headers

    def _content_type(self, media_type: str, legacy: bool = False) -> str:
        if legacy and self.legacy_headers:
            return media_type
        return f"Content-Type: {media_type}"

    def _data_file(self, name: str, media_type: str, legacy: bool = False) -> HTTPResponse:
        body = self.resources.read(name)
        return HTTPResponse(
            200,
            [
                self._content_type(media_type, legacy),
                content_length(body),
                "Connection: close",
            ],
            body,
        )

    def index(self, request: RequestLine) -> HTTPResponse:
        """The account page: index template with username and balance filled in."""
        body = self.resources.render_index(self.account)
        return HTTPResponse(
            200,
            [
                "Connection: close",
                content_length(body),
                f"Content-Type: {HTML}",
            ],
            body,
        )

    def transactions_csv(self, request: RequestLine) -> HTTPResponse:
        return self._data_file("transactions.csv", CSV)

    def transactions_json(self, request: RequestLine) -> HTTPResponse:
        return self._data_file("transactions.json", JSON, legacy=True)

    def transactions_xml(self, request: RequestLine) -> HTTPResponse:
        return self._data_file("transactions.xml", XML, legacy=True)
