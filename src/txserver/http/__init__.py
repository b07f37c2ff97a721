"""
HTTP protocol components.

    request.py   Request line parsing
    response.py  Response framing and writing
    router.py    Exact-match path routing
"""

from .request import RequestLine, parse_request_line, get_path
from .response import (
    CRLF,
    HTTPResponse,
    write_response,
    content_length,
    not_found,
    bad_request,
    service_unavailable,
)
from .router import Router, Route, Handler, not_found_handler

__all__ = [
    "RequestLine",
    "parse_request_line",
    "get_path",
    "CRLF",
    "HTTPResponse",
    "write_response",
    "content_length",
    "not_found",
    "bad_request",
    "service_unavailable",
    "Router",
    "Route",
    "Handler",
    "not_found_handler",
]
