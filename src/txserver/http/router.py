"""
=============================================================================
EXACT-MATCH ROUTER
=============================================================================

Maps a request path to exactly one handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /transactions.csv HTTP/1.1                                     │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  /                    → index                                │   │
    │   │  /transactions.csv    → transactions_csv   ← MATCH          │   │
    │   │  /transactions.json   → transactions_json                    │   │
    │   │  /transactions.xml    → transactions_xml                     │   │
    │   │  (anything else)      → default (404)                        │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Lookup is a dictionary hit on the raw path string. There are no patterns,
no prefix routes and no method filtering: "POST /" reaches the same handler
as "GET /". "/?x=1", "/index.html" and "" all fall through to the default.

=============================================================================
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .request import RequestLine
from .response import HTTPResponse, not_found


Handler = Callable[[RequestLine], HTTPResponse]


def not_found_handler(request: RequestLine) -> HTTPResponse:
    return not_found()


@dataclass(frozen=True)
class Route:
    """An exact path bound to a handler."""

    path: str
    handler: Handler
    name: Optional[str] = None


class Router:
    """
    Exact-match request router with a single fallback handler.

    Usage:
        router = Router()

        @router.route("/")
        def index(request):
            return HTTPResponse(200, [...], body)

        handler = router.resolve("/")      # → index
        handler = router.resolve("/nope")  # → not_found_handler
    """

    def __init__(self, default: Handler = not_found_handler):
        self._routes: Dict[str, Route] = {}
        self.default = default

    def add_route(self, path: str, handler: Handler, name: Optional[str] = None) -> Route:
        """
        Register a handler for an exact path.

        Raises:
            ValueError: If the path is already registered.
        """
        if path in self._routes:
            raise ValueError(f"Route already registered: {path}")

        route = Route(path=path, handler=handler, name=name or getattr(handler, "__name__", None))
        self._routes[path] = route
        return route

    def route(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, name)
            return handler
        return decorator

    def match(self, path: str) -> Optional[Route]:
        """Return the route registered for exactly this path, if any."""
        return self._routes.get(path)

    def resolve(self, path: str) -> Handler:
        """Return the handler for a path, or the default handler."""
        route = self.match(path)
        return route.handler if route else self.default

    def routes(self) -> List[Route]:
        """All registered routes in registration order."""
        return list(self._routes.values())

    def __contains__(self, path: str) -> bool:
        return path in self._routes

    def __len__(self) -> int:
        return len(self._routes)
