"""
Route handlers and the route table.

    /                    → TransactionHandlers.index
    /transactions.csv    → TransactionHandlers.transactions_csv
    /transactions.json   → TransactionHandlers.transactions_json
    /transactions.xml    → TransactionHandlers.transactions_xml
    (anything else)      → 404
"""

from typing import Optional

from ..config import ServerConfig
from ..http.router import Router
from ..resources import FileResourceProvider
from .transactions import TransactionHandlers


def build_router(
    resources: FileResourceProvider,
    config: Optional[ServerConfig] = None,
) -> Router:
    """Create the fixed route table over the given resources."""
    config = config or ServerConfig()
    handlers = TransactionHandlers(
        resources,
        account={"username": config.username, "balance": config.balance},
        legacy_headers=config.legacy_headers,
    )

    router = Router()
    router.add_route("/", handlers.index, name="index")
    router.add_route("/transactions.csv", handlers.transactions_csv)
    router.add_route("/transactions.json", handlers.transactions_json)
    router.add_route("/transactions.xml", handlers.transactions_xml)
    return router


__all__ = ["TransactionHandlers", "build_router"]
