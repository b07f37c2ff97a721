"""
=============================================================================
RESPONSE RESOURCES
=============================================================================

Route handlers never touch paths. They ask for a logical resource by name
and get its bytes back:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   logical name          file under web_root                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │   index-template        template/index.html                         │
    │   transactions.csv      shared/transactions.csv                     │
    │   transactions.json     shared/transactions.json                    │
    │   transactions.xml      shared/transactions.xml                     │
    └─────────────────────────────────────────────────────────────────────┘

The names are a closed set, so a request path can never be turned into a
filesystem path.

By default every read() goes to disk, which means edits to the files show
up on the next request. With cache=True the first read of each file is
kept in memory until reload().

=============================================================================
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from .errors import ResourceError


logger = logging.getLogger(__name__)


INDEX_TEMPLATE = "index-template"

RESOURCE_FILES: Dict[str, str] = {
    INDEX_TEMPLATE: "template/index.html",
    "transactions.csv": "shared/transactions.csv",
    "transactions.json": "shared/transactions.json",
    "transactions.xml": "shared/transactions.xml",
}


def substitute(template: bytes, mapping: Mapping[str, str]) -> bytes:
    """
    Replace every "{key}" in template with mapping[key], encoded as UTF-8.

    Placeholders without a mapping entry are left as they are.

    >>> substitute(b"Hi {username}", {"username": "Michael"})
    b'Hi Michael'
    """
    for key, value in mapping.items():
        template = template.replace(b"{" + key.encode("utf-8") + b"}", value.encode("utf-8"))
    return template


class FileResourceProvider:
    """
    Loads response bodies from a directory tree.

    Usage:
        resources = FileResourceProvider("web")
        csv = resources.read("transactions.csv")
        page = resources.render_index({"username": "Michael", "balance": "1 000.50"})
    """

    def __init__(
        self,
        root: Union[str, Path],
        files: Optional[Mapping[str, str]] = None,
        cache: bool = False,
    ):
        self.root = Path(root)
        self.files = dict(RESOURCE_FILES if files is None else files)
        self.cache_enabled = cache

        self._cache: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def path_for(self, name: str) -> Path:
        """
        Raises:
            ResourceError: If name is not a known resource.
        """
        try:
            return self.root / self.files[name]
        except KeyError:
            raise ResourceError(name, reason="unknown resource") from None

    def read(self, name: str) -> bytes:
        """
        Return the bytes of a logical resource.

        Raises:
            ResourceError: If the name is unknown or the file cannot be read.
        """
        path = self.path_for(name)

        if self.cache_enabled:
            with self._lock:
                cached = self._cache.get(name)
            if cached is not None:
                return cached

        try:
            data = path.read_bytes()
        except OSError as e:
            raise ResourceError(name, str(path), e.strerror or str(e)) from e

        if self.cache_enabled:
            with self._lock:
                # A concurrent first read may have won; keep its bytes
                data = self._cache.setdefault(name, data)
            logger.debug(f"Cached {name} ({len(data)} bytes)")

        return data

    def reload(self) -> None:
        """Forget cached contents. The next read() of each resource hits disk."""
        with self._lock:
            self._cache.clear()
        logger.info(f"Resource cache cleared for {self.root}")

    def render_index(self, mapping: Mapping[str, str]) -> bytes:
        """The index template with every placeholder in mapping filled in."""
        return substitute(self.read(INDEX_TEMPLATE), mapping)

    def __repr__(self) -> str:
        return f"FileResourceProvider(root={str(self.root)!r}, cache={self.cache_enabled})"
