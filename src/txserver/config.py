"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the transaction server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m txserver --port 8000                            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── TXSERVER_PORT=8000 python -m txserver                     │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

With no overrides at all the server behaves exactly like the first
single-purpose binary: all interfaces, port 9999, one request per
connection, resources read from ./web.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_timeout(name: str, default: str = "30") -> Optional[float]:
    """Seconds as a float; "none", "off" or "0" disable the deadline."""
    value = os.getenv(name, default).strip().lower()
    if value in ("none", "off", "0", "0.0"):
        return None
    return float(value)


@dataclass
class ServerConfig:
    """
    Configuration for the transaction server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK      host, port, backlog, buffer_size, timeout, max_line_size
    THREADING    min_workers, max_workers, queue_size
    RESOURCES    web_root, username, balance, cache_resources
    PROTOCOL     legacy_headers, reject_malformed
    LOGGING      log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind. The default listens on every interface."""

    port: int = 9999
    """TCP port to listen on. Use 0 to let the OS pick one (tests)."""

    backlog: int = 128
    """Maximum number of completed handshakes waiting for accept()."""

    buffer_size: int = 4096
    """Bytes requested per recv() call and size of the write buffer."""

    timeout: Optional[float] = 30.0
    """
    Per-operation socket timeout in seconds for reads and writes.
    None disables the deadline (a silent client then holds a worker forever).
    """

    max_line_size: int = 8192
    """Longest request line accepted before the connection is dropped."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100
    """Connections waiting for a worker. Beyond this they get a 503."""

    # ─────────────────────────────────────────────────────────────────────
    # RESOURCES
    # ─────────────────────────────────────────────────────────────────────

    web_root: str = "web"
    """Directory holding template/index.html and shared/transactions.*"""

    username: str = "Michael"
    balance: str = "1 000.50"
    """Values substituted into the {username} and {balance} placeholders."""

    cache_resources: bool = False
    """Keep file contents in memory after the first read."""

    # ─────────────────────────────────────────────────────────────────────
    # PROTOCOL COMPATIBILITY
    # ─────────────────────────────────────────────────────────────────────

    legacy_headers: bool = False
    """
    Reproduce the first-release JSON/XML responses byte for byte. Those routes
    emitted the bare content type value ("application/xml") as a header
    line, without the "Content-Type: " key.
    """

    reject_malformed: bool = False
    """
    Answer a malformed request line with 400 before closing. The default
    closes the connection without writing anything.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        TXSERVER_HOST            Bind address (default: 0.0.0.0)
        TXSERVER_PORT            Port (default: 9999)
        TXSERVER_WORKERS         Max worker threads (default: 16)
        TXSERVER_TIMEOUT         Socket timeout in seconds, or "none" (default: 30)
        TXSERVER_WEB_ROOT        Resource directory (default: web)
        TXSERVER_LOG_LEVEL       Logging level (default: INFO)
        TXSERVER_LEGACY_HEADERS  "1" to send bare media type lines
        """
        max_workers = int(os.getenv("TXSERVER_WORKERS", "16"))
        return cls(
            host=os.getenv("TXSERVER_HOST", "0.0.0.0"),
            port=int(os.getenv("TXSERVER_PORT", "9999")),
            max_workers=max_workers,
            min_workers=min(4, max_workers),
            timeout=_env_timeout("TXSERVER_TIMEOUT"),
            web_root=os.getenv("TXSERVER_WEB_ROOT", "web"),
            log_level=os.getenv("TXSERVER_LOG_LEVEL", "INFO"),
            legacy_headers=_env_flag("TXSERVER_LEGACY_HEADERS"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by TransactionServer at construction so that a bad value
        fails at startup instead of on the first connection.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.max_line_size < 1:
            raise ValueError("max_line_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")
