"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables of the server in one frozen dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    Priority (highest to lowest):

    1. Command-line arguments
       └── python -m minihttp --directory /tmp/files

    2. Environment variables
       └── MINIHTTP_DIRECTORY=/tmp/files python -m minihttp

    3. Defaults in this file

The config is built once at startup, validated, and then shared
read-only by every connection. It is frozen so nothing can change it
behind a worker's back; use dataclasses.replace() to derive a variant.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK         host, port, backlog
    REQUEST LIMITS  recv_size, max_request_size, timeout
    CONCURRENCY     min_workers, max_workers, queue_size
    HANDLERS        directory, canonical_headers
    LOGGING         log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. Loopback by default."""

    port: int = 4221
    """Port to listen on. 0 asks the OS for a free port (tests)."""

    backlog: int = 128
    """Accepted-but-not-yet-taken connections the kernel will queue."""

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    recv_size: int = 2048
    """Bytes asked for in each recv() call."""

    max_request_size: int = 64 * 1024
    """
    Ceiling on the request head. A client that sends this much without
    a blank line gets its connection dropped (RequestTooLarge).
    """

    timeout: Optional[float] = 30.0
    """
    Per-connection read/write deadline in seconds.
    None = wait forever; a stalled client then holds a worker indefinitely.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads started with the server."""

    max_workers: int = 16
    """Upper bound on connections handled at the same time."""

    queue_size: int = 64
    """Accepted connections allowed to wait for a free worker."""

    # ─────────────────────────────────────────────────────────────────────
    # HANDLERS
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = None
    """Base directory for GET /files/<name>. None disables file serving."""

    canonical_headers: bool = False
    """
    Rewrite request header names to Title-Case at parse time.
    Off by default: header lookups then use the exact case the client sent.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING or ERROR."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        MINIHTTP_HOST       Server host (default: 127.0.0.1)
        MINIHTTP_PORT       Server port (default: 4221)
        MINIHTTP_DIRECTORY  Base directory for /files/ (default: unset)
        MINIHTTP_WORKERS    Max worker threads (default: 16)
        MINIHTTP_TIMEOUT    Connection deadline in seconds (default: 30)
        MINIHTTP_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================
        """
        defaults = cls()
        max_workers = int(os.getenv("MINIHTTP_WORKERS", str(defaults.max_workers)))
        return cls(
            host=os.getenv("MINIHTTP_HOST", defaults.host),
            port=int(os.getenv("MINIHTTP_PORT", str(defaults.port))),
            directory=os.getenv("MINIHTTP_DIRECTORY") or None,
            min_workers=min(defaults.min_workers, max_workers),
            max_workers=max_workers,
            timeout=float(os.getenv("MINIHTTP_TIMEOUT", str(defaults.timeout))),
            log_level=os.getenv("MINIHTTP_LOG_LEVEL", defaults.log_level),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value fails before the first request
        rather than in the middle of serving one.

        Raises:
            ValueError: describing the first bad value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.recv_size < 1:
            raise ValueError("recv_size must be >= 1")

        if self.max_request_size < self.recv_size:
            raise ValueError("max_request_size must be >= recv_size")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {self.log_level}")

        if self.directory is not None and not os.path.isdir(self.directory):
            raise ValueError(f"Directory does not exist: {self.directory}")
