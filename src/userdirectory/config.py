"""
=============================================================================
SERVICE CONFIGURATION
=============================================================================

One dataclass holds every knob of the directory service: the hosting
layer's network and threading settings plus the service's own auth and
seeding options.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    Priority (highest to lowest):

    1. Command-line arguments
       └── python -m userdirectory --port 3000

    2. Environment variables
       └── USERDIR_PORT=3000 python -m userdirectory

    3. Defaults in this file

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .middleware.authentication import DEFAULT_TOKEN


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class ServiceConfig:
    """
    Configuration for the user directory.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING SETTINGS
    - min_workers, max_workers

    LOGGING
    - log_level, log_format

    DIRECTORY
    - auth_token, invert_token_check, seed_users

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    port: int = 8080
    backlog: int = 128

    buffer_size: int = 8192
    """Receive buffer size in bytes."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds. None blocks forever."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True

    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 1024 * 1024
    """Largest accepted request (headers plus body), 1 MB."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "UserDirectory/1.0"

    # ─────────────────────────────────────────────────────────────────────
    # DIRECTORY
    # ─────────────────────────────────────────────────────────────────────

    auth_token: str = DEFAULT_TOKEN
    """Exact Authorization header value the token check compares against."""

    invert_token_check: bool = True
    """
    Reject the configured token and accept any other value, matching the
    directory's historical answers. False gives the conventional check.
    """

    seed_users: bool = True
    """Start with Alice, Bob and Charlie in the store."""

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        USERDIR_HOST         Bind address (default: 127.0.0.1)
        USERDIR_PORT         Port (default: 8080)
        USERDIR_WORKERS      Max worker threads; also caps min_workers (default: 16)
        USERDIR_LOG_LEVEL    Logging level (default: INFO)
        USERDIR_LOG_FORMAT   Access log format, text or json (default: text)
        USERDIR_AUTH_TOKEN   Authorization value (default: Bearer my-secure-token)
        USERDIR_STRICT_AUTH  Truthy to accept only the token (default: off)
        USERDIR_SEED         Falsy to start with an empty store (default: on)

        =====================================================================
        """
        workers = int(os.getenv("USERDIR_WORKERS", "16"))

        return cls(
            host=os.getenv("USERDIR_HOST", "127.0.0.1"),
            port=int(os.getenv("USERDIR_PORT", "8080")),
            min_workers=min(cls.min_workers, workers),
            max_workers=workers,
            log_level=os.getenv("USERDIR_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("USERDIR_LOG_FORMAT", "text").lower(),
            auth_token=os.getenv("USERDIR_AUTH_TOKEN", DEFAULT_TOKEN),
            invert_token_check=not _env_flag("USERDIR_STRICT_AUTH", False),
            seed_users=_env_flag("USERDIR_SEED", True),
        )

    def validate(self) -> None:
        """Raise ValueError on the first invalid setting."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level: {self.log_level}. Must be one of {', '.join(LOG_LEVELS)}."
            )

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}. Must be text or json.")

        if not self.auth_token:
            raise ValueError("auth_token must not be empty")
