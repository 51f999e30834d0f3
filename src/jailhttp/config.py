"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the file server.

=============================================================================
WHY A FROZEN DATACLASS?
=============================================================================

The configuration is created once in main() and then read by every other
component, including forked worker processes. Nothing is allowed to change
it after startup, so the dataclass is frozen: assigning to a field raises
FrozenInstanceError instead of silently diverging between processes.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHO READS WHAT                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer        host, port, backlog, accept_timeout           │
    │   Sandbox             root_dir                                      │
    │   ConnectionHandler   buffer_size, timeout                          │
    │   PathResolver        index_file, not_found_page                    │
    │   ResponseWriter      http_version, server_name, chunk_size         │
    │   FileServer          log_level                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The only sources of configuration are the command-line flags and the
defaults below. There are no environment variables and no config files.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, accept_timeout

    CONNECTION SETTINGS
    - buffer_size, chunk_size, timeout

    FILESYSTEM
    - root_dir, index_file, bad_request_page, not_found_page

    RESPONSE / LOGGING
    - http_version, server_name, log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    port: int = 1337
    """Port to listen on. Ports below 1024 work because bind() happens
    before privileges are dropped."""

    host: str = "0.0.0.0"
    """Wildcard address: listen on every interface."""

    backlog: int = 3
    """
    Accept queue length. Small and fixed: when it is full the kernel
    refuses new connections. This is the only backpressure there is.
    """

    accept_timeout: float = 1.0
    """How often the accept loop wakes up to reap workers and check
    for shutdown."""

    # ─────────────────────────────────────────────────────────────────────
    # CONNECTION SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = 4096
    """Size of the single read that must contain the request line."""

    chunk_size: int = 4096
    """Size of each chunk when streaming a file to the client."""

    timeout: float = 3.0
    """
    Receive and send timeout per connection, in seconds.
    A client that stalls longer than this is disconnected.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILESYSTEM
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "./site/"
    """Directory that becomes "/" for every request."""

    index_file: str = "index.html"
    bad_request_page: str = "/400.html"
    not_found_page: str = "/404.html"

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSE / LOGGING
    # ─────────────────────────────────────────────────────────────────────

    http_version: str = "HTTP/1.1"
    server_name: str = "jailhttp"

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    def validate(self) -> None:
        """
        Validate configuration values.

        Runs before anything privileged happens, so a typo on the command
        line never results in a half-configured jail.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1 or self.chunk_size < 1:
            raise ValueError("buffer_size and chunk_size must be >= 1")

        if self.timeout <= 0 or self.accept_timeout <= 0:
            raise ValueError("timeout and accept_timeout must be > 0")

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"Root directory does not exist: {self.root_dir}")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")
