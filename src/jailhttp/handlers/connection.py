"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Runs inside a worker process and takes one connection from accept to
close:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    handle(client_socket, address)                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. wrap socket         timeout on both directions                 │
    │   2. read once           up to buffer_size bytes                    │
    │   3. parse               path token, or /400.html + 400             │
    │   4. resolve             PathResolver → ResolvedTarget              │
    │   5. narrow sandbox      IO_ONLY once a file is open                │
    │   6. write               ResponseWriter                             │
    │   7. narrow sandbox      NO_CAPABILITIES                            │
    │   8. close               ALWAYS, exactly once                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Early exits, all of which still close the socket:

    read timed out / failed    → close, no response
    ResolutionAborted          → close, no response
    write failed               → stop writing, close

=============================================================================
"""

import logging
import socket
import time
from typing import Optional

from ..config import ServerConfig
from ..core.connection import Connection
from ..core.sandbox import Sandbox, SandboxPhase
from ..http.request import parse_request
from ..http.response import ResponseWriter
from .access_log import log_request
from .static import OpenFile, PathResolver, ResolutionAborted, ResolvedTarget


logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Handles one connection end to end.

    A single instance is created before the accept loop starts and is
    shared (by fork, not by reference) with every worker. It holds no
    per-connection state.
    """

    def __init__(self, config: ServerConfig, resolver: PathResolver, sandbox: Optional[Sandbox] = None):
        self.config = config
        self.resolver = resolver
        self.sandbox = sandbox or Sandbox()

    def handle(self, client_socket: socket.socket, address: tuple) -> Optional[ResolvedTarget]:
        """
        Handle a connection and close it.

        Returns:
            The target that was written (already closed), or None if the
            connection was dropped without a response.
        """
        started = time.monotonic()
        conn = Connection(
            socket=client_socket,
            address=address,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
        )
        path = "-"
        target: Optional[ResolvedTarget] = None

        with conn:
            data = conn.read_request()
            if data is None:
                log_request(conn.id, conn.client_ip, path, None, 0, started)
                return None

            request = parse_request(data, self.config.bad_request_page)
            path = request.path

            try:
                target = self.resolver.resolve(request.path, request.status)
            except ResolutionAborted as e:
                logger.warning(f"[{conn.id}] Aborting {e.path}: {e.reason}")
                log_request(conn.id, conn.client_ip, path, None, 0, started)
                return None

            try:
                if isinstance(target.body, OpenFile):
                    self.sandbox.narrow(SandboxPhase.IO_ONLY)
                self._write(conn, target)
            finally:
                target.close()

            self.sandbox.narrow(SandboxPhase.NO_CAPABILITIES)

        log_request(conn.id, conn.client_ip, path, int(target.status), conn.bytes_sent, started)
        return target

    def _write(self, conn: Connection, target: ResolvedTarget) -> None:
        writer = ResponseWriter(
            conn,
            server_name=self.config.server_name,
            http_version=self.config.http_version,
            chunk_size=self.config.chunk_size,
        )
        if not writer.write(target):
            logger.debug(f"[{conn.id}] Response cut short after {conn.bytes_sent} bytes")
