"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for the lifetime of a single request.

=============================================================================
ONE READ, ONE RESPONSE, ONE CLOSE
=============================================================================

Each connection carries exactly one request:

    NEW ──► READING ──► WRITING ──► CLOSED
     │         │           │           ▲
     └─────────┴───────────┴───────────┘
          (timeout / reset / error)

The request is whatever a SINGLE recv() of buffer_size bytes returns.
TCP is a byte stream, so a request line split across segments, or longer
than the buffer, arrives truncated. That is a known limitation; the
truncated bytes are treated as the whole request.

=============================================================================
TIMEOUTS
=============================================================================

settimeout() applies to both directions: a client that never sends its
request, or never reads its response, is cut off after `timeout` seconds.
This is the only cancellation mechanism a connection has.

=============================================================================
BROKEN PIPES
=============================================================================

Writing to a socket whose peer has gone away raises SIGPIPE in C programs.
Python starts with SIGPIPE ignored, so the same condition shows up as
BrokenPipeError (or ConnectionResetError) on the write call. send()
catches those and reports False; nothing process-wide is involved.

=============================================================================
"""

import socket
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""

    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current connection state.
        bytes_sent: Total bytes written so far.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    bytes_sent: int = 0

    buffer_size: int = 4096
    timeout: Optional[float] = 3.0

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else "-"

    @property
    def is_closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Perform the single bounded read.

        Returns:
            The bytes read (possibly empty if the client closed without
            sending anything), or None if the read timed out or failed.
        """
        self.state = ConnectionState.READING
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            logger.debug(f"[{self.id}] Read timed out after {self.timeout}s")
            return None
        except OSError as e:
            logger.debug(f"[{self.id}] Read failed: {e}")
            return None

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send bytes to the client.

        Returns:
            True if everything was sent, False if the peer went away,
            the send timed out, or the socket failed.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.debug(f"[{self.id}] Peer closed connection: {e}")
            return False
        except socket.timeout:
            logger.warning(f"[{self.id}] Send timed out after {self.timeout}s")
            return False
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Safe to call more than once; the socket is
        only closed the first time.
        """
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED

        try:
            # Send FIN so the client sees end-of-response promptly
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.close()
        except OSError as e:
            logger.debug(f"[{self.id}] Close failed: {e}")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"Connection(id={self.id}, client={self.client_ip}, state={self.state.value})"
