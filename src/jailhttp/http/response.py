"""
=============================================================================
RESPONSE WRITING
=============================================================================

Serializes a ResolvedTarget onto a connection.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200 OK\r\n                         ← Status line
    Content-Type: text/html; charset=utf-8\r\n  ← From the target
    Server: jailhttp\r\n                        ← Fixed identification
    \r\n                                        ← End of headers
    <body>                                      ← Until the socket closes

There is no Content-Length. Every connection carries exactly one response
and the server closes it afterwards, so end-of-stream marks end-of-body
(the HTTP/1.0 way of delimiting a message).

=============================================================================
STREAMING
=============================================================================

Files are never loaded into memory whole. They are copied in chunk_size
pieces:

    ┌──────────┐   read(4096)   ┌──────────┐   sendall()   ┌──────────┐
    │   file   │ ─────────────► │  chunk   │ ────────────► │  socket  │
    └──────────┘                └──────────┘               └──────────┘
          ▲                                                      │
          └──────────────── until read() returns b"" ────────────┘

=============================================================================
BEST-EFFORT WRITES
=============================================================================

If any write fails (client gone, send timeout) the rest of the response is
abandoned. The failure is logged and reported to the caller, never raised:
there is nobody left to tell.

=============================================================================
"""

import logging

from ..core.connection import Connection
from ..handlers.static import ConstantBody, DirectoryListing, OpenFile, ResolvedTarget
from .status_codes import reason_phrase


logger = logging.getLogger(__name__)


class ResponseWriter:
    """
    Writes one response per call to write().

    Usage:
        writer = ResponseWriter(conn, server_name="jailhttp")
        writer.write(target)
    """

    def __init__(
        self,
        conn: Connection,
        server_name: str = "jailhttp",
        http_version: str = "HTTP/1.1",
        chunk_size: int = 4096,
    ):
        self.conn = conn
        self.server_name = server_name
        self.http_version = http_version
        self.chunk_size = chunk_size

    def status_line(self, code: int) -> str:
        """
        Format the status line.

        Example: "HTTP/1.1 404 File Not Found"
        """
        return f"{self.http_version} {int(code)} {reason_phrase(code)}"

    def header_bytes(self, target: ResolvedTarget) -> bytes:
        lines = [
            self.status_line(target.status),
            f"Content-Type: {target.mime_type}",
            f"Server: {self.server_name}",
            "",
            "",
        ]
        return "\r\n".join(lines).encode("utf-8")

    def write(self, target: ResolvedTarget) -> bool:
        """
        Write the status line, headers and body.

        Returns:
            True if the whole response was sent, False if it was cut short.
        """
        if not self.conn.send(self.header_bytes(target)):
            return False

        body = target.body
        if isinstance(body, OpenFile):
            return self._stream_file(body)
        if isinstance(body, DirectoryListing):
            return self.conn.send(body.render())
        if isinstance(body, ConstantBody):
            return self.conn.send(body.data)

        raise TypeError(f"Unknown response body: {type(body).__name__}")

    def _stream_file(self, body: OpenFile) -> bool:
        while True:
            try:
                chunk = body.file.read(self.chunk_size)
            except OSError as e:
                logger.warning(f"[{self.conn.id}] Read of {body.path} failed: {e}")
                return False

            if not chunk:
                return True

            if not self.conn.send(chunk):
                return False
