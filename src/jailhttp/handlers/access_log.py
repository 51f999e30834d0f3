"""
=============================================================================
ACCESS LOG
=============================================================================

One line per handled connection, written by the worker process that
handled it:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ 10.0.0.7 - - [19/Oct/2026:11:02:13 +0000] "/docs/" 200 1234 2.41ms  │
    │ ─────────────────────────────────────────────────────────────────── │
    │ IP           Timestamp                    Path    Status Size Time  │
    └─────────────────────────────────────────────────────────────────────┘

The request method is not logged because it is never parsed. Connections
that are dropped without a response log the status as "-".

The logger is namespaced so it can be routed separately:

    logging.getLogger("jailhttp.access").setLevel(logging.WARNING)

=============================================================================
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional


logger = logging.getLogger("jailhttp.access")


@dataclass
class RequestLog:
    """Structured record of one handled connection."""

    connection_id: str
    client_ip: str
    path: str
    status: Optional[int]
    bytes_sent: int
    duration_ms: float
    timestamp: str

    def to_text(self) -> str:
        """Apache-style log line."""
        status = "-" if self.status is None else str(self.status)
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.path}" {status} {self.bytes_sent} {self.duration_ms:.2f}ms'
        )


def log_request(
    connection_id: str,
    client_ip: str,
    path: str,
    status: Optional[int],
    bytes_sent: int,
    started: float,
) -> RequestLog:
    """Build a RequestLog for a finished connection and emit it."""
    entry = RequestLog(
        connection_id=connection_id,
        client_ip=client_ip,
        path=path,
        status=status,
        bytes_sent=bytes_sent,
        duration_ms=(time.monotonic() - started) * 1000,
        timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
    )

    if status is None or status >= 500:
        logger.warning(entry.to_text())
    else:
        logger.info(entry.to_text())
    return entry
