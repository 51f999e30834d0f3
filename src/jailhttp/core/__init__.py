"""
=============================================================================
CORE COMPONENTS
=============================================================================

Low-level building blocks: sockets, processes and the sandbox.

    socket_server.py  Listening socket and accept loop
    workers.py        One forked process per connection
    connection.py     Client socket wrapper: one read, writes, one close
    sandbox.py        Filesystem jail and privilege drop

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .workers import ForkingDispatcher
from .sandbox import (
    Sandbox,
    SandboxError,
    SandboxPhase,
    ChrootSandbox,
    PrivilegeSandbox,
    UnconfinedSandbox,
    default_sandbox,
)

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ForkingDispatcher",
    "Sandbox",
    "SandboxError",
    "SandboxPhase",
    "ChrootSandbox",
    "PrivilegeSandbox",
    "UnconfinedSandbox",
    "default_sandbox",
]
