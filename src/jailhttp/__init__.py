"""
=============================================================================
JAILHTTP - Minimal Sandboxed HTTP File Server
=============================================================================

Serves the files under one directory over a request-line-only subset of
HTTP, from inside a chroot jail, without root privileges, one forked
process per connection.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    JAILHTTP AT A GLANCE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. SANDBOX                                                        │
    │      - chroot into the served directory                             │
    │      - drop root after bind(), verified irreversible                │
    │                                                                      │
    │   2. PROCESS PER CONNECTION                                         │
    │      - fork() for every accepted socket                             │
    │      - a crash in one worker never reaches the acceptor             │
    │                                                                      │
    │   3. PATH RESOLUTION                                                │
    │      - files, index.html, generated directory listings              │
    │      - /400.html and /404.html overrides, compiled-in fallbacks     │
    │      - at most one redirect to the error page                       │
    │                                                                      │
    │   4. RESPONSES                                                      │
    │      - status line, Content-Type, Server, streamed body             │
    │      - best-effort writes, 3s timeout per connection                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    jailhttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m jailhttp)
    ├── server.py            # FileServer: startup sequence
    ├── config.py            # ServerConfig dataclass
    ├── core/
    │   ├── socket_server.py # Listening socket, accept loop
    │   ├── workers.py       # Fork-per-connection dispatcher
    │   ├── connection.py    # Client socket wrapper
    │   └── sandbox.py       # chroot + privilege drop
    ├── http/
    │   ├── request.py       # Request line parsing
    │   ├── response.py      # ResponseWriter
    │   ├── status_codes.py  # Statuses and compiled-in bodies
    │   └── mime_types.py    # Extension → Content-Type
    └── handlers/
        ├── static.py        # PathResolver
        ├── connection.py    # ConnectionHandler
        └── access_log.py    # Access log lines

=============================================================================
QUICK START
=============================================================================

    $ sudo jailhttp -p 80 -d /srv/www

    from jailhttp import FileServer, ServerConfig

    server = FileServer(ServerConfig(port=8080, root_dir="/srv/www"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"
__author__ = "jailhttp contributors"

from .server import FileServer
from .config import ServerConfig

__all__ = ["FileServer", "ServerConfig", "__version__"]
