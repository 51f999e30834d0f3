"""
=============================================================================
FILE SERVER
=============================================================================

The orchestrator that ties the components together and runs the startup
sequence in the one order that is safe.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        FileServer                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Sandbox ─────────── confine + drop privileges                     │
    │                                                                      │
    │   SocketServer ────── bind, listen, accept                          │
    │        │                                                             │
    │        ▼                                                             │
    │   ForkingDispatcher ─ one process per connection                    │
    │        │                                                             │
    │        ▼  (in the child)                                            │
    │   ConnectionHandler                                                 │
    │        ├── parse_request                                            │
    │        ├── PathResolver ────► ResolvedTarget                        │
    │        └── ResponseWriter ──► bytes on the socket                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
STARTUP SEQUENCE
=============================================================================

    1. validate config             nothing privileged has happened yet
    2. require_privilege()         must be root
    3. confine_filesystem()        chroot into the served tree
    4. bind()                      still root
    5. drop_privileges()           verified, irreversible
    6. narrow(SERVE_TREE)
    7. listen() + accept loop      never runs as root

A failure in any of steps 1-6 raises before a single connection is
accepted. main() turns that into exit status 1.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, ForkingDispatcher, Sandbox, SandboxPhase, default_sandbox
from .handlers.connection import ConnectionHandler
from .handlers.static import PathResolver


logger = logging.getLogger(__name__)


class FileServer:
    """
    Minimal sandboxed HTTP file server.

    =========================================================================
    USAGE
    =========================================================================

        server = FileServer(ServerConfig(port=8080, root_dir="/srv/www"))
        server.run()   # Blocks until SIGINT/SIGTERM

    Tests and embedders that cannot run as root pass an UnconfinedSandbox:

        server = FileServer(config, sandbox=UnconfinedSandbox())

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, sandbox: Optional[Sandbox] = None):
        self.config = config or ServerConfig()
        self.sandbox = sandbox or default_sandbox()

        self.resolver: Optional[PathResolver] = None
        self.handler: Optional[ConnectionHandler] = None
        self._socket_server: Optional[SocketServer] = None

    @property
    def socket_server(self) -> Optional[SocketServer]:
        return self._socket_server

    def run(self) -> None:
        """
        Start the server (blocking).

        Raises:
            ValueError: Invalid configuration.
            SandboxError: Confinement or privilege drop failed.
            OSError: Socket creation, bind or listen failed.
        """
        self._setup_logging()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # PRIVILEGED PHASE
        # ─────────────────────────────────────────────────────────────────
        self.sandbox.require_privilege()
        jail_root = self.sandbox.confine_filesystem(self.config.root_dir)

        self.resolver = PathResolver(
            jail_root,
            index_file=self.config.index_file,
            not_found_page=self.config.not_found_page,
        )
        self.handler = ConnectionHandler(self.config, self.resolver, self.sandbox)

        self._socket_server = SocketServer(self.config, ForkingDispatcher(self.handler.handle))
        self._socket_server.bind()

        try:
            self.sandbox.drop_privileges()
        except Exception:
            self._socket_server.close()
            raise

        # ─────────────────────────────────────────────────────────────────
        # UNPRIVILEGED PHASE
        # ─────────────────────────────────────────────────────────────────
        self.sandbox.narrow(SandboxPhase.SERVE_TREE)
        logger.info(
            f"Serving {self.config.root_dir} with sandbox '{self.sandbox.name}' "
            f"on port {self._socket_server.address[1]}"
        )

        try:
            self._socket_server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self) -> None:
        """Stop the accept loop. Callable from another thread."""
        if self._socket_server is not None:
            self._socket_server.shutdown()

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("jailhttp").setLevel(level)
