"""
=============================================================================
LISTENING SOCKET AND ACCEPT LOOP
=============================================================================

Owns the server socket and hands every accepted connection to a worker.

=============================================================================
SOCKET LIFECYCLE, SPLIT AROUND THE PRIVILEGE DROP
=============================================================================

The usual socket()/bind()/listen()/accept() sequence is split in two so
the sandbox can drop privileges in the middle:

    bind()                    ← still root: may bind ports below 1024
        │
        ▼
    sandbox.drop_privileges() ← done by FileServer between the two calls
        │
        ▼
    serve_forever()
        ├── listen(backlog)
        └── accept loop        ← never runs with root privileges

=============================================================================
THE ACCEPT LOOP
=============================================================================

    while running:
        accept()            blocks, but at most accept_timeout seconds
        dispatch()          fork a worker, never wait for it
        reap()              collect finished workers

The timeout on accept() is what makes shutdown possible: without it the
loop could only notice the running flag when the next client arrives.

Accept and dispatch failures are logged and the loop goes on. Only
bind()/listen() failures are fatal, and those happen before the loop.

=============================================================================
SIGNAL HANDLING FOR GRACEFUL SHUTDOWN
=============================================================================

SIGINT (Ctrl+C) and SIGTERM clear the running flag. Python only allows
installing signal handlers from the main thread, so when the server runs
in a background thread (tests, embedding) the caller stops it with
shutdown() instead.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Tuple

from ..config import ServerConfig
from .workers import ForkingDispatcher


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP listener.

    Usage:
        server = SocketServer(config, dispatcher)
        server.bind()
        # ... drop privileges ...
        server.serve_forever()   # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig, dispatcher: ForkingDispatcher):
        self.config = config
        self.dispatcher = dispatcher

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._listening_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """The bound address; the real port once bind() has run."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting right after a stop should not fail with
        # "Address already in use" while old connections sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Wake up periodically to reap workers and check the running flag
        sock.settimeout(self.config.accept_timeout)
        return sock

    def bind(self) -> None:
        """
        Create the socket and bind it to the configured address.

        Raises:
            OSError: If the socket cannot be created or bound. Fatal.
        """
        self._socket = self._create_socket()
        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

    def serve_forever(self) -> None:
        """
        Start listening and accept connections until shutdown().

        Raises:
            RuntimeError: If bind() has not been called.
            OSError: If listen() fails. Fatal.
        """
        if self._socket is None:
            raise RuntimeError("serve_forever() called before bind()")

        try:
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to listen on {self.config.host}:{self.config.port}: {e}")
            self._cleanup()
            raise

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Listening on {host}:{port} (backlog {self.config.backlog})")
        self._listening_event.set()

        try:
            self._accept_loop()
        finally:
            self._cleanup()

    def _accept_loop(self) -> None:
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                self.dispatcher.reap()
                continue
            except OSError as e:
                if not self._running:
                    break
                # Transient (EMFILE, ECONNABORTED, ...): log and keep serving
                logger.error(f"Accept error: {e}")
                self.dispatcher.reap()
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            # Accepted sockets inherit the listener's timeout; the worker
            # sets its own
            client_socket.settimeout(None)
            self.dispatcher.dispatch(client_socket, client_address, self._socket)
            self.dispatcher.reap()

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def _setup_signals(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def shutdown(self) -> None:
        """Stop the accept loop. Idempotent, callable from any thread."""
        self._running = False

    def close(self) -> None:
        """Release the socket without ever serving (startup aborted)."""
        self.shutdown()
        self._cleanup()

    def _cleanup(self) -> None:
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._running = False
        self.dispatcher.reap()
        logger.info("Socket server stopped")

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop is running. Used by tests."""
        return self._listening_event.wait(timeout)
