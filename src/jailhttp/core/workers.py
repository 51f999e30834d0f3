"""
=============================================================================
PROCESS-PER-CONNECTION WORKERS
=============================================================================

Every accepted connection is handled in its own forked process.

=============================================================================
WHY PROCESSES AND NOT A THREAD POOL?
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                THREADS                     PROCESSES (fork)         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Shared memory, shared fds       Private copy of everything       │
    │   A crash can take down the       A crash kills one child, the     │
    │   whole server                    acceptor never notices           │
    │   Working directory is global     Each child can chdir freely      │
    │   Listening socket reachable      Child closes its copy first      │
    │   from every handler                                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

After the fork:

    PARENT (acceptor)                    CHILD (worker)
    ─────────────────                    ──────────────
    close(client socket)                 default SIGINT/SIGTERM
                                         close(listening socket)
    remember child pid                   handler(client socket)
    go back to accept()                  os._exit(status)

os._exit() skips interpreter cleanup in the child. The child must never
return into the acceptor's accept loop, run atexit hooks, or flush buffers
it inherited from the parent.

The acceptor's shutdown handlers only clear a flag in the acceptor. A
worker restores the default dispositions first, so SIGTERM sent to the
process group stops a worker mid-transfer.

=============================================================================
REAPING
=============================================================================

A finished child stays a zombie until the parent collects its exit status.
The acceptor calls reap() on every loop iteration (at least once per
accept timeout), using waitpid(-1, WNOHANG) so it never blocks.

=============================================================================
"""

import logging
import os
import signal
import socket
from typing import Callable


logger = logging.getLogger(__name__)

ConnectionCallback = Callable[[socket.socket, tuple], None]

# Child exit statuses
EXIT_OK = 0
EXIT_HANDLER_ERROR = 1


class ForkingDispatcher:
    """
    Hands each client socket to a freshly forked worker process.

    Usage:
        dispatcher = ForkingDispatcher(handler)
        dispatcher.dispatch(client_socket, address, listening_socket)
        ...
        dispatcher.reap()
    """

    def __init__(self, handler: ConnectionCallback):
        """
        Args:
            handler: Called in the child with (client_socket, address).
                     Owns the client socket from then on.
        """
        self.handler = handler
        self._children: set[int] = set()

    @property
    def active_workers(self) -> int:
        """Number of children not yet reaped."""
        return len(self._children)

    def dispatch(
        self,
        client_socket: socket.socket,
        address: tuple,
        listening_socket: socket.socket,
    ) -> bool:
        """
        Fork a worker for one connection.

        Returns:
            True if a worker was started. False if fork() failed, in
            which case the client socket has been closed.
        """
        try:
            pid = os.fork()
        except OSError as e:
            logger.error(f"fork failed: {e}")
            client_socket.close()
            return False

        if pid == 0:
            self._run_child(client_socket, address, listening_socket)

        # Parent: the child owns the connection now
        client_socket.close()
        self._children.add(pid)
        logger.debug(f"Worker {pid} started for {address[0]}:{address[1]}")
        return True

    def _run_child(self, client_socket: socket.socket, address: tuple, listening_socket: socket.socket):
        status = EXIT_OK
        try:
            signal.signal(signal.SIGINT, signal.SIG_DFL)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)
            listening_socket.close()
            self.handler(client_socket, address)
        except BaseException:
            logger.exception(f"Worker {os.getpid()} crashed")
            status = EXIT_HANDLER_ERROR
        finally:
            os._exit(status)

    def reap(self) -> int:
        """
        Collect every finished child without blocking.

        Returns:
            Number of children reaped.
        """
        reaped = 0
        while self._children:
            try:
                pid, status = os.waitpid(-1, os.WNOHANG)
            except ChildProcessError:
                self._children.clear()
                break

            if pid == 0:
                break

            self._children.discard(pid)
            reaped += 1
            code = os.waitstatus_to_exitcode(status)
            if code != EXIT_OK:
                logger.warning(f"Worker {pid} exited with status {code}")
        return reaped
