"""
=============================================================================
PROCESS SANDBOX
=============================================================================

Before the server reads a single byte from the network it shrinks what the
process is able to do. Two steps, in this order:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    STARTUP PRIVILEGE TIMELINE                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   uid 0 ──┬── require_privilege()     fail unless euid == 0        │
    │           │                                                         │
    │           ├── confine_filesystem()    chroot(root_dir); chdir("/") │
    │           │                                                         │
    │           ├── socket() + bind()       ports < 1024 allowed         │
    │           │                                                         │
    │           └── drop_privileges()       setgroups/setgid/setuid      │
    │                                                                      │
    │   uid N ──┬── listen()                                              │
    │           └── accept() ...            untrusted input from here on │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FILESYSTEM JAIL (chroot)
=============================================================================

After chroot(root_dir) the directory root_dir IS "/" for this process.
A request for "/../../etc/passwd" resolves to "/etc/passwd" inside the
jail, which is simply a file that does not exist. No string filtering is
involved: the kernel enforces it.

chroot() needs root, which is why confinement happens BEFORE the drop.

=============================================================================
PRIVILEGE DROP
=============================================================================

The order of the calls matters:

    setgroups([])   ← needs root
    setgid(gid)     ← needs root
    setuid(uid)     ← after this, nothing above is possible anymore

Dropping the uid first would leave the process unable to change its
groups. After the drop we verify that the effective uid is not 0 and that
setuid(0) is refused. If either check fails the server must not start.

=============================================================================
FINE-GRAINED NARROWING
=============================================================================

Some systems can narrow a process further while it works (read-only view
of the served tree, then "I/O only" once the file is open, then nothing
once the response is out). The hook for this is narrow(phase). Python has
no portable primitive for it, so the shipped sandboxes log the phase and
do nothing more. The gap is stated here rather than hidden.

=============================================================================
IMPORTANT: IMPORTS AFTER CONFINEMENT
=============================================================================

Once the process is inside the jail, the Python standard library is no
longer on disk from its point of view. Every module the server needs must
be imported before confine_filesystem() runs. Keep imports at module
level in this package.

=============================================================================
"""

import logging
import os
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


class SandboxError(RuntimeError):
    """
    Raised when the process cannot be confined or de-privileged.

    Always fatal at startup: the server must not accept connections
    in a state weaker than the one it asked for.
    """


class SandboxPhase(Enum):
    """Narrowing phases, from most to least capable."""

    SERVE_TREE = "serve_tree"            # read-only view of the served tree
    IO_ONLY = "io_only"                  # a file is open, no more path lookups
    NO_CAPABILITIES = "no_capabilities"  # response sent


class Sandbox:
    """
    Base sandbox capability.

    Subclasses override the steps they can actually enforce. The base
    class itself enforces nothing, which makes it the right fallback for
    platforms without the primitives, as long as the caller chooses it
    knowingly.
    """

    name = "none"

    def require_privilege(self) -> None:
        """Fail unless the process holds the privileges the sandbox needs."""

    def confine_filesystem(self, root_dir: str) -> str:
        """
        Restrict filesystem visibility to root_dir.

        Returns:
            The host path request paths are anchored at. "/" when a
            real jail is in place, the absolute root_dir otherwise.
        """
        return os.path.abspath(root_dir)

    def drop_privileges(self) -> None:
        """Lower real and effective identity to an unprivileged one."""

    def narrow(self, phase: SandboxPhase) -> None:
        """Further narrow capabilities. No-op where unsupported."""
        logger.debug(f"Sandbox '{self.name}': no fine-grained narrowing for {phase.value}")


class UnconfinedSandbox(Sandbox):
    """
    A sandbox that confines nothing.

    Useful when the server is embedded in another program or run from a
    test suite without root. Request paths are still anchored at root_dir
    by the resolver; the process just keeps its identity.
    """

    name = "unconfined"

    def confine_filesystem(self, root_dir: str) -> str:
        logger.warning(
            f"Running WITHOUT filesystem jail or privilege drop; serving {os.path.abspath(root_dir)}"
        )
        return super().confine_filesystem(root_dir)


class PrivilegeSandbox(Sandbox):
    """
    Privilege drop without a filesystem jail.

    Fallback for platforms that lack os.chroot. The resolver still maps
    every request below root_dir and refuses paths that escape it via
    symlinks, but this is a userspace check, not a kernel-enforced jail.
    """

    name = "privilege-drop"

    def __init__(self):
        # Owner of the served tree, recorded before confinement
        self._tree_owner: Optional[tuple[int, int]] = None

    def require_privilege(self) -> None:
        if os.geteuid() != 0:
            raise SandboxError("insufficient privilege: must be started as root")

    def confine_filesystem(self, root_dir: str) -> str:
        root = os.path.abspath(root_dir)
        self._record_owner(root)
        try:
            os.chdir(root)
        except OSError as e:
            raise SandboxError(f"chdir {root}: {e}") from e
        logger.warning(f"No filesystem jail on this platform; paths are checked against {root}")
        return root

    def _record_owner(self, root: str) -> None:
        try:
            st = os.stat(root)
        except OSError as e:
            raise SandboxError(f"stat {root}: {e}") from e
        self._tree_owner = (st.st_uid, st.st_gid)

    def target_identity(self) -> tuple[int, int]:
        """
        The (uid, gid) to drop to.

        The invoking user's real identity when it is not root (setuid
        installs, `su -c` wrappers that keep the real uid). A process
        started directly by root falls back to the owner of the served
        tree.
        """
        uid, gid = os.getuid(), os.getgid()
        if uid == 0 and self._tree_owner is not None:
            uid, gid = self._tree_owner
        return uid, gid

    def drop_privileges(self) -> None:
        uid, gid = self.target_identity()
        if uid == 0:
            raise SandboxError(
                "refusing to run as root: no unprivileged identity to drop to "
                "(start from a non-root user or chown the served directory)"
            )

        try:
            os.setgroups([])
            os.setgid(gid)
            os.setuid(uid)
        except OSError as e:
            raise SandboxError(f"privilege drop to uid={uid} gid={gid} failed: {e}") from e

        if os.geteuid() == 0 or os.getuid() == 0:
            raise SandboxError("effective identity is still root after privilege drop")

        # The drop must be irreversible
        try:
            os.setuid(0)
        except PermissionError:
            logger.info(f"Dropped privileges to uid={uid} gid={gid}")
            return
        raise SandboxError("root privileges could be regained after privilege drop")


class ChrootSandbox(PrivilegeSandbox):
    """Full sandbox: chroot jail plus privilege drop."""

    name = "chroot"

    def confine_filesystem(self, root_dir: str) -> str:
        root = os.path.abspath(root_dir)
        self._record_owner(root)

        try:
            os.chroot(root)
        except OSError as e:
            raise SandboxError(f"chroot {root}: {e}") from e

        try:
            os.chdir("/")
        except OSError as e:
            raise SandboxError(f"chdir /: {e}") from e

        logger.info(f"Confined filesystem to {root}")
        return "/"


def default_sandbox() -> Sandbox:
    """
    Pick the strongest sandbox this platform supports.

    Returns:
        ChrootSandbox where os.chroot exists, PrivilegeSandbox otherwise.
    """
    if hasattr(os, "chroot"):
        return ChrootSandbox()
    logger.warning("os.chroot is unavailable; falling back to privilege drop only")
    return PrivilegeSandbox()
