"""
=============================================================================
PATH RESOLUTION
=============================================================================

Decides WHAT to send for a request path and WITH WHICH status. Nothing is
written here; the result is a ResolvedTarget that ResponseWriter turns into
bytes.

=============================================================================
THE FALLBACK CHAIN
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    resolve(path, status)                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   stat(path)                                                        │
    │     │                                                                │
    │     ├── directory ──► stat(dir/index.html)                          │
    │     │                   ├── file    ──► treat as regular file       │
    │     │                   └── missing ──► DirectoryListing            │
    │     │                                                                │
    │     ├── regular file ──► open()                                     │
    │     │                   ├── ok      ──► OpenFile                    │
    │     │                   └── fails   ──► 200→500, ConstantBody       │
    │     │                                                                │
    │     ├── does not exist                                              │
    │     │     ├── preset 400, first lookup  ──► ConstantBody(400)       │
    │     │     ├── already redirected to 404 ──► ConstantBody(404)       │
    │     │     └── otherwise ──► status=404, path=/404.html, loop again  │
    │     │                                                                │
    │     └── any other error ──► ResolutionAborted (no response)         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The chain is a LOOP, not recursion. The only way around the loop is the
single hop to /404.html, tracked by ResolutionState. Once redirected, a
missing /404.html ends the chain with the compiled-in body, so a broken
site can never make the server spin.

Status only moves upward: 200 → 404, 200 → 500. A preset 400 stays 400.

=============================================================================
PATHS INSIDE THE JAIL
=============================================================================

Request paths are always interpreted relative to the JAIL ROOT:

    jail_root = "/"            (after chroot)
    jail_root = "/srv/site"    (unconfined / no-chroot fallback)

    "/docs/../a.txt"   → normpath("/docs/../a.txt")  → "/a.txt"
    "/../../etc/passwd"→ normpath(...)               → "/etc/passwd"
    "a.txt"            → normpath("/a.txt")          → "/a.txt"

Without a kernel jail a symlink could still point outside jail_root, so
every path that stat() accepts is also checked with realpath(). Paths
that escape abort the connection.

=============================================================================
"""

import html
import logging
import os
import stat
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Union

from ..http.mime_types import HTML_MIME_TYPE, get_mime_type
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

# stat() failures that mean "nothing there"; anything else aborts
_MISSING_ERRORS = (FileNotFoundError, NotADirectoryError)


class ResolutionAborted(Exception):
    """
    Resolution hit an error that has no client-visible status.

    Permission denied or an I/O error during stat(), or a path that leaves
    the jail. The connection is closed without a response.
    """

    def __init__(self, path: str, reason: Union[OSError, str]):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ResolutionState(Enum):
    """Where the resolver is in the fallback chain."""

    NORMAL = "normal"
    REDIRECTED_TO_404 = "redirected_to_404"


# =============================================================================
# RESOLVED BODIES
# =============================================================================


@dataclass
class OpenFile:
    """A regular file opened read-only, ready to stream."""

    file: BinaryIO
    path: str

    def close(self) -> None:
        self.file.close()


@dataclass(frozen=True)
class DirectoryEntry:
    """One line of a directory listing."""

    name: str
    resolved_path: str   # jail-absolute, symlinks resolved
    is_directory: bool

    @property
    def display_name(self) -> str:
        return self.name + "/" if self.is_directory else self.name


@dataclass
class DirectoryListing:
    """A synthesized index page for a directory without index.html."""

    current_path: str
    parent_path: str
    entries: list[DirectoryEntry] = field(default_factory=list)

    def render(self) -> bytes:
        """
        Render the listing as HTML.

        Layout:
            Index of /docs/<br>
            <a href='/docs'>./</a><br>
            <a href='/'>../</a><br>
            <a href='/docs/a.txt'>a.txt</a><br>
            <a href='/docs/img'>img/</a><br>

        Names that are not valid UTF-8 on disk arrive from scandir()
        surrogate-escaped and go back out as their original bytes.
        """
        current = html.escape(self.current_path)
        heading = current if current.endswith("/") else current + "/"
        parts = [
            f"Index of {heading}<br>",
            f"<a href='{current}'>./</a><br>",
            f"<a href='{html.escape(self.parent_path)}'>../</a><br>",
        ]
        for entry in self.entries:
            parts.append(
                f"<a href='{html.escape(entry.resolved_path)}'>"
                f"{html.escape(entry.display_name)}</a><br>"
            )
        return "".join(parts).encode("utf-8", errors="surrogateescape")


@dataclass(frozen=True)
class ConstantBody:
    """A compiled-in body for an error status."""

    data: bytes


Body = Union[OpenFile, DirectoryListing, ConstantBody]


@dataclass
class ResolvedTarget:
    """
    The outcome of resolving one request.

    Constructed once by PathResolver and consumed once by ResponseWriter.
    Owns the open file, if any, until close() is called.
    """

    status: HTTPStatus
    mime_type: str
    body: Body

    def close(self) -> None:
        if isinstance(self.body, OpenFile):
            self.body.close()


# =============================================================================
# RESOLVER
# =============================================================================


class PathResolver:
    """
    Resolves request paths against the served tree.

    =========================================================================
    USAGE
    =========================================================================

        resolver = PathResolver(jail_root="/")
        target = resolver.resolve("/docs/", HTTPStatus.OK)
        try:
            writer.write(target)
        finally:
            target.close()

    =========================================================================
    """

    def __init__(
        self,
        jail_root: str,
        index_file: str = "index.html",
        not_found_page: str = "/404.html",
    ):
        """
        Args:
            jail_root: Host path that request paths are anchored at.
            index_file: File served in place of a directory.
            not_found_page: Jail path of the custom 404 page.
        """
        self.jail_root = os.path.realpath(jail_root)
        self.index_file = index_file
        self.not_found_page = not_found_page

    # ─────────────────────────────────────────────────────────────────────
    # PATH MAPPING
    # ─────────────────────────────────────────────────────────────────────

    def to_host_path(self, path: str) -> str:
        """Map a request path onto the host filesystem below jail_root."""
        normalized = os.path.normpath("/" + path).lstrip("/")
        return os.path.join(self.jail_root, normalized)

    def to_jail_path(self, host_path: str) -> str:
        """
        Map a host path back to an absolute path as seen inside the jail.

        Symlinks are resolved. Anything at or above the jail root is
        reported as "/", the same answer realpath("..") gives at "/"
        inside a chroot.
        """
        real = os.path.realpath(host_path)
        rel = os.path.relpath(real, self.jail_root)
        if rel == "." or rel == ".." or rel.startswith("../"):
            return "/"
        return "/" + rel

    def _is_inside_jail(self, host_path: str) -> bool:
        real = os.path.realpath(host_path)
        return real == self.jail_root or real.startswith(self.jail_root.rstrip("/") + "/")

    def _stat(self, host_path: str, request_path: str) -> os.stat_result:
        """
        stat() a path, classifying failures.

        Raises:
            FileNotFoundError / NotADirectoryError: Nothing at that path.
            ResolutionAborted: Any other failure.
        """
        try:
            st = os.stat(host_path)
        except _MISSING_ERRORS:
            raise
        except ValueError:
            # Embedded NUL byte: no such file can exist
            raise FileNotFoundError(request_path)
        except OSError as e:
            raise ResolutionAborted(request_path, e) from e

        if not self._is_inside_jail(host_path):
            logger.warning(f"Path escapes the served tree: {request_path}")
            raise ResolutionAborted(request_path, "outside of served tree")
        return st

    # ─────────────────────────────────────────────────────────────────────
    # RESOLUTION
    # ─────────────────────────────────────────────────────────────────────

    def resolve(self, path: str, status: HTTPStatus = HTTPStatus.OK) -> ResolvedTarget:
        """
        Resolve a request path into a target.

        Args:
            path: Request path as sent by the client.
            status: Preset status (OK, or BAD_REQUEST for malformed requests).

        Returns:
            The ResolvedTarget to send.

        Raises:
            ResolutionAborted: On stat errors other than "does not exist".
        """
        status = HTTPStatus(status)
        state = ResolutionState.NORMAL
        current = path

        while True:
            host_path = self.to_host_path(current)
            try:
                st = self._stat(host_path, current)
            except _MISSING_ERRORS:
                if state is ResolutionState.REDIRECTED_TO_404:
                    return self._constant(status)
                if status == HTTPStatus.BAD_REQUEST:
                    # A missing /400.html does not escalate to 404
                    return self._constant(status)
                logger.debug(f"Not found: {current}")
                status = HTTPStatus.NOT_FOUND
                state = ResolutionState.REDIRECTED_TO_404
                current = self.not_found_page
                continue

            if stat.S_ISDIR(st.st_mode):
                return self._resolve_directory(host_path, current, status)
            return self._open_file(host_path, status)

    def _resolve_directory(self, host_dir: str, request_path: str, status: HTTPStatus) -> ResolvedTarget:
        """Serve the directory's index file, or list it if there is none."""
        index_path = os.path.join(host_dir, self.index_file)
        try:
            st = self._stat(index_path, os.path.join(request_path, self.index_file))
        except _MISSING_ERRORS:
            return self._listing(host_dir, status)

        if stat.S_ISDIR(st.st_mode):
            return self._listing(host_dir, status)
        return self._open_file(index_path, status)

    def _open_file(self, host_path: str, status: HTTPStatus) -> ResolvedTarget:
        try:
            handle = open(host_path, "rb")
        except OSError as e:
            # An unreadable existing file is terminal: no further fallback
            logger.warning(f"Cannot open {self.to_jail_path(host_path)}: {e}")
            if status == HTTPStatus.OK:
                status = HTTPStatus.INTERNAL_SERVER_ERROR
            return self._constant(status)

        return ResolvedTarget(
            status=status,
            mime_type=get_mime_type(host_path),
            body=OpenFile(file=handle, path=self.to_jail_path(host_path)),
        )

    def _listing(self, host_dir: str, status: HTTPStatus) -> ResolvedTarget:
        try:
            with os.scandir(host_dir) as it:
                entries = [
                    DirectoryEntry(
                        name=entry.name,
                        resolved_path=self.to_jail_path(entry.path),
                        is_directory=entry.is_dir(follow_symlinks=False),
                    )
                    for entry in it
                    if entry.name not in (".", "..")
                ]
        except OSError as e:
            raise ResolutionAborted(self.to_jail_path(host_dir), e) from e

        entries.sort(key=lambda entry: entry.name)
        listing = DirectoryListing(
            current_path=self.to_jail_path(host_dir),
            parent_path=self.to_jail_path(os.path.join(host_dir, "..")),
            entries=entries,
        )
        return ResolvedTarget(status=status, mime_type=HTML_MIME_TYPE, body=listing)

    @staticmethod
    def _constant(status: HTTPStatus) -> ResolvedTarget:
        return ResolvedTarget(
            status=status,
            mime_type=HTML_MIME_TYPE,
            body=ConstantBody(status.fallback_body),
        )
