"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    static.py        PathResolver: request path → ResolvedTarget
    connection.py    ConnectionHandler: one connection, read to close
    access_log.py    One log line per connection

ConnectionHandler depends on the response writer, which in turn depends on
the target types defined here, so it is imported from its own module:

    from jailhttp.handlers.connection import ConnectionHandler

=============================================================================
"""

from .static import (
    PathResolver,
    ResolvedTarget,
    ResolutionAborted,
    ResolutionState,
    OpenFile,
    DirectoryListing,
    DirectoryEntry,
    ConstantBody,
)

__all__ = [
    "PathResolver",
    "ResolvedTarget",
    "ResolutionAborted",
    "ResolutionState",
    "OpenFile",
    "DirectoryListing",
    "DirectoryEntry",
    "ConstantBody",
]
