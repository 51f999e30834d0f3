"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The server only ever reports four statuses:

    ┌──────┬──────────────────────────┬───────────────────────────────────┐
    │ Code │ Reason phrase            │ When                              │
    ├──────┼──────────────────────────┼───────────────────────────────────┤
    │ 200  │ OK                       │ File, index page or listing       │
    │ 400  │ Bad Request              │ Request line has no path token    │
    │ 404  │ File Not Found           │ Nothing on disk at that path      │
    │ 500  │ Internal Server Error    │ File exists but cannot be opened  │
    └──────┴──────────────────────────┴───────────────────────────────────┘

=============================================================================
COMPILED-IN ERROR BODIES
=============================================================================

When an error page cannot be loaded from disk (no /400.html or /404.html
in the served tree, or any 500) the server falls back to a short body that
ships with the program. These never touch the filesystem, so they still
work after the process has been confined and stripped of privileges.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the file server.

    Extends IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'File Not Found'
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES[self]

    @property
    def fallback_body(self) -> bytes:
        """
        Compiled-in body served when no on-disk page is available.

        A 200 has no fallback of its own; it shares the 500 body, which
        is what an unmapped status falls back to.
        """
        return _FALLBACK_BODIES.get(self, _FALLBACK_BODIES[HTTPStatus.INTERNAL_SERVER_ERROR])

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


# =============================================================================
# REASON PHRASES
# =============================================================================
#
# HTTP/1.1 404 File Not Found
#          ─── ──────────────
#           │         │
#           │         └── Reason phrase (from this dict)
#           └──────────── Status code
#
# =============================================================================

_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "File Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}

# Phrase for any status code without an explicit mapping
DEFAULT_PHRASE = "OK"

_FALLBACK_BODIES = {
    HTTPStatus.BAD_REQUEST: b"400 - Bad Request",
    HTTPStatus.NOT_FOUND: b"404 - Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: b"500 - Internal Server Error",
}


def reason_phrase(code: int) -> str:
    """
    Get the reason phrase for any integer status code.

    Examples:
        >>> reason_phrase(404)
        'File Not Found'
        >>> reason_phrase(418)
        'OK'
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return DEFAULT_PHRASE


def fallback_body(code: int) -> bytes:
    """Compiled-in body for any integer status code."""
    try:
        return HTTPStatus(code).fallback_body
    except ValueError:
        return _FALLBACK_BODIES[HTTPStatus.INTERNAL_SERVER_ERROR]
