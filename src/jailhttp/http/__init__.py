"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

    request.py       First-line parsing: the path token
    response.py      ResponseWriter: status line, headers, body
    status_codes.py  The four statuses and their compiled-in bodies
    mime_types.py    Extension → Content-Type table

ResponseWriter is imported from jailhttp.http.response directly; it needs
the target types from jailhttp.handlers, which need this package.

=============================================================================
"""

from .request import Request, parse_request
from .status_codes import HTTPStatus, reason_phrase, fallback_body
from .mime_types import MIME_TYPES, DEFAULT_MIME_TYPE, HTML_MIME_TYPE, get_mime_type

__all__ = [
    "Request",
    "parse_request",
    "HTTPStatus",
    "reason_phrase",
    "fallback_body",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
    "HTML_MIME_TYPE",
    "get_mime_type",
]
