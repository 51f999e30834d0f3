"""
=============================================================================
REQUEST LINE PARSING
=============================================================================

The server understands exactly one thing about a request: the PATH.

    GET /docs/index.html HTTP/1.1\r\n
    └─┘ └──────────────┘ └──────┘
     │          │            │
     │          │            └── ignored
     │          └─────────────── the only token we use
     └────────────────────────── ignored (every method means "retrieve")

Headers and bodies are never looked at. Only the first line of whatever
arrived in the single bounded read is considered.

=============================================================================
MALFORMED REQUESTS ARE NOT ERRORS
=============================================================================

A request without a second token ("GET", "", "\r\n") is not rejected with
an exception. It is rewritten into a request for the canonical bad-request
page with the status preset to 400:

    b"GET\r\n"   →   Request(path="/400.html", status=400)

From there the normal resolution rules apply, so a site can ship its own
/400.html and the compiled-in body is only the last resort.

=============================================================================
"""

from dataclasses import dataclass

from .status_codes import HTTPStatus


BAD_REQUEST_PATH = "/400.html"


@dataclass(frozen=True)
class Request:
    """
    A parsed request.

    Attributes:
        path: Raw path token exactly as the client sent it.
        status: Status the resolver starts from (200, or 400 when malformed).
    """

    path: str
    status: HTTPStatus = HTTPStatus.OK

    @property
    def is_malformed(self) -> bool:
        return self.status == HTTPStatus.BAD_REQUEST


def parse_request(data: bytes, bad_request_path: str = BAD_REQUEST_PATH) -> Request:
    """
    Extract the request path from raw request bytes.

    Args:
        data: Whatever the single bounded read returned (may be empty,
              truncated or not even text).
        bad_request_path: Path substituted when there is no path token.

    Returns:
        The parsed Request.

    Examples:
        >>> parse_request(b"GET /a.txt HTTP/1.1\\r\\n").path
        '/a.txt'
        >>> parse_request(b"GET").status
        <HTTPStatus.BAD_REQUEST: 400>
    """
    # Undecodable bytes are surrogate-escaped so os.stat() and open()
    # see the exact bytes the client sent
    text = data.decode("utf-8", errors="surrogateescape")

    lines = text.splitlines()
    tokens = lines[0].split() if lines else []

    if len(tokens) < 2:
        return Request(path=bad_request_path, status=HTTPStatus.BAD_REQUEST)

    return Request(path=tokens[1])
