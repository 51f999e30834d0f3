"""
Unit tests for request line parsing.
"""

import os

from jailhttp.http.request import Request, parse_request
from jailhttp.http.status_codes import HTTPStatus


class TestParseRequest:
    """Tests for parse_request()."""

    def test_simple_get(self):
        request = parse_request(b"GET /index.html HTTP/1.1\r\nHost: x\r\n\r\n")

        assert request.path == "/index.html"
        assert request.status == HTTPStatus.OK
        assert not request.is_malformed

    def test_method_is_ignored(self):
        request = parse_request(b"DELETE /a.txt HTTP/1.1\r\n")
        assert request.path == "/a.txt"
        assert request.status == HTTPStatus.OK

    def test_trailing_tokens_are_ignored(self):
        request = parse_request(b"GET /a.txt HTTP/1.0 extra tokens\r\n")
        assert request.path == "/a.txt"

    def test_no_version(self):
        assert parse_request(b"GET /a.txt").path == "/a.txt"

    def test_single_token_is_malformed(self):
        request = parse_request(b"GET\r\n")

        assert request.path == "/400.html"
        assert request.status == HTTPStatus.BAD_REQUEST
        assert request.is_malformed

    def test_method_and_space_only(self):
        assert parse_request(b"GET ").status == HTTPStatus.BAD_REQUEST

    def test_empty_input_is_malformed(self):
        assert parse_request(b"") == Request("/400.html", HTTPStatus.BAD_REQUEST)

    def test_only_first_line_counts(self):
        # "Host:" on the second line must not become the path
        request = parse_request(b"GET\r\nHost: example.com\r\n\r\n")
        assert request.status == HTTPStatus.BAD_REQUEST

    def test_custom_bad_request_path(self):
        request = parse_request(b"GET", bad_request_path="/errors/400.html")
        assert request.path == "/errors/400.html"

    def test_invalid_utf8_keeps_the_raw_bytes(self):
        request = parse_request(b"GET /caf\xe9.txt HTTP/1.1\r\n")

        assert request.status == HTTPStatus.OK
        assert "\ufffd" not in request.path
        assert os.fsencode(request.path) == b"/caf\xe9.txt"

    def test_tabs_separate_tokens(self):
        assert parse_request(b"GET\t/a.txt\tHTTP/1.1").path == "/a.txt"
