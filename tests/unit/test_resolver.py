"""
Unit tests for path resolution.
"""

import os
from pathlib import Path

import pytest

from jailhttp.handlers import static
from jailhttp.handlers.static import (
    ConstantBody,
    DirectoryEntry,
    DirectoryListing,
    OpenFile,
    PathResolver,
    ResolutionAborted,
)
from jailhttp.http.request import parse_request
from jailhttp.http.status_codes import HTTPStatus


def read_body(target) -> bytes:
    assert isinstance(target.body, OpenFile)
    try:
        return target.body.file.read()
    finally:
        target.close()


class TestRegularFiles:
    """Tests for files that exist."""

    def test_existing_file(self, resolver: PathResolver, site_dir: Path):
        target = resolver.resolve("/hello.txt")

        assert target.status == HTTPStatus.OK
        assert target.mime_type == "text/plain; charset=utf-8"
        assert read_body(target) == (site_dir / "hello.txt").read_bytes()

    def test_mime_from_extension(self, resolver: PathResolver):
        target = resolver.resolve("/report.tar.gz")
        target.close()
        assert target.mime_type == "application/x-gtar"

    def test_relative_path_is_anchored_at_root(self, resolver: PathResolver):
        target = resolver.resolve("hello.txt")
        assert read_body(target) == b"Hello, world!\n"

    def test_open_file_reports_jail_path(self, resolver: PathResolver):
        target = resolver.resolve("/docs/guide.txt")
        target.close()
        assert target.body.path == "/docs/guide.txt"

    def test_unreadable_file_is_500(self, resolver: PathResolver, monkeypatch):
        def deny(path, mode="r"):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr(static, "open", deny, raising=False)
        target = resolver.resolve("/hello.txt")

        assert target.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert target.body == ConstantBody(b"500 - Internal Server Error")
        assert target.mime_type == "text/html; charset=utf-8"


class TestNotFound:
    """Tests for the 404 fallback chain."""

    def test_missing_without_custom_page(self, resolver: PathResolver):
        target = resolver.resolve("/nope.html")

        assert target.status == HTTPStatus.NOT_FOUND
        assert target.body == ConstantBody(b"404 - Not Found")
        assert target.mime_type == "text/html; charset=utf-8"

    def test_missing_with_custom_page(self, resolver: PathResolver, site_dir: Path):
        (site_dir / "404.html").write_bytes(b"<p>custom not found</p>")

        target = resolver.resolve("/nope.html")

        assert target.status == HTTPStatus.NOT_FOUND
        assert target.mime_type == "text/html; charset=utf-8"
        assert read_body(target) == b"<p>custom not found</p>"

    def test_requesting_404_page_directly(self, resolver: PathResolver, site_dir: Path):
        (site_dir / "404.html").write_bytes(b"custom")

        target = resolver.resolve("/404.html")

        # It exists, so it is an ordinary 200 response
        assert target.status == HTTPStatus.OK
        assert read_body(target) == b"custom"

    def test_only_one_redirect(self, resolver: PathResolver, monkeypatch):
        calls = []
        real_stat = os.stat

        def counting_stat(path, *args, **kwargs):
            calls.append(path)
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(static.os, "stat", counting_stat)
        target = resolver.resolve("/missing")

        assert target.body == ConstantBody(b"404 - Not Found")
        # The requested path, then /404.html, then nothing
        assert len(calls) == 2

    def test_unreadable_custom_404_keeps_404(self, resolver: PathResolver, site_dir: Path, monkeypatch):
        (site_dir / "404.html").write_bytes(b"custom")

        def deny(path, mode="r"):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr(static, "open", deny, raising=False)
        target = resolver.resolve("/missing")

        assert target.status == HTTPStatus.NOT_FOUND
        assert target.body == ConstantBody(b"404 - Not Found")

    def test_path_through_a_file(self, resolver: PathResolver):
        # ENOTDIR counts as "does not exist"
        target = resolver.resolve("/hello.txt/child")
        assert target.status == HTTPStatus.NOT_FOUND

    def test_nul_byte(self, resolver: PathResolver):
        target = resolver.resolve("/hello.txt\x00.png")
        assert target.status == HTTPStatus.NOT_FOUND

    def test_dotdot_cannot_leave_root(self, resolver: PathResolver, site_dir: Path):
        (site_dir.parent / "secret.txt").write_bytes(b"secret")

        target = resolver.resolve("/../secret.txt")

        assert target.status == HTTPStatus.NOT_FOUND
        assert target.body == ConstantBody(b"404 - Not Found")


class TestBadRequest:
    """Tests for requests preset to 400."""

    def test_compiled_in_400(self, resolver: PathResolver):
        target = resolver.resolve("/400.html", HTTPStatus.BAD_REQUEST)

        assert target.status == HTTPStatus.BAD_REQUEST
        assert target.body == ConstantBody(b"400 - Bad Request")

    def test_custom_400(self, resolver: PathResolver, site_dir: Path):
        (site_dir / "400.html").write_bytes(b"bad!")

        target = resolver.resolve("/400.html", HTTPStatus.BAD_REQUEST)

        assert target.status == HTTPStatus.BAD_REQUEST
        assert read_body(target) == b"bad!"

    def test_missing_400_does_not_escalate_to_404(self, resolver: PathResolver, site_dir: Path):
        (site_dir / "404.html").write_bytes(b"not this one")

        target = resolver.resolve("/400.html", HTTPStatus.BAD_REQUEST)

        assert target.status == HTTPStatus.BAD_REQUEST
        assert target.body == ConstantBody(b"400 - Bad Request")


class TestDirectories:
    """Tests for directory requests."""

    def test_directory_with_index(self, resolver: PathResolver):
        target = resolver.resolve("/docs")

        assert target.status == HTTPStatus.OK
        assert target.mime_type == "text/html; charset=utf-8"
        assert read_body(target) == b"<h1>Docs</h1>"

    def test_directory_with_trailing_slash(self, resolver: PathResolver):
        assert read_body(resolver.resolve("/docs/")) == b"<h1>Docs</h1>"

    def test_directory_without_index_is_listed(self, resolver: PathResolver):
        target = resolver.resolve("/files/")

        assert target.status == HTTPStatus.OK
        assert target.mime_type == "text/html; charset=utf-8"
        assert isinstance(target.body, DirectoryListing)
        assert target.body.current_path == "/files"
        assert target.body.parent_path == "/"
        assert target.body.entries == [
            DirectoryEntry(name="a.txt", resolved_path="/files/a.txt", is_directory=False),
            DirectoryEntry(name="sub", resolved_path="/files/sub", is_directory=True),
        ]

    def test_root_listing(self, resolver: PathResolver):
        target = resolver.resolve("/")

        names = [entry.name for entry in target.body.entries]
        assert names == ["README", "docs", "files", "hello.txt", "notes.md", "report.tar.gz"]
        assert "." not in names and ".." not in names
        assert target.body.current_path == "/"
        assert target.body.parent_path == "/"

    def test_index_that_is_a_directory(self, resolver: PathResolver, site_dir: Path):
        (site_dir / "files" / "index.html").mkdir()

        target = resolver.resolve("/files")

        assert isinstance(target.body, DirectoryListing)

    def test_listing_keeps_preset_status(self, resolver: PathResolver, site_dir: Path):
        (site_dir / "400.html").mkdir()

        target = resolver.resolve("/400.html", HTTPStatus.BAD_REQUEST)

        assert target.status == HTTPStatus.BAD_REQUEST
        assert isinstance(target.body, DirectoryListing)

    def test_listing_render(self):
        listing = DirectoryListing(
            current_path="/files",
            parent_path="/",
            entries=[
                DirectoryEntry("a.txt", "/files/a.txt", False),
                DirectoryEntry("sub", "/files/sub", True),
            ],
        )

        assert listing.render() == (
            b"Index of /files/<br>"
            b"<a href='/files'>./</a><br>"
            b"<a href='/'>../</a><br>"
            b"<a href='/files/a.txt'>a.txt</a><br>"
            b"<a href='/files/sub'>sub/</a><br>"
        )

    def test_listing_escapes_names(self):
        listing = DirectoryListing("/", "/", [DirectoryEntry("<b>.txt", "/<b>.txt", False)])

        assert b"<b>" not in listing.render()
        assert b"&lt;b&gt;.txt" in listing.render()


class TestAbort:
    """Tests for failures that drop the connection."""

    def test_permission_error_on_stat(self, resolver: PathResolver, site_dir: Path, monkeypatch):
        real_stat = os.stat
        denied = os.path.join(resolver.jail_root, "hello.txt")

        def stat(path, *args, **kwargs):
            if str(path) == denied:
                raise PermissionError(13, "Permission denied", path)
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(static.os, "stat", stat)

        with pytest.raises(ResolutionAborted) as exc_info:
            resolver.resolve("/hello.txt")

        assert exc_info.value.path == "/hello.txt"

    def test_symlink_out_of_root(self, resolver: PathResolver, site_dir: Path):
        outside = site_dir.parent / "outside.txt"
        outside.write_bytes(b"outside")
        (site_dir / "link.txt").symlink_to(outside)

        with pytest.raises(ResolutionAborted):
            resolver.resolve("/link.txt")

    def test_symlink_inside_root(self, resolver: PathResolver, site_dir: Path):
        (site_dir / "alias.txt").symlink_to(site_dir / "hello.txt")

        target = resolver.resolve("/alias.txt")

        assert target.body.path == "/hello.txt"
        assert read_body(target) == b"Hello, world!\n"

    def test_unlistable_directory(self, resolver: PathResolver, monkeypatch):
        def deny(path):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr(static.os, "scandir", deny)

        with pytest.raises(ResolutionAborted) as exc_info:
            resolver.resolve("/files/")

        assert exc_info.value.path == "/files"


class TestPathMapping:
    """Tests for jail/host path mapping."""

    def test_to_host_path(self, resolver: PathResolver):
        assert resolver.to_host_path("/a/../b.txt") == os.path.join(resolver.jail_root, "b.txt")
        assert resolver.to_host_path("//etc/passwd") == os.path.join(resolver.jail_root, "etc/passwd")

    def test_to_jail_path(self, resolver: PathResolver, site_dir: Path):
        assert resolver.to_jail_path(str(site_dir)) == "/"
        assert resolver.to_jail_path(str(site_dir / "docs")) == "/docs"
        assert resolver.to_jail_path(str(site_dir.parent)) == "/"

    def test_chroot_style_root(self):
        resolver = PathResolver("/")

        assert resolver.to_host_path("/../etc/hosts") == "/etc/hosts"
        assert resolver.to_jail_path("/usr") == os.path.realpath("/usr")


class TestNonUtf8Names:
    """Names that are not valid UTF-8 are served byte for byte."""

    @pytest.fixture
    def latin1_file(self, site_dir: Path) -> bytes:
        name = os.fsencode(site_dir / "files") + b"/caf\xe9.txt"
        with open(name, "wb") as f:
            f.write(b"latin-1 name")
        return name

    def test_listing_renders_original_bytes(self, resolver: PathResolver, latin1_file: bytes):
        body = resolver.resolve("/files/").body.render()

        assert b"<a href='/files/caf\xe9.txt'>caf\xe9.txt</a><br>" in body

    def test_request_for_the_raw_name(self, resolver: PathResolver, latin1_file: bytes):
        request = parse_request(b"GET /files/caf\xe9.txt HTTP/1.1\r\n")

        target = resolver.resolve(request.path, request.status)

        assert target.status == HTTPStatus.OK
        assert read_body(target) == b"latin-1 name"
