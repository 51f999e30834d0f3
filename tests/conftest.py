"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from pathlib import Path
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from jailhttp import FileServer, ServerConfig
from jailhttp.core.sandbox import UnconfinedSandbox
from jailhttp.handlers.static import PathResolver


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """
    A small website:

        site/
        ├── hello.txt
        ├── notes.md
        ├── report.tar.gz
        ├── README
        ├── docs/
        │   ├── index.html
        │   └── guide.txt
        └── files/
            ├── a.txt
            └── sub/
    """
    root = tmp_path / "site"
    root.mkdir()
    (root / "hello.txt").write_bytes(b"Hello, world!\n")
    (root / "notes.md").write_bytes(b"# Notes\n")
    (root / "report.tar.gz").write_bytes(b"\x1f\x8b\x08\x00binary")
    (root / "README").write_bytes(b"readme")

    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_bytes(b"<h1>Docs</h1>")
    (root / "docs" / "guide.txt").write_bytes(b"guide")

    (root / "files").mkdir()
    (root / "files" / "a.txt").write_bytes(b"a")
    (root / "files" / "sub").mkdir()
    return root


@pytest.fixture
def resolver(site_dir: Path) -> PathResolver:
    return PathResolver(str(site_dir))


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def http_request(port: int, raw: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes and read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(raw)
        chunks = []
        while True:
            chunk = s.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes) -> tuple[str, dict, bytes]:
    """Split a raw response into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return lines[0], headers, body


class ServerThread:
    """Runs a FileServer in a background thread."""

    def __init__(self, server: FileServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None
        self.error: Optional[BaseException] = None

    @property
    def port(self) -> int:
        return self.server.config.port

    def _run(self):
        try:
            self.server.run()
        except BaseException as e:
            self.error = e

    def start(self):
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

        # Wait for the accept loop to come up
        for _ in range(50):  # 5 seconds max
            if self.error is not None:
                raise self.error
            socket_server = self.server.socket_server
            if socket_server is not None and socket_server.wait_until_listening(0.1):
                return
            time.sleep(0.1)

        raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def live_server(site_dir: Path, free_port: int) -> Generator[ServerThread, None, None]:
    """A running, unconfined server on a free port."""
    config = ServerConfig(
        host="127.0.0.1",
        port=free_port,
        root_dir=str(site_dir),
        timeout=1.0,
        accept_timeout=0.2,
        log_level="WARNING",
    )
    server_thread = ServerThread(FileServer(config, sandbox=UnconfinedSandbox()))
    server_thread.start()

    yield server_thread

    server_thread.stop()
