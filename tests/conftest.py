"""
pytest configuration and fixtures.
"""

import threading
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, ServerConfig, create_app


@pytest.fixture
def sample_get_request() -> bytes:
    """Request for the echo endpoint with a few headers."""
    return (
        b"GET /echo/abc HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: curl/8\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """POST with a body; the body must be ignored."""
    body = b"X-Fake: not-a-header\r\n"
    return (
        b"POST /files/upload.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def files_dir(tmp_path: Path) -> Path:
    """Base directory with one known file; a secret sits next to it."""
    base = tmp_path / "files"
    base.mkdir()
    (base / "hello.txt").write_bytes(b"Hello, World!")
    (base / "nested").mkdir()
    (base / "nested" / "data.bin").write_bytes(bytes(range(256)))
    (tmp_path / "secret.txt").write_bytes(b"top secret")
    return base


@pytest.fixture
def config(files_dir: Path) -> ServerConfig:
    """Test configuration: ephemeral port, small pool, short deadline."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        directory=str(files_dir),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


class ServerThread:
    """Runs an HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self):
        return self.server.address

    def start(self) -> "ServerThread":
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")
        return self

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[ServerThread, None, None]:
    """The standard application, listening on an ephemeral port."""
    server_thread = ServerThread(create_app(config)).start()

    yield server_thread

    server_thread.stop()


@pytest.fixture
def server_factory() -> Generator:
    """
    Start servers from a config (standard routes) or a ready-made
    HTTPServer; all are stopped afterwards.
    """
    started = []

    def start(app) -> ServerThread:
        if isinstance(app, ServerConfig):
            app = create_app(app)
        server_thread = ServerThread(app).start()
        started.append(server_thread)
        return server_thread

    yield start

    for server_thread in started:
        server_thread.stop()
