"""Mock FTP server for integration testing.

Uses pyftpdlib to serve a temporary directory tree over FTP on the
loopback interface.
"""

import socket
import tempfile
import threading
import time
from pathlib import Path
from typing import Optional

import pytest
from pyftpdlib.authorizers import DummyAuthorizer
from pyftpdlib.handlers import FTPHandler
from pyftpdlib.servers import FTPServer


class MockFTPServer:
    """
    Local FTP server backed by a temporary directory.

    Usage:
        with MockFTPServer() as server:
            # Connect to server.host:server.port
            # server.root_dir contains the served filesystem
            pass
    """

    DEFAULT_USER = "testuser"
    DEFAULT_PASS = "testpass"

    def __init__(
        self,
        port: int = 0,
        username: str = DEFAULT_USER,
        password: str = DEFAULT_PASS,
    ):
        """
        Initialize the mock FTP server.

        Args:
            port: Port to listen on (0 picks a free port)
            username: FTP username
            password: FTP password
        """
        self.port = port
        self.username = username
        self.password = password

        self._server: Optional[FTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._temp_dir: Optional[tempfile.TemporaryDirectory] = None
        self._root_dir: Optional[Path] = None

    @property
    def root_dir(self) -> Path:
        """Root directory of the served filesystem."""
        if self._root_dir is None:
            raise RuntimeError("Server not started")
        return self._root_dir

    @property
    def host(self) -> str:
        """Server host address."""
        return "127.0.0.1"

    def _create_site_structure(self) -> None:
        """Create a small website tree under /www."""
        www = self._root_dir / "www"
        (www / "css").mkdir(parents=True)
        (www / "img").mkdir()
        (www / "index.html").write_text("<h1>Hello</h1>")
        (www / "css" / "main.css").write_text("body { margin: 0; }")
        (www / "img" / "logo.png").write_bytes(b"\x89PNG" + b"\x00" * 60)

    def start(self) -> None:
        """Start the FTP server in a background thread."""
        self._temp_dir = tempfile.TemporaryDirectory(prefix="mock_ftpsync_")
        self._root_dir = Path(self._temp_dir.name)

        self._create_site_structure()

        authorizer = DummyAuthorizer()
        authorizer.add_user(
            self.username,
            self.password,
            str(self._root_dir),
            perm="elradfmw"  # Full permissions
        )

        class Handler(FTPHandler):
            pass

        Handler.authorizer = authorizer
        Handler.use_gmt_times = True

        self._server = FTPServer((self.host, self.port), Handler)
        self.port = self._server.socket.getsockname()[1]

        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

        self._wait_until_ready()

    def _wait_until_ready(self, timeout: float = 5.0) -> None:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            try:
                with socket.create_connection((self.host, self.port), timeout=0.5):
                    return
            except OSError:
                time.sleep(0.05)
        raise RuntimeError("Mock FTP server did not start")

    def stop(self) -> None:
        """Stop the FTP server and clean up."""
        if self._server:
            self._server.close_all()

        if self._temp_dir:
            self._temp_dir.cleanup()

        self._server = None
        self._thread = None
        self._temp_dir = None
        self._root_dir = None

    def __enter__(self) -> "MockFTPServer":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.stop()


@pytest.fixture
def mock_ftp_server():
    """Pytest fixture providing a running mock FTP server."""
    server = MockFTPServer()
    server.start()
    yield server
    server.stop()
