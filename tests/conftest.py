"""Pytest configuration and shared fixtures for ftpsync tests."""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from ftpsync.ftp.exceptions import ProtocolError
from ftpsync.sync.models import ListingBatch
from ftpsync.utils.cancellation import CancellationToken


# Fixed timestamp used for entries built in tests
T0 = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@dataclass
class FakeTransport:
    """
    In-memory Transport.

    listings maps a directory path to its raw LIST lines; files maps a
    path to its content. Every call is recorded in calls.
    """
    listings: Dict[str, List[str]] = field(default_factory=dict)
    files: Dict[str, bytes] = field(default_factory=dict)
    fail_paths: Dict[str, Exception] = field(default_factory=dict)
    calls: List[tuple] = field(default_factory=list)

    def __post_init__(self):
        self._lock = threading.Lock()

    def _record(self, *call) -> None:
        with self._lock:
            self.calls.append(call)
        error = self.fail_paths.get(call[1])
        if error is not None:
            raise error

    def list_directory(self, path, cancellation=None):
        self._record("list", path)
        if path not in self.listings:
            raise ProtocolError("550 No such directory.", 550)
        return ListingBatch(path, list(self.listings[path]))

    def upload(self, remote_path, source, on_progress=None, cancellation=None):
        self._record("upload", remote_path)
        data = source.read()
        with self._lock:
            self.files[remote_path] = data
        if on_progress:
            on_progress(len(data))
        return len(data)

    def download(self, remote_path, sink, on_progress=None, cancellation=None):
        self._record("download", remote_path)
        data = self.files.get(remote_path, b"")
        sink.write(data)
        if on_progress:
            on_progress(len(data))
        return len(data)

    def delete(self, path, is_directory, cancellation=None):
        self._record("rmd" if is_directory else "dele", path)

    def make_directory(self, path, cancellation=None):
        self._record("mkd", path)

    def calls_of(self, kind: str) -> List[str]:
        return [c[1] for c in self.calls if c[0] == kind]


@pytest.fixture
def token() -> CancellationToken:
    """Provide a fresh cancellation token."""
    return CancellationToken()


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Provide an empty in-memory transport."""
    return FakeTransport()


@pytest.fixture
def temp_settings_file(tmp_path: Path) -> Path:
    """Provide a temporary settings file path for testing."""
    return tmp_path / "settings.json"


@pytest.fixture
def local_tree(tmp_path: Path) -> Path:
    """
    Create a small local tree:

        src/readme.txt      (5 bytes)
        src/docs/guide.md   (11 bytes)
        src/docs/img/a.png  (3 bytes)
        src/build/out.o     (4 bytes)
    """
    root = tmp_path / "src"
    (root / "docs" / "img").mkdir(parents=True)
    (root / "build").mkdir()
    (root / "readme.txt").write_bytes(b"hello")
    (root / "docs" / "guide.md").write_bytes(b"guide text!")
    (root / "docs" / "img" / "a.png").write_bytes(b"png")
    (root / "build" / "out.o").write_bytes(b"obj!")
    return root


def unix_line(
    name: str,
    size: int = 0,
    is_dir: bool = False,
    date: str = "Jan 15  2024",
    permissions: Optional[str] = None,
) -> str:
    """Build a Unix style listing line."""
    perms = permissions or ("drwxr-xr-x" if is_dir else "-rw-r--r--")
    return f"{perms}   1 owner    group    {size:>8} {date} {name}"
