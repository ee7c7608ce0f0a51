"""Unit tests for LocalScanner."""

import os
import stat
import sys

import pytest

from ftpsync.local.scanner import LocalScanner, to_entry_path
from ftpsync.sync.mask import MaskingContext
from ftpsync.sync.models import EntryKind


def relative_paths(scanner, entries):
    root = scanner.root
    return [e.full_path[len(root) + 1:] for e in entries]


class TestLocalScanner:
    """Tests for local tree enumeration."""

    def test_root_is_absolute(self, local_tree, monkeypatch):
        monkeypatch.chdir(local_tree.parent)
        scanner = LocalScanner("src")

        assert scanner.base_path.is_absolute()
        assert scanner.base_path.resolve() == local_tree.resolve()
        assert scanner.root == to_entry_path(scanner.base_path)

    def test_lists_level_by_level(self, local_tree):
        scanner = LocalScanner(local_tree)

        paths = relative_paths(scanner, scanner.list_recursive())

        assert paths == [
            "build",
            "docs",
            "readme.txt",
            "build/out.o",
            "docs/guide.md",
            "docs/img",
            "docs/img/a.png",
        ]

    def test_entry_fields(self, local_tree):
        scanner = LocalScanner(local_tree)
        entries = {e.name: e for e in scanner.list_recursive()}

        assert entries["readme.txt"].kind == EntryKind.FILE
        assert entries["readme.txt"].size == 5
        assert entries["docs"].kind == EntryKind.DIRECTORY
        assert entries["docs"].size is None
        assert entries["readme.txt"].last_modified.tzinfo is not None

    def test_mask_selects_but_still_descends(self, local_tree):
        scanner = LocalScanner(local_tree)
        mask = MaskingContext(includes=["**/*.png"])

        paths = relative_paths(scanner, scanner.list_recursive(mask))

        assert paths == ["docs/img/a.png"]

    def test_excluded_directory_is_not_descended(self, local_tree):
        scanner = LocalScanner(local_tree)
        mask = MaskingContext(excludes=["docs"])

        paths = relative_paths(scanner, scanner.list_recursive(mask))

        assert paths == ["build", "readme.txt", "build/out.o"]

    def test_hidden_file(self, local_tree):
        (local_tree / ".env").write_text("X=1")
        entries = {e.name: e for e in LocalScanner(local_tree).list_recursive()}

        assert entries[".env"].is_hidden is True
        assert entries["readme.txt"].is_hidden is False

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_read_only_file(self, local_tree):
        target = local_tree / "readme.txt"
        os.chmod(target, stat.S_IRUSR)
        try:
            entries = {e.name: e for e in LocalScanner(local_tree).list_recursive()}
        finally:
            os.chmod(target, stat.S_IRUSR | stat.S_IWUSR)

        assert entries["readme.txt"].is_read_only is True

    def test_missing_base_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LocalScanner(tmp_path / "missing").list_recursive()

    def test_last_scan_is_recorded(self, local_tree):
        scanner = LocalScanner(local_tree)
        assert scanner.last_scan is None

        scanner.list_recursive()

        assert scanner.last_scan is not None

    def test_create_and_resolve(self, tmp_path):
        scanner = LocalScanner(tmp_path)

        created = scanner.create_directory("a/b")

        assert created.is_dir()
        assert scanner.resolve("a/b/c.txt") == tmp_path / "a" / "b" / "c.txt"
