"""Local filesystem enumerator.

Produces the same Entry shape as the remote listing parser so local and
remote trees can be planned against each other.
"""

import logging
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from ftpsync.sync.mask import MaskingContext
from ftpsync.sync.models import Entry, EntryAttributes
from ftpsync.sync.planner import relative_path

logger = logging.getLogger("ftpsync.local_scanner")


def to_entry_path(path: Path) -> str:
    """Forward-slash form of a local path, as used in Entry.full_path."""
    return path.as_posix()


class LocalScanner:
    """Enumerates a local directory tree into entries."""

    def __init__(self, base_path: Union[str, Path]):
        """
        Initialize the local scanner.

        Args:
            base_path: Root of the local tree
        """
        self._base_path = Path(base_path).absolute()
        self._last_scan: Optional[datetime] = None

    @property
    def base_path(self) -> Path:
        return self._base_path

    @property
    def root(self) -> str:
        """Tree root in Entry path form."""
        return to_entry_path(self._base_path)

    @property
    def last_scan(self) -> Optional[datetime]:
        """Timestamp of last scan."""
        return self._last_scan

    def list_recursive(self, mask: Optional[MaskingContext] = None) -> List[Entry]:
        """
        List every entry under the base path matched by mask.

        Directories are descended into even when they do not match
        themselves, unless an exclude rule covers them. Entries are
        returned level by level, like TreeWalker.walk.

        Args:
            mask: Include/exclude rules; None selects everything

        Returns:
            Matched entries

        Raises:
            FileNotFoundError: If the base path does not exist
        """
        if not self._base_path.is_dir():
            raise FileNotFoundError(f"Local path does not exist: {self._base_path}")

        mask = mask or MaskingContext()
        entries: List[Entry] = []
        level = [self._base_path]

        while level:
            next_level: List[Path] = []
            for directory in level:
                try:
                    children = sorted(directory.iterdir(), key=lambda p: p.name)
                except PermissionError as e:
                    logger.warning(f"Permission denied accessing {directory}: {e}")
                    continue

                for child in children:
                    rel = relative_path(to_entry_path(child), self.root)
                    if rel is None or mask.is_excluded(rel):
                        continue

                    entry = self._to_entry(child)
                    if entry is None:
                        continue
                    if entry.is_directory:
                        next_level.append(child)
                    if mask.is_match(rel):
                        entries.append(entry)
            level = next_level

        self._last_scan = datetime.now()
        logger.debug(f"Local scan of {self._base_path} matched {len(entries)} entries")
        return entries

    def _to_entry(self, path: Path) -> Optional[Entry]:
        try:
            info = path.stat()
        except OSError as e:
            logger.warning(f"Cannot stat {path}: {e}")
            return None

        last_modified = datetime.fromtimestamp(info.st_mtime, tz=timezone.utc)
        attributes = EntryAttributes.NONE
        if path.name.startswith("."):
            attributes |= EntryAttributes.HIDDEN
        if not info.st_mode & stat.S_IWUSR:
            attributes |= EntryAttributes.READ_ONLY
        if path.is_symlink():
            attributes |= EntryAttributes.SYMLINK

        full_path = to_entry_path(path)
        if stat.S_ISDIR(info.st_mode):
            if path.is_symlink():
                # Do not follow directory links; avoids cycles
                return None
            return Entry.directory(full_path, last_modified, attributes)
        return Entry.file(full_path, last_modified, info.st_size, attributes)

    def create_directory(self, rel_path: str) -> Path:
        """Create a directory (and parents) below the base path."""
        target = self._base_path.joinpath(*rel_path.split("/"))
        target.mkdir(parents=True, exist_ok=True)
        return target

    def resolve(self, rel_path: str) -> Path:
        """Local path for a relative path."""
        return self._base_path.joinpath(*rel_path.split("/"))
