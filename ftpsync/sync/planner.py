"""Sync planning: decide what has to move, and in which order.

The planner is pure: it takes entry lists produced by the TreeWalker or
the LocalScanner and returns an immutable SyncPlan. It never touches
the network or the filesystem.
"""

import logging
import posixpath
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ftpsync.sync.mask import MaskingContext
from ftpsync.sync.models import (
    SIMPLE_ITEM_WEIGHT,
    TRANSFER_OVERHEAD_WEIGHT,
    Entry,
    SyncAction,
    SyncItem,
    SyncPlan,
)

logger = logging.getLogger("ftpsync.planner")


def relative_path(full_path: str, root: str) -> Optional[str]:
    """
    Compute the path of an entry relative to its tree root.

    Backslashes become forward slashes and leading/trailing separators
    are trimmed.

    Args:
        full_path: Absolute entry path
        root: Tree root the entry was enumerated from

    Returns:
        Relative path ("" for the root itself), or None if full_path
        lies outside root
    """
    path = full_path.replace("\\", "/")
    base = root.replace("\\", "/").rstrip("/")
    if base and path != base and not path.startswith(base + "/"):
        return None
    return path[len(base):].strip("/")


def _depth(rel_path: str) -> int:
    return rel_path.count("/") + 1 if rel_path else 0


class DestinationIndex:
    """Case-insensitive map of relative path to last-modified time."""

    def __init__(self, timestamps: Optional[Dict[str, datetime]] = None):
        self._timestamps: Dict[str, datetime] = {}
        for path, modified in (timestamps or {}).items():
            self[path] = modified

    @staticmethod
    def _key(path: str) -> str:
        return path.replace("\\", "/").strip("/").lower()

    def __setitem__(self, path: str, modified: datetime) -> None:
        self._timestamps[self._key(path)] = modified

    def __contains__(self, path: str) -> bool:
        return self._key(path) in self._timestamps

    def __len__(self) -> int:
        return len(self._timestamps)

    def get(self, path: str) -> Optional[datetime]:
        return self._timestamps.get(self._key(path))

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[Entry],
        root: str,
        mask: Optional[MaskingContext] = None
    ) -> "DestinationIndex":
        """
        Index the files of a destination tree.

        Args:
            entries: Destination entries
            root: Destination tree root
            mask: Optional mask; unmatched entries are left out

        Returns:
            DestinationIndex keyed by relative path
        """
        index = cls()
        for entry in entries:
            if not entry.is_file:
                continue
            rel = relative_path(entry.full_path, root)
            if rel is None:
                continue
            if mask is not None and not mask.is_match(rel):
                continue
            index[rel] = entry.last_modified
        return index


class SyncPlanner:
    """Builds transfer and deletion plans from entry lists."""

    def __init__(self, mask: Optional[MaskingContext] = None, verbose: bool = False):
        """
        Initialize the planner.

        Args:
            mask: Include/exclude rules; None selects everything
            verbose: Log the reason for every skipped file
        """
        self._mask = mask or MaskingContext()
        self._verbose = verbose

    @property
    def mask(self) -> MaskingContext:
        return self._mask

    def match(self, entries: Iterable[Entry], root: str) -> Iterator[Tuple[Entry, str]]:
        """
        Yield (entry, relative_path) for every entry selected by the mask.

        Entries outside root are dropped.
        """
        for entry in entries:
            rel = relative_path(entry.full_path, root)
            if rel is None:
                logger.debug(f"Ignoring {entry.full_path}: outside of {root}")
                continue
            if not rel:
                continue
            if self._mask.is_match(rel):
                yield entry, rel

    def plan(
        self,
        source_entries: Iterable[Entry],
        source_root: str,
        destination_index: Optional[DestinationIndex] = None,
        only_if_newer: bool = False,
    ) -> SyncPlan:
        """
        Plan the transfer of a source tree.

        Directory creations come first, parents before children, followed
        by the files. A file is marked SKIP_NEWER when only_if_newer is set
        and the destination copy is strictly newer.

        Args:
            source_entries: Entries of the source tree
            source_root: Root the source entries were enumerated from
            destination_index: Destination timestamps by relative path
            only_if_newer: Enable the newer-destination skip rule

        Returns:
            Ordered SyncPlan
        """
        index = destination_index if only_if_newer and destination_index is not None else None

        directories: Dict[str, SyncItem] = {}
        files: List[SyncItem] = []

        for entry, rel in self.match(source_entries, source_root):
            if entry.is_directory:
                directories.setdefault(rel, self._directory_item(entry, rel))
                continue

            if index is not None and self._destination_is_newer(entry, rel, index):
                files.append(SyncItem(entry, rel, SyncAction.SKIP_NEWER, 0))
                continue

            weight = TRANSFER_OVERHEAD_WEIGHT + (entry.size or 0)
            files.append(SyncItem(entry, rel, SyncAction.TRANSFER, weight))

        # Uploads need every ancestor directory, matched by the mask or not
        for item in files:
            if item.action != SyncAction.TRANSFER:
                continue
            parent = posixpath.dirname(item.relative_path)
            while parent and parent not in directories:
                directory = Entry.directory(
                    posixpath.join(source_root.rstrip("/") or "/", parent),
                    item.entry.last_modified,
                )
                directories[parent] = self._directory_item(directory, parent)
                parent = posixpath.dirname(parent)

        ordered_dirs = sorted(directories.values(), key=lambda i: _depth(i.relative_path))
        return SyncPlan(tuple(ordered_dirs) + tuple(files))

    def plan_deletion(self, entries: Iterable[Entry], root: str) -> SyncPlan:
        """
        Plan the deletion of every matched entry.

        The matched list is reversed so that, for a level-ordered walk,
        each directory comes after everything inside it.

        Args:
            entries: Entries as returned by TreeWalker.walk
            root: Root the entries were listed from

        Returns:
            Ordered SyncPlan of DELETE items
        """
        matched = [
            SyncItem(entry, rel, SyncAction.DELETE, SIMPLE_ITEM_WEIGHT)
            for entry, rel in self.match(entries, root)
        ]
        matched.reverse()
        return SyncPlan(tuple(matched))

    @staticmethod
    def _directory_item(entry: Entry, rel: str) -> SyncItem:
        return SyncItem(entry, rel, SyncAction.CREATE_DIRECTORY, SIMPLE_ITEM_WEIGHT)

    def _destination_is_newer(
        self, entry: Entry, rel: str, index: DestinationIndex
    ) -> bool:
        destination_modified = index.get(rel)
        if destination_modified is None or destination_modified <= entry.last_modified:
            return False

        if self._verbose:
            logger.debug(
                f'Not transferring "{entry.full_path}": source was last modified at '
                f"{entry.last_modified}, but destination was last modified at "
                f"{destination_modified}"
            )
        return True
