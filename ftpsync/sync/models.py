"""Data model shared by the listing parser, planner and scheduler.

Entry is the node type of both the remote and the local tree; SyncItem
is one planned unit of work derived from an Entry.
"""

import posixpath
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, Flag
from typing import List, Optional, Tuple


class EntryKind(Enum):
    """Kind of a tree node."""
    FILE = "file"
    DIRECTORY = "directory"


class EntryAttributes(Flag):
    """Best-effort attributes derived from listing syntax."""
    NONE = 0
    HIDDEN = 1
    READ_ONLY = 2
    SYMLINK = 4


class SyncAction(Enum):
    """What the scheduler should do with a SyncItem."""
    TRANSFER = "transfer"
    SKIP_NEWER = "skip_newer"
    CREATE_DIRECTORY = "create_directory"
    DELETE = "delete"


# Fixed per-file weight covering connect and finalize
TRANSFER_OVERHEAD_WEIGHT = 100

# Weight of a directory creation or a delete request
SIMPLE_ITEM_WEIGHT = 1


@dataclass(frozen=True)
class Entry:
    """A file or directory in a remote or local tree."""
    full_path: str
    last_modified: datetime
    kind: EntryKind
    size: Optional[int] = None
    attributes: EntryAttributes = EntryAttributes.NONE

    @classmethod
    def file(
        cls,
        full_path: str,
        last_modified: datetime,
        size: int,
        attributes: EntryAttributes = EntryAttributes.NONE
    ) -> "Entry":
        """Create a file entry."""
        return cls(full_path, last_modified, EntryKind.FILE, size, attributes)

    @classmethod
    def directory(
        cls,
        full_path: str,
        last_modified: datetime,
        attributes: EntryAttributes = EntryAttributes.NONE
    ) -> "Entry":
        """Create a directory entry."""
        return cls(full_path, last_modified, EntryKind.DIRECTORY, None, attributes)

    @property
    def name(self) -> str:
        """Last path segment."""
        return posixpath.basename(self.full_path.rstrip("/"))

    @property
    def is_file(self) -> bool:
        return self.kind == EntryKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind == EntryKind.DIRECTORY

    @property
    def is_hidden(self) -> bool:
        return bool(self.attributes & EntryAttributes.HIDDEN)

    @property
    def is_read_only(self) -> bool:
        return bool(self.attributes & EntryAttributes.READ_ONLY)

    @property
    def is_symlink(self) -> bool:
        return bool(self.attributes & EntryAttributes.SYMLINK)


@dataclass(frozen=True)
class ListingBatch:
    """Raw lines returned by one LIST call and the path they belong to."""
    base_path: str
    lines: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.lines)


@dataclass(frozen=True)
class SyncItem:
    """One planned unit of work."""
    entry: Entry
    relative_path: str
    action: SyncAction
    weight: int = 0

    @property
    def is_directory(self) -> bool:
        return self.entry.is_directory

    @property
    def size(self) -> int:
        """Planned byte count for file transfers, 0 otherwise."""
        return self.entry.size or 0


@dataclass(frozen=True)
class SyncPlan:
    """Ordered, immutable list of SyncItems produced by the planner."""
    items: Tuple[SyncItem, ...] = ()

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def directory_items(self) -> List[SyncItem]:
        """Directory creation items, parents before children."""
        return [i for i in self.items if i.action == SyncAction.CREATE_DIRECTORY]

    @property
    def file_items(self) -> List[SyncItem]:
        """File transfers that will actually run."""
        return [i for i in self.items if i.action == SyncAction.TRANSFER]

    @property
    def skipped_items(self) -> List[SyncItem]:
        """Files skipped because the destination copy is newer."""
        return [i for i in self.items if i.action == SyncAction.SKIP_NEWER]

    @property
    def delete_items(self) -> List[SyncItem]:
        """Deletions in execution order."""
        return [i for i in self.items if i.action == SyncAction.DELETE]

    @property
    def total_weight(self) -> int:
        """Sum of the progress weights of every item."""
        return sum(i.weight for i in self.items)
