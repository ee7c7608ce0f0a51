"""Recursive remote tree walker for ftpsync.

Expands a remote directory tree level by level: every directory found
at one depth is listed concurrently, then the walker moves on to the
next depth. The number of sequential round trips is bounded by the
tree depth instead of the number of directories.
"""

import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional

from ftpsync.ftp.exceptions import OperationCanceled
from ftpsync.ftp.listing import parse_listing
from ftpsync.ftp.transport import Transport
from ftpsync.sync.models import Entry
from ftpsync.utils.cancellation import CancellationToken

logger = logging.getLogger("ftpsync.walker")

# Lists one directory and returns its parsed entries
DirectoryLister = Callable[[str], List[Entry]]


def make_directory_lister(
    transport: Transport,
    tolerate_date_errors: bool = False,
    cancellation: Optional[CancellationToken] = None,
) -> DirectoryLister:
    """
    Build the "list one directory" primitive used by TreeWalker.

    Args:
        transport: Transport capability
        tolerate_date_errors: Use the current time for bad listing dates
        cancellation: Token passed to every listing request

    Returns:
        Callable mapping a path to its parsed entries
    """
    def list_directory(path: str) -> List[Entry]:
        batch = transport.list_directory(path, cancellation)
        return parse_listing(batch, tolerate_date_errors)

    return list_directory


class TreeWalker:
    """Breadth-first, level-by-level remote tree expansion."""

    DEFAULT_MAX_PARALLEL_LISTINGS = 8

    def __init__(
        self,
        list_directory: DirectoryLister,
        cancellation: Optional[CancellationToken] = None,
        max_parallel_listings: int = DEFAULT_MAX_PARALLEL_LISTINGS,
    ):
        """
        Initialize the walker.

        Args:
            list_directory: Lists one directory into entries
            cancellation: Optional token checked between and during levels
            max_parallel_listings: Cap on in-flight listings per level
        """
        if max_parallel_listings < 1:
            raise ValueError("max_parallel_listings must be at least 1")
        self._list_directory = list_directory
        self._cancellation = cancellation
        self._max_parallel_listings = max_parallel_listings

    def _check_cancelled(self) -> None:
        if self._cancellation is not None:
            self._cancellation.raise_if_cancelled("Directory listing")

    def walk(self, root_path: str) -> List[Entry]:
        """
        List root_path and every directory below it.

        Args:
            root_path: Absolute remote directory

        Returns:
            All entries of the subtree, level by level; within a level,
            in the order their parent directories were discovered

        Raises:
            OperationCanceled: If the token fires during the walk
            ListingError, ProtocolError, FTPError: If any single listing fails
        """
        self._check_cancelled()
        logger.debug(f"Listing {root_path}")
        added = self._list_directory(root_path)
        entries: List[Entry] = []
        depth = 0

        while added:
            entries.extend(added)
            directories = [e for e in added if e.is_directory]
            if not directories:
                break

            depth += 1
            self._check_cancelled()
            logger.debug(f"Listing {len(directories)} directories at depth {depth}")
            added = self._list_level(directories)

        logger.debug(f"Walk of {root_path} found {len(entries)} entries")
        return entries

    def _list_level(self, directories: List[Entry]) -> List[Entry]:
        """Fan out one listing per directory, join, and concatenate in order."""
        workers = min(self._max_parallel_listings, len(directories))
        executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="ftpsync-list"
        )
        try:
            futures: List[Future] = [
                executor.submit(self._list_directory, d.full_path) for d in directories
            ]
            done, not_done = wait(futures, return_when=FIRST_EXCEPTION)

            failed = [f for f in futures if f in done and f.exception() is not None]
            if failed:
                for future in not_done:
                    future.cancel()
                if self._cancellation is not None:
                    self._cancellation.raise_if_cancelled("Directory listing")
                # Prefer a real failure over a cancellation echo
                errors = [f.exception() for f in failed]
                real = [e for e in errors if not isinstance(e, OperationCanceled)]
                raise (real or errors)[0]

            results: List[Entry] = []
            for future in futures:
                results.extend(future.result())
            return results
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
