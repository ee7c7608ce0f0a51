"""Put, get and delete operations.

Each operation wires the pieces together for one run: enumerate the
source tree, plan against the destination, then hand the plan to the
TransferScheduler. An operation instance owns the ProgressCounter of
its run.
"""

import contextlib
import logging
import os
import posixpath
import tempfile
from pathlib import Path
from typing import List, Optional

from ftpsync.config.settings import SyncSettings
from ftpsync.ftp.transport import Transport
from ftpsync.ftp.walker import TreeWalker, make_directory_lister
from ftpsync.local.scanner import LocalScanner
from ftpsync.sync.mask import MaskingContext
from ftpsync.sync.models import Entry, SyncItem, SyncPlan
from ftpsync.sync.planner import DestinationIndex, SyncPlanner
from ftpsync.sync.progress import ProgressCounter
from ftpsync.sync.scheduler import ItemAction, ReportBytes, TransferScheduler, TransferSummary
from ftpsync.utils.cancellation import CancellationToken

logger = logging.getLogger("ftpsync.operations")

PARTIAL_SUFFIX = ".part"


class SyncOperation:
    """Shared plumbing of the put, get and delete operations."""

    def __init__(
        self,
        settings: SyncSettings,
        transport: Transport,
        cancellation: Optional[CancellationToken] = None,
    ):
        """
        Initialize the operation.

        Args:
            settings: Job settings (paths, masks, flags)
            transport: Transport capability for the server
            cancellation: Token shared by every call of the run
        """
        self._settings = settings
        self._transport = transport
        self._cancellation = cancellation or CancellationToken()
        self._progress = ProgressCounter()
        self._mask = MaskingContext(settings.includes, settings.excludes)
        self._planner = SyncPlanner(self._mask, verbose=settings.verbose)

    @property
    def settings(self) -> SyncSettings:
        return self._settings

    @property
    def progress(self) -> ProgressCounter:
        return self._progress

    @property
    def cancellation(self) -> CancellationToken:
        return self._cancellation

    def get_progress(self) -> Optional[int]:
        """Percentage complete, or None while the amount of work is unknown."""
        return self._progress.percent

    def cancel(self) -> None:
        """Request cancellation of the run."""
        self._cancellation.cancel()

    def execute(self) -> TransferSummary:
        raise NotImplementedError

    def remote_path(self, rel_path: str) -> str:
        """Absolute server path for a relative path."""
        return posixpath.join(self._settings.server_path, rel_path)

    def walk_remote(self) -> List[Entry]:
        """List the whole remote tree below the server path."""
        lister = make_directory_lister(
            self._transport,
            tolerate_date_errors=self._settings.use_current_date_on_error,
            cancellation=self._cancellation,
        )
        walker = TreeWalker(lister, cancellation=self._cancellation)
        return walker.walk(self._settings.server_path)

    def _run_phase(
        self,
        items: List[SyncItem],
        action: ItemAction,
        concurrency_limit: int,
        verb: str,
    ) -> TransferSummary:
        scheduler = TransferScheduler(
            self._progress, concurrency_limit=concurrency_limit, verb=verb
        )
        return scheduler.execute(items, action, self._cancellation)

    def _run_transfer_plan(
        self,
        plan: SyncPlan,
        create_directory: ItemAction,
        transfer_file: ItemAction,
        verb: str,
    ) -> TransferSummary:
        """Create directories one by one, then transfer files concurrently."""
        self._progress.add_total(plan.total_weight)

        summary = self._run_phase(plan.directory_items, create_directory, 1, "Creating")
        files = self._run_phase(
            plan.file_items, transfer_file, self._settings.concurrency_limit, verb
        )
        summary.extend(files)
        summary.skipped = len(plan.skipped_items)
        return summary


class PutOperation(SyncOperation):
    """Uploads a local tree to the FTP server."""

    def execute(self) -> TransferSummary:
        """
        Upload every matched local file.

        Returns:
            TransferSummary of the run

        Raises:
            OperationCanceled: If the run was cancelled
            ListingError: If the remote listing needed for only_newer fails
        """
        local = LocalScanner(self._settings.local_path)

        logger.debug("Retrieving local file listing...")
        matches = local.list_recursive(self._mask)
        logger.info(f"File mask matched {len(matches)} files.")

        index = None
        if self._settings.only_newer:
            logger.debug("Retrieving remote file listing...")
            remote = self.walk_remote()
            index = DestinationIndex.from_entries(remote, self._settings.server_path, self._mask)

        plan = self._planner.plan(matches, local.root, index, self._settings.only_newer)

        def create_directory(item: SyncItem, report: ReportBytes) -> None:
            self._transport.make_directory(self.remote_path(item.relative_path), self._cancellation)

        def send_file(item: SyncItem, report: ReportBytes) -> None:
            with open(item.entry.full_path, "rb") as f:
                self._transport.upload(
                    self.remote_path(item.relative_path), f, report, self._cancellation
                )

        summary = self._run_transfer_plan(plan, create_directory, send_file, "Sending")
        summary.matched = len(matches)
        return summary


class GetOperation(SyncOperation):
    """Downloads a remote tree from the FTP server."""

    def execute(self) -> TransferSummary:
        """
        Download every matched remote file.

        Returns:
            TransferSummary of the run

        Raises:
            OperationCanceled: If the run was cancelled
            ListingError: If any remote directory cannot be listed
        """
        logger.debug("Retrieving remote file listing...")
        remote = self.walk_remote()
        matched = sum(1 for _ in self._planner.match(remote, self._settings.server_path))
        logger.info(f"File mask matched {matched} of {len(remote)} files.")

        local = LocalScanner(self._settings.local_path)
        local.base_path.mkdir(parents=True, exist_ok=True)

        index = None
        if self._settings.only_newer:
            logger.debug("Retrieving local file listing...")
            index = DestinationIndex.from_entries(
                local.list_recursive(self._mask), local.root, self._mask
            )

        plan = self._planner.plan(
            remote, self._settings.server_path, index, self._settings.only_newer
        )

        def create_directory(item: SyncItem, report: ReportBytes) -> None:
            local.create_directory(item.relative_path)

        def retrieve_file(item: SyncItem, report: ReportBytes) -> None:
            target: Path = local.resolve(item.relative_path)
            target.parent.mkdir(parents=True, exist_ok=True)
            # The existing copy stays untouched until the download completes
            fd, partial = tempfile.mkstemp(
                dir=target.parent, prefix=f".{target.name}.", suffix=PARTIAL_SUFFIX
            )
            try:
                with os.fdopen(fd, "wb") as f:
                    self._transport.download(item.entry.full_path, f, report, self._cancellation)
                os.replace(partial, target)
            except BaseException:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(partial)
                raise

        summary = self._run_transfer_plan(plan, create_directory, retrieve_file, "Retrieving")
        summary.matched = matched
        return summary


class DeleteOperation(SyncOperation):
    """Deletes matched files and directories from the FTP server."""

    def execute(self) -> TransferSummary:
        """
        Delete every matched remote entry, contents before directories.

        Deletes run one at a time so a directory is only removed after
        everything inside it.

        Returns:
            TransferSummary of the run

        Raises:
            OperationCanceled: If the run was cancelled
            ListingError: If any remote directory cannot be listed
        """
        logger.debug("Retrieving remote file listing...")
        remote = self.walk_remote()
        plan = self._planner.plan_deletion(remote, self._settings.server_path)
        logger.info(f"File mask matched {len(plan)} of {len(remote)} files.")

        self._progress.add_total(plan.total_weight)

        def delete_entry(item: SyncItem, report: ReportBytes) -> None:
            self._transport.delete(item.entry.full_path, item.is_directory, self._cancellation)

        summary = self._run_phase(plan.delete_items, delete_entry, 1, "Deleting")
        summary.matched = len(plan)
        return summary
