"""Bounded-concurrency execution of a SyncPlan.

Each SyncItem runs as an independent unit on a worker thread. A counting
admission gate limits how many units are in flight; failures are
isolated per item and recorded in the returned TransferSummary.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional

from ftpsync.ftp.exceptions import OperationCanceled, ProtocolError
from ftpsync.sync.models import (
    SIMPLE_ITEM_WEIGHT,
    TRANSFER_OVERHEAD_WEIGHT,
    SyncAction,
    SyncItem,
)
from ftpsync.sync.progress import ProgressCounter
from ftpsync.utils.cancellation import CancellationToken

logger = logging.getLogger("ftpsync.scheduler")

# Reply code for "requested action not taken; file unavailable"
DIRECTORY_EXISTS_STATUS = 550

# Receives the cumulative number of bytes copied for the current item
ReportBytes = Callable[[int], None]

# Performs the transport call for one item
ItemAction = Callable[[SyncItem, ReportBytes], None]


class TransferStatus(Enum):
    """Outcome of one scheduled item."""
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TransferResult:
    """Result of running a single SyncItem."""
    item: SyncItem
    status: TransferStatus
    error_message: Optional[str] = None
    bytes_transferred: int = 0
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == TransferStatus.COMPLETED

    @property
    def path(self) -> str:
        return self.item.relative_path


@dataclass
class TransferSummary:
    """Aggregate of every TransferResult of a run."""
    results: List[TransferResult] = field(default_factory=list)
    matched: int = 0
    skipped: int = 0

    def extend(self, other: "TransferSummary") -> None:
        self.results.extend(other.results)

    @property
    def successful(self) -> List[TransferResult]:
        return [r for r in self.results if r.status == TransferStatus.COMPLETED]

    @property
    def failed(self) -> List[TransferResult]:
        return [r for r in self.results if r.status == TransferStatus.FAILED]

    @property
    def cancelled(self) -> List[TransferResult]:
        return [r for r in self.results if r.status == TransferStatus.CANCELLED]

    @property
    def bytes_transferred(self) -> int:
        return sum(r.bytes_transferred for r in self.results)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    def to_dict(self) -> dict:
        """
        Get summary statistics for the run.

        Returns:
            Dictionary with summary statistics
        """
        return {
            "matched": self.matched,
            "total": len(self.results),
            "successful": len(self.successful),
            "failed": len(self.failed),
            "cancelled": len(self.cancelled),
            "skipped": self.skipped,
            "bytes_transferred": self.bytes_transferred,
            "duration_seconds": sum(r.duration_seconds for r in self.results),
            "failures": [(r.path, r.error_message) for r in self.failed],
        }


def describe_error(error: Exception) -> str:
    """Server description for protocol errors, exception text otherwise."""
    if isinstance(error, ProtocolError):
        return f"server returned {error.description}"
    return str(error) or error.__class__.__name__


class TransferScheduler:
    """Runs SyncItems with a fixed concurrency cap."""

    DEFAULT_CONCURRENCY = 10

    # How often a blocked admission re-checks the cancellation token
    ADMISSION_POLL_SECONDS = 0.1

    def __init__(
        self,
        progress: Optional[ProgressCounter] = None,
        concurrency_limit: int = DEFAULT_CONCURRENCY,
        on_item_complete: Optional[Callable[[TransferResult], None]] = None,
        verb: str = "Transferring",
    ):
        """
        Initialize the scheduler.

        Args:
            progress: Counter advanced as items complete
            concurrency_limit: Maximum number of in-flight items
            on_item_complete: Called with each TransferResult (worker thread)
            verb: Used in per-item error log lines, e.g. "Sending"
        """
        if concurrency_limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {concurrency_limit}")
        self._progress = progress or ProgressCounter()
        self._concurrency_limit = concurrency_limit
        self._on_item_complete = on_item_complete
        self._verb = verb

    @property
    def progress(self) -> ProgressCounter:
        return self._progress

    @property
    def concurrency_limit(self) -> int:
        return self._concurrency_limit

    def execute(
        self,
        items: Iterable[SyncItem],
        action: ItemAction,
        cancellation: Optional[CancellationToken] = None,
    ) -> TransferSummary:
        """
        Run action for every item, at most concurrency_limit at a time.

        Items whose action is SKIP_NEWER are not run. The call returns
        only after every admitted unit has finished.

        Args:
            items: Ordered items to execute
            action: Performs the transfer for one item
            cancellation: Stops admission of new items when triggered

        Returns:
            TransferSummary with one result per admitted item

        Raises:
            OperationCanceled: If the token fired during the run
        """
        token = cancellation or CancellationToken()
        gate = threading.BoundedSemaphore(self._concurrency_limit)
        futures: List[Future] = []

        executor = ThreadPoolExecutor(
            max_workers=self._concurrency_limit, thread_name_prefix="ftpsync-transfer"
        )
        try:
            for item in items:
                if item.action == SyncAction.SKIP_NEWER:
                    continue
                if not self._admit(gate, token):
                    break
                try:
                    futures.append(executor.submit(self._run_unit, item, action, gate, token))
                except BaseException:
                    gate.release()
                    raise
        finally:
            wait(futures)
            executor.shutdown(wait=True)

        summary = TransferSummary(results=[f.result() for f in futures])
        if token.is_cancelled:
            logger.info(f"Run cancelled after {len(summary.results)} items were started")
            raise OperationCanceled("Transfer")
        return summary

    def _admit(self, gate: threading.BoundedSemaphore, token: CancellationToken) -> bool:
        """Block until a slot frees; False if cancelled first."""
        while not token.is_cancelled:
            if gate.acquire(timeout=self.ADMISSION_POLL_SECONDS):
                if token.is_cancelled:
                    gate.release()
                    return False
                return True
        return False

    def _run_unit(
        self,
        item: SyncItem,
        action: ItemAction,
        gate: threading.BoundedSemaphore,
        token: CancellationToken,
    ) -> TransferResult:
        start_time = time.time()
        tracker = _ByteProgress(self._progress, item.size if not item.is_directory else 0)
        try:
            try:
                action(item, tracker.report)
                self._complete(item, tracker)
                result = TransferResult(item, TransferStatus.COMPLETED)
            except OperationCanceled:
                logger.info(f"{self._verb} {item.relative_path} cancelled")
                result = TransferResult(item, TransferStatus.CANCELLED, "Cancelled")
            except ProtocolError as e:
                if self._is_existing_directory(item, e):
                    logger.debug(f"Directory {item.relative_path} already exists")
                    self._complete(item, tracker)
                    result = TransferResult(item, TransferStatus.COMPLETED)
                else:
                    result = self._failure(item, e)
            except Exception as e:
                if token.is_cancelled:
                    result = TransferResult(item, TransferStatus.CANCELLED, "Cancelled")
                else:
                    result = self._failure(item, e)

            result.bytes_transferred = tracker.last
            result.duration_seconds = time.time() - start_time
            if self._on_item_complete:
                try:
                    self._on_item_complete(result)
                except Exception as e:
                    logger.warning(f"Item completion callback failed: {e}")
            return result
        finally:
            gate.release()

    def _failure(self, item: SyncItem, error: Exception) -> TransferResult:
        message = describe_error(error)
        logger.error(f"{self._verb} {item.relative_path} failed: {message}")
        return TransferResult(item, TransferStatus.FAILED, message)

    @staticmethod
    def _is_existing_directory(item: SyncItem, error: ProtocolError) -> bool:
        return (
            item.action == SyncAction.CREATE_DIRECTORY
            and error.status_code == DIRECTORY_EXISTS_STATUS
        )

    def _complete(self, item: SyncItem, tracker: "_ByteProgress") -> None:
        """Credit the remaining bytes and the fixed per-item bonus."""
        if item.action == SyncAction.TRANSFER and not item.is_directory:
            tracker.finish()
            self._progress.add_completed(TRANSFER_OVERHEAD_WEIGHT)
        else:
            self._progress.add_completed(SIMPLE_ITEM_WEIGHT)


class _ByteProgress:
    """Turns cumulative byte reports of one item into counter deltas."""

    def __init__(self, progress: ProgressCounter, planned_size: int):
        self._progress = progress
        self._planned_size = planned_size
        self._credited = 0
        self.last = 0

    def report(self, cumulative: int) -> None:
        self.last = cumulative
        # Never credit more than was planned, so the counter stays monotonic
        capped = min(cumulative, self._planned_size)
        if capped > self._credited:
            self._progress.add_completed(capped - self._credited)
            self._credited = capped

    def finish(self) -> None:
        if self._planned_size > self._credited:
            self._progress.add_completed(self._planned_size - self._credited)
            self._credited = self._planned_size
