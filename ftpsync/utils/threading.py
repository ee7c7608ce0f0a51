"""Background runner for sync operations.

The CLI runs put/get/delete on a worker thread so the main thread can
keep drawing progress and turn Ctrl+C into a cancellation request.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

from ftpsync.ftp.exceptions import OperationCanceled
from ftpsync.utils.cancellation import CancellationToken


T = TypeVar("T")


class TaskStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TaskResult(Generic[T]):
    """Outcome of a finished run; error is set for FAILED and cancelled runs."""
    status: TaskStatus
    result: Optional[T] = None
    error: Optional[Exception] = None


class ThreadedTask(Generic[T]):
    """
    Runs one operation on a daemon thread.

    A run whose token was triggered ends CANCELLED even if the callable
    returned normally, since cancelled work may have been cut short.

    Usage:
        task = ThreadedTask(operation.execute, cancellation=operation.cancellation)
        task.start()
        task.watch(0.2, lambda: show(operation.get_progress()))
        outcome = task.get_result()
    """

    def __init__(
        self,
        target: Callable[[], T],
        cancellation: Optional[CancellationToken] = None,
    ):
        self._target = target
        self._cancellation = cancellation or CancellationToken()
        self._thread: Optional[threading.Thread] = None
        self._result: Optional[TaskResult[T]] = None
        self._status = TaskStatus.PENDING

    @property
    def status(self) -> TaskStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status == TaskStatus.RUNNING

    @property
    def is_cancelled(self) -> bool:
        return self._cancellation.is_cancelled

    def start(self) -> None:
        """
        Launch the worker thread.

        Raises:
            RuntimeError: If the task was started before
        """
        if self._status != TaskStatus.PENDING:
            raise RuntimeError("Task already started")

        self._status = TaskStatus.RUNNING
        self._thread = threading.Thread(target=self._run, name="ftpsync-run", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        """Trigger the operation's cancellation token."""
        self._cancellation.cancel()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread:
            self._thread.join(timeout=timeout)

    def watch(self, interval: float, on_tick: Callable[[], None]) -> None:
        """
        Block until the run ends, calling on_tick every interval seconds.

        on_tick also runs once after the worker finishes so a final
        progress value is never missed.
        """
        while True:
            self.join(interval)
            finished = not self.is_running
            on_tick()
            if finished:
                return

    def _run(self) -> None:
        try:
            value = self._target()
        except OperationCanceled as e:
            outcome = TaskResult(TaskStatus.CANCELLED, error=e)
        except Exception as e:
            outcome = TaskResult(TaskStatus.FAILED, error=e)
        else:
            status = TaskStatus.CANCELLED if self.is_cancelled else TaskStatus.COMPLETED
            outcome = TaskResult(status, result=value)

        self._result = outcome
        self._status = outcome.status

    def get_result(self, timeout: Optional[float] = None) -> TaskResult[T]:
        """
        Wait for the run to end and return its outcome.

        Args:
            timeout: Seconds to wait (None waits forever)

        Returns:
            TaskResult; PENDING if the task was never started

        Raises:
            TimeoutError: If the worker is still running after timeout
        """
        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                raise TimeoutError("Task did not complete within timeout")

        return self._result or TaskResult(TaskStatus.PENDING)
