"""Unit tests for ThreadedTask."""

import threading

import pytest

from ftpsync.ftp.exceptions import OperationCanceled
from ftpsync.utils.cancellation import CancellationToken
from ftpsync.utils.threading import TaskStatus, ThreadedTask


class TestThreadedTask:
    """Tests for running an operation on a worker thread."""

    def test_initial_status(self):
        task = ThreadedTask(lambda: None)

        assert task.status == TaskStatus.PENDING
        assert task.get_result().status == TaskStatus.PENDING

    def test_completed(self):
        task = ThreadedTask(lambda: 5)
        task.start()

        result = task.get_result(timeout=5)

        assert result.status == TaskStatus.COMPLETED
        assert result.result == 5
        assert task.is_running is False

    def test_failed(self):
        def boom():
            raise RuntimeError("boom")

        task = ThreadedTask(boom)
        task.start()
        result = task.get_result(timeout=5)

        assert result.status == TaskStatus.FAILED
        assert str(result.error) == "boom"

    def test_operation_canceled_maps_to_cancelled(self):
        def run():
            raise OperationCanceled("Transfer")

        task = ThreadedTask(run)
        task.start()

        assert task.get_result(timeout=5).status == TaskStatus.CANCELLED

    def test_cancel_triggers_token(self):
        token = CancellationToken()
        started = threading.Event()
        cancelled = threading.Event()
        token.register(cancelled.set)

        def run():
            started.set()
            cancelled.wait(5)
            token.raise_if_cancelled("Run")

        task = ThreadedTask(run, cancellation=token)
        task.start()
        started.wait(5)
        task.cancel()

        assert task.get_result(timeout=5).status == TaskStatus.CANCELLED
        assert task.is_cancelled is True

    def test_normal_return_after_cancel_is_cancelled(self):
        token = CancellationToken()
        token.cancel()
        task = ThreadedTask(lambda: "partial", cancellation=token)
        task.start()

        result = task.get_result(timeout=5)

        assert result.status == TaskStatus.CANCELLED
        assert result.result == "partial"

    def test_start_twice(self):
        task = ThreadedTask(lambda: None)
        task.start()

        with pytest.raises(RuntimeError, match="already started"):
            task.start()

    def test_watch_ticks_until_done(self):
        release = threading.Event()
        ticks = []

        def on_tick():
            ticks.append(task.status)
            if len(ticks) == 3:
                release.set()

        task = ThreadedTask(lambda: release.wait(5))
        task.start()
        task.watch(0.01, on_tick)

        assert len(ticks) >= 3
        assert ticks[-1] == TaskStatus.COMPLETED

    def test_timeout(self):
        release = threading.Event()
        task = ThreadedTask(release.wait)
        task.start()
        try:
            with pytest.raises(TimeoutError):
                task.get_result(timeout=0.01)
        finally:
            release.set()
