"""Cancellation signal shared by listing, transfer and scheduling code.

A single CancellationToken is created per run and threaded through
every call that may block on the network. Callbacks registered on the
token run once when it is triggered, which is how open sockets get
aborted from another thread.
"""

import itertools
import logging
import threading
from typing import Callable, Dict, Optional

from ftpsync.ftp.exceptions import OperationCanceled

logger = logging.getLogger("ftpsync.cancellation")


class CancellationRegistration:
    """Handle returned by CancellationToken.register.

    Usable as a context manager so the callback is removed once the
    guarded call returns.
    """

    def __init__(self, token: "CancellationToken", key: Optional[int]):
        self._token = token
        self._key = key

    def unregister(self) -> None:
        """Remove the callback if it has not run yet."""
        if self._key is not None:
            self._token._unregister(self._key)
            self._key = None

    def __enter__(self) -> "CancellationRegistration":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unregister()


class CancellationToken:
    """Thread-safe, one-shot cancellation flag with abort callbacks."""

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: Dict[int, Callable[[], None]] = {}
        self._counter = itertools.count()

    @property
    def is_cancelled(self) -> bool:
        """True once cancel() has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Trigger cancellation and run every registered callback."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                # Aborting a half-closed socket commonly raises here
                logger.debug(f"Cancellation callback raised: {e}")

    def raise_if_cancelled(self, operation: str = "Operation") -> None:
        """
        Raise OperationCanceled if the token has been triggered.

        Args:
            operation: Name used in the exception message
        """
        if self._event.is_set():
            raise OperationCanceled(operation)

    def register(self, callback: Callable[[], None]) -> CancellationRegistration:
        """
        Register a callback to run when the token is cancelled.

        If the token is already cancelled the callback runs immediately.

        Args:
            callback: Zero-argument callable, typically a socket abort

        Returns:
            Registration handle (context manager)
        """
        with self._lock:
            if not self._event.is_set():
                key = next(self._counter)
                self._callbacks[key] = callback
                return CancellationRegistration(self, key)

        callback()
        return CancellationRegistration(self, None)

    def _unregister(self, key: int) -> None:
        with self._lock:
            self._callbacks.pop(key, None)
