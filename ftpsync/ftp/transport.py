"""Transport capability consumed by the sync engine.

The engine never talks to ftplib directly; it uses the Transport
protocol below. FTPTransport implements it by opening a dedicated
FTPConnectionManager session for every request, so concurrent units
never share a control connection.
"""

import logging
from contextlib import contextmanager
from typing import BinaryIO, Callable, Iterator, Optional, Protocol

from ftpsync.ftp.connection import FTPConnectionConfig, FTPConnectionManager
from ftpsync.ftp.exceptions import FTPConnectionError, FTPError, OperationCanceled
from ftpsync.sync.models import ListingBatch
from ftpsync.utils.cancellation import CancellationToken

logger = logging.getLogger("ftpsync.transport")

# Receives the cumulative number of bytes copied so far
ByteProgressCallback = Callable[[int], None]


class Transport(Protocol):
    """Request/response capability for one FTP server."""

    def list_directory(
        self, path: str, cancellation: Optional[CancellationToken] = None
    ) -> ListingBatch:
        ...

    def upload(
        self,
        remote_path: str,
        source: BinaryIO,
        on_progress: Optional[ByteProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> int:
        ...

    def download(
        self,
        remote_path: str,
        sink: BinaryIO,
        on_progress: Optional[ByteProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> int:
        ...

    def delete(
        self,
        path: str,
        is_directory: bool,
        cancellation: Optional[CancellationToken] = None,
    ) -> None:
        ...

    def make_directory(
        self, path: str, cancellation: Optional[CancellationToken] = None
    ) -> None:
        ...


class FTPTransport:
    """Transport backed by ftplib, one session per request."""

    def __init__(
        self,
        config: FTPConnectionConfig,
        password: str = "",
        verbose: bool = False,
        connection_factory: Callable[[], FTPConnectionManager] = FTPConnectionManager,
    ):
        """
        Initialize the transport.

        Args:
            config: Connection configuration used for every session
            password: FTP password
            verbose: Log every request at debug level
            connection_factory: Creates a fresh connection manager
        """
        self._config = config
        self._password = password
        self._verbose = verbose
        self._connection_factory = connection_factory

    @property
    def config(self) -> FTPConnectionConfig:
        return self._config

    @contextmanager
    def session(
        self, path: str, cancellation: Optional[CancellationToken] = None
    ) -> Iterator[FTPConnectionManager]:
        """
        Open a connected session for one request on path.

        The session is aborted when the cancellation token fires, and any
        failure caused by that abort surfaces as OperationCanceled.

        Args:
            path: Path the request is about (for logging)
            cancellation: Optional cancellation token

        Yields:
            Connected FTPConnectionManager
        """
        if cancellation is not None:
            cancellation.raise_if_cancelled(f"Request for {path}")

        if self._verbose:
            logger.debug(
                f'Requesting "{path}" from {self._config.host} in '
                f'{self._config.transfer_mode.value} mode as user "{self._config.username}"...'
            )

        manager = self._connection_factory()
        registration = cancellation.register(manager.abort) if cancellation is not None else None
        try:
            manager.connect(self._config, self._password)
            # A cancel that fired while connecting found no socket to close
            if cancellation is not None:
                cancellation.raise_if_cancelled(f"Request for {path}")
            yield manager
        except OperationCanceled:
            raise
        except Exception as e:
            if cancellation is not None and cancellation.is_cancelled:
                raise OperationCanceled(f"Request for {path}") from e
            if isinstance(e, FTPError):
                raise
            if isinstance(e, (OSError, EOFError)):
                raise FTPConnectionError(self._config.host, self._config.port, e)
            raise
        finally:
            if registration is not None:
                registration.unregister()
            manager.disconnect()

    def list_directory(
        self, path: str, cancellation: Optional[CancellationToken] = None
    ) -> ListingBatch:
        """
        Fetch the raw LIST output of one directory.

        Args:
            path: Absolute directory path
            cancellation: Optional cancellation token

        Returns:
            ListingBatch of raw lines for path
        """
        with self.session(path, cancellation) as conn:
            lines = conn.list_details(path)
        return ListingBatch(base_path=path, lines=lines)

    def upload(
        self,
        remote_path: str,
        source: BinaryIO,
        on_progress: Optional[ByteProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> int:
        """
        Upload a stream to remote_path.

        Args:
            remote_path: Destination path
            source: Readable binary stream
            on_progress: Receives cumulative bytes sent
            cancellation: Optional cancellation token

        Returns:
            Number of bytes sent
        """
        bytes_sent = 0

        def callback(block: bytes) -> None:
            nonlocal bytes_sent
            if cancellation is not None:
                cancellation.raise_if_cancelled(f"Upload of {remote_path}")
            bytes_sent += len(block)
            if on_progress:
                on_progress(bytes_sent)

        with self.session(remote_path, cancellation) as conn:
            conn.store(remote_path, source, callback)
        return bytes_sent

    def download(
        self,
        remote_path: str,
        sink: BinaryIO,
        on_progress: Optional[ByteProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> int:
        """
        Download remote_path into a writable stream.

        Args:
            remote_path: Source path
            sink: Writable binary stream
            on_progress: Receives cumulative bytes received
            cancellation: Optional cancellation token

        Returns:
            Number of bytes received
        """
        bytes_received = 0

        def callback(block: bytes) -> None:
            nonlocal bytes_received
            if cancellation is not None:
                cancellation.raise_if_cancelled(f"Download of {remote_path}")
            sink.write(block)
            bytes_received += len(block)
            if on_progress:
                on_progress(bytes_received)

        with self.session(remote_path, cancellation) as conn:
            conn.retrieve(remote_path, callback)
        return bytes_received

    def delete(
        self,
        path: str,
        is_directory: bool,
        cancellation: Optional[CancellationToken] = None,
    ) -> None:
        """Delete a file (DELE) or an empty directory (RMD)."""
        with self.session(path, cancellation) as conn:
            if is_directory:
                conn.remove_directory(path)
            else:
                conn.delete_file(path)

    def make_directory(
        self, path: str, cancellation: Optional[CancellationToken] = None
    ) -> None:
        """Create a remote directory (MKD)."""
        with self.session(path, cancellation) as conn:
            conn.make_directory(path)
