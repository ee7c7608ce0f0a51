"""FTP connection management for ftpsync.

Provides ConnectionState enum, FTPConnectionConfig dataclass,
and FTPConnectionManager class wrapping one ftplib session.
"""

from dataclasses import dataclass
from enum import Enum
from ftplib import FTP, error_perm, error_reply, error_temp
from typing import BinaryIO, Callable, List, Optional
import socket

from ftpsync.ftp.exceptions import (
    FTPConnectionError,
    FTPAuthenticationError,
    FTPNotConnectedError,
    FTPTimeoutError,
    ProtocolError,
)


class ConnectionState(Enum):
    """FTP connection state."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class TransferMode(Enum):
    """Data representation type used for file bodies."""
    BINARY = "binary"
    ASCII = "ascii"


class TransferBehavior(Enum):
    """Data channel establishment mode."""
    PASSIVE = "passive"
    ACTIVE = "active"


# Replies an ftplib call can raise for a rejected command
REPLY_ERRORS = (error_perm, error_temp, error_reply)


@dataclass
class FTPConnectionConfig:
    """FTP connection configuration."""
    host: str
    port: int = 21
    username: str = "anonymous"
    passive_mode: bool = True
    timeout: int = 30
    transfer_mode: TransferMode = TransferMode.BINARY

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.host:
            raise ValueError("Host is required")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {self.port}")
        if not 5 <= self.timeout <= 300:
            raise ValueError(f"Timeout must be between 5 and 300, got {self.timeout}")


class FTPConnectionManager:
    """Manages the lifecycle of a single FTP session."""

    # Block size for FTP transfers (8KB)
    BLOCK_SIZE = 8192

    def __init__(self):
        """Initialize the connection manager."""
        self._ftp: Optional[FTP] = None
        self._config: Optional[FTPConnectionConfig] = None
        self._state = ConnectionState.DISCONNECTED
        self._error_message: Optional[str] = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """True if currently connected."""
        return self._state == ConnectionState.CONNECTED

    @property
    def config(self) -> Optional[FTPConnectionConfig]:
        """Current connection configuration."""
        return self._config

    @property
    def error_message(self) -> Optional[str]:
        """Last error message if state is ERROR."""
        return self._error_message

    @property
    def ftp(self) -> FTP:
        """
        Get the underlying FTP object.

        Raises:
            FTPNotConnectedError: If not connected
        """
        if not self.is_connected or self._ftp is None:
            raise FTPNotConnectedError("FTP access")
        return self._ftp

    def connect(self, config: FTPConnectionConfig, password: str = "") -> None:
        """
        Establish FTP connection.

        Args:
            config: Connection configuration
            password: FTP password

        Raises:
            FTPConnectionError: If connection fails
            FTPAuthenticationError: If login fails
            FTPTimeoutError: If connection times out
        """
        self._config = config
        self._state = ConnectionState.CONNECTING
        self._error_message = None

        try:
            self._ftp = FTP()
            self._ftp.set_debuglevel(0)

            try:
                self._ftp.connect(
                    host=config.host,
                    port=config.port,
                    timeout=config.timeout
                )
            except socket.timeout:
                raise FTPTimeoutError("Connection", config.timeout)
            except (socket.error, OSError) as e:
                raise FTPConnectionError(config.host, config.port, e)

            try:
                self._ftp.login(user=config.username, passwd=password)
            except error_perm as e:
                raise FTPAuthenticationError(config.username, e)

            self._ftp.set_pasv(config.passive_mode)

            self._state = ConnectionState.CONNECTED

        except (FTPConnectionError, FTPAuthenticationError, FTPTimeoutError) as e:
            self._state = ConnectionState.ERROR
            self._error_message = str(e)
            self._ftp = None
            raise
        except Exception as e:
            self._state = ConnectionState.ERROR
            self._error_message = str(e)
            self._ftp = None
            raise FTPConnectionError(config.host, config.port, e)

    def disconnect(self) -> None:
        """Close FTP connection gracefully."""
        if self._ftp:
            try:
                self._ftp.quit()
            except Exception:
                # Best effort close
                try:
                    self._ftp.close()
                except Exception:
                    pass

        self._ftp = None
        self._state = ConnectionState.DISCONNECTED

    def abort(self) -> None:
        """
        Tear down the session from another thread.

        Closing the sockets makes any blocked control or data channel
        call fail immediately.
        """
        ftp = self._ftp
        if ftp is None:
            return
        try:
            ftp.close()
        finally:
            self._state = ConnectionState.DISCONNECTED

    def _run(self, call: Callable, *args, **kwargs):
        """Run an ftplib call, mapping server rejections to ProtocolError."""
        try:
            result = call(*args, **kwargs)
        except REPLY_ERRORS as e:
            raise ProtocolError.from_reply(e)
        return result

    def list_details(self, path: str) -> List[str]:
        """
        Send LIST for a path and collect the raw response lines.

        Args:
            path: Directory path to list

        Returns:
            Raw listing lines

        Raises:
            FTPNotConnectedError: If not connected
            ProtocolError: If the server rejects the request
        """
        lines: List[str] = []
        self._run(self.ftp.retrlines, f"LIST {path}", lines.append)
        return lines

    def store(
        self,
        remote_path: str,
        source: BinaryIO,
        callback: Optional[Callable[[bytes], None]] = None
    ) -> None:
        """
        Upload a stream to remote_path (STOR).

        Args:
            remote_path: Destination path on the server
            source: Readable binary stream
            callback: Called with every block sent
        """
        ftp = self.ftp
        if self._config and self._config.transfer_mode == TransferMode.ASCII:
            self._run(ftp.storlines, f"STOR {remote_path}", source, callback)
        else:
            self._run(
                ftp.storbinary,
                f"STOR {remote_path}",
                source,
                blocksize=self.BLOCK_SIZE,
                callback=callback
            )

    def retrieve(self, remote_path: str, callback: Callable[[bytes], None]) -> None:
        """
        Download remote_path (RETR), passing each received block to callback.

        In ASCII mode blocks are whole lines with a trailing newline.

        Args:
            remote_path: Source path on the server
            callback: Receives the data as bytes
        """
        ftp = self.ftp
        if self._config and self._config.transfer_mode == TransferMode.ASCII:
            encoding = ftp.encoding

            def on_line(line: str) -> None:
                callback(line.encode(encoding) + b"\n")

            self._run(ftp.retrlines, f"RETR {remote_path}", on_line)
        else:
            self._run(
                ftp.retrbinary,
                f"RETR {remote_path}",
                callback,
                blocksize=self.BLOCK_SIZE
            )

    def make_directory(self, path: str) -> None:
        """Create a directory (MKD)."""
        self._run(self.ftp.mkd, path)

    def delete_file(self, path: str) -> None:
        """Delete a file (DELE)."""
        self._run(self.ftp.delete, path)

    def remove_directory(self, path: str) -> None:
        """Remove an empty directory (RMD)."""
        self._run(self.ftp.rmd, path)
