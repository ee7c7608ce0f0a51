"""FTP-specific exceptions for ftpsync.

Custom exception hierarchy for listing, transfer and connection
failures so callers can tell fatal listing errors apart from
per-item protocol errors.
"""

from typing import Optional


class FTPError(Exception):
    """Base exception for all FTP-related errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class FTPConnectionError(FTPError):
    """Failed to establish or keep an FTP connection."""

    def __init__(self, host: str, port: int, original_error: Exception = None):
        self.host = host
        self.port = port
        message = f"Failed to connect to {host}:{port}"
        super().__init__(message, original_error)


class FTPAuthenticationError(FTPError):
    """FTP authentication (login) failed."""

    def __init__(self, username: str, original_error: Exception = None):
        self.username = username
        message = f"Authentication failed for user '{username}'"
        super().__init__(message, original_error)


class FTPNotConnectedError(FTPError):
    """Operation attempted without active FTP connection."""

    def __init__(self, operation: str = "Operation"):
        message = f"{operation} requires an active FTP connection"
        super().__init__(message)


class FTPTimeoutError(FTPError):
    """FTP operation timed out."""

    def __init__(self, operation: str = "Operation", timeout: int = 30):
        self.timeout = timeout
        message = f"{operation} timed out after {timeout} seconds"
        super().__init__(message)


class ProtocolError(FTPError):
    """The server rejected a request.

    Carries the three digit reply code when the server sent one, and the
    server-provided description.
    """

    def __init__(
        self,
        description: str,
        status_code: Optional[int] = None,
        original_error: Exception = None
    ):
        self.status_code = status_code
        self.description = description
        super().__init__(description, original_error)

    def __str__(self) -> str:
        return self.description

    @classmethod
    def from_reply(cls, error: Exception) -> "ProtocolError":
        """
        Build a ProtocolError from an ftplib reply exception.

        Args:
            error: ftplib.error_perm, error_temp or error_reply

        Returns:
            ProtocolError with the parsed status code
        """
        reply = str(error).strip()
        code = reply[:3]
        status_code = int(code) if len(code) == 3 and code.isdigit() else None
        return cls(reply, status_code=status_code, original_error=error)


class OperationCanceled(FTPError):
    """The run was cancelled; not an error condition to be logged."""

    def __init__(self, operation: str = "Operation"):
        message = f"{operation} was cancelled"
        super().__init__(message)


class ListingError(FTPError):
    """A directory listing could not be turned into entries."""


class UnrecognizedListingFormat(ListingError):
    """No line of a listing matched a known listing style."""

    def __init__(self, first_line: str):
        self.first_line = first_line
        message = f"Cannot parse file entry with format {first_line!r}"
        super().__init__(message)


class UnparseableTimestamp(ListingError):
    """A listing line carried a date that could not be parsed."""

    def __init__(self, fragment: str, line: str, original_error: Exception = None):
        self.fragment = fragment
        self.line = line
        message = (
            f"String was not recognized as a valid date. "
            f"Parsed {fragment!r} from line {line!r} for the date"
        )
        super().__init__(message, original_error)


class MalformedListingLine(ListingError):
    """A listing line has too few fields for its detected style."""

    def __init__(self, line: str, style: str):
        self.line = line
        self.style = style
        message = f"Line {line!r} is not a valid {style} listing entry"
        super().__init__(message)
