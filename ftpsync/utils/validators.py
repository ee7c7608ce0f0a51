"""Validation of connection values and server paths given on the command line.

Each validator returns (is_valid, error_message) so the CLI can turn
the message into a usage error.
"""

import re
from typing import Optional, Tuple


IPV4_PATTERN = re.compile(
    r'^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}'
    r'(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$'
)

# RFC 1123 labels, total length capped at 253
HOSTNAME_PATTERN = re.compile(
    r'^(?=.{1,253}$)(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.[A-Za-z0-9-]{1,63})*$'
)

TIMEOUT_RANGE = (5, 300)

Validation = Tuple[bool, Optional[str]]


def _as_int(value) -> Optional[int]:
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def validate_host(host: str) -> Validation:
    """
    Validate an FTP server host, either an IPv4 address or a host name.

    Args:
        host: Host as typed by the user; surrounding blanks are ignored

    Returns:
        Tuple of (is_valid, error_message)
    """
    host = (host or "").strip()
    if not host:
        return False, "Host is required"

    if IPV4_PATTERN.match(host) or HOSTNAME_PATTERN.match(host):
        return True, None

    return False, f"Invalid host: {host}. Must be a valid IP address or hostname."


def validate_port(port) -> Validation:
    number = _as_int(port)
    if number is None:
        return False, "Port must be a number"

    if not 1 <= number <= 65535:
        return False, f"Port must be between 1 and 65535, got {number}"

    return True, None


def validate_timeout(timeout) -> Validation:
    """Validate the control connection timeout in seconds."""
    seconds = _as_int(timeout)
    if seconds is None:
        return False, "Timeout must be a number"

    low, high = TIMEOUT_RANGE
    if not low <= seconds <= high:
        return False, f"Timeout must be between {low} and {high} seconds, got {seconds}"

    return True, None


def validate_ftp_path(path: str) -> Validation:
    """
    Validate a server root path.

    The path must be absolute and free of '..' segments.

    Args:
        path: Server path to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    path = (path or "").strip()
    if not path:
        return False, "FTP path is required"

    if not path.startswith("/"):
        return False, "FTP path must be absolute (start with /)"

    if ".." in path.split("/"):
        return False, "FTP path cannot contain '..'"

    return True, None
