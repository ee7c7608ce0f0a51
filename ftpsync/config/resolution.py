"""Connection value resolution for ftpsync.

Connection values can come from three places: the operation itself
(command line flags), a saved server resource / credential pair
(settings file), and hardcoded fallbacks. resolve_connection merges
them with a fixed precedence: operation override, then resource or
credential default, then fallback.
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_PORT = 21
DEFAULT_USERNAME = "anonymous"


@dataclass(frozen=True)
class ConnectionOverrides:
    """Values set directly on an operation; None means "not set"."""
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None


@dataclass(frozen=True)
class ServerResource:
    """Saved server location."""
    host: Optional[str] = None
    port: Optional[int] = None


@dataclass(frozen=True)
class ServerCredentials:
    """Saved user name and password for a server."""
    username: Optional[str] = None
    password: Optional[str] = None


@dataclass(frozen=True)
class ResolvedConnection:
    """Effective connection values."""
    host: str
    port: int
    username: str
    password: str

    def __repr__(self) -> str:
        return (
            f"ResolvedConnection(host={self.host!r}, port={self.port}, "
            f"username={self.username!r}, password='***')"
        )


def _first(*values):
    for value in values:
        if value is not None and value != "":
            return value
    return None


def resolve_connection(
    overrides: Optional[ConnectionOverrides] = None,
    resource: Optional[ServerResource] = None,
    credentials: Optional[ServerCredentials] = None,
) -> ResolvedConnection:
    """
    Merge connection values by precedence.

    Args:
        overrides: Operation-level values
        resource: Saved host/port
        credentials: Saved user name/password

    Returns:
        ResolvedConnection with every field set

    Raises:
        ValueError: If no source provides a host
    """
    overrides = overrides or ConnectionOverrides()
    resource = resource or ServerResource()
    credentials = credentials or ServerCredentials()

    host = _first(overrides.host, resource.host)
    if not host:
        raise ValueError("FTP server not specified")

    return ResolvedConnection(
        host=host,
        port=_first(overrides.port, resource.port, DEFAULT_PORT),
        username=_first(overrides.username, credentials.username, DEFAULT_USERNAME),
        password=_first(overrides.password, credentials.password, ""),
    )
