"""Sync settings management for ftpsync.

Provides the SyncSettings dataclass and SettingsManager for JSON
persistence.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

from ftpsync.config.paths import get_settings_path
from ftpsync.ftp.connection import TransferBehavior, TransferMode

logger = logging.getLogger("ftpsync.settings")


def normalize_server_path(path: Optional[str]) -> str:
    """
    Normalize a server root path so it always starts with "/".

    Args:
        path: Raw path, may be empty

    Returns:
        "/" for empty input, otherwise the path with a leading slash
    """
    if not path:
        return "/"
    if not path.startswith("/"):
        return "/" + path
    return path


@dataclass
class SyncSettings:
    """Settings of one sync job."""

    # FTP connection defaults
    host: str = ""
    port: int = 21
    username: str = ""
    timeout: int = 30
    transfer_mode: TransferMode = TransferMode.BINARY
    transfer_behavior: TransferBehavior = TransferBehavior.PASSIVE

    # Paths and masks
    server_path: str = "/"
    local_path: str = ""
    includes: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)

    # Behavior
    only_newer: bool = False
    use_current_date_on_error: bool = False
    verbose: bool = False
    concurrency_limit: int = 10

    def __post_init__(self):
        """Coerce enum fields and normalize the server path."""
        self.server_path = normalize_server_path(self.server_path)
        if not isinstance(self.transfer_mode, TransferMode):
            self.transfer_mode = TransferMode(str(self.transfer_mode).lower())
        if not isinstance(self.transfer_behavior, TransferBehavior):
            self.transfer_behavior = TransferBehavior(str(self.transfer_behavior).lower())
        if self.concurrency_limit < 1:
            raise ValueError(
                f"Concurrency limit must be at least 1, got {self.concurrency_limit}"
            )

    @property
    def passive_mode(self) -> bool:
        return self.transfer_behavior == TransferBehavior.PASSIVE

    def to_dict(self) -> dict:
        """Convert settings to dictionary."""
        data = asdict(self)
        data["transfer_mode"] = self.transfer_mode.value
        data["transfer_behavior"] = self.transfer_behavior.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SyncSettings":
        """Create settings from dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)


class SettingsManager:
    """Manages sync settings persistence."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            config_path: Optional custom path, defaults to platform standard
        """
        self._config_path = config_path or get_settings_path()
        self._settings: Optional[SyncSettings] = None

    @property
    def config_path(self) -> Path:
        """Path to settings file."""
        return self._config_path

    def load(self, strict: bool = False) -> SyncSettings:
        """
        Load settings from disk.

        Args:
            strict: Raise instead of falling back to defaults when the
                file exists but cannot be read or parsed

        Returns:
            SyncSettings instance (defaults if file not found)

        Raises:
            ValueError: If the file holds invalid values, or is unreadable
                and strict is set
        """
        if self._config_path.exists():
            try:
                with open(self._config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError("expected a JSON object")
            except (ValueError, IOError) as e:
                if strict:
                    raise ValueError(f"Cannot read settings file {self._config_path}: {e}")
                logger.warning(f"Ignoring unreadable settings file {self._config_path}: {e}")
                data = {}
            self._settings = SyncSettings.from_dict(data)
        else:
            self._settings = SyncSettings()

        return self._settings


    def save(self, settings: SyncSettings) -> None:
        """
        Persist settings to disk.

        Args:
            settings: Settings to save
        """
        self._settings = settings

        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)

