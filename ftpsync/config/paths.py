"""Where ftpsync keeps its per-user settings file."""

import os
import sys
from pathlib import Path


APP_NAME = "ftpsync"
SETTINGS_FILE = "settings.json"


def _config_base() -> Path:
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def get_settings_path() -> Path:
    """
    Default location of the settings JSON used by SettingsManager.

    The directory is %APPDATA%/ftpsync on Windows,
    ~/Library/Application Support/ftpsync on macOS and
    $XDG_CONFIG_HOME/ftpsync (default ~/.config/ftpsync) elsewhere.
    It is created on first use.
    """
    app_dir = _config_base() / APP_NAME
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir / SETTINGS_FILE
