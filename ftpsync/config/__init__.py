"""Configuration module for ftpsync.

This module handles job settings and connection details:
- SettingsManager: JSON-based settings persistence
- SyncSettings: Settings dataclass
- Resolution: Merge command line, resource and credential values
- Paths: Path constants and discovery
"""
