"""Local filesystem operations module.

This module provides:
- LocalScanner: Enumerate a local tree as ftpsync entries
"""

from ftpsync.local.scanner import LocalScanner

__all__ = ["LocalScanner"]
