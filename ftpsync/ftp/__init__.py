"""FTP operations module for ftpsync.

This module handles all FTP-related functionality:
- FTPConnectionManager: Connection management with state tracking
- FTPTransport: One session per request, with cancellation support
- Listing: LIST output format detection and parsing
- TreeWalker: Level-by-level enumeration of a remote tree
- Exceptions: FTP-specific error types
"""
