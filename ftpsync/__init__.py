"""ftpsync: synchronize directory trees with an FTP server.

Packages:
- ftp: Connection management, listing parsing and the remote tree walker
- sync: Planning and scheduling of put, get and delete runs
- local: Local filesystem enumeration
- config: Settings persistence and connection resolution
- utils: Logging, validation, cancellation and background tasks
"""

__version__ = "0.1.0"
