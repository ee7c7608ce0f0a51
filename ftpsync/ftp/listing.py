"""FTP directory listing parser for ftpsync.

FTP has no standard LIST output format. This module guesses the style
of a whole listing from its lines (Unix "ls -l" or Windows/IIS "dir"
style) and turns every line into an Entry.

Examples of the two styles:

    -rw-r--r--   1 root     other        531 Jan 29 03:26 README
    dr-xr-xr-x   2 root     other        512 Apr  8  1994 etc
    lrwxrwxrwx   1 root     other          7 Jan 25 00:17 bin -> usr/bin

    04-27-00  09:09PM       <DIR>          licensed
    04-14-00  03:47PM                  589 readme.htm

A batch is classified once, by the first line matching either style.
Batches mixing both styles (or a header line of one style ahead of
entries of the other) are not supported and are parsed with whichever
style matched first.
"""

import logging
import posixpath
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ftpsync.ftp.exceptions import (
    MalformedListingLine,
    UnparseableTimestamp,
    UnrecognizedListingFormat,
)
from ftpsync.sync.models import Entry, EntryAttributes, ListingBatch

logger = logging.getLogger("ftpsync.listing")


class ListingStyle(Enum):
    """Directory listing dialect."""
    UNIX = "unix"
    WINDOWS = "windows"


UNIX_LISTING_PATTERN = re.compile(r"^[d\-](?:[r\-][w\-][x\-]){3}")
WINDOWS_LISTING_PATTERN = re.compile(r"[0-9][0-9]-[0-9][0-9]-[0-9][0-9]")

DIR_MARKER = "<DIR>"
LINK_ARROW = " -> "
DOT_ENTRIES = (".", "..")

WINDOWS_DATE_FORMATS = (
    "%m-%d-%y %I:%M%p",
    "%m-%d-%Y %I:%M%p",
    "%m-%d-%y %H:%M",
    "%m-%d-%Y %H:%M",
)

# Parser signature: (line, base_path, tolerate_date_errors) -> Entry or None
EntryParser = Callable[[str, str, bool], Optional[Entry]]


def combine_path(base_path: str, name: str) -> str:
    """
    Join a listing name onto its base path.

    The result is absolute, uses forward slashes and contains no
    "." or ".." segments.

    Args:
        base_path: Directory the listing belongs to
        name: Entry name (or link target) from the listing

    Returns:
        Normalized absolute path
    """
    joined = posixpath.join(base_path or "/", name.replace("\\", "/"))
    return posixpath.normpath("/" + joined.lstrip("/"))


def detect_listing_style(lines: Sequence[str]) -> ListingStyle:
    """
    Pick the parsing style for a whole listing.

    Lines are scanned in order; for each line the Unix pattern is tried
    before the Windows pattern and the first match wins.

    Args:
        lines: Non-empty sequence of raw listing lines

    Returns:
        The detected ListingStyle

    Raises:
        UnrecognizedListingFormat: If no line matches either style
    """
    for line in lines:
        if UNIX_LISTING_PATTERN.match(line):
            return ListingStyle.UNIX
        if WINDOWS_LISTING_PATTERN.search(line):
            return ListingStyle.WINDOWS

    raise UnrecognizedListingFormat(lines[0] if lines else "")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(
    fragment: str,
    formats: Sequence[str],
    line: str,
    tolerate_date_errors: bool
) -> datetime:
    """Try each format; fall back to now or raise, depending on policy."""
    last_error: Optional[Exception] = None
    for fmt in formats:
        try:
            return datetime.strptime(fragment, fmt).replace(tzinfo=timezone.utc)
        except ValueError as e:
            last_error = e

    if tolerate_date_errors:
        logger.debug(f"Using current time for unparseable date {fragment!r}")
        return _utc_now()
    raise UnparseableTimestamp(fragment, line, last_error)


def parse_windows_entry(
    line: str,
    base_path: str,
    tolerate_date_errors: bool = False
) -> Optional[Entry]:
    """
    Parse one Windows/IIS style listing line.

    Args:
        line: Raw listing line
        base_path: Directory being listed
        tolerate_date_errors: Use the current time for bad dates

    Returns:
        Entry, or None for "." and ".." entries

    Raises:
        MalformedListingLine: If the line has fewer than four fields
        UnparseableTimestamp: If the date is invalid and not tolerated
    """
    parts = line.strip().split(None, 3)
    if len(parts) < 4:
        raise MalformedListingLine(line, ListingStyle.WINDOWS.value)

    date, time, size_or_dir, name = parts
    if name in DOT_ENTRIES:
        return None

    path = combine_path(base_path, name)
    last_modified = _parse_timestamp(
        f"{date} {time}", WINDOWS_DATE_FORMATS, line, tolerate_date_errors
    )

    if size_or_dir.upper() == DIR_MARKER:
        return Entry.directory(path, last_modified)

    try:
        size = int(size_or_dir)
    except ValueError:
        raise MalformedListingLine(line, ListingStyle.WINDOWS.value)

    return Entry.file(path, last_modified, size)


def _parse_unix_timestamp(
    month: str,
    day: str,
    time_or_year: str,
    line: str,
    tolerate_date_errors: bool
) -> datetime:
    """Recent entries show HH:MM instead of a year; assume the current year."""
    if ":" in time_or_year:
        fragment = f"{month} {day} {_utc_now().year} {time_or_year}"
        return _parse_timestamp(fragment, ("%b %d %Y %H:%M",), line, tolerate_date_errors)

    fragment = f"{month} {day} {time_or_year}"
    return _parse_timestamp(fragment, ("%b %d %Y",), line, tolerate_date_errors)


def parse_unix_entry(
    line: str,
    base_path: str,
    tolerate_date_errors: bool = False
) -> Optional[Entry]:
    """
    Parse one Unix "ls -l" style listing line.

    Symbolic links are reported as files carrying the SYMLINK attribute;
    when the name has a "name -> target" form, the entry path points at
    the target.

    Args:
        line: Raw listing line
        base_path: Directory being listed
        tolerate_date_errors: Use the current time for bad dates

    Returns:
        Entry, or None for "." and ".." entries

    Raises:
        MalformedListingLine: If the line has fewer than nine fields
        UnparseableTimestamp: If the date is invalid and not tolerated
    """
    parts = line.strip().split(None, 8)
    if len(parts) < 9:
        raise MalformedListingLine(line, ListingStyle.UNIX.value)

    permissions, _links, _owner, _group, size_field, month, day, time_or_year, name = parts
    kind_char = permissions[0]

    display_name = name
    target = None
    if kind_char == "l" and LINK_ARROW in name:
        display_name, target = name.split(LINK_ARROW, 1)

    if display_name in DOT_ENTRIES:
        return None

    path = combine_path(base_path, target if target is not None else name)
    last_modified = _parse_unix_timestamp(
        month, day, time_or_year, line, tolerate_date_errors
    )

    attributes = EntryAttributes.NONE
    if name.startswith("."):
        attributes |= EntryAttributes.HIDDEN
    if "w" not in permissions:
        attributes |= EntryAttributes.READ_ONLY
    if kind_char == "l":
        attributes |= EntryAttributes.SYMLINK

    if kind_char == "d":
        return Entry.directory(path, last_modified, attributes)

    try:
        size = int(size_field)
    except ValueError:
        raise MalformedListingLine(line, ListingStyle.UNIX.value)

    return Entry.file(path, last_modified, size, attributes)


PARSERS = {
    ListingStyle.UNIX: parse_unix_entry,
    ListingStyle.WINDOWS: parse_windows_entry,
}


def get_entry_parser(style: ListingStyle) -> EntryParser:
    """Return the line parser for a listing style."""
    return PARSERS[style]


def parse_listing(
    batch: ListingBatch,
    tolerate_date_errors: bool = False
) -> List[Entry]:
    """
    Parse a full LIST response into entries.

    Blank lines are ignored. An empty batch yields an empty list without
    running style detection.

    Args:
        batch: Raw lines and the base path they were listed from
        tolerate_date_errors: Use the current time for bad dates

    Returns:
        Entries in listing order, without "." and ".."

    Raises:
        UnrecognizedListingFormat: If the style cannot be detected
        MalformedListingLine: If a line does not fit the detected style
        UnparseableTimestamp: If a date is invalid and not tolerated
    """
    lines = [line.rstrip("\r\n") for line in batch.lines if line.strip()]
    if not lines:
        return []

    style = detect_listing_style(lines)
    parse_entry = get_entry_parser(style)
    logger.debug(f"Parsing {len(lines)} {style.value} lines from {batch.base_path}")

    entries: List[Entry] = []
    for line in lines:
        entry = parse_entry(line, batch.base_path, tolerate_date_errors)
        if entry is not None:
            entries.append(entry)
    return entries
