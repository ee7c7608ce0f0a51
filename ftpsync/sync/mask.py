"""Include/exclude file masks.

Masks are ant-style globs evaluated against forward-slash relative
paths, case-insensitively:

    *        any run of characters inside one path segment
    ?        one character inside one path segment
    **       any number of whole segments (including none)

A path matches when it matches at least one include and no exclude.
An exclude matching a directory also excludes everything beneath it.
"""

import fnmatch
import re
from typing import Iterable, List, Optional, Pattern

DEFAULT_INCLUDES = ("**",)


def _split(path: str) -> List[str]:
    return [segment for segment in path.replace("\\", "/").split("/") if segment]


class MaskPattern:
    """One compiled ant-style pattern."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        self._segments: List[Optional[Pattern]] = []
        for segment in _split(pattern):
            if segment == "**":
                self._segments.append(None)
            else:
                regex = fnmatch.translate(segment.lower())
                self._segments.append(re.compile(regex))

    def __repr__(self) -> str:
        return f"MaskPattern({self.pattern!r})"

    def matches(self, path: str) -> bool:
        """True if the whole relative path matches this pattern."""
        return self._match(self._segments, [s.lower() for s in _split(path)])

    def _match(self, patterns: List[Optional[Pattern]], parts: List[str]) -> bool:
        if not patterns:
            return not parts

        head = patterns[0]
        if head is None:
            # "**" absorbs zero or more segments
            return any(
                self._match(patterns[1:], parts[i:]) for i in range(len(parts) + 1)
            )

        if not parts or not head.match(parts[0]):
            return False
        return self._match(patterns[1:], parts[1:])


class MaskingContext:
    """Include/exclude rule set applied to relative paths."""

    def __init__(
        self,
        includes: Optional[Iterable[str]] = None,
        excludes: Optional[Iterable[str]] = None
    ):
        """
        Initialize the mask.

        Args:
            includes: Include patterns; empty or None means everything
            excludes: Exclude patterns
        """
        include_list = [p for p in (includes or []) if p and p.strip()]
        exclude_list = [p for p in (excludes or []) if p and p.strip()]
        self.includes = [MaskPattern(p.strip()) for p in include_list or DEFAULT_INCLUDES]
        self.excludes = [MaskPattern(p.strip()) for p in exclude_list]

    def __repr__(self) -> str:
        includes = [p.pattern for p in self.includes]
        excludes = [p.pattern for p in self.excludes]
        return f"MaskingContext(includes={includes}, excludes={excludes})"

    def is_excluded(self, relative_path: str) -> bool:
        """True if the path or one of its parent directories is excluded."""
        parts = _split(relative_path)
        for end in range(1, len(parts) + 1):
            prefix = "/".join(parts[:end])
            if any(p.matches(prefix) for p in self.excludes):
                return True
        return False

    def is_match(self, relative_path: str) -> bool:
        """
        Decide whether a relative path is selected by the mask.

        Args:
            relative_path: Path relative to the tree root

        Returns:
            True if included and not excluded
        """
        if self.is_excluded(relative_path):
            return False
        return any(p.matches(relative_path) for p in self.includes)
