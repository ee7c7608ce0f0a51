"""Aggregate progress accounting for one sync run."""

import threading
from typing import Optional


class ProgressCounter:
    """
    Weighted work-unit counters shared by concurrent transfer units.

    Both counters only grow and are changed exclusively through the
    locked add methods. A counter belongs to one run and is discarded
    afterwards.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._total = 0
        self._completed = 0

    @property
    def total(self) -> int:
        with self._lock:
            return self._total

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    def add_total(self, units: int) -> int:
        """
        Add planned work units.

        Returns:
            New total
        """
        if units < 0:
            raise ValueError(f"Progress units must not be negative, got {units}")
        with self._lock:
            self._total += units
            return self._total

    def add_completed(self, units: int) -> int:
        """
        Add finished work units.

        Returns:
            New completed count
        """
        if units < 0:
            raise ValueError(f"Progress units must not be negative, got {units}")
        with self._lock:
            self._completed += units
            return self._completed

    @property
    def percent(self) -> Optional[int]:
        """Completion percentage, or None (indeterminate) while total is zero."""
        with self._lock:
            if self._total == 0:
                return None
            return min(100, self._completed * 100 // self._total)

    def __repr__(self) -> str:
        return f"ProgressCounter(completed={self.completed}, total={self.total})"
