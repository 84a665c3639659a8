"""Bounded record of past bucket occupancy."""

from collections import deque
from typing import Deque, List

from burstlimit.ratelimit.models import HistoryEntry


class HistoryLog:
    """Ring buffer of ``HistoryEntry`` records, oldest first.

    Once ``max_entries`` records are held, each new record evicts the
    oldest one.
    """

    def __init__(self, max_entries: int = 1000):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: Deque[HistoryEntry] = deque(maxlen=max_entries)

    def append(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def entries(self) -> List[HistoryEntry]:
        """Return a copy of the retained entries, oldest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
