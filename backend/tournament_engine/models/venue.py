from dataclasses import dataclass
from datetime import datetime
from typing import Tuple


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.start <= start and end <= self.end

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end

    def intersect(self, other: "TimeWindow") -> "TimeWindow":
        """Intersection; may be empty (start >= end)."""
        return TimeWindow(max(self.start, other.start), min(self.end, other.end))


@dataclass(frozen=True)
class Venue:
    id: str
    name: str
    capacity: int = 1  # simultaneous matches
    operating_windows: Tuple[TimeWindow, ...] = ()

    def is_open(self, start: datetime, end: datetime) -> bool:
        return any(w.contains(start, end) for w in self.operating_windows)
