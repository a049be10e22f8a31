"""
Rest rules - per-team and per-venue occupancy tracking

Rest is the gap between the end of one match and the start of the next
for the same team. Two matches of one team that overlap are a double
booking, not a short rest.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from tournament_engine.models.schedule import ScheduleEntry

Interval = Tuple[datetime, datetime, str]  # (start, end, match_id)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Check if [a_start, a_end) overlaps [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


def gap_minutes(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> float:
    """Minutes between two non-overlapping intervals, in either order."""
    if b_start >= a_end:
        return (b_start - a_end).total_seconds() / 60
    return (a_start - b_end).total_seconds() / 60


@dataclass(frozen=True)
class RestConflict:
    team_id: str
    other_match_id: str
    overlapping: bool
    gap_minutes: float


class TeamRestTracker:
    """
    Tracks placed matches per team to enforce double-booking and rest rules.

    Maps team_id -> list of (start, end, match_id)
    """

    def __init__(self):
        self._assignments: Dict[str, List[Interval]] = defaultdict(list)

    def add_assignment(self, team_ids: Iterable[Optional[str]], start: datetime, end: datetime, match_id: str) -> None:
        for team_id in team_ids:
            if team_id is not None:
                self._assignments[team_id].append((start, end, match_id))

    def check(
        self,
        team_ids: Iterable[Optional[str]],
        start: datetime,
        end: datetime,
        min_rest: timedelta,
    ) -> List[RestConflict]:
        """Every conflict the proposed interval would create, earliest first per team."""
        conflicts = []
        required = min_rest.total_seconds() / 60
        for team_id in team_ids:
            if team_id is None:
                continue
            for other_start, other_end, other_id in sorted(self._assignments.get(team_id, [])):
                if intervals_overlap(start, end, other_start, other_end):
                    conflicts.append(RestConflict(team_id, other_id, True, 0.0))
                    continue
                gap = gap_minutes(start, end, other_start, other_end)
                if gap < required:
                    conflicts.append(RestConflict(team_id, other_id, False, gap))
        return conflicts


class VenueOccupancy:
    """Placed intervals per venue, plus per-day match counts for tie-breaking."""

    def __init__(self):
        self._intervals: Dict[str, List[Interval]] = defaultdict(list)
        self._day_counts: Dict[Tuple[str, date], int] = defaultdict(int)

    def add(self, entry: ScheduleEntry) -> None:
        self._intervals[entry.venue_id].append((entry.start, entry.end, entry.match_id))
        self._day_counts[(entry.venue_id, entry.start.date())] += 1

    def day_count(self, venue_id: str, day: date) -> int:
        return self._day_counts.get((venue_id, day), 0)

    def peak_concurrency(self, venue_id: str, start: datetime, end: datetime) -> Tuple[int, List[str]]:
        """
        Highest number of placed matches running at once during [start, end),
        with the ids of the matches at that peak.
        """
        overlapping = [iv for iv in self._intervals.get(venue_id, []) if intervals_overlap(start, end, iv[0], iv[1])]
        if not overlapping:
            return 0, []
        points = [start] + [iv[0] for iv in overlapping if start < iv[0] < end]
        best: List[str] = []
        for point in points:
            running = [iv[2] for iv in overlapping if iv[0] <= point < iv[1]]
            if len(running) > len(best):
                best = running
        return len(best), sorted(best)
