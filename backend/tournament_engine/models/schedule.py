from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Tuple

from tournament_engine.config import DEFAULT_MATCH_DURATION_MINUTES, DEFAULT_MIN_REST_MINUTES, SLOT_INTERVAL_MINUTES
from tournament_engine.models.venue import TimeWindow


@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime
    venue_id: str

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class ScheduleEntry:
    match_id: str
    slot: TimeSlot
    venue_id: str

    @property
    def start(self) -> datetime:
        return self.slot.start

    @property
    def end(self) -> datetime:
        return self.slot.end


def entry_sort_key(entry: ScheduleEntry) -> Tuple:
    return (entry.start, entry.venue_id, entry.match_id)


@dataclass(frozen=True)
class Schedule:
    entries: Tuple[ScheduleEntry, ...] = ()

    @classmethod
    def from_entries(cls, entries: Iterable[ScheduleEntry]) -> "Schedule":
        return cls(entries=tuple(sorted(entries, key=entry_sort_key)))

    def entry_for(self, match_id: str) -> Optional[ScheduleEntry]:
        for entry in self.entries:
            if entry.match_id == match_id:
                return entry
        return None

    def by_match(self) -> Dict[str, ScheduleEntry]:
        return {e.match_id: e for e in self.entries}

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class SchedulingConstraints:
    tournament_window: TimeWindow
    min_rest_minutes: int = DEFAULT_MIN_REST_MINUTES
    match_duration_minutes: int = DEFAULT_MATCH_DURATION_MINUTES
    sport: Optional[str] = None
    durations_by_sport: Dict[str, int] = field(default_factory=dict)
    slot_interval_minutes: int = SLOT_INTERVAL_MINUTES  # granularity of candidate start times
    blackouts: Tuple[TimeWindow, ...] = ()  # e.g. lunch break; no match may run through one

    @property
    def duration_minutes(self) -> int:
        if self.sport and self.sport in self.durations_by_sport:
            return self.durations_by_sport[self.sport]
        return self.match_duration_minutes

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)

    @property
    def min_rest(self) -> timedelta:
        return timedelta(minutes=self.min_rest_minutes)
