"""
Conflict Validator - pure schedule checks

Given a full or partial schedule, returns every constraint violation as
data (never raises for a violation):

- TEAM_DOUBLE_BOOKED:        a known team is in two matches at once
- REST_GAP_VIOLATED:         less than min_rest_minutes between a team's matches,
                             or a match starting less than min_rest_minutes after
                             (or before) the end of a feeder it waits on
- VENUE_OVER_CAPACITY:       more simultaneous matches at a venue than its capacity
- OUTSIDE_OPERATING_WINDOW:  outside the tournament window, outside every
                             operating window of the venue, through a blackout,
                             or at an unknown venue

The same per-entry check is used by the Scheduler during its slot search
(check_entry against a PlacementIndex of already placed entries) and by the
schedule editor to validate a single proposed change.

A schedule naming an unknown match, a bye, or the same match twice is
malformed input and raises EngineValidationError.

Placeholder dependencies: a slot still reading WinnerOf(x)/LoserOf(x) waits on
match x. Dependencies through bye matches (which are never scheduled) are
followed to the real feeder.
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from tournament_engine.errors import EngineValidationError
from tournament_engine.models.bracket import Bracket
from tournament_engine.models.match import Match
from tournament_engine.models.participants import ParticipantRef, is_placeholder, source_match_id
from tournament_engine.models.schedule import Schedule, ScheduleEntry, SchedulingConstraints, entry_sort_key
from tournament_engine.models.venue import Venue
from tournament_engine.models.violation import Violation, ViolationKind
from tournament_engine.utils.rest_rules import TeamRestTracker, VenueOccupancy, gap_minutes

logger = logging.getLogger(__name__)

MatchSource = Union[Bracket, Iterable[Match]]

# Severity order used when several kinds block a match equally often
KIND_PRIORITY = [
    ViolationKind.OUTSIDE_OPERATING_WINDOW,
    ViolationKind.VENUE_OVER_CAPACITY,
    ViolationKind.TEAM_DOUBLE_BOOKED,
    ViolationKind.REST_GAP_VIOLATED,
]


def match_list(source: MatchSource) -> List[Match]:
    if isinstance(source, Bracket):
        return source.all_matches()
    return list(source)


class PlacementIndex:
    """Entries placed so far, indexed by team, venue and match."""

    def __init__(self):
        self.teams = TeamRestTracker()
        self.venues = VenueOccupancy()
        self.entries: Dict[str, ScheduleEntry] = {}

    def add(self, entry: ScheduleEntry, team_ids: Sequence[str]) -> None:
        self.teams.add_assignment(team_ids, entry.start, entry.end, entry.match_id)
        self.venues.add(entry)
        self.entries[entry.match_id] = entry

    def to_schedule(self) -> Schedule:
        return Schedule.from_entries(self.entries.values())


class ConflictValidator:
    def __init__(self, matches: MatchSource, venues: Sequence[Venue], constraints: SchedulingConstraints):
        self.matches: Dict[str, Match] = {m.id: m for m in match_list(matches)}
        self.venues: Dict[str, Venue] = {v.id: v for v in venues}
        self.constraints = constraints

        # match_id -> real feeder ids its open placeholder slots wait on
        self._waits_on: Dict[str, Set[str]] = {}
        # feeder id -> matches waiting on it
        self._waited_by: Dict[str, Set[str]] = defaultdict(set)
        for match in self.matches.values():
            feeders = set()
            for ref in (match.slot_a, match.slot_b):
                if is_placeholder(ref):
                    feeders.update(self._real_feeders(ref, set()))
            self._waits_on[match.id] = feeders
            for feeder in feeders:
                self._waited_by[feeder].add(match.id)

    def _real_feeders(self, ref: ParticipantRef, seen: Set[str]) -> Set[str]:
        feeder_id = source_match_id(ref)
        if feeder_id is None or feeder_id in seen:
            return set()
        seen.add(feeder_id)
        feeder = self.matches.get(feeder_id)
        if feeder is None or not feeder.is_bye:
            return {feeder_id}
        result = set()
        for inner in (feeder.slot_a, feeder.slot_b):
            if is_placeholder(inner):
                result.update(self._real_feeders(inner, seen))
        return result

    def team_ids(self, match_id: str) -> Sequence[str]:
        match = self.matches.get(match_id)
        return match.team_ids() if match is not None else ()

    def new_index(self) -> PlacementIndex:
        return PlacementIndex()

    # ------------------------------------------------------------------
    # Per-entry checks
    # ------------------------------------------------------------------

    def check_window(self, entry: ScheduleEntry) -> List[Violation]:
        violations = []
        c = self.constraints
        venue = self.venues.get(entry.venue_id)
        if venue is None:
            return [
                Violation(
                    kind=ViolationKind.OUTSIDE_OPERATING_WINDOW,
                    match_id=entry.match_id,
                    detail=f"Venue {entry.venue_id} is not a known venue",
                    venue_id=entry.venue_id,
                )
            ]

        if not c.tournament_window.contains(entry.start, entry.end):
            violations.append(
                Violation(
                    kind=ViolationKind.OUTSIDE_OPERATING_WINDOW,
                    match_id=entry.match_id,
                    detail=(
                        f"{entry.start:%Y-%m-%d %H:%M}-{entry.end:%H:%M} is outside the tournament window "
                        f"{c.tournament_window.start:%Y-%m-%d %H:%M}-{c.tournament_window.end:%Y-%m-%d %H:%M}"
                    ),
                    venue_id=venue.id,
                )
            )
        if venue.operating_windows and not venue.is_open(entry.start, entry.end):
            violations.append(
                Violation(
                    kind=ViolationKind.OUTSIDE_OPERATING_WINDOW,
                    match_id=entry.match_id,
                    detail=f"Venue {venue.id} is not open for all of {entry.start:%Y-%m-%d %H:%M}-{entry.end:%H:%M}",
                    venue_id=venue.id,
                )
            )
        for blackout in c.blackouts:
            if blackout.overlaps(entry.start, entry.end):
                violations.append(
                    Violation(
                        kind=ViolationKind.OUTSIDE_OPERATING_WINDOW,
                        match_id=entry.match_id,
                        detail=f"Runs into blackout {blackout.start:%H:%M}-{blackout.end:%H:%M}",
                        venue_id=venue.id,
                    )
                )
        return violations

    def check_capacity(self, entry: ScheduleEntry, index: PlacementIndex) -> List[Violation]:
        venue = self.venues.get(entry.venue_id)
        if venue is None:
            return []
        running, others = index.venues.peak_concurrency(venue.id, entry.start, entry.end)
        if running + 1 <= venue.capacity:
            return []
        return [
            Violation(
                kind=ViolationKind.VENUE_OVER_CAPACITY,
                match_id=entry.match_id,
                detail=(
                    f"Venue {venue.id} would host {running + 1} simultaneous matches "
                    f"(capacity {venue.capacity}) with {', '.join(others)}"
                ),
                venue_id=venue.id,
                conflicting_match_id=others[0],
            )
        ]

    def check_teams(self, entry: ScheduleEntry, index: PlacementIndex) -> List[Violation]:
        violations = []
        c = self.constraints
        for conflict in index.teams.check(self.team_ids(entry.match_id), entry.start, entry.end, c.min_rest):
            if conflict.overlapping:
                violations.append(
                    Violation(
                        kind=ViolationKind.TEAM_DOUBLE_BOOKED,
                        match_id=entry.match_id,
                        detail=f"Team {conflict.team_id} also plays {conflict.other_match_id} at the same time",
                        team_id=conflict.team_id,
                        conflicting_match_id=conflict.other_match_id,
                    )
                )
            else:
                violations.append(
                    Violation(
                        kind=ViolationKind.REST_GAP_VIOLATED,
                        match_id=entry.match_id,
                        detail=(
                            f"Team {conflict.team_id} has {conflict.gap_minutes:.0f} min rest around "
                            f"{conflict.other_match_id} (minimum {c.min_rest_minutes})"
                        ),
                        team_id=conflict.team_id,
                        conflicting_match_id=conflict.other_match_id,
                    )
                )
        return violations

    def check_dependencies(self, entry: ScheduleEntry, index: PlacementIndex) -> List[Violation]:
        """Placeholder participants: the feeder must end min_rest before this match starts."""
        violations = []
        for feeder_id in sorted(self._waits_on.get(entry.match_id, ())):
            feeder = index.entries.get(feeder_id)
            if feeder is not None:
                violation = self._dependency_violation(entry.match_id, feeder, entry, feeder_id)
                if violation is not None:
                    violations.append(violation)
        for dependent_id in sorted(self._waited_by.get(entry.match_id, ())):
            dependent = index.entries.get(dependent_id)
            if dependent is not None:
                violation = self._dependency_violation(entry.match_id, entry, dependent, dependent_id)
                if violation is not None:
                    violations.append(violation)
        return violations

    def _dependency_violation(
        self, reported_id: str, feeder: ScheduleEntry, dependent: ScheduleEntry, other_id: str
    ) -> Optional[Violation]:
        c = self.constraints
        if dependent.start < feeder.end:
            return Violation(
                kind=ViolationKind.REST_GAP_VIOLATED,
                match_id=reported_id,
                detail=(
                    f"{dependent.match_id} starts at {dependent.start:%H:%M} before its feeder "
                    f"{feeder.match_id} ends at {feeder.end:%H:%M}"
                ),
                conflicting_match_id=other_id,
            )
        gap = gap_minutes(feeder.start, feeder.end, dependent.start, dependent.end)
        if gap < c.min_rest_minutes:
            return Violation(
                kind=ViolationKind.REST_GAP_VIOLATED,
                match_id=reported_id,
                detail=(
                    f"{dependent.match_id} starts {gap:.0f} min after its feeder {feeder.match_id} "
                    f"(minimum {c.min_rest_minutes})"
                ),
                conflicting_match_id=other_id,
            )
        return None

    def check_entry(self, entry: ScheduleEntry, index: PlacementIndex) -> List[Violation]:
        """All violations a single entry causes against the already placed entries."""
        return (
            self.check_window(entry)
            + self.check_capacity(entry, index)
            + self.check_teams(entry, index)
            + self.check_dependencies(entry, index)
        )

    # ------------------------------------------------------------------
    # Whole schedule
    # ------------------------------------------------------------------

    def check_entry_ids(self, entries: Iterable[ScheduleEntry]) -> None:
        """
        Raises EngineValidationError for an entry whose match is unknown, a bye,
        or already listed earlier in the same schedule.
        """
        seen: Set[str] = set()
        for entry in entries:
            match = self.matches.get(entry.match_id)
            if match is None:
                raise EngineValidationError(f"Schedule entry for unknown match {entry.match_id}")
            if match.is_bye:
                raise EngineValidationError(f"Match {entry.match_id} is a bye and cannot be scheduled")
            if entry.match_id in seen:
                raise EngineValidationError(f"Match {entry.match_id} is scheduled more than once")
            seen.add(entry.match_id)

    def validate(self, schedule: Union[Schedule, Iterable[ScheduleEntry]]) -> List[Violation]:
        entries = schedule.entries if isinstance(schedule, Schedule) else tuple(schedule)
        self.check_entry_ids(entries)
        index = self.new_index()
        violations: List[Violation] = []
        for entry in sorted(entries, key=entry_sort_key):
            violations.extend(self.check_entry(entry, index))
            index.add(entry, self.team_ids(entry.match_id))

        if violations:
            logger.info("Schedule has %d violations: %s", len(violations), dict(Counter(v.kind.value for v in violations)))
        return violations


def validate_schedule(
    schedule: Union[Schedule, Iterable[ScheduleEntry]],
    matches: MatchSource,
    venues: Sequence[Venue],
    constraints: SchedulingConstraints,
) -> List[Violation]:
    return ConflictValidator(matches, venues, constraints).validate(schedule)


def revalidate(
    schedule: Schedule,
    bracket: Bracket,
    venues: Sequence[Venue],
    constraints: SchedulingConstraints,
    extra_matches: Iterable[Match] = (),
) -> List[Violation]:
    """Re-check a schedule against the bracket's current (resolved) participants."""
    return ConflictValidator(bracket.all_matches() + list(extra_matches), venues, constraints).validate(schedule)


def dominant_kind(violations: Sequence[Violation]) -> Optional[ViolationKind]:
    """Kind that occurs most often; ties go to the earlier kind in KIND_PRIORITY."""
    if not violations:
        return None
    counts = Counter(v.kind for v in violations)
    return max(KIND_PRIORITY, key=lambda k: (counts.get(k, 0), -KIND_PRIORITY.index(k)))
