"""
Scheduler: greedy match-to-slot assignment with hard constraints

Matches are placed one at a time in dependency order (a match never comes
before a match it waits on), each into the earliest feasible start time:

- Candidate starts come from each venue's operating windows (the whole
  tournament window when a venue declares none), clipped to the tournament
  window, stepped by slot_interval_minutes, with room for the full match
  duration and not running through a blackout
- A candidate is feasible when the ConflictValidator reports nothing for it
  against everything placed so far
- Several venues feasible at the same start: the venue with the fewest
  matches already placed that day wins, then the lowest venue id

Bye matches are never scheduled.

Guarantees:
- Same inputs -> same schedule (no randomness, fully ordered iteration)
- Either every contested match is placed, or SchedulingInfeasibleError names
  the first match that could not be placed, with the blocking constraint and
  the partial schedule placed before it
"""

import logging
from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Sequence, Tuple

from tournament_engine.config import MAX_MATCH_DURATION_MINUTES
from tournament_engine.errors import EngineValidationError, SchedulingInfeasibleError
from tournament_engine.models.bracket import Bracket
from tournament_engine.models.match import BracketSide, Match, MatchStatus
from tournament_engine.models.schedule import Schedule, ScheduleEntry, SchedulingConstraints, TimeSlot
from tournament_engine.models.venue import Venue
from tournament_engine.models.violation import Violation, ViolationKind
from tournament_engine.services.conflict_validator import ConflictValidator, MatchSource, dominant_kind, match_list

logger = logging.getLogger(__name__)

SIDE_ORDER = {
    BracketSide.GROUP: 0,
    BracketSide.UPPER: 1,
    BracketSide.LOWER: 2,
    BracketSide.FINAL: 3,
}


# ============================================================================
# Input validation
# ============================================================================


def validate_inputs(matches: Sequence[Match], venues: Sequence[Venue], constraints: SchedulingConstraints) -> None:
    """
    Raises:
        EngineValidationError: on malformed venues, matches or constraints
    """
    if not venues:
        raise EngineValidationError("At least one venue is required")

    venue_ids = [v.id for v in venues]
    if len(set(venue_ids)) != len(venue_ids):
        raise EngineValidationError("Venue ids must be unique")
    for venue in venues:
        if venue.capacity < 1:
            raise EngineValidationError(f"Venue {venue.id} capacity must be positive, got {venue.capacity}")
        for window in venue.operating_windows:
            if window.start >= window.end:
                raise EngineValidationError(f"Venue {venue.id} has an empty operating window")

    match_ids = [m.id for m in matches]
    if len(set(match_ids)) != len(match_ids):
        raise EngineValidationError("Match ids must be unique")

    c = constraints
    if c.tournament_window.start >= c.tournament_window.end:
        raise EngineValidationError("Tournament window must end after it starts")
    duration = c.duration_minutes
    if duration <= 0 or duration > MAX_MATCH_DURATION_MINUTES:
        raise EngineValidationError(
            f"Match duration must be between 1 and {MAX_MATCH_DURATION_MINUTES} minutes, got {duration}"
        )
    if c.min_rest_minutes < 0:
        raise EngineValidationError(f"Minimum rest cannot be negative, got {c.min_rest_minutes}")
    if c.slot_interval_minutes <= 0:
        raise EngineValidationError(f"Slot interval must be positive, got {c.slot_interval_minutes}")


# ============================================================================
# Ordering
# ============================================================================


def dependency_depths(matches: Sequence[Match]) -> Dict[str, int]:
    """Longest chain of feeder matches behind each match (0 = no feeders)."""
    by_id = {m.id: m for m in matches}
    depths: Dict[str, int] = {}

    def depth(match_id: str, trail: Tuple[str, ...]) -> int:
        if match_id in depths:
            return depths[match_id]
        if match_id in trail:
            raise EngineValidationError(f"Circular match dependency through {match_id}")
        match = by_id[match_id]
        feeders = [f for f in match.feeder_ids() if f in by_id]
        value = 1 + max(depth(f, trail + (match_id,)) for f in feeders) if feeders else 0
        depths[match_id] = value
        return value

    for match in matches:
        depth(match.id, ())
    return depths


def get_match_sort_key(match: Match, depths: Dict[str, int]) -> Tuple:
    """Deterministic placement order: dependency depth, side, round, position, id."""
    return (
        depths.get(match.id, 0),
        SIDE_ORDER.get(match.side, len(SIDE_ORDER)),
        match.round_index,
        match.position,
        match.id,
    )


# ============================================================================
# Candidate slots
# ============================================================================


def candidate_starts(venue: Venue, constraints: SchedulingConstraints) -> List[datetime]:
    c = constraints
    duration = c.duration
    step = timedelta(minutes=c.slot_interval_minutes)
    windows = venue.operating_windows or (c.tournament_window,)

    starts = set()
    for window in windows:
        usable = window.intersect(c.tournament_window)
        t = usable.start
        while t + duration <= usable.end:
            if not any(b.overlaps(t, t + duration) for b in c.blackouts):
                starts.add(t)
            t += step
    return sorted(starts)


def build_candidates(venues: Sequence[Venue], constraints: SchedulingConstraints) -> List[Tuple[datetime, List[Venue]]]:
    """(start, venues open at that start) in chronological order."""
    by_start: Dict[datetime, List[Venue]] = {}
    for venue in venues:
        for start in candidate_starts(venue, constraints):
            by_start.setdefault(start, []).append(venue)
    return [(start, by_start[start]) for start in sorted(by_start)]


# ============================================================================
# Scheduling
# ============================================================================


def schedule_matches(
    matches: MatchSource,
    venues: Sequence[Venue],
    constraints: SchedulingConstraints,
) -> Schedule:
    """
    Assign every contested match a start time and venue.

    Args:
        matches: a Bracket or any iterable of matches (brackets, group stages, or both)
        venues: venues with capacity and operating windows
        constraints: tournament window, rest, duration, slot interval, blackouts

    Returns:
        Schedule with one entry per contested match

    Raises:
        EngineValidationError: malformed input
        SchedulingInfeasibleError: a match has no feasible slot
    """
    all_matches = match_list(matches)
    validate_inputs(all_matches, venues, constraints)

    validator = ConflictValidator(all_matches, venues, constraints)
    depths = dependency_depths(all_matches)
    to_place = sorted((m for m in all_matches if not m.is_bye), key=lambda m: get_match_sort_key(m, depths))
    candidates = build_candidates(venues, constraints)
    duration = constraints.duration

    logger.info(
        "Scheduling %d matches on %d venues (%d candidate starts, %d min matches, %d min rest)",
        len(to_place),
        len(venues),
        len(candidates),
        constraints.duration_minutes,
        constraints.min_rest_minutes,
    )

    index = validator.new_index()
    for match in to_place:
        team_ids = match.team_ids()
        if not candidates:
            raise SchedulingInfeasibleError(
                match.id,
                ViolationKind.OUTSIDE_OPERATING_WINDOW.value,
                f"No operating window fits a {constraints.duration_minutes}-minute match",
                partial_schedule=index.to_schedule(),
            )

        blocking: List[Violation] = []
        placed = None
        for start, open_venues in candidates:
            feasible = []
            for venue in open_venues:
                entry = ScheduleEntry(match.id, TimeSlot(start, start + duration, venue.id), venue.id)
                violations = validator.check_entry(entry, index)
                if violations:
                    blocking.extend(violations)
                else:
                    feasible.append((index.venues.day_count(venue.id, start.date()), venue.id, entry))
            if feasible:
                placed = min(feasible, key=lambda f: (f[0], f[1]))[2]
                break

        if placed is None:
            kind = dominant_kind(blocking) or ViolationKind.OUTSIDE_OPERATING_WINDOW
            counts = Counter(v.kind.value for v in blocking)
            logger.warning("No feasible slot for match %s (blocked by %s)", match.id, dict(counts))
            raise SchedulingInfeasibleError(
                match.id,
                kind.value,
                f"No start time and venue satisfies all constraints; blocked {counts[kind.value]} times by {kind.value}",
                partial_schedule=index.to_schedule(),
            )

        index.add(placed, team_ids)
        logger.debug("Placed %s at %s on %s", match.id, placed.start.isoformat(), placed.venue_id)

    schedule = index.to_schedule()
    logger.info("Scheduled %d matches", len(schedule))
    return schedule


def schedule_bracket(
    bracket: Bracket,
    venues: Sequence[Venue],
    constraints: SchedulingConstraints,
    extra_matches: Iterable[Match] = (),
) -> Schedule:
    """Schedule a bracket, optionally together with other matches (e.g. a group stage)."""
    return schedule_matches(list(extra_matches) + bracket.all_matches(), venues, constraints)


def apply_schedule_status(bracket: Bracket, schedule: Schedule) -> Bracket:
    """Mark pending bracket matches that have a schedule entry as SCHEDULED."""
    scheduled = schedule.by_match()
    updated = {
        m.id: replace(m, status=MatchStatus.SCHEDULED)
        for m in bracket.all_matches()
        if m.id in scheduled and m.status == MatchStatus.PENDING
    }
    return bracket.with_matches(updated)
