"""
Schedule Editor: validate a single proposed change against the committed schedule

An organizer moving one match (drag-to-reschedule) or adding a match that
did not exist when the schedule was generated (the grand final reset) is
handled as a delta:

1. The committed schedule is never modified
2. The proposed entry is checked against every other committed entry with
   the same checks the Scheduler uses
3. Only when nothing is violated is a new Schedule returned with the change

A rejected edit returns the violations and the committed schedule unchanged.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Sequence, Tuple

from tournament_engine.errors import ScheduleEditError
from tournament_engine.models.schedule import Schedule, ScheduleEntry, SchedulingConstraints, TimeSlot
from tournament_engine.models.venue import Venue
from tournament_engine.models.violation import Violation
from tournament_engine.services.conflict_validator import ConflictValidator, MatchSource, match_list

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditResult:
    accepted: bool
    proposed: ScheduleEntry
    schedule: Schedule  # the new schedule if accepted, otherwise the committed one
    violations: Tuple[Violation, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "accepted": self.accepted,
            "match_id": self.proposed.match_id,
            "start": self.proposed.start.isoformat(),
            "end": self.proposed.end.isoformat(),
            "venue_id": self.proposed.venue_id,
            "violations": [v.to_dict() for v in self.violations],
        }


def _validate_delta(
    committed: Schedule,
    proposed: ScheduleEntry,
    matches: MatchSource,
    venues: Sequence[Venue],
    constraints: SchedulingConstraints,
) -> EditResult:
    validator = ConflictValidator(matches, venues, constraints)
    if proposed.venue_id not in validator.venues:
        raise ScheduleEditError(f"Venue {proposed.venue_id} not found")

    index = validator.new_index()
    others = [e for e in committed.entries if e.match_id != proposed.match_id]
    for entry in others:
        index.add(entry, validator.team_ids(entry.match_id))

    violations = validator.check_entry(proposed, index)
    if violations:
        logger.warning(
            "Rejected edit for match %s at %s on %s: %s",
            proposed.match_id,
            proposed.start.isoformat(),
            proposed.venue_id,
            ", ".join(sorted({v.kind.value for v in violations})),
        )
        return EditResult(accepted=False, proposed=proposed, schedule=committed, violations=tuple(violations))

    logger.info("Accepted edit for match %s at %s on %s", proposed.match_id, proposed.start.isoformat(), proposed.venue_id)
    return EditResult(accepted=True, proposed=proposed, schedule=Schedule.from_entries(others + [proposed]))


def propose_move(
    committed: Schedule,
    match_id: str,
    new_start: datetime,
    venue_id: str,
    matches: MatchSource,
    venues: Sequence[Venue],
    constraints: SchedulingConstraints,
) -> EditResult:
    """
    Move an already scheduled match to a new start time and/or venue.

    The match keeps its current duration.

    Raises:
        ScheduleEditError: match not in the committed schedule, or unknown venue
    """
    current = committed.entry_for(match_id)
    if current is None:
        raise ScheduleEditError(f"Match {match_id} is not in the committed schedule")

    duration = current.end - current.start
    proposed = ScheduleEntry(match_id, TimeSlot(new_start, new_start + duration, venue_id), venue_id)
    return _validate_delta(committed, proposed, matches, venues, constraints)


def propose_add(
    committed: Schedule,
    match_id: str,
    start: datetime,
    venue_id: str,
    matches: MatchSource,
    venues: Sequence[Venue],
    constraints: SchedulingConstraints,
    duration_minutes: Optional[int] = None,
) -> EditResult:
    """
    Add a match that is not yet scheduled (e.g. a materialized reset match).

    Raises:
        ScheduleEditError: match already scheduled, unknown match, or unknown venue
    """
    if committed.entry_for(match_id) is not None:
        raise ScheduleEditError(f"Match {match_id} is already scheduled; use propose_move")

    all_matches = match_list(matches)
    if match_id not in {m.id for m in all_matches}:
        raise ScheduleEditError(f"Match {match_id} not found")

    minutes = duration_minutes if duration_minutes is not None else constraints.duration_minutes
    proposed = ScheduleEntry(match_id, TimeSlot(start, start + timedelta(minutes=minutes), venue_id), venue_id)
    return _validate_delta(committed, proposed, all_matches, venues, constraints)
