"""
API Routes for scheduling, validation and single-match edits
"""

from typing import List

from fastapi import APIRouter, HTTPException

from tournament_engine.errors import EngineValidationError, TournamentEngineError
from tournament_engine.models.match import Match
from tournament_engine.routes.errors import to_http_exception
from tournament_engine.routes.schemas import (
    MatchesIn,
    ProposeMoveRequest,
    ProposeMoveResponse,
    ScheduleRequest,
    ScheduleResponse,
    ValidateRequest,
    ValidateResponse,
)
from tournament_engine.services.conflict_validator import validate_schedule
from tournament_engine.services.schedule_editor import propose_move
from tournament_engine.services.scheduler import schedule_matches
from tournament_engine.utils.serialization import (
    bracket_from_dict,
    match_from_dict,
    schedule_from_dict,
    schedule_to_dict,
    violations_to_dict,
)

router = APIRouter()


def _collect_matches(request: MatchesIn) -> List[Match]:
    matches: List[Match] = []
    try:
        matches.extend(match_from_dict(m) for m in request.matches)
    except (KeyError, TypeError, ValueError) as e:
        raise EngineValidationError(f"Malformed match: {e}")
    if request.bracket is not None:
        matches.extend(bracket_from_dict(request.bracket).all_matches())
    if not matches:
        raise EngineValidationError("Provide a bracket and/or matches to schedule")
    return matches


@router.post("/schedules", response_model=ScheduleResponse)
def create_schedule(request: ScheduleRequest):
    """
    Place every contested match into a time slot and venue.

    Returns 409 naming the first match that cannot be placed (with the
    violated constraint) when the venues and window cannot hold the event.
    """
    try:
        schedule = schedule_matches(
            _collect_matches(request),
            [v.to_venue() for v in request.venues],
            request.constraints.to_constraints(),
        )
    except TournamentEngineError as e:
        raise to_http_exception(e)
    return ScheduleResponse(match_count=len(schedule), schedule=schedule_to_dict(schedule))


@router.post("/schedules/validate", response_model=ValidateResponse)
def validate(request: ValidateRequest):
    """All constraint violations in a (possibly hand-edited) schedule."""
    try:
        violations = validate_schedule(
            schedule_from_dict(request.schedule),
            _collect_matches(request),
            [v.to_venue() for v in request.venues],
            request.constraints.to_constraints(),
        )
    except (KeyError, TypeError) as e:
        raise HTTPException(status_code=422, detail=f"Malformed schedule: {e}")
    except TournamentEngineError as e:
        raise to_http_exception(e)
    return ValidateResponse(
        valid=not violations,
        violation_count=len(violations),
        violations=violations_to_dict(violations),
    )


@router.post("/schedules/propose-move", response_model=ProposeMoveResponse)
def propose_schedule_move(request: ProposeMoveRequest):
    """
    Validate moving one match as a delta against the committed schedule.

    The returned schedule is the new one when accepted, otherwise the
    committed schedule unchanged.
    """
    try:
        result = propose_move(
            schedule_from_dict(request.schedule),
            request.match_id,
            request.new_start,
            request.venue_id,
            _collect_matches(request),
            [v.to_venue() for v in request.venues],
            request.constraints.to_constraints(),
        )
    except (KeyError, TypeError) as e:
        raise HTTPException(status_code=422, detail=f"Malformed schedule: {e}")
    except TournamentEngineError as e:
        raise to_http_exception(e)
    return ProposeMoveResponse(
        accepted=result.accepted,
        violations=violations_to_dict(result.violations),
        schedule=schedule_to_dict(result.schedule),
    )
