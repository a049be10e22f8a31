"""
API Routes for brackets, results and group-stage fixtures

Stateless: the caller holds the bracket (as returned by POST /brackets) and
sends it back with each result.
"""

import random

from fastapi import APIRouter, HTTPException

from tournament_engine.errors import TournamentEngineError
from tournament_engine.models.bracket import Bracket, BracketType
from tournament_engine.routes.errors import to_http_exception
from tournament_engine.routes.schemas import (
    BracketRequest,
    BracketResponse,
    GroupMatchesRequest,
    GroupMatchesResponse,
    ResultRequest,
)
from tournament_engine.services.advancement_service import champion, eliminated_teams, record_result
from tournament_engine.services.bracket_builder import build_bracket
from tournament_engine.services.round_robin import generate_group_matches
from tournament_engine.utils.seeding import SeedingMode
from tournament_engine.utils.serialization import bracket_from_dict, bracket_to_dict, groups_from_dict, match_to_dict

router = APIRouter()


def _bracket_response(bracket: Bracket) -> BracketResponse:
    return BracketResponse(
        bracket=bracket_to_dict(bracket),
        playable_matches=len(bracket.playable_matches()),
        champion=champion(bracket),
        eliminated=eliminated_teams(bracket),
    )


@router.post("/brackets", response_model=BracketResponse)
def create_bracket(request: BracketRequest):
    """Seed the roster and build a single or double elimination bracket."""
    try:
        bracket_type = BracketType(request.bracket_type)
        seeding_mode = SeedingMode(request.seeding_mode)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    rng = random.Random(request.seed) if request.seed is not None else None
    try:
        bracket = build_bracket(
            [t.to_team() for t in request.teams],
            bracket_type=bracket_type,
            seeding_mode=seeding_mode,
            rng=rng,
        )
    except TournamentEngineError as e:
        raise to_http_exception(e)
    return _bracket_response(bracket)


@router.post("/brackets/results", response_model=BracketResponse)
def post_result(request: ResultRequest):
    """Record a winner and return the advanced bracket."""
    try:
        bracket = bracket_from_dict(request.bracket)
        bracket = record_result(
            bracket,
            request.match_id,
            request.winner_team_id,
            score_a=request.score_a,
            score_b=request.score_b,
        )
    except TournamentEngineError as e:
        raise to_http_exception(e)
    return _bracket_response(bracket)


@router.post("/groups/matches", response_model=GroupMatchesResponse)
def create_group_matches(request: GroupMatchesRequest):
    """Round-robin fixtures for every group."""
    try:
        matches = generate_group_matches(groups_from_dict(request.groups))
    except (KeyError, TypeError) as e:
        raise HTTPException(status_code=422, detail=f"Malformed groups: {e}")
    except TournamentEngineError as e:
        raise to_http_exception(e)
    return GroupMatchesResponse(match_count=len(matches), matches=[match_to_dict(m) for m in matches])
