"""
API Routes for group draws and lot-draw order
"""

import random

from fastapi import APIRouter, HTTPException

from tournament_engine.errors import TournamentEngineError
from tournament_engine.routes.errors import to_http_exception
from tournament_engine.routes.schemas import DrawOrderRequest, DrawOrderResponse, DrawRequest, DrawResponse
from tournament_engine.services.draw_engine import DrawMode, draw_groups, draw_order, resolve_mode
from tournament_engine.utils.serialization import groups_to_dict

router = APIRouter()


@router.post("/draws", response_model=DrawResponse)
def create_draw(request: DrawRequest):
    """
    Deal the roster into groups (serpentine order).

    Pass `seed` for a reproducible draw; without one a fresh generator is used
    for random and unseeded-team shuffles.
    """
    try:
        mode = DrawMode(request.mode)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown draw mode: {request.mode}")

    teams = [t.to_team() for t in request.teams]
    rng = random.Random(request.seed) if request.seed is not None else None
    try:
        groups = draw_groups(teams, request.groups_count, mode=mode, rng=rng)
    except TournamentEngineError as e:
        raise to_http_exception(e)

    return DrawResponse(
        mode=resolve_mode(teams, mode).value,
        group_sizes=[g.size for g in groups],
        groups=groups_to_dict(groups),
    )


@router.post("/draws/order", response_model=DrawOrderResponse)
def create_draw_order(request: DrawOrderRequest):
    """Random draw positions 1..N for every team."""
    rng = random.Random(request.seed) if request.seed is not None else None
    try:
        picks = draw_order([t.to_team() for t in request.teams], rng=rng)
    except TournamentEngineError as e:
        raise to_http_exception(e)
    return DrawOrderResponse(picks=[p.to_dict() for p in picks])
