from fastapi import HTTPException

from tournament_engine.errors import SchedulingInfeasibleError, TournamentEngineError


def to_http_exception(error: TournamentEngineError) -> HTTPException:
    """Infeasibility -> 409 with the blocking match; anything else the engine rejects -> 422."""
    if isinstance(error, SchedulingInfeasibleError):
        return HTTPException(status_code=409, detail=error.to_dict())
    return HTTPException(status_code=422, detail=str(error))
