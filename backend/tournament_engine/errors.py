"""
Error taxonomy for the tournament engine.

Generation-time errors are fatal to the call and surface unmodified.
Scheduling infeasibility is recoverable only by caller action (wider
horizon, another venue, shorter rest). Constraint violations are not
errors: they are returned as Violation values.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from tournament_engine.models.schedule import Schedule


class TournamentEngineError(Exception):
    """Base exception for engine errors"""

    pass


class EngineValidationError(TournamentEngineError):
    """Malformed input: too few teams, duplicate ids, non-positive capacity, ..."""

    pass


class BracketConstructionError(TournamentEngineError):
    """Bracket could not be built from the given field"""

    pass


class BracketSizeError(BracketConstructionError):
    pass


class SeedSizeMismatchError(BracketConstructionError):
    pass


class MatchResultError(TournamentEngineError):
    """A result cannot be applied to the bracket"""

    pass


class ScheduleEditError(TournamentEngineError):
    """A proposed edit references an unknown match or venue"""

    pass


class SchedulingInfeasibleError(TournamentEngineError):
    """No slot/venue combination satisfies the constraints for a match."""

    def __init__(
        self,
        match_id: str,
        constraint: str,
        detail: str,
        partial_schedule: Optional["Schedule"] = None,
    ):
        self.match_id = match_id
        self.constraint = constraint
        self.detail = detail
        self.partial_schedule = partial_schedule
        super().__init__(f"Cannot place match {match_id}: {constraint} ({detail})")

    def to_dict(self) -> dict:
        return {
            "error": "scheduling_infeasible",
            "match_id": self.match_id,
            "constraint": self.constraint,
            "detail": self.detail,
            "placed_matches": len(self.partial_schedule) if self.partial_schedule is not None else 0,
        }
