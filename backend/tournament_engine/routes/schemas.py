"""
Request/response models shared by the route handlers.

Engine values cross the HTTP boundary as the plain dicts produced by
tournament_engine.utils.serialization; only the inputs an organizer types
in (teams, venues, constraints) get their own models.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tournament_engine import config
from tournament_engine.models.schedule import SchedulingConstraints
from tournament_engine.models.team import Team
from tournament_engine.models.venue import TimeWindow, Venue

# ============================================================================
# Inputs
# ============================================================================


class TeamIn(BaseModel):
    id: str
    name: str
    seed: Optional[int] = None

    def to_team(self) -> Team:
        return Team(id=self.id, name=self.name, seed=self.seed)


class WindowIn(BaseModel):
    start: datetime
    end: datetime

    def to_window(self) -> TimeWindow:
        return TimeWindow(self.start, self.end)


class VenueIn(BaseModel):
    id: str
    name: str
    capacity: int = 1
    operating_windows: List[WindowIn] = Field(default_factory=list)

    def to_venue(self) -> Venue:
        return Venue(
            id=self.id,
            name=self.name,
            capacity=self.capacity,
            operating_windows=tuple(w.to_window() for w in self.operating_windows),
        )


class ConstraintsIn(BaseModel):
    """Omitted values fall back to the environment configuration."""

    tournament_window: WindowIn
    min_rest_minutes: Optional[int] = None
    match_duration_minutes: Optional[int] = None
    sport: Optional[str] = None
    slot_interval_minutes: Optional[int] = None
    blackouts: List[WindowIn] = Field(default_factory=list)

    def to_constraints(self) -> SchedulingConstraints:
        return SchedulingConstraints(
            tournament_window=self.tournament_window.to_window(),
            min_rest_minutes=(
                self.min_rest_minutes if self.min_rest_minutes is not None else config.DEFAULT_MIN_REST_MINUTES
            ),
            match_duration_minutes=(
                self.match_duration_minutes
                if self.match_duration_minutes is not None
                else config.DEFAULT_MATCH_DURATION_MINUTES
            ),
            sport=self.sport,
            durations_by_sport=dict(config.SPORT_DURATIONS),
            slot_interval_minutes=(
                self.slot_interval_minutes if self.slot_interval_minutes is not None else config.SLOT_INTERVAL_MINUTES
            ),
            blackouts=tuple(b.to_window() for b in self.blackouts),
        )


class MatchesIn(BaseModel):
    """A bracket, loose matches (e.g. a group stage), or both."""

    bracket: Optional[Dict[str, Any]] = None
    matches: List[Dict[str, Any]] = Field(default_factory=list)


# ============================================================================
# Draws
# ============================================================================


class DrawRequest(BaseModel):
    teams: List[TeamIn]
    groups_count: int
    mode: str = "auto"
    seed: Optional[int] = None


class DrawOrderRequest(BaseModel):
    teams: List[TeamIn]
    seed: Optional[int] = None


class DrawResponse(BaseModel):
    mode: str
    group_sizes: List[int]
    groups: List[Dict[str, Any]]


class DrawOrderResponse(BaseModel):
    picks: List[Dict[str, Any]]


# ============================================================================
# Brackets and groups
# ============================================================================


class BracketRequest(BaseModel):
    teams: List[TeamIn]
    bracket_type: str = "single"
    seeding_mode: str = "seeded"
    seed: Optional[int] = None


class ResultRequest(BaseModel):
    bracket: Dict[str, Any]
    match_id: str
    winner_team_id: str
    score_a: Optional[int] = None
    score_b: Optional[int] = None


class BracketResponse(BaseModel):
    bracket: Dict[str, Any]
    playable_matches: int
    champion: Optional[str] = None
    eliminated: List[str] = Field(default_factory=list)


class GroupMatchesRequest(BaseModel):
    groups: List[Dict[str, Any]]


class GroupMatchesResponse(BaseModel):
    match_count: int
    matches: List[Dict[str, Any]]


# ============================================================================
# Schedules
# ============================================================================


class ScheduleRequest(MatchesIn):
    venues: List[VenueIn]
    constraints: ConstraintsIn


class ValidateRequest(ScheduleRequest):
    schedule: Dict[str, Any]


class ProposeMoveRequest(ValidateRequest):
    match_id: str
    new_start: datetime
    venue_id: str


class ScheduleResponse(BaseModel):
    match_count: int
    schedule: Dict[str, Any]


class ValidateResponse(BaseModel):
    valid: bool
    violation_count: int
    violations: List[Dict[str, Any]]


class ProposeMoveResponse(BaseModel):
    accepted: bool
    violations: List[Dict[str, Any]]
    schedule: Dict[str, Any]
