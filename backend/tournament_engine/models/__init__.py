from tournament_engine.models.bracket import Bracket, BracketRound, BracketType
from tournament_engine.models.group import Group
from tournament_engine.models.match import BracketSide, Match, MatchStatus
from tournament_engine.models.participants import BYE, Bye, Concrete, LoserOf, ParticipantRef, WinnerOf
from tournament_engine.models.schedule import Schedule, ScheduleEntry, SchedulingConstraints, TimeSlot
from tournament_engine.models.team import Team
from tournament_engine.models.venue import TimeWindow, Venue
from tournament_engine.models.violation import Violation, ViolationKind

__all__ = [
    "Team",
    "Concrete",
    "WinnerOf",
    "LoserOf",
    "Bye",
    "BYE",
    "ParticipantRef",
    "Match",
    "MatchStatus",
    "BracketSide",
    "Bracket",
    "BracketRound",
    "BracketType",
    "Group",
    "Venue",
    "TimeWindow",
    "TimeSlot",
    "ScheduleEntry",
    "Schedule",
    "SchedulingConstraints",
    "Violation",
    "ViolationKind",
]
