from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from tournament_engine.models.participants import (
    ParticipantRef,
    is_bye,
    source_match_id,
    team_id_of,
)


class MatchStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class BracketSide(str, Enum):
    UPPER = "upper"  # single elimination uses only this side
    LOWER = "lower"
    FINAL = "final"  # grand final and its reset
    GROUP = "group"  # round-robin group stage


@dataclass(frozen=True)
class Match:
    id: str
    round_index: int  # 1-based within its side
    position: int  # 0-based within its round
    side: BracketSide
    slot_a: ParticipantRef
    slot_b: ParticipantRef

    # Generation-time references; never rewritten when results resolve
    source_a: Optional[ParticipantRef] = None
    source_b: Optional[ParticipantRef] = None

    status: MatchStatus = MatchStatus.PENDING
    winner: Optional[str] = None
    loser: Optional[str] = None
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    group_id: Optional[str] = None

    @property
    def is_bye(self) -> bool:
        """A match with an empty slot is never played."""
        return is_bye(self.slot_a) or is_bye(self.slot_b)

    @property
    def is_completed(self) -> bool:
        return self.status == MatchStatus.COMPLETED

    def team_ids(self) -> Tuple[str, ...]:
        """Known (concrete) teams currently in this match."""
        return tuple(t for t in (team_id_of(self.slot_a), team_id_of(self.slot_b)) if t is not None)

    def feeder_ids(self) -> Tuple[str, ...]:
        """Matches this one depends on, from its generation-time references."""
        feeders = []
        for ref in (self.source_a or self.slot_a, self.source_b or self.slot_b):
            match_id = source_match_id(ref)
            if match_id is not None and match_id not in feeders:
                feeders.append(match_id)
        return tuple(feeders)
