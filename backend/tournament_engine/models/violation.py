from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ViolationKind(str, Enum):
    TEAM_DOUBLE_BOOKED = "team_double_booked"
    REST_GAP_VIOLATED = "rest_gap_violated"
    VENUE_OVER_CAPACITY = "venue_over_capacity"
    OUTSIDE_OPERATING_WINDOW = "outside_operating_window"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    match_id: str
    detail: str
    team_id: Optional[str] = None
    venue_id: Optional[str] = None
    conflicting_match_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "match_id": self.match_id,
            "detail": self.detail,
            "team_id": self.team_id,
            "venue_id": self.venue_id,
            "conflicting_match_id": self.conflicting_match_id,
        }
