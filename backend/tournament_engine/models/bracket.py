from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from tournament_engine.models.match import BracketSide, Match


class BracketType(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"


@dataclass(frozen=True)
class BracketRound:
    side: BracketSide
    number: int  # 1-based within side
    name: str
    matches: Tuple[Match, ...]


@dataclass(frozen=True)
class Bracket:
    type: BracketType
    size: int  # smallest power of two >= team_count
    team_count: int
    rounds: Tuple[BracketRound, ...]
    byes: Tuple[str, ...] = ()  # ids of bye matches
    seeds: Dict[str, int] = field(default_factory=dict)  # team_id -> seed rank

    # Double elimination only: the reset id is reserved up front, the match
    # itself exists only once the lower-bracket champion wins the grand final.
    reset_match_id: Optional[str] = None
    reset_match: Optional[Match] = None

    @property
    def bye_count(self) -> int:
        return self.size - self.team_count

    def all_matches(self) -> List[Match]:
        """All matches in round order; the reset match last if materialized."""
        matches = [m for r in self.rounds for m in r.matches]
        if self.reset_match is not None:
            matches.append(self.reset_match)
        return matches

    def match_map(self) -> Dict[str, Match]:
        return {m.id: m for m in self.all_matches()}

    def find_match(self, match_id: str) -> Optional[Match]:
        return self.match_map().get(match_id)

    def rounds_for(self, side: BracketSide) -> List[BracketRound]:
        return [r for r in self.rounds if r.side == side]

    def playable_matches(self) -> List[Match]:
        """Matches that will actually be contested (byes excluded)."""
        return [m for m in self.all_matches() if not m.is_bye]

    @property
    def final_match(self) -> Match:
        """Championship match: the last upper round, or the grand final."""
        finals = self.rounds_for(BracketSide.FINAL) if self.type == BracketType.DOUBLE else []
        if finals:
            return finals[0].matches[0]
        return self.rounds_for(BracketSide.UPPER)[-1].matches[0]

    def with_matches(self, updated: Mapping[str, Match], reset_match: Optional[Match] = None) -> "Bracket":
        """Return a new bracket with the given matches swapped in by id."""
        new_rounds = tuple(
            replace(r, matches=tuple(updated.get(m.id, m) for m in r.matches)) for r in self.rounds
        )
        reset = reset_match if reset_match is not None else self.reset_match
        if reset is not None and reset.id in updated:
            reset = updated[reset.id]
        return replace(self, rounds=new_rounds, reset_match=reset)
