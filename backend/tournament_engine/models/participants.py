"""
Participant references for match slots.

A slot is always exactly one of:
- Concrete(team_id): a known team
- WinnerOf(match_id): the winner of an earlier match, not yet known
- LoserOf(match_id): the loser of an earlier match (double elimination drops)
- Bye: an empty padding slot; the opponent advances without playing
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class Concrete:
    team_id: str


@dataclass(frozen=True)
class WinnerOf:
    match_id: str


@dataclass(frozen=True)
class LoserOf:
    match_id: str


@dataclass(frozen=True)
class Bye:
    pass


ParticipantRef = Union[Concrete, WinnerOf, LoserOf, Bye]

BYE = Bye()


def is_bye(ref: ParticipantRef) -> bool:
    return isinstance(ref, Bye)


def is_placeholder(ref: ParticipantRef) -> bool:
    return isinstance(ref, (WinnerOf, LoserOf))


def team_id_of(ref: ParticipantRef) -> Optional[str]:
    """Team id for a concrete reference, None otherwise."""
    if isinstance(ref, Concrete):
        return ref.team_id
    return None


def source_match_id(ref: ParticipantRef) -> Optional[str]:
    """Feeder match id for a placeholder reference, None otherwise."""
    if isinstance(ref, (WinnerOf, LoserOf)):
        return ref.match_id
    return None


def ref_label(ref: ParticipantRef) -> str:
    if isinstance(ref, Concrete):
        return ref.team_id
    if isinstance(ref, WinnerOf):
        return f"Winner {ref.match_id}"
    if isinstance(ref, LoserOf):
        return f"Loser {ref.match_id}"
    return "BYE"


def ref_to_dict(ref: ParticipantRef) -> Dict[str, Any]:
    if isinstance(ref, Concrete):
        return {"kind": "team", "team_id": ref.team_id}
    if isinstance(ref, WinnerOf):
        return {"kind": "winner_of", "match_id": ref.match_id}
    if isinstance(ref, LoserOf):
        return {"kind": "loser_of", "match_id": ref.match_id}
    return {"kind": "bye"}


def ref_from_dict(data: Dict[str, Any]) -> ParticipantRef:
    kind = data.get("kind")
    if kind == "team":
        return Concrete(str(data["team_id"]))
    if kind == "winner_of":
        return WinnerOf(str(data["match_id"]))
    if kind == "loser_of":
        return LoserOf(str(data["match_id"]))
    if kind == "bye":
        return BYE
    raise ValueError(f"Unknown participant kind: {kind!r}")
