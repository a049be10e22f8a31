"""
Plain-dict (JSON-ready) rendering of engine values.

Datetimes are ISO 8601 strings. Every *_from_dict accepts what the matching
*_to_dict produces.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List

from tournament_engine.errors import EngineValidationError
from tournament_engine.models.bracket import Bracket, BracketRound, BracketType
from tournament_engine.models.group import Group
from tournament_engine.models.match import BracketSide, Match, MatchStatus
from tournament_engine.models.participants import ref_from_dict, ref_label, ref_to_dict
from tournament_engine.models.schedule import Schedule, ScheduleEntry, TimeSlot
from tournament_engine.models.violation import Violation, ViolationKind

RESET_ROUND_NAME = "Grand Final Reset"


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise EngineValidationError(f"Invalid datetime: {value!r}")


# ============================================================================
# Matches and brackets
# ============================================================================


def match_to_dict(match: Match) -> Dict[str, Any]:
    return {
        "id": match.id,
        "round_index": match.round_index,
        "position": match.position,
        "side": match.side.value,
        "slot_a": ref_to_dict(match.slot_a),
        "slot_b": ref_to_dict(match.slot_b),
        "label_a": ref_label(match.slot_a),
        "label_b": ref_label(match.slot_b),
        "source_a": ref_to_dict(match.source_a) if match.source_a is not None else None,
        "source_b": ref_to_dict(match.source_b) if match.source_b is not None else None,
        "status": match.status.value,
        "is_bye": match.is_bye,
        "winner": match.winner,
        "loser": match.loser,
        "score_a": match.score_a,
        "score_b": match.score_b,
        "group_id": match.group_id,
    }


def match_from_dict(data: Dict[str, Any]) -> Match:
    return Match(
        id=data["id"],
        round_index=int(data["round_index"]),
        position=int(data["position"]),
        side=BracketSide(data["side"]),
        slot_a=ref_from_dict(data["slot_a"]),
        slot_b=ref_from_dict(data["slot_b"]),
        source_a=ref_from_dict(data["source_a"]) if data.get("source_a") else None,
        source_b=ref_from_dict(data["source_b"]) if data.get("source_b") else None,
        status=MatchStatus(data.get("status", MatchStatus.PENDING.value)),
        winner=data.get("winner"),
        loser=data.get("loser"),
        score_a=data.get("score_a"),
        score_b=data.get("score_b"),
        group_id=data.get("group_id"),
    )


def bracket_to_dict(bracket: Bracket) -> Dict[str, Any]:
    return {
        "type": bracket.type.value,
        "size": bracket.size,
        "team_count": bracket.team_count,
        "bye_count": bracket.bye_count,
        "byes": list(bracket.byes),
        "seeds": dict(bracket.seeds),
        "rounds": [
            {
                "side": r.side.value,
                "number": r.number,
                "name": r.name,
                "matches": [match_to_dict(m) for m in r.matches],
            }
            for r in bracket.rounds
        ],
        "reset_match_id": bracket.reset_match_id,
        "reset_match": (
            dict(match_to_dict(bracket.reset_match), round_name=RESET_ROUND_NAME)
            if bracket.reset_match is not None
            else None
        ),
    }


def bracket_from_dict(data: Dict[str, Any]) -> Bracket:
    try:
        rounds = tuple(
            BracketRound(
                side=BracketSide(r["side"]),
                number=int(r["number"]),
                name=r["name"],
                matches=tuple(match_from_dict(m) for m in r["matches"]),
            )
            for r in data["rounds"]
        )
        reset = data.get("reset_match")
        return Bracket(
            type=BracketType(data["type"]),
            size=int(data["size"]),
            team_count=int(data["team_count"]),
            rounds=rounds,
            byes=tuple(data.get("byes", ())),
            seeds={str(k): int(v) for k, v in data.get("seeds", {}).items()},
            reset_match_id=data.get("reset_match_id"),
            reset_match=match_from_dict(reset) if reset else None,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise EngineValidationError(f"Malformed bracket: {e}")


# ============================================================================
# Schedules, groups and violations
# ============================================================================


def entry_to_dict(entry: ScheduleEntry) -> Dict[str, Any]:
    return {
        "match_id": entry.match_id,
        "venue_id": entry.venue_id,
        "start": entry.start.isoformat(),
        "end": entry.end.isoformat(),
    }


def entry_from_dict(data: Dict[str, Any]) -> ScheduleEntry:
    start = _parse_datetime(data["start"])
    end = _parse_datetime(data["end"])
    if end <= start:
        raise EngineValidationError(f"Schedule entry for {data['match_id']} ends before it starts")
    return ScheduleEntry(data["match_id"], TimeSlot(start, end, data["venue_id"]), data["venue_id"])


def schedule_to_dict(schedule: Schedule) -> Dict[str, Any]:
    return {"entries": [entry_to_dict(e) for e in schedule.entries]}


def schedule_from_dict(data: Dict[str, Any]) -> Schedule:
    return Schedule.from_entries(entry_from_dict(e) for e in data.get("entries", []))


def groups_to_dict(groups: Iterable[Group]) -> List[Dict[str, Any]]:
    return [g.to_dict() for g in groups]


def groups_from_dict(data: Iterable[Dict[str, Any]]) -> List[Group]:
    return [Group(id=str(g["id"]), members=tuple(str(m) for m in g["members"])) for g in data]


def violations_to_dict(violations: Iterable[Violation]) -> List[Dict[str, Any]]:
    return [v.to_dict() for v in violations]


def violation_from_dict(data: Dict[str, Any]) -> Violation:
    return Violation(
        kind=ViolationKind(data["kind"]),
        match_id=data["match_id"],
        detail=data.get("detail", ""),
        team_id=data.get("team_id"),
        venue_id=data.get("venue_id"),
        conflicting_match_id=data.get("conflicting_match_id"),
    )
