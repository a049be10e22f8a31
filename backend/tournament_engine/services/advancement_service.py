"""
Advancement: apply match results and propagate them through the bracket.

Resolution walks every match and rewrites placeholder slots from their
feeder matches:
- WinnerOf(x), x completed        -> Concrete(winner of x)
- LoserOf(x),  x completed        -> Concrete(loser of x)
- LoserOf(x),  x is a bye match   -> Bye (a walkover produces no loser)
- any reference to a pruned match -> Bye

A match whose slots are both Bye is pruned from the bracket (a bye never
faces another bye). A bye match whose other slot is a known team is
completed immediately with that team as winner. The walk repeats until
nothing changes, so it is idempotent.

Generation-time references (source_a/source_b) are never rewritten.

All functions return a new Bracket; the input is never modified.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Set

from tournament_engine.errors import MatchResultError
from tournament_engine.models.bracket import Bracket, BracketType
from tournament_engine.models.match import BracketSide, Match, MatchStatus
from tournament_engine.models.participants import (
    BYE,
    Concrete,
    LoserOf,
    ParticipantRef,
    WinnerOf,
    is_bye,
    team_id_of,
)

logger = logging.getLogger(__name__)


def _resolve_ref(ref: ParticipantRef, matches: Dict[str, Match], pruned: Set[str]) -> ParticipantRef:
    if isinstance(ref, WinnerOf):
        if ref.match_id in pruned:
            return BYE
        source = matches.get(ref.match_id)
        if source is not None and source.is_completed and source.winner is not None:
            return Concrete(source.winner)
        return ref

    if isinstance(ref, LoserOf):
        if ref.match_id in pruned:
            return BYE
        source = matches.get(ref.match_id)
        if source is None:
            return ref
        if source.is_bye:
            return BYE
        if source.is_completed and source.loser is not None:
            return Concrete(source.loser)
        return ref

    return ref


def resolve_all(bracket: Bracket) -> Bracket:
    """
    Propagate every known result and auto-resolve byes until a fixed point.

    Guarantees:
        - Idempotent (resolving a resolved bracket returns an equal bracket)
        - Deterministic (matches are walked in round order)
    """
    matches: Dict[str, Match] = bracket.match_map()
    pruned: Set[str] = set()

    changed = True
    while changed:
        changed = False
        for match_id in list(matches):
            match = matches[match_id]
            slot_a = _resolve_ref(match.slot_a, matches, pruned)
            slot_b = _resolve_ref(match.slot_b, matches, pruned)
            if slot_a != match.slot_a or slot_b != match.slot_b:
                match = replace(match, slot_a=slot_a, slot_b=slot_b)
                changed = True

            if is_bye(slot_a) and is_bye(slot_b):
                del matches[match_id]
                pruned.add(match_id)
                changed = True
                continue

            if match.is_bye and not match.is_completed:
                advancing = team_id_of(slot_b if is_bye(slot_a) else slot_a)
                if advancing is not None:
                    match = replace(match, status=MatchStatus.COMPLETED, winner=advancing, loser=None)
                    changed = True

            matches[match_id] = match

    if pruned:
        logger.debug("Pruned empty matches: %s", sorted(pruned))

    rounds = []
    for rnd in bracket.rounds:
        kept = tuple(matches[m.id] for m in rnd.matches if m.id in matches)
        if kept:
            rounds.append(replace(rnd, matches=kept))

    reset = matches.get(bracket.reset_match.id) if bracket.reset_match is not None else None
    return replace(bracket, rounds=tuple(rounds), reset_match=reset)


def _materialize_reset(bracket: Bracket, grand_final: Match) -> Match:
    # Upper champion (lost the first final) stays on side A
    return Match(
        id=bracket.reset_match_id,
        round_index=2,
        position=0,
        side=BracketSide.FINAL,
        slot_a=LoserOf(grand_final.id),
        slot_b=WinnerOf(grand_final.id),
        source_a=LoserOf(grand_final.id),
        source_b=WinnerOf(grand_final.id),
    )


def record_result(
    bracket: Bracket,
    match_id: str,
    winner_team_id: str,
    score_a: Optional[int] = None,
    score_b: Optional[int] = None,
) -> Bracket:
    """
    Record the winner of a match and advance it (and, in double elimination,
    drop the loser) into dependent matches.

    Recording the same winner twice is a no-op apart from scores.

    Raises:
        MatchResultError: unknown match, bye match, participants not yet
            known, winner not in the match, or a different winner already
            recorded.
    """
    match = bracket.find_match(match_id)
    if match is None:
        raise MatchResultError(f"Match {match_id} not found")
    if match.is_bye:
        raise MatchResultError(f"Match {match_id} is a bye and is resolved automatically")

    team_a = team_id_of(match.slot_a)
    team_b = team_id_of(match.slot_b)
    if team_a is None or team_b is None:
        raise MatchResultError(f"Match {match_id} participants are not known yet")
    if winner_team_id not in (team_a, team_b):
        raise MatchResultError(f"Team {winner_team_id} is not playing in match {match_id}")
    if match.is_completed and match.winner != winner_team_id:
        raise MatchResultError(f"Match {match_id} already has a different winner recorded ({match.winner})")

    loser = team_b if winner_team_id == team_a else team_a
    updated = replace(
        match,
        status=MatchStatus.COMPLETED,
        winner=winner_team_id,
        loser=loser,
        score_a=score_a if score_a is not None else match.score_a,
        score_b=score_b if score_b is not None else match.score_b,
    )

    reset = None
    is_grand_final = (
        bracket.type == BracketType.DOUBLE
        and match.side == BracketSide.FINAL
        and match.id != bracket.reset_match_id
    )
    if is_grand_final and bracket.reset_match is None and winner_team_id == team_b:
        reset = _materialize_reset(bracket, match)
        logger.info("Lower-bracket champion %s won %s; reset match %s required", winner_team_id, match_id, reset.id)

    result = resolve_all(bracket.with_matches({match_id: updated}, reset_match=reset))
    logger.debug("Recorded %s winner=%s loser=%s", match_id, winner_team_id, loser)
    return result


def champion(bracket: Bracket) -> Optional[str]:
    """Tournament winner, or None while undecided."""
    final = bracket.final_match
    if bracket.type == BracketType.SINGLE:
        return final.winner if final.is_completed else None

    if bracket.reset_match is not None:
        reset = bracket.reset_match
        return reset.winner if reset.is_completed else None
    if final.is_completed and final.winner == team_id_of(final.slot_a):
        return final.winner
    return None


def loss_counts(bracket: Bracket) -> Dict[str, int]:
    """Losses per team across all completed, contested matches."""
    counts: Dict[str, int] = {team_id: 0 for team_id in bracket.seeds}
    for match in bracket.all_matches():
        if match.is_completed and match.loser is not None:
            counts[match.loser] = counts.get(match.loser, 0) + 1
    return counts


def eliminated_teams(bracket: Bracket) -> List[str]:
    """Teams out of the tournament: one loss in single, two in double elimination."""
    limit = 1 if bracket.type == BracketType.SINGLE else 2
    return sorted(team_id for team_id, losses in loss_counts(bracket).items() if losses >= limit)


def ready_matches(bracket: Bracket) -> List[Match]:
    """Contested matches with both participants known and no result yet."""
    return [
        m
        for m in bracket.all_matches()
        if not m.is_bye and not m.is_completed and len(m.team_ids()) == 2
    ]
