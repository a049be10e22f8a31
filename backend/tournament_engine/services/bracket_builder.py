"""
Bracket Builder - single and double elimination match graphs

Single elimination
    A complete binary tournament of log2(size) rounds. Round 1 pairs
    bracket positions (0,1), (2,3), ... of the seeded field; round r+1
    match k takes the winners of round r matches 2k and 2k+1. Round-1 byes
    are completed at generation time with the real team advancing.

Double elimination
    The upper bracket is built exactly like single elimination (ids W<r>-M<k>).
    Upper-bracket losers drop into the lower bracket (ids L<r>-M<k>) at:

        upper round r | lower round receiving its losers
        --------------+---------------------------------
              1       | 1    (losers paired with each other)
              r >= 2  | 2r - 2 (each loser meets a lower-bracket survivor)

    so the lower bracket has 2 * (log2(size) - 1) rounds, alternating
    "drop-in" rounds (even) and "consolidation" rounds (odd, after L1) in
    which survivors play each other. Lower round sizes for size=16:
    L1:4, L2:4, L3:2, L4:2, L5:1, L6:1. Losers dropping from even upper
    rounds are fed in reverse order to delay rematches.

    Grand final (GF): upper champion vs lower champion. The reset match
    (GF-RESET) is only reserved by id here; it is materialized by
    advancement once the lower-bracket champion wins the grand final.

    Upper-round-1 byes leave no loser, so the lower-bracket slot they would
    feed becomes a bye; a lower match left with two byes is pruned.
"""

import logging
import random
from typing import List, Optional, Sequence

from tournament_engine.errors import BracketSizeError, SeedSizeMismatchError
from tournament_engine.models.bracket import Bracket, BracketRound, BracketType
from tournament_engine.models.match import BracketSide, Match
from tournament_engine.models.participants import LoserOf, ParticipantRef, WinnerOf, is_bye, team_id_of
from tournament_engine.models.team import Team
from tournament_engine.services.advancement_service import resolve_all
from tournament_engine.utils.randomness import RandomSource, make_rng
from tournament_engine.utils.seeding import SeededField, SeedingMode, assign_seeds

logger = logging.getLogger(__name__)

RESET_MATCH_ID = "GF-RESET"
GRAND_FINAL_ID = "GF"


def lower_drop_round(upper_round: int) -> int:
    """Lower-bracket round that receives the losers of the given upper round."""
    if upper_round < 1:
        raise ValueError(f"upper_round must be >= 1, got {upper_round}")
    return 1 if upper_round == 1 else 2 * upper_round - 2


def lower_round_count(size: int) -> int:
    return 2 * (_log2(size) - 1) if size >= 2 else 0


def _log2(size: int) -> int:
    return size.bit_length() - 1


def single_round_name(round_index: int, total_rounds: int) -> str:
    remaining = total_rounds - round_index
    if remaining == 0:
        return "Final"
    if remaining == 1:
        return "Semifinals"
    if remaining == 2:
        return "Quarterfinals"
    return f"Round of {2 ** (remaining + 1)}"


def winners_round_name(round_index: int, total_rounds: int) -> str:
    remaining = total_rounds - round_index
    if remaining == 0:
        return "Winners Final"
    if remaining == 1:
        return "Winners Semifinal"
    if remaining == 2:
        return "Winners Quarterfinal"
    return f"Winners Round {round_index}"


def losers_round_name(round_index: int, total_rounds: int) -> str:
    remaining = total_rounds - round_index
    if remaining == 0:
        return "Losers Final"
    if remaining == 1:
        return "Losers Semifinal"
    return f"Losers Round {round_index}"


def _match(
    match_id: str,
    round_index: int,
    position: int,
    side: BracketSide,
    slot_a: ParticipantRef,
    slot_b: ParticipantRef,
) -> Match:
    return Match(
        id=match_id,
        round_index=round_index,
        position=position,
        side=side,
        slot_a=slot_a,
        slot_b=slot_b,
        source_a=slot_a,
        source_b=slot_b,
    )


def _validate_field(seeded: SeededField) -> None:
    size = seeded.size
    if size < 2:
        raise BracketSizeError(f"Bracket size must be at least 2, got {size}")
    if size & (size - 1):
        raise BracketSizeError(f"Bracket size must be a power of two, got {size}")
    if len(seeded.slots) != size:
        raise SeedSizeMismatchError(
            f"Seeded field has {len(seeded.slots)} positions but bracket size is {size}"
        )
    for k in range(size // 2):
        if is_bye(seeded.slots[2 * k]) and is_bye(seeded.slots[2 * k + 1]):
            raise SeedSizeMismatchError(f"Bracket positions {2 * k} and {2 * k + 1} are both byes")
    real = sum(1 for ref in seeded.slots if team_id_of(ref) is not None)
    if real < 2:
        raise BracketSizeError(f"Bracket needs at least 2 teams, got {real}")
    if real <= size // 2:
        raise BracketSizeError(f"Bracket size {size} is too large for {real} teams")


def _upper_rounds(seeded: SeededField, prefix: str, double: bool) -> List[BracketRound]:
    total = _log2(seeded.size)
    namer = winners_round_name if double else single_round_name

    first = tuple(
        _match(f"{prefix}1-M{k + 1}", 1, k, BracketSide.UPPER, seeded.slots[2 * k], seeded.slots[2 * k + 1])
        for k in range(seeded.size // 2)
    )
    rounds = [BracketRound(BracketSide.UPPER, 1, namer(1, total), first)]

    previous = first
    for r in range(2, total + 1):
        current = tuple(
            _match(
                f"{prefix}{r}-M{k + 1}",
                r,
                k,
                BracketSide.UPPER,
                WinnerOf(previous[2 * k].id),
                WinnerOf(previous[2 * k + 1].id),
            )
            for k in range(len(previous) // 2)
        )
        rounds.append(BracketRound(BracketSide.UPPER, r, namer(r, total), current))
        previous = current
    return rounds


def _lower_rounds(upper: Sequence[BracketRound]) -> List[BracketRound]:
    upper_total = len(upper)
    lower_total = 2 * (upper_total - 1)
    if lower_total == 0:
        return []

    rounds: List[BracketRound] = []

    def add_round(number: int, pairs: Sequence) -> tuple:
        matches = tuple(
            _match(f"L{number}-M{k + 1}", number, k, BracketSide.LOWER, a, b) for k, (a, b) in enumerate(pairs)
        )
        rounds.append(BracketRound(BracketSide.LOWER, number, losers_round_name(number, lower_total), matches))
        return matches

    w1 = upper[0].matches
    previous = add_round(
        1,
        [(LoserOf(w1[2 * k].id), LoserOf(w1[2 * k + 1].id)) for k in range(len(w1) // 2)],
    )

    number = 1
    for r in range(2, upper_total + 1):
        drops = [LoserOf(m.id) for m in upper[r - 1].matches]
        if r % 2 == 0:
            drops.reverse()
        number += 1
        assert number == lower_drop_round(r)
        previous = add_round(number, [(WinnerOf(m.id), drop) for m, drop in zip(previous, drops)])

        if r < upper_total:
            number += 1
            previous = add_round(
                number,
                [(WinnerOf(previous[2 * k].id), WinnerOf(previous[2 * k + 1].id)) for k in range(len(previous) // 2)],
            )
    return rounds


def _grand_final(upper: Sequence[BracketRound], lower: Sequence[BracketRound]) -> BracketRound:
    upper_final = upper[-1].matches[0]
    if lower:
        lower_champion: ParticipantRef = WinnerOf(lower[-1].matches[0].id)
    else:
        # Two-team field: the only upper loser is the lower champion
        lower_champion = LoserOf(upper_final.id)
    gf = _match(GRAND_FINAL_ID, 1, 0, BracketSide.FINAL, WinnerOf(upper_final.id), lower_champion)
    return BracketRound(BracketSide.FINAL, 1, "Grand Final", (gf,))


def build_from_field(seeded: SeededField, bracket_type: BracketType = BracketType.SINGLE) -> Bracket:
    """
    Build the match graph for an already seeded field.

    Raises:
        BracketSizeError: size < 2, not a power of two, or not the smallest
            power of two for the team count
        SeedSizeMismatchError: field length != bracket size
    """
    _validate_field(seeded)
    double = bracket_type == BracketType.DOUBLE

    upper = _upper_rounds(seeded, "W" if double else "R", double)
    rounds = list(upper)
    reset_id = None
    if double:
        lower = _lower_rounds(upper)
        rounds.extend(lower)
        rounds.append(_grand_final(upper, lower))
        reset_id = RESET_MATCH_ID

    seeds = dict(seeded.seeds)
    if not seeds:
        seeds = {
            team_id_of(ref): rank
            for rank, ref in enumerate((r for r in seeded.slots if team_id_of(r) is not None), start=1)
        }

    byes = tuple(m.id for m in upper[0].matches if m.is_bye)
    bracket = Bracket(
        type=bracket_type,
        size=seeded.size,
        team_count=len(seeds),
        rounds=tuple(rounds),
        byes=byes,
        seeds=seeds,
        reset_match_id=reset_id,
    )
    bracket = resolve_all(bracket)

    logger.info(
        "Built %s elimination bracket: %d teams, size %d, %d byes, %d playable matches",
        bracket_type.value,
        bracket.team_count,
        bracket.size,
        len(bracket.byes),
        len(bracket.playable_matches()),
    )
    return bracket


def build_bracket(
    teams: Sequence[Team],
    bracket_type: BracketType = BracketType.SINGLE,
    seeding_mode: SeedingMode = SeedingMode.SEEDED,
    rng: RandomSource = None,
) -> Bracket:
    """Seed the roster and build its bracket in one step.

    Random seeding draws from `rng` only; without one it raises
    EngineValidationError like assign_seeds.
    """
    generator: Optional[random.Random] = make_rng(rng) if rng is not None else None
    seeded = assign_seeds(teams, seeding_mode, generator)
    return build_from_field(seeded, bracket_type)
