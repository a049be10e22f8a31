"""
Group stage round robin: fixtures, results and standings.

Fixtures use the circle method: position 0 stays fixed, the others rotate
one step per round. An odd group gets a phantom position; whoever meets it
sits out that round (the phantom match is never materialized).

  group of 4 -> 3 rounds x 2 matches
  group of 5 -> 5 rounds x 2 matches, one team idle per round
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from tournament_engine.errors import EngineValidationError, MatchResultError
from tournament_engine.models.bracket import BracketType
from tournament_engine.models.group import Group
from tournament_engine.models.match import BracketSide, Match, MatchStatus
from tournament_engine.models.participants import Concrete, team_id_of
from tournament_engine.models.team import Team
from tournament_engine.services.swiss import SWISS, swiss_round_count
from tournament_engine.utils.seeding import bracket_seed_order, next_power_of_two

logger = logging.getLogger(__name__)

ROUND_ROBIN = "round_robin"


def rr_pairings_by_round(group_size: int) -> List[Tuple[int, int, int, int]]:
    """
    Round-robin pairings. Returns list of (round_index, sequence_in_round, idx_a, idx_b).
    idx_a, idx_b are 0-based positions in the group (draw order).
    """
    if group_size < 2:
        return []

    n = group_size
    n2 = n + 1 if n % 2 == 1 else n
    half = n2 // 2
    phantom = n if n % 2 == 1 else -1

    result: List[Tuple[int, int, int, int]] = []
    positions = list(range(n2))
    for round_num in range(1, n2):
        seq = 0
        for i in range(half):
            a, b = positions[i], positions[n2 - 1 - i]
            if a == phantom or b == phantom:
                continue
            seq += 1
            result.append((round_num, seq, min(a, b), max(a, b)))
        # keep 0 fixed, move last to second
        positions = [positions[0]] + [positions[-1]] + positions[1:-1]
    return result


def generate_group_matches(groups: Sequence[Group]) -> List[Match]:
    """
    Every pairing within every group exactly once.

    Ids are G<group>-R<round>-M<k>; matches come out group by group, round by round.
    """
    group_ids = [g.id for g in groups]
    if len(set(group_ids)) != len(group_ids):
        raise EngineValidationError("Group ids must be unique")

    matches: List[Match] = []
    for group in groups:
        for round_num, seq, a, b in rr_pairings_by_round(group.size):
            slot_a = Concrete(group.members[a])
            slot_b = Concrete(group.members[b])
            matches.append(
                Match(
                    id=f"G{group.id}-R{round_num}-M{seq}",
                    round_index=round_num,
                    position=seq - 1,
                    side=BracketSide.GROUP,
                    slot_a=slot_a,
                    slot_b=slot_b,
                    source_a=slot_a,
                    source_b=slot_b,
                    group_id=group.id,
                )
            )

    logger.info("Generated %d group matches for %d groups", len(matches), len(groups))
    return matches


def record_group_result(match: Match, score_a: int, score_b: int) -> Match:
    """Completed copy of a group match; equal scores are a draw (no winner)."""
    if match.side != BracketSide.GROUP:
        raise MatchResultError(f"Match {match.id} is not a group match")
    if score_a < 0 or score_b < 0:
        raise MatchResultError(f"Scores cannot be negative ({score_a}-{score_b})")

    team_a = team_id_of(match.slot_a)
    team_b = team_id_of(match.slot_b)
    winner: Optional[str] = None
    loser: Optional[str] = None
    if score_a > score_b:
        winner, loser = team_a, team_b
    elif score_b > score_a:
        winner, loser = team_b, team_a
    return replace(
        match,
        status=MatchStatus.COMPLETED,
        winner=winner,
        loser=loser,
        score_a=score_a,
        score_b=score_b,
    )


@dataclass
class Standing:
    team_id: str
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0

    @property
    def point_differential(self) -> int:
        return self.points_for - self.points_against

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "played": self.played,
            "wins": self.wins,
            "draws": self.draws,
            "losses": self.losses,
            "points_for": self.points_for,
            "points_against": self.points_against,
            "point_differential": self.point_differential,
        }


def group_standings(group: Group, matches: Sequence[Match]) -> List[Standing]:
    """
    Table for one group from its completed matches.

    Order: wins desc, point differential desc, points scored desc, team id asc.
    Matches of other groups are ignored.
    """
    table: Dict[str, Standing] = {team_id: Standing(team_id) for team_id in group.members}

    for match in matches:
        if match.group_id != group.id or not match.is_completed:
            continue
        team_a = team_id_of(match.slot_a)
        team_b = team_id_of(match.slot_b)
        if team_a not in table or team_b not in table:
            continue
        a, b = table[team_a], table[team_b]
        score_a = match.score_a or 0
        score_b = match.score_b or 0
        a.played += 1
        b.played += 1
        a.points_for += score_a
        a.points_against += score_b
        b.points_for += score_b
        b.points_against += score_a
        if match.winner is None:
            a.draws += 1
            b.draws += 1
        elif match.winner == team_a:
            a.wins += 1
            b.losses += 1
        else:
            b.wins += 1
            a.losses += 1

    return sorted(table.values(), key=lambda s: (-s.wins, -s.point_differential, -s.points_for, s.team_id))


def expected_match_count(format: str, team_count: int) -> int:
    """
    Contested matches for a format: single N-1, double 2N-2 (reset excluded),
    round robin N(N-1)/2, swiss floor(N/2) per round over ceil(log2(N)) rounds.
    """
    if team_count < 2:
        return 0
    if format == BracketType.SINGLE.value:
        return team_count - 1
    if format == BracketType.DOUBLE.value:
        return 2 * team_count - 2
    if format == ROUND_ROBIN:
        return team_count * (team_count - 1) // 2
    if format == SWISS:
        return (team_count // 2) * swiss_round_count(team_count)
    raise EngineValidationError(f"Unknown format: {format}")


def _meeting_round(position_a: int, position_b: int) -> int:
    """Round in which two bracket positions can first meet (1 = first round)."""
    return (position_a ^ position_b).bit_length()


def qualifiers_from_groups(
    groups: Sequence[Group],
    matches: Sequence[Match],
    per_group: int,
    roster: Sequence[Team] = (),
) -> List[Team]:
    """
    Seeded knockout field from finished groups.

    The top `per_group` of every group qualify. Group winners take seeds
    1..G in group order, runners-up the next G seeds, and so on. Within each
    tier after the first, each seed goes to the group whose already placed
    members it would meet latest in the bracket (earlier group on ties), so
    group-mates are kept apart for as long as the draw allows.

    Raises:
        EngineValidationError: per_group < 1, a group too small, unfinished
            group matches, or fewer than 2 qualifiers
    """
    if per_group < 1:
        raise EngineValidationError(f"per_group must be at least 1, got {per_group}")
    total = per_group * len(groups)
    if total < 2:
        raise EngineValidationError(f"At least 2 qualifiers are required, got {total}")

    tables: List[List[str]] = []
    for group in groups:
        if group.size < per_group:
            raise EngineValidationError(f"Group {group.id} has {group.size} teams, fewer than {per_group} qualifiers")
        unfinished = [m.id for m in matches if m.group_id == group.id and not m.is_completed]
        if unfinished:
            raise EngineValidationError(f"Group {group.id} has unfinished matches: {', '.join(unfinished)}")
        tables.append([s.team_id for s in group_standings(group, matches)[:per_group]])

    size = next_power_of_two(total)
    position_of = {rank: pos for pos, rank in enumerate(bracket_seed_order(size))}

    seeded: List[Tuple[int, int, str]] = []  # (seed, group index, team id)
    placed: Dict[int, List[int]] = {g: [] for g in range(len(groups))}
    seed = 0
    for tier in range(per_group):
        remaining = list(range(len(groups)))
        for _ in range(len(groups)):
            seed += 1
            position = position_of[seed]
            if tier == 0:
                chosen = remaining[0]
            else:
                chosen = max(
                    remaining,
                    key=lambda g: (min(_meeting_round(position, p) for p in placed[g]), -g),
                )
            remaining.remove(chosen)
            placed[chosen].append(position)
            seeded.append((seed, chosen, tables[chosen][tier]))

    names = {t.id: t.name for t in roster}
    qualifiers = [
        Team(id=team_id, name=names.get(team_id, team_id), seed=rank, group_id=groups[g].id)
        for rank, g, team_id in seeded
    ]
    logger.info(
        "Qualified %d teams from %d groups (top %d each) into a bracket of %d",
        len(qualifiers),
        len(groups),
        per_group,
        size,
    )
    return qualifiers
