"""
Swiss system: round-by-round pairing and Buchholz standings.

Each round pairs teams with the same number of wins, highest score group
first. Teams inside a score group are shuffled with the injected generator
(standings order when none is given); a team left over drops into the next
group down. Pairings avoid rematches whenever a rematch-free pairing of the
remaining teams exists.

With an odd roster one team sits the round out: the lowest ranked team
among those with the fewest byes so far. A bye is not a match and scores
nothing.

Matches are group-side Match values (ids S-R<round>-M<k>) recorded with
record_group_result and placed by the Scheduler like round-robin fixtures.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from tournament_engine.errors import EngineValidationError
from tournament_engine.models.match import BracketSide, Match
from tournament_engine.models.participants import Concrete, team_id_of
from tournament_engine.models.team import Team
from tournament_engine.utils.randomness import RandomSource, make_rng, maybe_shuffle
from tournament_engine.utils.seeding import validate_roster

logger = logging.getLogger(__name__)

SWISS = "swiss"


def swiss_round_count(team_count: int) -> int:
    """Rounds needed to separate a single unbeaten team: ceil(log2(N))."""
    if team_count < 2:
        return 0
    return (team_count - 1).bit_length()


@dataclass
class SwissStanding:
    team_id: str
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0
    buchholz: int = 0  # sum of the wins of every opponent met
    byes: int = 0

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
            "buchholz": self.buchholz,
            "byes": self.byes,
        }


@dataclass(frozen=True)
class SwissRound:
    number: int
    matches: Tuple[Match, ...]
    bye_team_id: Optional[str] = None


def _pair_of(match: Match) -> Optional[Tuple[str, str]]:
    team_a = team_id_of(match.slot_a)
    team_b = team_id_of(match.slot_b)
    if team_a is None or team_b is None:
        return None
    return team_a, team_b


def swiss_standings(teams: Sequence[Team], matches: Sequence[Match]) -> List[SwissStanding]:
    """
    Table from the completed matches.

    Order: wins desc, Buchholz desc, point differential desc, team id asc.
    Equal scores are a draw. Matches involving teams outside the roster are
    ignored.
    """
    table: Dict[str, SwissStanding] = {t.id: SwissStanding(t.id) for t in teams}
    opponents: Dict[str, List[str]] = {t.id: [] for t in teams}
    appearances: Dict[int, Set[str]] = {}

    for match in matches:
        pair = _pair_of(match)
        if pair is None or pair[0] not in table or pair[1] not in table:
            continue
        appearances.setdefault(match.round_index, set()).update(pair)
        if not match.is_completed:
            continue
        a, b = table[pair[0]], table[pair[1]]
        score_a = match.score_a or 0
        score_b = match.score_b or 0
        a.played += 1
        b.played += 1
        a.points_for += score_a
        a.points_against += score_b
        b.points_for += score_b
        b.points_against += score_a
        opponents[a.team_id].append(b.team_id)
        opponents[b.team_id].append(a.team_id)
        if match.winner is None:
            a.draws += 1
            b.draws += 1
        elif match.winner == a.team_id:
            a.wins += 1
            b.losses += 1
        else:
            b.wins += 1
            a.losses += 1

    for standing in table.values():
        standing.buchholz = sum(table[o].wins for o in opponents[standing.team_id])
        standing.byes = sum(1 for seen in appearances.values() if standing.team_id not in seen)

    return sorted(
        table.values(),
        key=lambda s: (-s.wins, -s.buchholz, -s.point_differential, s.team_id),
    )


def _played_pairs(matches: Sequence[Match]) -> Set[frozenset]:
    return {frozenset(pair) for pair in (_pair_of(m) for m in matches) if pair is not None}


def _pair_without_rematches(pool: List[str], played: Set[frozenset]) -> Optional[List[Tuple[str, str]]]:
    """Pair pool[0] with the nearest team it has not met, backtracking on dead ends."""
    if not pool:
        return []
    first, rest = pool[0], pool[1:]
    for i, other in enumerate(rest):
        if frozenset((first, other)) in played:
            continue
        remainder = _pair_without_rematches(rest[:i] + rest[i + 1 :], played)
        if remainder is not None:
            return [(first, other)] + remainder
    return None


def generate_swiss_round(
    teams: Sequence[Team],
    matches: Sequence[Match],
    rng: RandomSource = None,
) -> SwissRound:
    """
    Pair the next Swiss round from the rounds played so far.

    Raises:
        EngineValidationError: bad roster, or the latest round is unfinished
    """
    validate_roster(teams)

    latest = max((m.round_index for m in matches), default=0)
    unfinished = [m.id for m in matches if m.round_index == latest and not m.is_completed]
    if unfinished:
        raise EngineValidationError(f"Round {latest} still has unfinished matches: {', '.join(unfinished)}")
    number = latest + 1

    standings = swiss_standings(teams, matches)
    ranked = [s.team_id for s in standings]

    bye_team_id = None
    if len(ranked) % 2 == 1:
        fewest = min(s.byes for s in standings)
        bye_team_id = next(s.team_id for s in reversed(standings) if s.byes == fewest)
        ranked.remove(bye_team_id)

    by_wins: Dict[int, List[str]] = {}
    wins = {s.team_id: s.wins for s in standings}
    for team_id in ranked:
        by_wins.setdefault(wins[team_id], []).append(team_id)
    generator = make_rng(rng) if rng is not None else None
    pool: List[str] = []
    for score in sorted(by_wins, reverse=True):
        pool.extend(maybe_shuffle(by_wins[score], generator))

    played = _played_pairs(matches)
    pairs = _pair_without_rematches(pool, played)
    if pairs is None:
        logger.warning("Swiss round %d: no rematch-free pairing exists, pairing in order", number)
        pairs = [(pool[i], pool[i + 1]) for i in range(0, len(pool), 2)]

    round_matches = []
    for k, (team_a, team_b) in enumerate(pairs, start=1):
        slot_a, slot_b = Concrete(team_a), Concrete(team_b)
        round_matches.append(
            Match(
                id=f"S-R{number}-M{k}",
                round_index=number,
                position=k - 1,
                side=BracketSide.GROUP,
                slot_a=slot_a,
                slot_b=slot_b,
                source_a=slot_a,
                source_b=slot_b,
            )
        )

    logger.info(
        "Paired Swiss round %d: %d matches, bye=%s",
        number,
        len(round_matches),
        bye_team_id,
    )
    return SwissRound(number=number, matches=tuple(round_matches), bye_team_id=bye_team_id)
