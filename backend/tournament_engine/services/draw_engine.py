"""
Draw Engine - group assignment and ad-hoc draw order

Group draws deal teams into groups in serpentine (snake) order:
  pick 0..G-1      -> A, B, ..., last
  pick G..2G-1     -> last, ..., B, A
  and so on, alternating.

Group sizes therefore differ by at most one, and when teams are dealt
strongest first the cumulative seed strength is balanced across groups.

Draw modes:
- SNAKE:  seeded teams in seed order, then unseeded teams (shuffled with
          the injected generator when one is given, otherwise input order)
- RANDOM: Fisher-Yates shuffle of the whole roster, seeds ignored
- AUTO:   SNAKE when any team has a seed, RANDOM otherwise

The batch draw is the system of record. DrawSession reveals the same draw
one team at a time; for the same generator seed both produce identical
group membership because they run the same shuffle step in the same order.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from tournament_engine.errors import EngineValidationError
from tournament_engine.models.group import Group
from tournament_engine.models.team import Team
from tournament_engine.utils.randomness import RandomSource, fisher_yates_step, make_rng
from tournament_engine.utils.seeding import validate_roster

logger = logging.getLogger(__name__)


class DrawMode(str, Enum):
    SNAKE = "snake"
    RANDOM = "random"
    AUTO = "auto"


@dataclass(frozen=True)
class DrawPick:
    position: int  # 1-based draw position
    team_id: str
    group_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"position": self.position, "team_id": self.team_id, "group_id": self.group_id}


def group_label(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA, 27 -> AB, ..."""
    label = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        label = chr(ord("A") + rem) + label
    return label


def serpentine_group_index(pick_index: int, groups_count: int) -> int:
    """Group index for the pick_index-th dealt team (both 0-based)."""
    round_no, offset = divmod(pick_index, groups_count)
    if round_no % 2 == 0:
        return offset
    return groups_count - 1 - offset


def compute_group_capacities(team_count: int, groups_count: int) -> List[int]:
    """Sizes a serpentine deal produces for each group, in group order."""
    sizes = [0] * groups_count
    for i in range(team_count):
        sizes[serpentine_group_index(i, groups_count)] += 1
    return sizes


def resolve_mode(teams: Sequence[Team], mode: DrawMode) -> DrawMode:
    if mode != DrawMode.AUTO:
        return mode
    if any(t.seed is not None for t in teams):
        return DrawMode.SNAKE
    return DrawMode.RANDOM


def _validate_draw(teams: Sequence[Team], groups_count: Optional[int]) -> None:
    validate_roster(teams, minimum=1)
    if groups_count is None:
        return
    if groups_count < 1:
        raise EngineValidationError(f"groups_count must be at least 1, got {groups_count}")
    if groups_count > len(teams):
        raise EngineValidationError(
            f"Cannot split {len(teams)} teams into {groups_count} groups without empty groups"
        )


def _prepare_pool(
    teams: Sequence[Team], mode: DrawMode, rng: RandomSource
) -> Tuple[List[str], Optional[int], Optional[random.Random]]:
    """
    Returns (pool, shuffle_from, generator).

    pool[:shuffle_from] is dealt as-is; from shuffle_from on, each position
    is filled by one Fisher-Yates step. shuffle_from None means no shuffling.
    """
    if mode == DrawMode.RANDOM:
        return [t.id for t in teams], 0, make_rng(rng)

    seeded = sorted((t for t in teams if t.seed is not None), key=lambda t: t.seed)
    unseeded = [t for t in teams if t.seed is None]
    pool = [t.id for t in seeded] + [t.id for t in unseeded]
    if rng is None or not unseeded:
        return pool, None, None
    return pool, len(seeded), make_rng(rng)


class DrawSession:
    """
    One-at-a-time reveal of a draw.

    Each reveal_next() call performs exactly the shuffle step the batch draw
    performs for that position, so an animated reveal ends with the same
    membership as draw_groups() given the same seed.
    """

    def __init__(
        self,
        teams: Sequence[Team],
        groups_count: Optional[int] = None,
        mode: DrawMode = DrawMode.AUTO,
        rng: RandomSource = None,
    ):
        _validate_draw(teams, groups_count)
        self.mode = resolve_mode(teams, mode)
        self.groups_count = groups_count
        self._pool, self._shuffle_from, self._rng = _prepare_pool(teams, self.mode, rng)
        self._picks: List[DrawPick] = []

    @property
    def remaining(self) -> int:
        return len(self._pool) - len(self._picks)

    @property
    def is_complete(self) -> bool:
        return self.remaining == 0

    @property
    def picks(self) -> List[DrawPick]:
        return list(self._picks)

    def reveal_next(self) -> DrawPick:
        if self.is_complete:
            raise EngineValidationError("Draw is already complete")

        index = len(self._picks)
        if self._shuffle_from is not None and index >= self._shuffle_from:
            team_id = fisher_yates_step(self._pool, index, self._rng)
        else:
            team_id = self._pool[index]

        group_id = None
        if self.groups_count is not None:
            group_id = group_label(serpentine_group_index(index, self.groups_count))

        pick = DrawPick(position=index + 1, team_id=team_id, group_id=group_id)
        self._picks.append(pick)
        return pick

    def groups(self) -> List[Group]:
        """Groups as revealed so far (complete once is_complete)."""
        if self.groups_count is None:
            return []
        return _groups_from_picks(self._picks, self.groups_count)


def _groups_from_picks(picks: Sequence[DrawPick], groups_count: int) -> List[Group]:
    members: Dict[str, List[str]] = {group_label(i): [] for i in range(groups_count)}
    for pick in picks:
        members[pick.group_id].append(pick.team_id)
    return [Group(id=gid, members=tuple(team_ids)) for gid, team_ids in members.items()]


def draw_groups(
    teams: Sequence[Team],
    groups_count: int,
    mode: DrawMode = DrawMode.AUTO,
    rng: RandomSource = None,
) -> List[Group]:
    """
    Batch group draw. Every team lands in exactly one group; sizes differ by at most 1.

    A re-draw is simply another call: the result is a new Group list.
    """
    _validate_draw(teams, groups_count)
    resolved = resolve_mode(teams, mode)
    pool, shuffle_from, generator = _prepare_pool(teams, resolved, rng)

    if shuffle_from is not None:
        for i in range(shuffle_from, len(pool)):
            fisher_yates_step(pool, i, generator)

    picks = [
        DrawPick(position=i + 1, team_id=team_id, group_id=group_label(serpentine_group_index(i, groups_count)))
        for i, team_id in enumerate(pool)
    ]
    groups = _groups_from_picks(picks, groups_count)

    logger.info(
        "Drew %d teams into %d groups (mode=%s, sizes=%s)",
        len(teams),
        groups_count,
        resolved.value,
        [g.size for g in groups],
    )
    return groups


def draw_order(teams: Sequence[Team], rng: RandomSource = None) -> List[DrawPick]:
    """Ad-hoc lot draw: a random position 1..N for every team."""
    session = DrawSession(teams, groups_count=None, mode=DrawMode.RANDOM, rng=rng)
    while not session.is_complete:
        session.reveal_next()
    return session.picks
