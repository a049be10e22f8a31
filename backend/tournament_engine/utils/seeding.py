"""
Seed assignment: roster -> seeded, bye-padded field of bracket size.

Placement follows the standard bracket seeding table: position order is
the bracket-fold sequence (1, 8, 4, 5, 2, 7, 3, 6 for eight entries), so
seed 1 meets seed `size` in round 1 and the top seeds can only meet in
later rounds. Byes take the lowest ranks (N+1..size); since size < 2N a
bye is always paired against a real team.
"""

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from tournament_engine.errors import BracketSizeError, EngineValidationError
from tournament_engine.models.participants import BYE, Concrete, ParticipantRef
from tournament_engine.models.team import Team
from tournament_engine.utils.randomness import maybe_shuffle


class SeedingMode(str, Enum):
    SEEDED = "seeded"  # explicit seeds first, unseeded follow in input order
    INPUT_ORDER = "input_order"  # roster order is the seed order; seeds ignored
    RANDOM = "random"  # explicit seeds keep their ranks, unseeded are blind-drawn


@dataclass(frozen=True)
class SeededField:
    size: int
    slots: Tuple[ParticipantRef, ...]  # bracket positions; (0,1) is round-1 match 1
    seeds: Dict[str, int] = field(default_factory=dict)  # team_id -> rank (1-based)

    @property
    def team_count(self) -> int:
        return len(self.seeds)

    @property
    def bye_count(self) -> int:
        return self.size - self.team_count


def next_power_of_two(value: int) -> int:
    if value < 1:
        raise BracketSizeError(f"Bracket size must be positive, got {value}")
    return 1 << (value - 1).bit_length()


def bracket_seed_order(size: int) -> List[int]:
    """Seed ranks in bracket position order.

      2 -> [1, 2]
      4 -> [1, 4, 2, 3]
      8 -> [1, 8, 4, 5, 2, 7, 3, 6]
    """
    if size < 2 or size & (size - 1):
        raise BracketSizeError(f"Bracket size must be a power of two >= 2, got {size}")
    order = [1, 2]
    while len(order) < size:
        n = len(order) * 2
        order = [s for seed in order for s in (seed, n + 1 - seed)]
    return order


def validate_roster(teams: Sequence[Team], minimum: int = 2) -> None:
    """
    Raises EngineValidationError for rosters that cannot be seeded:
    fewer than `minimum` teams, duplicate/blank ids, duplicate or non-positive seeds.
    """
    if len(teams) < minimum:
        raise EngineValidationError(f"At least {minimum} teams are required, got {len(teams)}")

    seen_ids = set()
    seen_seeds: Dict[int, str] = {}
    for team in teams:
        if not team.id:
            raise EngineValidationError("Team id must be non-empty")
        if team.id in seen_ids:
            raise EngineValidationError(f"Duplicate team id: {team.id}")
        seen_ids.add(team.id)

        if team.seed is None:
            continue
        if team.seed < 1:
            raise EngineValidationError(f"Team {team.id} has non-positive seed {team.seed}")
        if team.seed in seen_seeds:
            raise EngineValidationError(
                f"Seed {team.seed} assigned to both {seen_seeds[team.seed]} and {team.id}"
            )
        seen_seeds[team.seed] = team.id


def rank_teams(
    teams: Sequence[Team],
    mode: SeedingMode = SeedingMode.SEEDED,
    rng: Optional[random.Random] = None,
) -> List[Team]:
    """Order teams strongest first according to the seeding mode."""
    if mode == SeedingMode.INPUT_ORDER:
        return list(teams)

    seeded = sorted((t for t in teams if t.seed is not None), key=lambda t: t.seed)
    unseeded = [t for t in teams if t.seed is None]

    if mode == SeedingMode.RANDOM:
        if rng is None:
            raise EngineValidationError("Random seeding requires a random source")
        unseeded = maybe_shuffle(unseeded, rng)

    return seeded + unseeded


def assign_seeds(
    teams: Sequence[Team],
    mode: SeedingMode = SeedingMode.SEEDED,
    rng: Optional[random.Random] = None,
) -> SeededField:
    validate_roster(teams)

    ranked = rank_teams(teams, mode, rng)
    size = next_power_of_two(len(ranked))
    by_rank = {rank: team for rank, team in enumerate(ranked, start=1)}

    slots: List[ParticipantRef] = []
    for rank in bracket_seed_order(size):
        team = by_rank.get(rank)
        slots.append(Concrete(team.id) if team is not None else BYE)

    return SeededField(
        size=size,
        slots=tuple(slots),
        seeds={team.id: rank for rank, team in by_rank.items()},
    )
