"""
Tests for single elimination brackets - structure, byes, naming and errors.
"""

import pytest

from tournament_engine.errors import BracketSizeError, EngineValidationError, SeedSizeMismatchError
from tournament_engine.models.bracket import BracketType
from tournament_engine.models.match import BracketSide, MatchStatus
from tournament_engine.models.participants import BYE, Concrete, WinnerOf
from tournament_engine.services.bracket_builder import build_bracket, build_from_field, single_round_name
from tournament_engine.services.round_robin import expected_match_count
from tournament_engine.utils.seeding import SeededField, SeedingMode, assign_seeds


class TestFiveTeams:
    """5 teams -> size 8, 3 byes, no bye-vs-bye."""

    @pytest.fixture
    def bracket(self, make_teams):
        return build_bracket(make_teams(5))

    def test_size_and_byes(self, bracket):
        assert bracket.size == 8
        assert bracket.team_count == 5
        assert bracket.bye_count == 3
        assert bracket.byes == ("R1-M1", "R1-M3", "R1-M4")

    def test_no_bye_vs_bye(self, bracket):
        for match in bracket.rounds[0].matches:
            assert not (match.slot_a == BYE and match.slot_b == BYE)

    def test_byes_completed_at_generation(self, bracket):
        matches = bracket.match_map()
        assert matches["R1-M1"].is_completed
        assert matches["R1-M1"].winner == "T1"
        assert matches["R1-M1"].loser is None
        assert matches["R1-M2"].status == MatchStatus.PENDING

    def test_bye_winners_advance(self, bracket):
        matches = bracket.match_map()
        assert matches["R2-M1"].slot_a == Concrete("T1")
        assert matches["R2-M1"].slot_b == WinnerOf("R1-M2")
        assert matches["R2-M2"].slot_a == Concrete("T2")
        assert matches["R2-M2"].slot_b == Concrete("T3")
        # generation-time references are kept
        assert matches["R2-M2"].source_a == WinnerOf("R1-M3")

    def test_playable_matches(self, bracket):
        assert [m.id for m in bracket.playable_matches()] == ["R1-M2", "R2-M1", "R2-M2", "R3-M1"]


class TestStructure:
    def test_real_match_count_is_n_minus_one(self, make_teams):
        for n in range(2, 33):
            bracket = build_bracket(make_teams(n))
            assert len(bracket.playable_matches()) == n - 1 == expected_match_count("single", n)
            assert len(bracket.byes) == bracket.size - n

    def test_round_count_and_sizes(self, make_teams):
        bracket = build_bracket(make_teams(16))
        assert [len(r.matches) for r in bracket.rounds] == [8, 4, 2, 1]
        assert all(r.side == BracketSide.UPPER for r in bracket.rounds)
        assert bracket.final_match.id == "R4-M1"

    def test_single_championship_path(self, make_teams):
        bracket = build_bracket(make_teams(8))
        feeders = {}
        for match in bracket.all_matches():
            for feeder in match.feeder_ids():
                feeders.setdefault(feeder, []).append(match.id)
        # every match except the final feeds exactly one later match
        for match in bracket.all_matches():
            if match.id == bracket.final_match.id:
                assert match.id not in feeders
            else:
                assert len(feeders[match.id]) == 1

    def test_round_names(self, make_teams):
        bracket = build_bracket(make_teams(16))
        assert [r.name for r in bracket.rounds] == ["Round of 16", "Quarterfinals", "Semifinals", "Final"]
        assert single_round_name(1, 6) == "Round of 64"

    def test_two_teams(self, make_teams):
        bracket = build_bracket(make_teams(2))
        assert bracket.size == 2
        assert len(bracket.rounds) == 1
        assert bracket.rounds[0].name == "Final"

    def test_type_recorded(self, make_teams):
        assert build_bracket(make_teams(4)).type == BracketType.SINGLE


class TestErrors:
    def test_one_team(self, make_teams):
        with pytest.raises(EngineValidationError, match="At least 2 teams"):
            build_bracket(make_teams(1))

    def test_size_not_power_of_two(self):
        field = SeededField(size=6, slots=tuple(Concrete(f"T{i}") for i in range(6)))
        with pytest.raises(BracketSizeError):
            build_from_field(field)

    def test_size_below_two(self):
        with pytest.raises(BracketSizeError):
            build_from_field(SeededField(size=1, slots=(Concrete("T1"),)))

    def test_seed_array_length_mismatch(self, make_teams):
        field = assign_seeds(make_teams(4))
        short = SeededField(size=4, slots=field.slots[:3], seeds=field.seeds)
        with pytest.raises(SeedSizeMismatchError):
            build_from_field(short)

    def test_oversized_bracket(self):
        slots = (Concrete("T1"), BYE, Concrete("T2"), BYE)
        with pytest.raises(BracketSizeError):
            build_from_field(SeededField(size=4, slots=slots, seeds={"T1": 1, "T2": 2}))

    def test_bye_against_bye_rejected(self):
        slots = (BYE, BYE) + tuple(Concrete(f"T{i}") for i in range(1, 6)) + (BYE,)
        seeds = {f"T{i}": i for i in range(1, 6)}
        with pytest.raises(SeedSizeMismatchError, match="both byes"):
            build_from_field(SeededField(size=8, slots=slots, seeds=seeds))

    def test_random_seeding_requires_generator(self, make_teams):
        with pytest.raises(EngineValidationError, match="random source"):
            build_bracket(make_teams(6), seeding_mode=SeedingMode.RANDOM)

    def test_random_seeding_with_seed_is_reproducible(self, make_teams):
        first = build_bracket(make_teams(6), seeding_mode=SeedingMode.RANDOM, rng=3)
        second = build_bracket(make_teams(6), seeding_mode=SeedingMode.RANDOM, rng=3)
        assert first == second


def test_build_is_deterministic(make_teams):
    assert build_bracket(make_teams(11)) == build_bracket(make_teams(11))
