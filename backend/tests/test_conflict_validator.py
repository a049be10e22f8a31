"""
Tests for the conflict validator - each violation kind, placeholders and re-validation.
"""

from datetime import datetime

import pytest

from tournament_engine.errors import EngineValidationError
from tournament_engine.models.bracket import BracketType
from tournament_engine.models.group import Group
from tournament_engine.models.schedule import Schedule, ScheduleEntry, SchedulingConstraints, TimeSlot
from tournament_engine.models.venue import TimeWindow, Venue
from tournament_engine.models.violation import ViolationKind
from tournament_engine.services.advancement_service import record_result
from tournament_engine.services.bracket_builder import build_bracket
from tournament_engine.services.conflict_validator import ConflictValidator, dominant_kind, revalidate, validate_schedule
from tournament_engine.services.round_robin import generate_group_matches
from tournament_engine.services.scheduler import schedule_bracket

DAY = datetime(2026, 5, 2)


def at(hour, minute=0):
    return DAY.replace(hour=hour, minute=minute)


def entry(match_id, start, end, venue_id="V1"):
    return ScheduleEntry(match_id, TimeSlot(start, end, venue_id), venue_id)


@pytest.fixture
def venues(make_venue):
    return [make_venue("V1"), make_venue("V2")]


@pytest.fixture
def rules():
    return SchedulingConstraints(tournament_window=TimeWindow(at(8), at(18)), min_rest_minutes=60)


@pytest.fixture
def group_matches():
    # GA-R1-M1: A1 v A4, GA-R1-M2: A2 v A3, GA-R2-M1: A1 v A3, ...
    return {m.id: m for m in generate_group_matches([Group(id="A", members=("A1", "A2", "A3", "A4"))])}


class TestTeamChecks:
    def test_double_booked(self, group_matches, venues, rules):
        schedule = [
            entry("GA-R1-M1", at(9), at(10), "V1"),
            entry("GA-R2-M1", at(9, 30), at(10, 30), "V2"),
        ]
        violations = validate_schedule(schedule, group_matches.values(), venues, rules)
        assert [(v.kind, v.match_id, v.team_id, v.conflicting_match_id) for v in violations] == [
            (ViolationKind.TEAM_DOUBLE_BOOKED, "GA-R2-M1", "A1", "GA-R1-M1")
        ]

    def test_rest_gap(self, group_matches, venues, rules):
        schedule = [
            entry("GA-R1-M1", at(9), at(10)),
            entry("GA-R2-M1", at(10, 30), at(11, 30)),
        ]
        violations = validate_schedule(schedule, group_matches.values(), venues, rules)
        assert len(violations) == 1
        assert violations[0].kind == ViolationKind.REST_GAP_VIOLATED
        assert violations[0].team_id == "A1"
        assert "30 min" in violations[0].detail

    def test_exact_rest_is_fine(self, group_matches, venues, rules):
        schedule = [
            entry("GA-R1-M1", at(9), at(10)),
            entry("GA-R2-M1", at(11), at(12)),
        ]
        assert validate_schedule(schedule, group_matches.values(), venues, rules) == []

    def test_disjoint_teams_share_a_time(self, group_matches, venues, rules):
        schedule = [
            entry("GA-R1-M1", at(9), at(10), "V1"),
            entry("GA-R1-M2", at(9), at(10), "V2"),
        ]
        assert validate_schedule(schedule, group_matches.values(), venues, rules) == []


class TestVenueChecks:
    def test_over_capacity(self, group_matches, venues, rules):
        schedule = [
            entry("GA-R1-M1", at(9), at(10), "V1"),
            entry("GA-R1-M2", at(9, 30), at(10, 30), "V1"),
        ]
        violations = validate_schedule(schedule, group_matches.values(), venues, rules)
        assert [v.kind for v in violations] == [ViolationKind.VENUE_OVER_CAPACITY]
        assert violations[0].venue_id == "V1"
        assert violations[0].conflicting_match_id == "GA-R1-M1"

    def test_back_to_back_is_fine(self, group_matches, venues, rules):
        schedule = [
            entry("GA-R1-M1", at(9), at(10), "V1"),
            entry("GA-R1-M2", at(10), at(11), "V1"),
        ]
        assert validate_schedule(schedule, group_matches.values(), venues, rules) == []

    def test_capacity_counts_peak_overlap(self, group_matches, rules):
        court = [Venue(id="V1", name="Hall", capacity=2)]
        other_group = generate_group_matches([Group(id="B", members=("B1", "B2"))])
        # 9:00-10:00 and 10:00-11:00 never overlap each other, so the peak is 2
        schedule = [
            entry("GA-R1-M1", at(9), at(10)),
            entry("GA-R1-M2", at(10), at(11)),
            entry("GB-R1-M1", at(9, 30), at(10, 30)),
        ]
        assert validate_schedule(schedule, list(group_matches.values()) + other_group, court, rules) == []

    def test_outside_tournament_window(self, group_matches, venues, rules):
        violations = validate_schedule([entry("GA-R1-M1", at(7), at(8))], group_matches.values(), venues, rules)
        assert violations
        assert {v.kind for v in violations} == {ViolationKind.OUTSIDE_OPERATING_WINDOW}

    def test_outside_venue_window(self, group_matches, make_venue, rules):
        evening = [make_venue("V1", 16, 18)]
        violations = validate_schedule([entry("GA-R1-M1", at(9), at(10))], group_matches.values(), evening, rules)
        assert [v.kind for v in violations] == [ViolationKind.OUTSIDE_OPERATING_WINDOW]

    def test_blackout(self, group_matches, venues):
        rules = SchedulingConstraints(
            tournament_window=TimeWindow(at(8), at(18)),
            blackouts=(TimeWindow(at(12), at(13)),),
        )
        violations = validate_schedule([entry("GA-R1-M1", at(11, 30), at(12, 30))], group_matches.values(), venues, rules)
        assert [v.kind for v in violations] == [ViolationKind.OUTSIDE_OPERATING_WINDOW]
        assert "blackout" in violations[0].detail

    def test_unknown_venue(self, group_matches, venues, rules):
        violations = validate_schedule([entry("GA-R1-M1", at(9), at(10), "V9")], group_matches.values(), venues, rules)
        assert [v.kind for v in violations] == [ViolationKind.OUTSIDE_OPERATING_WINDOW]


class TestPlaceholders:
    def test_dependent_before_feeder(self, make_teams, venues, rules):
        bracket = build_bracket(make_teams(4))
        schedule = [
            entry("R1-M1", at(9), at(10), "V1"),
            entry("R1-M2", at(9), at(10), "V2"),
            entry("R2-M1", at(8), at(9), "V1"),
        ]
        violations = validate_schedule(schedule, bracket, venues, rules)
        assert {v.kind for v in violations} == {ViolationKind.REST_GAP_VIOLATED}
        assert sorted(v.conflicting_match_id for v in violations) == ["R2-M1", "R2-M1"]

    def test_dependency_through_bye_match(self, make_teams, venues, rules):
        # 3 teams double: L1-M1 is a walkover waiting on W1-M2, so L2-M1 waits on W1-M2
        bracket = build_bracket(make_teams(3), bracket_type=BracketType.DOUBLE)
        schedule = [
            entry("W1-M2", at(9), at(10), "V1"),
            entry("L2-M1", at(10, 15), at(11, 15), "V2"),
        ]
        violations = validate_schedule(schedule, bracket, venues, rules)
        assert [(v.kind, v.match_id, v.conflicting_match_id) for v in violations] == [
            (ViolationKind.REST_GAP_VIOLATED, "L2-M1", "W1-M2")
        ]

    def test_revalidate_after_results(self, make_teams, venues, rules):
        bracket = build_bracket(make_teams(4))
        schedule = schedule_bracket(bracket, venues, rules)
        bracket = record_result(bracket, "R1-M1", "T1")
        bracket = record_result(bracket, "R1-M2", "T2")
        assert revalidate(schedule, bracket, venues, rules) == []

    def test_revalidate_catches_resolved_clash(self, make_teams, venues, rules):
        bracket = build_bracket(make_teams(4))
        bracket = record_result(bracket, "R1-M1", "T1")
        bracket = record_result(bracket, "R1-M2", "T2")
        schedule = Schedule.from_entries(
            [
                entry("R1-M1", at(8), at(9), "V1"),
                entry("R1-M2", at(8), at(9), "V2"),
                entry("R2-M1", at(9, 30), at(10, 30), "V1"),
            ]
        )
        violations = revalidate(schedule, bracket, venues, rules)
        assert {v.team_id for v in violations} == {"T1", "T2"}
        assert all(v.kind == ViolationKind.REST_GAP_VIOLATED for v in violations)


def test_validation_is_order_independent(group_matches, venues, rules):
    entries = [
        entry("GA-R1-M1", at(9), at(10), "V1"),
        entry("GA-R2-M1", at(9, 30), at(10, 30), "V2"),
        entry("GA-R1-M2", at(9), at(10), "V1"),
    ]
    forward = validate_schedule(entries, group_matches.values(), venues, rules)
    backward = validate_schedule(list(reversed(entries)), group_matches.values(), venues, rules)
    assert forward == backward


def test_check_entry_against_index(group_matches, venues, rules):
    validator = ConflictValidator(group_matches.values(), venues, rules)
    index = validator.new_index()
    first = entry("GA-R1-M1", at(9), at(10))
    index.add(first, validator.team_ids(first.match_id))
    assert validator.check_entry(entry("GA-R1-M2", at(10), at(11)), index) == []
    assert validator.check_entry(entry("GA-R2-M1", at(10), at(11), "V2"), index)


def test_dominant_kind():
    assert dominant_kind([]) is None


class TestMalformedSchedules:
    def test_match_listed_twice(self, make_teams, venues, rules):
        bracket = build_bracket(make_teams(4))
        schedule = schedule_bracket(bracket, venues, rules)
        extra = entry("R2-M1", at(17), at(18), "V2")
        with pytest.raises(EngineValidationError, match="more than once"):
            validate_schedule(list(schedule.entries) + [extra], bracket, venues, rules)

    def test_unknown_match(self, group_matches, venues, rules):
        with pytest.raises(EngineValidationError, match="unknown match EXHIBITION"):
            validate_schedule([entry("EXHIBITION", at(9), at(10))], group_matches.values(), venues, rules)

    def test_bye_match(self, make_teams, venues, rules):
        bracket = build_bracket(make_teams(3))
        with pytest.raises(EngineValidationError, match="is a bye"):
            validate_schedule([entry("R1-M1", at(9), at(10))], bracket, venues, rules)
