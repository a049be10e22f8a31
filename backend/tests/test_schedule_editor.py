"""
Tests for single-match schedule edits validated as a delta against the committed schedule.
"""

from datetime import datetime, timedelta

import pytest

from tournament_engine.errors import ScheduleEditError
from tournament_engine.models.bracket import BracketType
from tournament_engine.models.schedule import SchedulingConstraints
from tournament_engine.models.venue import TimeWindow
from tournament_engine.models.violation import ViolationKind
from tournament_engine.services.advancement_service import record_result
from tournament_engine.services.bracket_builder import RESET_MATCH_ID, build_bracket
from tournament_engine.services.schedule_editor import propose_add, propose_move
from tournament_engine.services.scheduler import schedule_bracket

DAY = datetime(2026, 5, 2)


def at(hour, minute=0):
    return DAY.replace(hour=hour, minute=minute)


@pytest.fixture
def rules():
    return SchedulingConstraints(tournament_window=TimeWindow(at(8), at(18)))


@pytest.fixture
def venues(make_venue):
    return [make_venue("V1"), make_venue("V2")]


@pytest.fixture
def committed(make_teams, venues, rules):
    bracket = build_bracket(make_teams(4))
    schedule = schedule_bracket(bracket, venues, rules)
    # R1-M1 08:00 V1, R1-M2 08:00 V2, R2-M1 10:00 V1
    return bracket, schedule


class TestProposeMove:
    def test_committed_layout(self, committed):
        _, schedule = committed
        by_match = schedule.by_match()
        assert (by_match["R2-M1"].start, by_match["R2-M1"].venue_id) == (at(10), "V1")

    def test_valid_move_accepted(self, committed, venues, rules):
        bracket, schedule = committed
        result = propose_move(schedule, "R2-M1", at(11), "V2", bracket, venues, rules)
        assert result.accepted
        assert result.violations == ()
        moved = result.schedule.entry_for("R2-M1")
        assert (moved.start, moved.end, moved.venue_id) == (at(11), at(12), "V2")
        assert len(result.schedule) == len(schedule)
        # committed schedule is a value; it did not change
        assert schedule.entry_for("R2-M1").start == at(10)

    def test_move_onto_busy_venue_rejected(self, committed, venues, rules):
        bracket, schedule = committed
        result = propose_move(schedule, "R1-M2", at(8), "V1", bracket, venues, rules)
        assert not result.accepted
        assert [v.kind for v in result.violations] == [ViolationKind.VENUE_OVER_CAPACITY]
        assert result.schedule is schedule

    def test_move_feeder_past_dependent_rejected(self, committed, venues, rules):
        bracket, schedule = committed
        result = propose_move(schedule, "R1-M1", at(9, 30), "V2", bracket, venues, rules)
        assert not result.accepted
        assert {v.kind for v in result.violations} == {ViolationKind.REST_GAP_VIOLATED}
        assert result.violations[0].conflicting_match_id == "R2-M1"

    def test_move_in_place_accepted(self, committed, venues, rules):
        bracket, schedule = committed
        result = propose_move(schedule, "R2-M1", at(10), "V1", bracket, venues, rules)
        assert result.accepted
        assert result.schedule == schedule

    def test_duration_kept(self, committed, venues, rules):
        bracket, schedule = committed
        result = propose_move(schedule, "R2-M1", at(12, 15), "V1", bracket, venues, rules)
        entry = result.schedule.entry_for("R2-M1")
        assert entry.end - entry.start == timedelta(minutes=60)

    def test_unknown_match(self, committed, venues, rules):
        bracket, schedule = committed
        with pytest.raises(ScheduleEditError):
            propose_move(schedule, "R7-M1", at(12), "V1", bracket, venues, rules)

    def test_unknown_venue(self, committed, venues, rules):
        bracket, schedule = committed
        with pytest.raises(ScheduleEditError):
            propose_move(schedule, "R2-M1", at(12), "V9", bracket, venues, rules)

    def test_to_dict(self, committed, venues, rules):
        bracket, schedule = committed
        data = propose_move(schedule, "R1-M2", at(8), "V1", bracket, venues, rules).to_dict()
        assert data["accepted"] is False
        assert data["violations"][0]["kind"] == "venue_over_capacity"


class TestProposeAdd:
    @pytest.fixture
    def after_reset(self, make_teams, venues, rules):
        bracket = build_bracket(make_teams(2), bracket_type=BracketType.DOUBLE)
        schedule = schedule_bracket(bracket, venues, rules)
        bracket = record_result(bracket, "W1-M1", "T1")
        bracket = record_result(bracket, "GF", "T2")
        return bracket, schedule

    def test_reset_needs_rest(self, after_reset, venues, rules):
        bracket, schedule = after_reset
        grand_final = schedule.entry_for("GF")
        result = propose_add(schedule, RESET_MATCH_ID, grand_final.end, "V1", bracket, venues, rules)
        assert not result.accepted
        assert {v.team_id for v in result.violations} == {"T1", "T2"}

    def test_reset_added(self, after_reset, venues, rules):
        bracket, schedule = after_reset
        grand_final = schedule.entry_for("GF")
        start = grand_final.end + timedelta(minutes=60)
        result = propose_add(schedule, RESET_MATCH_ID, start, "V1", bracket, venues, rules)
        assert result.accepted
        assert len(result.schedule) == len(schedule) + 1
        assert result.schedule.entry_for(RESET_MATCH_ID).start == start

    def test_already_scheduled(self, after_reset, venues, rules):
        bracket, schedule = after_reset
        with pytest.raises(ScheduleEditError):
            propose_add(schedule, "GF", at(15), "V1", bracket, venues, rules)

    def test_unknown_match(self, committed, venues, rules):
        bracket, schedule = committed
        with pytest.raises(ScheduleEditError):
            propose_add(schedule, "GF-RESET", at(15), "V1", bracket, venues, rules)
