"""
Tests for the HTTP surface - request/response shapes and error mapping.
"""

from fastapi.testclient import TestClient


def _teams(n, seeded=False):
    return [{"id": f"T{i}", "name": f"Team {i}", "seed": i if seeded else None} for i in range(1, n + 1)]


def _venue(venue_id, start="2026-05-02T08:00:00", end="2026-05-02T18:00:00"):
    return {"id": venue_id, "name": f"Court {venue_id}", "capacity": 1, "operating_windows": [{"start": start, "end": end}]}


CONSTRAINTS = {
    "tournament_window": {"start": "2026-05-02T08:00:00", "end": "2026-05-02T18:00:00"},
    "min_rest_minutes": 60,
    "match_duration_minutes": 30,
}


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestDraws:
    def test_snake_draw(self, client: TestClient):
        response = client.post("/api/draws", json={"teams": _teams(6, seeded=True), "groups_count": 4})
        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "snake"
        assert sorted(data["group_sizes"]) == [1, 1, 2, 2]
        assert sorted(m for g in data["groups"] for m in g["members"]) == sorted(t["id"] for t in _teams(6))

    def test_seeded_random_draw_reproducible(self, client: TestClient):
        body = {"teams": _teams(9), "groups_count": 3, "mode": "random", "seed": 11}
        assert client.post("/api/draws", json=body).json() == client.post("/api/draws", json=body).json()

    def test_unknown_mode(self, client: TestClient):
        response = client.post("/api/draws", json={"teams": _teams(4), "groups_count": 2, "mode": "zigzag"})
        assert response.status_code == 422

    def test_too_many_groups(self, client: TestClient):
        response = client.post("/api/draws", json={"teams": _teams(2), "groups_count": 3})
        assert response.status_code == 422

    def test_draw_order(self, client: TestClient):
        response = client.post("/api/draws/order", json={"teams": _teams(5), "seed": 4})
        assert response.status_code == 200
        picks = response.json()["picks"]
        assert [p["position"] for p in picks] == [1, 2, 3, 4, 5]


class TestBrackets:
    def test_five_team_single(self, client: TestClient):
        response = client.post("/api/brackets", json={"teams": _teams(5)})
        assert response.status_code == 200
        data = response.json()
        assert data["bracket"]["size"] == 8
        assert data["bracket"]["bye_count"] == 3
        assert data["playable_matches"] == 4
        assert data["champion"] is None

    def test_one_team_rejected(self, client: TestClient):
        response = client.post("/api/brackets", json={"teams": _teams(1)})
        assert response.status_code == 422
        assert "At least 2 teams" in response.json()["detail"]

    def test_unknown_bracket_type(self, client: TestClient):
        response = client.post("/api/brackets", json={"teams": _teams(4), "bracket_type": "triple"})
        assert response.status_code == 422

    def test_results_round_trip(self, client: TestClient):
        bracket = client.post("/api/brackets", json={"teams": _teams(2)}).json()["bracket"]
        response = client.post(
            "/api/brackets/results",
            json={"bracket": bracket, "match_id": "R1-M1", "winner_team_id": "T2", "score_a": 1, "score_b": 3},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["champion"] == "T2"
        assert data["eliminated"] == ["T1"]

    def test_double_elimination_reset_exposed(self, client: TestClient):
        bracket = client.post("/api/brackets", json={"teams": _teams(2), "bracket_type": "double"}).json()["bracket"]
        for match_id, winner in [("W1-M1", "T1"), ("GF", "T2")]:
            response = client.post(
                "/api/brackets/results",
                json={"bracket": bracket, "match_id": match_id, "winner_team_id": winner},
            )
            assert response.status_code == 200
            bracket = response.json()["bracket"]
        assert bracket["reset_match"]["id"] == "GF-RESET"
        assert bracket["reset_match"]["round_name"] == "Grand Final Reset"

    def test_bad_result(self, client: TestClient):
        bracket = client.post("/api/brackets", json={"teams": _teams(4)}).json()["bracket"]
        response = client.post(
            "/api/brackets/results",
            json={"bracket": bracket, "match_id": "R2-M1", "winner_team_id": "T1"},
        )
        assert response.status_code == 422

    def test_group_matches(self, client: TestClient):
        response = client.post("/api/groups/matches", json={"groups": [{"id": "A", "members": ["T1", "T2", "T3"]}]})
        assert response.status_code == 200
        assert response.json()["match_count"] == 3


class TestSchedules:
    def _bracket(self, client, n=16):
        return client.post("/api/brackets", json={"teams": _teams(n)}).json()["bracket"]

    def test_sixteen_teams_two_venues(self, client: TestClient):
        bracket = self._bracket(client)
        body = {"bracket": bracket, "venues": [_venue("V1"), _venue("V2")], "constraints": CONSTRAINTS}
        response = client.post("/api/schedules", json=body)
        assert response.status_code == 200
        data = response.json()
        assert data["match_count"] == 15

        check = client.post("/api/schedules/validate", json=dict(body, schedule=data["schedule"]))
        assert check.status_code == 200
        assert check.json() == {"valid": True, "violation_count": 0, "violations": []}

    def test_infeasible_is_409(self, client: TestClient):
        bracket = self._bracket(client)
        body = {
            "bracket": bracket,
            "venues": [_venue("V1", end="2026-05-02T08:20:00")],
            "constraints": dict(CONSTRAINTS, match_duration_minutes=60),
        }
        response = client.post("/api/schedules", json=body)
        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["match_id"] == "R1-M1"
        assert detail["constraint"] == "outside_operating_window"

    def test_nothing_to_schedule(self, client: TestClient):
        body = {"venues": [_venue("V1")], "constraints": CONSTRAINTS}
        assert client.post("/api/schedules", json=body).status_code == 422

    def test_propose_move(self, client: TestClient):
        bracket = self._bracket(client, 4)
        body = {"bracket": bracket, "venues": [_venue("V1"), _venue("V2")], "constraints": CONSTRAINTS}
        schedule = client.post("/api/schedules", json=body).json()["schedule"]

        rejected = client.post(
            "/api/schedules/propose-move",
            json=dict(body, schedule=schedule, match_id="R1-M2", new_start="2026-05-02T08:00:00", venue_id="V1"),
        )
        assert rejected.status_code == 200
        assert rejected.json()["accepted"] is False
        assert rejected.json()["schedule"] == schedule

        accepted = client.post(
            "/api/schedules/propose-move",
            json=dict(body, schedule=schedule, match_id="R2-M1", new_start="2026-05-02T13:00:00", venue_id="V2"),
        )
        assert accepted.json()["accepted"] is True
        moved = [e for e in accepted.json()["schedule"]["entries"] if e["match_id"] == "R2-M1"]
        assert moved == [
            {"match_id": "R2-M1", "venue_id": "V2", "start": "2026-05-02T13:00:00", "end": "2026-05-02T13:30:00"}
        ]

    def test_propose_move_unknown_match(self, client: TestClient):
        bracket = self._bracket(client, 4)
        body = {"bracket": bracket, "venues": [_venue("V1")], "constraints": CONSTRAINTS}
        schedule = client.post("/api/schedules", json=body).json()["schedule"]
        response = client.post(
            "/api/schedules/propose-move",
            json=dict(body, schedule=schedule, match_id="R9-M9", new_start="2026-05-02T13:00:00", venue_id="V1"),
        )
        assert response.status_code == 422

    def test_validate_duplicate_entry_is_422(self, client: TestClient):
        bracket = self._bracket(client, 4)
        body = {"bracket": bracket, "venues": [_venue("V1")], "constraints": CONSTRAINTS}
        schedule = client.post("/api/schedules", json=body).json()["schedule"]
        schedule["entries"].append(dict(schedule["entries"][-1], start="2026-05-02T17:00:00", end="2026-05-02T17:30:00"))
        response = client.post("/api/schedules/validate", json=dict(body, schedule=schedule))
        assert response.status_code == 422
        assert "more than once" in response.json()["detail"]
