from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from tournament_engine.main import app
from tournament_engine.models.team import Team
from tournament_engine.models.venue import TimeWindow, Venue

# Fixed tournament day; nothing depends on the wall clock
DAY = datetime(2026, 5, 2)


def at(hour: int, minute: int = 0) -> datetime:
    return DAY.replace(hour=hour, minute=minute)


@pytest.fixture(name="client")
def client_fixture():
    """Provide a test client for the stateless API"""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_teams():
    """Factory: make_teams(n, seeded=False) -> teams T1..Tn (seeds 1..n when seeded)."""

    def _make(n: int, seeded: bool = False):
        return [Team(id=f"T{i}", name=f"Team {i}", seed=i if seeded else None) for i in range(1, n + 1)]

    return _make


@pytest.fixture
def make_venue():
    """Factory: make_venue(id, start_hour=8, end_hour=18, capacity=1)."""

    def _make(venue_id: str, start_hour: int = 8, end_hour: int = 18, capacity: int = 1):
        return Venue(
            id=venue_id,
            name=f"Court {venue_id}",
            capacity=capacity,
            operating_windows=(TimeWindow(at(start_hour), at(end_hour)),),
        )

    return _make
