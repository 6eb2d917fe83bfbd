"""
Shared pytest fixtures.

``database`` points the settings at a temporary SQLite file and applies
the migrations; ``club`` seeds two teams with a coach each and a few
players.  ``make_event`` builds plain ``Event`` snapshots for the pure
service tests.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from volley_planner.app.core.config import settings
from volley_planner.app.core.db import init_db
from volley_planner.app.core.security import create_access_token
from volley_planner.app.schemas.event import Event, EventType
from volley_planner.app.schemas.team import PlayerRef, TeamCreate, UserCreate, UserRole
from volley_planner.app.services.team_service import TeamService


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def ref(player_id: str, position=None) -> PlayerRef:
    return PlayerRef(id=player_id, name=player_id.title(), position=position)


@pytest.fixture
def make_event():
    def factory(**overrides) -> Event:
        start = overrides.pop("start_time", utc(2025, 1, 6, 18, 0))
        fields = {
            "id": "evt1",
            "title": "Training Damen 1",
            "type": EventType.TRAINING,
            "start_time": start,
            "end_time": start + timedelta(hours=2),
            "location": "Sporthalle Nord",
            "teams": ["team-a"],
            "organizing_team": "team-a",
            "created_by": "coach",
        }
        fields.update(overrides)
        return Event(**fields)

    return factory


@pytest.fixture
def database(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "planner.db"))
    init_db()
    yield tmp_path / "planner.db"


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}


@pytest.fixture
def club(database):
    """Two teams: Damen 1 (coach, anna, bea, carla) and Damen 2 (coach2, dora)."""

    async def seed():
        coach = await TeamService.create_user(UserCreate(name="Trainer Tom", role=UserRole.COACH))
        coach2 = await TeamService.create_user(UserCreate(name="Trainerin Uta", role=UserRole.COACH))
        anna = await TeamService.create_user(UserCreate(name="Anna", position="Libero"))
        bea = await TeamService.create_user(UserCreate(name="Bea", position="Außen"))
        carla = await TeamService.create_user(UserCreate(name="Carla"))
        dora = await TeamService.create_user(UserCreate(name="Dora", position="Mitte"))
        team = await TeamService.create_team(
            TeamCreate(name="Damen 1", players=[anna.id, bea.id, carla.id], coaches=[coach.id])
        )
        other_team = await TeamService.create_team(
            TeamCreate(name="Damen 2", players=[dora.id], coaches=[coach2.id])
        )
        return SimpleNamespace(
            coach=coach, coach2=coach2, anna=anna, bea=bea, carla=carla, dora=dora,
            team=team, other_team=other_team,
        )

    return asyncio.run(seed())
