"""
Business logic for users and teams.

Users and teams are stored as JSON documents (see ``core.db``).  Team
rosters reference users by id; event services resolve those ids into
``PlayerRef`` objects through ``get_users``.
"""

import logging
from typing import Dict, Iterable, List, Optional

from ..core.db import dumps, fetch_documents, get_cursor, loads, new_id
from ..core.errors import NotFoundError, ValidationError
from ..schemas.team import TeamCreate, TeamRead, UserCreate, UserRead


logger = logging.getLogger(__name__)


class TeamService:
    """Service for users, teams and team membership."""

    @classmethod
    async def create_user(cls, data: UserCreate) -> UserRead:
        user = UserRead(id=new_id(), **data.model_dump())
        with get_cursor() as cursor:
            cursor.execute(
                "INSERT INTO users (id, role, document) VALUES (?, ?, ?)",
                (user.id, user.role.value, dumps(user.model_dump(mode="json"))),
            )
        logger.info("Created user %s (%s)", user.id, user.role.value)
        return user

    @classmethod
    async def get_user(cls, user_id: Optional[str]) -> UserRead:
        """Return a user or raise ``NotFoundError``."""
        with get_cursor() as cursor:
            row = cursor.execute("SELECT document FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"User {user_id} not found")
        return UserRead.model_validate(loads(row["document"]))

    @classmethod
    async def get_users(cls, user_ids: Iterable[str]) -> Dict[str, UserRead]:
        """Load several users at once; unknown ids are left out."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        with get_cursor() as cursor:
            documents = fetch_documents(
                cursor, f"SELECT document FROM users WHERE id IN ({placeholders})", tuple(ids)
            )
        users = [UserRead.model_validate(doc) for doc in documents]
        return {user.id: user for user in users}

    @classmethod
    async def list_users(cls) -> List[UserRead]:
        with get_cursor() as cursor:
            documents = fetch_documents(cursor, "SELECT document FROM users ORDER BY created_at, id")
        return [UserRead.model_validate(doc) for doc in documents]

    @classmethod
    async def create_team(cls, data: TeamCreate) -> TeamRead:
        """Create a team after checking that every member exists."""
        members = list(data.players) + list(data.coaches)
        known = await cls.get_users(members)
        missing = [user_id for user_id in members if user_id not in known]
        if missing:
            raise ValidationError(f"Unknown users: {', '.join(missing)}")
        team = TeamRead(id=new_id(), **data.model_dump())
        with get_cursor() as cursor:
            cursor.execute(
                "INSERT INTO teams (id, name, document) VALUES (?, ?, ?)",
                (team.id, team.name, dumps(team.model_dump(mode="json"))),
            )
        logger.info("Created team %s '%s'", team.id, team.name)
        return team

    @classmethod
    async def get_team(cls, team_id: str) -> TeamRead:
        with get_cursor() as cursor:
            row = cursor.execute("SELECT document FROM teams WHERE id = ?", (team_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Team {team_id} not found")
        return TeamRead.model_validate(loads(row["document"]))

    @classmethod
    async def list_teams(cls) -> List[TeamRead]:
        with get_cursor() as cursor:
            documents = fetch_documents(cursor, "SELECT document FROM teams ORDER BY name, id")
        return [TeamRead.model_validate(doc) for doc in documents]

    @classmethod
    async def get_teams(cls, team_ids: Iterable[str]) -> List[TeamRead]:
        """Load the given teams, raising ``NotFoundError`` for an unknown id."""
        return [await cls.get_team(team_id) for team_id in dict.fromkeys(team_ids)]

    @classmethod
    async def teams_of_user(cls, user_id: str) -> List[TeamRead]:
        """Teams the user plays in or coaches."""
        return [
            team for team in await cls.list_teams()
            if team.has_player(user_id) or team.has_coach(user_id)
        ]

    @classmethod
    async def team_ids_of_user(cls, user_id: str) -> List[str]:
        return [team.id for team in await cls.teams_of_user(user_id)]

    @classmethod
    async def coached_team_ids(cls, user_id: str) -> List[str]:
        return [team.id for team in await cls.list_teams() if team.has_coach(user_id)]
