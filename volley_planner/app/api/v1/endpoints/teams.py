"""
Team endpoints for API v1.

The client‑side store loads the teams to resolve team membership of the
current user; coaches may create new teams.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from volley_planner.app.core.security import get_current_user, require_coach
from volley_planner.app.schemas.team import TeamCreate, TeamRead, UserRead
from volley_planner.app.services.team_service import TeamService


router = APIRouter()


@router.get("", response_model=List[TeamRead])
async def list_teams(current_user: UserRead = Depends(get_current_user)) -> List[TeamRead]:
    return await TeamService.list_teams()


@router.post("", response_model=TeamRead, status_code=status.HTTP_201_CREATED)
async def create_team(
    team: TeamCreate,
    current_user: UserRead = Depends(require_coach),
) -> TeamRead:
    """Create a team.  The creating coach is added to its coaches."""
    if current_user.id not in team.coaches:
        team = team.model_copy(update={"coaches": team.coaches + [current_user.id]})
    return await TeamService.create_team(team)


@router.get("/{team_id}", response_model=TeamRead)
async def get_team(team_id: str, current_user: UserRead = Depends(get_current_user)) -> TeamRead:
    return await TeamService.get_team(team_id)
