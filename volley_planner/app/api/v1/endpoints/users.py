"""
User endpoints for API v1.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from volley_planner.app.core.security import get_current_user, require_coach
from volley_planner.app.schemas.team import UserCreate, UserRead
from volley_planner.app.services.team_service import TeamService


router = APIRouter()


@router.get("/me", response_model=UserRead)
async def read_me(current_user: UserRead = Depends(get_current_user)) -> UserRead:
    """Return the authenticated user."""
    return current_user


@router.get("", response_model=List[UserRead])
async def list_users(current_user: UserRead = Depends(get_current_user)) -> List[UserRead]:
    """All players and coaches, e.g. to pick guests from other teams."""
    return await TeamService.list_users()


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    user: UserCreate,
    current_user: UserRead = Depends(require_coach),
) -> UserRead:
    """Register a player or coach.  Only coaches may add users."""
    return await TeamService.create_user(user)
