"""
Pydantic models for users, player references and teams.

``PlayerRef`` is the populated form in which users appear inside an
event's response sets.  Teams hold plain user ids for their rosters and
coaching staff.
"""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import Field

from .common import CamelModel


class UserRole(str, Enum):
    PLAYER = "Spieler"
    YOUTH_PLAYER = "Jugendspieler"
    COACH = "Trainer"


class TeamType(str, Enum):
    ADULT = "Adult"
    YOUTH = "Youth"


class PlayerRef(CamelModel):
    """A user as referenced from an event."""

    id: str
    name: str = ""
    position: Optional[str] = None


class UserBase(CamelModel):
    name: str = Field(..., min_length=1, examples=["Anna Schmidt"])
    email: Optional[str] = Field(None, examples=["anna@example.com"])
    role: UserRole = UserRole.PLAYER
    position: Optional[str] = Field(None, examples=["Libero"])
    birth_date: Optional[date] = None


class UserCreate(UserBase):
    """Schema for creating a user."""
    pass


class UserRead(UserBase):
    id: str

    @property
    def is_coach(self) -> bool:
        return self.role == UserRole.COACH

    def as_ref(self) -> PlayerRef:
        return PlayerRef(id=self.id, name=self.name, position=self.position)


class TeamBase(CamelModel):
    name: str = Field(..., min_length=1, examples=["Damen 1"])
    type: TeamType = TeamType.ADULT


class TeamCreate(TeamBase):
    players: List[str] = Field(default_factory=list)
    coaches: List[str] = Field(default_factory=list)


class TeamRead(TeamBase):
    id: str
    players: List[str] = Field(default_factory=list)
    coaches: List[str] = Field(default_factory=list)

    def has_player(self, user_id: str) -> bool:
        return user_id in self.players

    def has_coach(self, user_id: str) -> bool:
        return user_id in self.coaches
