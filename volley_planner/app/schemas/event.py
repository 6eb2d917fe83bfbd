"""
Pydantic models for event data.

``EventBase`` contains the fields a coach edits; ``EventCreate`` and
``EventUpdate`` are request bodies and ``Event`` is the full record
returned by the API, including the response sets, guest players and the
recurring‑series bookkeeping.

``validate_event_fields`` holds the rules shared by the request models
and the client‑side store, which checks them before sending anything.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence

from pydantic import Field, field_validator, model_validator

from ..core.errors import ValidationError
from .common import CamelModel
from .team import PlayerRef


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Interpret naive datetimes as UTC so comparisons never mix kinds."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EventType(str, Enum):
    TRAINING = "Training"
    GAME = "Game"


class RecurringPattern(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class ResponseStatus(str, Enum):
    DECLINED = "declined"
    UNSURE = "unsure"


class AttendanceStatus(str, Enum):
    """Resolved relation of one player to one event."""

    ATTENDING = "attending"
    DECLINED = "declined"
    UNSURE = "unsure"
    INVITED = "invited"
    GUEST = "guest"
    UNINVITED = "uninvited"
    TEAM_MEMBER = "team_member"
    UNKNOWN = "unknown"


def validate_event_fields(
    *,
    title: Optional[str],
    location: Optional[str],
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    teams: Optional[Sequence[str]] = None,
    require_teams: bool = False,
    is_recurring: bool = False,
    recurring_pattern: Optional[RecurringPattern] = None,
    recurring_end_date: Optional[datetime] = None,
) -> None:
    """Raise ``ValidationError`` for the first violated rule.

    ``None`` values are skipped so that partial updates can be checked
    with the same function; pass ``require_teams=True`` on creation.
    """
    if title is not None and not title.strip():
        raise ValidationError("Title is required")
    if location is not None and not location.strip():
        raise ValidationError("Location is required")
    if start_time is not None and end_time is not None:
        if ensure_aware(end_time) <= ensure_aware(start_time):
            raise ValidationError("End time must be after start time")
    if require_teams and not teams:
        raise ValidationError("At least one team must be selected")
    if is_recurring:
        if recurring_pattern is None:
            raise ValidationError("Recurring events need a recurrence pattern")
        if recurring_end_date is None:
            raise ValidationError("Recurring events need an end date")
        if start_time is not None and ensure_aware(recurring_end_date) <= ensure_aware(start_time):
            raise ValidationError("Recurrence end date must be after the start time")


class GuestPlayer(CamelModel):
    player: PlayerRef
    from_team: str


class PlayerResponse(CamelModel):
    """Reason given by a player who declined or is unsure."""

    player: str
    status: ResponseStatus
    reason: str
    responded_at: datetime = Field(default_factory=utcnow)


class EventBase(CamelModel):
    title: str = Field(..., examples=["Training Damen 1"])
    type: EventType = Field(..., examples=["Training"])
    start_time: datetime = Field(..., examples=["2025-01-06T18:00:00Z"])
    end_time: datetime = Field(..., examples=["2025-01-06T20:00:00Z"])
    location: str = Field(..., examples=["Sporthalle Nord"])
    description: Optional[str] = None
    notes: Optional[str] = None
    voting_deadline: Optional[datetime] = None
    is_open_access: bool = False

    @field_validator("start_time", "end_time", "voting_deadline")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value)


class EventCreate(EventBase):
    """Schema for creating an event or a recurring series.

    ``invited_players`` left as ``None`` invites the full rosters of the
    selected teams.
    """

    teams: List[str] = Field(default_factory=list)
    organizing_team: Optional[str] = None
    invited_players: Optional[List[str]] = None
    is_recurring: bool = False
    recurring_pattern: Optional[RecurringPattern] = None
    recurring_end_date: Optional[datetime] = None

    @field_validator("recurring_end_date")
    @classmethod
    def _aware_end(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value)

    @model_validator(mode="after")
    def _check(self) -> "EventCreate":
        validate_event_fields(
            title=self.title,
            location=self.location,
            start_time=self.start_time,
            end_time=self.end_time,
            teams=self.teams,
            require_teams=True,
            is_recurring=self.is_recurring,
            recurring_pattern=self.recurring_pattern,
            recurring_end_date=self.recurring_end_date,
        )
        if self.organizing_team and self.organizing_team not in self.teams:
            raise ValidationError("Organizing team must be one of the event's teams")
        return self


class EventUpdate(CamelModel):
    """Schema for updating an event.

    All fields are optional; only provided fields will be updated.
    ``update_recurring`` cascades the change to the whole series and
    ``convert_to_recurring`` turns a standalone event into a series head.
    ``weekday`` follows the 0=Sunday … 6=Saturday convention.
    """

    title: Optional[str] = None
    type: Optional[EventType] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    voting_deadline: Optional[datetime] = None
    is_open_access: Optional[bool] = None
    teams: Optional[List[str]] = None
    organizing_team: Optional[str] = None
    invited_players: Optional[List[str]] = None
    update_recurring: bool = False
    convert_to_recurring: bool = False
    weekday: Optional[int] = Field(None, ge=0, le=6)
    recurring_pattern: Optional[RecurringPattern] = None
    recurring_end_date: Optional[datetime] = None

    @field_validator("start_time", "end_time", "voting_deadline", "recurring_end_date")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value)

    @model_validator(mode="after")
    def _check(self) -> "EventUpdate":
        validate_event_fields(
            title=self.title,
            location=self.location,
            start_time=self.start_time,
            end_time=self.end_time,
            is_recurring=self.convert_to_recurring,
            recurring_pattern=self.recurring_pattern,
            recurring_end_date=self.recurring_end_date,
        )
        if self.teams is not None and not self.teams:
            raise ValidationError("At least one team must be selected")
        return self

    def changes(self) -> dict:
        """Return the event fields that were explicitly provided."""
        control = {
            "update_recurring",
            "convert_to_recurring",
            "weekday",
            "recurring_pattern",
            "recurring_end_date",
        }
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if key not in control
        }


class Event(EventBase):
    """Full event record as stored and returned by the API."""

    id: str
    teams: List[str] = Field(default_factory=list)
    organizing_team: Optional[str] = None
    created_by: str
    created_at: datetime = Field(default_factory=utcnow)

    invited_players: List[PlayerRef] = Field(default_factory=list)
    attending_players: List[PlayerRef] = Field(default_factory=list)
    declined_players: List[PlayerRef] = Field(default_factory=list)
    unsure_players: List[PlayerRef] = Field(default_factory=list)
    uninvited_players: List[PlayerRef] = Field(default_factory=list)
    guest_players: List[GuestPlayer] = Field(default_factory=list)
    player_responses: List[PlayerResponse] = Field(default_factory=list)

    is_recurring: bool = False
    is_recurring_instance: bool = False
    recurring_group_id: Optional[str] = None
    recurring_pattern: Optional[RecurringPattern] = None
    recurring_end_date: Optional[datetime] = None
    original_start_time: Optional[datetime] = None

    auto_decline_processed: bool = False

    # Resolved for the requesting player by ``annotate_statuses``; never
    # persisted.
    status: Optional[AttendanceStatus] = None

    @field_validator("recurring_end_date", "original_start_time", "created_at")
    @classmethod
    def _aware_extra(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value)

    def is_voting_deadline_passed(self, now: Optional[datetime] = None) -> bool:
        if self.voting_deadline is None:
            return False
        return ensure_aware(now or utcnow()) > self.voting_deadline


class EventCreated(CamelModel):
    """Answer to a create that materialized a recurring series."""

    message: str
    main_event: Event
    events: List[Event]


class SeriesUpdated(CamelModel):
    """Answer to a cascade edit or a conversion into a series."""

    message: str
    events: List[Event]


class EventDeleted(CamelModel):
    message: str
    deleted: List[str]


class ReasonBody(CamelModel):
    reason: str = ""


class GuestBody(CamelModel):
    player_id: str
    from_team_id: str


class InviteBody(CamelModel):
    player_id: str


class CanEdit(CamelModel):
    can_edit: bool
