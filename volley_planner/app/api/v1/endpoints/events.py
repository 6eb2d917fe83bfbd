"""
Event endpoints for API v1.

CRUD for events and recurring series, the self‑service responses
(accept, decline, unsure) and the coach operations on guests and
invitations.  Services raise ``PlannerError`` subclasses; the handler
registered in ``main`` turns them into JSON error responses.
"""

from datetime import datetime
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status

from volley_planner.app.core.security import get_current_user, require_coach
from volley_planner.app.schemas.event import (
    CanEdit,
    Event,
    EventCreate,
    EventCreated,
    EventDeleted,
    EventUpdate,
    GuestBody,
    InviteBody,
    ReasonBody,
    SeriesUpdated,
)
from volley_planner.app.schemas.team import UserRead
from volley_planner.app.services.attendance_service import annotate_statuses
from volley_planner.app.services.event_service import EventService
from volley_planner.app.services.team_service import TeamService


router = APIRouter()


@router.get("", response_model=List[Event])
async def list_events(
    team_id: Optional[str] = Query(None, alias="teamId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    current_user: UserRead = Depends(get_current_user),
) -> List[Event]:
    """List events ordered by start time.

    - **teamId**: only events of this team.
    - **startDate**, **endDate**: bounds for the start time (ISO strings).

    Every event carries the caller's resolved ``status``.
    """
    events = await EventService.list_events(team_id=team_id, start_date=start_date, end_date=end_date)
    team_ids = await TeamService.team_ids_of_user(current_user.id)
    return annotate_statuses(events, current_user.id, team_ids)


@router.post("", response_model=Union[Event, EventCreated], status_code=status.HTTP_201_CREATED)
async def create_event(
    event: EventCreate,
    current_user: UserRead = Depends(require_coach),
) -> Union[Event, EventCreated]:
    """Create an event, or a recurring series when ``isRecurring`` is set.

    Only coaches of the selected teams may create events.
    """
    return await EventService.create_event(event, current_user)


@router.get("/{event_id}", response_model=Event)
async def get_event(event_id: str, current_user: UserRead = Depends(get_current_user)) -> Event:
    event = await EventService.get_event(event_id)
    team_ids = await TeamService.team_ids_of_user(current_user.id)
    return annotate_statuses([event], current_user.id, team_ids)[0]


@router.put("/{event_id}", response_model=Union[Event, SeriesUpdated])
async def update_event(
    event_id: str,
    updates: EventUpdate,
    current_user: UserRead = Depends(require_coach),
) -> Union[Event, SeriesUpdated]:
    """Update an event.

    With ``updateRecurring`` the change is applied to every event of the
    series; ``convertToRecurring`` turns a standalone event into a series.
    Both answer ``{message, events}``.  Unspecified fields stay unchanged.
    """
    return await EventService.update_event(event_id, updates, current_user)


@router.delete("/{event_id}", response_model=EventDeleted)
async def delete_event(
    event_id: str,
    delete_recurring: bool = Query(False, alias="deleteRecurring"),
    current_user: UserRead = Depends(require_coach),
) -> EventDeleted:
    """Delete an event, or its whole series with ``deleteRecurring=true``."""
    return await EventService.delete_event(event_id, current_user, delete_recurring=delete_recurring)


@router.get("/{event_id}/can-edit", response_model=CanEdit)
async def can_edit(event_id: str, current_user: UserRead = Depends(get_current_user)) -> CanEdit:
    event = await EventService.get_event(event_id)
    return CanEdit(can_edit=await EventService.can_edit(event, current_user))


@router.post("/{event_id}/accept", response_model=Event)
async def accept_event(event_id: str, current_user: UserRead = Depends(get_current_user)) -> Event:
    return await EventService.respond(event_id, current_user, "accept")


@router.post("/{event_id}/decline", response_model=Event)
async def decline_event(
    event_id: str,
    body: ReasonBody,
    current_user: UserRead = Depends(get_current_user),
) -> Event:
    """Decline an event.  A non‑blank reason is required."""
    return await EventService.respond(event_id, current_user, "decline", body.reason)


@router.post("/{event_id}/unsure", response_model=Event)
async def unsure_event(
    event_id: str,
    body: ReasonBody,
    current_user: UserRead = Depends(get_current_user),
) -> Event:
    """Mark the caller as unsure.  A non‑blank reason is required."""
    return await EventService.respond(event_id, current_user, "unsure", body.reason)


@router.post("/{event_id}/guests", response_model=Event)
async def add_guest(
    event_id: str,
    body: GuestBody,
    current_user: UserRead = Depends(require_coach),
) -> Event:
    """Add a player of another team as guest."""
    return await EventService.add_guest(event_id, body.player_id, body.from_team_id, current_user)


@router.delete("/{event_id}/guests/{player_id}", response_model=Event)
async def remove_guest(
    event_id: str,
    player_id: str,
    current_user: UserRead = Depends(require_coach),
) -> Event:
    return await EventService.remove_guest(event_id, player_id, current_user)


@router.post("/{event_id}/invitedPlayers", response_model=Event)
async def invite_player(
    event_id: str,
    body: InviteBody,
    current_user: UserRead = Depends(require_coach),
) -> Event:
    return await EventService.invite(event_id, body.player_id, current_user)


@router.delete("/{event_id}/invitedPlayers/{player_id}", response_model=Event)
async def uninvite_player(
    event_id: str,
    player_id: str,
    current_user: UserRead = Depends(require_coach),
) -> Event:
    """Remove a player from the event and remember the removal."""
    return await EventService.uninvite(event_id, player_id, current_user)
