"""
Read‑only projections over an event collection.

These functions never modify their input and always return new lists.
They back the dashboard and list views: upcoming and past events, the
invitations a player still has to answer, the events of one team or one
recurring series.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from ..schemas.event import Event, EventType, ensure_aware
from .attendance_service import has_responded, is_guest, is_uninvited


def upcoming_events(events: Iterable[Event], now: datetime) -> List[Event]:
    """Events starting after ``now``, soonest first."""
    now = ensure_aware(now)
    return sorted((e for e in events if e.start_time > now), key=lambda e: e.start_time)


def past_events(events: Iterable[Event], now: datetime) -> List[Event]:
    """Events that started before ``now``, most recent first."""
    now = ensure_aware(now)
    return sorted(
        (e for e in events if e.start_time < now),
        key=lambda e: e.start_time,
        reverse=True,
    )


def is_pending_for(event: Event, player_id: str) -> bool:
    """Whether the event waits for an answer from ``player_id``.

    Plain membership of one of the event's teams does not count: the
    player must be invited or a guest, or the event must be open access.
    """
    if has_responded(event, player_id) or is_uninvited(event, player_id):
        return False
    invited = any(p.id == player_id for p in event.invited_players)
    return invited or is_guest(event, player_id) or event.is_open_access


def pending_for_player(events: Iterable[Event], player_id: str, now: datetime) -> List[Event]:
    """Future events the player has not answered yet, soonest first."""
    return [e for e in upcoming_events(events, now) if is_pending_for(e, player_id)]


def events_for_team(events: Iterable[Event], team_id: str) -> List[Event]:
    return sorted((e for e in events if team_id in e.teams), key=lambda e: e.start_time)


def recurring_events(events: Iterable[Event], group_id: str) -> List[Event]:
    """All events of one recurring series in chronological order."""
    if not group_id:
        return []
    return sorted(
        (e for e in events if e.recurring_group_id == group_id),
        key=lambda e: e.start_time,
    )


def next_by_type(
    events: Iterable[Event],
    now: datetime,
    event_type: EventType,
    limit: Optional[int] = None,
) -> List[Event]:
    """Next trainings or games, soonest first."""
    selected = [e for e in upcoming_events(events, now) if e.type == EventType(event_type)]
    return selected[:limit] if limit is not None else selected


def in_range(
    events: Iterable[Event],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Event]:
    """Events whose start lies within ``[start, end]``; open bounds allowed."""
    start = ensure_aware(start)
    end = ensure_aware(end)
    return sorted(
        (
            e for e in events
            if (start is None or e.start_time >= start) and (end is None or e.start_time <= end)
        ),
        key=lambda e: e.start_time,
    )
