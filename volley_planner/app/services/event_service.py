"""
Business logic for events.

The ``EventService`` persists events as JSON documents in SQLite and
delegates every state change to the pure functions of
``attendance_service`` and ``recurrence_service``.  Editing operations
are restricted to coaches of at least one of the event's teams; the
self‑service responses re‑check eligibility and the voting deadline.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union

from ..core.db import dumps, fetch_documents, get_cursor, loads, new_id
from ..core.errors import AuthorizationError, NotFoundError, ValidationError
from ..schemas.event import (
    Event,
    EventCreate,
    EventCreated,
    EventDeleted,
    EventUpdate,
    SeriesUpdated,
    ensure_aware,
    utcnow,
    validate_event_fields,
)
from ..schemas.team import PlayerRef, UserRead
from . import attendance_service, recurrence_service
from .schedule_service import events_for_team
from .team_service import TeamService


logger = logging.getLogger(__name__)

# Fields an update may reset to ``None``.
NULLABLE_FIELDS = {"description", "notes", "voting_deadline"}


def utc_key(value: Optional[datetime]) -> Optional[str]:
    """Fixed width UTC string used for the indexed time columns."""
    if value is None:
        return None
    return ensure_aware(value).astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")


class EventService:
    """Service for events, their recurring series and attendance."""

    # ------------------------------------------------------------------
    # storage

    @classmethod
    def save_events(cls, events: Iterable[Event]) -> None:
        with get_cursor() as cursor:
            for event in events:
                cursor.execute(
                    """
                    INSERT INTO events (id, start_time, recurring_group_id, voting_deadline,
                                        auto_decline_processed, document)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        start_time = excluded.start_time,
                        recurring_group_id = excluded.recurring_group_id,
                        voting_deadline = excluded.voting_deadline,
                        auto_decline_processed = excluded.auto_decline_processed,
                        document = excluded.document,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (
                        event.id,
                        utc_key(event.start_time),
                        event.recurring_group_id,
                        utc_key(event.voting_deadline),
                        int(event.auto_decline_processed),
                        dumps(event.model_dump(mode="json", exclude={"status"})),
                    ),
                )

    @classmethod
    def query_events(cls, sql: str, params: tuple = ()) -> List[Event]:
        with get_cursor() as cursor:
            documents = fetch_documents(cursor, sql, params)
        return [Event.model_validate(doc) for doc in documents]

    @classmethod
    async def get_event(cls, event_id: str) -> Event:
        """Return an event or raise ``NotFoundError``."""
        with get_cursor() as cursor:
            row = cursor.execute("SELECT document FROM events WHERE id = ?", (event_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Event {event_id} not found")
        return Event.model_validate(loads(row["document"]))

    @classmethod
    async def list_events(
        cls,
        team_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Event]:
        """Return events ordered by start time.

        - ``team_id`` keeps events the team takes part in.
        - ``start_date`` and ``end_date`` bound the start time (inclusive).
        """
        query = "SELECT document FROM events"
        params: list = []
        where_clauses: list[str] = []
        if start_date is not None:
            where_clauses.append("start_time >= ?")
            params.append(utc_key(start_date))
        if end_date is not None:
            where_clauses.append("start_time <= ?")
            params.append(utc_key(end_date))
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY start_time ASC, id ASC"
        events = cls.query_events(query, tuple(params))
        if team_id:
            events = events_for_team(events, team_id)
        return events

    @classmethod
    async def series(cls, group_id: str) -> List[Event]:
        return cls.query_events(
            "SELECT document FROM events WHERE recurring_group_id = ? ORDER BY start_time ASC",
            (group_id,),
        )

    # ------------------------------------------------------------------
    # permissions

    @classmethod
    async def can_edit(cls, event: Event, user: UserRead) -> bool:
        """A user may edit an event when they coach one of its teams."""
        if not user.is_coach:
            return False
        coached = set(await TeamService.coached_team_ids(user.id))
        return any(team_id in coached for team_id in event.teams)

    @classmethod
    async def _require_editor(cls, event: Event, user: UserRead) -> None:
        if not await cls.can_edit(event, user):
            raise AuthorizationError("Only coaches of the event's teams may change it")

    # ------------------------------------------------------------------
    # helpers

    @classmethod
    async def _player_refs(cls, player_ids: Iterable[str]) -> List[PlayerRef]:
        ids = list(dict.fromkeys(player_ids))
        users = await TeamService.get_users(ids)
        missing = [player_id for player_id in ids if player_id not in users]
        if missing:
            raise ValidationError(f"Unknown players: {', '.join(missing)}")
        return [users[player_id].as_ref() for player_id in ids]

    @classmethod
    async def _roster_ids(cls, team_ids: Iterable[str]) -> List[str]:
        roster: List[str] = []
        for team in await TeamService.get_teams(team_ids):
            roster.extend(team.players)
        return list(dict.fromkeys(roster))

    # ------------------------------------------------------------------
    # create / update / delete

    @classmethod
    async def create_event(cls, data: EventCreate, current_user: UserRead) -> Union[Event, EventCreated]:
        """Create an event, or a whole series when ``is_recurring`` is set.

        Without an explicit invitation list the rosters of all selected
        teams are invited.  The organizing team defaults to the first
        selected team the user coaches.
        """
        logger.info("User %s is creating event '%s'", current_user.id, data.title)
        coached = set(await TeamService.coached_team_ids(current_user.id))
        await TeamService.get_teams(data.teams)
        own_teams = [team_id for team_id in data.teams if team_id in coached]
        if not own_teams:
            raise AuthorizationError("You can only create events for teams you coach")
        organizing_team = data.organizing_team or own_teams[0]
        if organizing_team not in coached:
            raise AuthorizationError("The organizing team must be one of your teams")

        invited_ids = data.invited_players
        if invited_ids is None:
            invited_ids = await cls._roster_ids(data.teams)
        fields = data.model_dump(exclude={
            "invited_players", "organizing_team", "is_recurring",
            "recurring_pattern", "recurring_end_date",
        })
        event = Event(
            id=new_id(),
            organizing_team=organizing_team,
            invited_players=await cls._player_refs(invited_ids),
            created_by=current_user.id,
            **fields,
        )
        if not data.is_recurring:
            cls.save_events([event])
            return event

        series = recurrence_service.expand_series(
            event, data.recurring_pattern, data.recurring_end_date, new_id
        )
        cls.save_events(series)
        return EventCreated(
            message=f"Created {len(series)} recurring events",
            main_event=series[0],
            events=series,
        )

    @classmethod
    async def _resolve_changes(cls, event: Event, data: EventUpdate) -> Dict:
        """Turn the provided update fields into typed event values."""
        changes = {
            key: value for key, value in data.changes().items()
            if value is not None or key in NULLABLE_FIELDS
        }
        if "teams" in changes:
            await TeamService.get_teams(changes["teams"])
            organizing = changes.get("organizing_team", event.organizing_team)
            if organizing not in changes["teams"]:
                changes["organizing_team"] = changes["teams"][0]
        elif changes.get("organizing_team") and changes["organizing_team"] not in event.teams:
            raise ValidationError("Organizing team must be one of the event's teams")
        if "invited_players" in changes:
            changes["invited_players"] = await cls._player_refs(changes["invited_players"])
        return changes

    @classmethod
    def _apply_single(cls, event: Event, changes: Dict) -> Event:
        fields = {k: v for k, v in changes.items() if k != "invited_players"}
        updated = Event.model_validate({**event.model_dump(), **fields})
        validate_event_fields(
            title=updated.title,
            location=updated.location,
            start_time=updated.start_time,
            end_time=updated.end_time,
        )
        if "invited_players" in changes:
            updated = attendance_service.with_invited(updated, changes["invited_players"])
        return updated

    @classmethod
    async def update_event(
        cls,
        event_id: str,
        data: EventUpdate,
        current_user: UserRead,
    ) -> Union[Event, SeriesUpdated]:
        """Update one event, cascade to its series, or convert it into one.

        A single edit of a series instance keeps its group id.
        """
        event = await cls.get_event(event_id)
        await cls._require_editor(event, current_user)
        changes = await cls._resolve_changes(event, data)

        if data.convert_to_recurring:
            if event.is_recurring or event.is_recurring_instance:
                raise ValidationError("Event is already part of a recurring series")
            template = cls._apply_single(event, changes)
            validate_event_fields(
                title=template.title,
                location=template.location,
                start_time=template.start_time,
                end_time=template.end_time,
                is_recurring=True,
                recurring_pattern=data.recurring_pattern,
                recurring_end_date=data.recurring_end_date,
            )
            series = recurrence_service.expand_series(
                template, data.recurring_pattern, data.recurring_end_date, new_id
            )
            cls.save_events(series)
            logger.info("Converted event %s into a series of %d", event.id, len(series))
            return SeriesUpdated(message=f"Created {len(series)} recurring events", events=series)

        if data.update_recurring and event.recurring_group_id:
            members = await cls.series(event.recurring_group_id)
            invited = changes.pop("invited_players", None)
            updated = recurrence_service.apply_series_update(
                members, changes, weekday=data.weekday, reference=event
            )
            if invited is not None:
                updated = [attendance_service.with_invited(e, invited) for e in updated]
            cls.save_events(updated)
            return SeriesUpdated(message=f"Updated {len(updated)} recurring events", events=updated)

        updated = cls._apply_single(event, changes)
        cls.save_events([updated])
        logger.info("User %s updated event %s", current_user.id, event.id)
        return updated

    @classmethod
    async def delete_event(
        cls,
        event_id: str,
        current_user: UserRead,
        delete_recurring: bool = False,
    ) -> EventDeleted:
        """Delete one event or, with ``delete_recurring``, its whole series."""
        event = await cls.get_event(event_id)
        await cls._require_editor(event, current_user)
        if delete_recurring and event.recurring_group_id:
            ids = [e.id for e in await cls.series(event.recurring_group_id)]
        else:
            ids = [event.id]
        placeholders = ",".join("?" for _ in ids)
        with get_cursor() as cursor:
            cursor.execute(f"DELETE FROM events WHERE id IN ({placeholders})", tuple(ids))
        logger.info("User %s deleted %d event(s): %s", current_user.id, len(ids), ", ".join(ids))
        noun = "event" if len(ids) == 1 else "events"
        return EventDeleted(message=f"Deleted {len(ids)} {noun}", deleted=ids)

    # ------------------------------------------------------------------
    # attendance

    @classmethod
    async def respond(
        cls,
        event_id: str,
        current_user: UserRead,
        action: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Event:
        """Accept, decline or mark unsure on behalf of ``current_user``."""
        event = await cls.get_event(event_id)
        team_ids = await TeamService.team_ids_of_user(current_user.id)
        updated = attendance_service.respond(
            event, current_user.as_ref(), action, reason, now or utcnow(), team_ids
        )
        if updated is not event:
            cls.save_events([updated])
        return attendance_service.annotate_statuses([updated], current_user.id, team_ids)[0]

    @classmethod
    async def add_guest(cls, event_id: str, player_id: str, from_team_id: str,
                        current_user: UserRead) -> Event:
        event = await cls.get_event(event_id)
        await cls._require_editor(event, current_user)
        player = await TeamService.get_user(player_id)
        team = await TeamService.get_team(from_team_id)
        updated = attendance_service.add_guest(event, player.as_ref(), team.id)
        cls.save_events([updated])
        return updated

    @classmethod
    async def remove_guest(cls, event_id: str, player_id: str, current_user: UserRead) -> Event:
        event = await cls.get_event(event_id)
        await cls._require_editor(event, current_user)
        updated = attendance_service.remove_guest(event, player_id)
        cls.save_events([updated])
        return updated

    @classmethod
    async def invite(cls, event_id: str, player_id: str, current_user: UserRead) -> Event:
        event = await cls.get_event(event_id)
        await cls._require_editor(event, current_user)
        player = await TeamService.get_user(player_id)
        updated = attendance_service.invite(event, player.as_ref())
        cls.save_events([updated])
        logger.info("User %s invited %s to event %s", current_user.id, player_id, event_id)
        return updated

    @classmethod
    async def uninvite(cls, event_id: str, player_id: str, current_user: UserRead) -> Event:
        event = await cls.get_event(event_id)
        await cls._require_editor(event, current_user)
        player = await TeamService.get_user(player_id)
        updated = attendance_service.uninvite(event, player.as_ref())
        cls.save_events([updated])
        return updated
