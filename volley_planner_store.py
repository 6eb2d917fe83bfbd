"""Client‑side event store.

``EventStore`` owns the event and team collections of one signed‑in
user and exposes the attendance operations on top of
:class:`volley_planner_client.VolleyPlannerAPI`.  Every operation
returns a ``(result, error)`` pair where ``error`` is a
:class:`volley_planner.app.core.errors.PlannerError` or ``None``.

Inputs are validated and voting deadlines are checked locally, before
any request is made; a rejected action never reaches the network.
After every successful change the store refetches the event list and
replaces its snapshot wholesale, then notifies its subscribers.
Derived views (upcoming, past, pending, statistics) delegate to the
pure functions of ``volley_planner.app.services``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter

from volley_planner.app.core.errors import (
    AuthorizationError,
    PlannerError,
    ValidationError,
    error_from_response,
)
from volley_planner.app.schemas.event import (
    AttendanceStatus,
    Event,
    EventCreated,
    EventType,
    SeriesUpdated,
    utcnow,
    validate_event_fields,
)
from volley_planner.app.schemas.team import TeamRead, UserRead
from volley_planner.app.services import attendance_service, schedule_service, statistics_service
from volley_planner.app.services.statistics_service import PositionBucket
from volley_planner_client import VolleyPlannerAPI


logger = logging.getLogger(__name__)

Result = Tuple[Any, Optional[PlannerError]]

_TIME = TypeAdapter(Optional[datetime])


def _time(payload: Dict[str, Any], key: str) -> Optional[datetime]:
    try:
        return _TIME.validate_python(payload.get(key))
    except ValueError as exc:
        raise ValidationError(f"Invalid value for {key}") from exc


def validate_payload(payload: Dict[str, Any], *, creating: bool) -> None:
    """Check an event payload (camelCase wire keys) before sending it.

    On creation title, location, times and teams are mandatory; an update
    only checks the fields it carries.
    """
    if creating:
        for key, message in (
            ("title", "Title is required"),
            ("location", "Location is required"),
            ("startTime", "Start time is required"),
            ("endTime", "End time is required"),
        ):
            if payload.get(key) is None:
                raise ValidationError(message)
    if not creating and "teams" in payload and not payload["teams"]:
        raise ValidationError("At least one team must be selected")
    recurring = payload.get("isRecurring") if creating else payload.get("convertToRecurring")
    validate_event_fields(
        title=payload.get("title"),
        location=payload.get("location"),
        start_time=_time(payload, "startTime"),
        end_time=_time(payload, "endTime"),
        teams=payload.get("teams"),
        require_teams=creating,
        is_recurring=bool(recurring),
        recurring_pattern=payload.get("recurringPattern"),
        recurring_end_date=_time(payload, "recurringEndDate"),
    )


class EventStore:
    """State holder for the events visible to one user.

    Attributes:
        events: Tuple of immutable ``Event`` snapshots, ascending by start.
        current_event: The event opened in a detail view, if any.
        teams: Teams known to the store.
        loading: ``True`` while a request is in flight.
        error: Message of the last failure, ``None`` after a success.
    """

    def __init__(
        self,
        api: VolleyPlannerAPI,
        user: Optional[UserRead] = None,
        teams: Sequence[TeamRead] = (),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.api = api
        self.user = user
        self.teams: Tuple[TeamRead, ...] = tuple(teams)
        self.clock = clock
        self.events: Tuple[Event, ...] = ()
        self.current_event: Optional[Event] = None
        self.loading = False
        self.error: Optional[str] = None
        self._filters: Dict[str, Any] = {}
        self._subscribers: List[Callable[["EventStore"], None]] = []

    # ------------------------------------------------------------------
    # observers

    def subscribe(self, callback: Callable[["EventStore"], None]) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback(self)

    def _set(self, **state: Any) -> None:
        for key, value in state.items():
            setattr(self, key, value)
        self._notify()

    # ------------------------------------------------------------------
    # request plumbing

    def _reject(self, action: str, error: PlannerError) -> Result:
        logger.warning("%s rejected: %s", action, error.message)
        self._set(error=error.message)
        return None, error

    def _call(self, action: str, request: Callable[[], Tuple[Any, Optional[Dict[str, Any]]]]) -> Result:
        self._set(loading=True, error=None)
        try:
            data, err = request()
            if err:
                error = error_from_response(err.get("status_code"), err.get("message") or action)
                logger.error("%s failed: %s", action, error.message)
                self.error = error.message
                return None, error
            return data, None
        finally:
            self._set(loading=False)

    def _event_from(self, data: Any) -> Event:
        event = Event.model_validate(data)
        if self.user is None:
            return event
        return attendance_service.annotate_statuses([event], self.user.id, self.team_ids)[0]

    def _cached(self, event_id: str) -> Optional[Event]:
        if self.current_event is not None and self.current_event.id == event_id:
            return self.current_event
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    def _refresh(self, event_id: Optional[str] = None) -> None:
        self.fetch_events(**self._filters)
        if event_id and self.current_event is not None and self.current_event.id == event_id:
            self.fetch_event(event_id)

    def _mutate(self, action: str, event_id: str, request) -> Result:
        data, error = self._call(action, request)
        if error:
            return None, error
        result = self._event_from(data) if data is not None else None
        self._refresh(event_id)
        return result, None

    # ------------------------------------------------------------------
    # session

    @property
    def team_ids(self) -> List[str]:
        if self.user is None:
            return []
        return [
            team.id for team in self.teams
            if team.has_player(self.user.id) or team.has_coach(self.user.id)
        ]

    @property
    def coached_team_ids(self) -> List[str]:
        if self.user is None:
            return []
        return [team.id for team in self.teams if team.has_coach(self.user.id)]

    def load_session(self) -> Result:
        """Fetch the signed‑in user and the teams."""
        data, error = self._call("load user", self.api.get_me)
        if error:
            return None, error
        user = UserRead.model_validate(data)
        teams, error = self._call("load teams", self.api.list_teams)
        if error:
            return None, error
        self._set(user=user, teams=tuple(TeamRead.model_validate(t) for t in teams))
        return user, None

    # ------------------------------------------------------------------
    # queries

    def fetch_events(
        self,
        team_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Result:
        """Load the event list and replace the snapshot."""
        self._filters = {"team_id": team_id, "start_date": start_date, "end_date": end_date}
        data, error = self._call(
            "fetch events",
            lambda: self.api.list_events(team_id=team_id, start_date=start_date, end_date=end_date),
        )
        if error:
            return None, error
        events = tuple(self._event_from(item) for item in data or [])
        self._set(events=events)
        return list(events), None

    def fetch_event(self, event_id: str) -> Result:
        data, error = self._call("fetch event", lambda: self.api.get_event(event_id))
        if error:
            return None, error
        event = self._event_from(data)
        self._set(current_event=event)
        return event, None

    def check_edit_permission(self, event_id: str) -> Result:
        """Return ``(True, None)`` or an ``AuthorizationError``."""
        allowed, error = self._call("check edit permission", lambda: self.api.can_edit(event_id))
        if error:
            return False, error
        if not allowed:
            return False, AuthorizationError("You are not allowed to edit this event")
        return True, None

    # ------------------------------------------------------------------
    # event lifecycle

    def create_event(self, payload: Dict[str, Any]) -> Result:
        """Create one event or a recurring series.

        Returns an ``Event`` or, for a series, an ``EventCreated``.
        """
        try:
            validate_payload(payload, creating=True)
        except ValidationError as exc:
            return self._reject("create event", exc)
        data, error = self._call("create event", lambda: self.api.create_event(payload))
        if error:
            return None, error
        if isinstance(data, dict) and "mainEvent" in data:
            result = EventCreated.model_validate(data)
        else:
            result = self._event_from(data)
        self._refresh()
        return result, None

    def create_events_for_teams(self, payload: Dict[str, Any], team_ids: Iterable[str]) -> Result:
        """Create one independent event per team.

        Each event belongs to its team only and invites only that team's
        roster, restricted to ``invitedPlayers`` when the payload has it.
        Teams missing from ``teams`` are loaded before their roster is used.
        Stops at the first failure; returns the events created so far
        together with the error.
        """
        team_ids = list(team_ids)
        try:
            validate_payload({**payload, "teams": team_ids}, creating=True)
        except ValidationError as exc:
            return self._reject("create events", exc)
        teams = {team.id: team for team in self.teams}
        created: List[Any] = []
        for team_id in team_ids:
            team = teams.get(team_id)
            if team is None:
                data, error = self._call("load team", lambda tid=team_id: self.api.get_team(tid))
                if error:
                    self._refresh()
                    return created, error
                team = TeamRead.model_validate(data)
            roster = list(team.players)
            if payload.get("invitedPlayers") is not None:
                roster = [p for p in payload["invitedPlayers"] if p in roster]
            single = {**payload, "teams": [team_id], "organizingTeam": team_id, "invitedPlayers": roster}
            data, error = self._call("create event", lambda body=single: self.api.create_event(body))
            if error:
                self._refresh()
                return created, error
            if isinstance(data, dict) and "mainEvent" in data:
                created.append(EventCreated.model_validate(data))
            else:
                created.append(self._event_from(data))
        self._refresh()
        return created, None

    def update_event(self, event_id: str, payload: Dict[str, Any]) -> Result:
        """Update an event; ``updateRecurring`` cascades to its series.

        Returns an ``Event`` or, for cascades and conversions, a
        ``SeriesUpdated``.
        """
        try:
            validate_payload(payload, creating=False)
        except ValidationError as exc:
            return self._reject("update event", exc)
        data, error = self._call("update event", lambda: self.api.update_event(event_id, payload))
        if error:
            return None, error
        if isinstance(data, dict) and "events" in data and "id" not in data:
            result = SeriesUpdated.model_validate(data)
        else:
            result = self._event_from(data)
        self._refresh(event_id)
        return result, None

    def delete_event(self, event_id: str, delete_recurring: bool = False) -> Result:
        """Delete an event or its whole series; returns the deleted ids."""
        data, error = self._call(
            "delete event", lambda: self.api.delete_event(event_id, delete_recurring=delete_recurring)
        )
        if error:
            return None, error
        deleted = list((data or {}).get("deleted", [event_id]))
        if self.current_event is not None and self.current_event.id in deleted:
            self._set(current_event=None)
        self._refresh()
        return deleted, None

    # ------------------------------------------------------------------
    # attendance

    def _guard_deadline(self, event_id: str) -> Optional[PlannerError]:
        """Check the voting deadline; an uncached event is fetched first."""
        event = self._cached(event_id)
        if event is None:
            event, error = self.fetch_event(event_id)
            if error:
                return error
        try:
            attendance_service.check_deadline(event, self.clock())
        except PlannerError as exc:
            return exc
        return None

    def accept(self, event_id: str) -> Result:
        error = self._guard_deadline(event_id)
        if error:
            return self._reject("accept", error)
        return self._mutate("accept", event_id, lambda: self.api.accept_event(event_id))

    def decline(self, event_id: str, reason: str) -> Result:
        return self._respond_with_reason("decline", event_id, reason, self.api.decline_event)

    def mark_unsure(self, event_id: str, reason: str) -> Result:
        return self._respond_with_reason("mark unsure", event_id, reason, self.api.unsure_event)

    def _respond_with_reason(self, action, event_id, reason, send) -> Result:
        try:
            reason = attendance_service.check_reason(reason)
        except ValidationError as exc:
            return self._reject(action, exc)
        error = self._guard_deadline(event_id)
        if error:
            return self._reject(action, error)
        return self._mutate(action, event_id, lambda: send(event_id, reason))

    def add_guest(self, event_id: str, player_id: str, from_team_id: str) -> Result:
        event = self._cached(event_id)
        if event is not None:
            if attendance_service.response_set_of(event, player_id):
                return self._reject("add guest", ValidationError("Player is already part of this event"))
            if attendance_service.is_guest(event, player_id):
                return self._reject("add guest", ValidationError("Player is already a guest"))
        return self._mutate(
            "add guest", event_id, lambda: self.api.add_guest(event_id, player_id, from_team_id)
        )

    def remove_guest(self, event_id: str, player_id: str) -> Result:
        return self._mutate("remove guest", event_id, lambda: self.api.remove_guest(event_id, player_id))

    def invite(self, event_id: str, player_id: str) -> Result:
        return self._mutate("invite", event_id, lambda: self.api.invite_player(event_id, player_id))

    def uninvite(self, event_id: str, player_id: str) -> Result:
        return self._mutate("uninvite", event_id, lambda: self.api.uninvite_player(event_id, player_id))

    # ------------------------------------------------------------------
    # derived views

    def _now(self, now: Optional[datetime]) -> datetime:
        return now or self.clock()

    def upcoming(self, now: Optional[datetime] = None) -> List[Event]:
        return schedule_service.upcoming_events(self.events, self._now(now))

    def past(self, now: Optional[datetime] = None) -> List[Event]:
        return schedule_service.past_events(self.events, self._now(now))

    def pending(self, now: Optional[datetime] = None) -> List[Event]:
        """Upcoming events the signed‑in player still has to answer."""
        if self.user is None:
            return []
        return schedule_service.pending_for_player(self.events, self.user.id, self._now(now))

    def next_trainings(self, limit: Optional[int] = None, now: Optional[datetime] = None) -> List[Event]:
        return schedule_service.next_by_type(self.events, self._now(now), EventType.TRAINING, limit)

    def next_games(self, limit: Optional[int] = None, now: Optional[datetime] = None) -> List[Event]:
        return schedule_service.next_by_type(self.events, self._now(now), EventType.GAME, limit)

    def team_events(self, team_id: str) -> List[Event]:
        return schedule_service.events_for_team(self.events, team_id)

    def recurring_group(self, group_id: str) -> List[Event]:
        return schedule_service.recurring_events(self.events, group_id)

    def status_of(self, event: Event) -> AttendanceStatus:
        if self.user is None:
            return AttendanceStatus.UNKNOWN
        return attendance_service.resolve_status(event, self.user.id, self.team_ids)

    def reason_of(self, event_id: str, player_id: str) -> Optional[str]:
        """Reason given by a player who declined or is unsure."""
        event = self._cached(event_id)
        return attendance_service.response_reason(event, player_id) if event else None

    def events_between(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[Event]:
        return schedule_service.in_range(self.events, start, end)

    def position_statistics(self, event_id: str) -> Dict[str, PositionBucket]:
        event = self._cached(event_id)
        return statistics_service.position_statistics(event) if event else {}
