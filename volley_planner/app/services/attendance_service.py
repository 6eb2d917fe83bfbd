"""
Attendance state machine for a single event.

Every function takes an ``Event`` snapshot and returns a new snapshot;
the input is never modified.  A player id is kept in at most one of the
invited, attending, declined and unsure sets: each transition first
removes the id from all of them and then inserts it where it belongs.

Self‑service transitions (accept, decline, mark unsure) honour the
voting deadline and, for decline and unsure, require a reason.  Guest
management, inviting and uninviting are coach operations.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from ..core.errors import AuthorizationError, DeadlinePassed, ValidationError
from ..schemas.event import (
    AttendanceStatus,
    Event,
    GuestPlayer,
    PlayerResponse,
    ResponseStatus,
    ensure_aware,
    utcnow,
)
from ..schemas.team import PlayerRef


logger = logging.getLogger(__name__)

RESPONSE_SETS = ("invited_players", "attending_players", "declined_players", "unsure_players")


def _contains(players: Iterable[PlayerRef], player_id: str) -> bool:
    return any(p.id == player_id for p in players)


def _without(players: Iterable[PlayerRef], player_id: str) -> List[PlayerRef]:
    return [p for p in players if p.id != player_id]


def _ref(player) -> PlayerRef:
    if isinstance(player, PlayerRef):
        return player
    if isinstance(player, str):
        return PlayerRef(id=player)
    return PlayerRef(id=player.id, name=getattr(player, "name", ""), position=getattr(player, "position", None))


def response_set_of(event: Event, player_id: str) -> Optional[str]:
    """Name of the response set holding ``player_id``, if any."""
    for name in RESPONSE_SETS:
        if _contains(getattr(event, name), player_id):
            return name
    return None


def is_guest(event: Event, player_id: str) -> bool:
    return any(g.player.id == player_id for g in event.guest_players)


def is_uninvited(event: Event, player_id: str) -> bool:
    return _contains(event.uninvited_players, player_id)


def has_responded(event: Event, player_id: str) -> bool:
    return (
        _contains(event.attending_players, player_id)
        or _contains(event.declined_players, player_id)
        or _contains(event.unsure_players, player_id)
    )


def check_deadline(event: Event, now: Optional[datetime] = None) -> None:
    """Raise ``DeadlinePassed`` once ``now`` is after the voting deadline."""
    if event.is_voting_deadline_passed(now):
        raise DeadlinePassed(
            f"Voting deadline for '{event.title}' passed at {event.voting_deadline.isoformat()}"
        )


def check_reason(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise ValidationError("A reason is required")
    return reason.strip()


def can_respond(event: Event, player_id: str, team_ids: Iterable[str] = ()) -> bool:
    """Whether ``player_id`` may answer the event at all.

    Open access events accept everybody.  Otherwise the player must be
    invited, a guest, already have answered, or belong to one of the
    event's teams without having been uninvited.
    """
    if event.is_open_access:
        return True
    if is_uninvited(event, player_id):
        return False
    if response_set_of(event, player_id) or is_guest(event, player_id):
        return True
    return any(team_id in event.teams for team_id in team_ids)


def _move(event: Event, player: PlayerRef, target: Optional[str], **extra) -> Event:
    # A guest entry is converted, not duplicated: once the guest answers
    # (or is uninvited) only the response set records the player.
    update = {name: _without(getattr(event, name), player.id) for name in RESPONSE_SETS}
    update["guest_players"] = [g for g in event.guest_players if g.player.id != player.id]
    if target is not None:
        update[target] = update[target] + [_known_ref(event, player)]
    update.update(extra)
    return event.model_copy(update=update)


def _known_ref(event: Event, player: PlayerRef) -> PlayerRef:
    """Prefer the populated reference already stored on the event."""
    if player.name:
        return player
    for name in RESPONSE_SETS:
        for existing in getattr(event, name):
            if existing.id == player.id:
                return existing
    for guest in event.guest_players:
        if guest.player.id == player.id:
            return guest.player
    return player


def _responses_without(event: Event, player_id: str) -> List[PlayerResponse]:
    return [r for r in event.player_responses if r.player != player_id]


def accept(event: Event, player, now: Optional[datetime] = None) -> Event:
    """Move the player into the attending set."""
    player = _ref(player)
    check_deadline(event, now)
    if _contains(event.attending_players, player.id):
        return event
    logger.info("Player %s accepts event %s", player.id, event.id)
    return _move(
        event,
        player,
        "attending_players",
        player_responses=_responses_without(event, player.id),
    )


def _respond_with_reason(event, player, reason, status, target, now) -> Event:
    player = _ref(player)
    check_deadline(event, now)
    reason = check_reason(reason)
    response = PlayerResponse(
        player=player.id,
        status=status,
        reason=reason,
        responded_at=ensure_aware(now) or utcnow(),
    )
    logger.info("Player %s responds '%s' to event %s", player.id, status.value, event.id)
    return _move(
        event,
        player,
        target,
        player_responses=_responses_without(event, player.id) + [response],
    )


def decline(event: Event, player, reason: str, now: Optional[datetime] = None) -> Event:
    """Move the player into the declined set, recording the reason."""
    return _respond_with_reason(event, player, reason, ResponseStatus.DECLINED, "declined_players", now)


def mark_unsure(event: Event, player, reason: str, now: Optional[datetime] = None) -> Event:
    """Move the player into the unsure set, recording the reason."""
    return _respond_with_reason(event, player, reason, ResponseStatus.UNSURE, "unsure_players", now)


def respond(event: Event, player, action: str, reason: Optional[str] = None,
            now: Optional[datetime] = None, team_ids: Iterable[str] = ()) -> Event:
    """Eligibility‑checked entry point used by the backend.

    ``action`` is one of ``accept``, ``decline`` or ``unsure``.
    """
    player = _ref(player)
    if not can_respond(event, player.id, team_ids):
        raise AuthorizationError("Not invited to this event")
    if action == "accept":
        return accept(event, player, now)
    if action == "decline":
        return decline(event, player, reason, now)
    if action == "unsure":
        return mark_unsure(event, player, reason, now)
    raise ValidationError(f"Unknown response action '{action}'")


def add_guest(event: Event, player, from_team_id: str) -> Event:
    """Add a player from another team as guest.

    Rejected when the player already holds a response state or is a
    guest already.
    """
    player = _ref(player)
    if not from_team_id:
        raise ValidationError("The guest's team is required")
    if response_set_of(event, player.id):
        raise ValidationError("Player is already part of this event")
    if is_guest(event, player.id):
        raise ValidationError("Player is already a guest")
    logger.info("Adding guest %s from team %s to event %s", player.id, from_team_id, event.id)
    return event.model_copy(update={
        "guest_players": event.guest_players + [GuestPlayer(player=player, from_team=from_team_id)],
        "uninvited_players": _without(event.uninvited_players, player.id),
    })


def remove_guest(event: Event, player_id: str) -> Event:
    return event.model_copy(update={
        "guest_players": [g for g in event.guest_players if g.player.id != player_id],
    })


def uninvite(event: Event, player) -> Event:
    """Remove a player from every response set and remember the removal."""
    player = _ref(player)
    logger.info("Uninviting player %s from event %s", player.id, event.id)
    uninvited = event.uninvited_players
    if not _contains(uninvited, player.id):
        uninvited = uninvited + [_known_ref(event, player)]
    return _move(
        event,
        player,
        None,
        uninvited_players=uninvited,
        player_responses=_responses_without(event, player.id),
    )


def invite(event: Event, player) -> Event:
    """Invite a player; players that already answered keep their answer."""
    player = _ref(player)
    update = {"uninvited_players": _without(event.uninvited_players, player.id)}
    if response_set_of(event, player.id) is None:
        update["invited_players"] = event.invited_players + [player]
    return event.model_copy(update=update)


def with_invited(event: Event, players: Iterable) -> Event:
    """Replace the invitation list as edited by a coach.

    Players that already answered keep their answer and are not listed
    as invited again.  Listed players stop being guests or uninvited.
    """
    refs = [_ref(p) for p in players]
    ids = {p.id for p in refs}
    invited = []
    for player in refs:
        if has_responded(event, player.id) or _contains(invited, player.id):
            continue
        invited.append(player)
    return event.model_copy(update={
        "invited_players": invited,
        "guest_players": [g for g in event.guest_players if g.player.id not in ids],
        "uninvited_players": [p for p in event.uninvited_players if p.id not in ids],
    })


def auto_decline(event: Event, reason: str, now: Optional[datetime] = None) -> Event:
    """Decline every invited player who has not answered.

    Used once the voting deadline passed, so the deadline guard does not
    apply.  The event is flagged as processed even when nobody was left.
    """
    now = ensure_aware(now) or utcnow()
    declined = list(event.declined_players)
    responses = list(event.player_responses)
    for player in event.invited_players:
        declined.append(player)
        responses = [r for r in responses if r.player != player.id]
        responses.append(PlayerResponse(
            player=player.id,
            status=ResponseStatus.DECLINED,
            reason=reason,
            responded_at=now,
        ))
    if event.invited_players:
        logger.info("Auto-declined %d players for event %s", len(event.invited_players), event.id)
    return event.model_copy(update={
        "invited_players": [],
        "declined_players": declined,
        "player_responses": responses,
        "auto_decline_processed": True,
    })


def resolve_status(event: Event, player_id: str, team_ids: Iterable[str] = ()) -> AttendanceStatus:
    """Resolve the displayed status of a player.

    Precedence: attending, declined, unsure, invited, guest, uninvited,
    team member or open access, unknown.
    """
    if _contains(event.attending_players, player_id):
        return AttendanceStatus.ATTENDING
    if _contains(event.declined_players, player_id):
        return AttendanceStatus.DECLINED
    if _contains(event.unsure_players, player_id):
        return AttendanceStatus.UNSURE
    if _contains(event.invited_players, player_id):
        return AttendanceStatus.INVITED
    if is_guest(event, player_id):
        return AttendanceStatus.GUEST
    if is_uninvited(event, player_id):
        return AttendanceStatus.UNINVITED
    if event.is_open_access or any(team_id in event.teams for team_id in team_ids):
        return AttendanceStatus.TEAM_MEMBER
    return AttendanceStatus.UNKNOWN


def annotate_statuses(events: Iterable[Event], player_id: str, team_ids: Iterable[str] = ()) -> List[Event]:
    """Attach the resolved status for ``player_id`` to every event."""
    team_ids = list(team_ids)
    return [
        event.model_copy(update={"status": resolve_status(event, player_id, team_ids)})
        for event in events
    ]


def response_reason(event: Event, player_id: str) -> Optional[str]:
    for response in event.player_responses:
        if response.player == player_id:
            return response.reason
    return None
