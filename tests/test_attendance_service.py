import pytest

from conftest import ref, utc
from volley_planner.app.core.errors import AuthorizationError, DeadlinePassed, ValidationError
from volley_planner.app.schemas.event import AttendanceStatus, GuestPlayer, ResponseStatus
from volley_planner.app.services import attendance_service as attendance
from volley_planner.app.services.attendance_service import RESPONSE_SETS

NOW = utc(2025, 1, 1, 12, 0)


def ids(players):
    return [p.id for p in players]


def memberships(event, player_id):
    return [name for name in RESPONSE_SETS if player_id in ids(getattr(event, name))]


def test_accept_moves_invited_player_to_attending(make_event):
    event = make_event(invited_players=[ref("anna"), ref("bea")])

    updated = attendance.accept(event, "anna", NOW)

    assert ids(updated.attending_players) == ["anna"]
    assert ids(updated.invited_players) == ["bea"]
    # the populated reference is kept
    assert updated.attending_players[0].name == "Anna"
    # input snapshot untouched
    assert ids(event.invited_players) == ["anna", "bea"]


def test_accept_twice_is_idempotent(make_event):
    event = make_event(invited_players=[ref("anna")])

    once = attendance.accept(event, "anna", NOW)
    twice = attendance.accept(once, "anna", NOW)

    assert ids(twice.attending_players) == ["anna"]
    assert twice is once


def test_transitions_keep_sets_mutually_exclusive(make_event):
    event = make_event(invited_players=[ref("anna"), ref("bea")])
    steps = [
        lambda e: attendance.accept(e, "anna", NOW),
        lambda e: attendance.decline(e, "anna", "sick", NOW),
        lambda e: attendance.mark_unsure(e, "anna", "maybe late", NOW),
        lambda e: attendance.accept(e, "anna", NOW),
        lambda e: attendance.mark_unsure(e, "bea", "work", NOW),
        lambda e: attendance.decline(e, "bea", "work", NOW),
        lambda e: attendance.invite(e, "anna"),
        lambda e: attendance.uninvite(e, "bea"),
        lambda e: attendance.invite(e, "bea"),
    ]
    for step in steps:
        event = step(event)
        for player_id in ("anna", "bea"):
            assert len(memberships(event, player_id)) <= 1

    assert memberships(event, "anna") == ["attending_players"]
    assert memberships(event, "bea") == ["invited_players"]


def test_decline_records_reason_and_replaces_previous(make_event):
    event = make_event(invited_players=[ref("anna")])

    event = attendance.mark_unsure(event, "anna", "maybe", NOW)
    event = attendance.decline(event, "anna", "  sick  ", NOW)

    assert ids(event.declined_players) == ["anna"]
    assert len(event.player_responses) == 1
    response = event.player_responses[0]
    assert response.status == ResponseStatus.DECLINED
    assert response.reason == "sick"
    assert attendance.response_reason(event, "anna") == "sick"


def test_accept_clears_reason(make_event):
    event = attendance.decline(make_event(invited_players=[ref("anna")]), "anna", "sick", NOW)

    event = attendance.accept(event, "anna", NOW)

    assert event.player_responses == []


@pytest.mark.parametrize("reason", ["", "   ", None])
def test_decline_requires_reason(make_event, reason):
    event = make_event(invited_players=[ref("anna")])

    with pytest.raises(ValidationError):
        attendance.decline(event, "anna", reason, NOW)
    with pytest.raises(ValidationError):
        attendance.mark_unsure(event, "anna", reason, NOW)


@pytest.mark.parametrize("action", ["accept", "decline", "unsure"])
def test_deadline_rejects_every_response(make_event, action):
    event = make_event(invited_players=[ref("anna")], voting_deadline=utc(2025, 1, 5, 18, 0))
    after = utc(2025, 1, 5, 18, 1)

    with pytest.raises(DeadlinePassed):
        attendance.respond(event, "anna", action, "sick", after)
    assert ids(event.invited_players) == ["anna"]


def test_response_at_deadline_is_still_allowed(make_event):
    deadline = utc(2025, 1, 5, 18, 0)
    event = make_event(invited_players=[ref("anna")], voting_deadline=deadline)

    updated = attendance.accept(event, "anna", deadline)

    assert ids(updated.attending_players) == ["anna"]


def test_respond_checks_eligibility(make_event):
    event = make_event(invited_players=[ref("anna")])

    with pytest.raises(AuthorizationError):
        attendance.respond(event, "stranger", "accept", now=NOW)
    # team members may answer even without an invitation
    updated = attendance.respond(event, "bea", "accept", now=NOW, team_ids=["team-a"])
    assert ids(updated.attending_players) == ["bea"]


def test_uninvited_team_member_cannot_respond(make_event):
    event = attendance.uninvite(make_event(invited_players=[ref("anna")]), "anna")

    with pytest.raises(AuthorizationError):
        attendance.respond(event, "anna", "accept", now=NOW, team_ids=["team-a"])


def test_open_access_accepts_anybody(make_event):
    event = make_event(is_open_access=True)

    updated = attendance.respond(event, "stranger", "accept", now=NOW)

    assert ids(updated.attending_players) == ["stranger"]


def test_add_guest_rejects_players_already_in_event(make_event):
    event = make_event(invited_players=[ref("anna")])

    with pytest.raises(ValidationError):
        attendance.add_guest(event, "anna", "team-b")

    event = attendance.add_guest(event, ref("dora"), "team-b")
    with pytest.raises(ValidationError):
        attendance.add_guest(event, "dora", "team-b")
    assert [g.player.id for g in event.guest_players] == ["dora"]


def test_guest_response_converts_guest_entry(make_event):
    event = attendance.add_guest(make_event(), ref("dora"), "team-b")

    event = attendance.respond(event, "dora", "accept", now=NOW)

    assert event.guest_players == []
    assert ids(event.attending_players) == ["dora"]
    assert event.attending_players[0].name == "Dora"


def test_remove_guest_is_noop_for_unknown_player(make_event):
    event = make_event(guest_players=[GuestPlayer(player=ref("dora"), from_team="team-b")])

    assert attendance.remove_guest(event, "nobody").guest_players == event.guest_players
    assert attendance.remove_guest(event, "dora").guest_players == []


def test_uninvite_clears_everything_and_remembers(make_event):
    event = attendance.decline(make_event(invited_players=[ref("anna")]), "anna", "sick", NOW)

    event = attendance.uninvite(event, "anna")

    assert memberships(event, "anna") == []
    assert ids(event.uninvited_players) == ["anna"]
    assert event.player_responses == []


def test_invite_restores_uninvited_player(make_event):
    event = attendance.uninvite(make_event(invited_players=[ref("anna")]), "anna")

    event = attendance.invite(event, ref("anna"))

    assert ids(event.invited_players) == ["anna"]
    assert event.uninvited_players == []


def test_with_invited_keeps_answers(make_event):
    event = attendance.accept(make_event(invited_players=[ref("anna")]), "anna", NOW)

    event = attendance.with_invited(event, [ref("anna"), ref("bea")])

    assert ids(event.invited_players) == ["bea"]
    assert ids(event.attending_players) == ["anna"]


def test_resolve_status_precedence(make_event):
    event = make_event(invited_players=[ref("anna"), ref("bea")])
    event = attendance.accept(event, "anna", NOW)
    event = attendance.add_guest(event, ref("dora"), "team-b")
    event = attendance.uninvite(event, "bea")

    assert attendance.resolve_status(event, "anna") == AttendanceStatus.ATTENDING
    assert attendance.resolve_status(event, "dora") == AttendanceStatus.GUEST
    assert attendance.resolve_status(event, "bea", ["team-a"]) == AttendanceStatus.UNINVITED
    assert attendance.resolve_status(event, "carla", ["team-a"]) == AttendanceStatus.TEAM_MEMBER
    assert attendance.resolve_status(event, "stranger") == AttendanceStatus.UNKNOWN


def test_annotate_statuses(make_event):
    events = [make_event(id="e1", invited_players=[ref("anna")]), make_event(id="e2")]

    annotated = attendance.annotate_statuses(events, "anna")

    assert [e.status for e in annotated] == [AttendanceStatus.INVITED, AttendanceStatus.UNKNOWN]
    assert events[0].status is None


def test_auto_decline_declines_only_pending_invitations(make_event):
    event = make_event(invited_players=[ref("anna"), ref("bea")])
    event = attendance.accept(event, "anna", NOW)

    event = attendance.auto_decline(event, "Frist abgelaufen", NOW)

    assert ids(event.attending_players) == ["anna"]
    assert ids(event.declined_players) == ["bea"]
    assert event.invited_players == []
    assert event.auto_decline_processed is True
    assert attendance.response_reason(event, "bea") == "Frist abgelaufen"
