import pytest
from fastapi.testclient import TestClient

from conftest import auth_headers
from volley_planner.app.main import app


@pytest.fixture
def client(club):
    with TestClient(app) as test_client:
        yield test_client


def payload(club, **overrides):
    body = {
        "title": "Training Damen 1",
        "type": "Training",
        "startTime": "2030-01-07T18:00:00Z",
        "endTime": "2030-01-07T20:00:00Z",
        "location": "Sporthalle Nord",
        "teams": [club.team.id],
    }
    body.update(overrides)
    return body


def create(client, club, **overrides):
    response = client.post("/api/v1/events", json=payload(club, **overrides), headers=auth_headers(club.coach))
    assert response.status_code == 201, response.text
    return response.json()


def test_requires_token(client):
    response = client.get("/api/v1/events")

    assert response.status_code == 401


def test_users_me(client, club):
    response = client.get("/api/v1/users/me", headers=auth_headers(club.anna))

    assert response.status_code == 200
    assert response.json()["name"] == "Anna"


def test_list_users(client, club):
    response = client.get("/api/v1/users", headers=auth_headers(club.anna))

    assert response.status_code == 200
    assert sorted(u["name"] for u in response.json()) == [
        "Anna", "Bea", "Carla", "Dora", "Trainer Tom", "Trainerin Uta",
    ]


def test_create_and_fetch_uses_camel_case(client, club):
    event = create(client, club)

    assert event["organizingTeam"] == club.team.id
    assert [p["id"] for p in event["invitedPlayers"]] == [club.anna.id, club.bea.id, club.carla.id]

    fetched = client.get(f"/api/v1/events/{event['id']}", headers=auth_headers(club.anna)).json()
    assert fetched["status"] == "invited"


def test_create_validation_errors(client, club):
    headers = auth_headers(club.coach)

    blank = client.post("/api/v1/events", json=payload(club, title="  "), headers=headers)
    reversed_times = client.post(
        "/api/v1/events", json=payload(club, endTime="2030-01-07T17:00:00Z"), headers=headers
    )

    assert blank.status_code == 422
    assert blank.json()["message"] == "Title is required"
    assert reversed_times.json()["message"] == "End time must be after start time"


def test_players_cannot_create(client, club):
    response = client.post("/api/v1/events", json=payload(club), headers=auth_headers(club.anna))

    assert response.status_code == 403


def test_recurring_create_returns_series(client, club):
    response = client.post(
        "/api/v1/events",
        json=payload(club, isRecurring=True, recurringPattern="weekly", recurringEndDate="2030-01-28T00:00:00Z"),
        headers=auth_headers(club.coach),
    )

    body = response.json()
    assert response.status_code == 201
    assert body["mainEvent"]["isRecurring"] is True
    assert len(body["events"]) == 4
    assert len({e["recurringGroupId"] for e in body["events"]}) == 1


def test_list_filters(client, club):
    create(client, club)
    create(client, club, startTime="2030-03-02T18:00:00Z", endTime="2030-03-02T20:00:00Z")
    headers = auth_headers(club.anna)

    everything = client.get("/api/v1/events", headers=headers).json()
    march = client.get("/api/v1/events", params={"startDate": "2030-03-01T00:00:00Z"}, headers=headers).json()
    other = client.get("/api/v1/events", params={"teamId": club.other_team.id}, headers=headers).json()

    assert [e["startTime"][:10] for e in everything] == ["2030-01-07", "2030-03-02"]
    assert len(march) == 1
    assert other == []


def test_accept_decline_unsure(client, club):
    event = create(client, club)
    headers = auth_headers(club.anna)

    accepted = client.post(f"/api/v1/events/{event['id']}/accept", headers=headers)
    no_reason = client.post(f"/api/v1/events/{event['id']}/decline", json={"reason": " "}, headers=headers)
    unsure = client.post(f"/api/v1/events/{event['id']}/unsure", json={"reason": "Arbeit"}, headers=headers)

    assert accepted.json()["status"] == "attending"
    assert no_reason.status_code == 400
    assert no_reason.json()["message"] == "A reason is required"
    body = unsure.json()
    assert body["status"] == "unsure"
    assert body["attendingPlayers"] == []
    assert body["playerResponses"][0]["reason"] == "Arbeit"


def test_response_after_deadline_conflicts(client, club):
    event = create(client, club, votingDeadline="2020-01-01T00:00:00Z")

    response = client.post(f"/api/v1/events/{event['id']}/accept", headers=auth_headers(club.anna))

    assert response.status_code == 409


def test_deadline_after_start_is_accepted(client, club):
    event = create(client, club, votingDeadline="2030-01-07T19:00:00Z")

    assert event["votingDeadline"].startswith("2030-01-07T19:00:00")


def test_outsider_cannot_respond(client, club):
    event = create(client, club)

    response = client.post(f"/api/v1/events/{event['id']}/accept", headers=auth_headers(club.dora))

    assert response.status_code == 403


def test_guest_and_invitation_management(client, club):
    event = create(client, club)
    coach = auth_headers(club.coach)
    base = f"/api/v1/events/{event['id']}"

    guest = client.post(f"{base}/guests", json={"playerId": club.dora.id, "fromTeamId": club.other_team.id},
                        headers=coach)
    duplicate = client.post(f"{base}/guests", json={"playerId": club.anna.id, "fromTeamId": club.team.id},
                            headers=coach)
    uninvited = client.delete(f"{base}/invitedPlayers/{club.bea.id}", headers=coach)
    status_of_bea = client.get(base, headers=auth_headers(club.bea)).json()["status"]
    reinvited = client.post(f"{base}/invitedPlayers", json={"playerId": club.bea.id}, headers=coach)
    removed = client.delete(f"{base}/guests/{club.dora.id}", headers=coach)

    assert guest.json()["guestPlayers"][0]["fromTeam"] == club.other_team.id
    assert duplicate.status_code == 400
    assert [p["id"] for p in uninvited.json()["uninvitedPlayers"]] == [club.bea.id]
    assert status_of_bea == "uninvited"
    assert club.bea.id in [p["id"] for p in reinvited.json()["invitedPlayers"]]
    assert removed.json()["guestPlayers"] == []


def test_can_edit(client, club):
    event = create(client, club)
    path = f"/api/v1/events/{event['id']}/can-edit"

    assert client.get(path, headers=auth_headers(club.coach)).json() == {"canEdit": True}
    assert client.get(path, headers=auth_headers(club.coach2)).json() == {"canEdit": False}
    assert client.get(path, headers=auth_headers(club.anna)).json() == {"canEdit": False}


def test_update_and_delete_series(client, club):
    response = client.post(
        "/api/v1/events",
        json=payload(club, isRecurring=True, recurringPattern="weekly", recurringEndDate="2030-01-21T00:00:00Z"),
        headers=auth_headers(club.coach),
    )
    series = response.json()["events"]
    coach = auth_headers(club.coach)

    cascade = client.put(
        f"/api/v1/events/{series[1]['id']}",
        json={"location": "Halle Süd", "updateRecurring": True},
        headers=coach,
    )
    deleted = client.delete(f"/api/v1/events/{series[0]['id']}", params={"deleteRecurring": "true"},
                            headers=coach)
    missing = client.get(f"/api/v1/events/{series[0]['id']}", headers=coach)

    assert cascade.status_code == 200
    assert {e["location"] for e in cascade.json()["events"]} == {"Halle Süd"}
    assert len(deleted.json()["deleted"]) == 3
    assert missing.status_code == 404
    assert missing.json()["message"].startswith("Event")


def test_teams(client, club):
    headers = auth_headers(club.anna)

    teams = client.get("/api/v1/teams", headers=headers).json()
    team = client.get(f"/api/v1/teams/{club.team.id}", headers=headers).json()
    created = client.post("/api/v1/teams", json={"name": "Mixed", "players": [club.anna.id]},
                          headers=auth_headers(club.coach))

    assert sorted(t["name"] for t in teams) == ["Damen 1", "Damen 2"]
    assert team["players"] == [club.anna.id, club.bea.id, club.carla.id]
    assert created.status_code == 201
    assert created.json()["coaches"] == [club.coach.id]
