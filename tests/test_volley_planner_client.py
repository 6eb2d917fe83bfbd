from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from volley_planner_client import VolleyPlannerAPI


def make_response(status_code=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.content = b"x" if body is not None else b""
    response.json.return_value = body
    response.text = text
    if status_code >= 400:
        error = requests.HTTPError(f"{status_code} Error", response=response)
        response.raise_for_status.side_effect = error
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def api(session):
    return VolleyPlannerAPI(base_url="http://planner.test/api/v1/", api_key="tok", session=session, timeout=7)


def test_list_events_sends_filters_and_token(api, session):
    session.request.return_value = make_response(body=[{"id": "e1"}])

    data, err = api.list_events(team_id="t1")

    assert err is None
    assert data == [{"id": "e1"}]
    session.request.assert_called_once_with(
        method="GET",
        url="http://planner.test/api/v1/events",
        params={"teamId": "t1"},
        json=None,
        headers={"Authorization": "Bearer tok"},
        timeout=7,
    )


def test_decline_posts_reason(api, session):
    session.request.return_value = make_response(body={"id": "e1"})

    api.decline_event("e1", "krank")

    kwargs = session.request.call_args.kwargs
    assert kwargs["method"] == "POST"
    assert kwargs["url"].endswith("/events/e1/decline")
    assert kwargs["json"] == {"reason": "krank"}


def test_delete_passes_recurring_flag(api, session):
    session.request.return_value = make_response(body={"message": "ok", "deleted": ["e1", "e2"]})

    data, err = api.delete_event("e1", delete_recurring=True)

    assert session.request.call_args.kwargs["params"] == {"deleteRecurring": "true"}
    assert data["deleted"] == ["e1", "e2"]


def test_http_error_prefers_message(api, session):
    session.request.return_value = make_response(409, {"message": "Voting deadline passed", "detail": "x"})

    data, err = api.accept_event("e1")

    assert data is None
    assert err == {"status_code": 409, "message": "Voting deadline passed"}


def test_http_error_falls_back_to_detail_list(api, session):
    session.request.return_value = make_response(422, {"detail": [{"msg": "field required"}]})

    _, err = api.create_event({})

    assert err == {"status_code": 422, "message": "field required"}


def test_network_failure_has_no_status(api, session):
    session.request.side_effect = requests.ConnectionError("connection refused")

    data, err = api.get_event("e1")

    assert data is None
    assert err["status_code"] is None
    assert "connection refused" in err["message"]


def test_can_edit_returns_flag(api, session):
    session.request.return_value = make_response(body={"canEdit": True})

    assert api.can_edit("e1") == (True, None)


def test_from_env(monkeypatch):
    monkeypatch.setenv("VOLLEY_PLANNER_BASE_URL", "http://example.test/api/v1")
    monkeypatch.setenv("VOLLEY_PLANNER_API_KEY", "secret")
    monkeypatch.setenv("VOLLEY_PLANNER_TIMEOUT", "3")

    api = VolleyPlannerAPI.from_env(session=MagicMock())

    assert api.base_url == "http://example.test/api/v1"
    assert api.api_key == "secret"
    assert api.timeout == 3.0


def test_datetimes_in_body_are_iso_formatted(api, session):
    session.request.return_value = make_response(body={"id": "e1"})
    start = datetime(2025, 1, 6, 18, tzinfo=timezone.utc)

    api.update_event("e1", {"startTime": start, "teams": ["t1"], "nested": [{"at": start}]})

    assert session.request.call_args.kwargs["json"] == {
        "startTime": "2025-01-06T18:00:00+00:00",
        "teams": ["t1"],
        "nested": [{"at": "2025-01-06T18:00:00+00:00"}],
    }


def test_list_users_returns_empty_list_on_error(api, session):
    session.request.return_value = make_response(401, {"detail": "Not authenticated"})

    data, err = api.list_users()

    assert data == []
    assert err == {"status_code": 401, "message": "Not authenticated"}
