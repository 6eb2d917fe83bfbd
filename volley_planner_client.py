"""Volley planner API client.

This module defines a thin client wrapper around the REST API served by
``volley_planner.app``.  The client uses the ``requests`` library
internally to make HTTP calls and never raises for HTTP failures:
every method returns a ``(data, error)`` tuple where ``error`` is
``None`` on success or a dictionary with the keys ``status_code`` and
``message``.  ``status_code`` is ``None`` when no response was received.

The client exposes high‑level methods for the operations required by the
event store:

* :meth:`list_events`, :meth:`get_event`, :meth:`create_event`,
  :meth:`update_event` and :meth:`delete_event` – event CRUD.
* :meth:`accept_event`, :meth:`decline_event` and :meth:`unsure_event` –
  attendance responses of the current user.
* :meth:`add_guest`, :meth:`remove_guest`, :meth:`invite_player` and
  :meth:`uninvite_player` – coach operations.
* :meth:`can_edit`, :meth:`list_teams`, :meth:`get_team`,
  :meth:`get_me` and :meth:`list_users` – lookups.

The base URL includes the API prefix, e.g. ``http://localhost:8000/api/v1``.
Authentication uses a bearer token sent in the ``Authorization``
header; initialise the client with ``api_key='<your token>'``.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

ApiError = Dict[str, Any]


def _format_time(value: Any) -> Any:
    """ISO format datetimes, including those nested in request bodies."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _format_time(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_format_time(v) for v in value]
    return value


class VolleyPlannerAPI:
    """Client for interacting with the volley planner API."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Base URL for the API including the version prefix.
            api_key: Optional bearer token.  If set, an ``Authorization``
                header with the value ``Bearer <api_key>`` will be
                included in all requests.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            timeout: Timeout in seconds for every request.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_env(cls, session: Optional[requests.Session] = None) -> "VolleyPlannerAPI":
        """Build a client from ``VOLLEY_PLANNER_*`` environment variables."""
        return cls(
            base_url=os.getenv("VOLLEY_PLANNER_BASE_URL", "http://localhost:8000/api/v1"),
            api_key=os.getenv("VOLLEY_PLANNER_API_KEY") or None,
            session=session,
            timeout=float(os.getenv("VOLLEY_PLANNER_TIMEOUT", "15")),
        )

    def _request(
        self, method: str, path: str, *, params: Dict[str, Any] | None = None,
        json_body: Any | None = None
    ) -> Tuple[Optional[Any], Optional[ApiError]]:
        """Perform an HTTP request to the API.

        Args:
            method: HTTP method (``GET``, ``POST``, ``PUT``, ``DELETE``).
            path: Path relative to :attr:`base_url` (e.g. ``/events``).
            params: Query parameters to include in the request.
            json_body: JSON body to send with the request (for POST/PUT).
        Returns:
            A tuple ``(data, error)``. ``data`` contains the parsed JSON
            response on success and ``error`` is ``None``. On failure,
            ``data`` is ``None`` and ``error`` is a dictionary with keys
            ``status_code`` and ``message`` describing the issue.
        """
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if params:
            params = {k: _format_time(v) for k, v in params.items() if v is not None}
        if json_body is not None:
            json_body = _format_time(json_body)
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params or None,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if response.content:
                return response.json(), None
            return None, None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                except ValueError:
                    message = exc.response.text
                else:
                    message = _error_message(err_json)
            if not message:
                message = str(exc)
            logger.error("API request failed (%s): %s", status, message)
            return None, {"status_code": status, "message": message}
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

    # ------------------------------------------------------------------
    # Event operations
    # ------------------------------------------------------------------
    def list_events(
        self,
        team_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[Dict[str, Any]], Optional[ApiError]]:
        """Return the events, optionally filtered by team and start range."""
        data, err = self._request(
            "GET",
            "/events",
            params={"teamId": team_id, "startDate": start_date, "endDate": end_date},
        )
        if err:
            return [], err
        return data or [], None

    def get_event(self, event_id: str) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request("GET", f"/events/{event_id}")

    def create_event(self, payload: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        """Create an event.

        A recurring create answers ``{message, mainEvent, events}``
        instead of a single event.
        """
        return self._request("POST", "/events", json_body=payload)

    def update_event(self, event_id: str, payload: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request("PUT", f"/events/{event_id}", json_body=payload)

    def delete_event(self, event_id: str, delete_recurring: bool = False) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request(
            "DELETE",
            f"/events/{event_id}",
            params={"deleteRecurring": "true" if delete_recurring else "false"},
        )

    def accept_event(self, event_id: str) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request("POST", f"/events/{event_id}/accept")

    def decline_event(self, event_id: str, reason: str) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request("POST", f"/events/{event_id}/decline", json_body={"reason": reason})

    def unsure_event(self, event_id: str, reason: str) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request("POST", f"/events/{event_id}/unsure", json_body={"reason": reason})

    def add_guest(self, event_id: str, player_id: str, from_team_id: str) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request(
            "POST",
            f"/events/{event_id}/guests",
            json_body={"playerId": player_id, "fromTeamId": from_team_id},
        )

    def remove_guest(self, event_id: str, player_id: str) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request("DELETE", f"/events/{event_id}/guests/{player_id}")

    def invite_player(self, event_id: str, player_id: str) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request("POST", f"/events/{event_id}/invitedPlayers", json_body={"playerId": player_id})

    def uninvite_player(self, event_id: str, player_id: str) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request("DELETE", f"/events/{event_id}/invitedPlayers/{player_id}")

    def can_edit(self, event_id: str) -> Tuple[bool, Optional[ApiError]]:
        """Ask the backend whether the current user may edit the event."""
        data, err = self._request("GET", f"/events/{event_id}/can-edit")
        if err:
            return False, err
        return bool((data or {}).get("canEdit")), None

    # ------------------------------------------------------------------
    # Teams and users
    # ------------------------------------------------------------------
    def list_teams(self) -> Tuple[List[Dict[str, Any]], Optional[ApiError]]:
        data, err = self._request("GET", "/teams")
        if err:
            return [], err
        return data or [], None

    def get_team(self, team_id: str) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request("GET", f"/teams/{team_id}")

    def create_team(self, payload: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request("POST", "/teams", json_body=payload)

    def get_me(self) -> Tuple[Optional[Dict[str, Any]], Optional[ApiError]]:
        return self._request("GET", "/users/me")

    def list_users(self) -> Tuple[List[Dict[str, Any]], Optional[ApiError]]:
        data, err = self._request("GET", "/users")
        if err:
            return [], err
        return data or [], None


def _error_message(body: Any) -> str:
    """Extract a readable message, preferring ``message`` over ``detail``."""
    if not isinstance(body, dict):
        return str(body)
    message = body.get("message") or body.get("detail")
    if isinstance(message, list):
        message = "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item)
                            for item in message)
    return str(message) if message else str(body)
