"""
Error taxonomy shared by the attendance engine, the backend and the
client‑side store.

Services raise these exceptions; the API layer maps them to HTTP status
codes through their ``status_code`` attribute and the store returns
them as the second element of its ``(result, error)`` pairs.
``ValidationError`` also derives from ``ValueError`` so that it can be
raised from pydantic validators.
"""

from typing import Optional


class PlannerError(Exception):
    """Base class for all expected failures.

    Attributes:
        message: Human readable text shown to the user.
        status_code: HTTP status associated with the failure, if any.
    """

    status_code: Optional[int] = None

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(PlannerError, ValueError):
    """Invalid input detected before anything is persisted or sent."""

    status_code = 400


class DeadlinePassed(PlannerError):
    """A response was attempted after the event's voting deadline."""

    status_code = 409


class AuthorizationError(PlannerError):
    """The acting user may not perform the operation."""

    status_code = 403


class NotFoundError(PlannerError):
    """The referenced event, team or user does not exist."""

    status_code = 404


class NetworkError(PlannerError):
    """The HTTP request never produced a response."""


class ServerError(PlannerError):
    """The backend answered with a non‑success status."""

    status_code = 500


def error_from_response(status_code: Optional[int], message: str) -> PlannerError:
    """Map an HTTP failure reported by the client onto the taxonomy.

    ``status_code`` is ``None`` when no response was received at all.
    """
    if status_code is None:
        return NetworkError(message)
    mapping = {
        400: ValidationError,
        422: ValidationError,
        401: AuthorizationError,
        403: AuthorizationError,
        404: NotFoundError,
        409: DeadlinePassed,
    }
    error_cls = mapping.get(status_code)
    if error_cls is None:
        return ServerError(message, status_code=status_code)
    return error_cls(message, status_code=status_code)
