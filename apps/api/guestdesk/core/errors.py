"""Domain exceptions shared by the service layer.

Routers translate these into HTTP responses; services never raise
HTTPException themselves.
"""

from fastapi import HTTPException


class GuestDeskError(Exception):
    """Base exception for service errors."""

    status_code = 500


class NotFoundError(GuestDeskError):
    """Referenced thread/approval/message/rule does not exist."""

    status_code = 404


class ConflictError(GuestDeskError):
    """Approval already decided, or a concurrent decision won the race."""

    status_code = 409


class ValidationError(GuestDeskError):
    """Request is well-formed but violates a domain rule."""

    status_code = 400


class UpstreamUnavailableError(GuestDeskError):
    """Classification provider failed or timed out.

    Recovered inside the classification gateway; never reaches a caller.
    """

    status_code = 503


def http_error(exc: GuestDeskError) -> HTTPException:
    """Translate a service error into the HTTPException a router raises."""
    return HTTPException(status_code=exc.status_code, detail=str(exc))
