"""
Error types shared by the hours evaluator, the remote source and the API.
"""
from __future__ import annotations

from fastapi import HTTPException

STATUS_BAD_GATEWAY = 502
STATUS_UNAUTHORIZED = 401

MSG_HOURS_UNAVAILABLE = "Unable to load hours. Please call us directly."


class HoursError(Exception):
    """Base class for errors raised by this service."""


class InvalidScheduleError(HoursError):
    """The schedule document is not a mapping (or lacks its `hours` field)."""


class NetworkError(HoursError):
    """The remote webhook could not be reached or answered with an error."""


class SaveFailedError(HoursError):
    """The admin save endpoint did not acknowledge the change set."""


def upstream_error_to_http(exc: HoursError) -> HTTPException:
    """Map a remote/backend failure into a 502 with the exception message."""
    return HTTPException(status_code=STATUS_BAD_GATEWAY, detail=str(exc) or exc.__class__.__name__)


class AuthError(HoursError):
    """Admin credentials or token were rejected."""
