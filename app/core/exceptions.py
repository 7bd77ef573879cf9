"""
Domain errors for the leave workflow.

Services raise these; the handlers registered in app.main turn them into the
standard error envelope with the matching HTTP status.
"""

from typing import Any, Dict, List, Optional

from fastapi import status


class LeaveDeskError(Exception):
    """Base class for every business-rule failure."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be processed"
    headers: Optional[Dict[str, str]] = None

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return self.__class__.__name__


class Unauthenticated(LeaveDeskError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"
    headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(LeaveDeskError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized to perform this action"


class InvalidInput(LeaveDeskError):
    """Field validation failure. ``errors`` lists ``{field, message}`` pairs."""

    default_message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "InvalidInput":
        return cls(message, errors=[{"field": field, "message": message}])


class InvalidDateRange(LeaveDeskError):
    default_message = "End date must be after start date"


class PastDateRejected(LeaveDeskError):
    default_message = "Cannot apply for past dates"


class NotFound(LeaveDeskError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Leave not found"


class NoFacultyAvailable(LeaveDeskError):
    default_message = "No faculty found in your department"


class InvalidTransition(LeaveDeskError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Leave has already been decided"


class Conflict(LeaveDeskError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Leave was modified by another request, reload and try again"


class ServerFault(LeaveDeskError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"
