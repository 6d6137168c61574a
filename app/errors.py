"""Error taxonomy shared by services, the auth dependency and controllers.

Every error carries the HTTP status it maps to so a single exception
handler in `app.main` can render all of them the same way.
"""

from fastapi import status


class StudyPlannerError(Exception):
    """Base exception for service layer errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(StudyPlannerError):
    """A required field is missing, blank or malformed."""

    status_code = 422


class AuthorizationError(StudyPlannerError):
    """The caller is unauthenticated or presented bad credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(StudyPlannerError):
    """The record does not exist or is not owned by the caller."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(StudyPlannerError):
    status_code = status.HTTP_409_CONFLICT
