"""
Error taxonomy shared by the services.

Services raise these; the app turns them into the
``{"success": false, "error": ...}`` envelope with the class status code.
"""
from typing import List, Optional

from fastapi import status


class QuizroomError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class Unauthenticated(QuizroomError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(QuizroomError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(QuizroomError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidInput(QuizroomError):
    status_code = status.HTTP_400_BAD_REQUEST

    @classmethod
    def from_errors(cls, errors: List[str]) -> "InvalidInput":
        return cls(" ".join(errors), errors=errors)


class Conflict(QuizroomError):
    status_code = status.HTTP_409_CONFLICT


class InvalidState(Conflict):
    # already-submitted or expired session; the client contract reports these as 400
    status_code = status.HTTP_400_BAD_REQUEST


class Unavailable(QuizroomError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
