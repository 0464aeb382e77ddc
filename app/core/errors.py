"""
Error taxonomy shared by every module.

Each error carries a stable `title` (the error kind clients branch on) and a
free-text `detail`. They are HTTPExceptions so FastAPI unwinds them the same
way as the framework's own errors; app.main renders them as
{"type": "about:blank", "title": ..., "detail": ...}.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from postgrest.exceptions import APIError

FOREIGN_KEY_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"


class ProblemError(HTTPException):
    title = "Error"
    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: Any = None, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or self.default_status, detail=detail)

    def to_problem(self) -> Dict[str, Any]:
        return problem_body(self.title, self.detail)


class Unauthenticated(ProblemError):
    title = "Unauthenticated"
    default_status = status.HTTP_401_UNAUTHORIZED


class Forbidden(ProblemError):
    title = "Forbidden"
    default_status = status.HTTP_403_FORBIDDEN


class ValidationError(ProblemError):
    title = "ValidationError"
    default_status = status.HTTP_400_BAD_REQUEST


class NotFound(ProblemError):
    title = "NotFound"
    default_status = status.HTTP_404_NOT_FOUND


class Conflict(ProblemError):
    title = "Conflict"
    default_status = status.HTTP_409_CONFLICT


class QueryFailed(ProblemError):
    title = "QueryFailed"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class InsertFailed(ProblemError):
    title = "InsertFailed"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class UpdateFailed(ProblemError):
    title = "UpdateFailed"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class DeleteFailed(ProblemError):
    title = "DeleteFailed"
    default_status = status.HTTP_409_CONFLICT


def problem_body(title: str, detail: Any = None) -> Dict[str, Any]:
    return {"type": "about:blank", "title": title, "detail": detail}


def store_error_message(exc: Exception) -> str:
    """Best readable message from a postgrest APIError or any other exception."""
    if isinstance(exc, APIError):
        return exc.message or str(exc)
    return str(exc)


def store_error_code(exc: Exception) -> Optional[str]:
    if isinstance(exc, APIError):
        return exc.code
    return None
