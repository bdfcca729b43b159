"""Error taxonomy shared by the services, the HTTP layer and the client controller.

Services raise these; ``taskboard.main`` maps them to HTTP responses and
``taskboard.client`` maps responses back to them.
"""
from typing import Dict, List, Optional


class TaskBoardError(Exception):
    status_code = 500
    retryable = False

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"detail": self.detail}


class NotAuthenticated(TaskBoardError):
    """Missing, invalid or expired token, as opposed to a membership denial."""

    status_code = 401


class AccessDenied(TaskBoardError):
    status_code = 403


class NotFound(TaskBoardError):
    status_code = 404


class ValidationError(TaskBoardError):
    """Malformed input. Carries one entry per violated field."""

    status_code = 422

    def __init__(self, errors: List[Dict[str, str]], detail: Optional[str] = None):
        fields = ", ".join(e["field"] for e in errors)
        super().__init__(detail or f"Invalid value for: {fields}")
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])

    def to_dict(self) -> dict:
        return {"detail": self.detail, "errors": self.errors}


class ConflictError(TaskBoardError):
    status_code = 409
    retryable = True

    def to_dict(self) -> dict:
        return {"detail": self.detail, "retryable": True}


class StorageFailure(TaskBoardError):
    status_code = 503
    retryable = True
