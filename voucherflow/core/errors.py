"""Error taxonomy shared by the workflow engine and the HTTP layer."""

from __future__ import annotations

from fastapi import status


class WorkflowError(Exception):
    """Base class for every failure surfaced to the acting user."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(WorkflowError):
    """A required field is missing or invalid."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class UnauthorizedError(WorkflowError):
    """The caller could not be authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(WorkflowError):
    """The actor's role does not authorize the requested action."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(WorkflowError):
    """The referenced record does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidTransitionError(WorkflowError):
    """The record's current status does not accept the requested action."""

    status_code = status.HTTP_409_CONFLICT


class ConflictError(WorkflowError):
    """A concurrent writer changed the record first."""

    status_code = status.HTTP_409_CONFLICT


class StorageError(WorkflowError):
    """An underlying store could not be reached. Callers own retries."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


__all__ = [
    "WorkflowError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "InvalidTransitionError",
    "ConflictError",
    "StorageError",
]
