"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class DaylitError(Exception):
    """Base exception for daylit."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(DaylitError):
    """Resource not found (absent or soft-deleted)."""

    pass


class ConflictError(DaylitError):
    """Write would overwrite an accepted plan revision."""

    pass


class AlreadyDeletedError(DaylitError):
    """Resource is already soft-deleted."""

    pass


class NotDeletedError(DaylitError):
    """Restore requested for a resource that is not deleted."""

    pass


class ValidationError(DaylitError):
    """Validation error."""

    pass


class SchedulingConflictError(DaylitError):
    """Fixed-time tasks overlap and cannot both be placed."""

    def __init__(self, message: str, task_ids: tuple[str, str]):
        super().__init__(message, details={"task_ids": list(task_ids)})
        self.task_ids = task_ids

