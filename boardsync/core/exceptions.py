"""
Exception hierarchy for the sync service.

External call failures are split into transient ones, which the retry
executor may attempt again, and unrecoverable ones, which abort at once.
"""

from typing import Optional


class BoardSyncError(Exception):
    """Base class for all sync service errors."""


class ExternalAPIError(BoardSyncError):
    """Exception for external API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        service: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.service = service


class TransientAPIError(ExternalAPIError):
    """Network failure or 5xx response; safe to retry."""


class UnrecoverableAPIError(ExternalAPIError):
    """Request could not be built, response could not be decoded, or non-5xx error status."""


class ResourceNotFoundError(UnrecoverableAPIError):
    """The remote resource does not exist (404)."""


class RetriesExhaustedError(UnrecoverableAPIError):
    """Every attempt failed with a transient error."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        status_code = getattr(last_error, "status_code", None)
        service = getattr(last_error, "service", None)
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error}",
            status_code=status_code,
            service=service,
        )
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class DueDateError(BoardSyncError):
    """Due date is missing or cannot be parsed."""


class TaskStoreError(BoardSyncError):
    """Reading or writing a task record failed."""


class SubscriptionError(BoardSyncError):
    """A webhook subscription could not be registered."""

    def __init__(self, message: str, board_id: Optional[str] = None):
        super().__init__(message)
        self.board_id = board_id


class WorkerPoolClosedError(BoardSyncError):
    """The worker pool no longer accepts work."""
