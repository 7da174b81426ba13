"""
jiratrack - Exception Hierarchy

All jiratrack-specific exceptions inherit from TrackerError.
"""

from typing import Any


class TrackerError(Exception):
    """Base exception for all jiratrack errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(TrackerError):
    """Raised when configuration is invalid or missing."""

    pass


class InvalidStateError(TrackerError):
    """Raised when a timer transition is not allowed in the current state."""

    def __init__(self, transition: str, message: str):
        super().__init__(message)
        self.transition = transition


class NotFoundError(TrackerError):
    """Raised when an operation targets an unknown local worklog id."""

    def __init__(self, worklog_id: int):
        super().__init__(f"Worklog {worklog_id} not found")
        self.worklog_id = worklog_id


class RemoteCallError(TrackerError):
    """Raised when a call to the remote issue tracker fails.

    Covers network, authentication and remote validation failures. These are
    recorded per worklog by the syncer and can be retried by pushing again.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
