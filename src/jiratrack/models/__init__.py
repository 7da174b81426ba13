"""Data models for jiratrack."""

from .worklog import (
    Worklog,
    WorklogFilter,
    SyncStatus,
    SyncState,
    Pending,
    Synced,
    Failed,
    format_duration,
    format_duration_short,
)
from .session import TimerSession
from .summary import StoppedWorklog, PushOutcome, PushSummary, ImportSummary
from .config import TrackerConfig, JiraConfig, DEFAULT_JQL_FILTER

__all__ = [
    "Worklog",
    "WorklogFilter",
    "SyncStatus",
    "SyncState",
    "Pending",
    "Synced",
    "Failed",
    "format_duration",
    "format_duration_short",
    "TimerSession",
    "StoppedWorklog",
    "PushOutcome",
    "PushSummary",
    "ImportSummary",
    "TrackerConfig",
    "JiraConfig",
    "DEFAULT_JQL_FILTER",
]
