"""Jira integration module for jiratrack."""

from .client import (
    JiraClient,
    JiraClientError,
    JiraAuthenticationError,
    JiraPermissionError,
    JiraNotFoundError,
    JiraConnectionError,
)
from .models import JiraIssue, JiraUser, RemoteWorklog

__all__ = [
    "JiraClient",
    "JiraClientError",
    "JiraAuthenticationError",
    "JiraPermissionError",
    "JiraNotFoundError",
    "JiraConnectionError",
    "JiraIssue",
    "JiraUser",
    "RemoteWorklog",
]
