"""Jira-specific data models."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

JIRA_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"


@dataclass
class JiraUser:
    """The account behind the configured API token."""

    account_id: str
    display_name: str
    email_address: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "JiraUser":
        return cls(
            account_id=data["accountId"],
            display_name=data.get("displayName", ""),
            email_address=data.get("emailAddress"),
        )


@dataclass
class JiraIssue:
    """Representation of a Jira issue."""

    key: str  # e.g., "PROJ-123"
    summary: str
    project_key: str
    status: str | None = None  # e.g., "In Progress", "Done"
    issue_type: str | None = None  # e.g., "Bug", "Story", "Task"

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "JiraIssue":
        """Create a JiraIssue from Jira API response."""
        fields = data.get("fields", {})
        return cls(
            key=data["key"],
            summary=fields.get("summary", ""),
            project_key=(fields.get("project") or {}).get("key", ""),
            status=(fields.get("status") or {}).get("name"),
            issue_type=(fields.get("issuetype") or {}).get("name"),
        )


@dataclass
class RemoteWorklog:
    """A worklog as stored in Jira."""

    remote_id: str
    issue_key: str
    started_at: datetime
    duration_seconds: int
    description: str
    author_account_id: str | None = None

    @classmethod
    def from_api_response(cls, issue_key: str, data: dict[str, Any]) -> "RemoteWorklog":
        """Create a RemoteWorklog from one entry of an issue's worklog list."""
        comment = data.get("comment")
        if isinstance(comment, dict):
            description = extract_adf_text(comment)
        else:
            description = comment or ""
        return cls(
            remote_id=str(data["id"]),
            issue_key=issue_key,
            started_at=parse_jira_datetime(data["started"]),
            duration_seconds=int(data.get("timeSpentSeconds", 0)),
            description=description,
            author_account_id=(data.get("author") or {}).get("accountId"),
        )


def format_jira_datetime(value: datetime) -> str:
    """Format a datetime the way Jira expects: 2021-01-17T12:34:00.000+0000."""
    if value.tzinfo is None:
        value = value.astimezone()
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}+0000"


def parse_jira_datetime(value: str) -> datetime:
    """Parse a Jira timestamp into an aware UTC datetime."""
    try:
        parsed = datetime.strptime(value, JIRA_DATETIME_FORMAT)
    except ValueError:
        parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def text_to_adf(text: str) -> dict[str, Any]:
    """Wrap plain text in a single-paragraph Atlassian Document Format doc."""
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {
                "type": "paragraph",
                "content": [{"type": "text", "text": text}],
            }
        ],
    }


def extract_adf_text(adf: dict[str, Any]) -> str:
    """Extract plain text from Atlassian Document Format."""
    paragraphs = []
    for block in adf.get("content", []) or []:
        texts = [
            node.get("text", "")
            for node in block.get("content", []) or []
            if node.get("type") == "text"
        ]
        if texts:
            paragraphs.append("".join(texts))
    return "\n".join(paragraphs)
