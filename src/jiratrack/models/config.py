"""Configuration model for jiratrack."""

from dataclasses import dataclass, field
from typing import Any

DEFAULT_JQL_FILTER = "assignee = currentUser() ORDER BY updated DESC"


@dataclass
class JiraConfig:
    """Jira connection configuration."""

    url: str | None = None
    email: str | None = None
    api_token: str | None = None

    def is_configured(self) -> bool:
        """Check if Jira is fully configured."""
        return all([self.url, self.email, self.api_token])

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for JSON serialization."""
        return {
            "url": self.url,
            "email": self.email,
            "api_token": self.api_token,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JiraConfig":
        """Create a JiraConfig from a dictionary."""
        return cls(
            url=data.get("url"),
            email=data.get("email"),
            api_token=data.get("api_token"),
        )


@dataclass
class TrackerConfig:
    """jiratrack configuration."""

    version: str = "0.1"
    jql_filter: str = DEFAULT_JQL_FILTER
    show_timer_in_tray: bool = True
    round_up_to_minute: bool = False
    description_debounce_seconds: float = 0.5
    tick_interval_seconds: float = 1.0
    jira: JiraConfig = field(default_factory=JiraConfig)
    settings: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for JSON serialization."""
        return {
            "version": self.version,
            "jql_filter": self.jql_filter,
            "show_timer_in_tray": self.show_timer_in_tray,
            "round_up_to_minute": self.round_up_to_minute,
            "description_debounce_seconds": self.description_debounce_seconds,
            "tick_interval_seconds": self.tick_interval_seconds,
            "jira": self.jira.to_dict(),
            "settings": dict(self.settings),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackerConfig":
        """Create a TrackerConfig from a dictionary."""
        jira_data = data.get("jira", {})
        return cls(
            version=data.get("version", "0.1"),
            jql_filter=data.get("jql_filter", DEFAULT_JQL_FILTER),
            show_timer_in_tray=data.get("show_timer_in_tray", True),
            round_up_to_minute=data.get("round_up_to_minute", False),
            description_debounce_seconds=float(
                data.get("description_debounce_seconds", 0.5)
            ),
            tick_interval_seconds=float(data.get("tick_interval_seconds", 1.0)),
            jira=JiraConfig.from_dict(jira_data) if jira_data else JiraConfig(),
            settings={str(k): str(v) for k, v in data.get("settings", {}).items()},
        )
