"""Timer session model for jiratrack."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class TimerSession:
    """The single in-progress timer."""

    issue_key: str
    started_at: datetime
    accumulated_seconds: int = 0
    is_paused: bool = False
    paused_at: datetime | None = None
    description: str = ""

    def elapsed_seconds(self, now: datetime) -> int:
        """Total work time in whole seconds, never negative."""
        if self.is_paused:
            return max(0, self.accumulated_seconds)
        running = int((now - self.started_at).total_seconds())
        return max(0, self.accumulated_seconds + running)

    def to_dict(self) -> dict[str, Any]:
        """Convert session to dictionary for JSON serialization."""
        return {
            "issue_key": self.issue_key,
            "started_at": self.started_at.isoformat(),
            "accumulated_seconds": self.accumulated_seconds,
            "is_paused": self.is_paused,
            "paused_at": self.paused_at.isoformat() if self.paused_at else None,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimerSession":
        """Create a TimerSession from a dictionary."""
        paused_at = data.get("paused_at")
        return cls(
            issue_key=data["issue_key"],
            started_at=datetime.fromisoformat(data["started_at"]),
            accumulated_seconds=int(data.get("accumulated_seconds", 0)),
            is_paused=bool(data.get("is_paused", False)),
            paused_at=datetime.fromisoformat(paused_at) if paused_at else None,
            description=data.get("description", ""),
        )
