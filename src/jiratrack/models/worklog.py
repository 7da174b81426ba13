"""Worklog model for jiratrack."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any


class SyncStatus(Enum):
    """Sync status values of a worklog relative to Jira."""

    PENDING = "pending"
    SYNCED = "synced"
    ERROR = "error"


@dataclass(frozen=True)
class Pending:
    """Not yet pushed to Jira."""

    status = SyncStatus.PENDING


@dataclass(frozen=True)
class Synced:
    """Mirrored in Jira under ``remote_id``."""

    remote_id: str
    status = SyncStatus.SYNCED

    def __post_init__(self):
        if not self.remote_id:
            raise ValueError("Synced state requires a remote worklog id")


@dataclass(frozen=True)
class Failed:
    """Last push attempt failed with ``error``."""

    error: str
    status = SyncStatus.ERROR

    def __post_init__(self):
        if not self.error:
            raise ValueError("Failed state requires an error message")


SyncState = Pending | Synced | Failed


def sync_state_from_fields(
    status: str, remote_id: str | None, error: str | None
) -> SyncState:
    """Rebuild a SyncState from its flat stored columns."""
    sync_status = SyncStatus(status)
    if sync_status is SyncStatus.SYNCED:
        return Synced(remote_id or "")
    if sync_status is SyncStatus.ERROR:
        return Failed(error or "")
    return Pending()


@dataclass
class Worklog:
    """A completed record of time spent on one Jira issue."""

    id: int
    issue_key: str
    started_at: datetime
    duration_seconds: int
    description: str
    created_at: datetime
    updated_at: datetime
    sync: SyncState = field(default_factory=Pending)

    @property
    def sync_status(self) -> SyncStatus:
        return self.sync.status

    @property
    def remote_worklog_id(self) -> str | None:
        return self.sync.remote_id if isinstance(self.sync, Synced) else None

    @property
    def sync_error(self) -> str | None:
        return self.sync.error if isinstance(self.sync, Failed) else None

    def with_sync(self, sync: SyncState, updated_at: datetime) -> "Worklog":
        """Return a copy with a new sync state."""
        return replace(self, sync=sync, updated_at=updated_at)

    def to_dict(self) -> dict[str, Any]:
        """Convert worklog to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "issue_key": self.issue_key,
            "started_at": self.started_at.isoformat(),
            "duration_seconds": self.duration_seconds,
            "description": self.description,
            "sync_status": self.sync_status.value,
            "remote_worklog_id": self.remote_worklog_id,
            "sync_error": self.sync_error,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Worklog":
        """Create a Worklog from a dictionary."""
        return cls(
            id=int(data["id"]),
            issue_key=data["issue_key"],
            started_at=datetime.fromisoformat(data["started_at"]),
            duration_seconds=int(data["duration_seconds"]),
            description=data.get("description", ""),
            sync=sync_state_from_fields(
                data.get("sync_status", "pending"),
                data.get("remote_worklog_id"),
                data.get("sync_error"),
            ),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )

    def format_display(self) -> str:
        """Format worklog for display."""
        status_icons = {
            SyncStatus.PENDING: "[ ]",
            SyncStatus.SYNCED: "[x]",
            SyncStatus.ERROR: "[!]",
        }
        icon = status_icons[self.sync_status]
        start = self.started_at.astimezone().strftime("%Y-%m-%d %H:%M")
        result = (
            f"{icon} #{self.id} {self.issue_key} {start} "
            f"{format_duration_short(self.duration_seconds)}"
        )
        if self.description:
            result += f" - {self.description}"
        if self.sync_error:
            result += f"\n    Error: {self.sync_error}"
        return result


@dataclass
class WorklogFilter:
    """Conjunctive worklog filter. Unset fields match everything.

    Date bounds are inclusive and compare against the local calendar day the
    worklog started on.
    """

    issue_key: str | None = None
    sync_status: SyncStatus | None = None
    date_from: date | None = None
    date_to: date | None = None

    def matches(self, worklog: Worklog) -> bool:
        if self.issue_key is not None and worklog.issue_key != self.issue_key:
            return False
        if self.sync_status is not None and worklog.sync_status != self.sync_status:
            return False
        day = worklog.started_at.astimezone().date()
        if self.date_from is not None and day < self.date_from:
            return False
        if self.date_to is not None and day > self.date_to:
            return False
        return True


def format_duration(total_seconds: int) -> str:
    """Format seconds as zero-padded HH:MM:SS."""
    total_seconds = max(0, int(total_seconds))
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_duration_short(total_seconds: int) -> str:
    """Format seconds as e.g. ``1h 5m`` or ``12m``."""
    hours, rest = divmod(max(0, int(total_seconds)), 3600)
    minutes = rest // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
