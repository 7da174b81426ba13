"""JSON-based worklog ledger."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from ..clock import Clock, SystemClock
from ..exceptions import NotFoundError, TrackerError
from ..models import (
    Failed,
    Pending,
    Synced,
    TrackerConfig,
    Worklog,
    WorklogFilter,
)
from ._json import DATA_DIR_NAME, read_json, write_json

logger = logging.getLogger(__name__)


class DuplicateRemoteWorklogError(TrackerError):
    """A worklog with the same Jira worklog id is already in the ledger."""

    pass


class JsonWorklogStore:
    """Worklog ledger using JSON files in the .jiratrack/ directory.

    The ledger is plain storage: editing a worklog never changes its sync
    state. Moving worklogs to and from Jira is the syncer's job.
    """

    def __init__(self, root_path: str | Path | None = None, clock: Clock | None = None):
        """Initialize the store.

        Args:
            root_path: Directory containing .jiratrack/. Defaults to the home directory.
            clock: Time source for created/updated stamps.
        """
        self.root = Path(root_path) if root_path else Path.home()
        self.data_dir = self.root / DATA_DIR_NAME
        self.worklogs_file = self.data_dir / "worklogs.json"
        self.config_file = self.data_dir / "config.json"
        self.clock = clock or SystemClock()

    def ensure_initialized(self) -> None:
        """Ensure the .jiratrack directory exists."""
        if not self.data_dir.exists():
            raise FileNotFoundError(
                f"jiratrack not initialized. Run 'jiratrack init' in {self.root}"
            )

    def initialize(self) -> None:
        """Create the .jiratrack directory with default files."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        if not self.config_file.exists():
            write_json(self.config_file, TrackerConfig().to_dict())

        if not self.worklogs_file.exists():
            write_json(
                self.worklogs_file, {"version": "0.1", "next_id": 1, "worklogs": []}
            )

    def _load_data(self) -> dict[str, Any]:
        self.ensure_initialized()
        return read_json(self.worklogs_file)

    def _save_data(self, data: dict[str, Any]) -> None:
        write_json(self.worklogs_file, data)

    @staticmethod
    def _find_index(data: dict[str, Any], worklog_id: int) -> int:
        for i, row in enumerate(data.get("worklogs", [])):
            if row["id"] == worklog_id:
                return i
        raise NotFoundError(worklog_id)

    def _insert(self, data: dict[str, Any], worklog: Worklog) -> Worklog:
        data["worklogs"].append(worklog.to_dict())
        data["next_id"] = worklog.id + 1
        self._save_data(data)
        return worklog

    @staticmethod
    def _next_id(data: dict[str, Any]) -> int:
        # Ids are never reused, even after deletes
        highest = max((row["id"] for row in data.get("worklogs", [])), default=0)
        return max(int(data.get("next_id", 1)), highest + 1)

    # --- Worklogs ---

    def list_worklogs(self, filter: WorklogFilter | None = None) -> list[Worklog]:
        """List worklogs in creation order, optionally filtered."""
        data = self._load_data()
        worklogs = [Worklog.from_dict(row) for row in data.get("worklogs", [])]

        if filter is not None:
            worklogs = [w for w in worklogs if filter.matches(w)]

        return worklogs

    def get_worklog(self, worklog_id: int) -> Worklog:
        """Get a worklog by id. Raises NotFoundError if unknown."""
        data = self._load_data()
        return Worklog.from_dict(data["worklogs"][self._find_index(data, worklog_id)])

    def find_by_remote_id(self, remote_id: str) -> Worklog | None:
        """Find the worklog mirrored in Jira under ``remote_id``."""
        for row in self._load_data().get("worklogs", []):
            if row.get("remote_worklog_id") == remote_id:
                return Worklog.from_dict(row)
        return None

    def create_worklog(
        self,
        issue_key: str,
        started_at: datetime,
        duration_seconds: int,
        description: str = "",
    ) -> Worklog:
        """Create a new pending worklog."""
        _validate(issue_key, duration_seconds)
        data = self._load_data()
        now = self.clock.now()

        worklog = Worklog(
            id=self._next_id(data),
            issue_key=issue_key,
            started_at=started_at,
            duration_seconds=int(duration_seconds),
            description=description or "",
            created_at=now,
            updated_at=now,
            sync=Pending(),
        )
        self._insert(data, worklog)
        logger.info(
            "Created worklog %s for %s (%ss)", worklog.id, issue_key, duration_seconds
        )
        return worklog

    def insert_synced(
        self,
        remote_id: str,
        issue_key: str,
        started_at: datetime,
        duration_seconds: int,
        description: str = "",
    ) -> Worklog:
        """Insert a worklog that already exists in Jira."""
        _validate(issue_key, duration_seconds)
        data = self._load_data()
        if any(row.get("remote_worklog_id") == remote_id for row in data["worklogs"]):
            raise DuplicateRemoteWorklogError(
                f"Jira worklog {remote_id} is already in the ledger"
            )
        now = self.clock.now()

        worklog = Worklog(
            id=self._next_id(data),
            issue_key=issue_key,
            started_at=started_at,
            duration_seconds=int(duration_seconds),
            description=description or "",
            created_at=now,
            updated_at=now,
            sync=Synced(remote_id),
        )
        return self._insert(data, worklog)

    def update_worklog(
        self,
        worklog_id: int,
        *,
        duration_seconds: int | None = None,
        description: str | None = None,
        started_at: datetime | None = None,
        issue_key: str | None = None,
    ) -> Worklog:
        """Apply a partial update. Sync state is left as it is."""
        data = self._load_data()
        index = self._find_index(data, worklog_id)
        row = data["worklogs"][index]

        updates: dict[str, Any] = {}
        if duration_seconds is not None:
            if duration_seconds < 0:
                raise ValueError("duration_seconds must be >= 0")
            updates["duration_seconds"] = int(duration_seconds)
        if description is not None:
            updates["description"] = description
        if started_at is not None:
            updates["started_at"] = started_at.isoformat()
        if issue_key is not None:
            if not issue_key:
                raise ValueError("issue_key must not be empty")
            updates["issue_key"] = issue_key

        if not updates:
            return Worklog.from_dict(row)

        row.update(updates)
        row["updated_at"] = self.clock.now().isoformat()
        data["worklogs"][index] = row
        self._save_data(data)
        return Worklog.from_dict(row)

    def delete_worklog(self, worklog_id: int) -> None:
        """Delete a worklog locally. Jira is not touched."""
        data = self._load_data()
        index = self._find_index(data, worklog_id)
        del data["worklogs"][index]
        self._save_data(data)
        logger.info("Deleted worklog %s", worklog_id)

    def mark_synced(self, worklog_id: int, remote_id: str) -> Worklog:
        """Record a successful push."""
        return self._set_sync(worklog_id, Synced(remote_id))

    def mark_failed(self, worklog_id: int, error: str) -> Worklog:
        """Record a failed push. Other fields are left untouched."""
        return self._set_sync(worklog_id, Failed(error))

    def _set_sync(self, worklog_id: int, sync: Synced | Failed) -> Worklog:
        data = self._load_data()
        index = self._find_index(data, worklog_id)
        worklog = Worklog.from_dict(data["worklogs"][index])
        worklog = worklog.with_sync(sync, self.clock.now())
        data["worklogs"][index] = worklog.to_dict()
        self._save_data(data)
        return worklog

    # --- Configuration and settings ---

    def get_config(self) -> TrackerConfig:
        """Load the configuration."""
        self.ensure_initialized()
        return TrackerConfig.from_dict(read_json(self.config_file))

    def save_config(self, config: TrackerConfig) -> None:
        """Save the configuration."""
        self.ensure_initialized()
        write_json(self.config_file, config.to_dict())

    def get_setting(self, key: str) -> str | None:
        """Read a free-form string setting."""
        return self.get_config().settings.get(key)

    def set_setting(self, key: str, value: str) -> None:
        """Write a free-form string setting."""
        config = self.get_config()
        config.settings[key] = value
        self.save_config(config)

    def get_settings(self) -> dict[str, str]:
        """All free-form settings."""
        return dict(self.get_config().settings)


def _validate(issue_key: str, duration_seconds: int) -> None:
    if not issue_key:
        raise ValueError("issue_key must not be empty")
    if duration_seconds < 0:
        raise ValueError("duration_seconds must be >= 0")
