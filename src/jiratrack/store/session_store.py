"""Store for the single active timer session."""

from pathlib import Path

from ..models import TimerSession
from ._json import DATA_DIR_NAME, read_json, write_json


class TimerStateStore:
    """Persists the active timer so it survives process restarts."""

    def __init__(self, root_path: str | Path | None = None):
        """Initialize the timer state store.

        Args:
            root_path: Directory containing .jiratrack/. Defaults to the home directory.
        """
        self.root = Path(root_path) if root_path else Path.home()
        self.data_dir = self.root / DATA_DIR_NAME
        self.timer_file = self.data_dir / "active_timer.json"

    def ensure_initialized(self) -> None:
        """Ensure the .jiratrack directory exists."""
        if not self.data_dir.exists():
            raise FileNotFoundError(
                f"jiratrack not initialized. Run 'jiratrack init' in {self.root}"
            )

    def load(self) -> TimerSession | None:
        """Load the persisted session, if any."""
        self.ensure_initialized()
        data = read_json(self.timer_file, default={"session": None})
        session = data.get("session")
        return TimerSession.from_dict(session) if session else None

    def save(self, session: TimerSession) -> None:
        """Persist the session, replacing any previous one."""
        self.ensure_initialized()
        write_json(self.timer_file, {"session": session.to_dict()})

    def clear(self) -> None:
        """Remove the persisted session."""
        self.ensure_initialized()
        if self.timer_file.exists():
            self.timer_file.unlink()
