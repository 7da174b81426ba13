"""Shared fixtures for jiratrack tests."""

import tempfile
import time
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from jiratrack.clock import ManualClock
from jiratrack.exceptions import RemoteCallError
from jiratrack.jira.models import JiraIssue, JiraUser, RemoteWorklog
from jiratrack.store import JsonWorklogStore, TimerStateStore

T0 = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def _use_timezone(monkeypatch, tz: str) -> None:
    monkeypatch.setenv("TZ", tz)
    time.tzset()


@pytest.fixture(autouse=True)
def local_timezone(monkeypatch):
    """Pin the local zone to UTC so calendar days are stable across machines."""
    if not hasattr(time, "tzset"):
        yield
        return
    _use_timezone(monkeypatch, "UTC0")
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.fixture
def new_york_time(monkeypatch, local_timezone):
    """Switch the local zone to a fixed UTC-5."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available")
    _use_timezone(monkeypatch, "EST+05")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T0)


@pytest.fixture
def store(temp_dir: Path, clock: ManualClock) -> JsonWorklogStore:
    """Create an initialized ledger for testing."""
    store = JsonWorklogStore(temp_dir, clock=clock)
    store.initialize()
    return store


@pytest.fixture
def state_store(temp_dir: Path, store: JsonWorklogStore) -> TimerStateStore:
    return TimerStateStore(temp_dir)


class RecordingSink:
    """Notification sink that remembers everything it was sent."""

    def __init__(self):
        self.texts: list[str] = []
        self.indicators: list = []

    def set_display_text(self, text: str) -> None:
        self.texts.append(text)

    def set_indicator_state(self, state) -> None:
        self.indicators.append(state)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


class FakeJiraClient:
    """In-memory stand-in for JiraClient."""

    def __init__(self):
        self.remote: dict[str, dict] = {}
        self.fail_for: dict[str, str] = {}  # issue key -> error message
        self.fail_updates: str | None = None
        self.fail_deletes: str | None = None
        self.day_worklogs: dict[date, list[RemoteWorklog]] = {}
        self.calls: list[tuple] = []
        self._next_id = 10000

    async def test_connection(self) -> JiraUser:
        return JiraUser(account_id="acc-1", display_name="Test User")

    async def search(self, jql: str, max_results: int = 50) -> list[JiraIssue]:
        return []

    async def create_worklog(self, issue_key, started_at, duration_seconds, description=""):
        self.calls.append(("create", issue_key, duration_seconds))
        if issue_key in self.fail_for:
            raise RemoteCallError(self.fail_for[issue_key])
        self._next_id += 1
        remote_id = str(self._next_id)
        self.remote[remote_id] = {
            "issue_key": issue_key,
            "started_at": started_at,
            "duration_seconds": duration_seconds,
            "description": description,
        }
        return remote_id

    async def update_worklog(
        self, issue_key, remote_id, duration_seconds=None, description=None, started_at=None
    ):
        self.calls.append(("update", issue_key, remote_id))
        if self.fail_updates:
            raise RemoteCallError(self.fail_updates)
        entry = self.remote[remote_id]
        if duration_seconds is not None:
            entry["duration_seconds"] = duration_seconds
        if description is not None:
            entry["description"] = description
        if started_at is not None:
            entry["started_at"] = started_at

    async def delete_worklog(self, issue_key, remote_id):
        self.calls.append(("delete", issue_key, remote_id))
        if self.fail_deletes:
            raise RemoteCallError(self.fail_deletes)
        del self.remote[remote_id]

    async def get_worklogs_for_date(self, day: date) -> list[RemoteWorklog]:
        self.calls.append(("import", day))
        return list(self.day_worklogs.get(day, []))


@pytest.fixture
def jira() -> FakeJiraClient:
    return FakeJiraClient()
