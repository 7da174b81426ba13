"""Data store implementations."""

from .json_store import JsonWorklogStore, DuplicateRemoteWorklogError
from .session_store import TimerStateStore

__all__ = ["JsonWorklogStore", "DuplicateRemoteWorklogError", "TimerStateStore"]
