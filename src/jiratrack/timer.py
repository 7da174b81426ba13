"""
Timer state machine.

Owns the single active timer session. Transitions are serialized behind one
asyncio lock and persisted through a TimerStateStore so a running timer
survives process restarts. Stopping a session writes a pending worklog to
the ledger.

While a session is running a background tick pushes the display text
("PROJ-1 00:12:34") to a notification sink once per tick interval. The tick
and the debounced description write are single-slot asyncio tasks; both are
cancelled or flushed on the transitions that end them.
"""

import asyncio
import logging
from datetime import timedelta
from enum import Enum
from typing import Protocol

from .clock import Clock, SystemClock
from .exceptions import InvalidStateError
from .models import StoppedWorklog, TimerSession, TrackerConfig, format_duration
from .store import JsonWorklogStore, TimerStateStore

logger = logging.getLogger(__name__)

PAUSE_MARKER = " ⏸"


class TimerState(Enum):
    """States of the timer."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class IndicatorState(Enum):
    """Tray indicator states."""

    IDLE = "idle"
    WORKING = "working"
    PAUSED = "paused"


class NotificationSink(Protocol):
    """Receives display updates from the timer (e.g. a tray label)."""

    def set_display_text(self, text: str) -> None: ...

    def set_indicator_state(self, state: IndicatorState) -> None: ...


class NullSink:
    """Sink that discards all updates."""

    def set_display_text(self, text: str) -> None:
        pass

    def set_indicator_state(self, state: IndicatorState) -> None:
        pass


class TimerStateMachine:
    """The process-wide timer. Construct one per process (or per test)."""

    def __init__(
        self,
        ledger: JsonWorklogStore,
        state_store: TimerStateStore,
        sink: NotificationSink | None = None,
        clock: Clock | None = None,
        config: TrackerConfig | None = None,
    ):
        self.ledger = ledger
        self.state_store = state_store
        self.sink = sink or NullSink()
        self.clock = clock or SystemClock()
        self.config = config or TrackerConfig()
        self._session: TimerSession | None = None
        self._lock = asyncio.Lock()
        self._tick_task: asyncio.Task | None = None
        self._pending_write: asyncio.Task | None = None
        self._loaded = False

    @property
    def session(self) -> TimerSession | None:
        return self._session

    @property
    def state(self) -> TimerState:
        if self._session is None:
            return TimerState.IDLE
        return TimerState.PAUSED if self._session.is_paused else TimerState.RUNNING

    @property
    def is_ticking(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    @property
    def has_pending_write(self) -> bool:
        return self._pending_write is not None and not self._pending_write.done()

    def elapsed_seconds(self) -> int:
        if self._session is None:
            return 0
        return self._session.elapsed_seconds(self.clock.now())

    def display_text(self) -> str:
        """Current tray text, empty when idle."""
        if self._session is None:
            return ""
        text = f"{self._session.issue_key} {format_duration(self.elapsed_seconds())}"
        if self._session.is_paused:
            text += PAUSE_MARKER
        return text

    # --- Transitions ---

    async def restore(self) -> TimerSession | None:
        """Reload a session persisted by a previous process.

        Transitions adopt a persisted session on their own, so calling this
        first is only needed to resume ticking and refresh the sink.
        """
        async with self._lock:
            session = self._load_persisted()
            if session is None:
                self.sink.set_indicator_state(IndicatorState.IDLE)
            return session

    async def start(self, issue_key: str) -> StoppedWorklog | None:
        """Start timing ``issue_key``.

        An open session is always stopped first, so starting on a new issue
        closes the previous one. Returns the worklog produced by that
        implicit stop, if any.
        """
        if not issue_key:
            raise ValueError("issue_key must not be empty")

        async with self._lock:
            stopped = None
            if self._load_persisted() is not None:
                stopped = self._finish_session()

            self._session = TimerSession(issue_key=issue_key, started_at=self.clock.now())
            self.state_store.save(self._session)
            self._start_ticking()
            self.sink.set_indicator_state(IndicatorState.WORKING)
            self._emit_display()
            logger.info("Started timer for %s", issue_key)
            return stopped

    async def pause(self) -> TimerSession:
        async with self._lock:
            session = self._require_session("pause")
            if session.is_paused:
                raise InvalidStateError("pause", "Timer is already paused")

            now = self.clock.now()
            segment = max(0, int((now - session.started_at).total_seconds()))
            session.accumulated_seconds += segment
            session.is_paused = True
            session.paused_at = now
            self.state_store.save(session)

            self._stop_ticking()
            self.sink.set_indicator_state(IndicatorState.PAUSED)
            self._emit_display()
            logger.info(
                "Paused timer for %s at %ss", session.issue_key, session.accumulated_seconds
            )
            return session

    async def resume(self) -> TimerSession:
        async with self._lock:
            session = self._require_session("resume")
            if not session.is_paused:
                raise InvalidStateError("resume", "Timer is not paused")

            session.started_at = self.clock.now()
            session.is_paused = False
            session.paused_at = None
            self.state_store.save(session)

            self._start_ticking()
            self.sink.set_indicator_state(IndicatorState.WORKING)
            self._emit_display()
            logger.info("Resumed timer for %s", session.issue_key)
            return session

    async def stop(self) -> StoppedWorklog:
        """Close the session and record it as a pending worklog."""
        async with self._lock:
            return self._finish_session()

    async def update_description(self, text: str) -> None:
        """Change the session description. The write is debounced."""
        async with self._lock:
            session = self._require_session("update_description")
            session.description = text
            self._schedule_write()

    async def flush(self) -> None:
        """Write a pending debounced description now."""
        async with self._lock:
            self._flush_pending_write()

    async def shutdown(self) -> None:
        """Flush pending writes and stop the tick. The session stays persisted."""
        async with self._lock:
            self._flush_pending_write()
            self._stop_ticking()

    # --- Internals (caller holds the lock) ---

    def _load_persisted(self) -> TimerSession | None:
        """Adopt the persisted session once, before the first transition."""
        if self._loaded:
            return self._session
        self._loaded = True

        session = self.state_store.load()
        if session is None:
            return None

        self._session = session
        if session.is_paused:
            self.sink.set_indicator_state(IndicatorState.PAUSED)
        else:
            self.sink.set_indicator_state(IndicatorState.WORKING)
            self._start_ticking()
        self._emit_display()
        logger.info("Restored %s timer for %s", self.state.value, session.issue_key)
        return session

    def _require_session(self, transition: str) -> TimerSession:
        if self._load_persisted() is None:
            raise InvalidStateError(transition, "No active timer")
        return self._session

    def _finish_session(self) -> StoppedWorklog:
        session = self._require_session("stop")
        self._flush_pending_write()

        now = self.clock.now()
        duration = session.elapsed_seconds(now)
        if self.config.round_up_to_minute and duration > 0:
            duration = ((duration + 59) // 60) * 60

        worklog = self.ledger.create_worklog(
            issue_key=session.issue_key,
            started_at=now - timedelta(seconds=duration),
            duration_seconds=duration,
            description=session.description,
        )
        self._stop_ticking()
        self.state_store.clear()
        self._session = None

        self.sink.set_indicator_state(IndicatorState.IDLE)
        self._emit_display()
        logger.info(
            "Stopped timer for %s: worklog %s (%ss)",
            session.issue_key,
            worklog.id,
            duration,
        )
        return StoppedWorklog(
            id=worklog.id, issue_key=session.issue_key, duration_seconds=duration
        )

    def _emit_display(self) -> None:
        if self.config.show_timer_in_tray:
            self.sink.set_display_text(self.display_text())

    def _start_ticking(self) -> None:
        self._stop_ticking()
        self._tick_task = asyncio.get_running_loop().create_task(self._tick())

    def _stop_ticking(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.config.tick_interval_seconds)
            try:
                self._emit_display()
            except Exception:
                logger.exception("Notification sink failed")

    def _schedule_write(self) -> None:
        self._cancel_pending_write()
        self._pending_write = asyncio.get_running_loop().create_task(
            self._write_later(self.config.description_debounce_seconds)
        )

    async def _write_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._pending_write = None
        if self._session is None:
            return
        try:
            self.state_store.save(self._session)
        except Exception:
            logger.exception("Failed to save timer description")

    def _cancel_pending_write(self) -> bool:
        task = self._pending_write
        self._pending_write = None
        if task is not None and not task.done():
            task.cancel()
            return True
        return False

    def _flush_pending_write(self) -> None:
        if self._cancel_pending_write() and self._session is not None:
            self.state_store.save(self._session)
