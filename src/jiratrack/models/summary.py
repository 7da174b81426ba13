"""Result values returned by timer and sync operations. Never persisted."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class StoppedWorklog:
    """Identity and duration of the worklog produced by stopping a timer."""

    id: int
    issue_key: str
    duration_seconds: int


@dataclass(frozen=True)
class PushOutcome:
    """Result of pushing a single worklog."""

    worklog_id: int
    ok: bool
    remote_id: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, worklog_id: int, remote_id: str) -> "PushOutcome":
        return cls(worklog_id=worklog_id, ok=True, remote_id=remote_id)

    @classmethod
    def failure(cls, worklog_id: int, error: str) -> "PushOutcome":
        return cls(worklog_id=worklog_id, ok=False, error=error)


@dataclass
class PushSummary:
    """Aggregate outcome of a batch push."""

    total: int = 0
    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: list[PushOutcome]) -> "PushSummary":
        summary = cls(total=len(outcomes))
        for outcome in outcomes:
            if outcome.ok:
                summary.success += 1
            else:
                summary.failed += 1
                summary.errors.append(outcome.error or "Unknown error")
        return summary


@dataclass
class ImportSummary:
    """Aggregate outcome of importing one day of Jira worklogs."""

    total: int = 0
    success: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
