"""
Worklog synchronization with Jira.

The ledger is the local source of truth until a worklog is pushed. After a
push the worklog is mirrored in Jira and edits or deletes go to Jira first,
then to the ledger, so the two never diverge after a user action.

Batch pushes fold one PushOutcome per worklog into a PushSummary. A failing
worklog is marked as an error in the ledger and the batch moves on.
"""

import logging
from datetime import date, datetime
from typing import Protocol

from .exceptions import NotFoundError, RemoteCallError
from .jira.models import JiraIssue, JiraUser, RemoteWorklog
from .models import (
    ImportSummary,
    PushOutcome,
    PushSummary,
    SyncStatus,
    Worklog,
    WorklogFilter,
)
from .store import DuplicateRemoteWorklogError, JsonWorklogStore

logger = logging.getLogger(__name__)


class IssueTrackingClient(Protocol):
    """What the syncer needs from the remote issue tracker.

    Implementations raise RemoteCallError (or a subclass) for every failure.
    """

    async def test_connection(self) -> JiraUser: ...

    async def search(self, jql: str, max_results: int = 50) -> list[JiraIssue]: ...

    async def create_worklog(
        self,
        issue_key: str,
        started_at: datetime,
        duration_seconds: int,
        description: str = "",
    ) -> str: ...

    async def update_worklog(
        self,
        issue_key: str,
        remote_id: str,
        duration_seconds: int | None = None,
        description: str | None = None,
        started_at: datetime | None = None,
    ) -> None: ...

    async def delete_worklog(self, issue_key: str, remote_id: str) -> None: ...

    async def get_worklogs_for_date(self, day: date) -> list[RemoteWorklog]: ...


class WorklogSyncer:
    """Moves worklogs between the local ledger and Jira."""

    def __init__(self, store: JsonWorklogStore, client: IssueTrackingClient):
        self.store = store
        self.client = client
        self.selected_ids: set[int] = set()

    # --- Selection ---

    def toggle_select(self, worklog_id: int) -> None:
        if worklog_id in self.selected_ids:
            self.selected_ids.discard(worklog_id)
        else:
            self.selected_ids.add(worklog_id)

    def select_all_pending(self) -> set[int]:
        pending = self.store.list_worklogs(WorklogFilter(sync_status=SyncStatus.PENDING))
        self.selected_ids = {w.id for w in pending}
        return set(self.selected_ids)

    def clear_selection(self) -> None:
        self.selected_ids = set()

    # --- Push ---

    async def push(self, worklog_id: int) -> PushOutcome:
        """Push one worklog to Jira.

        The push is attempted whatever the current sync status, so a failed
        or already synced worklog can be pushed again. The outcome is also
        recorded on the worklog row.
        """
        worklog = self.store.get_worklog(worklog_id)
        return await self._push_worklog(worklog)

    async def push_all(self, day: date | None = None) -> PushSummary:
        """Push every pending worklog, optionally only those started on ``day``."""
        pending = self.store.list_worklogs(
            WorklogFilter(sync_status=SyncStatus.PENDING, date_from=day, date_to=day)
        )
        try:
            outcomes = [await self._push_worklog(worklog) for worklog in pending]
        finally:
            self.clear_selection()
        return self._summarize(outcomes)

    async def push_selected(self, worklog_ids: list[int] | None = None) -> PushSummary:
        """Push the given worklogs, or the current selection.

        Unknown ids are reported as failures. The selection is cleared
        afterwards regardless of the outcome.
        """
        ids = sorted(self.selected_ids) if worklog_ids is None else list(worklog_ids)
        outcomes: list[PushOutcome] = []
        try:
            for worklog_id in ids:
                try:
                    worklog = self.store.get_worklog(worklog_id)
                except NotFoundError as e:
                    outcomes.append(PushOutcome.failure(worklog_id, str(e)))
                    continue
                outcomes.append(await self._push_worklog(worklog))
        finally:
            self.clear_selection()
        return self._summarize(outcomes)

    async def _push_worklog(self, worklog: Worklog) -> PushOutcome:
        try:
            remote_id = await self.client.create_worklog(
                worklog.issue_key,
                worklog.started_at,
                worklog.duration_seconds,
                worklog.description,
            )
        except RemoteCallError as e:
            self.store.mark_failed(worklog.id, str(e))
            logger.warning("Push of worklog %s failed: %s", worklog.id, e)
            return PushOutcome.failure(worklog.id, str(e))

        self.store.mark_synced(worklog.id, remote_id)
        logger.info("Pushed worklog %s as Jira worklog %s", worklog.id, remote_id)
        return PushOutcome.success(worklog.id, remote_id)

    @staticmethod
    def _summarize(outcomes: list[PushOutcome]) -> PushSummary:
        summary = PushSummary.from_outcomes(outcomes)
        logger.info(
            "Pushed %d worklogs: %d ok, %d failed",
            summary.total,
            summary.success,
            summary.failed,
        )
        return summary

    # --- Edits mirrored to Jira ---

    async def update_and_sync(
        self,
        worklog_id: int,
        *,
        duration_seconds: int | None = None,
        description: str | None = None,
        started_at: datetime | None = None,
    ) -> Worklog:
        """Edit a worklog in Jira, then apply the same edit locally.

        If Jira rejects the edit the error propagates and the local row is
        left as it was. Worklogs that were never pushed are only edited
        locally. With no fields given nothing is sent.
        """
        worklog = self.store.get_worklog(worklog_id)
        if duration_seconds is not None and duration_seconds < 0:
            raise ValueError("duration_seconds must be >= 0")
        if duration_seconds is None and description is None and started_at is None:
            return worklog

        if worklog.remote_worklog_id is not None:
            await self.client.update_worklog(
                worklog.issue_key,
                worklog.remote_worklog_id,
                duration_seconds=duration_seconds,
                description=description,
                started_at=started_at,
            )
            logger.info(
                "Updated Jira worklog %s for worklog %s",
                worklog.remote_worklog_id,
                worklog_id,
            )

        return self.store.update_worklog(
            worklog_id,
            duration_seconds=duration_seconds,
            description=description,
            started_at=started_at,
        )

    async def remove_from_jira(self, worklog_id: int) -> None:
        """Delete a worklog in Jira, then locally.

        The local row is kept if the Jira delete fails.
        """
        worklog = self.store.get_worklog(worklog_id)
        if worklog.remote_worklog_id is not None:
            await self.client.delete_worklog(worklog.issue_key, worklog.remote_worklog_id)
            logger.info("Deleted Jira worklog %s", worklog.remote_worklog_id)

        self.store.delete_worklog(worklog_id)
        self.selected_ids.discard(worklog_id)

    # --- Import ---

    async def import_worklogs(self, day: date) -> ImportSummary:
        """Copy the user's Jira worklogs for ``day`` into the ledger.

        Worklogs already in the ledger (same Jira worklog id) are skipped, so
        importing the same day again adds nothing.
        """
        remote = await self.client.get_worklogs_for_date(day)
        summary = ImportSummary(total=len(remote))

        for entry in remote:
            if self.store.find_by_remote_id(entry.remote_id) is not None:
                summary.skipped += 1
                continue
            try:
                self.store.insert_synced(
                    remote_id=entry.remote_id,
                    issue_key=entry.issue_key,
                    started_at=entry.started_at,
                    duration_seconds=entry.duration_seconds,
                    description=entry.description,
                )
            except (DuplicateRemoteWorklogError, ValueError) as e:
                summary.failed += 1
                summary.errors.append(f"{entry.issue_key}: {e}")
            else:
                summary.success += 1

        logger.info(
            "Imported %d of %d Jira worklogs for %s (%d skipped, %d failed)",
            summary.success,
            summary.total,
            day.isoformat(),
            summary.skipped,
            summary.failed,
        )
        return summary
