"""Tests for the worklog syncer."""

from datetime import date, datetime, timedelta, timezone

import httpx
import pytest
import respx

from jiratrack.exceptions import NotFoundError, RemoteCallError
from jiratrack.jira import JiraClient
from jiratrack.jira.models import RemoteWorklog
from jiratrack.models import SyncStatus, WorklogFilter
from jiratrack.sync import WorklogSyncer

DAY = date(2025, 3, 10)
STARTED = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def syncer(store, jira) -> WorklogSyncer:
    return WorklogSyncer(store, jira)


def remote_worklog(remote_id: str, issue_key: str = "PROJ-1") -> RemoteWorklog:
    return RemoteWorklog(
        remote_id=remote_id,
        issue_key=issue_key,
        started_at=STARTED,
        duration_seconds=1800,
        description="Imported",
        author_account_id="acc-1",
    )


class TestPush:
    """Tests for single and batch pushes."""

    @pytest.mark.asyncio
    async def test_push_success(self, syncer, store, jira):
        """A successful push marks the worklog synced with the Jira id."""
        worklog = store.create_worklog("PROJ-1", STARTED, 600, "Work")

        outcome = await syncer.push(worklog.id)

        assert outcome.ok
        synced = store.get_worklog(worklog.id)
        assert synced.sync_status == SyncStatus.SYNCED
        assert synced.remote_worklog_id == outcome.remote_id
        assert synced.sync_error is None
        assert jira.remote[outcome.remote_id]["duration_seconds"] == 600

    @pytest.mark.asyncio
    async def test_push_failure_keeps_fields(self, syncer, store, jira):
        """A failed push records the error and leaves the rest alone."""
        worklog = store.create_worklog("PROJ-1", STARTED, 600, "Work")
        jira.fail_for["PROJ-1"] = "Jira API error: 400"

        outcome = await syncer.push(worklog.id)

        assert not outcome.ok
        failed = store.get_worklog(worklog.id)
        assert failed.sync_status == SyncStatus.ERROR
        assert failed.sync_error == "Jira API error: 400"
        assert failed.remote_worklog_id is None
        assert failed.duration_seconds == 600
        assert failed.description == "Work"

    @pytest.mark.asyncio
    async def test_retry_after_error(self, syncer, store, jira):
        """An errored worklog syncs when pushed again."""
        worklog = store.create_worklog("PROJ-1", STARTED, 600)
        jira.fail_for["PROJ-1"] = "timeout"
        await syncer.push(worklog.id)

        del jira.fail_for["PROJ-1"]
        outcome = await syncer.push(worklog.id)

        assert outcome.ok
        retried = store.get_worklog(worklog.id)
        assert retried.sync_status == SyncStatus.SYNCED
        assert retried.sync_error is None

    @pytest.mark.asyncio
    async def test_repush_synced_is_attempted(self, syncer, store, jira):
        """Pushing a synced worklog calls Jira again."""
        worklog = store.create_worklog("PROJ-1", STARTED, 600)
        await syncer.push(worklog.id)
        await syncer.push(worklog.id)

        assert [c[0] for c in jira.calls] == ["create", "create"]
        assert store.get_worklog(worklog.id).sync_status == SyncStatus.SYNCED

    @pytest.mark.asyncio
    async def test_push_unknown_id(self, syncer):
        """Pushing an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await syncer.push(999)

    @pytest.mark.asyncio
    async def test_push_selected_partial_failure(self, syncer, store, jira):
        """One 403 in a batch of two: one synced, one error, both counted."""
        for i in range(6):
            store.create_worklog(f"FILL-{i}", STARTED, 60)
        ok = store.create_worklog("PROJ-7", STARTED, 600)
        bad = store.create_worklog("PROJ-8", STARTED, 600)
        assert (ok.id, bad.id) == (7, 8)
        jira.fail_for["PROJ-8"] = "403 Forbidden"

        summary = await syncer.push_selected([7, 8])

        assert summary.total == 2
        assert summary.success == 1
        assert summary.failed == 1
        assert summary.errors == ["403 Forbidden"]
        assert store.get_worklog(7).sync_status == SyncStatus.SYNCED
        assert store.get_worklog(8).sync_status == SyncStatus.ERROR
        assert store.get_worklog(8).sync_error == "403 Forbidden"

    @pytest.mark.asyncio
    async def test_push_selected_uses_and_clears_selection(self, syncer, store, jira):
        """The working selection is pushed and then cleared."""
        a = store.create_worklog("PROJ-1", STARTED, 60)
        b = store.create_worklog("PROJ-2", STARTED, 60)
        syncer.toggle_select(a.id)
        syncer.toggle_select(b.id)
        jira.fail_for["PROJ-2"] = "boom"

        summary = await syncer.push_selected()

        assert summary.total == 2
        assert syncer.selected_ids == set()

    @pytest.mark.asyncio
    async def test_push_selected_unknown_id_counts_as_failure(self, syncer, store):
        """Missing ids fail individually without stopping the batch."""
        worklog = store.create_worklog("PROJ-1", STARTED, 60)

        summary = await syncer.push_selected([999, worklog.id])

        assert summary.total == 2
        assert summary.success == 1
        assert summary.failed == 1
        assert "999" in summary.errors[0]

    @pytest.mark.asyncio
    async def test_push_all_only_pending_on_day(self, syncer, store, jira):
        """push_all pushes pending worklogs of the given day only."""
        today = store.create_worklog("PROJ-1", STARTED, 60)
        other_day = store.create_worklog("PROJ-2", STARTED - timedelta(days=1), 60)
        errored = store.create_worklog("PROJ-3", STARTED, 60)
        store.mark_failed(errored.id, "old failure")
        syncer.toggle_select(other_day.id)

        summary = await syncer.push_all(DAY)

        assert summary.total == 1
        assert summary.success == 1
        assert store.get_worklog(today.id).sync_status == SyncStatus.SYNCED
        assert store.get_worklog(other_day.id).sync_status == SyncStatus.PENDING
        assert store.get_worklog(errored.id).sync_status == SyncStatus.ERROR
        assert syncer.selected_ids == set()

    @pytest.mark.asyncio
    async def test_push_all_invariant(self, syncer, store, jira):
        """Every pending id ends up synced or errored, and counts add up."""
        ids = [store.create_worklog(f"PROJ-{i}", STARTED, 60).id for i in range(5)]
        jira.fail_for["PROJ-1"] = "nope"
        jira.fail_for["PROJ-3"] = "nope"

        summary = await syncer.push_all()

        assert summary.success + summary.failed == summary.total == 5
        assert summary.failed == 2
        for worklog_id in ids:
            worklog = store.get_worklog(worklog_id)
            if worklog.sync_status == SyncStatus.SYNCED:
                assert worklog.remote_worklog_id
            else:
                assert worklog.sync_status == SyncStatus.ERROR
                assert worklog.sync_error

    def test_select_all_pending(self, syncer, store):
        """Selecting all pending ignores synced and errored worklogs."""
        a = store.create_worklog("PROJ-1", STARTED, 60)
        b = store.create_worklog("PROJ-2", STARTED, 60)
        store.mark_synced(b.id, "555")

        assert syncer.select_all_pending() == {a.id}
        syncer.toggle_select(a.id)
        assert syncer.selected_ids == set()


class TestUpdateAndSync:
    """Tests for edits mirrored to Jira."""

    @pytest.mark.asyncio
    async def test_updates_remote_then_local(self, syncer, store, jira):
        """A synced worklog is edited in Jira and locally."""
        worklog = store.create_worklog("PROJ-1", STARTED, 600, "old")
        outcome = await syncer.push(worklog.id)

        updated = await syncer.update_and_sync(
            worklog.id, duration_seconds=900, description="new"
        )

        assert updated.duration_seconds == 900
        assert updated.description == "new"
        assert updated.sync_status == SyncStatus.SYNCED
        assert jira.remote[outcome.remote_id]["duration_seconds"] == 900
        assert jira.remote[outcome.remote_id]["description"] == "new"

    @pytest.mark.asyncio
    async def test_remote_failure_leaves_local_row(self, syncer, store, jira):
        """If Jira rejects the edit the local row is unchanged."""
        worklog = store.create_worklog("PROJ-1", STARTED, 600, "old")
        await syncer.push(worklog.id)
        before = store.get_worklog(worklog.id).to_dict()
        jira.fail_updates = "500 Internal Server Error"

        with pytest.raises(RemoteCallError):
            await syncer.update_and_sync(worklog.id, duration_seconds=1, description="x")

        assert store.get_worklog(worklog.id).to_dict() == before

    @pytest.mark.asyncio
    async def test_unsynced_worklog_is_edited_locally(self, syncer, store, jira):
        """Without a Jira copy there is nothing to update remotely."""
        worklog = store.create_worklog("PROJ-1", STARTED, 600)

        updated = await syncer.update_and_sync(worklog.id, description="local only")

        assert updated.description == "local only"
        assert jira.calls == []

    @pytest.mark.asyncio
    async def test_no_fields_sends_nothing(self, syncer, store, jira):
        """An empty edit does not reach Jira."""
        worklog = store.create_worklog("PROJ-1", STARTED, 600, "old")
        await syncer.push(worklog.id)
        jira.calls.clear()

        unchanged = await syncer.update_and_sync(worklog.id)

        assert unchanged == store.get_worklog(worklog.id)
        assert jira.calls == []


class TestRemoveFromJira:
    """Tests for remote deletes."""

    @pytest.mark.asyncio
    async def test_deletes_remote_then_local(self, syncer, store, jira):
        worklog = store.create_worklog("PROJ-1", STARTED, 600)
        outcome = await syncer.push(worklog.id)

        await syncer.remove_from_jira(worklog.id)

        assert outcome.remote_id not in jira.remote
        with pytest.raises(NotFoundError):
            store.get_worklog(worklog.id)

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_local(self, syncer, store, jira):
        """A failed Jira delete leaves the local worklog in place."""
        worklog = store.create_worklog("PROJ-1", STARTED, 600)
        await syncer.push(worklog.id)
        jira.fail_deletes = "403 Forbidden"

        with pytest.raises(RemoteCallError):
            await syncer.remove_from_jira(worklog.id)

        assert store.get_worklog(worklog.id).sync_status == SyncStatus.SYNCED


class TestImport:
    """Tests for importing Jira worklogs."""

    @pytest.mark.asyncio
    async def test_import_inserts_synced(self, syncer, store, jira):
        jira.day_worklogs[DAY] = [remote_worklog("501"), remote_worklog("502", "PROJ-2")]

        summary = await syncer.import_worklogs(DAY)

        assert summary.total == 2
        assert summary.success == 2
        worklogs = store.list_worklogs()
        assert [w.remote_worklog_id for w in worklogs] == ["501", "502"]
        assert all(w.sync_status == SyncStatus.SYNCED for w in worklogs)
        assert worklogs[0].description == "Imported"

    @pytest.mark.asyncio
    async def test_import_is_idempotent(self, syncer, store, jira):
        """Importing the same day twice adds nothing the second time."""
        jira.day_worklogs[DAY] = [remote_worklog("501"), remote_worklog("502")]

        await syncer.import_worklogs(DAY)
        second = await syncer.import_worklogs(DAY)

        assert second.success == 0
        assert second.skipped == 2
        assert len(store.list_worklogs()) == 2

    @pytest.mark.asyncio
    async def test_import_skips_pushed_worklogs(self, syncer, store, jira):
        """Worklogs pushed from here are not imported again."""
        worklog = store.create_worklog("PROJ-1", STARTED, 600)
        outcome = await syncer.push(worklog.id)
        jira.day_worklogs[DAY] = [remote_worklog(outcome.remote_id)]

        summary = await syncer.import_worklogs(DAY)

        assert summary.skipped == 1
        assert len(store.list_worklogs()) == 1

    @pytest.mark.asyncio
    async def test_import_counts_invalid_entries(self, syncer, store, jira):
        """A bad remote entry is counted as failed."""
        broken = remote_worklog("503")
        broken.duration_seconds = -5
        jira.day_worklogs[DAY] = [broken, remote_worklog("504")]

        summary = await syncer.import_worklogs(DAY)

        assert summary.success == 1
        assert summary.failed == 1
        assert summary.success + summary.skipped + summary.failed == summary.total

    @pytest.mark.asyncio
    async def test_imported_worklogs_found_by_local_day(
        self, syncer, store, jira, new_york_time
    ):
        """A worklog imported for a day is listed and pushed under that same day."""
        late_evening = RemoteWorklog(
            remote_id="601",
            issue_key="PROJ-1",
            started_at=datetime(2025, 3, 11, 1, 0, tzinfo=timezone.utc),
            duration_seconds=900,
            description="",
        )
        jira.day_worklogs[DAY] = [late_evening]

        await syncer.import_worklogs(DAY)

        on_day = store.list_worklogs(WorklogFilter(date_from=DAY, date_to=DAY))
        assert [w.remote_worklog_id for w in on_day] == ["601"]


BASE = "https://test.atlassian.net/rest/api/3"


class TestPushAgainstJira:
    """Batch pushes through the real client with mocked HTTP."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_malformed_responses_do_not_abort_batch(self, store):
        """Unreadable success responses fail their worklog and the batch goes on."""
        respx.post(f"{BASE}/issue/PROJ-1/worklog").mock(
            return_value=httpx.Response(201, text="<html>proxy</html>")
        )
        respx.post(f"{BASE}/issue/PROJ-2/worklog").mock(
            return_value=httpx.Response(201, json={"self": "no id here"})
        )
        respx.post(f"{BASE}/issue/PROJ-3/worklog").mock(
            return_value=httpx.Response(201, json={"id": "5"})
        )
        a = store.create_worklog("PROJ-1", STARTED, 600)
        b = store.create_worklog("PROJ-2", STARTED, 600)
        c = store.create_worklog("PROJ-3", STARTED, 600)

        async with JiraClient("https://test.atlassian.net", "user@test.com", "token") as client:
            summary = await WorklogSyncer(store, client).push_all()

        assert summary.total == 3
        assert summary.success == 1
        assert summary.failed == 2
        assert summary.success + summary.failed == summary.total

        assert store.get_worklog(a.id).sync_status == SyncStatus.ERROR
        assert "Invalid JSON" in store.get_worklog(a.id).sync_error
        assert store.get_worklog(b.id).sync_status == SyncStatus.ERROR
        assert "no worklog id" in store.get_worklog(b.id).sync_error
        assert store.get_worklog(c.id).remote_worklog_id == "5"
