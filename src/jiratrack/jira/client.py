"""Jira REST API client wrapper."""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any

import httpx

from ..exceptions import RemoteCallError
from .models import (
    JiraIssue,
    JiraUser,
    RemoteWorklog,
    format_jira_datetime,
    text_to_adf,
)

logger = logging.getLogger(__name__)

ISSUE_FIELDS = ["summary", "status", "issuetype", "project"]


class JiraClientError(RemoteCallError):
    """Base exception for Jira client errors."""

    pass


class JiraAuthenticationError(JiraClientError):
    """Authentication failed."""

    pass


class JiraPermissionError(JiraClientError):
    """The account is not allowed to perform the request."""

    pass


class JiraNotFoundError(JiraClientError):
    """Resource not found."""

    pass


class JiraConnectionError(JiraClientError):
    """The Jira server could not be reached."""

    pass


class JiraClient:
    """Async Jira REST API client using httpx."""

    def __init__(self, url: str, email: str, api_token: str, timeout: float = 30.0):
        """Initialize the client.

        Args:
            url: Jira instance URL (e.g., https://company.atlassian.net)
            email: User email for authentication
            api_token: Jira API token
            timeout: Per-request timeout in seconds
        """
        self.base_url = url.rstrip("/")
        self.auth = (email, api_token)
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._account_id: str | None = None

    async def __aenter__(self) -> "JiraClient":
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/rest/api/3",
            auth=self.auth,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, *args) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, endpoint: str, **kwargs) -> dict[str, Any]:
        """Make an API request with error handling."""
        if not self._client:
            raise JiraClientError("Client not initialized. Use async with context.")

        logger.debug("%s %s", method, endpoint)
        try:
            response = await self._client.request(method, endpoint, **kwargs)
        except httpx.TimeoutException as e:
            raise JiraConnectionError(
                f"Timeout: Server at {self.base_url} did not respond"
            ) from e
        except httpx.TransportError as e:
            raise JiraConnectionError(
                f"Connection error: Could not reach {self.base_url} - {e}"
            ) from e
        except httpx.HTTPError as e:
            raise JiraClientError(f"Request failed: {e}") from e

        status = response.status_code
        if status == 401:
            raise JiraAuthenticationError("Authentication failed (401)", status)
        elif status == 403:
            raise JiraPermissionError(
                "Access forbidden (403) - check API token permissions", status
            )
        elif status == 404:
            raise JiraNotFoundError(f"Not found: {endpoint}", status)
        elif status >= 400:
            raise JiraClientError(f"API error {status}: {response.text}", status)

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise JiraClientError(
                f"Invalid JSON in response to {endpoint} ({status})", status
            ) from e
        if not isinstance(data, dict):
            raise JiraClientError(f"Unexpected response to {endpoint} ({status})", status)
        return data

    async def test_connection(self) -> JiraUser:
        """Verify the credentials and return the authenticated user."""
        data = await self._request("GET", "/myself")
        user = JiraUser.from_api_response(data)
        self._account_id = user.account_id
        return user

    async def search(self, jql: str, max_results: int = 50) -> list[JiraIssue]:
        """Search issues with a JQL query.

        Args:
            jql: JQL query
            max_results: Maximum issues to return

        Returns:
            List of JiraIssue objects
        """
        data = await self._request(
            "POST",
            "/search/jql",
            json={"jql": jql, "fields": ISSUE_FIELDS, "maxResults": max_results},
        )
        return [JiraIssue.from_api_response(issue) for issue in data.get("issues", [])]

    async def create_worklog(
        self,
        issue_key: str,
        started_at: datetime,
        duration_seconds: int,
        description: str = "",
    ) -> str:
        """Add a worklog to an issue.

        Returns:
            The Jira worklog id
        """
        body: dict[str, Any] = {
            "timeSpentSeconds": duration_seconds,
            "started": format_jira_datetime(started_at),
        }
        if description:
            body["comment"] = text_to_adf(description)

        data = await self._request("POST", f"/issue/{issue_key}/worklog", json=body)
        if data.get("id") is None:
            raise JiraClientError(f"Jira returned no worklog id for {issue_key}")
        return str(data["id"])

    async def update_worklog(
        self,
        issue_key: str,
        remote_id: str,
        duration_seconds: int | None = None,
        description: str | None = None,
        started_at: datetime | None = None,
    ) -> None:
        """Update the given fields of an existing Jira worklog."""
        body: dict[str, Any] = {}
        if duration_seconds is not None:
            body["timeSpentSeconds"] = duration_seconds
        if started_at is not None:
            body["started"] = format_jira_datetime(started_at)
        if description is not None:
            body["comment"] = text_to_adf(description)

        await self._request("PUT", f"/issue/{issue_key}/worklog/{remote_id}", json=body)

    async def delete_worklog(self, issue_key: str, remote_id: str) -> None:
        """Delete a Jira worklog."""
        await self._request("DELETE", f"/issue/{issue_key}/worklog/{remote_id}")

    async def get_worklogs_for_date(self, day: date) -> list[RemoteWorklog]:
        """Fetch the current user's worklogs started on ``day`` (local time).

        Finds the issues the user logged work on that day, then collects the
        user's own worklogs from each of them.
        """
        if self._account_id is None:
            await self.test_connection()

        day_start = datetime.combine(day, time.min).astimezone()
        day_end = day_start + timedelta(days=1)
        jql = f'worklogAuthor = currentUser() AND worklogDate = "{day.isoformat()}"'
        issues = await self.search(jql, max_results=100)

        worklogs: list[RemoteWorklog] = []
        for issue in issues:
            for entry in await self._issue_worklogs(issue.key, day_start, day_end):
                worklog = RemoteWorklog.from_api_response(issue.key, entry)
                if worklog.author_account_id != self._account_id:
                    continue
                if worklog.started_at.astimezone().date() != day:
                    continue
                worklogs.append(worklog)

        logger.info("Found %d Jira worklogs for %s", len(worklogs), day.isoformat())
        return worklogs

    async def _issue_worklogs(
        self, issue_key: str, after: datetime, before: datetime
    ) -> list[dict[str, Any]]:
        """Page through an issue's worklogs in a time window."""
        entries: list[dict[str, Any]] = []
        start_at = 0
        while True:
            data = await self._request(
                "GET",
                f"/issue/{issue_key}/worklog",
                params={
                    "startAt": start_at,
                    "startedAfter": int(after.timestamp() * 1000),
                    "startedBefore": int(before.timestamp() * 1000),
                },
            )
            page = data.get("worklogs", [])
            entries.extend(page)
            start_at += len(page)
            if not page or start_at >= data.get("total", start_at):
                return entries
