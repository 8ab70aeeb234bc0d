"""Jira REST API v2 tracker."""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

import httpx

from jelease.errors import TrackerError
from jelease.models import ExistingIssue, IssueContent, IssueRef, Project, Status
from jelease.settings import JeleaseSettings
from jelease.trackers.base import IssueTracker

API_PREFIX = "/rest/api/2"
PAGE_SIZE = 50


def _parse_jira_time(value: str) -> datetime:
    """Parse Jira's timestamp format: 2022-05-04T10:11:12.000+0200.

    Timestamps without an offset are taken as UTC, so results always compare.
    """
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%f%z")
    except ValueError:
        parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


class JiraTracker(IssueTracker):
    def __init__(self, settings: JeleaseSettings) -> None:
        self._base_url = f"{settings.jira_url}{API_PREFIX}"
        self._browse_url = f"{settings.jira_url}/browse"
        self._auth = (settings.jira_user, settings.jira_token.get_secret_value())
        self._verify = not settings.jira_skip_cert_verify

    def _request(self, method: str, path: str, body: dict | None = None) -> httpx.Response:
        try:
            response = httpx.request(
                method,
                f"{self._base_url}{path}",
                auth=self._auth,
                headers={"Accept": "application/json"},
                json=body,
                timeout=30,
                verify=self._verify,
            )
        except httpx.HTTPError as exc:
            raise TrackerError(f"Request to Jira failed: {method} {path}: {exc}") from exc

        if response.status_code == 401:
            raise TrackerError(
                "Jira API returned 401. Check JIRA_USER and JIRA_TOKEN.",
                status_code=401,
                response_body=response.text,
            )
        if response.is_error:
            raise TrackerError(
                f"Jira API returned {response.status_code} for {method} {path}",
                status_code=response.status_code,
                response_body=response.text,
            )
        return response

    def _json(self, response: httpx.Response) -> dict | list:
        try:
            return response.json()
        except ValueError as exc:
            raise TrackerError(
                "Jira returned a non-JSON response",
                status_code=response.status_code,
                response_body=response.text,
            ) from exc

    @contextmanager
    def _parsing(self, response: httpx.Response, what: str) -> Iterator[None]:
        # A 2xx body without the expected shape is still a tracker-side failure
        try:
            yield
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise TrackerError(
                f"Unexpected {what} in Jira response: {exc!r}",
                status_code=response.status_code,
                response_body=response.text,
            ) from exc

    def _issue_from_node(self, node: dict) -> ExistingIssue:
        fields = node.get("fields", {})
        return ExistingIssue(
            id=str(node["id"]),
            key=node["key"],
            created_at=_parse_jira_time(fields["created"]),
            summary=fields.get("summary", ""),
        )

    def search(self, query: str) -> list[ExistingIssue]:
        issues: list[ExistingIssue] = []
        start_at = 0
        while True:
            response = self._request(
                "POST",
                "/search",
                {"jql": query, "startAt": start_at, "maxResults": PAGE_SIZE, "fields": ["summary", "created"]},
            )
            data = self._json(response)
            with self._parsing(response, "issue"):
                nodes = data.get("issues", [])  # type: ignore[union-attr]
                issues.extend(self._issue_from_node(node) for node in nodes)
                total = data.get("total", 0)  # type: ignore[union-attr]
            start_at += len(nodes)
            if not nodes or start_at >= total:
                return issues

    def create_issue(self, content: IssueContent) -> IssueRef:
        fields: dict = {
            "project": {"key": content.project_key},
            "issuetype": {"name": content.issue_type},
            "status": {"name": content.status},
            "summary": content.summary,
            "description": content.description,
            "labels": content.labels,
        }
        fields.update(content.custom_fields)
        response = self._request("POST", "/issue", {"fields": fields})
        node = self._json(response)
        with self._parsing(response, "created issue"):
            return IssueRef(
                id=str(node["id"]),  # type: ignore[call-overload]
                key=node["key"],  # type: ignore[call-overload]
                url=f"{self._browse_url}/{node['key']}",  # type: ignore[call-overload]
            )

    def update_summary(self, issue_id: str, summary: str) -> None:
        # Jira answers 204 No Content on success
        self._request("PUT", f"/issue/{issue_id}", {"update": {"summary": [{"set": summary}]}})

    def list_projects(self) -> list[Project]:
        response = self._request("GET", "/project")
        nodes = self._json(response)
        with self._parsing(response, "project"):
            return [
                Project(id=str(n["id"]), key=n["key"], name=n.get("name", n["key"]))  # type: ignore[union-attr]
                for n in nodes
            ]

    def list_statuses(self) -> list[Status]:
        response = self._request("GET", "/status")
        nodes = self._json(response)
        with self._parsing(response, "status"):
            return [Status(id=str(n["id"]), name=n["name"]) for n in nodes]  # type: ignore[union-attr]
