"""Reconciliation engine: decide whether a release opens a new issue or updates an existing one.

The engine is synchronous and stateless. Jira is the only shared state, and the
query-then-act sequence is not transactional: two concurrent events for a project
without an issue can both create one. Such duplicates converge on the next event,
because the oldest matching issue is always the one that gets updated.
"""

import logging

from jelease.errors import TrackerCreateError, TrackerError, TrackerQueryError, TrackerUpdateError
from jelease.models import Created, ExistingIssue, Failed, IssueRef, Outcome, ReleaseEvent, Updated
from jelease.render import issue_summary, render_issue
from jelease.settings import JeleaseSettings
from jelease.trackers.base import IssueTracker

logger = logging.getLogger(__name__)


def _jql_quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_query(event: ReleaseEvent, settings: JeleaseSettings) -> str:
    """JQL matching open update issues for the event's project.

    Matches on the project custom field when one is configured, on labels otherwise.
    """
    status = f"status = {_jql_quote(settings.default_status)}"
    if settings.project_custom_field is not None:
        return f"{status} AND cf[{settings.project_custom_field}] = {_jql_quote(event.project)}"
    return f"{status} AND labels = {_jql_quote(event.project)}"


def select_canonical(issues: list[ExistingIssue]) -> tuple[ExistingIssue, list[ExistingIssue]]:
    """Return (oldest issue, remaining issues in result order).

    Ties on created_at keep the first one seen.
    """
    if not issues:
        raise ValueError("select_canonical needs at least one issue")
    canonical = min(issues, key=lambda issue: issue.created_at)  # min() is stable
    duplicates = [issue for issue in issues if issue is not canonical]
    return canonical, duplicates


def _log_tracker_error(action: str, err: TrackerError) -> None:
    logger.error(
        "Error response from Jira when %s: %s. Status: %s. Response body: %s",
        action,
        err,
        err.status_code if err.status_code is not None else "n/a",
        err.response_body if err.response_body is not None else "(none)",
    )


def _create(event: ReleaseEvent, tracker: IssueTracker, settings: JeleaseSettings) -> Outcome:
    content = render_issue(event, settings)
    if settings.dry_run:
        logger.info("Dry run: would create issue %r with labels %s", content.summary, content.labels)
        return Created(issue=None, content=content, dry_run=True)

    try:
        ref = tracker.create_issue(content)
    except TrackerError as exc:
        _log_tracker_error("creating issue", exc)
        return Failed(stage="create", error=TrackerCreateError.from_error(exc))

    logger.info("Created issue %s: %s", ref.key, content.summary)
    return Created(issue=ref, content=content)


def _update(
    event: ReleaseEvent,
    issues: list[ExistingIssue],
    tracker: IssueTracker,
    settings: JeleaseSettings,
) -> Outcome:
    canonical, duplicates = select_canonical(issues)
    duplicate_keys = [issue.key for issue in duplicates]
    if duplicate_keys:
        logger.warning(
            "Ignoring the following possible duplicate issues in favor of older issue %s: %s",
            canonical.key,
            ", ".join(duplicate_keys),
        )

    new_summary = issue_summary(event)
    ref = IssueRef(id=canonical.id, key=canonical.key)

    if settings.dry_run:
        logger.info(
            "Dry run: would update issue %s summary from %r to %r", canonical.key, canonical.summary, new_summary
        )
        return Updated(
            issue=ref,
            old_summary=canonical.summary,
            new_summary=new_summary,
            duplicates=duplicate_keys,
            dry_run=True,
        )

    # Unconditional: a matching summary still gets re-set, keeping the engine stateless.
    try:
        tracker.update_summary(canonical.id, new_summary)
    except TrackerError as exc:
        _log_tracker_error(f"updating issue {canonical.key}", exc)
        return Failed(stage="update", error=TrackerUpdateError.from_error(exc))

    logger.info("Updated issue %s summary from %r to %r", canonical.key, canonical.summary, new_summary)
    return Updated(issue=ref, old_summary=canonical.summary, new_summary=new_summary, duplicates=duplicate_keys)


def reconcile(event: ReleaseEvent, tracker: IssueTracker, settings: JeleaseSettings) -> Outcome:
    """Create an update issue for the release, or refresh the oldest matching one.

    Tracker errors are returned as Failed and never retried. A failed search aborts
    the whole reconciliation rather than falling back to creating a possible duplicate.
    """
    query = build_query(event, settings)
    logger.debug("Searching for existing issues: %s", query)
    try:
        issues = tracker.search(query)
    except TrackerError as exc:
        _log_tracker_error("searching previous issues", exc)
        return Failed(stage="query", error=TrackerQueryError.from_error(exc))

    if not issues:
        return _create(event, tracker, settings)
    return _update(event, issues, tracker, settings)
