"""Issue Renderer: turns a ReleaseEvent plus static settings into issue content."""

from jelease.models import IssueContent, ReleaseEvent
from jelease.settings import JeleaseSettings


def issue_summary(event: ReleaseEvent) -> str:
    return f"Update {event.project} to version {event.version}"


def _dedupe(labels: list[str]) -> list[str]:
    # Jira treats labels as a set; keep first-seen order for readable payloads
    return list(dict.fromkeys(labels))


def render_issue(event: ReleaseEvent, settings: JeleaseSettings) -> IssueContent:
    """Render the fields of a new update issue. Pure and total.

    The description template was validated when settings loaded, so rendering
    cannot fail per request.
    """
    custom_fields: dict[str, str] = {}
    if settings.project_custom_field is not None:
        custom_fields[f"customfield_{settings.project_custom_field}"] = event.project

    return IssueContent(
        summary=issue_summary(event),
        description=settings.description_template.render(event),
        labels=_dedupe([*settings.add_labels, event.project]),
        issue_type=settings.issue_type,
        status=settings.default_status,
        project_key=settings.project,
        custom_fields=custom_fields,
    )
