"""Shared pydantic models — the contract between the tracker, the engine and the webhook."""

from typing import Literal

from pydantic import AwareDatetime, BaseModel, ConfigDict, field_validator

from jelease.errors import TrackerError


class ReleaseEvent(BaseModel):
    """newreleases.io webhook body. Fields beyond these three are ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    provider: str = ""  # informational only, e.g. "github" or "pypi"
    project: str  # dedup key and label
    version: str  # display only

    @field_validator("project", "version")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class IssueContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str
    description: str
    labels: list[str] = []
    issue_type: str
    status: str
    project_key: str
    custom_fields: dict[str, str] = {}  # customfield_<id> -> project name


class ExistingIssue(BaseModel):
    """An issue returned by a tracker search. Owned by the tracker, read-only here."""

    model_config = ConfigDict(frozen=True)

    id: str
    key: str  # PROJ-123
    created_at: AwareDatetime
    summary: str


class IssueRef(BaseModel):
    """Returned by create_issue — minimal, just what the caller needs."""

    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    url: str | None = None


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    name: str


class Status(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


# ---------------------------------------------------------------------------
# Reconciliation outcomes
# ---------------------------------------------------------------------------


class Created(BaseModel):
    model_config = ConfigDict(frozen=True)

    issue: IssueRef | None  # None in dry-run: nothing was created
    content: IssueContent
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return True


class Updated(BaseModel):
    model_config = ConfigDict(frozen=True)

    issue: IssueRef
    old_summary: str
    new_summary: str
    duplicates: list[str] = []  # keys of matching issues left untouched
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return True


class Failed(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    stage: Literal["query", "create", "update"]
    error: TrackerError

    @property
    def ok(self) -> bool:
        return False


Outcome = Created | Updated | Failed
