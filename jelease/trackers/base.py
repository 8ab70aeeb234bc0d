"""Abstract base class for issue trackers."""

from abc import ABC, abstractmethod

from jelease.models import ExistingIssue, IssueContent, IssueRef, Project, Status


class IssueTracker(ABC):
    """Query/create/update capability the reconciliation engine depends on.

    Implementations raise TrackerError for every transport or tracker-side failure
    and never retry on their own behalf unless documented.
    """

    @abstractmethod
    def search(self, query: str) -> list[ExistingIssue]: ...

    @abstractmethod
    def create_issue(self, content: IssueContent) -> IssueRef: ...

    @abstractmethod
    def update_summary(self, issue_id: str, summary: str) -> None: ...

    @abstractmethod
    def list_projects(self) -> list[Project]: ...

    @abstractmethod
    def list_statuses(self) -> list[Status]: ...
