"""Shared test fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest

from jelease.models import ExistingIssue, ReleaseEvent
from jelease.settings import JeleaseSettings
from tests.fakes import T0, InMemoryTracker

_ENV_VARS = (
    "HOST",
    "PORT",
    "JIRA_URL",
    "JIRA_USER",
    "JIRA_TOKEN",
    "JIRA_SKIP_CERT_VERIFY",
    "PROJECT",
    "DEFAULT_STATUS",
    "ADD_LABELS",
    "ISSUE_TYPE",
    "DESCRIPTION_TEMPLATE",
    "PROJECT_CUSTOM_FIELD",
    "DRY_RUN",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """No stray .env file or exported config leaks into a test."""
    monkeypatch.chdir(tmp_path)
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_settings() -> Callable[..., JeleaseSettings]:
    def _make(**kwargs) -> JeleaseSettings:
        defaults: dict = {
            "jira_url": "https://jira.example.com",
            "jira_user": "bot@example.com",
            "jira_token": "secret-token",
            "project": "OPS",
            "default_status": "Backlog",
            "add_labels": ["dependencies"],
        }
        defaults.update(kwargs)
        return JeleaseSettings(_env_file=None, **defaults)  # type: ignore[call-arg]

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., JeleaseSettings]) -> JeleaseSettings:
    return make_settings()


@pytest.fixture
def release() -> ReleaseEvent:
    return ReleaseEvent(provider="github", project="widget", version="2.0.0")


@pytest.fixture
def existing_issue() -> ExistingIssue:
    return ExistingIssue(id="1", key="OPS-1", created_at=T0, summary="Update widget to version 1.9.0")


@pytest.fixture
def tracker() -> InMemoryTracker:
    return InMemoryTracker()
