"""Tests for the webhook endpoint using the FastAPI test client."""

import threading
from collections.abc import Callable
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from jelease.app import ProjectLocks, create_app, decode_release
from jelease.errors import DecodeError
from jelease.models import ReleaseEvent
from jelease.settings import JeleaseSettings
from tests.fakes import InMemoryTracker

WIDGET = {"provider": "github", "project": "widget", "version": "2.0.0"}


@pytest.fixture
def client(settings: JeleaseSettings, tracker: InMemoryTracker) -> TestClient:
    return TestClient(create_app(settings, tracker))


class TestHealth:
    def test_root_ok(self, client: TestClient, tracker: InMemoryTracker) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "Ok"
        assert tracker.queries == []


class TestWebhook:
    def test_creates_issue(self, client: TestClient, tracker: InMemoryTracker) -> None:
        response = client.post("/webhook", json=WIDGET)
        assert response.status_code == 200
        assert [c.summary for c in tracker.created] == ["Update widget to version 2.0.0"]
        assert "widget" in tracker.created[0].labels

    def test_updates_existing_issue(self, client: TestClient, tracker: InMemoryTracker) -> None:
        client.post("/webhook", json=WIDGET)
        response = client.post("/webhook", json={**WIDGET, "version": "2.1.0"})
        assert response.status_code == 200
        assert len(tracker.created) == 1
        assert tracker.updates == [(tracker.issues[0].id, "Update widget to version 2.1.0")]

    def test_extra_fields_ignored(self, client: TestClient, tracker: InMemoryTracker) -> None:
        response = client.post("/webhook", json={**WIDGET, "time": "2024-03-01T12:00:00Z", "note": {"x": 1}})
        assert response.status_code == 200
        assert len(tracker.created) == 1

    @pytest.mark.parametrize(
        "body",
        [
            b"",
            b"not json",
            b"[]",
            b'{"provider": "github", "version": "2.0.0"}',
            b'{"provider": "github", "project": "", "version": "2.0.0"}',
            b'{"provider": "github", "project": "widget", "version": 2}',
        ],
    )
    def test_bad_body_is_400(self, client: TestClient, tracker: InMemoryTracker, body: bytes) -> None:
        with patch("jelease.app.reconcile") as reconcile:
            response = client.post("/webhook", content=body, headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.text == "Bad Request"
        reconcile.assert_not_called()
        assert tracker.queries == []

    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
    def test_wrong_method_is_405(self, client: TestClient, tracker: InMemoryTracker, method: str) -> None:
        with patch("jelease.app.reconcile") as reconcile:
            response = client.request(method, "/webhook", json=WIDGET)
        assert response.status_code == 405
        assert response.headers["allow"] == "POST"
        reconcile.assert_not_called()
        assert tracker.queries == []

    @pytest.mark.parametrize("stage", ["search", "create", "update"])
    def test_tracker_failure_is_opaque_500(self, client: TestClient, tracker: InMemoryTracker, stage: str) -> None:
        if stage == "update":
            client.post("/webhook", json=WIDGET)
        tracker.fail_on = stage
        response = client.post("/webhook", json=WIDGET)
        assert response.status_code == 500
        assert response.text == "Internal Server Error"
        assert "Bad Gateway" not in response.text

    def test_dry_run_leaves_tracker_untouched(
        self, make_settings: Callable[..., JeleaseSettings], tracker: InMemoryTracker
    ) -> None:
        client = TestClient(create_app(make_settings(dry_run=True), tracker))
        response = client.post("/webhook", json=WIDGET)
        assert response.status_code == 200
        assert tracker.created == []
        assert tracker.updates == []
        assert len(tracker.queries) == 1


class TestDecodeRelease:
    def test_valid(self) -> None:
        assert decode_release(b'{"project": "widget", "version": "1"}') == ReleaseEvent(project="widget", version="1")

    def test_invalid_raises_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            decode_release(b"{")


class TestProjectLocks:
    def test_released_projects_are_forgotten(self) -> None:
        locks = ProjectLocks()
        for n in range(100):
            with locks.hold(f"project-{n}"):
                assert list(locks._locks) == [f"project-{n}"]
        assert locks._locks == {}

    def test_different_projects_do_not_block(self) -> None:
        locks = ProjectLocks()
        with locks.hold("widget"):
            with locks.hold("gadget"):
                assert set(locks._locks) == {"widget", "gadget"}

    def test_same_project_serialized(self) -> None:
        locks = ProjectLocks()
        acquired = threading.Event()

        def other() -> None:
            with locks.hold("widget"):
                acquired.set()

        with locks.hold("widget"):
            worker = threading.Thread(target=other)
            worker.start()
            assert not acquired.wait(timeout=0.1)
            assert locks._locks["widget"][1] == 2  # holder plus waiter share one lock
        worker.join(timeout=2)
        assert acquired.is_set()
        assert locks._locks == {}

    def test_error_inside_hold_releases_project(self) -> None:
        locks = ProjectLocks()
        with pytest.raises(RuntimeError):
            with locks.hold("widget"):
                raise RuntimeError("boom")
        assert locks._locks == {}
        with locks.hold("widget"):
            pass


def test_state_exposes_collaborators(settings: JeleaseSettings, tracker: InMemoryTracker) -> None:
    app = create_app(settings, tracker)
    assert app.state.settings is settings
    assert app.state.tracker is tracker
