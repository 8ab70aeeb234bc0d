"""Webhook endpoint for newreleases.io notifications."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from jelease.errors import DecodeError, MethodError
from jelease.models import Outcome, ReleaseEvent
from jelease.reconcile import reconcile
from jelease.settings import JeleaseSettings
from jelease.trackers.base import IssueTracker

logger = logging.getLogger(__name__)

# Everything but POST is rejected on /webhook
_REJECTED_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"]


class ProjectLocks:
    """One lock per project, so this process never races itself on query-then-create.

    Does not help across several server instances; there the oldest-issue rule
    cleans up duplicates on the next event.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # project -> (lock, holders and waiters); entries go away once unused
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, project: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(project, (threading.Lock(), 0))
            self._locks[project] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._locks[project]
                if users == 1:
                    del self._locks[project]
                else:
                    self._locks[project] = (lock, users - 1)


def decode_release(body: bytes) -> ReleaseEvent:
    try:
        return ReleaseEvent.model_validate_json(body)
    except ValidationError as exc:
        raise DecodeError(str(exc)) from exc


def _status_text(status_code: int, headers: dict[str, str] | None = None) -> PlainTextResponse:
    # Reason phrase only; internal detail stays in the logs
    return PlainTextResponse(HTTPStatus(status_code).phrase, status_code=status_code, headers=headers)


async def _handle_decode_error(request: Request, exc: Exception) -> PlainTextResponse:
    logger.warning("Couldn't decode request body to json: %s", exc)
    return _status_text(400)


async def _handle_method_error(request: Request, exc: Exception) -> PlainTextResponse:
    logger.warning("Rejected request because: 405 Method Not Allowed. Attempted method: %s", request.method)
    return _status_text(405, headers={"Allow": "POST"})


def create_app(settings: JeleaseSettings, tracker: IssueTracker) -> FastAPI:
    app = FastAPI(title="jelease", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = settings
    app.state.tracker = tracker
    app.state.locks = ProjectLocks()
    app.add_exception_handler(DecodeError, _handle_decode_error)
    app.add_exception_handler(MethodError, _handle_method_error)

    @app.get("/", response_class=PlainTextResponse)
    def health() -> str:
        logger.debug("Received health check request")
        return "Ok"

    @app.post("/webhook")
    async def webhook(request: Request) -> PlainTextResponse:
        release = decode_release(await request.body())
        logger.info("Received release %s %s (%s)", release.project, release.version, release.provider or "unknown")

        def run() -> Outcome:
            with app.state.locks.hold(release.project):
                return reconcile(release, app.state.tracker, app.state.settings)

        outcome = await run_in_threadpool(run)
        if not outcome.ok:
            return _status_text(500)
        return PlainTextResponse("", status_code=200)

    @app.api_route("/webhook", methods=_REJECTED_METHODS, include_in_schema=False)
    def webhook_wrong_method(request: Request) -> None:
        raise MethodError(request.method)

    return app
