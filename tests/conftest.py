"""Shared fixtures: a fake clock and an in-memory tracker API behind httpx.MockTransport."""
import copy
import json
import re
from collections.abc import Callable
from typing import Optional

import httpx
import pytest

from sprintboard_core.config import Settings
from sprintboard_core.project_cache import ProjectCache

BASE_URL = "http://tracker.test/api"
ORG = "org-1"
PROJECT = "proj-1"
SPRINT = "sprint-1"
SPRINT_2 = "sprint-2"


def ticket(ticket_id: str, sprint_id: Optional[str], **fields) -> dict:
    """Ticket payload as the tracker API returns it."""
    data = {
        "id": ticket_id,
        "sprintId": sprint_id,
        "title": f"Ticket {ticket_id}",
        "status": "TODO",
        "type": "TASK",
        "priority": "MEDIUM",
        "assigneeId": None,
        "storyPoints": None,
        "updatedAt": "2025-01-01T00:00:00Z",
        "reporter": {"id": "u-1", "name": "Ada"},
    }
    data.update(fields)
    return data


class FakeClock:
    """Manually advanced time source (seconds)."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTrackerApi:
    """In-memory tracker API.

    Routes are named ``sprints``, ``backlog``, ``tickets``, ``members``,
    ``patch`` and ``reorder``; add a name to ``fail`` to make that route
    answer 500, or map it in ``replies`` to a factory returning a canned
    response. Every request is recorded in ``calls`` as ``(route, request)``.
    """

    def __init__(self):
        self.sprints = [
            {
                "id": SPRINT,
                "name": "Sprint 1",
                "status": "ACTIVE",
                "tickets": [ticket(t, SPRINT) for t in ("t-a", "t-b", "t-c", "t-d")],
            },
            {
                "id": SPRINT_2,
                "name": "Sprint 2",
                "status": "PLANNED",
                "tickets": [ticket("t-x", SPRINT_2)],
            },
        ]
        self.backlog = [ticket("t-e", None), ticket("t-f", None, status="DONE")]
        self.members = [
            {"id": "m-1", "role": "ADMIN", "user": {"id": "u-1", "name": "Ada", "email": "ada@example.com"}},
        ]
        self.fail: set[str] = set()
        self.replies: dict[str, Callable[[], httpx.Response]] = {}
        self.calls: list[tuple[str, httpx.Request]] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls_to(self, route: str) -> list[httpx.Request]:
        return [request for name, request in self.calls if name == route]

    def all_tickets(self) -> list[dict]:
        return [t for s in self.sprints for t in s["tickets"]] + self.backlog

    def route(self, request: httpx.Request) -> str:
        path = request.url.path
        if request.method == "GET" and path.endswith("/sprints"):
            return "sprints"
        if request.method == "GET" and path.endswith("/members"):
            return "members"
        if request.method == "GET" and path.endswith("/tickets"):
            if request.url.params.get("sprintId") == "null":
                return "backlog"
            return "tickets"
        if request.method == "PATCH" and re.search(r"/tickets/[^/]+$", path):
            return "patch"
        if request.method == "POST" and path.endswith("/tickets/reorder"):
            return "reorder"
        raise AssertionError(f"Unexpected request {request.method} {path}")

    def handle(self, request: httpx.Request) -> httpx.Response:
        name = self.route(request)
        self.calls.append((name, request))
        if name in self.fail:
            return httpx.Response(500, json={"error": f"{name} failed"})
        if name in self.replies:
            return self.replies[name]()

        if name == "sprints":
            return httpx.Response(200, json=copy.deepcopy(self.sprints))
        if name == "members":
            return httpx.Response(200, json=copy.deepcopy(self.members))
        if name == "backlog":
            return httpx.Response(200, json=self._page(self.backlog))
        if name == "tickets":
            return httpx.Response(200, json=self._page(self._filtered(request)))
        if name == "patch":
            return self._patch(request)
        return httpx.Response(200, json={"success": True})

    def _filtered(self, request: httpx.Request) -> list[dict]:
        tickets = self.all_tickets()
        status = request.url.params.get("status")
        if status:
            tickets = [t for t in tickets if t["status"] == status]
        return tickets

    def _page(self, tickets: list[dict]) -> dict:
        return {
            "tickets": copy.deepcopy(tickets),
            "pagination": {"page": 1, "limit": 50, "total": len(tickets), "pages": 1},
        }

    def _patch(self, request: httpx.Request) -> httpx.Response:
        ticket_id = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content)
        for existing in self.all_tickets():
            if existing["id"] == ticket_id:
                updated = {**existing, **body, "updatedAt": "2025-06-01T12:00:00Z"}
                return httpx.Response(200, json=updated)
        return httpx.Response(404, json={"error": "Ticket not found"})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api() -> FakeTrackerApi:
    return FakeTrackerApi()


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url=BASE_URL, refetch_on_failure=False)


@pytest.fixture
def project_cache(api, settings, clock) -> ProjectCache:
    return ProjectCache(settings, transport=api.transport, clock=clock)
