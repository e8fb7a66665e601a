"""Tests for the chat stats HTTP endpoints."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.chat_stats.controller import (
    RefreshController,
    get_refresh_controller,
)
from helpers import NOW, FakeRecordStore, make_conversation, make_exchange


@pytest.fixture
def controller() -> RefreshController:
    store = FakeRecordStore(
        conversations={
            "alpha": [make_conversation("alpha", status="active")],
            "beta": [
                make_conversation("beta", status="active"),
                make_conversation("beta", status="pending", lead_id="l1"),
            ],
        },
        messages={
            "alpha": make_exchange("alpha", seconds_ago=4000, reply_after=45),
            "beta": make_exchange("beta", seconds_ago=600, reply_after=180),
        },
    )
    return RefreshController(store=store, clock=lambda: NOW)


@pytest.fixture
def wall_clock() -> Iterator[dict[str, datetime]]:
    """Current time seen by the card labels; tests move it forward."""
    clock = {"now": NOW}
    with patch("app.routers.chat_stats._utcnow", side_effect=lambda: clock["now"]):
        yield clock


@pytest.fixture
def client(
    controller: RefreshController, wall_clock: dict[str, datetime]
) -> Iterator[TestClient]:
    app.dependency_overrides[get_refresh_controller] = lambda: controller
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.mark.unit
class TestRefreshEndpoint:
    def test_refresh_returns_ranked_cards(self, client: TestClient) -> None:
        resp = client.post(
            "/chat-stats/refresh", json={"project_ids": ["alpha", "beta"]}
        )

        assert resp.status_code == 200
        body = resp.json()
        assert [p["stats"]["project_id"] for p in body["projects"]] == [
            "beta",
            "alpha",
        ]
        assert body["global_stats"]["total_active_chats"] == 3
        assert body["global_stats"]["total_leads"] == 1
        assert body["global_stats"]["avg_response_time_seconds"] == 112.5

        beta = body["projects"][0]
        assert beta["response_time_label"] == "3m"
        assert beta["last_activity_label"] == "7m ago"

    def test_empty_refresh(self, client: TestClient) -> None:
        resp = client.post("/chat-stats/refresh", json={"project_ids": []})

        assert resp.status_code == 200
        body = resp.json()
        assert body["projects"] == []
        assert body["global_stats"]["total_active_chats"] == 0

    def test_invalid_id_is_batch_failure(self, client: TestClient) -> None:
        resp = client.post("/chat-stats/refresh", json={"project_ids": [" "]})

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to load chat statistics"

        state = client.get("/chat-stats").json()
        assert state["status"] == "error"
        assert state["error"] == "Failed to load chat statistics"


@pytest.mark.unit
class TestReadEndpoints:
    def test_state_before_refresh(self, client: TestClient) -> None:
        resp = client.get("/chat-stats")

        assert resp.status_code == 200
        assert resp.json()["status"] == "idle"
        assert resp.json()["is_loading"] is False

    def test_project_lookup(self, client: TestClient) -> None:
        client.post("/chat-stats/refresh", json={"project_ids": ["alpha"]})

        resp = client.get("/chat-stats/projects/alpha")
        assert resp.status_code == 200
        body = resp.json()
        assert body["stats"]["avg_response_time_seconds"] == 45.0
        assert body["response_time_label"] == "45s"

    def test_labels_use_time_of_read(
        self, client: TestClient, wall_clock: dict[str, datetime]
    ) -> None:
        client.post("/chat-stats/refresh", json={"project_ids": ["beta"]})
        assert (
            client.get("/chat-stats/projects/beta").json()["last_activity_label"]
            == "7m ago"
        )

        wall_clock["now"] = NOW + timedelta(hours=1)

        resp = client.get("/chat-stats/projects/beta")
        assert resp.json()["last_activity_label"] == "1h ago"

    def test_unknown_project_404(self, client: TestClient) -> None:
        resp = client.get("/chat-stats/projects/nope")
        assert resp.status_code == 404


def test_health() -> None:
    resp = TestClient(app).get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
