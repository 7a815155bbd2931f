"""
Tests for the emergency queue API routes.
"""

from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from newsdesk.api import main
from newsdesk.api.deps import get_engine
from newsdesk.api.routes import emergency
from newsdesk.components.newsroom import NewsroomEngine
from newsdesk.domain.entities import ContentItem


@pytest.fixture
def client(engine: NewsroomEngine) -> TestClient:
    app = FastAPI()
    app.include_router(emergency.router, prefix="/api/emergency")
    app.dependency_overrides[get_engine] = lambda: engine
    return TestClient(app)


@pytest.fixture
def content_id(engine: NewsroomEngine) -> UUID:
    item = engine.ingest(ContentItem(title="Son dakika: Ankara'da patlama")).item
    assert item is not None
    return item.id


def _add(client: TestClient, content_id: UUID, **fields) -> dict:
    response = client.post(
        "/api/emergency", json={"content_id": str(content_id), **fields}
    )
    assert response.status_code == 201
    return response.json()


def test_health_endpoint() -> None:
    response = TestClient(main.app).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "newsdesk"}


class TestQueue:
    def test_add_and_list(self, client: TestClient, content_id: UUID) -> None:
        body = _add(client, content_id, priority=80)

        assert body["already_queued"] is False
        assert body["item"]["status"] == "pending"
        listed = client.get("/api/emergency").json()
        assert [i["id"] for i in listed] == [body["item"]["id"]]
        assert listed[0]["priority"] == 80

    def test_add_twice_returns_existing(self, client: TestClient, content_id: UUID) -> None:
        first = _add(client, content_id)
        second = _add(client, content_id, priority=99)

        assert second["already_queued"] is True
        assert second["item"]["id"] == first["item"]["id"]

    def test_add_unknown_content(self, client: TestClient) -> None:
        response = client.post("/api/emergency", json={"content_id": str(uuid4())})

        assert response.status_code == 404

    def test_priority_out_of_range(self, client: TestClient, content_id: UUID) -> None:
        response = client.post(
            "/api/emergency", json={"content_id": str(content_id), "priority": 101}
        )

        assert response.status_code == 422

    def test_stats(self, client: TestClient, content_id: UUID) -> None:
        _add(client, content_id, priority=70)

        body = client.get("/api/emergency/stats").json()

        assert body == {"pending": 1, "published": 0, "cancelled": 0, "top_priority": 70}


class TestDetect:
    def test_detect(self, client: TestClient, content_id: UUID) -> None:
        body = client.post(f"/api/emergency/detect/{content_id}").json()

        assert body["is_emergency"] is True
        assert body["matched_keywords"] == ["son dakika", "patlama"]
        # Detection alone does not queue
        assert client.get("/api/emergency").json() == []

    def test_detect_unknown_content(self, client: TestClient) -> None:
        assert client.post(f"/api/emergency/detect/{uuid4()}").status_code == 404


class TestItemActions:
    def test_publish(self, client: TestClient, content_id: UUID, engine: NewsroomEngine) -> None:
        item_id = _add(client, content_id)["item"]["id"]

        response = client.post(f"/api/emergency/{item_id}/publish")

        assert response.status_code == 200
        body = response.json()
        assert body["item"]["status"] == "published"
        job = engine.scheduler.get_job(UUID(body["job_id"]))
        assert job is not None
        assert job.is_emergency

    def test_cancel_then_publish_conflicts(self, client: TestClient, content_id: UUID) -> None:
        item_id = _add(client, content_id)["item"]["id"]

        cancelled = client.post(f"/api/emergency/{item_id}/cancel")
        response = client.post(f"/api/emergency/{item_id}/publish")

        assert cancelled.json()["item"]["status"] == "cancelled"
        assert response.status_code == 409
        assert response.json()["detail"]["errors"][0]["code"] == "not_pending"

    def test_update_priority(self, client: TestClient, content_id: UUID) -> None:
        item_id = _add(client, content_id, priority=40)["item"]["id"]

        response = client.put(f"/api/emergency/{item_id}/priority", json={"priority": 95})

        assert response.json()["item"]["priority"] == 95
        assert client.get(f"/api/emergency/{item_id}").json()["priority"] == 95

    def test_unknown_item(self, client: TestClient) -> None:
        assert client.get(f"/api/emergency/{uuid4()}").status_code == 404
        assert client.post(f"/api/emergency/{uuid4()}/cancel").status_code == 404
