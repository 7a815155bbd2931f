"""
Tests for the publish API routes: enqueue, job inspection and process-due.
"""

from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from newsdesk.api.deps import get_engine
from newsdesk.api.routes import publish
from newsdesk.components.newsroom import NewsroomEngine
from newsdesk.domain.entities import ContentItem


@pytest.fixture
def client(engine: NewsroomEngine) -> TestClient:
    app = FastAPI()
    app.include_router(publish.router, prefix="/api/publish")
    app.dependency_overrides[get_engine] = lambda: engine
    return TestClient(app)


@pytest.fixture
def approved(engine: NewsroomEngine) -> UUID:
    """An approved item (v2) with no job yet."""
    item = engine.ingest(ContentItem(title="Köprü trafiğe açıldı")).item
    assert item is not None
    engine.lifecycle.approve(item.id)
    return item.id


def _enqueue(client: TestClient, content_id: UUID, **fields) -> dict:
    response = client.post(
        "/api/publish/enqueue", json={"content_id": str(content_id), **fields}
    )
    assert response.status_code == 200
    return response.json()


class TestEnqueue:
    def test_enqueue_is_idempotent(self, client: TestClient, approved: UUID) -> None:
        first = _enqueue(client, approved)
        second = _enqueue(client, approved)

        assert first["already_queued"] is False
        assert second["already_queued"] is True
        assert second["job"]["id"] == first["job"]["id"]
        assert first["job"]["version_no"] == 2
        assert first["job"]["status"] == "pending"

    def test_unknown_content(self, client: TestClient) -> None:
        response = client.post("/api/publish/enqueue", json={"content_id": str(uuid4())})

        assert response.status_code == 404
        assert response.json()["detail"]["errors"][0]["code"] == "content_not_found"

    def test_pending_content_is_not_publishable(
        self, client: TestClient, engine: NewsroomEngine
    ) -> None:
        item = engine.ingest(ContentItem(title="Onay bekliyor")).item
        assert item is not None

        response = client.post("/api/publish/enqueue", json={"content_id": str(item.id)})

        assert response.status_code == 400
        assert response.json()["detail"]["errors"][0]["code"] == "content_not_publishable"


class TestJobQueries:
    def test_get_and_list_jobs(self, client: TestClient, approved: UUID) -> None:
        job_id = _enqueue(client, approved, platforms=["web"])["job"]["id"]

        assert client.get(f"/api/publish/jobs/{job_id}").json()["target_platforms"] == ["web"]
        assert [j["id"] for j in client.get("/api/publish/jobs").json()] == [job_id]
        content_jobs = client.get(f"/api/publish/content/{approved}/jobs").json()
        assert [j["id"] for j in content_jobs] == [job_id]

    def test_unknown_job(self, client: TestClient) -> None:
        assert client.get(f"/api/publish/jobs/{uuid4()}").status_code == 404

    def test_cancel_pending(self, client: TestClient, approved: UUID) -> None:
        job_id = _enqueue(client, approved)["job"]["id"]

        response = client.post(f"/api/publish/content/{approved}/cancel")

        assert response.json() == {"cancelled": 1}
        assert client.get(f"/api/publish/jobs/{job_id}").json()["status"] == "cancelled"


class TestProcessDue:
    def test_process_due_publishes(self, client: TestClient, approved: UUID) -> None:
        _enqueue(client, approved, platforms=["web", "mobile"])

        response = client.post("/api/publish/process-due", json={"worker_id": "api-test"})

        assert response.status_code == 200
        body = response.json()
        assert body["claimed"] == 1
        assert body["completed"] == 1
        assert body["failed"] == 0

        logs = client.get(f"/api/publish/content/{approved}/logs").json()
        assert sorted(log["channel"] for log in logs) == ["mobile", "web"]
        assert all(log["status"] == "success" for log in logs)

        record = client.get(f"/api/publish/content/{approved}/published").json()
        assert record["slug"] == "kopru-trafige-acildi"
        assert record["version_no"] == 2

    def test_process_due_without_body(self, client: TestClient) -> None:
        response = client.post("/api/publish/process-due")

        assert response.status_code == 200
        assert response.json()["claimed"] == 0

    def test_unpublished_content_has_no_record(self, client: TestClient, approved: UUID) -> None:
        assert client.get(f"/api/publish/content/{approved}/published").status_code == 404
