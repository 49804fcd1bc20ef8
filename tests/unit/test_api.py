"""Tests for the HTTP routes."""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from clipqueue import main as main_module
from clipqueue.api.deps import get_manager
from clipqueue.api.routes.health import health_check
from clipqueue.jobs.manager import QueueManager
from clipqueue.jobs.models import Job, JobStatus
from clipqueue.main import create_app


async def _noop(job: Job) -> None:
    return None


@pytest.fixture
def manager(make_manager) -> QueueManager:
    mgr = make_manager()
    mgr.register_handler("echo", _noop)
    # Requests run on short-lived loops; keep handlers from being scheduled.
    mgr.pause()
    return mgr


@pytest.fixture
def client(manager: QueueManager) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_manager] = lambda: manager
    return TestClient(app)


class TestHealth:
    def test_reports_scheduler_state(self, client: TestClient, manager: QueueManager) -> None:
        manager.enqueue("echo")

        resp = client.get("/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "degraded"
        assert body["scheduler_started"] is False
        assert body["processing_enabled"] is False
        assert body["pending"] == 1
        assert body["in_flight"] == 0
        assert body["job_types"] == ["echo"]

    @pytest.mark.asyncio
    async def test_healthy_once_started(self, make_manager) -> None:
        mgr = make_manager(tick_interval=60)
        mgr.start()
        try:
            resp = await health_check(mgr)
        finally:
            await mgr.stop()

        assert resp.status == "healthy"
        assert resp.scheduler_started is True


class TestJobRoutes:
    def test_create_job(self, client: TestClient, manager: QueueManager) -> None:
        resp = client.post(
            "/api/v1/jobs",
            json={"type": "echo", "payload": {"input": 1}, "priority": "high"},
        )
        assert resp.status_code == 202
        body = resp.json()
        assert body["status"] == "pending"
        assert body["type"] == "echo"
        assert manager.status(body["job_id"]).payload == {"input": 1}

    def test_create_unknown_type(self, client: TestClient) -> None:
        resp = client.post("/api/v1/jobs", json={"type": "nope"})
        assert resp.status_code == 422
        assert "unknown job type" in resp.json()["detail"]

    def test_create_invalid_attempts(self, client: TestClient) -> None:
        resp = client.post("/api/v1/jobs", json={"type": "echo", "max_attempts": 0})
        assert resp.status_code == 422

    def test_get_and_list(self, client: TestClient, manager: QueueManager) -> None:
        job_id = manager.enqueue("echo", {"input": 2})

        resp = client.get(f"/api/v1/jobs/{job_id}")
        assert resp.status_code == 200
        assert resp.json()["job_id"] == job_id
        assert resp.json()["attempts"] == 0

        listed = client.get("/api/v1/jobs", params={"status": "pending", "type": "echo"})
        assert [j["job_id"] for j in listed.json()] == [job_id]
        assert client.get("/api/v1/jobs", params={"status": "failed"}).json() == []

    def test_get_missing(self, client: TestClient) -> None:
        assert client.get("/api/v1/jobs/missing").status_code == 404

    def test_cancel(self, client: TestClient, manager: QueueManager) -> None:
        job_id = manager.enqueue("echo")
        resp = client.delete(f"/api/v1/jobs/{job_id}")
        assert resp.status_code == 200
        assert resp.json() == {"job_id": job_id, "cancelled": True}
        assert manager.status(job_id) is None
        assert client.delete(f"/api/v1/jobs/{job_id}").status_code == 404


class TestQueueRoutes:
    def test_stats(self, client: TestClient, manager: QueueManager) -> None:
        manager.enqueue("echo")
        body = client.get("/api/v1/queue/stats").json()
        assert body["total"] == 1
        assert body["pending"] == 1
        assert body["success_rate"] == 100.0

    def test_pause_and_resume(self, client: TestClient, manager: QueueManager) -> None:
        assert client.post("/api/v1/queue/resume").json()["running"] is True
        assert manager.running
        assert client.post("/api/v1/queue/pause").json() == {"running": False, "in_flight": []}
        assert client.get("/api/v1/queue/state").json()["running"] is False

    def test_cleanup(self, client: TestClient, store, clock) -> None:
        store.save([
            Job(
                id="old",
                type="echo",
                status=JobStatus.COMPLETED,
                created_at=clock.now - 10_000,
                completed_at=clock.now - 9_000,
            )
        ])
        mgr = QueueManager(store, clock=clock)
        app = create_app()
        app.dependency_overrides[get_manager] = lambda: mgr

        resp = TestClient(app).post("/api/v1/queue/cleanup", params={"older_than_ms": 5_000})

        assert resp.json() == {"removed": 1}
        assert mgr.list_jobs() == []


class TestLifespan:
    @pytest.mark.asyncio
    async def test_warns_when_batch_is_unavailable(
        self, monkeypatch: pytest.MonkeyPatch, make_manager, caplog: pytest.LogCaptureFixture
    ) -> None:
        mgr = make_manager(concurrency_cap=1)
        stopped: list[bool] = []

        async def fake_reset() -> None:
            stopped.append(True)

        monkeypatch.setattr(main_module, "get_queue_manager", lambda: mgr)
        monkeypatch.setattr(main_module, "reset_queue_manager", fake_reset)

        with caplog.at_level(logging.WARNING, logger="clipqueue.main"):
            async with main_module.lifespan(main_module.app):
                pass

        assert "CLIPQUEUE_CONCURRENCY_CAP" in caplog.text
        assert stopped == [True]
