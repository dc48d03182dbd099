"""
Tests for the sync and health endpoints, background jobs and Celery tasks
"""
from unittest.mock import MagicMock, patch

import pytest

import tasks
from conftest import make_media, make_page
from db import db
from exceptions import SourceUnavailable
from jobs.scheduler import JobScheduler
from models.cachemetric import CachePerformanceMetric
from models.titles import Title


class TestSyncApi:
    @pytest.mark.parametrize(
        "strategy,body",
        [
            ("ultra_fast", {"contentType": "anime", "maxPages": 101}),
            ("ultra_fast", {"contentType": "anime", "maxPages": 0}),
            ("ultra_fast", {"contentType": "anime", "startPage": 0}),
            ("ultra_fast", {"contentType": "anime", "maxPages": "lots"}),
            ("ultra_fast", {"contentType": "anime", "maxPages": True}),
            ("ultra_fast", {"contentType": "novel"}),
            ("ultra_fast", {}),
            ("hyper_fast", {"contentType": "anime"}),
        ],
    )
    def test_rejects_bad_requests(self, client, sources, strategy, body):
        response = client.post(f"/api/sync/{strategy}", json=body)

        assert response.status_code == 400
        assert response.get_json()["code"] == "VALIDATION_ERROR"
        assert sources["anilist"].calls == []

    def test_successful_run(self, client, sources):
        sources["anilist"].pages = {1: make_page([make_media(1, "Frieren"), make_media(2, "Dungeon Meshi")])}

        response = client.post("/api/sync/ultra_fast", json={"contentType": "anime", "maxPages": 1})
        body = response.get_json()

        assert response.status_code == 200
        assert body["success"] is True
        assert body["strategy"] == "ultra_fast"
        assert body["totalProcessed"] == 2
        assert body["results"]["titlesInserted"] == 2
        assert Title.query.count() == 2

    def test_partial_failure_is_still_200(self, client, sources):
        sources["anilist"].pages = {1: make_page([make_media(1), {"id": None}])}

        body = client.post("/api/sync/ultra_fast", json={"contentType": "anime"}).get_json()

        assert body["success"] is True
        assert body["results"]["errorCount"] == 1

    def test_run_without_any_page_is_500(self, client, sources):
        sources["anilist"].pages = {1: SourceUnavailable("HTTP 503", source="anilist", status_code=503)}

        response = client.post("/api/sync/ultra_fast", json={"contentType": "anime"})
        body = response.get_json()

        assert response.status_code == 500
        assert body["success"] is False
        assert body["pagesFailed"] == 1

    def test_start_page_is_honoured(self, client, sources):
        client.post("/api/sync/ultra_fast", json={"contentType": "manga", "startPage": 4, "maxPages": 1})
        assert sources["anilist"].calls == [("manga", 4, 50)]

    def test_async_run_is_queued(self, client, sources):
        with patch.object(tasks.sync_content_async, "delay") as delay:
            delay.return_value.id = "task-123"
            response = client.post("/api/sync/kitsu?async=1", json={"contentType": "anime", "maxPages": 2})

        assert response.status_code == 202
        assert response.get_json()["task_id"] == "task-123"
        delay.assert_called_once_with("kitsu", "anime", 2, 1)
        assert sources["kitsu"].calls == []

    def test_async_runs_inline_without_celery(self, client, app, sources):
        app.config["CELERY_ENABLED"] = False
        sources["anilist"].pages = {1: make_page([make_media(1)])}

        with patch.object(tasks.sync_content_async, "delay") as delay:
            response = client.post("/api/sync/ultra_fast?async=1", json={"contentType": "anime"})

        assert response.status_code == 200
        assert response.get_json()["totalProcessed"] == 1
        delay.assert_not_called()

    def test_end_to_end_single_item(self, client, sources):
        raw = {
            "id": 101,
            "title": {"romaji": "Test Anime"},
            "episodes": 12,
            "genres": ["Action", "Drama"],
            "startDate": {"year": 2023, "month": 4},
        }
        sources["anilist"].pages = {1: make_page([raw])}

        body = client.post("/api/sync/ultra_fast", json={"contentType": "anime", "maxPages": 1}).get_json()

        assert body["success"] is True
        assert body["totalProcessed"] == 1
        results = body["results"]
        assert results["titlesInserted"] == 1
        assert results["detailsInserted"] == 1
        assert results["genresCreated"] == 2
        assert results["relationshipsCreated"] == 2
        assert results["errors"] == []
        title = Title.query.filter_by(anilist_id=101).one()
        assert title.title == "Test Anime"
        assert title.anime_details.episodes == 12
        assert title.anime_details.aired_from == "2023-04-01"

    def test_sync_logs(self, client, sources):
        sources["anilist"].pages = {1: make_page([make_media(1)])}
        client.post("/api/sync/ultra_fast", json={"contentType": "anime"})

        logs = client.get("/api/sync/logs?limit=5").get_json()["data"]

        assert logs[0]["job_name"] == "ultra_fast_sync_anime"
        assert logs[0]["status"] == "completed"


class TestHealthApi:
    def test_healthy(self, client):
        response = client.get("/api/health")
        data = response.get_json()["data"]

        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert data["checks"]["database"] == "ok"
        assert data["checks"]["redis"] == "ok"

    def test_redis_down_is_degraded(self, client, fake_redis):
        fake_redis.fail = True
        response = client.get("/api/health")

        assert response.status_code == 503
        assert response.get_json()["data"]["status"] == "degraded"

    def test_metrics_endpoint(self, client):
        response = client.get("/api/metrics")
        assert response.status_code == 200
        assert b"anisync_titles_total" in response.data


class TestJobScheduler:
    def test_registers_periodic_jobs(self, app):
        scheduler = MagicMock()
        job_scheduler = JobScheduler(scheduler=scheduler)

        job_scheduler.init_app(app, start=False)
        job_scheduler.init_app(app, start=False)

        job_ids = [c.kwargs["id"] for c in scheduler.add_job.call_args_list]
        assert job_ids == ["automated_dual_sync", "prune_cache_metrics"]
        scheduler.start.assert_not_called()

    def test_prune_job_keeps_recent_metrics(self, app):
        db.session.add(CachePerformanceMetric(metric_type="hit", metric_value=1.0, cache_key="cache:stats:all:all"))
        db.session.commit()

        JobScheduler(scheduler=MagicMock())._prune_cache_metrics_job(app)

        assert CachePerformanceMetric.query.count() == 1

    def test_dual_sync_job(self, app, sources):
        sources["anilist"].pages = {("anime", 1): make_page([make_media(1)])}

        JobScheduler(scheduler=MagicMock())._dual_sync_job(app)

        assert Title.query.count() == 1
        assert {call[0] for call in sources["anilist"].calls} == {"anime", "manga"}


class TestTasks:
    def test_sync_content_task(self, app, sources, monkeypatch):
        monkeypatch.setattr(tasks, "_flask_app", app)
        sources["anilist"].pages = {1: make_page([make_media(1)])}

        result = tasks.sync_content_async("ultra_fast", "anime", max_pages=1)

        assert result["success"] is True
        assert result["totalProcessed"] == 1

    def test_automated_dual_sync_task_uses_configured_pages(self, app, sources, monkeypatch):
        monkeypatch.setattr(tasks, "_flask_app", app)
        sources["anilist"].pages = {
            ("anime", page): make_page([make_media(page)], page=page, has_next=True) for page in range(1, 6)
        }

        summary = tasks.automated_dual_sync()

        assert set(summary["results"]) == {"anime", "manga"}
        anime_pages = [call[1] for call in sources["anilist"].calls if call[0] == "anime"]
        assert anime_pages == [1, 2, 3]
        assert summary["results"]["anime"]["totalProcessed"] == 3
