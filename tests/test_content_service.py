"""
Tests for the cached content views
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from conftest import make_media, make_page
from repositories.titles_repository import TitlesRepository
from services.content_service import calculate_trending_score


def seed(sync_service, sources):
    sources["anilist"].pages = {
        ("anime", 1): make_page(
            [
                make_media(1, "Frieren", popularity=9000, averageScore=90, genres=["Fantasy"]),
                make_media(2, "Dungeon Meshi", popularity=5000, averageScore=85, genres=["Fantasy", "Comedy"]),
                make_media(3, "Old Classic", popularity=20000, averageScore=60),
            ]
        ),
        ("manga", 1): make_page([make_media(10, "Berserk", type="MANGA", format="MANGA")]),
    }
    sync_service.run("ultra_fast", "anime")
    sync_service.run("ultra_fast", "manga")


class TestTrendingScore:
    NOW = datetime(2026, 10, 18, tzinfo=timezone.utc)

    def test_weights(self):
        item = {"popularity": 2000, "favorites": 100, "score": 8.0, "kitsu_rating": 0, "content_type": "manga"}
        assert calculate_trending_score(item, self.NOW) == 2 + 10 + 800

    def test_recency_bonus_decays(self):
        fresh = {"content_type": "manga", "created_at": (self.NOW - timedelta(days=2)).isoformat()}
        stale = {"content_type": "manga", "created_at": (self.NOW - timedelta(days=60)).isoformat()}
        assert calculate_trending_score(fresh, self.NOW) == 280
        assert calculate_trending_score(stale, self.NOW) == 0

    def test_airing_bonuses(self):
        future = (self.NOW + timedelta(days=3)).isoformat()
        anime = {"content_type": "anime", "details": {"status": "Currently Airing", "next_episode_date": future}}
        manga = {"content_type": "manga", "details": {"status": "Publishing", "next_chapter_date": future}}
        assert calculate_trending_score(anime, self.NOW) == 80
        assert calculate_trending_score(manga, self.NOW) == 65

    def test_past_episode_date_earns_nothing(self):
        past = (self.NOW - timedelta(days=1)).isoformat()
        anime = {"content_type": "anime", "details": {"status": "Finished Airing", "next_episode_date": past}}
        assert calculate_trending_score(anime, self.NOW) == 0


class TestContentApi:
    def test_miss_then_hit(self, client, sync_service, sources):
        seed(sync_service, sources)
        body = {"endpoint": "popular", "contentType": "anime", "limit": 2}

        first = client.post("/api/content", json=body)
        second = client.post("/api/content", json=body)

        assert first.status_code == 200
        assert first.headers["X-Cache"] == "MISS"
        assert second.headers["X-Cache"] == "HIT"
        assert first.get_json()["cached"] is False
        assert second.get_json()["cached"] is True
        assert [t["title"] for t in second.get_json()["data"]] == ["Old Classic", "Frieren"]

    def test_items_carry_details_and_genres(self, client, sync_service, sources):
        seed(sync_service, sources)
        data = client.post("/api/content", json={"endpoint": "popular", "limit": 3}).get_json()["data"]
        meshi = next(t for t in data if t["title"] == "Dungeon Meshi")

        assert meshi["genres"] == ["Comedy", "Fantasy"]
        assert meshi["details"]["status"] == "Finished Airing"

    def test_trending_sorted_by_score(self, client, sync_service, sources):
        seed(sync_service, sources)
        data = client.post("/api/content", json={"endpoint": "trending", "contentType": "anime"}).get_json()["data"]

        scores = [t["trending_score"] for t in data]
        assert scores == sorted(scores, reverse=True)
        assert data[0]["title"] == "Frieren"

    def test_manga_views_are_separate(self, client, sync_service, sources, fake_redis):
        seed(sync_service, sources)
        data = client.post("/api/content", json={"endpoint": "popular", "contentType": "manga"}).get_json()["data"]

        assert [t["title"] for t in data] == ["Berserk"]
        assert "cache:popular:manga:20" in fake_redis.store

    def test_homepage_shape(self, client, sync_service, sources, fake_redis):
        seed(sync_service, sources)
        response = client.post("/api/content", json={"endpoint": "homepage"})
        data = response.get_json()["data"]

        assert response.status_code == 200
        assert set(data) == {"trending", "popular", "recent", "stats"}
        assert set(data["trending"]) == {"anime", "manga"}
        assert list(data["recent"]) == ["anime"]
        assert data["stats"]["animeCount"] == 3
        assert data["stats"]["mangaCount"] == 1
        assert "cache:homepage:all:all" in fake_redis.store
        assert "cache:trending:anime:10" in fake_redis.store

    def test_stats_and_genres(self, client, sync_service, sources):
        seed(sync_service, sources)
        stats = client.post("/api/content", json={"endpoint": "stats"}).get_json()["data"]
        genres = client.post("/api/content", json={"endpoint": "genres"}).get_json()["data"]

        assert stats["animeCount"] == 3
        assert stats["lastUpdated"] is not None
        assert genres[0] == {"name": "Fantasy", "slug": "fantasy", "count": 2}

    def test_search(self, client, sync_service, sources):
        seed(sync_service, sources)
        response = client.post("/api/content", json={"endpoint": "search", "query": "meshi"})

        assert response.status_code == 200
        assert [t["title"] for t in response.get_json()["data"]] == ["Dungeon Meshi"]

    def test_search_without_query_is_rejected(self, client):
        response = client.post("/api/content", json={"endpoint": "search"})
        assert response.status_code == 400
        assert response.get_json()["code"] == "VALIDATION_ERROR"

    def test_generic_endpoint_sorting(self, client, sync_service, sources, fake_redis):
        seed(sync_service, sources)
        response = client.post(
            "/api/content", json={"endpoint": "top_rated", "sort_by": "score", "filters": {"genre": "fantasy"}}
        )

        assert [t["title"] for t in response.get_json()["data"]] == ["Frieren", "Dungeon Meshi"]
        assert any(key.startswith("cache:generic:anime:20:") for key in fake_redis.store)

    def test_unknown_sort_field_is_rejected(self, client):
        response = client.post("/api/content", json={"endpoint": "top_rated", "sort_by": "password"})
        assert response.status_code == 400

    def test_detail(self, client, sync_service, sources):
        seed(sync_service, sources)
        title_id = TitlesRepository.get_id_by_external_id("anilist_id", 1)

        found = client.post("/api/content", json={"endpoint": "detail", "id": title_id})
        missing = client.post("/api/content", json={"endpoint": "detail", "id": 9999})

        assert found.status_code == 200
        assert found.get_json()["data"]["title"] == "Frieren"
        assert missing.status_code == 404
        assert missing.get_json()["code"] == "NOT_FOUND"

    def test_request_validation(self, client):
        assert client.post("/api/content", json={}).status_code == 400
        assert client.post("/api/content", json={"endpoint": "popular", "contentType": "novel"}).status_code == 400
        assert client.post("/api/content", json={"endpoint": "popular", "limit": 101}).status_code == 400
        assert client.post("/api/content", json={"endpoint": "popular", "filters": []}).status_code == 400
        assert client.post("/api/content", json=["popular"]).status_code == 400


class TestDegradedContent:
    def test_redis_down_still_serves_from_database(self, client, sync_service, sources, fake_redis):
        seed(sync_service, sources)
        fake_redis.fail = True

        response = client.post("/api/content", json={"endpoint": "popular"})

        assert response.status_code == 200
        assert response.headers["X-Cache"] == "MISS"
        assert len(response.get_json()["data"]) == 3

    def test_database_down_after_miss_is_503(self, client):
        error = OperationalError("SELECT", {}, Exception("database is locked"))
        with patch.object(TitlesRepository, "get_ranked", side_effect=error):
            response = client.post("/api/content", json={"endpoint": "popular"})

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"
        assert response.get_json()["code"] == "DATA_UNAVAILABLE"

    def test_cached_view_survives_database_outage(self, client, sync_service, sources):
        seed(sync_service, sources)
        client.post("/api/content", json={"endpoint": "popular"})

        with patch.object(TitlesRepository, "get_ranked", side_effect=OperationalError("SELECT", {}, Exception("down"))):
            response = client.post("/api/content", json={"endpoint": "popular"})

        assert response.status_code == 200
        assert response.headers["X-Cache"] == "HIT"
