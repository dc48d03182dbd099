"""
Pytest fixtures and configuration for AniSync tests
"""
import fnmatch

import pytest
import redis

from sources.anilist import decode_media
from sources.base import SourcePage, decode_records
from sources.schedule_oracle import ScheduleOracle


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the cache uses; keys expire on a manual clock"""

    def __init__(self, fail=False):
        self.store = {}
        self.ttls = {}
        self.expires_at = {}
        self.clock = 0
        self.fail = fail
        self.delete_calls = []

    def advance(self, seconds):
        self.clock += seconds

    def _check(self):
        if self.fail:
            raise redis.ConnectionError("redis is down")
        for key, deadline in list(self.expires_at.items()):
            if deadline <= self.clock:
                self.store.pop(key, None)
                self.ttls.pop(key, None)
                del self.expires_at[key]

    def get(self, key):
        self._check()
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl
        self.expires_at[key] = self.clock + ttl
        return True

    def keys(self, pattern="*"):
        self._check()
        return [key for key in self.store if fnmatch.fnmatchcase(key, pattern)]

    def delete(self, *keys):
        self._check()
        self.delete_calls.append(keys)
        deleted = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                self.ttls.pop(key, None)
                self.expires_at.pop(key, None)
                deleted += 1
        return deleted

    def ping(self):
        self._check()
        return True


class FakeSource:
    """Source adapter serving canned pages; an Exception value is raised instead"""

    def __init__(self, name="anilist", pages=None):
        self.name = name
        self.pages = pages or {}
        self.calls = []

    def fetch_page(self, content_type, page, per_page=50):
        self.calls.append((content_type, page, per_page))
        result = self.pages.get((content_type, page), self.pages.get(page))
        if isinstance(result, Exception):
            raise result
        if result is None:
            return SourcePage(records=[], has_next_page=False, page=page)
        return result


def make_media(media_id, romaji="Title", **overrides):
    """Raw AniList media object with sensible defaults"""
    raw = {
        "id": media_id,
        "idMal": None,
        "type": "ANIME",
        "title": {"romaji": romaji, "english": None, "native": None},
        "description": "<p>A story.</p>",
        "startDate": {"year": 2020, "month": 4, "day": 1},
        "endDate": {"year": None, "month": None, "day": None},
        "season": "SPRING",
        "seasonYear": 2020,
        "format": "TV",
        "status": "FINISHED",
        "episodes": 12,
        "coverImage": {"large": f"https://img.example/{media_id}.jpg", "color": "#e4a15d"},
        "averageScore": 82,
        "popularity": 1000,
        "favourites": 50,
        "genres": ["Action"],
        "tags": [],
        "studios": {"nodes": [{"name": "Studio A"}]},
        "staff": {"edges": []},
        "characters": {"edges": []},
        "nextAiringEpisode": None,
    }
    raw.update(overrides)
    return raw


def make_page(raw_items, page=1, has_next=False):
    """SourcePage decoded from raw AniList media, the way the client does it"""
    records, rejected = decode_records(raw_items, decode_media)
    return SourcePage(records=records, has_next_page=has_next, page=page, rejected=rejected)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def sources():
    return {
        "anilist": FakeSource("anilist"),
        "kitsu": FakeSource("kitsu"),
        "jikan": FakeSource("mal"),
        "oracle": ScheduleOracle(api_key=None),
    }


@pytest.fixture
def app_config():
    """Flask config for an isolated in-memory app"""
    return {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "RATELIMIT_ENABLED": False,
        "SYNC_ITEM_DELAY": 0,
        "SYNC_PAGE_DELAY": 0,
        "ANISYNC_SETTINGS": {"cache": {"homepage_workers": 1}},
    }


@pytest.fixture
def app(app_config, fake_redis, sources):
    from app import create_app

    _app = create_app(config=app_config, redis_client=fake_redis, sources=sources)
    with _app.app_context():
        yield _app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def sync_service(app):
    return app.extensions["anisync"]["sync"]

