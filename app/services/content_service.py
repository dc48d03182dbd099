"""
Cached content views

Every read goes through ContentCache.read_through: a hit is served from
Redis, a miss (or a Redis failure) runs the database query and caches the
result under the domain's TTL tier. Only a failing database read after a
miss surfaces to the caller, as DataUnavailable.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from sqlalchemy.exc import SQLAlchemyError

from constants import CACHE_DOMAINS, RELEASING_STATUSES
from db import db
from exceptions import DataUnavailable, ValidationException
from redis_cache import make_cache_key
from repositories.taxonomy_repository import TaxonomyRepository
from repositories.titles_repository import TitlesRepository
from settings import get_cache_ttl
from utils import ensure_utc, now_utc

logger = logging.getLogger("main")

SORTABLE_FIELDS = (
    "score",
    "popularity",
    "favorites",
    "members",
    "rank",
    "year",
    "title",
    "kitsu_rating",
    "created_at",
    "updated_at",
)

FILTER_KEYS = ("search", "genre", "year", "status", "type", "season", "order")

HOMEPAGE_LIMIT = 10


def calculate_trending_score(item, now=None):
    """
    Weighted ranking for the trending view

    Recency and "currently releasing" outweigh raw popularity so new and
    airing titles surface above long-finished classics.
    """
    now = now or now_utc()
    score = (item.get("popularity") or 0) / 1000
    score += (item.get("favorites") or 0) / 10
    score += (item.get("score") or 0) * 100
    score += (item.get("kitsu_rating") or 0) * 80

    created_at = ensure_utc(item.get("created_at"))
    if created_at:
        days_since = (now - created_at).days
        score += max(0, 30 - days_since) * 10

    details = item.get("details") or {}
    if item.get("content_type") == "anime":
        if details.get("status") in RELEASING_STATUSES:
            score += 50
        next_date = ensure_utc(details.get("next_episode_date"))
        if next_date and next_date > now:
            score += 30
    else:
        if details.get("status") in RELEASING_STATUSES:
            score += 40
        next_date = ensure_utc(details.get("next_chapter_date"))
        if next_date and next_date > now:
            score += 25
    return round(score, 2)


def serialize_titles(titles):
    """JSON-safe title dicts with their 1:1 details and genre names"""
    genre_names = TitlesRepository.get_genre_names([t.id for t in titles])
    items = []
    for title in titles:
        item = title.to_dict()
        details = title.anime_details if title.content_type == "anime" else title.manga_details
        item["details"] = details.to_dict() if details else None
        item["genres"] = genre_names.get(title.id, [])
        items.append(item)
    return items


class ContentService:
    def __init__(self, cache, app, settings=None, workers=None):
        self.cache = cache
        self.app = app
        self.settings = settings
        if workers is None:
            workers = ((settings or {}).get("cache") or {}).get("homepage_workers", 6)
        self.workers = max(1, int(workers))

    def _ttl(self, domain):
        return get_cache_ttl(domain, self.settings)

    def _read(self, domain, key, loader):
        def guarded_loader():
            try:
                return loader()
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(f"Database read failed for {key}: {e}")
                raise DataUnavailable(f"Content for '{domain}' is temporarily unavailable")

        return self.cache.read_through(key, self._ttl(domain), guarded_loader)

    def get_content(self, endpoint, content_type="anime", limit=20, sort_by=None, filters=None, query=None, title_id=None):
        """
        Serve one content view. Returns (data, hit).

        Endpoints outside the known domains share the generic tier and are
        answered with a filtered, sorted title list.
        """
        filters = {k: v for k, v in (filters or {}).items() if k in FILTER_KEYS and v not in (None, "")}
        if endpoint == "homepage":
            return self.get_homepage()
        if endpoint == "stats":
            return self._read("stats", make_cache_key("stats"), self._load_stats)
        if endpoint == "genres":
            return self._read(
                "genres", make_cache_key("genres", content_type), lambda: self._load_genres(content_type)
            )
        if endpoint == "detail":
            if title_id is None:
                raise ValidationException("detail requires an id")
            return self._read(
                "detail", make_cache_key("detail", content_type, extra={"id": title_id}), lambda: self._load_detail(title_id)
            )
        if endpoint == "trending":
            return self._read(
                "trending",
                make_cache_key("trending", content_type, limit),
                lambda: self._load_trending(content_type, limit),
            )
        if endpoint == "popular":
            return self._read(
                "popular",
                make_cache_key("popular", content_type, limit),
                lambda: self._load_titles(content_type, "popularity", limit),
            )
        if endpoint == "recent":
            return self._read(
                "recent",
                make_cache_key("recent", content_type, limit),
                lambda: self._load_titles(content_type, "created_at", limit),
            )
        if endpoint == "search":
            text = (query or filters.get("search") or "").strip()
            if not text:
                raise ValidationException("search requires a query")
            filters["search"] = text
            return self._read(
                "search",
                make_cache_key("search", content_type, limit, extra=filters),
                lambda: self._load_titles(content_type, "popularity", limit, filters),
            )

        order_by = sort_by or "score"
        if order_by not in SORTABLE_FIELDS:
            raise ValidationException(f"Cannot sort by '{order_by}'")
        domain = endpoint if endpoint in CACHE_DOMAINS else "generic"
        extra = dict(filters, endpoint=endpoint, sort_by=order_by)
        return self._read(
            domain,
            make_cache_key(domain, content_type, limit, extra=extra),
            lambda: self._load_titles(content_type, order_by, limit, filters),
        )

    def _load_titles(self, content_type, order_by, limit, filters=None):
        return serialize_titles(TitlesRepository.get_ranked(content_type, order_by, limit, filters))

    def _load_trending(self, content_type, limit):
        items = self._load_titles(content_type, "popularity", limit)
        now = now_utc()
        for item in items:
            item["trending_score"] = calculate_trending_score(item, now)
        items.sort(key=lambda item: item["trending_score"], reverse=True)
        return items

    def _load_detail(self, title_id):
        title = TitlesRepository.get_by_id(title_id)
        if title is None:
            return None
        return serialize_titles([title])[0]

    def _load_stats(self):
        last_updated = TitlesRepository.last_updated()
        return {
            "animeCount": TitlesRepository.count("anime"),
            "mangaCount": TitlesRepository.count("manga"),
            "lastUpdated": last_updated.isoformat() if last_updated else None,
        }

    def _load_genres(self, content_type):
        return [
            {"name": name, "slug": slug, "count": count}
            for name, slug, count in TaxonomyRepository.genre_usage(content_type)
        ]

    def get_homepage(self):
        """
        Homepage aggregate: six cached lookups fanned out to a thread pool,
        combined and cached again under the homepage key.
        """
        key = make_cache_key("homepage")
        return self.cache.read_through(key, self._ttl("homepage"), self._load_homepage)

    def _lookup(self, endpoint, content_type=None):
        # Worker threads need their own app context and session
        with self.app.app_context():
            data, _ = self.get_content(endpoint, content_type or "anime", HOMEPAGE_LIMIT)
            return data

    def _load_homepage(self):
        lookups = {
            "trending_anime": ("trending", "anime"),
            "popular_anime": ("popular", "anime"),
            "recent_anime": ("recent", "anime"),
            "trending_manga": ("trending", "manga"),
            "popular_manga": ("popular", "manga"),
            "stats": ("stats", None),
        }
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {
                name: executor.submit(self._lookup, endpoint, content_type)
                for name, (endpoint, content_type) in lookups.items()
            }
            results = {name: future.result() for name, future in futures.items()}

        return {
            "trending": {"anime": results["trending_anime"], "manga": results["trending_manga"]},
            "popular": {"anime": results["popular_anime"], "manga": results["popular_manga"]},
            "recent": {"anime": results["recent_anime"]},
            "stats": results["stats"],
        }

