"""
Cache administration and reporting

Warmup replays the regular content path for a fixed list of hot endpoints,
so a warmed key is byte-for-byte what a real request would have cached.
"""

import structlog

from constants import CACHE_PREFIX, WARMUP_ENDPOINTS
from exceptions import AniSyncException, CacheUnavailable, ValidationException
from repositories.cachemetric_repository import CacheMetricRepository

logger = structlog.get_logger("cache")

ADMIN_ACTIONS = ("invalidate", "invalidate_patterns", "warm", "stats", "list")
STATS_ACTIONS = ("get", "clear", "warmup")

STATS_PATTERNS = (
    f"{CACHE_PREFIX}:trending:*",
    f"{CACHE_PREFIX}:popular:*",
    f"{CACHE_PREFIX}:recent:*",
    f"{CACHE_PREFIX}:search:*",
    f"{CACHE_PREFIX}:detail:*",
    f"{CACHE_PREFIX}:homepage:*",
    f"{CACHE_PREFIX}:stats:*",
    f"{CACHE_PREFIX}:genres:*",
    f"{CACHE_PREFIX}:generic:*",
)


class CacheAdminService:
    def __init__(self, cache, content_service, sample_size=5):
        self.cache = cache
        self.content_service = content_service
        self.sample_size = sample_size

    def handle(self, action, pattern=None, patterns=None, limit=None):
        """Dispatch one admin action; unknown actions are a validation error"""
        if action == "invalidate":
            if not pattern:
                raise ValidationException("invalidate requires a pattern")
            return self.invalidate(pattern)
        if action == "invalidate_patterns":
            if not patterns:
                raise ValidationException("invalidate_patterns requires patterns")
            return self.invalidate_patterns(patterns)
        if action == "warm":
            return self.warm()
        if action == "stats":
            return self.stats()
        if action == "list":
            return self.list_keys(pattern or f"{CACHE_PREFIX}:*", limit or 100)
        raise ValidationException(f"Invalid action '{action}'. Expected one of: {', '.join(ADMIN_ACTIONS)}")

    def invalidate(self, pattern):
        deleted = self.cache.invalidate_pattern(pattern)
        return {"pattern": pattern, "deleted": deleted}

    def invalidate_patterns(self, patterns):
        results = []
        total_deleted = 0
        for pattern in patterns:
            try:
                deleted = self.cache.invalidate_pattern(pattern)
                results.append({"pattern": pattern, "deleted": deleted, "success": True})
                total_deleted += deleted
            except CacheUnavailable as e:
                results.append({"pattern": pattern, "deleted": 0, "success": False, "error": e.message})
        return {"results": results, "totalDeleted": total_deleted}

    def warm(self):
        """Pretend each hot endpoint was just requested"""
        results = []
        for entry in WARMUP_ENDPOINTS:
            endpoint = entry["endpoint"]
            try:
                self.content_service.get_content(
                    endpoint, content_type=entry.get("contentType", "anime"), limit=entry.get("limit", 20)
                )
                results.append({"endpoint": endpoint, "contentType": entry.get("contentType"), "success": True})
            except AniSyncException as e:
                logger.warning("Warmup failed", endpoint=endpoint, content_type=entry.get("contentType"), error=e.message)
                results.append(
                    {"endpoint": endpoint, "contentType": entry.get("contentType"), "success": False, "error": e.message}
                )

        warmed = sum(1 for r in results if r["success"])
        logger.info("Cache warmup finished", warmed=warmed, total=len(results))
        return {"warmed": warmed, "total": len(results), "results": results}

    def stats(self):
        """Key counts and sampled sizes per domain plus the 24h hit ratio"""
        domains = []
        total_keys = 0
        total_size = 0
        sampled = 0
        sample_bytes = 0
        for pattern in STATS_PATTERNS:
            estimate = self.cache.estimate_size(pattern, self.sample_size)
            domains.append(estimate)
            total_keys += estimate["keys"]
            total_size += estimate["estimatedTotalSize"]
            sampled += estimate["sampleSize"]
            sample_bytes += estimate["averageKeySize"] * estimate["sampleSize"]

        return {
            "totalKeys": total_keys,
            "averageKeySize": round(sample_bytes / sampled) if sampled else 0,
            "estimatedTotalSize": total_size,
            "estimatedTotalSizeMB": round(total_size / (1024 * 1024), 2),
            "sampleSize": sampled,
            "hitRatio": CacheMetricRepository.get_hit_ratio(hours=24),
            "domains": domains,
        }

    def list_keys(self, pattern, limit):
        keys = self.cache.list_keys(pattern)
        return {"keys": keys[:limit], "total": len(keys), "showing": min(limit, len(keys)), "pattern": pattern}

    def report(self, action="get", date_range=7):
        """Metrics-table report behind /api/cache/stats"""
        if action == "clear":
            deleted = CacheMetricRepository.clear()
            logger.info("Cache metrics cleared", deleted=deleted)
            return {"cleared": deleted}
        if action == "warmup":
            return self.warm()
        if action != "get":
            raise ValidationException(f"Invalid action '{action}'. Expected one of: {', '.join(STATS_ACTIONS)}")

        daily = CacheMetricRepository.get_daily_stats(days=date_range)
        totals = {"hits": 0, "misses": 0, "sets": 0, "invalidations": 0, "errors": 0}
        for day in daily:
            for name in totals:
                totals[name] += day[name]
        requests = totals["hits"] + totals["misses"]
        totals["hitRatio"] = round(totals["hits"] / requests * 100, 2) if requests else 0.0

        try:
            key_count = len(self.cache.list_keys())
        except CacheUnavailable as e:
            logger.warning("Could not count cache keys", error=e.message)
            key_count = None

        return {
            "dateRange": date_range,
            "daily": daily,
            "totals": totals,
            "averageLatencyMs": CacheMetricRepository.get_average_latency(days=date_range),
            "topKeys": CacheMetricRepository.get_top_keys(days=date_range),
            "keyCount": key_count,
        }
