"""
Redis Cache Module for AniSync
Read-through cache for the content endpoints with hit/miss accounting and
graceful degradation: a Redis failure is a miss on read and a no-op on write.
"""

import json
import time
import logging
from typing import Any, Callable, Optional, Tuple

import redis

from constants import CACHE_PREFIX
from exceptions import CacheUnavailable
from metrics import observe_cache

logger = logging.getLogger(__name__)


def make_cache_key(domain: str, content_type: Optional[str] = None, limit: Optional[int] = None, extra=None) -> str:
    """
    Deterministic key: cache:<domain>:<contentType>:<limit>[:<extraParamsJSON>]

    extra is serialised with sorted keys so logically identical requests
    collide regardless of parameter order.
    """
    key_parts = [CACHE_PREFIX, domain, content_type or "all", str(limit if limit is not None else "all")]
    if extra:
        key_parts.append(json.dumps(extra, sort_keys=True, separators=(",", ":")))
    return ":".join(key_parts)


def connect(redis_url: str):
    """Build a client for the process entry point; connectivity is not checked here"""
    return redis.from_url(redis_url, decode_responses=True)


class ContentCache:
    """Instrumented cache over an injected Redis client"""

    def __init__(self, client, recorder: Callable = None, batch_size: int = 100):
        self.client = client
        self.recorder = recorder
        self.batch_size = batch_size

    def _record(self, metric_type: str, value: float = 0.0, key: str = None, metadata: dict = None, elapsed_ms=None):
        observe_cache(metric_type, (value if elapsed_ms is None else elapsed_ms) / 1000.0)
        if not self.recorder:
            return
        try:
            self.recorder(metric_type, value, key, metadata)
        except Exception as e:
            logger.warning(f"Cache metric recording failed ({metric_type} {key}): {e}")

    def get_with_stats(self, key: str) -> Any:
        """
        Get a decoded value from cache

        Returns None on a miss and also when Redis fails, so callers fall
        through to the database either way.
        """
        start = time.time()
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache get error for {key}: {e}")
            self._record("error", (time.time() - start) * 1000, key, {"operation": "get", "error": str(e)})
            return None

        elapsed_ms = (time.time() - start) * 1000
        if raw is None:
            logger.debug(f"Cache MISS: {key}")
            self._record("miss", elapsed_ms, key)
            return None

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache value for {key} is not valid JSON: {e}")
            self._record("error", elapsed_ms, key, {"operation": "decode", "error": str(e)})
            return None

        logger.debug(f"Cache HIT: {key}")
        self._record("hit", elapsed_ms, key)
        return value

    def set_with_stats(self, key: str, value: Any, ttl: int) -> bool:
        """
        Serialise and SETEX a value

        Returns False (never raises) when Redis fails.
        """
        start = time.time()
        try:
            payload = json.dumps(value, default=str)
            self.client.setex(key, ttl, payload)
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.warning(f"Cache set error for {key}: {e}")
            self._record("error", (time.time() - start) * 1000, key, {"operation": "set", "error": str(e)})
            return False

        logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
        self._record("set", (time.time() - start) * 1000, key, {"ttl": ttl, "size": len(payload)})
        return True

    def read_through(self, key: str, ttl: int, loader: Callable[[], Any]) -> Tuple[Any, bool]:
        """Return (value, hit). On a miss the loader runs and its result is cached."""
        cached_value = self.get_with_stats(key)
        if cached_value is not None:
            return cached_value, True

        value = loader()
        self.set_with_stats(key, value, ttl)
        return value, False

    def list_keys(self, pattern: str = f"{CACHE_PREFIX}:*"):
        try:
            return sorted(self.client.keys(pattern))
        except redis.RedisError as e:
            raise CacheUnavailable(f"Could not list keys for {pattern}: {e}")

    def invalidate_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern, batch_size keys per DEL

        Raises CacheUnavailable when Redis fails.
        """
        start = time.time()
        try:
            keys = self.client.keys(pattern)
            deleted = 0
            for i in range(0, len(keys), self.batch_size):
                batch = keys[i : i + self.batch_size]
                deleted += self.client.delete(*batch)
        except redis.RedisError as e:
            logger.warning(f"Cache delete pattern error for {pattern}: {e}")
            self._record("error", (time.time() - start) * 1000, pattern, {"operation": "invalidate", "error": str(e)})
            raise CacheUnavailable(f"Could not invalidate {pattern}: {e}")

        logger.info(f"Cache DELETE: {pattern} ({deleted} keys)")
        self._record("invalidate", deleted, pattern, elapsed_ms=(time.time() - start) * 1000)
        return deleted

    def invalidate_content(self, content_type: str) -> int:
        """Drop cached views that a sync of content_type may have changed"""
        total_deleted = 0
        for pattern in (f"{CACHE_PREFIX}:*:{content_type}:*", f"{CACHE_PREFIX}:homepage:*", f"{CACHE_PREFIX}:stats:*"):
            try:
                total_deleted += self.invalidate_pattern(pattern)
            except CacheUnavailable as e:
                logger.warning(f"Skipping cache invalidation after sync: {e.message}")
        return total_deleted

    def estimate_size(self, pattern: str, sample_size: int = 5) -> dict:
        """Key count plus an average value size extrapolated from the first sample_size keys"""
        keys = self.list_keys(pattern)
        sample = keys[:sample_size]
        total_size = 0
        for key in sample:
            try:
                value = self.client.get(key)
            except redis.RedisError as e:
                logger.debug(f"Skipping sample key {key}: {e}")
                continue
            if value is not None:
                total_size += len(value)

        avg_size = round(total_size / len(sample)) if sample else 0
        return {
            "pattern": pattern,
            "keys": len(keys),
            "averageKeySize": avg_size,
            "estimatedTotalSize": avg_size * len(keys),
            "sampleSize": len(sample),
        }

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False
