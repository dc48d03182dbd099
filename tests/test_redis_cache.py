"""
Tests for the Redis content cache
"""
import json

import pytest

from conftest import FakeRedis
from exceptions import CacheUnavailable
from redis_cache import ContentCache, make_cache_key


class Recorder:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def __call__(self, metric_type, value, key, metadata):
        if self.fail:
            raise RuntimeError("metrics table is gone")
        self.calls.append((metric_type, key))

    def types(self):
        return [metric_type for metric_type, _ in self.calls]


class TestCacheKeys:
    def test_key_layout(self):
        assert make_cache_key("trending", "anime", 20) == "cache:trending:anime:20"
        assert make_cache_key("stats") == "cache:stats:all:all"

    def test_extra_params_are_order_independent(self):
        first = make_cache_key("search", "manga", 10, extra={"search": "berserk", "year": 1989})
        second = make_cache_key("search", "manga", 10, extra={"year": 1989, "search": "berserk"})
        assert first == second
        assert first == 'cache:search:manga:10:{"search":"berserk","year":1989}'


class TestReadThrough:
    def test_miss_then_hit(self):
        redis_client = FakeRedis()
        recorder = Recorder()
        cache = ContentCache(redis_client, recorder=recorder)
        calls = []

        def loader():
            calls.append(1)
            return [{"id": 1}]

        first, first_hit = cache.read_through("cache:trending:anime:20", 300, loader)
        second, second_hit = cache.read_through("cache:trending:anime:20", 300, loader)

        assert first == second == [{"id": 1}]
        assert (first_hit, second_hit) == (False, True)
        assert len(calls) == 1
        assert redis_client.ttls["cache:trending:anime:20"] == 300
        assert recorder.types() == ["miss", "set", "hit"]

    def test_expired_entry_is_a_miss(self):
        redis_client = FakeRedis()
        recorder = Recorder()
        cache = ContentCache(redis_client, recorder=recorder)
        cache.set_with_stats("cache:stats:all:all", {"titles": 3}, 300)

        redis_client.advance(299)
        assert cache.get_with_stats("cache:stats:all:all") == {"titles": 3}

        redis_client.advance(1)
        assert cache.get_with_stats("cache:stats:all:all") is None
        assert recorder.types() == ["set", "hit", "miss"]

    def test_values_are_json(self):
        redis_client = FakeRedis()
        ContentCache(redis_client).set_with_stats("cache:stats:all:all", {"animeCount": 3}, 3600)
        assert json.loads(redis_client.store["cache:stats:all:all"]) == {"animeCount": 3}

    def test_corrupt_value_is_a_miss(self):
        redis_client = FakeRedis()
        redis_client.store["cache:stats:all:all"] = "{not json"
        value, hit = ContentCache(redis_client).read_through("cache:stats:all:all", 60, lambda: {"ok": True})
        assert hit is False
        assert value == {"ok": True}

    def test_recorder_failure_is_not_fatal(self):
        cache = ContentCache(FakeRedis(), recorder=Recorder(fail=True))
        value, hit = cache.read_through("cache:recent:anime:20", 300, lambda: [])
        assert value == []
        assert hit is False


class TestDegradedMode:
    def test_reads_fall_through_and_writes_are_dropped(self):
        recorder = Recorder()
        cache = ContentCache(FakeRedis(fail=True), recorder=recorder)

        assert cache.get_with_stats("cache:trending:anime:20") is None
        assert cache.set_with_stats("cache:trending:anime:20", [], 300) is False
        value, hit = cache.read_through("cache:trending:anime:20", 300, lambda: ["fresh"])
        assert value == ["fresh"]
        assert hit is False
        assert "error" in recorder.types()

    def test_invalidate_raises(self):
        cache = ContentCache(FakeRedis(fail=True))
        with pytest.raises(CacheUnavailable):
            cache.invalidate_pattern("cache:*")

    def test_invalidate_content_swallows_outage(self):
        assert ContentCache(FakeRedis(fail=True)).invalidate_content("anime") == 0

    def test_ping(self):
        assert ContentCache(FakeRedis()).ping() is True
        assert ContentCache(FakeRedis(fail=True)).ping() is False


class TestInvalidation:
    def test_pattern_only_touches_matching_keys(self):
        redis_client = FakeRedis()
        redis_client.store.update(
            {
                "cache:trending:anime:20": "[]",
                "cache:trending:manga:20": "[]",
                'cache:detail:anime:all:{"id":1}': "{}",
            }
        )
        cache = ContentCache(redis_client)

        assert cache.invalidate_pattern("cache:trending:*") == 2
        assert list(redis_client.store) == ['cache:detail:anime:all:{"id":1}']

    def test_deletes_in_batches(self):
        redis_client = FakeRedis()
        for i in range(5):
            redis_client.store[f"cache:search:anime:{i}"] = "[]"
        cache = ContentCache(redis_client, batch_size=2)

        assert cache.invalidate_pattern("cache:search:*") == 5
        assert [len(batch) for batch in redis_client.delete_calls] == [2, 2, 1]

    def test_no_matches_means_no_delete(self):
        redis_client = FakeRedis()
        assert ContentCache(redis_client).invalidate_pattern("cache:genres:*") == 0
        assert redis_client.delete_calls == []

    def test_estimate_size_samples_first_keys(self):
        redis_client = FakeRedis()
        redis_client.store.update({"cache:popular:anime:20": "x" * 10, "cache:popular:manga:20": "y" * 30})
        estimate = ContentCache(redis_client).estimate_size("cache:popular:*", sample_size=5)

        assert estimate["keys"] == 2
        assert estimate["averageKeySize"] == 20
        assert estimate["estimatedTotalSize"] == 40
        assert estimate["sampleSize"] == 2
