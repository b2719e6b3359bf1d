"""
Tests for the Tier-1 Redis cache adapter.

TestWithDouble runs everywhere against the in-memory client from conftest.
TestLiveRedis uses a real local Redis instance (localhost:6379, db=15) and is
skipped if Redis is not available.
"""

from unittest.mock import MagicMock

import pytest
from redis.exceptions import ResponseError, TimeoutError as RedisTimeoutError

from rodcache.accelerator.redis_cache import RedisAcceleratorCache
from rodcache.core.config import RedisSettings
from rodcache.core.exceptions import CacheError, CacheUnavailableError


@pytest.fixture
def live_cache():
    """Cache adapter on a dedicated test DB (db=15) to avoid touching real data."""
    c = RedisAcceleratorCache(host="localhost", port=6379, db=15)
    if not c.ping():
        pytest.skip("Redis not available")
    c.client.flushdb()
    yield c
    c.client.flushdb()
    c.close()


class TestWithDouble:
    def test_put_and_get(self, cache):
        assert cache.put("1+A", '{"v": 1}')
        assert cache.get("1+A") == '{"v": 1}'

    def test_put_overwrites(self, cache):
        cache.put("1+A", "old")
        cache.put("1+A", "new")
        assert cache.get("1+A") == "new"

    def test_miss(self, cache):
        assert cache.get("absent") is None

    def test_empty_key_or_value_not_stored(self, cache, redis_double):
        assert not cache.put("", "value")
        assert not cache.put("1+A", "")
        assert redis_double.data == {}
        assert cache.get("") is None

    def test_delete(self, cache):
        cache.put("1+A", "v")
        assert cache.delete("1+A")
        assert not cache.delete("1+A")
        assert not cache.delete("")

    def test_list_keys(self, cache):
        for key in ["1+A", "2+A", "3+B"]:
            cache.put(key, "v")
        assert cache.list_keys() == {"1+A", "2+A", "3+B"}
        assert cache.list_keys("*+A") == {"1+A", "2+A"}

    def test_unreachable(self, cache, redis_double):
        redis_double.down = True
        assert not cache.ping()
        with pytest.raises(CacheUnavailableError):
            cache.ensure_available()
        with pytest.raises(CacheUnavailableError):
            cache.get("1+A")
        with pytest.raises(CacheUnavailableError):
            cache.put("1+A", "v")
        with pytest.raises(CacheUnavailableError):
            cache.list_keys()

    def test_timeout_is_unavailable(self):
        client = MagicMock()
        client.get.side_effect = RedisTimeoutError("timed out")
        with pytest.raises(CacheUnavailableError):
            RedisAcceleratorCache(client=client).get("1+A")

    def test_undecodable_value_is_a_miss(self):
        client = MagicMock()
        client.get.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        assert RedisAcceleratorCache(client=client).get("1+A") is None

    def test_other_redis_errors_are_cache_errors(self):
        client = MagicMock()
        client.set.side_effect = ResponseError("WRONGTYPE")
        with pytest.raises(CacheError) as exc_info:
            RedisAcceleratorCache(client=client).put("1+A", "v")
        assert not isinstance(exc_info.value, CacheUnavailableError)

    def test_context_manager_closes(self, redis_double):
        with RedisAcceleratorCache(client=redis_double):
            pass
        assert redis_double.closed


class TestConnectionSettings:
    def test_host_port(self):
        c = RedisAcceleratorCache.from_settings(RedisSettings(host="cache.internal", port=6380, db=2))
        kwargs = c.client.connection_pool.connection_kwargs
        assert (kwargs["host"], kwargs["port"], kwargs["db"]) == ("cache.internal", 6380, 2)
        assert c.location == "cache.internal:6380/2"

    def test_url_takes_priority(self):
        c = RedisAcceleratorCache.from_settings(
            RedisSettings(host="ignored", url="redis://cache.example.com:6390/4")
        )
        kwargs = c.client.connection_pool.connection_kwargs
        assert kwargs["host"] == "cache.example.com"
        assert kwargs["port"] == 6390
        assert kwargs["db"] == 4


class TestLiveRedis:
    def test_ping(self, live_cache):
        assert live_cache.ping()
        live_cache.ensure_available()

    def test_round_trip(self, live_cache):
        live_cache.put("7644012312312+CB01USC512L", '{"size": 1500}')
        assert live_cache.get("7644012312312+CB01USC512L") == '{"size": 1500}'

    def test_no_ttl(self, live_cache):
        live_cache.put("1+A", "v")
        assert live_cache.client.ttl("1+A") == -1

    def test_list_and_delete(self, live_cache):
        for i in range(20):
            live_cache.put(f"{i}+NRN", "v")
        assert len(live_cache.list_keys()) == 20
        assert live_cache.delete("0+NRN")
        assert len(live_cache.list_keys("*+NRN")) == 19
