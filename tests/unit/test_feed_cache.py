"""Unit tests for the feed cache."""

import pytest

from app.services.feed_cache import EMPTY_STATS, FeedCache
from app.services.features import MatchOdds


class FakeRedis:
    """In-memory stand-in for the async Redis client."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl


class BrokenRedis:
    async def get(self, key):
        raise ConnectionError("redis down")

    async def setex(self, key, ttl, value):
        raise ConnectionError("redis down")


class CountingFetcher:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = 0

    async def __call__(self, match_id):
        self.calls += 1
        if self.error:
            raise self.error
        return self.result


HOME_ROWS = [{"type": "Shots on Goal", "value": 4}]
AWAY_ROWS = [{"type": "Shots on Goal", "value": 1}]


class TestFeedCache:
    """Test caching, TTLs and fail-open behaviour."""

    def setup_method(self):
        self.redis = FakeRedis()
        self.cache = FeedCache(self.redis, stats_ttl=30, odds_ttl=60)

    @pytest.mark.asyncio
    async def test_stats_cached_per_match(self):
        fetcher = CountingFetcher((HOME_ROWS, AWAY_ROWS))

        first = await self.cache.get_stats("m1", fetcher)
        second = await self.cache.get_stats("m1", fetcher)

        assert first == second == (HOME_ROWS, AWAY_ROWS)
        assert fetcher.calls == 1
        assert self.redis.ttls["liveedge:feed:stats:m1"] == 30

    @pytest.mark.asyncio
    async def test_stats_fetch_failure_not_cached(self):
        failing = CountingFetcher(error=RuntimeError("upstream 500"))

        assert await self.cache.get_stats("m1", failing) == EMPTY_STATS
        assert self.redis.store == {}

    @pytest.mark.asyncio
    async def test_odds_round_trip(self):
        odds = MatchOdds(home=1.8, draw=3.6, away=4.5, bookmaker="pinnacle")
        fetcher = CountingFetcher(odds)

        assert await self.cache.get_odds("m1", fetcher) == odds
        assert await self.cache.get_odds("m1", fetcher) == odds
        assert fetcher.calls == 1
        assert self.redis.ttls["liveedge:feed:odds:m1"] == 60

    @pytest.mark.asyncio
    async def test_missing_odds_not_cached(self):
        assert await self.cache.get_odds("m1", CountingFetcher(None)) is None
        assert self.redis.store == {}

    @pytest.mark.asyncio
    async def test_redis_errors_fail_open(self):
        cache = FeedCache(BrokenRedis())
        fetcher = CountingFetcher((HOME_ROWS, AWAY_ROWS))

        assert await cache.get_stats("m1", fetcher) == (HOME_ROWS, AWAY_ROWS)
        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_no_redis_no_fetcher(self):
        cache = FeedCache()
        assert await cache.get_stats("m1", None) == EMPTY_STATS
        assert await cache.get_odds("m1", None) is None
