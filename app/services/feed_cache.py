"""Per-match TTL cache for live statistics and prices.

Wraps the statistics and price fetch callables with a short-lived Redis
cache keyed by match id, bounding upstream call volume when a match is
scanned every cycle.

The cache fails open: a Redis error is logged and the fetcher is called
directly. A fetch failure degrades to empty statistics or no price and is
never cached.
"""

import json
from dataclasses import asdict
from typing import Any, Awaitable, Protocol

import redis.asyncio as redis
import structlog

from app.services.features import MatchOdds

logger = structlog.get_logger(__name__)

StatRows = tuple[list[dict[str, Any]], list[dict[str, Any]]]

EMPTY_STATS: StatRows = ([], [])


class StatsFetcher(Protocol):
    def __call__(self, match_id: str) -> Awaitable[StatRows | None]: ...


class PriceFetcher(Protocol):
    def __call__(self, match_id: str) -> Awaitable[MatchOdds | None]: ...


class FeedCache:
    """Redis-backed TTL cache in front of feed fetchers."""

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        stats_ttl: int = 30,
        odds_ttl: int = 60,
        key_prefix: str = "liveedge:feed",
    ):
        """
        Args:
            redis_client: Redis client; None disables caching
            stats_ttl: Seconds a statistics payload stays cached
            odds_ttl: Seconds a price payload stays cached
            key_prefix: Redis key prefix
        """
        self.redis = redis_client
        self.stats_ttl = stats_ttl
        self.odds_ttl = odds_ttl
        self.key_prefix = key_prefix

    def _key(self, kind: str, match_id: str) -> str:
        return f"{self.key_prefix}:{kind}:{match_id}"

    async def _read(self, key: str) -> Any | None:
        if not self.redis:
            return None
        try:
            raw = await self.redis.get(key)
            return json.loads(raw) if raw else None
        except Exception as e:
            logger.warning("feed_cache_read_error", key=key, error=str(e))
            return None

    async def _write(self, key: str, ttl: int, payload: Any) -> None:
        if not self.redis:
            return
        try:
            await self.redis.setex(key, ttl, json.dumps(payload))
        except Exception as e:
            logger.warning("feed_cache_write_error", key=key, error=str(e))

    async def get_stats(self, match_id: str, fetcher: StatsFetcher | None) -> StatRows:
        """Statistics rows (home, away) for a match; empty rows on failure."""
        key = self._key("stats", match_id)
        cached = await self._read(key)
        if cached is not None:
            return list(cached.get("home") or []), list(cached.get("away") or [])
        if fetcher is None:
            return EMPTY_STATS

        try:
            rows = await fetcher(match_id)
        except Exception as e:
            logger.warning("stats_fetch_failed", match_id=match_id, error=str(e))
            return EMPTY_STATS
        if not rows:
            return EMPTY_STATS

        home, away = list(rows[0] or []), list(rows[1] or [])
        await self._write(key, self.stats_ttl, {"home": home, "away": away})
        return home, away

    async def get_odds(self, match_id: str, fetcher: PriceFetcher | None) -> MatchOdds | None:
        """Head-to-head prices for a match, or None."""
        key = self._key("odds", match_id)
        cached = await self._read(key)
        if cached is not None:
            return MatchOdds(**cached)
        if fetcher is None:
            return None

        try:
            odds = await fetcher(match_id)
        except Exception as e:
            logger.warning("odds_fetch_failed", match_id=match_id, error=str(e))
            return None
        if odds is None:
            return None

        await self._write(key, self.odds_ttl, asdict(odds))
        return odds
